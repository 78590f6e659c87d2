"""Data models for calendar digest processing."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Span(BaseModel):
    """Closed time interval ``[start, end]``."""

    start: datetime = Field(..., description="Inclusive start instant")
    end: datetime = Field(..., description="Inclusive end instant")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_order(self) -> Span:
        if self.start > self.end:
            raise ValueError(f"Span start {self.start} is after end {self.end}")
        return self

    @property
    def duration(self) -> timedelta:
        """Length of the interval."""
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        """Check whether an instant lies inside the span (bounds included)."""
        return self.start <= instant <= self.end

    def overlaps(self, other: Span) -> bool:
        """Check whether two spans share at least one instant."""
        return self.start <= other.end and other.start <= self.end

    def intersection(self, other: Span) -> Optional[Span]:
        """Return the overlapping part of two spans, or None when disjoint."""
        if not self.overlaps(other):
            return None
        return Span(start=max(self.start, other.start), end=min(self.end, other.end))


class RawProperty(BaseModel):
    """One property from a VEVENT, as text plus parameters.

    The value keeps iCalendar backslash escapes; unescaping is the
    normalizer's job.
    """

    value: str
    params: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def is_date_only(self) -> bool:
        """True when the VALUE parameter marks a date without a time."""
        return self.params.get("VALUE", "").upper() == "DATE"

    @property
    def tzid(self) -> Optional[str]:
        return self.params.get("TZID")


class RawEvent(BaseModel):
    """Property bag for one VEVENT component."""

    properties: dict[str, list[RawProperty]] = Field(default_factory=dict)
    source: str = Field(default="<string>", description="Document the event came from")
    index: int = Field(default=0, description="Position of the VEVENT in its document")

    def get(self, name: str) -> Optional[RawProperty]:
        """Return the first instance of a property, or None."""
        values = self.properties.get(name.upper())
        return values[0] if values else None

    def get_all(self, name: str) -> list[RawProperty]:
        """Return every instance of a (possibly repeated) property."""
        return list(self.properties.get(name.upper(), []))

    def has(self, name: str) -> bool:
        return bool(self.properties.get(name.upper()))


class DigestEvent(BaseModel):
    """Canonical, immutable representation of one calendar entry."""

    uid: Optional[str] = Field(default=None, description="UID of the source VEVENT")
    summary: str = Field(..., description="Unescaped SUMMARY text")
    description: str = Field(default="", description="Unescaped DESCRIPTION text")

    start: datetime = Field(..., description="Timezone-aware start instant")
    end: datetime = Field(..., description="Timezone-aware end instant")
    all_day: bool = Field(default=False, description="DTSTART was a date-only value")

    rrule: Optional[str] = Field(default=None, description="RRULE text, unchanged")
    exdates: tuple[datetime, ...] = Field(
        default=(), description="Instants excluded from the recurrence"
    )

    source: str = Field(default="<string>", description="Document the event came from")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_order(self) -> DigestEvent:
        if self.end < self.start:
            raise ValueError(f"Event {self.summary!r} ends before it starts")
        return self

    @property
    def is_recurring(self) -> bool:
        return bool(self.rrule)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class Occurrence(BaseModel):
    """One concrete appearance of an event inside the report window."""

    event: DigestEvent
    dt: datetime = Field(..., description="Instant of this occurrence")
    span: Span = Field(..., description="Start and end shown for this occurrence")
    clipped: tuple[datetime, ...] = Field(
        ..., description="Every instant of the event inside the window, ascending"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def first_dt(self) -> datetime:
        """Earliest instant of the owning event inside the window."""
        return self.clipped[0] if self.clipped else self.dt


class ReportEntry(BaseModel):
    """Formatted text for one occurrence."""

    day: date
    header: str = ""
    summary: str = ""
    description: str = ""
    body: str = ""
