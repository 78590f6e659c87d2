"""Custom exception hierarchy for calendardigest.

Library code raises these; the pipeline stages decide (based on the
configured error policy) whether a failure aborts the run or is logged and
skipped.
"""

from __future__ import annotations

from typing import Optional


class DigestError(Exception):
    """Base exception for all calendardigest errors."""


class LoadError(DigestError):
    """A calendar document could not be read or split into events.

    Raised when:
    - The file cannot be opened or decoded as UTF-8
    - The content is not a VCALENDAR document
    - A content line cannot be parsed or BEGIN/END markers are unbalanced
    """

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load {source}: {reason}")


class FieldParseError(DigestError):
    """An event property carries malformed date, duration or recurrence text.

    Attributes:
        field: Property name (DTSTART, DTEND, DURATION, RRULE, EXDATE)
        source: Document the event came from, when known
        value: The offending raw text
    """

    def __init__(
        self,
        field: str,
        value: Optional[str] = None,
        source: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.field = field
        self.value = value
        self.source = source
        self.reason = reason

        message = f"Invalid {field}"
        if value is not None:
            message += f" value {value!r}"
        if source:
            message += f" in {source}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ConfigError(DigestError):
    """Configuration file or value is invalid."""
