"""Conversion of raw VEVENT property bags into canonical DigestEvent records."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from calendardigest.calendar.datetime_utils import DateTimeParser, unescape_text
from calendardigest.calendar.digest_models import DigestEvent, RawEvent, RawProperty
from calendardigest.digest_exceptions import FieldParseError

logger = logging.getLogger(__name__)

# Events with neither DTEND nor DURATION last one second
DEFAULT_DURATION = timedelta(seconds=1)


class EventNormalizer:
    """Builds DigestEvent records from RawEvent property bags."""

    def __init__(self, default_timezone: tzinfo, datetime_parser: Optional[DateTimeParser] = None):
        """Initialize event normalizer.

        Args:
            default_timezone: Zone used for dates and floating date-times
            datetime_parser: Optional parser override (tests)
        """
        self.default_timezone = default_timezone
        self.datetime_parser = datetime_parser or DateTimeParser(default_timezone)

    def normalize(self, raw: RawEvent) -> Optional[DigestEvent]:
        """Convert one property bag into a DigestEvent.

        Args:
            raw: Property bag for one VEVENT

        Returns:
            DigestEvent, or None when the entry has no SUMMARY

        Raises:
            FieldParseError: If DTSTART is missing or a date, duration or
                exclusion value is malformed
        """
        summary_prop = raw.get("SUMMARY")
        if summary_prop is None:
            logger.debug("Skipping event %d in %s: no SUMMARY", raw.index, raw.source)
            return None

        dtstart = raw.get("DTSTART")
        if dtstart is None:
            raise FieldParseError("DTSTART", source=raw.source, reason="missing")

        start = self._parse_instant("DTSTART", dtstart, raw.source)
        end = self._compute_end(raw, dtstart, start)

        summary = unescape_text(summary_prop.value)
        if end < start:
            logger.warning(
                "Event %r in %s ends before it starts; treating end as start",
                summary,
                raw.source,
            )
            end = start

        description_prop = raw.get("DESCRIPTION")
        rrule_prop = raw.get("RRULE")
        uid_prop = raw.get("UID")

        return DigestEvent(
            uid=uid_prop.value if uid_prop else None,
            summary=summary,
            description=unescape_text(description_prop.value) if description_prop else "",
            start=start,
            end=end,
            # Only the DTSTART parameter decides, DTEND/DURATION are not consulted
            all_day=dtstart.is_date_only,
            rrule=rrule_prop.value if rrule_prop else None,
            exdates=tuple(self._collect_exdates(raw)),
            source=raw.source,
        )

    def _compute_end(self, raw: RawEvent, dtstart: RawProperty, start: datetime) -> datetime:
        """Derive the end instant from DTEND, else DURATION, else one second."""
        dtend = raw.get("DTEND")
        if dtend is not None:
            end = self._parse_instant("DTEND", dtend, raw.source)
            # A date-only DTEND is exclusive: start+1 day means a single day
            if self.datetime_parser.is_date_value(dtend):
                start_date = self._parse_date("DTSTART", dtstart, raw.source)
                end_date = self._parse_date("DTEND", dtend, raw.source)
                if end_date == start_date + timedelta(days=1):
                    end = end - timedelta(days=1)
            return end

        duration_prop = raw.get("DURATION")
        if duration_prop is None:
            return start + DEFAULT_DURATION

        try:
            duration = self.datetime_parser.parse_duration(duration_prop)
        except ValueError as exc:
            raise FieldParseError(
                "DURATION", duration_prop.value, raw.source, str(exc)
            ) from exc
        return start + duration

    def _parse_instant(self, field: str, prop: RawProperty, source: str) -> datetime:
        try:
            return self.datetime_parser.parse_instant(prop)
        except ValueError as exc:
            raise FieldParseError(field, prop.value, source, str(exc)) from exc

    def _parse_date(self, field: str, prop: RawProperty, source: str) -> date:
        try:
            parsed = self.datetime_parser.parse_date_or_datetime(prop)
        except ValueError as exc:
            raise FieldParseError(field, prop.value, source, str(exc)) from exc
        return parsed.date() if isinstance(parsed, datetime) else parsed

    def _collect_exdates(self, raw: RawEvent) -> list[datetime]:
        exdates: list[datetime] = []
        for prop in raw.get_all("EXDATE"):
            try:
                exdates.extend(self.datetime_parser.parse_instant_list(prop))
            except ValueError as exc:
                raise FieldParseError("EXDATE", prop.value, raw.source, str(exc)) from exc
        return exdates
