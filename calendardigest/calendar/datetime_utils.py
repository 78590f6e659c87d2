"""Date, date-time and duration parsing for raw iCalendar property text."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from icalendar.prop import vDate, vDatetime, vDuration

from calendardigest.calendar.digest_models import RawProperty
from calendardigest.core.timezone_utils import windows_tz_to_iana

logger = logging.getLogger(__name__)

_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_DATE_ONLY_RE = re.compile(r"^\d{8}$")


def unescape_text(value: Optional[str]) -> str:
    r"""Resolve iCalendar backslash escapes.

    ``\X`` becomes ``X`` for any character, except ``\n``/``\N`` which
    become a newline.
    """
    if not value:
        return ""

    def _replace(match: re.Match[str]) -> str:
        char = match.group(1)
        return "\n" if char in ("n", "N") else char

    return _ESCAPE_RE.sub(_replace, value)


def ensure_timezone_aware(dt: datetime, default_tz: tzinfo) -> datetime:
    """Attach ``default_tz`` to naive datetimes; aware ones pass through."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=default_tz)
    return dt


def start_of_day(day: date, tz: tzinfo) -> datetime:
    """Midnight at the beginning of ``day`` in ``tz``."""
    return datetime.combine(day, time.min, tzinfo=tz)


class DateTimeParser:
    """Parser for DATE / DATE-TIME / DURATION property text."""

    def __init__(self, default_timezone: tzinfo):
        """Initialize datetime parser.

        Args:
            default_timezone: Zone applied to dates and floating date-times
        """
        self.default_timezone = default_timezone
        self._zone_cache: dict[str, tzinfo] = {}

    def is_date_value(self, prop: RawProperty) -> bool:
        """Decide whether a property holds a date rather than a date-time."""
        return prop.is_date_only or bool(_DATE_ONLY_RE.match(prop.value.strip()))

    def parse_date_or_datetime(self, prop: RawProperty) -> date | datetime:
        """Parse the property text into a date or a (possibly naive) datetime.

        Raises:
            ValueError: If the text is not a valid DATE or DATE-TIME
        """
        text = prop.value.strip()
        if self.is_date_value(prop):
            return vDate.from_ical(text)
        return vDatetime.from_ical(text)

    def parse_instant(self, prop: RawProperty) -> datetime:
        """Parse a DATE or DATE-TIME property into a timezone-aware instant.

        Dates become midnight in the default timezone. Floating date-times
        are localized to the TZID parameter when present, otherwise to the
        default timezone.

        Raises:
            ValueError: If the text is malformed
        """
        parsed = self.parse_date_or_datetime(prop)
        if not isinstance(parsed, datetime):
            return start_of_day(parsed, self.default_timezone)

        zone = self._resolve_tzid(prop.tzid) if prop.tzid else self.default_timezone
        return ensure_timezone_aware(parsed, zone)

    def parse_instant_list(self, prop: RawProperty) -> list[datetime]:
        """Parse a comma separated DATE / DATE-TIME list (EXDATE, RDATE)."""
        instants = []
        for part in prop.value.split(","):
            part = part.strip()
            if part:
                instants.append(self.parse_instant(RawProperty(value=part, params=prop.params)))
        return instants

    def parse_duration(self, prop: RawProperty) -> timedelta:
        """Parse a DURATION property.

        Raises:
            ValueError: If the text is not a valid duration
        """
        return vDuration.from_ical(prop.value.strip())

    def _resolve_tzid(self, tzid: str) -> tzinfo:
        """Resolve a TZID parameter, falling back to the default timezone."""
        cached = self._zone_cache.get(tzid)
        if cached is not None:
            return cached

        name = tzid.strip().strip('"')
        zone: tzinfo
        try:
            zone = ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            iana = windows_tz_to_iana(name)
            if iana:
                zone = ZoneInfo(iana)
            else:
                logger.warning("Unknown TZID %r, using default timezone", tzid)
                zone = self.default_timezone

        self._zone_cache[tzid] = zone
        return zone
