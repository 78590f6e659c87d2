"""Timezone utilities for calendardigest.

Resolves the report timezone and provides the current time, honouring the
CALENDARDIGEST_TEST_TIME override used by tests and reproducible runs.
"""

from __future__ import annotations

import datetime
import logging
import os
from typing import ClassVar, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser
from dateutil import tz

from calendardigest.digest_exceptions import ConfigError

logger = logging.getLogger(__name__)

TEST_TIME_ENV = "CALENDARDIGEST_TEST_TIME"


class TimezoneDetector:
    """Maps timezone names found in calendar feeds to IANA identifiers."""

    # Outlook exports often use Windows zone names in TZID parameters
    WINDOWS_TZ_MAP: ClassVar[dict[str, str]] = {
        # US Timezones
        "Pacific Standard Time": "America/Los_Angeles",
        "Mountain Standard Time": "America/Denver",
        "Central Standard Time": "America/Chicago",
        "Eastern Standard Time": "America/New_York",
        "Alaskan Standard Time": "America/Anchorage",
        "Hawaiian Standard Time": "Pacific/Honolulu",
        "US Mountain Standard Time": "America/Phoenix",
        "Atlantic Standard Time": "America/Halifax",
        # Europe
        "GMT Standard Time": "Europe/London",
        "W. Europe Standard Time": "Europe/Berlin",
        "Romance Standard Time": "Europe/Paris",
        "Central Europe Standard Time": "Europe/Budapest",
        "Central European Standard Time": "Europe/Warsaw",
        "E. Europe Standard Time": "Europe/Chisinau",
        "FLE Standard Time": "Europe/Helsinki",
        "GTB Standard Time": "Europe/Athens",
        "Russian Standard Time": "Europe/Moscow",
        # Asia / Pacific
        "China Standard Time": "Asia/Shanghai",
        "Tokyo Standard Time": "Asia/Tokyo",
        "Korea Standard Time": "Asia/Seoul",
        "Singapore Standard Time": "Asia/Singapore",
        "India Standard Time": "Asia/Kolkata",
        "AUS Eastern Standard Time": "Australia/Sydney",
        "New Zealand Standard Time": "Pacific/Auckland",
        "UTC": "UTC",
    }

    def resolve(self, name: Optional[str]) -> datetime.tzinfo:
        """Resolve a timezone name to a tzinfo.

        Args:
            name: IANA or Windows timezone name; None or empty selects the
                system local zone

        Returns:
            tzinfo for the requested zone

        Raises:
            ConfigError: If the name is not a known timezone
        """
        if not name:
            return self.local_timezone()

        candidate = self.WINDOWS_TZ_MAP.get(name, name)
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown timezone: {name!r}") from exc

    def local_timezone(self) -> datetime.tzinfo:
        """Return the system local timezone, DST rules included."""
        return tz.tzlocal()


class TimeProvider:
    """Provides current time with test time override support."""

    def now_utc(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden via the CALENDARDIGEST_TEST_TIME environment variable.
        Format: ISO 8601 datetime string (e.g., "2025-10-27T08:20:00-07:00").
        Naive values are taken as UTC.
        """
        test_time = os.environ.get(TEST_TIME_ENV)
        if test_time:
            try:
                dt = date_parser.isoparse(test_time)
            except ValueError as e:
                logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)
            else:
                if dt.tzinfo is not None:
                    return dt.astimezone(datetime.timezone.utc)
                return dt.replace(tzinfo=datetime.timezone.utc)

        return datetime.datetime.now(datetime.timezone.utc)


_detector = TimezoneDetector()
_time_provider = TimeProvider()


def now_utc() -> datetime.datetime:
    """Get current UTC time (convenience function)."""
    return _time_provider.now_utc()


def parse_now(value: str, default_tz: datetime.tzinfo) -> datetime.datetime:
    """Parse a --now style ISO 8601 value; naive values are taken in ``default_tz``.

    Raises:
        ValueError: If the value is not ISO 8601
    """
    dt = date_parser.isoparse(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz)
    return dt


def resolve_timezone(name: Optional[str]) -> datetime.tzinfo:
    """Resolve a report timezone name (None selects the local zone)."""
    return _detector.resolve(name)


def windows_tz_to_iana(windows_tz: str) -> str | None:
    """Convert Windows timezone name to IANA timezone identifier.

    Args:
        windows_tz: Windows timezone name (e.g., "Mountain Standard Time")

    Returns:
        IANA timezone identifier (e.g., "America/Denver") or None if not found
    """
    return _detector.WINDOWS_TZ_MAP.get(windows_tz)
