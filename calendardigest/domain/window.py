"""Intersection of occurrence sets with the report window."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, tzinfo

from calendardigest.calendar.datetime_utils import start_of_day
from calendardigest.calendar.digest_models import DigestEvent, Occurrence, Span
from calendardigest.calendar.occurrence_expander import OccurrenceSet

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_WEEKS = 6


def build_report_window(now: datetime, weeks: int = DEFAULT_WINDOW_WEEKS) -> Span:
    """Return the look-ahead window ``[now, now + weeks]``."""
    if weeks < 0:
        raise ValueError(f"window weeks must not be negative: {weeks}")
    return Span(start=now, end=now + timedelta(weeks=weeks))


class WindowIntersector:
    """Turns occurrence sets into the occurrences that fall inside the window."""

    def __init__(self, window: Span, report_timezone: tzinfo):
        self.window = window
        self.report_timezone = report_timezone

    def occurrences(self, event: DigestEvent, occurrence_set: OccurrenceSet) -> list[Occurrence]:
        """Enumerate the occurrences of ``event`` inside the window.

        Returns:
            Occurrences in ascending order; empty when the event has no
            instant inside the window
        """
        clipped = occurrence_set.clip(self.window)
        if not clipped:
            logger.debug("Event %r has no occurrence in the window", event.summary)
            return []

        return [
            Occurrence(
                event=event,
                dt=instant,
                span=self._occurrence_span(event, instant, occurrence_set),
                clipped=clipped,
            )
            for instant in clipped
        ]

    def _occurrence_span(
        self, event: DigestEvent, instant: datetime, occurrence_set: OccurrenceSet
    ) -> Span:
        """Start and end of one occurrence.

        A day of a split multi-day event ends at the event end or at the
        following midnight, whichever comes first.
        """
        if occurrence_set.strategy == "day_split":
            local = instant.astimezone(self.report_timezone)
            next_midnight = start_of_day(local.date() + timedelta(days=1), self.report_timezone)
            return Span(start=instant, end=min(event.end, next_midnight))
        return Span(start=instant, end=instant + event.duration)
