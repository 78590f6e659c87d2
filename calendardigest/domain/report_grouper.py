"""Grouping and ordering of occurrences by calendar day."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo

from calendardigest.calendar.digest_models import Occurrence

logger = logging.getLogger(__name__)


@dataclass
class GroupedReport:
    """Occurrences bucketed by day; days ascending, each day already ordered."""

    days: dict[date, list[Occurrence]] = field(default_factory=dict)
    duplicates_removed: int = 0

    def items(self) -> Iterator[tuple[Occurrence, bool]]:
        """Yield ``(occurrence, is_first_for_day)`` in processing order."""
        for day in self.days:
            for position, occurrence in enumerate(self.days[day]):
                yield occurrence, position == 0

    def __len__(self) -> int:
        return sum(len(occurrences) for occurrences in self.days.values())


class ReportGrouper:
    """Buckets occurrences by report-timezone date and orders each day.

    Within a day all-day events come first, sorted by summary, followed by
    timed events sorted by start instant.
    """

    def __init__(self, report_timezone: tzinfo):
        self.report_timezone = report_timezone

    def day_of(self, occurrence: Occurrence) -> date:
        """Calendar date of an occurrence in the report timezone."""
        return self.local(occurrence.dt).date()

    def local(self, instant: datetime) -> datetime:
        return instant.astimezone(self.report_timezone)

    def group(self, occurrences: Iterable[Occurrence]) -> GroupedReport:
        """Group, deduplicate and order occurrences."""
        buckets: dict[date, list[Occurrence]] = {}
        seen: set[tuple] = set()
        duplicates = 0

        for occurrence in occurrences:
            key = (
                occurrence.event.summary,
                occurrence.event.description,
                occurrence.event.all_day,
                occurrence.span.start,
                occurrence.span.end,
            )
            if key in seen:
                duplicates += 1
                continue
            seen.add(key)
            buckets.setdefault(self.day_of(occurrence), []).append(occurrence)

        report = GroupedReport(duplicates_removed=duplicates)
        for day in sorted(buckets):
            report.days[day] = self._order_day(buckets[day])

        if duplicates:
            logger.info("Removed %d duplicate occurrences", duplicates)
        logger.debug("Grouped %d occurrences into %d days", len(report), len(report.days))
        return report

    def _order_day(self, occurrences: list[Occurrence]) -> list[Occurrence]:
        all_day = sorted(
            (o for o in occurrences if o.event.all_day), key=lambda o: o.event.summary
        )
        timed = sorted((o for o in occurrences if not o.event.all_day), key=lambda o: o.dt)
        return all_day + timed
