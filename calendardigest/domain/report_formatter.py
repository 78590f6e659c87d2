"""Text rendering of grouped occurrences.

Each occurrence becomes one block: a date label column (filled only for the
first occurrence of a day) followed by the wrapped body text.
"""

from __future__ import annotations

import logging
import textwrap
from collections.abc import Iterator
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from calendardigest.calendar.digest_models import Occurrence, ReportEntry
from calendardigest.domain.report_grouper import GroupedReport

logger = logging.getLogger(__name__)

# English abbreviations, independent of the process locale
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip
WEEKDAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

DEFAULT_LABEL_WIDTH = 16
DEFAULT_CONTENT_WIDTH = 60

_TERMINAL_PUNCTUATION = (".", "?", "!")


def ordinal_suffix(number: int) -> str:
    """English ordinal suffix: 1st, 2nd, 3rd, 4th ... 11th, 12th, 13th ... 21st."""
    if 11 <= number % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def format_day_month(day: date) -> str:
    """``<d><suffix> <Mon>``, e.g. ``3rd Oct``."""
    return f"{day.day}{ordinal_suffix(day.day)} {MONTH_ABBREVIATIONS[day.month - 1]}"


def format_date_header(day: date) -> str:
    """``<d><suffix> <Mon> (<Day>)``, e.g. ``3rd Oct (Fri)``."""
    return f"{format_day_month(day)} ({WEEKDAY_ABBREVIATIONS[day.weekday()]})"


def cross_reference(day: date) -> str:
    """Description pointing back at the first day an event is listed."""
    return f"See {format_day_month(day)} entry for details."


def punctuate(text: Optional[str]) -> str:
    """Trim trailing whitespace and end the text with a full stop if needed."""
    if not text:
        return ""
    text = text.rstrip()
    if not text:
        return ""
    if text.endswith(_TERMINAL_PUNCTUATION):
        return text
    return text + "."


def wrap_columns(indent: int, width: int, text: str, label: str = "") -> list[str]:
    """Word-wrap ``text`` into a body column ``width`` characters wide.

    The first line starts with ``label`` padded to ``indent`` characters;
    continuation lines are indented by ``indent`` spaces so the label
    column stays blank.
    """
    body = textwrap.wrap(text, width=width, break_on_hyphens=False) or [""]
    lines = [(label.ljust(indent) + body[0]).rstrip()]
    lines.extend((" " * indent + line).rstrip() for line in body[1:])
    return lines


class ReportFormatter:
    """Builds ReportEntry values and output lines for a GroupedReport."""

    def __init__(
        self,
        report_timezone: tzinfo,
        label_width: int = DEFAULT_LABEL_WIDTH,
        content_width: int = DEFAULT_CONTENT_WIDTH,
    ):
        self.report_timezone = report_timezone
        self.label_width = label_width
        self.content_width = content_width

    def _local(self, instant: datetime) -> datetime:
        return instant.astimezone(self.report_timezone)

    def format_time_range(self, occurrence: Occurrence) -> str:
        """``HH:MM - HH:MM`` for the occurrence span; a following midnight shows as 24:00."""
        start = self._local(occurrence.span.start)
        end = self._local(occurrence.span.end)
        end_text = end.strftime("%H:%M")
        ends_at_next_midnight = (
            end.time() == datetime.min.time() and end.date() == start.date() + timedelta(days=1)
        )
        if ends_at_next_midnight:
            end_text = "24:00"
        return f"{start:%H:%M} - {end_text}"

    def format_entry(self, occurrence: Occurrence, is_first_for_day: bool) -> ReportEntry:
        """Render one occurrence without touching the shared event."""
        event = occurrence.event
        day = self._local(occurrence.dt).date()
        first_day = self._local(occurrence.first_dt).date()

        summary = event.summary
        if not event.all_day:
            summary = f"{self.format_time_range(occurrence)}, {summary}"

        description = event.description
        if description and day != first_day:
            description = cross_reference(first_day)

        summary = punctuate(summary)
        description = punctuate(description)
        body = f"{summary}  {description}" if description else summary

        return ReportEntry(
            day=day,
            header=format_date_header(day) if is_first_for_day else "",
            summary=summary,
            description=description,
            body=body,
        )

    def format_report(self, report: GroupedReport) -> list[ReportEntry]:
        return [self.format_entry(occ, is_first) for occ, is_first in report.items()]

    def render_entry(self, entry: ReportEntry) -> list[str]:
        return wrap_columns(self.label_width, self.content_width, entry.body, entry.header)

    def render(self, report: GroupedReport) -> Iterator[str]:
        """Yield output lines; a blank line separates consecutive days."""
        previous_day: Optional[date] = None
        for entry in self.format_report(report):
            if previous_day is not None and entry.day != previous_day:
                yield ""
            previous_day = entry.day
            yield from self.render_entry(entry)
