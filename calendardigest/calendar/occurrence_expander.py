"""Occurrence expansion for calendar digest events.

Every event becomes an OccurrenceSet backed by a dateutil ``rruleset``.
Rule-driven sets may be unbounded, so the set is only ever consumed through
``iter_span``, which advances to the start of a span and stops once past its
end.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Literal, Optional

from dateutil.rrule import DAILY, rrule, rruleset, rrulestr

from calendardigest.calendar.datetime_utils import start_of_day
from calendardigest.calendar.digest_models import DigestEvent, Span
from calendardigest.digest_exceptions import FieldParseError

logger = logging.getLogger(__name__)

Strategy = Literal["rule", "day_split", "single"]

_UTC_FORMAT = "%Y%m%dT%H%M%SZ"


class OccurrenceSet:
    """Lazy, possibly infinite set of instants at which an event occurs."""

    def __init__(self, ruleset: rruleset, strategy: Strategy, anchor: datetime):
        """Wrap a ruleset.

        Args:
            ruleset: dateutil ruleset generating the instants
            strategy: How the set was built ("rule", "day_split" or "single")
            anchor: The event start the set is anchored at
        """
        self._ruleset = ruleset
        self.strategy = strategy
        self.anchor = anchor

    def advance_past(self, instant: datetime) -> Optional[datetime]:
        """Return the first instant strictly after ``instant``, or None."""
        return self._ruleset.after(instant, inc=False)

    def iter_span(self, span: Span) -> Iterator[datetime]:
        """Yield the instants inside ``span`` in ascending order.

        Advances to the first instant at or after ``span.start`` and stops
        at the first instant past ``span.end``, so unbounded rules are never
        materialized.
        """
        for instant in self._ruleset.xafter(span.start, inc=True):
            if instant > span.end:
                break
            yield instant

    def clip(self, span: Span) -> tuple[datetime, ...]:
        """Return the finite, ordered instants of this set inside ``span``."""
        return tuple(self.iter_span(span))

    def __repr__(self) -> str:
        return f"OccurrenceSet(strategy={self.strategy!r}, anchor={self.anchor.isoformat()})"


def _anchor_until(rule_text: str, event_tz: tzinfo) -> str:
    """Rewrite a floating or date-only UNTIL as UTC.

    dateutil refuses a floating UNTIL for a timezone-aware DTSTART; the
    value is interpreted in the event's timezone, a bare date covering the
    whole day.
    """
    parts = rule_text.strip().split(";")
    for i, part in enumerate(parts):
        key, sep, value = part.partition("=")
        if not sep or key.strip().upper() != "UNTIL":
            continue
        value = value.strip()
        if value.upper().endswith("Z"):
            return rule_text
        if len(value) == 8 and value.isdigit():
            day = date(int(value[:4]), int(value[4:6]), int(value[6:8]))
            local = datetime.combine(day, time.max.replace(microsecond=0), tzinfo=event_tz)
        else:
            local = datetime.strptime(value, "%Y%m%dT%H%M%S").replace(tzinfo=event_tz)
        parts[i] = f"UNTIL={local.astimezone(timezone.utc).strftime(_UTC_FORMAT)}"
        return ";".join(parts)
    return rule_text


class RecurrenceExpander:
    """Builds the OccurrenceSet of a DigestEvent."""

    def __init__(self, report_timezone: tzinfo):
        """Initialize expander.

        Args:
            report_timezone: Zone whose midnights split multi-day events
        """
        self.report_timezone = report_timezone

    def expand(self, event: DigestEvent) -> OccurrenceSet:
        """Return the occurrence set of ``event``.

        A recurrence rule takes precedence; otherwise an event crossing one
        or more midnights gets one instant per day; otherwise the set is the
        start alone.

        Raises:
            FieldParseError: If the recurrence rule is malformed
        """
        if event.rrule:
            return self._expand_rule(event)

        occurrences = self._expand_days(event)
        if occurrences is not None:
            return occurrences

        single = rruleset()
        single.rdate(event.start)
        return OccurrenceSet(single, "single", event.start)

    def _expand_rule(self, event: DigestEvent) -> OccurrenceSet:
        rule_text = event.rrule or ""
        event_tz = event.start.tzinfo or self.report_timezone
        try:
            anchored = _anchor_until(rule_text, event_tz)
            parsed = rrulestr(anchored, dtstart=event.start, forceset=True)
        except (ValueError, KeyError, TypeError) as exc:
            raise FieldParseError("RRULE", rule_text, event.source, str(exc)) from exc

        for exdate in event.exdates:
            parsed.exdate(exdate)

        logger.debug(
            "Rule-driven expansion for %r: %s (%d exclusions)",
            event.summary,
            rule_text,
            len(event.exdates),
        )
        return OccurrenceSet(parsed, "rule", event.start)

    def _expand_days(self, event: DigestEvent) -> Optional[OccurrenceSet]:
        """Build the day-splitting set, or None when no midnight is crossed."""
        local_start = event.start.astimezone(self.report_timezone)
        local_end = event.end.astimezone(self.report_timezone)

        first_midnight = start_of_day(local_start.date() + timedelta(days=1), self.report_timezone)
        if first_midnight >= local_end:
            return None

        days = rruleset()
        days.rdate(local_start)
        days.rrule(
            rrule(
                DAILY,
                dtstart=first_midnight,
                until=local_end - timedelta(microseconds=1),
            )
        )
        logger.debug(
            "Splitting %r into daily occurrences from %s to %s",
            event.summary,
            local_start.date(),
            local_end.date(),
        )
        return OccurrenceSet(days, "day_split", event.start)
