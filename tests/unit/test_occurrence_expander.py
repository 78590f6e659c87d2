"""Tests for calendardigest.calendar.occurrence_expander."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from calendardigest.calendar.digest_models import DigestEvent, Span
from calendardigest.calendar.occurrence_expander import RecurrenceExpander, _anchor_until
from calendardigest.digest_exceptions import FieldParseError

pytestmark = [pytest.mark.unit, pytest.mark.fast]

UTC = timezone.utc


def make_event(start: datetime, end: datetime, rrule: str | None = None, **kwargs) -> DigestEvent:
    return DigestEvent(summary=kwargs.pop("summary", "Event"), start=start, end=end, rrule=rrule, **kwargs)


class TestSingleAndDaySplit:
    def test_expand_when_single_day_then_singleton_set(self) -> None:
        start = datetime(2025, 10, 3, 9, 0, tzinfo=UTC)
        event = make_event(start, start + timedelta(hours=1))

        occurrence_set = RecurrenceExpander(UTC).expand(event)

        assert occurrence_set.strategy == "single"
        assert occurrence_set.clip(Span(start=start - timedelta(days=1), end=start + timedelta(days=30))) == (
            start,
        )

    def test_expand_when_three_calendar_days_then_one_instant_per_day(self) -> None:
        start = datetime(2025, 10, 3, 18, 0, tzinfo=UTC)
        event = make_event(start, datetime(2025, 10, 5, 12, 0, tzinfo=UTC))

        occurrence_set = RecurrenceExpander(UTC).expand(event)
        instants = occurrence_set.clip(Span(start=start, end=start + timedelta(days=10)))

        assert occurrence_set.strategy == "day_split"
        assert instants == (
            start,
            datetime(2025, 10, 4, 0, 0, tzinfo=UTC),
            datetime(2025, 10, 5, 0, 0, tzinfo=UTC),
        )

    def test_expand_when_all_day_span_then_end_day_excluded(self) -> None:
        # 3rd, 4th and 5th; the end is midnight at the start of the 6th
        start = datetime(2025, 10, 3, tzinfo=UTC)
        event = make_event(start, datetime(2025, 10, 6, tzinfo=UTC), all_day=True)

        instants = RecurrenceExpander(UTC).expand(event).clip(
            Span(start=start, end=start + timedelta(days=10))
        )

        assert [i.day for i in instants] == [3, 4, 5]

    def test_expand_when_ending_exactly_at_midnight_then_single(self) -> None:
        start = datetime(2025, 10, 3, 20, 0, tzinfo=UTC)
        event = make_event(start, datetime(2025, 10, 4, 0, 0, tzinfo=UTC))

        assert RecurrenceExpander(UTC).expand(event).strategy == "single"

    def test_expand_when_crossing_local_midnight_then_split_in_report_timezone(self) -> None:
        london = ZoneInfo("Europe/London")
        # 22:30 to 23:30 UTC is 23:30 to 00:30 in London (BST)
        event = make_event(
            datetime(2025, 10, 3, 22, 30, tzinfo=UTC), datetime(2025, 10, 3, 23, 30, tzinfo=UTC)
        )

        assert RecurrenceExpander(UTC).expand(event).strategy == "single"
        assert RecurrenceExpander(london).expand(event).strategy == "day_split"


class TestRuleDriven:
    def test_expand_when_unbounded_rule_then_only_window_materialized(self) -> None:
        start = datetime(2020, 1, 3, 9, 0, tzinfo=UTC)
        event = make_event(start, start + timedelta(hours=1), rrule="FREQ=WEEKLY")
        window = Span(
            start=datetime(2025, 10, 1, tzinfo=UTC), end=datetime(2025, 10, 15, tzinfo=UTC)
        )

        instants = RecurrenceExpander(UTC).expand(event).clip(window)

        assert instants == (
            datetime(2025, 10, 3, 9, 0, tzinfo=UTC),
            datetime(2025, 10, 10, 9, 0, tzinfo=UTC),
        )

    def test_iter_span_when_consumed_lazily_then_stops_after_span_end(self) -> None:
        start = datetime(2025, 10, 1, 9, 0, tzinfo=UTC)
        event = make_event(start, start, rrule="FREQ=DAILY")
        occurrence_set = RecurrenceExpander(UTC).expand(event)
        span = Span(start=start, end=start + timedelta(days=2))

        assert len(list(occurrence_set.iter_span(span))) == 3

    def test_advance_past_when_instant_given_then_next_strictly_after(self) -> None:
        start = datetime(2025, 10, 3, 9, 0, tzinfo=UTC)
        occurrence_set = RecurrenceExpander(UTC).expand(make_event(start, start, rrule="FREQ=WEEKLY"))

        assert occurrence_set.advance_past(start) == start + timedelta(weeks=1)

    def test_expand_when_rule_and_multi_day_span_then_rule_only(self) -> None:
        start = datetime(2025, 10, 3, 18, 0, tzinfo=UTC)
        event = make_event(start, start + timedelta(days=2), rrule="FREQ=WEEKLY;COUNT=2")
        window = Span(start=start, end=start + timedelta(weeks=6))

        occurrence_set = RecurrenceExpander(UTC).expand(event)

        assert occurrence_set.strategy == "rule"
        assert occurrence_set.clip(window) == (start, start + timedelta(weeks=1))

    def test_expand_when_exdate_then_instant_excluded(self) -> None:
        start = datetime(2025, 10, 3, 9, 0, tzinfo=UTC)
        event = make_event(
            start,
            start,
            rrule="FREQ=WEEKLY;COUNT=3",
            exdates=(start + timedelta(weeks=1),),
        )

        instants = RecurrenceExpander(UTC).expand(event).clip(
            Span(start=start, end=start + timedelta(weeks=6))
        )

        assert instants == (start, start + timedelta(weeks=2))

    def test_expand_when_rule_crosses_dst_then_wall_clock_kept(self) -> None:
        london = ZoneInfo("Europe/London")
        start = datetime(2025, 10, 20, 9, 0, tzinfo=london)
        event = make_event(start, start + timedelta(hours=1), rrule="FREQ=WEEKLY;COUNT=2")

        instants = RecurrenceExpander(london).expand(event).clip(
            Span(start=start, end=start + timedelta(weeks=3))
        )

        # Clocks go back on 26 Oct 2025; both occurrences are at 09:00 local
        assert [i.astimezone(london).hour for i in instants] == [9, 9]

    def test_expand_when_floating_until_then_interpreted_in_event_timezone(self) -> None:
        start = datetime(2025, 10, 1, 9, 0, tzinfo=UTC)
        event = make_event(start, start, rrule="FREQ=DAILY;UNTIL=20251003T090000")

        instants = RecurrenceExpander(UTC).expand(event).clip(
            Span(start=start, end=start + timedelta(weeks=1))
        )

        assert len(instants) == 3

    def test_expand_when_date_until_then_whole_day_included(self) -> None:
        start = datetime(2025, 10, 1, 9, 0, tzinfo=UTC)
        event = make_event(start, start, rrule="FREQ=DAILY;UNTIL=20251003")

        instants = RecurrenceExpander(UTC).expand(event).clip(
            Span(start=start, end=start + timedelta(weeks=1))
        )

        assert [i.day for i in instants] == [1, 2, 3]

    @pytest.mark.parametrize("rule", ["FREQ=SOMETIMES", "NOT A RULE", "FREQ=DAILY;UNTIL=soon"])
    def test_expand_when_rule_malformed_then_field_parse_error(self, rule: str) -> None:
        start = datetime(2025, 10, 1, 9, 0, tzinfo=UTC)

        with pytest.raises(FieldParseError) as exc_info:
            RecurrenceExpander(UTC).expand(make_event(start, start, rrule=rule, source="x.ics"))

        assert exc_info.value.field == "RRULE"
        assert exc_info.value.source == "x.ics"


class TestAnchorUntil:
    def test_anchor_until_when_already_utc_then_unchanged(self) -> None:
        assert _anchor_until("FREQ=DAILY;UNTIL=20251003T090000Z", UTC) == "FREQ=DAILY;UNTIL=20251003T090000Z"

    def test_anchor_until_when_floating_then_converted_to_utc(self) -> None:
        london = ZoneInfo("Europe/London")

        assert (
            _anchor_until("FREQ=DAILY;UNTIL=20251003T090000", london)
            == "FREQ=DAILY;UNTIL=20251003T080000Z"
        )

    def test_anchor_until_when_no_until_then_unchanged(self) -> None:
        assert _anchor_until("FREQ=WEEKLY;COUNT=4", UTC) == "FREQ=WEEKLY;COUNT=4"
