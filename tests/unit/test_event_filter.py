"""Unit tests for smsi_calendar.event_filter."""

from datetime import datetime, timezone

import pytest

from smsi_calendar.event_filter import EventFilter, overlaps_window
from smsi_calendar.models import Occurrence, RecurrenceCategory

pytestmark = pytest.mark.unit

WINDOW = (datetime(2024, 1, 10, tzinfo=timezone.utc), datetime(2024, 1, 20, tzinfo=timezone.utc))


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestOverlapsWindow:
    """Overlap predicate."""

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            (None, None, True),
            (utc(2024, 1, 10), None, True),
            (utc(2024, 1, 20), None, True),
            (utc(2024, 1, 5), utc(2024, 1, 12), True),
            (utc(2024, 1, 5), utc(2024, 1, 25), True),
            (utc(2024, 1, 5), utc(2024, 1, 9), False),
            (utc(2024, 1, 21), utc(2024, 1, 22), False),
            (utc(2024, 1, 5), None, False),
        ],
    )
    def test_overlaps_window(self, start, end, expected):
        assert overlaps_window(start, end, *WINDOW) is expected


class TestPartition:
    """Splitting events into single and recurring candidates."""

    def setup_method(self):
        self.event_filter = EventFilter()

    def test_partition_routes_events(self, make_event):
        single = make_event(event_id=1, start=utc(2024, 1, 12))
        outside = make_event(event_id=2, start=utc(2024, 2, 1))
        recurring = make_event(
            event_id=3,
            start=utc(2023, 1, 1),
            recurrence_category=RecurrenceCategory.MONTHLY,
            recurrence_rule="FREQ=MONTHLY",
        )
        finished = make_event(
            event_id=4,
            start=utc(2023, 1, 1),
            recurrence_category=RecurrenceCategory.MONTHLY,
            recurrence_rule="FREQ=MONTHLY;UNTIL=20230601T000000Z",
            recurrence_end_date=utc(2023, 6, 1),
        )

        singles, recurrings = self.event_filter.partition([single, outside, recurring, finished], *WINDOW)

        assert [e.id for e in singles] == [1]
        assert [e.id for e in recurrings] == [3]


class TestOrdering:
    """Sorting and de-duplication."""

    def setup_method(self):
        self.event_filter = EventFilter()

    def test_sort_puts_unscheduled_first_then_start_then_id(self):
        occurrences = [
            Occurrence(event_id=2, title="B", occurrence_start=utc(2024, 1, 12)),
            Occurrence(event_id=10, title="C", occurrence_start=utc(2024, 1, 11)),
            Occurrence(event_id=1, title="A", occurrence_start=utc(2024, 1, 12)),
            Occurrence(event_id=9, title="D"),
        ]

        ordered = self.event_filter.sort_occurrences(occurrences)

        assert [o.event_id for o in ordered] == [9, 10, 1, 2]

    def test_deduplicate_keeps_first_per_instance(self):
        first = Occurrence(event_id=1, title="A", instance_key=utc(2024, 1, 12), location="first")
        second = Occurrence(event_id=1, title="A", instance_key=utc(2024, 1, 12), location="second")
        other = Occurrence(event_id=1, title="A", instance_key=utc(2024, 1, 19))

        unique = self.event_filter.deduplicate([first, second, other])

        assert [o.location for o in unique] == ["first", None]

    def test_deduplicate_when_int_and_str_ids_look_alike_then_both_kept(self):
        numeric = Occurrence(event_id=1, title="A", instance_key=utc(2024, 1, 12))
        textual = Occurrence(event_id="1", title="B", instance_key=utc(2024, 1, 12))

        unique = self.event_filter.deduplicate([numeric, textual])

        assert [o.title for o in unique] == ["A", "B"]
