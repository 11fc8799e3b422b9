"""
Unit tests for smsi_calendar.occurrence_expander.OccurrenceExpander.

Covers:
- expand() for recurring, single and unscheduled events
- malformed rule fallback
- occurrence_starts() window bounds and the per-rule cap
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from smsi_calendar.config_loader import Config
from smsi_calendar.models import RecurrenceCategory
from smsi_calendar.occurrence_expander import ExpanderConfig, OccurrenceExpander
from smsi_calendar.recurrence_codec import decode

pytestmark = pytest.mark.unit


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def expander() -> OccurrenceExpander:
    return OccurrenceExpander()


class TestExpanderConfig:
    """Settings extraction."""

    def test_from_settings_when_none_then_defaults(self):
        assert ExpanderConfig.from_settings(None).max_occurrences_per_rule == 5000

    def test_from_settings_when_config_then_value_used(self):
        config = ExpanderConfig.from_settings(Config(max_occurrences_per_rule=12))
        assert config.max_occurrences_per_rule == 12

    def test_from_settings_when_partial_object_then_defaults_for_missing(self):
        assert ExpanderConfig.from_settings(SimpleNamespace()).max_occurrences_per_rule == 5000


class TestRecurringExpansion:
    """Rules generate the instances inside the window."""

    def test_expand_when_quarterly_with_until_then_two_instances(self, expander, make_event):
        event = make_event(
            start=utc(2024, 1, 1),
            end=utc(2024, 1, 1, 1),
            recurrence_category=RecurrenceCategory.QUARTERLY,
            recurrence_rule="FREQ=MONTHLY;INTERVAL=3;UNTIL=20240401T000000Z",
            recurrence_end_date=utc(2024, 4, 1),
        )

        occurrences = expander.expand(event, utc(2024, 1, 1), utc(2024, 12, 31))

        assert [o.occurrence_start for o in occurrences] == [utc(2024, 1, 1), utc(2024, 4, 1)]
        assert [o.occurrence_end for o in occurrences] == [utc(2024, 1, 1, 1), utc(2024, 4, 1, 1)]

    def test_expand_when_weekly_then_every_week_in_window(self, expander, make_event):
        event = make_event(
            start=utc(2024, 1, 1, 9),
            end=utc(2024, 1, 1, 10),
            recurrence_category=RecurrenceCategory.WEEKLY,
            recurrence_rule="FREQ=WEEKLY",
        )

        occurrences = expander.expand(event, utc(2024, 1, 1), utc(2024, 1, 31))

        assert [o.occurrence_start.day for o in occurrences] == [1, 8, 15, 22, 29]

    def test_expand_when_window_starts_mid_series_then_earlier_instances_skipped(self, expander, make_event):
        event = make_event(
            start=utc(2023, 1, 10),
            recurrence_category=RecurrenceCategory.MONTHLY,
            recurrence_rule="FREQ=MONTHLY",
        )

        occurrences = expander.expand(event, utc(2024, 3, 1), utc(2024, 5, 31))

        assert [o.occurrence_start for o in occurrences] == [utc(2024, 3, 10), utc(2024, 4, 10), utc(2024, 5, 10)]

    def test_expand_when_instance_on_window_bounds_then_included(self, expander, make_event):
        event = make_event(
            start=utc(2024, 1, 1, 9),
            recurrence_category=RecurrenceCategory.WEEKLY,
            recurrence_rule="FREQ=WEEKLY",
        )

        occurrences = expander.expand(event, utc(2024, 1, 8, 9), utc(2024, 1, 15, 9))

        assert [o.occurrence_start for o in occurrences] == [utc(2024, 1, 8, 9), utc(2024, 1, 15, 9)]

    def test_expand_when_start_has_microseconds_then_anchor_instance_kept(self, expander, make_event):
        event = make_event(
            start=datetime(2024, 1, 1, 9, 0, 0, 500000, tzinfo=timezone.utc),
            end=utc(2024, 1, 1, 10),
            recurrence_category=RecurrenceCategory.WEEKLY,
            recurrence_rule="FREQ=WEEKLY",
        )
        window_start = datetime(2024, 1, 1, 9, 0, 0, 200000, tzinfo=timezone.utc)

        occurrences = expander.expand(event, window_start, utc(2024, 1, 8, 12))

        assert [o.occurrence_start for o in occurrences] == [utc(2024, 1, 1, 9), utc(2024, 1, 8, 9)]
        assert all(o.instance_key == o.occurrence_start for o in occurrences)

    def test_expand_when_no_end_then_zero_duration(self, expander, make_event):
        event = make_event(
            start=utc(2024, 1, 1),
            recurrence_category=RecurrenceCategory.YEARLY,
            recurrence_rule="FREQ=YEARLY",
        )

        occurrences = expander.expand(event, utc(2024, 1, 1), utc(2026, 1, 1))

        assert len(occurrences) == 3
        assert all(o.occurrence_end == o.occurrence_start for o in occurrences)

    def test_expand_instances_carry_identity_and_payload(self, expander, make_event):
        event = make_event(
            event_id="evt-7",
            start=utc(2024, 1, 1),
            end=utc(2024, 1, 2),
            recurrence_category=RecurrenceCategory.MONTHLY,
            recurrence_rule="FREQ=MONTHLY;UNTIL=20240301T000000Z",
            tags={"audit", "iso27001"},
            location="Salle B",
        )

        occurrences = expander.expand(event, utc(2024, 1, 1), utc(2024, 12, 31))

        assert len(occurrences) == 3
        for occurrence in occurrences:
            assert occurrence.event_id == "evt-7"
            assert occurrence.is_expanded_instance is True
            assert occurrence.instance_key == occurrence.occurrence_start
            assert occurrence.tags == {"audit", "iso27001"}
            assert occurrence.location == "Salle B"
            assert occurrence.occurrence_end - occurrence.occurrence_start == timedelta(days=1)

    def test_expand_when_count_rule_then_count_bounds_series(self, expander, make_event):
        event = make_event(
            start=utc(2024, 1, 1),
            recurrence_category=RecurrenceCategory.WEEKLY,
            recurrence_rule="FREQ=WEEKLY;COUNT=2",
        )

        occurrences = expander.expand(event, utc(2024, 1, 1), utc(2024, 12, 31))

        assert [o.occurrence_start for o in occurrences] == [utc(2024, 1, 1), utc(2024, 1, 8)]

    def test_expand_is_deterministic(self, expander, make_event):
        event = make_event(
            start=utc(2024, 1, 1),
            recurrence_category=RecurrenceCategory.MONTHLY,
            recurrence_rule="FREQ=MONTHLY",
        )
        window = (utc(2024, 1, 1), utc(2024, 12, 31))

        assert expander.expand(event, *window) == expander.expand(event, *window)


class TestNonRecurringExpansion:
    """Events without a rule yield at most their own occurrence."""

    def test_expand_when_single_event_in_window_then_nominal(self, expander, make_event):
        event = make_event(start=utc(2024, 2, 1, 9), end=utc(2024, 2, 1, 10))

        occurrences = expander.expand(event, utc(2024, 1, 1), utc(2024, 12, 31))

        assert len(occurrences) == 1
        assert occurrences[0].occurrence_start == utc(2024, 2, 1, 9)
        assert occurrences[0].instance_key == utc(2024, 2, 1, 9)
        assert occurrences[0].is_expanded_instance is False

    def test_expand_when_single_event_outside_window_then_empty(self, expander, make_event):
        event = make_event(start=utc(2023, 2, 1), end=utc(2023, 2, 2))
        assert expander.expand(event, utc(2024, 1, 1), utc(2024, 12, 31)) == []

    def test_expand_when_unscheduled_then_always_included(self, expander, make_event):
        occurrences = expander.expand(make_event(), utc(2024, 1, 1), utc(2024, 1, 2))

        assert len(occurrences) == 1
        assert occurrences[0].is_unscheduled
        assert occurrences[0].instance_key is None


class TestMalformedRuleFallback:
    """A rule that cannot be decoded degrades to the nominal occurrence."""

    def test_expand_when_malformed_rule_then_nominal_and_warning(self, expander, make_event, caplog):
        event = make_event(
            event_id=42,
            start=utc(2024, 1, 10),
            end=utc(2024, 1, 10, 2),
            recurrence_category=RecurrenceCategory.MONTHLY,
            recurrence_rule="FREQ=SOMETIMES",
        )

        with caplog.at_level("WARNING", logger="smsi_calendar.occurrence_expander"):
            occurrences = expander.expand(event, utc(2024, 1, 1), utc(2024, 12, 31))

        assert len(occurrences) == 1
        assert occurrences[0].occurrence_start == utc(2024, 1, 10)
        assert occurrences[0].occurrence_end == utc(2024, 1, 10, 2)
        assert occurrences[0].is_expanded_instance is False
        assert "42" in caplog.text

    def test_expand_when_malformed_rule_outside_window_then_empty(self, expander, make_event):
        event = make_event(
            start=utc(2020, 1, 10),
            recurrence_category=RecurrenceCategory.MONTHLY,
            recurrence_rule="FREQ=MONTHLY;BYDAY=MO",
        )
        assert expander.expand(event, utc(2024, 1, 1), utc(2024, 12, 31)) == []


class TestOccurrenceCap:
    """max_occurrences_per_rule bounds expansion work."""

    def test_occurrence_starts_when_cap_reached_then_truncated(self, make_event, caplog):
        expander = OccurrenceExpander(Config(max_occurrences_per_rule=3))
        params = decode("FREQ=WEEKLY", utc(2024, 1, 1))

        with caplog.at_level("WARNING", logger="smsi_calendar.occurrence_expander"):
            starts = expander.occurrence_starts(params, utc(2024, 1, 1), utc(2024, 12, 31))

        assert starts == [utc(2024, 1, 1), utc(2024, 1, 8), utc(2024, 1, 15)]
        assert "limited to 3" in caplog.text

    def test_occurrence_starts_when_window_before_anchor_then_empty(self, expander):
        params = decode("FREQ=WEEKLY", utc(2024, 6, 1))
        assert expander.occurrence_starts(params, utc(2024, 1, 1), utc(2024, 5, 1)) == []
