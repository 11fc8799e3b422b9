"""Window filtering and ordering for calendar occurrences."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from typing import Optional

from .models import CalendarEvent, EventId, Occurrence

logger = logging.getLogger(__name__)


def overlaps_window(
    start: Optional[datetime.datetime],
    end: Optional[datetime.datetime],
    window_start: datetime.datetime,
    window_end: datetime.datetime,
) -> bool:
    """Check whether a start/end pair intersects ``[window_start, window_end]``.

    True when the start falls in the window, the end falls in the window, the
    pair spans the whole window, or there is no start at all (unscheduled
    entries are always shown).
    """
    if start is None:
        return True
    if window_start <= start <= window_end:
        return True
    if end is None:
        return False
    if window_start <= end <= window_end:
        return True
    return start <= window_start and end >= window_end


class EventFilter:
    """Selects events and occurrences for a query window."""

    def event_overlaps(
        self,
        event: CalendarEvent,
        window_start: datetime.datetime,
        window_end: datetime.datetime,
    ) -> bool:
        """Overlap test for an event's own start/end."""
        return overlaps_window(event.start, event.end, window_start, window_end)

    def is_recurrence_candidate(
        self,
        event: CalendarEvent,
        window_start: datetime.datetime,
        window_end: datetime.datetime,
    ) -> bool:
        """Coarse pre-filter for events carrying a rule.

        The series can only touch the window if it starts before the window
        ends and its end date, if any, is not before the window starts. Exact
        instances are resolved by expansion.
        """
        if event.start is None or event.start > window_end:
            return False
        return event.recurrence_end_date is None or event.recurrence_end_date >= window_start

    def partition(
        self,
        events: Iterable[CalendarEvent],
        window_start: datetime.datetime,
        window_end: datetime.datetime,
    ) -> tuple[list[CalendarEvent], list[CalendarEvent]]:
        """Split events into (single, recurring) candidates for the window.

        Events whose rule has no start anchor are treated as single events.
        """
        single: list[CalendarEvent] = []
        recurring: list[CalendarEvent] = []
        skipped = 0

        for event in events:
            if event.is_recurring:
                if self.is_recurrence_candidate(event, window_start, window_end):
                    recurring.append(event)
                else:
                    skipped += 1
            elif self.event_overlaps(event, window_start, window_end):
                single.append(event)
            else:
                skipped += 1

        logger.debug(
            "Partitioned events: %d single, %d recurring, %d outside window",
            len(single),
            len(recurring),
            skipped,
        )
        return single, recurring

    def sort_occurrences(self, occurrences: Iterable[Occurrence]) -> list[Occurrence]:
        """Order unscheduled occurrences first, then by start, then by event id."""
        return sorted(occurrences, key=_occurrence_sort_key)

    def deduplicate(self, occurrences: list[Occurrence]) -> list[Occurrence]:
        """Keep the first occurrence for each (event id, instance key) pair."""
        seen: set[tuple[EventId, Optional[datetime.datetime]]] = set()
        unique: list[Occurrence] = []
        for occurrence in occurrences:
            key = (occurrence.event_id, occurrence.instance_key)
            if key in seen:
                continue
            seen.add(key)
            unique.append(occurrence)

        if len(occurrences) != len(unique):
            logger.debug("Removed %d duplicate occurrences", len(occurrences) - len(unique))
        return unique


def _occurrence_sort_key(
    occurrence: Occurrence,
) -> tuple[int, datetime.datetime, str]:
    if occurrence.occurrence_start is None:
        return (0, datetime.datetime.min.replace(tzinfo=datetime.timezone.utc), str(occurrence.event_id))
    return (1, occurrence.occurrence_start, str(occurrence.event_id))
