"""Calendar window queries over single and recurring events."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any, Optional

from .config_loader import Config
from .event_filter import EventFilter
from .exceptions import InvalidWindowError
from .models import CalendarEvent, Occurrence
from .occurrence_expander import OccurrenceExpander
from .timezone_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)


class CalendarQueryEngine:
    """Answers "which occurrences fall inside [A, B]?" for a set of events.

    Non-recurring events are kept when they overlap the window; recurring
    events are pre-filtered coarsely and expanded. The merged result is
    de-duplicated by (event id, instance key) and ordered with unscheduled
    occurrences first, then by start. The engine holds no state between calls.
    """

    def __init__(
        self,
        settings: Any = None,
        expander: Optional[OccurrenceExpander] = None,
        event_filter: Optional[EventFilter] = None,
    ):
        """Initialize the engine.

        Args:
            settings: Configuration (Config or compatible object), None for defaults
            expander: Optional expander override
            event_filter: Optional filter override
        """
        self.settings = settings if settings is not None else Config()
        self.window_days = getattr(self.settings, "default_window_days", 365)
        self.expander = expander or OccurrenceExpander(self.settings)
        self.event_filter = event_filter or EventFilter()

    def resolve_window(
        self,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> tuple[datetime, datetime]:
        """Fill in the default window ``[now, now + default_window_days]``.

        Raises:
            InvalidWindowError: If the window starts after it ends
        """
        now = now_utc()
        start = ensure_utc(window_start) if window_start is not None else now
        end = ensure_utc(window_end) if window_end is not None else now + timedelta(days=self.window_days)
        if start > end:
            raise InvalidWindowError(
                f"Window start {start.isoformat()} is after window end {end.isoformat()}"
            )
        return start, end

    def query(
        self,
        events: Iterable[CalendarEvent],
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> list[Occurrence]:
        """Return every occurrence of ``events`` inside the window, ordered.

        Args:
            events: Stored events, recurring or not
            window_start: Inclusive start; defaults to now
            window_end: Inclusive end; defaults to one year after now

        Returns:
            Occurrences, unscheduled first, then ascending by start

        Raises:
            InvalidWindowError: If the window starts after it ends
        """
        start, end = self.resolve_window(window_start, window_end)
        single, recurring = self.event_filter.partition(events, start, end)

        occurrences = [Occurrence.nominal(event) for event in single]
        for event in recurring:
            occurrences.extend(self.expander.expand(event, start, end))

        merged = self.event_filter.deduplicate(self.event_filter.sort_occurrences(occurrences))
        logger.debug(
            "Calendar query %s..%s: %d single + %d recurring events -> %d occurrences",
            start.isoformat(),
            end.isoformat(),
            len(single),
            len(recurring),
            len(merged),
        )
        return merged


def query_calendar(
    events: Iterable[CalendarEvent],
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
    settings: Any = None,
) -> list[Occurrence]:
    """Run a one-off calendar query (convenience function)."""
    return CalendarQueryEngine(settings).query(events, window_start, window_end)
