"""Occurrence expansion for recurring calendar events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .event_filter import overlaps_window
from .exceptions import MalformedRuleError
from .models import CalendarEvent, Occurrence, RecurrenceParams
from .recurrence_codec import decode
from .timezone_utils import ensure_utc

logger = logging.getLogger(__name__)


@dataclass
class ExpanderConfig:
    """Configuration for occurrence expansion with explicit defaults."""

    max_occurrences_per_rule: int = 5000

    @classmethod
    def from_settings(cls, settings: Any) -> ExpanderConfig:
        """Extract expansion configuration from a settings object.

        Args:
            settings: Object with expansion settings, or None for defaults

        Returns:
            ExpanderConfig with values from settings or defaults
        """
        return cls(
            max_occurrences_per_rule=getattr(settings, "max_occurrences_per_rule", 5000),
        )


class OccurrenceExpander:
    """Expands one event into the occurrences falling inside a query window.

    Expansion is pure and synchronous: the same event and window always give
    the same occurrences. A rule that cannot be decoded degrades the event to
    its single nominal occurrence instead of failing the caller.
    """

    def __init__(self, settings: Any = None):
        """Initialize expander with configuration settings.

        Args:
            settings: Configuration object (e.g. Config), or None for defaults
        """
        config = ExpanderConfig.from_settings(settings)
        self.max_occurrences = config.max_occurrences_per_rule

    def expand(
        self,
        event: CalendarEvent,
        window_start: datetime,
        window_end: datetime,
    ) -> list[Occurrence]:
        """Produce the occurrences of ``event`` overlapping the window, ascending.

        Args:
            event: Event, with or without a recurrence rule
            window_start: Inclusive window start
            window_end: Inclusive window end

        Returns:
            Occurrences ordered by start. At most one for non-recurring events.
        """
        window_start = ensure_utc(window_start)
        window_end = ensure_utc(window_end)

        if not event.is_recurring:
            return self._nominal_if_overlapping(event, window_start, window_end)

        try:
            params = decode(event.recurrence_rule or "", event.start)  # type: ignore[arg-type]
            starts = self.occurrence_starts(params, window_start, window_end)
        except MalformedRuleError as e:
            logger.warning(
                "Malformed recurrence rule for event %s (%r): %s; using its nominal occurrence",
                event.id,
                event.recurrence_rule,
                e,
            )
            return self._nominal_if_overlapping(event, window_start, window_end)
        except (ValueError, OverflowError) as e:
            logger.warning(
                "Recurrence expansion failed for event %s (%r): %s; using its nominal occurrence",
                event.id,
                event.recurrence_rule,
                e,
            )
            return self._nominal_if_overlapping(event, window_start, window_end)

        occurrences = self.generate_occurrences(event, starts)
        logger.debug(
            "Expanded event %s into %d occurrences between %s and %s",
            event.id,
            len(occurrences),
            window_start.isoformat(),
            window_end.isoformat(),
        )
        return occurrences

    def occurrence_starts(
        self,
        params: RecurrenceParams,
        window_start: datetime,
        window_end: datetime,
    ) -> list[datetime]:
        """List the series instants inside ``[window_start, window_end]``.

        Stops at the rule's own bound (UNTIL/COUNT), at the window end, or at
        the per-rule occurrence cap, whichever comes first.
        """
        rule = params.to_rrule()
        starts: list[datetime] = []

        for occurrence in rule.xafter(window_start.replace(microsecond=0), inc=True):
            if occurrence > window_end:
                break
            if len(starts) >= self.max_occurrences:
                logger.warning(
                    "Recurrence expansion limited to %d occurrences (anchor %s)",
                    self.max_occurrences,
                    params.anchor.isoformat(),
                )
                break
            starts.append(ensure_utc(occurrence))

        return starts

    def generate_occurrences(
        self,
        event: CalendarEvent,
        starts: list[datetime],
    ) -> list[Occurrence]:
        """Create one occurrence per start, preserving the event's duration.

        Args:
            event: Recurring event acting as the template
            starts: Instance start instants

        Returns:
            Occurrences keyed by their own start
        """
        duration = timedelta(seconds=event.duration_seconds)
        return [
            Occurrence.from_event(
                event,
                start,
                start + duration,
                instance_key=start,
                expanded=True,
            )
            for start in starts
        ]

    def _nominal_if_overlapping(
        self,
        event: CalendarEvent,
        window_start: datetime,
        window_end: datetime,
    ) -> list[Occurrence]:
        if overlaps_window(event.start, event.end, window_start, window_end):
            return [Occurrence.nominal(event)]
        return []
