"""Event write path and calendar view over a storage collaborator."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional, Union

from .alerts import AlertSchedule, schedule_alerts
from .calendar_query import CalendarQueryEngine
from .config_loader import Config
from .event_inputs import (
    EventCreateInput,
    EventUpdateInput,
    PatchKind,
    Unrecognized,
    resolve_alert,
    resolve_email_alert,
    resolve_repeat,
)
from .event_protocols import EventStore, ReferenceLookup
from .exceptions import EventNotFoundError, EventValidationError
from .models import CalendarEvent, EventId, Occurrence, RecurrenceCategory
from .recurrence_codec import encode
from .tag_parser import parse_tags

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_COLOR = "#3B82F6"
STATUS_PLANNED = "Planifié"
STATUS_UNPLANNED = "Non planifié"


def _trimmed_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class EventService:
    """Creates, updates and deletes events, and serves calendar views.

    Derived fields are computed here: the recurrence rule is regenerated
    whenever the category or end date changes, tags are parsed from free text,
    and classification names are resolved to ids.
    """

    def __init__(
        self,
        store: EventStore,
        references: ReferenceLookup,
        settings: Any = None,
        engine: Optional[CalendarQueryEngine] = None,
    ):
        """Initialize the service.

        Args:
            store: Event persistence collaborator
            references: Classification lookup collaborator
            settings: Configuration (Config or compatible object), None for defaults
            engine: Optional query engine override
        """
        self.store = store
        self.references = references
        self.settings = settings if settings is not None else Config()
        self.strict_categories = getattr(self.settings, "strict_recurrence_categories", False)
        self.engine = engine or CalendarQueryEngine(self.settings)

    # Read path

    def calendar_view(
        self,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> list[Occurrence]:
        """Occurrences of every stored event inside the window."""
        return self.engine.query(self.store.list_events(), window_start, window_end)

    def alert_schedule(
        self,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> list[AlertSchedule]:
        """Reminders due for the occurrences inside the window."""
        return schedule_alerts(self.calendar_view(window_start, window_end))

    # Write path

    def create_event(
        self,
        payload: Union[EventCreateInput, Mapping[str, Any]],
        performed_by: Optional[int] = None,
    ) -> CalendarEvent:
        """Create an event from a form payload.

        Raises:
            EventValidationError: If the title is blank or a recurrence has no start
            pydantic.ValidationError: If the payload is malformed
        """
        data = payload if isinstance(payload, EventCreateInput) else EventCreateInput.model_validate(payload)

        title = data.title.strip()
        if not title:
            raise EventValidationError("Event title must not be blank")

        category_id = self.resolve_category(data.category)
        repeat_category = self.repeat_category(data.repeat)
        start = None if data.is_unplanned else data.start_date
        end = None if data.is_unplanned else data.end_date

        fields: dict[str, Any] = {
            "title": title,
            "description": _trimmed_or_none(data.description),
            "location": _trimmed_or_none(data.location),
            "start": start,
            "end": end,
            "all_day": data.all_day,
            "category_id": category_id,
            "subcategory_id": self.resolve_subcategory(data.subcategory, category_id),
            "platform_id": self.resolve_platform(data.platform),
            "responsible_id": self.resolve_responsible(data.responsible),
            "recurrence_category": repeat_category,
            "recurrence_end_date": data.repeat_end_date,
            "recurrence_rule": self.build_rule(repeat_category, data.repeat_end_date),
            "alert_minutes": self.alert_minutes(data.alert),
            "email_alert_working_days": self.email_alert_working_days(data.email_alert),
            "status": _trimmed_or_none(data.status) or (STATUS_UNPLANNED if data.is_unplanned else STATUS_PLANNED),
            "tags": parse_tags(data.tags),
        }
        self._check_rule_anchor(fields["recurrence_rule"], start)

        event = self.store.insert_event(fields)
        self.store.record_history(event.id, "created", performed_by, f'Event "{event.title}" created')
        logger.info("Created event %s (%s)", event.id, repeat_category.value)
        return event

    def update_event(
        self,
        event_id: EventId,
        payload: Union[EventUpdateInput, Mapping[str, Any]],
        performed_by: Optional[int] = None,
    ) -> CalendarEvent:
        """Apply a partial update; only fields present in the payload change.

        Raises:
            EventNotFoundError: If the event does not exist
            EventValidationError: If the title is cleared or a recurrence loses its start
        """
        existing = self.store.get_event(event_id)
        if existing is None:
            raise EventNotFoundError(f"Event {event_id!r} not found")

        data = payload if isinstance(payload, EventUpdateInput) else EventUpdateInput.model_validate(payload)
        patches = data.patches()
        changes: dict[str, Any] = {}

        if "title" in patches:
            if patches["title"].kind is PatchKind.CLEAR:
                raise EventValidationError("Event title must not be blank")
            changes["title"] = patches["title"].value.strip()

        for name in ("description", "location"):
            if name in patches:
                changes[name] = _trimmed_or_none(patches[name].apply(None))

        if "start_date" in patches:
            changes["start"] = patches["start_date"].apply(None)
        if "end_date" in patches:
            changes["end"] = patches["end_date"].apply(None)

        if "all_day" in patches:
            if patches["all_day"].kind is PatchKind.CLEAR:
                raise EventValidationError("allDay cannot be cleared")
            changes["all_day"] = patches["all_day"].value

        if "status" in patches:
            changes["status"] = _trimmed_or_none(patches["status"].apply(None))

        if "repeat" in patches:
            changes["recurrence_category"] = self.repeat_category(patches["repeat"].apply(None))
        if "repeat_end_date" in patches:
            changes["recurrence_end_date"] = patches["repeat_end_date"].apply(None)
        if "repeat" in patches or "repeat_end_date" in patches:
            changes["recurrence_rule"] = self.build_rule(
                changes.get("recurrence_category", existing.recurrence_category),
                changes.get("recurrence_end_date", existing.recurrence_end_date),
            )

        if "alert" in patches:
            changes["alert_minutes"] = self.alert_minutes(patches["alert"].apply(None))
        if "email_alert" in patches:
            changes["email_alert_working_days"] = self.email_alert_working_days(
                patches["email_alert"].apply(None)
            )

        if "category" in patches:
            changes["category_id"] = self.resolve_category(patches["category"].apply(None))
        if "subcategory" in patches:
            changes["subcategory_id"] = self.resolve_subcategory(
                patches["subcategory"].apply(None),
                changes.get("category_id", existing.category_id),
            )
        if "platform" in patches:
            changes["platform_id"] = self.resolve_platform(patches["platform"].apply(None))
        if "responsible" in patches:
            changes["responsible_id"] = self.resolve_responsible(patches["responsible"].apply(None))

        if "tags" in patches:
            changes["tags"] = parse_tags(patches["tags"].apply(None))

        self._check_rule_anchor(
            changes.get("recurrence_rule", existing.recurrence_rule),
            changes.get("start", existing.start),
        )

        event = self.store.update_event(event_id, changes)
        self.store.record_history(event.id, "updated", performed_by, f'Event "{event.title}" updated')
        logger.info("Updated event %s fields=%s", event.id, sorted(changes))
        return event

    def delete_event(self, event_id: EventId) -> None:
        """Delete an event.

        Raises:
            EventNotFoundError: If the event does not exist
        """
        if self.store.get_event(event_id) is None:
            raise EventNotFoundError(f"Event {event_id!r} not found")
        self.store.delete_event(event_id)
        logger.info("Deleted event %s", event_id)

    # Derived fields

    def build_rule(self, category: Any, end_date: Optional[datetime]) -> Optional[str]:
        """Regenerate the stored rule from category and end date."""
        return encode(category, end_date, strict=self.strict_categories)

    def repeat_category(self, label: Optional[str]) -> RecurrenceCategory:
        """Resolve a repeat label; missing or unknown labels do not recur."""
        if not label:
            return RecurrenceCategory.NONE
        resolved = resolve_repeat(label)
        if isinstance(resolved, Unrecognized):
            logger.warning("Unrecognized repeat label %r; storing no recurrence", resolved.label)
            return RecurrenceCategory.NONE
        return resolved

    def alert_minutes(self, label: Optional[str]) -> Optional[int]:
        """Resolve an alert label to minutes before start."""
        if not label:
            return None
        resolved = resolve_alert(label)
        if isinstance(resolved, Unrecognized):
            logger.warning("Unrecognized alert label %r; storing no alert", resolved.label)
            return None
        return resolved.minutes

    def email_alert_working_days(self, label: Optional[str]) -> Optional[int]:
        """Resolve an email alert label to working days before start."""
        if not label:
            return None
        resolved = resolve_email_alert(label)
        if isinstance(resolved, Unrecognized):
            logger.warning("Unrecognized email alert label %r; storing no email alert", resolved.label)
            return None
        return resolved.working_days

    # Reference lookup-or-create

    def resolve_category(self, name: Optional[str]) -> Optional[int]:
        """Find a category by name, creating it when missing."""
        if not name or not name.strip():
            return None
        trimmed = name.strip()
        category_id = self.references.find_category_id(trimmed)
        if category_id is not None:
            return category_id
        logger.info("Creating category %r", trimmed)
        return self.references.create_category(trimmed, DEFAULT_REFERENCE_COLOR)

    def resolve_subcategory(self, name: Optional[str], category_id: Optional[int]) -> Optional[int]:
        """Find a subcategory within its category; subcategories are never created here."""
        if not name or not name.strip() or not category_id:
            return None
        return self.references.find_subcategory_id(name.strip(), category_id)

    def resolve_platform(self, name: Optional[str]) -> Optional[int]:
        """Find a platform by name, creating it when missing."""
        if not name or not name.strip():
            return None
        trimmed = name.strip()
        platform_id = self.references.find_platform_id(trimmed)
        if platform_id is not None:
            return platform_id
        logger.info("Creating platform %r", trimmed)
        return self.references.create_platform(trimmed, DEFAULT_REFERENCE_COLOR)

    def resolve_responsible(self, value: Optional[Union[int, str]]) -> Optional[int]:
        """Resolve a responsible user id; unknown users resolve to None."""
        if value is None or value == "":
            return None
        try:
            user_id = int(value)
        except (TypeError, ValueError):
            logger.warning("Responsible %r is not a user id", value)
            return None
        return user_id if self.references.user_exists(user_id) else None

    def _check_rule_anchor(self, rule: Optional[str], start: Optional[datetime]) -> None:
        if rule and start is None:
            raise EventValidationError("A recurring event needs a start date")
