"""Protocol definitions for the storage collaborator.

The core never talks to a database itself. These protocols describe the narrow
interface a persistence layer provides to the event service.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from .models import CalendarEvent, EventId


class EventStore(Protocol):
    """Protocol for event row persistence."""

    def list_events(self) -> list[CalendarEvent]:
        """Return every stored event, tags included."""
        ...

    def get_event(self, event_id: EventId) -> Optional[CalendarEvent]:
        """Return one event, or None if it does not exist."""
        ...

    def insert_event(self, fields: dict[str, Any]) -> CalendarEvent:
        """Create an event row and its tag set.

        Args:
            fields: CalendarEvent field values without ``id``

        Returns:
            The stored event with its assigned id
        """
        ...

    def update_event(self, event_id: EventId, changes: dict[str, Any]) -> CalendarEvent:
        """Apply field changes to an event row.

        A ``tags`` entry replaces the whole tag set.

        Returns:
            The updated event
        """
        ...

    def delete_event(self, event_id: EventId) -> None:
        """Delete an event row and everything it owns."""
        ...

    def record_history(
        self,
        event_id: EventId,
        action: str,
        performed_by: Optional[int],
        summary: str,
    ) -> None:
        """Append an entry to the event's change history."""
        ...


class ReferenceLookup(Protocol):
    """Protocol for classification reference lookups."""

    def find_category_id(self, name: str) -> Optional[int]:
        """Return the id of the category with this exact name."""
        ...

    def create_category(self, name: str, color: str) -> int:
        """Create a category and return its id."""
        ...

    def find_subcategory_id(self, name: str, category_id: int) -> Optional[int]:
        """Return the id of the named subcategory within a category."""
        ...

    def find_platform_id(self, name: str) -> Optional[int]:
        """Return the id of the platform with this exact name."""
        ...

    def create_platform(self, name: str, color: str) -> int:
        """Create a platform and return its id."""
        ...

    def user_exists(self, user_id: int) -> bool:
        """Check whether a user with this id exists."""
        ...
