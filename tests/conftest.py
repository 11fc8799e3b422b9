"""Shared fixtures for smsi_calendar tests."""

from collections.abc import Callable, Generator
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from smsi_calendar.models import CalendarEvent

FIXED_NOW = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "smoke: Basic smoke tests")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Drop SMSI_CALENDAR_* variables so host settings never leak into tests."""
    for name in (
        "SMSI_CALENDAR_TEST_TIME",
        "SMSI_CALENDAR_DEBUG",
        "SMSI_CALENDAR_LOG_LEVEL",
        "SMSI_CALENDAR_WINDOW_DAYS",
        "SMSI_CALENDAR_MAX_OCCURRENCES",
        "SMSI_CALENDAR_STRICT_CATEGORIES",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def fixed_now(monkeypatch: Any) -> datetime:
    """Pin "now" to 2024-01-15T09:00:00Z through the test-time override."""
    monkeypatch.setenv("SMSI_CALENDAR_TEST_TIME", FIXED_NOW.isoformat())
    return FIXED_NOW


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for CalendarEvent with sensible defaults."""

    def _make(event_id: Any = 1, title: str = "Revue SMSI", **fields: Any) -> CalendarEvent:
        return CalendarEvent(id=event_id, title=title, **fields)

    return _make


class InMemoryStore:
    """Dictionary-backed EventStore and ReferenceLookup for service tests."""

    def __init__(self) -> None:
        self.events: dict[int, CalendarEvent] = {}
        self.history: list[tuple[Any, str, Optional[int], str]] = []
        self.categories: dict[str, int] = {}
        self.category_colors: dict[str, str] = {}
        self.subcategories: dict[tuple[str, int], int] = {}
        self.platforms: dict[str, int] = {}
        self.users: set[int] = set()
        self._next_id = 1

    def _allocate(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    # EventStore

    def list_events(self) -> list[CalendarEvent]:
        return list(self.events.values())

    def get_event(self, event_id: Any) -> Optional[CalendarEvent]:
        return self.events.get(event_id)

    def insert_event(self, fields: dict[str, Any]) -> CalendarEvent:
        event = CalendarEvent(id=self._allocate(), **fields)
        self.events[event.id] = event
        return event

    def update_event(self, event_id: Any, changes: dict[str, Any]) -> CalendarEvent:
        merged = self.events[event_id].model_dump()
        merged.update(changes)
        event = CalendarEvent.model_validate(merged)
        self.events[event_id] = event
        return event

    def delete_event(self, event_id: Any) -> None:
        del self.events[event_id]

    def record_history(self, event_id: Any, action: str, performed_by: Optional[int], summary: str) -> None:
        self.history.append((event_id, action, performed_by, summary))

    # ReferenceLookup

    def find_category_id(self, name: str) -> Optional[int]:
        return self.categories.get(name)

    def create_category(self, name: str, color: str) -> int:
        self.categories[name] = self._allocate()
        self.category_colors[name] = color
        return self.categories[name]

    def find_subcategory_id(self, name: str, category_id: int) -> Optional[int]:
        return self.subcategories.get((name, category_id))

    def find_platform_id(self, name: str) -> Optional[int]:
        return self.platforms.get(name)

    def create_platform(self, name: str, color: str) -> int:
        self.platforms[name] = self._allocate()
        return self.platforms[name]

    def user_exists(self, user_id: int) -> bool:
        return user_id in self.users


@pytest.fixture
def store() -> InMemoryStore:
    """Fresh in-memory store."""
    return InMemoryStore()
