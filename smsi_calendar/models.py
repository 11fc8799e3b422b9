"""Data models for calendar events and their occurrences."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from dateutil import rrule as dateutil_rrule
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .timezone_utils import ensure_utc

EventId = Union[int, str]


class RecurrenceCategory(str, Enum):
    """Human-facing recurrence categories an event can be given."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMESTRIAL = "semestrial"
    YEARLY = "yearly"

    @classmethod
    def coerce(cls, value: Any) -> Optional[RecurrenceCategory]:
        """Return the member for ``value``, or None when it is not a category."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class Frequency(str, Enum):
    """RFC 5545 FREQ tokens."""

    YEARLY = "YEARLY"
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    DAILY = "DAILY"
    HOURLY = "HOURLY"
    MINUTELY = "MINUTELY"
    SECONDLY = "SECONDLY"

    @property
    def dateutil_freq(self) -> int:
        """The matching dateutil.rrule frequency constant."""
        return getattr(dateutil_rrule, self.value)


class RecurrenceParams(BaseModel):
    """Structured recurrence rule bound to its anchor instant."""

    frequency: Frequency = Field(..., description="Repetition frequency")
    interval: int = Field(default=1, ge=1, description="Frequency multiplier")
    until: Optional[datetime] = Field(default=None, description="Inclusive upper bound")
    count: Optional[int] = Field(default=None, ge=1, description="Maximum number of instances")
    anchor: datetime = Field(..., description="Start instant of the series")

    @field_validator("until", "anchor")
    @classmethod
    def _normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    def to_rrule(self) -> dateutil_rrule.rrule:
        """Build the dateutil rule generating this series."""
        return dateutil_rrule.rrule(
            self.frequency.dateutil_freq,
            dtstart=self.anchor,
            interval=self.interval,
            until=self.until,
            count=self.count,
        )


def _tag_values(raw: Any) -> Iterable[Any]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,)
    return raw


class _EventBody(BaseModel):
    """Fields shared by stored events and their materialized occurrences."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    title: str = Field(..., description="Event title")
    description: Optional[str] = Field(default=None, description="Free-text description")
    location: Optional[str] = Field(default=None, description="Free-text location")
    all_day: bool = Field(default=True, description="All-day event flag")
    status: Optional[str] = Field(default=None, description="Planning status label")

    # Classification
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    platform_id: Optional[int] = None
    responsible_id: Optional[int] = None

    # Recurrence
    recurrence_category: RecurrenceCategory = Field(default=RecurrenceCategory.NONE)
    recurrence_rule: Optional[str] = Field(
        default=None, description="Canonical rule string derived from category and end date"
    )
    recurrence_end_date: Optional[datetime] = Field(
        default=None, description="Bound on generated occurrences"
    )

    tags: set[str] = Field(default_factory=set, description="Normalized tags")

    # Alerting
    alert_minutes: Optional[int] = Field(default=None, ge=0)
    email_alert_working_days: Optional[int] = Field(default=None, ge=0)

    # Metadata
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Trim the title and reject blank ones."""
        trimmed = v.strip()
        if not trimmed:
            raise ValueError("title must not be blank")
        return trimmed

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> set[str]:
        """Accept tag strings or storage rows ({"tag": ...}) and drop blanks."""
        tags = set()
        for item in _tag_values(v):
            value = item.get("tag") if isinstance(item, Mapping) else item
            if value is None:
                continue
            text = str(value).strip()
            if text:
                tags.add(text)
        return tags

    @field_validator("recurrence_end_date", "created_at", "updated_at")
    @classmethod
    def _normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def validate_rule_category(self) -> _EventBody:
        """A non-recurring category never carries a rule."""
        if self.recurrence_category == RecurrenceCategory.NONE and self.recurrence_rule:
            raise ValueError("recurrence_rule must be absent when recurrence_category is 'none'")
        return self

    @field_serializer("tags")
    def serialize_tags(self, tags: set[str]) -> list[str]:
        """Serialize tags in a stable order."""
        return sorted(tags)


class CalendarEvent(_EventBody):
    """A stored calendar event, possibly carrying a recurrence rule."""

    id: EventId = Field(..., description="Opaque event identifier")
    start: Optional[datetime] = Field(default=None, description="Start instant; None when unscheduled")
    end: Optional[datetime] = Field(default=None, description="End instant")

    @field_validator("start", "end")
    @classmethod
    def _normalize_bounds(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def validate_rule_anchor(self) -> CalendarEvent:
        """A rule has no anchor without a start."""
        if self.recurrence_rule and self.start is None:
            raise ValueError("recurrence_rule requires a start")
        return self

    @property
    def is_unscheduled(self) -> bool:
        """True when the event has no start."""
        return self.start is None

    @property
    def is_recurring(self) -> bool:
        """True when the event carries a rule to expand."""
        return bool(self.recurrence_rule) and self.start is not None

    @property
    def duration_seconds(self) -> float:
        """Length of each occurrence; zero when start or end is missing."""
        if self.start is None or self.end is None:
            return 0.0
        return (self.end - self.start).total_seconds()

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> CalendarEvent:
        """Build an event from a storage row.

        Accepts the relational column names (``all_day``, ``repeat_type``,
        ``repeat_end_date``, ``rrule``, ...) as well as this model's own field
        names and camelCase aliases.
        """
        data = dict(record)
        renames = {
            "repeat_type": "recurrence_category",
            "repeat_end_date": "recurrence_end_date",
            "rrule": "recurrence_rule",
            "event_tags": "tags",
        }
        for source, target in renames.items():
            if source in data and target not in data:
                data[target] = data.pop(source)
        if data.get("recurrence_category") is None:
            data.pop("recurrence_category", None)
        return cls.model_validate(data)


class Occurrence(_EventBody):
    """One concrete instance of an event inside a query window."""

    event_id: EventId = Field(..., description="Identifier of the owning event")
    occurrence_start: Optional[datetime] = Field(default=None, description="Instance start")
    occurrence_end: Optional[datetime] = Field(default=None, description="Instance end")
    instance_key: Optional[datetime] = Field(
        default=None, description="Defining instant distinguishing sibling occurrences"
    )
    is_expanded_instance: bool = Field(
        default=False, description="True if generated from a recurrence rule"
    )

    @field_validator("occurrence_start", "occurrence_end", "instance_key")
    @classmethod
    def _normalize_bounds(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @classmethod
    def from_event(
        cls,
        event: CalendarEvent,
        start: Optional[datetime],
        end: Optional[datetime],
        *,
        instance_key: Optional[datetime] = None,
        expanded: bool = False,
    ) -> Occurrence:
        """Project ``event`` onto a concrete start/end."""
        body = event.model_dump(exclude={"id", "start", "end"})
        return cls(
            event_id=event.id,
            occurrence_start=start,
            occurrence_end=end,
            instance_key=instance_key,
            is_expanded_instance=expanded,
            **body,
        )

    @classmethod
    def nominal(cls, event: CalendarEvent) -> Occurrence:
        """The event's own, un-expanded occurrence."""
        return cls.from_event(event, event.start, event.end, instance_key=event.start)

    @property
    def is_unscheduled(self) -> bool:
        """True when the occurrence has no start."""
        return self.occurrence_start is None

    def to_response(self) -> dict[str, Any]:
        """Serialize for the HTTP layer (camelCase keys, ISO instants)."""
        payload = self.model_dump(mode="json", by_alias=True)
        payload["noDate"] = self.is_unscheduled
        return payload
