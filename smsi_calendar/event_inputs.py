"""Write-path input models and label resolution.

Form inputs arrive as display labels ("Chaque trimestre", "1 heure avant") or
raw values ("quarterly", "60"). Each label table resolves to an enumeration
member or to an explicit Unrecognized value, leaving the fallback decision to
the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, NamedTuple, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import RecurrenceCategory
from .timezone_utils import parse_instant

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Unrecognized(NamedTuple):
    """A label that matches no entry of its table."""

    label: str


class AlertPreset(Enum):
    """Reminder offsets before an event starts, in minutes."""

    NONE = None
    MINUTES_15 = 15
    MINUTES_30 = 30
    HOUR_1 = 60
    HOURS_2 = 120
    DAY_1 = 1440

    @property
    def minutes(self) -> Optional[int]:
        return self.value


class EmailAlertPreset(Enum):
    """Email reminder offsets before an event starts, in working days."""

    NONE = None
    WORKING_DAYS_1 = 1
    WORKING_DAYS_2 = 2
    WORKING_DAYS_3 = 3
    WORKING_DAYS_5 = 5
    WORKING_DAYS_10 = 10

    @property
    def working_days(self) -> Optional[int]:
        return self.value


REPEAT_LABELS: dict[str, RecurrenceCategory] = {
    "Jamais": RecurrenceCategory.NONE,
    "Quotidien": RecurrenceCategory.DAILY,
    "Chaque semaine": RecurrenceCategory.WEEKLY,
    "Hebdomadaire": RecurrenceCategory.WEEKLY,
    "Chaque mois": RecurrenceCategory.MONTHLY,
    "Mensuel": RecurrenceCategory.MONTHLY,
    "Chaque trimestre": RecurrenceCategory.QUARTERLY,
    "Trimestriel": RecurrenceCategory.QUARTERLY,
    "Chaque semestre": RecurrenceCategory.SEMESTRIAL,
    "Semestriel": RecurrenceCategory.SEMESTRIAL,
    "Chaque année": RecurrenceCategory.YEARLY,
    "Annuel": RecurrenceCategory.YEARLY,
}

ALERT_LABELS: dict[str, AlertPreset] = {
    "Aucune": AlertPreset.NONE,
    "15 minutes avant": AlertPreset.MINUTES_15,
    "30 minutes avant": AlertPreset.MINUTES_30,
    "1 heure avant": AlertPreset.HOUR_1,
    "2 heures avant": AlertPreset.HOURS_2,
    "1 jour avant": AlertPreset.DAY_1,
}

EMAIL_ALERT_LABELS: dict[str, EmailAlertPreset] = {
    "Aucune": EmailAlertPreset.NONE,
    "1 jour ouvrable avant": EmailAlertPreset.WORKING_DAYS_1,
    "2 jours ouvrables avant": EmailAlertPreset.WORKING_DAYS_2,
    "3 jours ouvrables avant": EmailAlertPreset.WORKING_DAYS_3,
    "5 jours ouvrables avant": EmailAlertPreset.WORKING_DAYS_5,
    "1 semaine ouvrable avant": EmailAlertPreset.WORKING_DAYS_5,
    "2 semaines ouvrables avant": EmailAlertPreset.WORKING_DAYS_10,
}

RepeatResolution = Union[RecurrenceCategory, Unrecognized]
AlertResolution = Union[AlertPreset, Unrecognized]
EmailAlertResolution = Union[EmailAlertPreset, Unrecognized]


def resolve_repeat(label: str) -> RepeatResolution:
    """Map a repeat label or category value to a RecurrenceCategory."""
    if label in REPEAT_LABELS:
        return REPEAT_LABELS[label]
    category = RecurrenceCategory.coerce(label)
    return category if category is not None else Unrecognized(label)


def _resolve_numeric(label: str, table: Mapping[str, Any], enum_cls: Any) -> Any:
    if label in table:
        return table[label]
    try:
        return enum_cls(int(label.strip()))
    except ValueError:
        return Unrecognized(label)


def resolve_alert(label: str) -> AlertResolution:
    """Map an alert label or minute count to an AlertPreset."""
    return _resolve_numeric(label, ALERT_LABELS, AlertPreset)


def resolve_email_alert(label: str) -> EmailAlertResolution:
    """Map an email alert label or working-day count to an EmailAlertPreset."""
    return _resolve_numeric(label, EMAIL_ALERT_LABELS, EmailAlertPreset)


class PatchKind(str, Enum):
    """How an update treats one field."""

    ABSENT = "absent"
    CLEAR = "clear"
    SET = "set"


@dataclass(frozen=True)
class FieldPatch(Generic[T]):
    """Three-state update of one field: leave it, clear it, or set it."""

    kind: PatchKind
    value: Optional[T] = None

    @classmethod
    def absent(cls) -> FieldPatch[T]:
        return cls(PatchKind.ABSENT)

    @classmethod
    def clear(cls) -> FieldPatch[T]:
        return cls(PatchKind.CLEAR)

    @classmethod
    def set(cls, value: T) -> FieldPatch[T]:
        return cls(PatchKind.SET, value)

    @property
    def is_present(self) -> bool:
        return self.kind is not PatchKind.ABSENT

    def apply(self, current: Optional[T]) -> Optional[T]:
        """Return the field value after this patch."""
        if self.kind is PatchKind.ABSENT:
            return current
        if self.kind is PatchKind.CLEAR:
            return None
        return self.value


class _EventInputBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="ignore")

    @field_validator("start_date", "end_date", "repeat_end_date", mode="before", check_fields=False)
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        """Blank strings mean "no date"; other strings must be ISO 8601."""
        if isinstance(v, (str, datetime)):
            return parse_instant(v)
        return v


class EventCreateInput(_EventInputBase):
    """Payload for creating an event."""

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    all_day: bool = True
    category: Optional[str] = None
    subcategory: Optional[str] = None
    platform: Optional[str] = None
    responsible: Optional[Union[int, str]] = None
    repeat: Optional[str] = None
    repeat_end_date: Optional[datetime] = None
    alert: Optional[str] = None
    email_alert: Optional[str] = None
    status: Optional[str] = None
    is_unplanned: bool = False
    tags: Optional[str] = None


class EventUpdateInput(_EventInputBase):
    """Partial payload for updating an event; only sent fields change."""

    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    all_day: Optional[bool] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    platform: Optional[str] = None
    responsible: Optional[Union[int, str]] = None
    repeat: Optional[str] = None
    repeat_end_date: Optional[datetime] = None
    alert: Optional[str] = None
    email_alert: Optional[str] = None
    status: Optional[str] = None
    tags: Optional[str] = None

    def patch(self, name: str) -> FieldPatch[Any]:
        """Three-state view of one field.

        Fields missing from the payload are ABSENT; null or blank strings are
        CLEAR; anything else is SET.
        """
        if name not in self.model_fields_set:
            return FieldPatch.absent()
        value = getattr(self, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            return FieldPatch.clear()
        return FieldPatch.set(value)

    def patches(self) -> dict[str, FieldPatch[Any]]:
        """Every present field's patch, keyed by field name."""
        result = {name: self.patch(name) for name in type(self).model_fields}
        return {name: p for name, p in result.items() if p.is_present}
