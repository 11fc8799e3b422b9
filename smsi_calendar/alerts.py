"""Reminder scheduling for occurrences.

An occurrence may carry two reminders: an in-app alert ``alert_minutes`` before
its start, and an email alert ``email_alert_working_days`` working days before
the day it starts. Weekends are not working days.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from .models import EventId, Occurrence

logger = logging.getLogger(__name__)

SATURDAY = 5


def is_working_day(day: datetime.date) -> bool:
    """Monday through Friday."""
    return day.weekday() < SATURDAY


def subtract_working_days(day: datetime.date, working_days: int) -> datetime.date:
    """Step back ``working_days`` working days from ``day``.

    Zero returns ``day`` unchanged, even on a weekend.

    Raises:
        ValueError: If ``working_days`` is negative
    """
    if working_days < 0:
        raise ValueError(f"working_days must be non-negative, got {working_days}")
    current = day
    remaining = working_days
    while remaining:
        current -= datetime.timedelta(days=1)
        if is_working_day(current):
            remaining -= 1
    return current


def alert_instant(occurrence: Occurrence) -> Optional[datetime.datetime]:
    """Instant of the in-app reminder, or None when there is none to send."""
    if occurrence.occurrence_start is None or occurrence.alert_minutes is None:
        return None
    return occurrence.occurrence_start - datetime.timedelta(minutes=occurrence.alert_minutes)


def email_alert_date(occurrence: Occurrence) -> Optional[datetime.date]:
    """Day the email reminder goes out, or None when there is none to send."""
    if occurrence.occurrence_start is None or occurrence.email_alert_working_days is None:
        return None
    return subtract_working_days(
        occurrence.occurrence_start.date(), occurrence.email_alert_working_days
    )


@dataclass(frozen=True)
class AlertSchedule:
    """Reminders due for one occurrence."""

    event_id: EventId
    occurrence_start: datetime.datetime
    alert_at: Optional[datetime.datetime]
    email_on: Optional[datetime.date]


def schedule_alerts(occurrences: Iterable[Occurrence]) -> list[AlertSchedule]:
    """Build the reminder schedule for a batch of occurrences.

    Unscheduled occurrences and occurrences without any reminder are skipped.
    """
    schedules = []
    for occurrence in occurrences:
        alert_at = alert_instant(occurrence)
        email_on = email_alert_date(occurrence)
        if alert_at is None and email_on is None:
            continue
        schedules.append(
            AlertSchedule(
                event_id=occurrence.event_id,
                occurrence_start=occurrence.occurrence_start,  # type: ignore[arg-type]
                alert_at=alert_at,
                email_on=email_on,
            )
        )
    logger.debug("Scheduled reminders for %d occurrences", len(schedules))
    return schedules
