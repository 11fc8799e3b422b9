"""Time helpers for smsi_calendar.

Every instant handled by the core is a timezone-aware UTC datetime. Naive
values are taken to already be UTC.
"""

from __future__ import annotations

import datetime
import logging
import os
from typing import Any, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

TEST_TIME_ENV_VAR = "SMSI_CALENDAR_TEST_TIME"


def ensure_utc(dt: datetime.datetime) -> datetime.datetime:
    """Return ``dt`` as an aware UTC datetime.

    Args:
        dt: Naive (assumed UTC) or aware datetime

    Returns:
        Timezone-aware datetime in UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def parse_instant(value: Any) -> Optional[datetime.datetime]:
    """Parse an instant from a datetime, date or ISO 8601 string.

    Empty strings and None map to None. Dates become midnight UTC.

    Raises:
        ValueError: If a string is not ISO 8601
        TypeError: If the value has an unsupported type
    """
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return ensure_utc(value)
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time.min, tzinfo=datetime.timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return ensure_utc(date_parser.isoparse(text))
    raise TypeError(f"Unsupported instant value: {value!r}")


class TimeProvider:
    """Provides current time with test time override support."""

    def now_utc(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden for testing via the SMSI_CALENDAR_TEST_TIME environment
        variable (ISO 8601, e.g. "2024-01-01T00:00:00Z").
        """
        test_time = os.environ.get(TEST_TIME_ENV_VAR)
        if test_time:
            try:
                return ensure_utc(date_parser.isoparse(test_time))
            except (ValueError, OverflowError) as e:
                logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV_VAR, test_time, e)

        return datetime.datetime.now(datetime.timezone.utc)


_time_provider = TimeProvider()


def now_utc() -> datetime.datetime:
    """Get current UTC time (convenience function)."""
    return _time_provider.now_utc()
