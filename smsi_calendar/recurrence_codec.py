"""Recurrence rule codec.

Translates a recurrence category plus optional end date into the canonical
rule string persisted with an event, and parses that string back into
RecurrenceParams. The persisted grammar is the iCalendar RRULE subset
``FREQ=<WEEKLY|MONTHLY|YEARLY>[;INTERVAL=<n>][;UNTIL=<YYYYMMDDTHHMMSSZ>]``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .exceptions import MalformedRuleError, UnrecognizedCategoryError
from .models import Frequency, RecurrenceCategory, RecurrenceParams
from .timezone_utils import ensure_utc

logger = logging.getLogger(__name__)

UNTIL_FORMAT = "%Y%m%dT%H%M%SZ"

# (frequency, interval) per category; DAILY has no mapping
CATEGORY_RULES: dict[RecurrenceCategory, tuple[Frequency, int]] = {
    RecurrenceCategory.WEEKLY: (Frequency.WEEKLY, 1),
    RecurrenceCategory.MONTHLY: (Frequency.MONTHLY, 1),
    RecurrenceCategory.QUARTERLY: (Frequency.MONTHLY, 3),
    RecurrenceCategory.SEMESTRIAL: (Frequency.MONTHLY, 6),
    RecurrenceCategory.YEARLY: (Frequency.YEARLY, 1),
}


def format_until(end_date: datetime) -> str:
    """Format an instant as a basic-format UTC timestamp, truncated to seconds."""
    return ensure_utc(end_date).replace(microsecond=0).strftime(UNTIL_FORMAT)


def encode(
    category: Any,
    end_date: Optional[datetime] = None,
    *,
    strict: bool = False,
) -> Optional[str]:
    """Build the canonical rule string for a recurrence category.

    Args:
        category: RecurrenceCategory member or its string value
        end_date: Optional inclusive bound for generated occurrences
        strict: Raise instead of returning None for unmapped categories

    Returns:
        Rule string such as "FREQ=MONTHLY;INTERVAL=3;UNTIL=20240201T000000Z",
        or None when the category does not recur

    Raises:
        UnrecognizedCategoryError: In strict mode, for unknown categories and
            for recognized categories without a frequency mapping
    """
    member = RecurrenceCategory.coerce(category)
    if member is None:
        if strict:
            raise UnrecognizedCategoryError(f"Unknown recurrence category: {category!r}")
        logger.debug("Unknown recurrence category %r; no rule generated", category)
        return None

    if member == RecurrenceCategory.NONE:
        return None

    mapping = CATEGORY_RULES.get(member)
    if mapping is None:
        if strict:
            raise UnrecognizedCategoryError(
                f"Recurrence category {member.value!r} has no frequency mapping"
            )
        logger.warning("Recurrence category %r has no frequency mapping; no rule generated", member.value)
        return None

    frequency, interval = mapping
    parts = [f"FREQ={frequency.value}"]
    if interval != 1:
        parts.append(f"INTERVAL={interval}")
    if end_date is not None:
        parts.append(f"UNTIL={format_until(end_date)}")
    return ";".join(parts)


def parse_until(value: str) -> datetime:
    """Parse an UNTIL value; floating and date-only values are read as UTC.

    Raises:
        ValueError: If the value matches none of the accepted formats
    """
    text = value.strip().upper()
    for fmt in ("%Y%m%dT%H%M%SZ", "%Y%m%dT%H%M%S", "%Y%m%d"):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise ValueError(f"Invalid UNTIL value: {value!r}")


def _positive_int(key: str, value: str, rule_string: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise MalformedRuleError(f"{key} is not an integer in rule {rule_string!r}") from e
    if number < 1:
        raise MalformedRuleError(f"{key} must be positive in rule {rule_string!r}")
    return number


def decode(rule_string: str, anchor: datetime) -> RecurrenceParams:
    """Parse a rule string and bind it to ``anchor``.

    Args:
        rule_string: Stored rule, optionally prefixed with "RRULE:"
        anchor: Start instant of the owning event, truncated to whole seconds

    Returns:
        RecurrenceParams for the series

    Raises:
        MalformedRuleError: If the string cannot be parsed into a valid rule
    """
    if not rule_string or not rule_string.strip():
        raise MalformedRuleError("Empty recurrence rule")

    text = rule_string.strip()
    if text.upper().startswith("RRULE:"):
        text = text[len("RRULE:"):]

    values: dict[str, str] = {}
    for part in text.split(";"):
        if not part.strip():
            continue
        if "=" not in part:
            raise MalformedRuleError(f"Rule part {part!r} is not KEY=VALUE in {rule_string!r}")
        key, value = part.split("=", 1)
        key = key.strip().upper()
        if key in values:
            raise MalformedRuleError(f"Duplicate {key} in rule {rule_string!r}")
        values[key] = value.strip()

    unsupported = set(values) - {"FREQ", "INTERVAL", "UNTIL", "COUNT"}
    if unsupported:
        raise MalformedRuleError(
            f"Unsupported rule parts {sorted(unsupported)} in {rule_string!r}"
        )

    freq_token = values.get("FREQ", "").upper()
    try:
        frequency = Frequency(freq_token)
    except ValueError as e:
        raise MalformedRuleError(f"Invalid FREQ {freq_token!r} in rule {rule_string!r}") from e

    interval = _positive_int("INTERVAL", values["INTERVAL"], rule_string) if "INTERVAL" in values else 1
    count = _positive_int("COUNT", values["COUNT"], rule_string) if "COUNT" in values else None

    until = None
    if "UNTIL" in values:
        try:
            until = parse_until(values["UNTIL"])
        except ValueError as e:
            raise MalformedRuleError(str(e)) from e

    if until is not None and count is not None:
        raise MalformedRuleError(f"UNTIL and COUNT are mutually exclusive in {rule_string!r}")

    return RecurrenceParams(
        frequency=frequency,
        interval=interval,
        until=until,
        count=count,
        anchor=ensure_utc(anchor).replace(microsecond=0),
    )
