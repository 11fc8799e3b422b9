"""Free-text tag extraction.

A single tag field may hold a JSON array, hashtags, a comma separated list, or
one plain (optionally quoted) tag. The conventions are tried in that order and
the first applicable one wins, so "#a, b" yields only the hashtag "a".
"""

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ASCII word characters plus Latin-1 accented letters
HASHTAG_PATTERN = re.compile(r"#[\wÀ-ÿ]+", re.ASCII)


def _stringify(value: Any) -> str:
    """Render a decoded JSON value as web clients do (``String(value)``).

    Nested arrays join their elements with commas, nulls inside them render
    empty, objects render as ``[object Object]``.
    """
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join("" if item is None else _stringify(item) for item in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def _clean(values: list[str]) -> set[str]:
    return {v.strip() for v in values if v.strip()}


def _parse_json_array(text: str) -> Optional[set[str]]:
    if not (text.startswith("[") and text.endswith("]")):
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        logger.debug("Tag input looks like a JSON array but does not parse: %r", text)
        return None
    if not isinstance(parsed, list):
        return None
    return _clean([_stringify(item) for item in parsed])


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


def parse_tags(raw_text: Optional[str]) -> set[str]:
    """Parse a free-text tag field into a set of normalized tags.

    Args:
        raw_text: User input, e.g. '#report #urgent', 'a, b', '["x","y"]'

    Returns:
        Set of non-empty, trimmed tags. Never raises.
    """
    if raw_text is None:
        return set()
    text = raw_text.strip()
    if not text:
        return set()

    from_json = _parse_json_array(text)
    if from_json is not None:
        return from_json

    if "#" in text:
        return {match[1:] for match in HASHTAG_PATTERN.findall(text)}

    if "," in text:
        return _clean(text.split(","))

    return _clean([_strip_quotes(text)])
