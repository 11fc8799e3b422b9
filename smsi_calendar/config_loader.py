"""smsi_calendar.config_loader

Lightweight config loader for smsi_calendar.

- Prefers YAML (PyYAML) if available, falls back to JSON.
- Environment variables override file values.
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "SMSI_CALENDAR_WINDOW_DAYS": "default_window_days",
    "SMSI_CALENDAR_MAX_OCCURRENCES": "max_occurrences_per_rule",
    "SMSI_CALENDAR_STRICT_CATEGORIES": "strict_recurrence_categories",
    "SMSI_CALENDAR_LOG_LEVEL": "log_level",
}

_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class Config:
    """Typed configuration for smsi_calendar.

    Fields:
        default_window_days: length of the query window when the caller gives no end (1..3650)
        max_occurrences_per_rule: cap on instances generated per event per query
        strict_recurrence_categories: raise on unmapped recurrence categories instead of storing no rule
        log_level: logging level name
    """

    default_window_days: int = 365
    max_occurrences_per_rule: int = 5000
    strict_recurrence_categories: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int and out-of-range values are
        clamped, logging a warning whenever a coercion occurs.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        window_days = _coerce_int("default_window_days", 365)
        if window_days < 1:
            logger.warning("default_window_days %d below minimum; coercing to 1", window_days)
            window_days = 1
        elif window_days > 3650:
            logger.warning("default_window_days %d above maximum; coercing to 3650", window_days)
            window_days = 3650

        max_occurrences = _coerce_int("max_occurrences_per_rule", 5000)
        if max_occurrences < 1:
            logger.warning("max_occurrences_per_rule %d below minimum; coercing to 1", max_occurrences)
            max_occurrences = 1

        strict = data.get("strict_recurrence_categories", False)
        if isinstance(strict, str):
            strict = strict.strip().lower() in _TRUTHY
        else:
            strict = bool(strict)

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            default_window_days=window_days,
            max_occurrences_per_rule=max_occurrences,
            strict_recurrence_categories=strict,
            log_level=log_level,
        )


def _load_yaml_or_json(path: Path) -> Any:
    """
    Load a mapping from a YAML or JSON file.

    Prefers PyYAML if available; falls back to JSON and raises a helpful error if neither works.
    """
    text = path.read_text(encoding="utf-8")
    try:
        import yaml  # noqa: PLC0415
    except ImportError:
        try:
            return json.loads(text)
        except ValueError as exc:
            raise RuntimeError(
                "Unable to parse config: PyYAML not installed and file is not valid JSON. "
                "Install pyyaml (`pip install pyyaml`) or provide a JSON formatted config."
            ) from exc

    loaded = yaml.safe_load(text)
    # safe_load returns None for empty files
    if loaded is None:
        return {}
    return loaded


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    merged = dict(raw)
    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None and value.strip():
            logger.debug("Config %s overridden by %s", key, env_name)
            merged[key] = value.strip()
    return merged


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. If not provided the default is
              ./smsi_calendar.yaml (relative to current working dir).

    Returns:
        Config dataclass instance with values from file, environment, or defaults.

    Behavior:
    - If file is missing: defaults, still subject to environment overrides.
    - If file exists but top-level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / "smsi_calendar.yaml"
    logger.debug("Attempting to load config from %s", p)

    raw: dict[str, Any] = {}
    if p.exists():
        loaded = _load_yaml_or_json(p)
        if not isinstance(loaded, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, loaded)
            raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
        raw = loaded
        logger.info("Loaded configuration from %s", p)
    else:
        logger.info("Config file %s not found; using defaults", p)

    cfg = Config.from_dict(_apply_env_overrides(raw))
    logger.debug("Configuration values: %s", cfg)
    return cfg
