"""
Central logging configuration for smsi_calendar.

Quiets noisy third-party loggers while keeping the package's own diagnostics,
most notably the warnings emitted when a stored recurrence rule cannot be
expanded.
"""

import logging
import os
from typing import Optional

DEBUG_ENV_VAR = "SMSI_CALENDAR_DEBUG"
LOG_LEVEL_ENV_VAR = "SMSI_CALENDAR_LOG_LEVEL"

# Third-party loggers that only add noise at DEBUG
SUPPRESSED_LOGGERS: dict[str, int] = {
    "asyncio": logging.WARNING,
    "dateutil": logging.WARNING,
    "yaml": logging.WARNING,
}

PACKAGE_LOGGERS = [
    "smsi_calendar",
    "smsi_calendar.recurrence_codec",
    "smsi_calendar.occurrence_expander",
    "smsi_calendar.calendar_query",
    "smsi_calendar.event_service",
]


def _env_debug() -> bool:
    return os.getenv(DEBUG_ENV_VAR, "").strip().lower() in ("1", "true", "yes", "on")


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for smsi_calendar.

    Args:
        debug_mode: Whether to enable debug logging for smsi_calendar modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        SMSI_CALENDAR_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        SMSI_CALENDAR_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    if force_debug is not None:
        final_debug = force_debug
    elif _env_debug():
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    env_log_level = os.getenv(LOG_LEVEL_ENV_VAR, "").strip().upper()
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    # Keep handlers installed by the package bootstrap
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s")
        )
        root_logger.addHandler(handler)

    logger_config = dict(SUPPRESSED_LOGGERS)
    package_level = logging.DEBUG if final_debug else logging.INFO
    for module in PACKAGE_LOGGERS:
        logger_config[module] = package_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for smsi_calendar modules")
    else:
        root_logger.debug("Production logging configuration applied")


def reset_logging_to_debug() -> None:
    """
    Reset all loggers to DEBUG level for troubleshooting.
    """
    logging.getLogger().setLevel(logging.DEBUG)
    for logger_name in list(SUPPRESSED_LOGGERS) + PACKAGE_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.DEBUG)

    logging.getLogger().info("All loggers reset to DEBUG level for troubleshooting")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["smsi_calendar", *SUPPRESSED_LOGGERS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
