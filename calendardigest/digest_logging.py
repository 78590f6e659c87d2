"""
Central logging configuration for calendardigest.

Report text goes to stdout, so every diagnostic is routed through logging
to stderr. Third-party loggers are kept quiet unless debugging.
"""

import logging
import os
from typing import Optional

# Third-party loggers that are noisy at DEBUG level
_NOISY_LOGGERS = ("icalendar", "dateutil", "pydantic")

_DIGEST_MODULES = (
    "calendardigest",
    "calendardigest.calendar.ics_loader",
    "calendardigest.calendar.event_normalizer",
    "calendardigest.calendar.occurrence_expander",
    "calendardigest.domain.pipeline",
)


def configure_digest_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    level_name: Optional[str] = None,
) -> None:
    """
    Configure logging levels for calendardigest modules.

    Args:
        debug_mode: Whether to enable debug logging for calendardigest modules
        force_debug: Override debug mode setting (None to use env var detection)
        level_name: Level for calendardigest modules when not debugging

    Environment Variables:
        CALENDARDIGEST_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDARDIGEST_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CALENDARDIGEST_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("CALENDARDIGEST_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    if final_debug:
        digest_level = logging.DEBUG
    elif env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        digest_level = getattr(logging, env_log_level)
    elif level_name:
        digest_level = getattr(logging, level_name.upper(), logging.WARNING)
    else:
        digest_level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(digest_level)

    logger_config: dict[str, int] = {}
    for name in _NOISY_LOGGERS:
        logger_config[name] = logging.INFO if final_debug else logging.WARNING
    for module in _DIGEST_MODULES:
        logger_config[module] = digest_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.debug("Debug logging enabled for calendardigest modules")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("calendardigest", *_NOISY_LOGGERS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
