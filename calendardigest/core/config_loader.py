"""Configuration loading for calendardigest.

Settings are layered: defaults, then a YAML file, then CALENDARDIGEST_*
environment variables (and .env), then command line flags.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from calendardigest.digest_exceptions import ConfigError

logger = logging.getLogger(__name__)

ON_ERROR_CHOICES = ("abort", "skip")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DigestConfig:
    """Typed configuration for calendardigest.

    Fields:
        window_weeks: length of the look-ahead window (1..52)
        timezone: report timezone name; None uses the system local zone
        label_width: width of the date label column (15..40)
        content_width: width of the wrapped body column (20..200)
        on_error: "abort" stops at the first failure, "skip" logs and continues
        log_level: logging level name
    """

    window_weeks: int = 6
    timezone: Optional[str] = None
    label_width: int = 16
    content_width: int = 60
    on_error: str = "abort"
    log_level: str = "WARNING"

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> DigestConfig:
        """Create a config from a plain mapping, coercing and bounding values.

        Unknown keys are ignored with a warning; out-of-range numbers are
        clamped with a warning; an invalid ``on_error`` raises ConfigError.
        """
        if data is None:
            data = {}

        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning("Ignoring unknown config key %r", key)

        def _coerce_int(key: str, default: int, low: int, high: int) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < low:
                logger.warning("Config %s=%d below minimum; coercing to %d", key, value, low)
                return low
            if value > high:
                logger.warning("Config %s=%d above maximum; coercing to %d", key, value, high)
                return high
            return value

        on_error = str(data.get("on_error", "abort")).strip().lower()
        if on_error not in ON_ERROR_CHOICES:
            raise ConfigError(
                f"on_error must be one of {', '.join(ON_ERROR_CHOICES)}, got {on_error!r}"
            )

        log_level = str(data.get("log_level", "WARNING")).strip().upper()
        if log_level not in LOG_LEVELS:
            logger.warning("Config log_level=%r is not a level name; using WARNING", log_level)
            log_level = "WARNING"

        timezone = data.get("timezone")
        timezone = (str(timezone).strip() or None) if timezone is not None else None

        return cls(
            window_weeks=_coerce_int("window_weeks", 6, 1, 52),
            timezone=timezone,
            label_width=_coerce_int("label_width", 16, 15, 40),
            content_width=_coerce_int("content_width", 60, 20, 200),
            on_error=on_error,
            log_level=log_level,
        )

    def merged(self, overrides: dict[str, Any]) -> DigestConfig:
        """Return a copy with the given (already validated) values replaced.

        None values are ignored so unset command line flags keep the
        configured value.
        """
        present = {k: v for k, v in overrides.items() if v is not None}
        if not present:
            return self
        return DigestConfig.from_dict({**self.as_dict(), **present})

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _load_yaml(path: Path) -> Any:
    """Load a YAML document; empty files load as an empty mapping."""
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Config file {path} cannot be read: {exc}") from exc
    return {} if loaded is None else loaded


def load_config(path: str | Path | None = None, env: Optional[dict[str, Any]] = None) -> DigestConfig:
    """Load configuration from a YAML file and environment values.

    Args:
        path: Optional path to the config file. A missing file gives defaults.
        env: Values from the environment (ConfigManager.load_full_config()),
            applied on top of the file

    Returns:
        DigestConfig instance

    Raises:
        ConfigError: If the file is not a mapping or holds invalid values
    """
    raw: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        logger.debug("Attempting to load config from %s", p)
        if p.exists():
            loaded = _load_yaml(p)
            if not isinstance(loaded, dict):
                raise ConfigError(f"Config file {p} must contain a mapping at top level")
            raw.update(loaded)
            logger.info("Loaded configuration from %s", p)
        else:
            logger.info("Config file %s not found; using defaults", p)

    if env:
        raw.update(env)

    cfg = DigestConfig.from_dict(raw)
    logger.debug("Configuration values: %s", cfg)
    return cfg

