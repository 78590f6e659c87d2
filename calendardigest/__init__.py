"""calendardigest - chronological text digests of iCalendar documents.

This package turns one or more calendar files into a day-by-day listing of
the events occurring within a look-ahead window. It keeps imports light so
the package can be inspected without pulling in the parsing stack.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to stderr.

    The report itself is written to stdout, so every diagnostic goes to
    stderr. Callers may adjust the level later (e.g. from config).

    Honors the CALENDARDIGEST_DEBUG environment variable (truthy values:
    "1", "true", "yes", "on") which forces DEBUG verbosity.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("CALENDARDIGEST_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message
        # Only the level is colorized; it is left-aligned to 7 chars.
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.WARNING
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.WARNING)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_report(args: object) -> int:
    """Build and print the digest described by parsed command line arguments.

    Args:
        args: argparse namespace with ``files`` and the optional overrides
            ``config``, ``window_weeks``, ``now``, ``timezone``, ``width``,
            ``on_error`` and ``debug``

    Returns:
        Process exit status: 0 on success, 1 when a document failed (or the
        run was aborted, or the configuration is invalid), 2 for an
        unparsable ``--now`` value

    Behavior:
    - Configuration is layered: defaults, YAML file, CALENDARDIGEST_* env
      (and .env), then command line flags.
    - With on_error=abort the first failure stops the run and nothing is
      printed. With on_error=skip the report of the remaining documents is
      printed and the status is 1 if any document failed.
    """
    import logging
    import os

    _init_logging(os.environ.get("CALENDARDIGEST_LOG_LEVEL"))

    from calendardigest.core.config_loader import load_config
    from calendardigest.core.config_manager import ConfigManager
    from calendardigest.core.timezone_utils import now_utc, parse_now, resolve_timezone
    from calendardigest.digest_exceptions import ConfigError
    from calendardigest.digest_logging import configure_digest_logging
    from calendardigest.domain.pipeline import DigestContext, build_digest_pipeline
    from calendardigest.domain.window import build_report_window

    logger = logging.getLogger(__name__)
    debug = bool(getattr(args, "debug", False))

    try:
        env_cfg = ConfigManager().load_full_config()
        cfg = load_config(getattr(args, "config", None), env_cfg).merged(
            {
                "window_weeks": getattr(args, "window_weeks", None),
                "timezone": getattr(args, "timezone", None),
                "content_width": getattr(args, "width", None),
                "on_error": getattr(args, "on_error", None),
            }
        )
        report_timezone = resolve_timezone(cfg.timezone)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    configure_digest_logging(debug_mode=debug, level_name=cfg.log_level)
    logger.debug("Effective configuration: %s", cfg.as_dict())

    now_text = getattr(args, "now", None)
    if now_text:
        try:
            now = parse_now(now_text, report_timezone)
        except ValueError as exc:
            logger.error("Invalid --now value %r: %s", now_text, exc)
            return 2
    else:
        now = now_utc()

    context = DigestContext(
        window=build_report_window(now, cfg.window_weeks),
        report_timezone=report_timezone,
        paths=[str(p) for p in getattr(args, "files", [])],
        on_error=cfg.on_error,
        label_width=cfg.label_width,
        content_width=cfg.content_width,
    )
    logger.info(
        "Reporting %d document(s) from %s to %s",
        len(context.paths),
        context.window.start.isoformat(),
        context.window.end.isoformat(),
    )

    result = build_digest_pipeline(context).process(context)
    if not result.success:
        return 1

    for line in context.lines:
        print(line)

    if context.failed_sources:
        logger.error("Failed documents: %s", ", ".join(context.failed_sources))
        return 1
    return 0
