"""Shared fixtures for calendardigest tests."""

from collections.abc import Callable, Generator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo

import pytest

from calendardigest.calendar.digest_models import Span
from calendardigest.domain.window import build_report_window

# Wednesday; every date in the tests is relative to this instant
REFERENCE_NOW = datetime(2025, 10, 1, 0, 0, tzinfo=timezone.utc)


def build_ics(*events: str, calendar_name: str = "Test Calendar") -> str:
    """Wrap VEVENT bodies (property lines without BEGIN/END) in a VCALENDAR."""
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//calendardigest//tests//EN",
        f"X-WR-CALNAME:{calendar_name}",
    ]
    for body in events:
        lines.append("BEGIN:VEVENT")
        lines.extend(line.strip() for line in body.strip().splitlines() if line.strip())
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture
def make_ics() -> Callable[..., str]:
    """The VCALENDAR text builder."""
    return build_ics


@pytest.fixture
def utc() -> timezone:
    return timezone.utc


@pytest.fixture
def london() -> ZoneInfo:
    """A zone with DST, for wall-clock and midnight tests."""
    return ZoneInfo("Europe/London")


@pytest.fixture
def reference_now() -> datetime:
    return REFERENCE_NOW


@pytest.fixture
def window() -> Span:
    """The default six week window starting at the reference instant."""
    return build_report_window(REFERENCE_NOW, 6)


@pytest.fixture
def write_ics(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing calendar text to a file under tmp_path."""

    def _write(name: str, *events: str, text: Optional[str] = None) -> Path:
        path = tmp_path / name
        path.write_text(text if text is not None else build_ics(*events), encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any, tmp_path: Path) -> Generator[None, Any, None]:
    """Remove CALENDARDIGEST_* variables and run from an empty directory.

    The empty working directory keeps a developer's .env file out of the
    configuration layers.
    """
    import os

    for key in list(os.environ):
        if key.startswith("CALENDARDIGEST_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture(autouse=True)
def restore_logging_levels() -> Generator[None, Any, None]:
    """Undo level changes made by the logging setup under test."""
    import logging

    from calendardigest.digest_logging import _DIGEST_MODULES, _NOISY_LOGGERS

    names = ["", *_NOISY_LOGGERS, *_DIGEST_MODULES]
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)
