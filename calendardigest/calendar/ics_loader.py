"""Calendar document loading: splits an iCalendar file into VEVENT property bags.

Uses icalendar's content-line layer (unfolding and name/parameter/value
splitting) and keeps property values as text so that the normalizer can
report malformed fields precisely.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from icalendar.parser import Contentlines
from pydantic import BaseModel, Field

from calendardigest.calendar.datetime_utils import unescape_text
from calendardigest.calendar.digest_models import RawEvent, RawProperty
from calendardigest.digest_exceptions import LoadError

logger = logging.getLogger(__name__)

# Size limit protecting against accidental huge inputs
MAX_ICS_SIZE_BYTES = 50 * 1024 * 1024


class LoadedDocument(BaseModel):
    """Result of loading one calendar document."""

    source: str
    calendar_name: Optional[str] = None
    events: list[RawEvent] = Field(default_factory=list)

    # Load statistics
    total_components: int = 0
    ignored_components: int = 0

    @property
    def event_count(self) -> int:
        return len(self.events)


def _param_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def parse_document(text: str, source: str = "<string>") -> LoadedDocument:
    """Split iCalendar text into VEVENT property bags.

    Properties of components nested inside a VEVENT (VALARM) are not
    collected. Components other than VEVENT are counted and ignored.

    Args:
        text: Document content
        source: Name used in diagnostics

    Returns:
        LoadedDocument with one RawEvent per VEVENT

    Raises:
        LoadError: If the text is not a well-formed VCALENDAR document
    """
    text = text.lstrip("\ufeff")
    if not text.strip():
        raise LoadError(source, "empty document")

    try:
        lines = Contentlines.from_ical(text)
    except ValueError as exc:
        raise LoadError(source, str(exc)) from exc

    stack: list[str] = []
    current: Optional[dict[str, list[RawProperty]]] = None
    document = LoadedDocument(source=source)
    seen_calendar = False

    for line in lines:
        if not line:
            continue
        try:
            name, params, value = line.raw_parts()
        except ValueError as exc:
            raise LoadError(source, str(exc)) from exc

        name = name.upper()

        if name == "BEGIN":
            component = value.strip().upper()
            if not stack and component != "VCALENDAR":
                raise LoadError(source, f"expected BEGIN:VCALENDAR, found BEGIN:{component}")
            if component == "VCALENDAR":
                seen_calendar = True
            else:
                document.total_components += 1
                if component == "VEVENT" and stack == ["VCALENDAR"]:
                    current = {}
                elif stack == ["VCALENDAR"]:
                    document.ignored_components += 1
            stack.append(component)
            continue

        if name == "END":
            component = value.strip().upper()
            if not stack or stack[-1] != component:
                expected = stack[-1] if stack else "nothing"
                raise LoadError(source, f"unbalanced END:{component} (open: {expected})")
            stack.pop()
            if component == "VEVENT" and current is not None and stack == ["VCALENDAR"]:
                document.events.append(
                    RawEvent(properties=current, source=source, index=len(document.events))
                )
                current = None
            continue

        if not stack:
            raise LoadError(source, f"property {name} outside of VCALENDAR")

        if stack[-1] == "VEVENT" and current is not None:
            prop = RawProperty(
                value=str(value),
                params={str(k).upper(): _param_text(v) for k, v in params.items()},
            )
            current.setdefault(name, []).append(prop)
        elif stack == ["VCALENDAR"] and name == "X-WR-CALNAME":
            document.calendar_name = unescape_text(str(value))

    if stack:
        raise LoadError(source, f"unterminated component {stack[-1]}")
    if not seen_calendar:
        raise LoadError(source, "no VCALENDAR component found")

    logger.debug(
        "Loaded %s: %d events, %d components ignored",
        source,
        document.event_count,
        document.ignored_components,
    )
    return document


def load_document(path: str | Path) -> LoadedDocument:
    """Read and split a calendar file.

    Raises:
        LoadError: If the file cannot be read, decoded or parsed
    """
    source = str(path)
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise LoadError(source, exc.strerror or str(exc)) from exc

    if len(data) > MAX_ICS_SIZE_BYTES:
        raise LoadError(source, f"document exceeds {MAX_ICS_SIZE_BYTES} bytes")

    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise LoadError(source, f"not valid UTF-8: {exc}") from exc

    return parse_document(text, source)
