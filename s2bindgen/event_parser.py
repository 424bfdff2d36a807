from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from s2bindgen.model import EventDefinition, EventField
from s2bindgen.typesys import EVENT_SKIP_TYPES, normalize_event_type

logger = logging.getLogger(__name__)

# Fixed precedence: earlier files own the canonical record of an event.
EVENT_SOURCE_FILES = ("core.gameevents", "game.gameevents", "mod.gameevents")

_HEADER_RE = re.compile(r'^\s*"([^"]+)"')
_FIELD_RE = re.compile(r'^\s*"([^"]+)"\s+"([^"]+)"(?:\s*//\s*(.*))?\s*$')


def _is_skippable(stripped: str) -> bool:
    return not stripped or stripped.startswith("//")


def _inline_comment(line: str) -> str:
    idx = line.find("//")
    return line[idx + 2:].strip() if idx >= 0 else ""


class _LineCursor:
    def __init__(self, lines: List[str]):
        self.lines = lines
        self.index = 0

    def at_end(self) -> bool:
        return self.index >= len(self.lines)

    def advance(self) -> tuple[int, str]:
        raw = self.lines[self.index]
        self.index += 1
        return self.index, raw

    def peek_meaningful(self) -> Optional[int]:
        idx = self.index
        while idx < len(self.lines) and _is_skippable(self.lines[idx].strip()):
            idx += 1
        return idx if idx < len(self.lines) else None


class GameEventParser:
    """Parses ``*.gameevents`` text into event definitions.

    The format is brace-nested: a quoted event name opens a ``{`` block of
    ``"field" "type" // comment`` pairs, and blocks may declare further
    events inside them. Every event found at any depth lands in one flat
    name -> definition mapping. Lines that fit none of these shapes are
    skipped.
    """

    def __init__(self) -> None:
        self.skipped_lines: List[int] = []

    def parse(self, text: str, source_name: Optional[str] = None) -> Dict[str, EventDefinition]:
        self.skipped_lines = []
        events: Dict[str, EventDefinition] = {}
        cursor = _LineCursor(text.splitlines())

        while not cursor.at_end():
            line_no, raw = cursor.advance()
            stripped = raw.strip()
            if _is_skippable(stripped):
                continue
            header = _HEADER_RE.match(stripped)
            if header is None or not self._parse_header(cursor, raw, header.group(1), events):
                self.skipped_lines.append(line_no)

        if self.skipped_lines:
            logger.debug(
                "Skipped %d unrecognized line(s) in %s: %s",
                len(self.skipped_lines),
                source_name or "<text>",
                self.skipped_lines,
            )
        return events

    def _parse_header(
        self,
        cursor: _LineCursor,
        raw: str,
        name: str,
        events: Dict[str, EventDefinition],
    ) -> bool:
        comment = _inline_comment(raw)
        if "{}" in raw:
            self._declare(events, name, comment)
            return True

        following_idx = cursor.peek_meaningful()
        if following_idx is None:
            return False

        following = cursor.lines[following_idx].strip()
        if following == "{}":
            self._declare(events, name, comment)
            cursor.index = following_idx + 1
            return True
        if following.startswith("{"):
            cursor.index = following_idx + 1
            self._parse_block(cursor, events, name, comment)
            return True
        return False

    def _declare(
        self,
        events: Dict[str, EventDefinition],
        name: str,
        comment: str,
    ) -> EventDefinition:
        event = events.get(name)
        if event is None:
            event = EventDefinition(name)
            events[name] = event
        event.fill_comment(comment)
        return event

    def _parse_block(
        self,
        cursor: _LineCursor,
        events: Dict[str, EventDefinition],
        name: str,
        comment: str,
    ) -> None:
        event = self._declare(events, name, comment)
        depth = 1

        while not cursor.at_end() and depth > 0:
            line_no, raw = cursor.advance()
            stripped = raw.strip()
            if _is_skippable(stripped):
                continue
            if stripped.startswith("}"):
                depth -= 1
                continue
            if stripped.startswith("{"):
                depth += 1
                continue

            header = _HEADER_RE.match(stripped)
            if header is not None and '""' not in stripped:
                if self._parse_header(cursor, raw, header.group(1), events):
                    continue

            field_match = _FIELD_RE.match(stripped)
            if field_match is None:
                self.skipped_lines.append(line_no)
                continue

            field_name, raw_type, field_comment = field_match.groups()
            if raw_type.lower() in EVENT_SKIP_TYPES:
                continue
            event.add_field(
                EventField(
                    field_name,
                    normalize_event_type(raw_type),
                    (field_comment or "").strip(),
                )
            )


def merge_event_sources(
    sources: Iterable[Mapping[str, EventDefinition]],
) -> Dict[str, EventDefinition]:
    """Merge parsed sources given in precedence order (first wins)."""
    merged: Dict[str, EventDefinition] = {}
    for events in sources:
        for name, event in events.items():
            existing = merged.get(name)
            if existing is None:
                existing = merged[name] = EventDefinition(event.name)
            existing.merge(event)
    return merged


def parse_event_directory(
    directory: Path,
    parser: Optional[GameEventParser] = None,
) -> Dict[str, EventDefinition]:
    """Parse the canonical event files found in ``directory`` and merge them."""
    parser = parser or GameEventParser()
    parsed: List[Dict[str, EventDefinition]] = []
    for filename in EVENT_SOURCE_FILES:
        path = Path(directory) / filename
        if not path.is_file():
            logger.debug("Event source %s not found, skipping", path)
            continue
        parsed.append(parser.parse(path.read_text(encoding="utf-8"), source_name=str(path)))
    return merge_event_sources(parsed)
