"""Identifier normalization shared by every emitter.

Schema tokens arrive as ``snake_case`` (``round_end_reason``), as glued
lowercase words (``roundendreason``) or as arbitrary text. They all map to
PascalCase C# identifiers:

1. fixed overrides (``userid`` -> ``UserId``);
2. tokens with ``_`` are split on it;
3. pure ``[a-z0-9]+`` tokens are segmented with a word-frequency model;
4. anything else is split on non-identifier characters.

Identifiers that start with a digit get an ``E`` prefix.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import wordninja

_NAME_OVERRIDES: Dict[str, str] = {
    "userid": "UserId",
}

_SEGMENT_OVERRIDES: Dict[str, List[str]] = {
    "assister": ["assister"],
}

_UPPERCASE_SEGMENTS = frozenset({"id", "ui", "ip", "x", "y", "z"})

_LOWER_ALNUM_RE = re.compile(r"^[a-z0-9]+$")
_NON_IDENTIFIER_RE = re.compile(r"[^0-9a-zA-Z_]")

DIGIT_PREFIX = "E"
EMPTY_NAME = "Unnamed"


class WordSegmenter:
    """Guesses word boundaries in delimiter-free lowercase tokens.

    Uses wordninja's bundled English frequency list unless ``wordlist_path``
    points to a gzipped word list (one word per line, most frequent first).
    """

    def __init__(self, wordlist_path: Optional[Path | str] = None):
        self.wordlist_path = Path(wordlist_path) if wordlist_path is not None else None
        self._model: Optional[wordninja.LanguageModel] = None

    def split(self, word: str) -> List[str]:
        lowered = word.lower()
        override = _SEGMENT_OVERRIDES.get(lowered)
        if override is not None:
            return list(override)
        return [token for token in self._language_model().split(lowered) if token]

    def _language_model(self) -> wordninja.LanguageModel:
        if self._model is None:
            if self.wordlist_path is None:
                self._model = wordninja.DEFAULT_LANGUAGE_MODEL
            else:
                self._model = wordninja.LanguageModel(str(self.wordlist_path))
        return self._model


_DEFAULT_SEGMENTER = WordSegmenter()


def _title_segment(segment: str) -> str:
    if segment in _UPPERCASE_SEGMENTS:
        return segment.upper()
    return segment[:1].upper() + segment[1:]


def _guard_leading_digit(name: str) -> str:
    if name and name[0].isdigit():
        return DIGIT_PREFIX + name
    return name


def to_pascal_case(name: str) -> str:
    """Convert event names and delimited field names to PascalCase."""
    parts = [part for part in _NON_IDENTIFIER_RE.sub("_", name).split("_") if part]
    if not parts:
        return EMPTY_NAME
    return _guard_leading_digit("".join(part[0].upper() + part[1:] for part in parts))


def to_camel_words(name: str) -> str:
    """Protobuf field names: upper-case the first letter of each ``_`` part."""
    return "".join(part[0].upper() + part[1:] for part in name.split("_") if part)


def to_property_name(field: str, segmenter: Optional[WordSegmenter] = None) -> str:
    override = _NAME_OVERRIDES.get(field.lower())
    if override is not None:
        return override

    if "_" in field:
        return to_pascal_case(field)

    if _LOWER_ALNUM_RE.match(field):
        tokens = (segmenter or _DEFAULT_SEGMENTER).split(field)
        if tokens:
            return _guard_leading_digit("".join(_title_segment(tok) for tok in tokens))

    return to_pascal_case(field)


class NameAllocator:
    """Hands out unique identifiers within one declaring type.

    The first request for a name returns it unchanged; later requests get
    ``2``, ``3``... in first-seen order. A suffixed candidate that is already
    taken (e.g. a field literally called ``foo2``) is skipped.
    """

    def __init__(self, reserved: Iterable[str] = ()):
        self._counts: Dict[str, int] = {}
        self._taken = set(reserved)

    def allocate(self, base: str) -> str:
        count = self._counts.get(base, 0)
        while True:
            count += 1
            candidate = base if count == 1 else f"{base}{count}"
            if candidate not in self._taken:
                break
        self._counts[base] = count
        self._taken.add(candidate)
        return candidate
