"""Best-effort title and author detection from the opening lines."""

from __future__ import annotations

import re
import string
from typing import Iterable

from bookstruct.structure.chapters import ChapterDetector
from bookstruct.structure.config import DEFAULT_SETTINGS, StructureSettings
from bookstruct.structure.models import Line
from bookstruct.structure.normalization import normalize_whitespace

_NON_TITLE_RE = re.compile(r"\b(page|copyright|isbn|published|contents)\b|^by\b|©", re.IGNORECASE)
_SENTENCE_END_RE = re.compile(r"[.!?]$")
_HAS_LETTER_RE = re.compile(r"[^\W\d_]")

_AUTHOR_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^by\s+(?P<name>.+)$", re.IGNORECASE),
    re.compile(r"^author\s*:\s*(?P<name>.+)$", re.IGNORECASE),
    re.compile(r"^written\s+by\s+(?P<name>.+)$", re.IGNORECASE),
    re.compile(r"^(?P<name>.+?),\s*author$", re.IGNORECASE),
)
_NAME_STRIP = " \t.,;:"
_GUESS_FIRST_LINE = 3
_GUESS_LAST_LINE = 10

def _non_blank(lines: Iterable[Line], limit: int) -> list[str]:
    texts: list[str] = []
    for line in lines:
        if not line.trimmed:
            continue
        texts.append(normalize_whitespace(line.trimmed))
        if len(texts) >= limit:
            break
    return texts


def _is_all_caps(text: str) -> bool:
    letters = [char for char in text if char.isalpha()]
    return bool(letters) and all(char.isupper() for char in letters)


def _is_heading(text: str, detector: ChapterDetector) -> bool:
    return detector.match_heading(text) is not None and not _is_all_caps(text)


def sniff_title(lines: Iterable[Line], settings: StructureSettings | None = None) -> str | None:
    """Return the most title-like line among the first non-blank lines.

    Lines that are not all-caps win; an all-caps title is only used when no
    other candidate exists and is returned with word capitalization.
    """

    active = settings or DEFAULT_SETTINGS
    detector = ChapterDetector(active)
    all_caps_candidate: str | None = None

    for text in _non_blank(lines, active.title_scan_lines):
        if _NON_TITLE_RE.search(text) or _SENTENCE_END_RE.search(text) or _is_heading(text, detector):
            continue
        word_count = len(text.split())
        if not 2 <= word_count <= 15 or not _HAS_LETTER_RE.search(text):
            continue
        if _is_all_caps(text):
            if all_caps_candidate is None and detector.match_heading(text.title()) is None:
                all_caps_candidate = string.capwords(text)
            continue
        return text

    return all_caps_candidate


def _clean_name(raw: str) -> str | None:
    name = normalize_whitespace(raw).strip(_NAME_STRIP)
    if not name or not _HAS_LETTER_RE.search(name) or len(name.split()) > 6:
        return None
    return name


def _looks_like_name(text: str) -> bool:
    words = text.split()
    if not 2 <= len(words) <= 4:
        return False
    return all(word[:1].isupper() and word.rstrip(".").replace("-", "").replace("'", "").isalpha() for word in words)


def sniff_author(
    lines: Iterable[Line],
    settings: StructureSettings | None = None,
    *,
    title: str | None = None,
) -> str | None:
    """Return an author byline from the opening lines, or None.

    Explicit bylines are tried first, pattern by pattern, and only accepted
    when the captured text reads as a name; otherwise a short
    line of capitalized words between the third and tenth non-blank line is
    taken as a literal name guess.
    """

    active = settings or DEFAULT_SETTINGS
    texts = _non_blank(lines, active.author_scan_lines)
    detector = ChapterDetector(active)

    for pattern in _AUTHOR_PATTERNS:
        for text in texts:
            match = pattern.match(text)
            if match is None:
                continue
            name = _clean_name(match.group("name"))
            if name is not None and _looks_like_name(name):
                return name

    for text in texts[_GUESS_FIRST_LINE - 1 : _GUESS_LAST_LINE]:
        if title is not None and text.casefold() == title.casefold():
            continue
        if _is_all_caps(text) or _is_heading(text, detector) or _NON_TITLE_RE.search(text):
            continue
        if _looks_like_name(text):
            return text

    return None
