"""Per-line labelling of extracted text.

Rules are checked in priority order and the first match wins.  Page-number
patterns are tested ahead of the short-line heuristics so that short
numeric markers (``42``, ``- 8 -``, ``[5]``) are labelled as page numbers
instead of being rescued as content.
"""

from __future__ import annotations

import logging
import re

from bookstruct.structure.config import DEFAULT_SETTINGS, StructureSettings
from bookstruct.structure.models import Line, LineClass
from bookstruct.structure.normalization import normalize_lines

logger = logging.getLogger(__name__)

_ROMAN_RE = re.compile(r"^[IVX]+$")
_SHORT_NON_CONTENT_RE = re.compile(r"^[\d\-|.]+$")
_PURE_NUMBER_RE = re.compile(r"^\d+$")
_ALL_CAPS_RE = re.compile(r"^[A-Z\s]+$")

_SHORT_CONTENT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^[\"'“‘].*[\"'”’]$"),
    re.compile(r"[.!?]$"),
    re.compile(r"^[a-z]"),
    re.compile(
        r"\b(yes|no|okay|oh|ah|well|but|and|or|so|if|when|where|how|what|why|who|the|a|an|"
        r"in|on|at|to|for|with|by|from|up|about|into|through|during|before|after|above|"
        r"below|over|under)\b",
        re.IGNORECASE,
    ),
    re.compile(r"[a-z].*[a-z]"),
)


def uppercase_ratio(text: str) -> float:
    if not text:
        return 0.0
    return sum(1 for char in text if "A" <= char <= "Z") / len(text)


def _matches_any(patterns: tuple[re.Pattern[str], ...], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


class LineClassifier:
    """Label single lines as blank, page number, header, footnote or paragraph."""

    def __init__(self, settings: StructureSettings | None = None) -> None:
        self._settings = settings or DEFAULT_SETTINGS

    @property
    def settings(self) -> StructureSettings:
        return self._settings

    def is_page_number(self, text: str) -> bool:
        return _matches_any(self._settings.page_number_patterns, text.strip())

    def classify(self, line: Line, *, page_width: int | None = None) -> LineClass:
        settings = self._settings
        trimmed = line.trimmed
        width = page_width or settings.page_width

        if not trimmed:
            return LineClass.BLANK

        if _matches_any(settings.exclude_patterns, trimmed):
            logger.debug("Header (exclude pattern): %r", trimmed)
            return LineClass.HEADER

        if self.is_page_number(trimmed):
            logger.debug("Page number: %r", trimmed)
            return LineClass.PAGE_NUMBER

        length = len(trimmed)
        if length < 3:
            if _ROMAN_RE.match(trimmed) or _SHORT_NON_CONTENT_RE.match(trimmed):
                logger.debug("Header (short pattern): %r", trimmed)
                return LineClass.HEADER
            return LineClass.PARAGRAPH

        if length < 10:
            if _matches_any(_SHORT_CONTENT_PATTERNS, trimmed):
                return LineClass.PARAGRAPH
            if _ROMAN_RE.match(trimmed) or _PURE_NUMBER_RE.match(trimmed) or _ALL_CAPS_RE.match(trimmed):
                logger.debug("Header (short header pattern): %r", trimmed)
                return LineClass.HEADER
            return LineClass.PARAGRAPH

        if (
            uppercase_ratio(trimmed) > settings.uppercase_ratio_threshold
            and length < settings.max_header_length
        ):
            logger.debug("Header (uppercase): %r", trimmed)
            return LineClass.HEADER

        leading_spaces = len(line.raw) - len(line.raw.lstrip())
        if leading_spaces > width * settings.centered_text_threshold and length < settings.max_header_length:
            logger.debug("Header (centered): %r", trimmed)
            return LineClass.HEADER

        if _matches_any(settings.footnote_patterns, trimmed):
            logger.debug("Footnote: %r", trimmed)
            return LineClass.FOOTNOTE

        if _matches_any(settings.heading_keyword_patterns, trimmed):
            logger.debug("Header (heading keyword): %r", trimmed)
            return LineClass.HEADER

        return LineClass.PARAGRAPH


def split_lines(text: str) -> list[Line]:
    """Split raw extracted text into indexed lines."""

    return [Line.from_raw(raw, index) for index, raw in enumerate(normalize_lines(text).split("\n"))]


def classify_lines(
    text: str,
    settings: StructureSettings | None = None,
) -> list[tuple[Line, LineClass]]:
    """Split *text* into lines and label each one."""

    classifier = LineClassifier(settings)
    return [(line, classifier.classify(line)) for line in split_lines(text)]
