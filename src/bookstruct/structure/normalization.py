"""Text normalization helpers used by the structure stages."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.!?;:,])")

_CASE_TRANSITION_RE = re.compile(r"([a-z])([A-Z])")
_DIGIT_LETTER_RE = re.compile(r"(\d)(?!(?:st|nd|rd|th)\b)([A-Za-z])")
_LETTER_DIGIT_RE = re.compile(r"([A-Za-z])(\d)")
_CHAPTER_MISREAD_RE = re.compile(
    r"\b[CG]\s?[hbn]\s?a\s?[pq]\s?[tl1]\s?[ec]\s?[rk]\b",
    re.IGNORECASE,
)
_SPLIT_ROMAN_RE = re.compile(r"\b[IVXLC](?:\s[IVXLC])+\b")


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_text(text: str) -> str:
    """Collapse whitespace and drop spaces that precede punctuation."""

    return normalize_whitespace(_SPACE_BEFORE_PUNCT_RE.sub(r"\1", text))


def normalize_text(text: str) -> str:
    """Produce stable text for comparisons (running headers, markers)."""

    normalized = unicodedata.normalize("NFKC", text)
    return normalize_whitespace(normalized).casefold()


def normalize_lines(text: str) -> str:
    """Unify line endings and strip trailing padding while keeping indentation."""

    unified = text.replace("\r\n", "\n").replace("\r", "\n").replace("\f", "\n\n")
    return "\n".join(line.expandtabs(4).rstrip() for line in unified.replace("\v", " ").split("\n"))


def _fix_chapter_misread(match: re.Match[str]) -> str:
    word = match.group(0)
    letters = [char for char in word if char.isalpha()]
    if letters and all(char.isupper() for char in letters):
        return "CHAPTER"
    return "Chapter"


def _join_roman(match: re.Match[str]) -> str:
    return match.group(0).replace(" ", "")


def normalize_ocr_text(text: str) -> str:
    """Re-space OCR output and repair common heading misreads.

    Spaces are reinserted at lowercase-to-uppercase and digit/letter
    transitions (ordinal suffixes such as ``1st`` are left alone), misread
    spellings of "chapter" are restored, and roman numerals split by stray
    spaces (``X I V``) are collapsed.
    """

    respaced = _CASE_TRANSITION_RE.sub(r"\1 \2", text)
    respaced = _DIGIT_LETTER_RE.sub(r"\1 \2", respaced)
    respaced = _LETTER_DIGIT_RE.sub(r"\1 \2", respaced)
    respaced = _CHAPTER_MISREAD_RE.sub(_fix_chapter_misread, respaced)
    respaced = _SPLIT_ROMAN_RE.sub(_join_roman, respaced)
    return normalize_whitespace(respaced)
