"""Tunable thresholds and pattern tables for structure recovery."""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
import re
from typing import Mapping


DEFAULT_PAGE_WIDTH = 80
DEFAULT_UPPERCASE_RATIO_THRESHOLD = 0.7
DEFAULT_MAX_HEADER_LENGTH = 60
DEFAULT_CENTERED_TEXT_THRESHOLD = 0.2
DEFAULT_STRUCTURAL_MIN_CHAPTER_CHARS = 200
DEFAULT_OCR_MIN_CHAPTER_CHARS = 100
DEFAULT_MIN_PARAGRAPH_CHARS = 0
DEFAULT_MAX_HEADING_CHARS = 80
DEFAULT_TITLE_SCAN_LINES = 10
DEFAULT_AUTHOR_SCAN_LINES = 20
DEFAULT_BLANK_BLOCK_MAX_LINES = 12
DEFAULT_RUNNING_HEADER_REPEATS = 3
DEFAULT_FALLBACK_CHAPTER_TITLE = "Content"

EXCLUDE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^table of contents", re.IGNORECASE),
    re.compile(r"^index$", re.IGNORECASE),
    re.compile(r"^bibliography", re.IGNORECASE),
    re.compile(r"^references$", re.IGNORECASE),
    re.compile(r"^appendix", re.IGNORECASE),
    re.compile(r"^copyright", re.IGNORECASE),
    re.compile(r"^isbn", re.IGNORECASE),
    re.compile(r"^printed in", re.IGNORECASE),
    re.compile(r"^published by", re.IGNORECASE),
)

PAGE_NUMBER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d+$"),
    re.compile(r"^page\s+\d+(\s+of\s+\d+)?$", re.IGNORECASE),
    re.compile(r"^pp?\.\s*\d+(\s*[-–—]\s*\d+)?$", re.IGNORECASE),
    re.compile(r"^\[\s*\d+\s*\]$"),
    re.compile(r"^\(\s*\d+\s*\)$"),
    re.compile(r"^\|\s*\d+\s*\|$"),
    re.compile(r"^[-–—]\s*\d+\s*[-–—]$"),
    re.compile(r"^[-–—]\s*\d+$"),
    re.compile(r"^\d+\s*[-–—]$"),
    re.compile(r"^\d+\s*[-–—]\s*\d+$"),
)

FOOTNOTE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\[\d+\]\s+\S"),
    re.compile(r"^\*+\s"),
    re.compile(r"^ibid\b", re.IGNORECASE),
    re.compile(r"^op\.\s*cit\b", re.IGNORECASE),
    re.compile(r"^cf\.\s", re.IGNORECASE),
)

NUMBER_WORDS: tuple[str, ...] = (
    "one", "two", "three", "four", "five", "six", "seven", "eight", "nine", "ten",
    "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen", "seventeen",
    "eighteen", "nineteen", "twenty", "thirty", "forty", "fifty",
    "first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth",
    "ninth", "tenth", "last", "final",
)
NUMBER_TOKEN = r"(?:\d+|[ivxlcdm]+|" + "|".join(NUMBER_WORDS) + r")"

HEADING_KEYWORD_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^(chapter|part|section|book)\s+" + NUMBER_TOKEN + r"\b", re.IGNORECASE),
    re.compile(
        r"^(prologue|epilogue|introduction|conclusion|preface|acknowledge?ments?|bibliography|index)$",
        re.IGNORECASE,
    ),
)

# Closed list of words that cannot end a paragraph; membership is tunable.
DANGLING_WORDS: frozenset[str] = frozenset(
    {
        "and", "or", "but", "nor", "the", "a", "an", "in", "on", "at", "to", "for",
        "with", "by", "from", "of", "up", "about", "into", "through", "during",
        "before", "after", "above", "below", "over", "under", "however", "therefore",
        "nevertheless", "furthermore", "moreover", "additionally", "consequently",
        "subsequently", "meanwhile", "otherwise", "nonetheless", "thus", "hence",
        "accordingly", "indeed", "certainly", "obviously", "clearly", "apparently",
        "presumably", "arguably", "essentially", "basically", "generally",
        "specifically", "particularly", "especially", "notably", "remarkably",
        "surprisingly", "unfortunately", "fortunately", "interestingly",
        "importantly", "significantly", "ultimately", "finally", "initially",
        "originally", "previously", "recently", "currently", "eventually",
        "immediately", "suddenly", "gradually", "slowly", "quickly", "rapidly",
        "carefully", "gently", "firmly", "strongly", "deeply", "highly", "extremely",
        "very", "quite", "rather", "somewhat", "slightly", "barely", "hardly",
        "scarcely", "almost", "nearly", "approximately", "roughly", "exactly",
        "precisely", "definitely", "probably", "possibly", "perhaps", "maybe",
        "likely", "unlikely", "evidently", "supposedly", "allegedly", "reportedly",
        "seemingly",
    }
)


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    value = int(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_ratio(*, name: str, raw_value: str) -> float:
    value = float(raw_value)
    if not 0.0 < value <= 1.0:
        raise ValueError(f"{name} must be in (0, 1]")
    return value


@dataclass(frozen=True, slots=True)
class StructureSettings:
    """Read-only configuration injected into every structure stage."""

    page_width: int = DEFAULT_PAGE_WIDTH
    uppercase_ratio_threshold: float = DEFAULT_UPPERCASE_RATIO_THRESHOLD
    max_header_length: int = DEFAULT_MAX_HEADER_LENGTH
    centered_text_threshold: float = DEFAULT_CENTERED_TEXT_THRESHOLD
    structural_min_chapter_chars: int = DEFAULT_STRUCTURAL_MIN_CHAPTER_CHARS
    ocr_min_chapter_chars: int = DEFAULT_OCR_MIN_CHAPTER_CHARS
    min_paragraph_chars: int = DEFAULT_MIN_PARAGRAPH_CHARS
    max_heading_chars: int = DEFAULT_MAX_HEADING_CHARS
    title_scan_lines: int = DEFAULT_TITLE_SCAN_LINES
    author_scan_lines: int = DEFAULT_AUTHOR_SCAN_LINES
    blank_block_max_lines: int = DEFAULT_BLANK_BLOCK_MAX_LINES
    running_header_repeats: int = DEFAULT_RUNNING_HEADER_REPEATS
    fallback_chapter_title: str = DEFAULT_FALLBACK_CHAPTER_TITLE
    exclude_patterns: tuple[re.Pattern[str], ...] = EXCLUDE_PATTERNS
    page_number_patterns: tuple[re.Pattern[str], ...] = PAGE_NUMBER_PATTERNS
    footnote_patterns: tuple[re.Pattern[str], ...] = FOOTNOTE_PATTERNS
    heading_keyword_patterns: tuple[re.Pattern[str], ...] = HEADING_KEYWORD_PATTERNS
    dangling_words: frozenset[str] = DANGLING_WORDS

    def with_overrides(self, **changes: object) -> "StructureSettings":
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "StructureSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ
        defaults = cls()

        page_width_raw = source.get("BOOKSTRUCT_PAGE_WIDTH", str(defaults.page_width)).strip()
        structural_raw = source.get(
            "BOOKSTRUCT_STRUCTURAL_MIN_CHAPTER_CHARS", str(defaults.structural_min_chapter_chars)
        ).strip()
        ocr_raw = source.get("BOOKSTRUCT_OCR_MIN_CHAPTER_CHARS", str(defaults.ocr_min_chapter_chars)).strip()
        paragraph_raw = source.get("BOOKSTRUCT_MIN_PARAGRAPH_CHARS", str(defaults.min_paragraph_chars)).strip()
        ratio_raw = source.get(
            "BOOKSTRUCT_UPPERCASE_RATIO_THRESHOLD", str(defaults.uppercase_ratio_threshold)
        ).strip()
        header_length_raw = source.get("BOOKSTRUCT_MAX_HEADER_LENGTH", str(defaults.max_header_length)).strip()

        if not page_width_raw:
            raise ValueError("BOOKSTRUCT_PAGE_WIDTH cannot be empty")
        if not structural_raw:
            raise ValueError("BOOKSTRUCT_STRUCTURAL_MIN_CHAPTER_CHARS cannot be empty")
        if not ocr_raw:
            raise ValueError("BOOKSTRUCT_OCR_MIN_CHAPTER_CHARS cannot be empty")
        if not paragraph_raw:
            raise ValueError("BOOKSTRUCT_MIN_PARAGRAPH_CHARS cannot be empty")
        if not ratio_raw:
            raise ValueError("BOOKSTRUCT_UPPERCASE_RATIO_THRESHOLD cannot be empty")
        if not header_length_raw:
            raise ValueError("BOOKSTRUCT_MAX_HEADER_LENGTH cannot be empty")

        return cls(
            page_width=_parse_positive_int(name="BOOKSTRUCT_PAGE_WIDTH", raw_value=page_width_raw),
            structural_min_chapter_chars=_parse_positive_int(
                name="BOOKSTRUCT_STRUCTURAL_MIN_CHAPTER_CHARS", raw_value=structural_raw, minimum=0
            ),
            ocr_min_chapter_chars=_parse_positive_int(
                name="BOOKSTRUCT_OCR_MIN_CHAPTER_CHARS", raw_value=ocr_raw, minimum=0
            ),
            min_paragraph_chars=_parse_positive_int(
                name="BOOKSTRUCT_MIN_PARAGRAPH_CHARS", raw_value=paragraph_raw, minimum=0
            ),
            uppercase_ratio_threshold=_parse_ratio(
                name="BOOKSTRUCT_UPPERCASE_RATIO_THRESHOLD", raw_value=ratio_raw
            ),
            max_header_length=_parse_positive_int(
                name="BOOKSTRUCT_MAX_HEADER_LENGTH", raw_value=header_length_raw
            ),
        )


DEFAULT_SETTINGS = StructureSettings()
