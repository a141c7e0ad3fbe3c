"""Chapter boundary detection and partitioning of the paragraph stream.

Two modes share one state machine.  Structural mode is used for text from
the primary extractor and accepts only explicit heading shapes.  OCR-lenient
mode is used for text from the secondary (OCR/vision) providers: heading
candidates are re-spaced first, looser shapes are accepted, and the chapter
substance floor is lower because OCR line boundaries are noisier.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
import logging
import re
from typing import Sequence

from bookstruct.structure.config import DEFAULT_SETTINGS, NUMBER_TOKEN, NUMBER_WORDS, StructureSettings
from bookstruct.structure.models import PARAGRAPH_SEPARATOR, Chapter, ExtractionMethod, Line, LineClass, Paragraph
from bookstruct.structure.normalization import normalize_ocr_text, normalize_text

logger = logging.getLogger(__name__)

_KEYWORD_RE = re.compile(
    r"^(?P<keyword>chapter|part|section|book)\s+(?P<number>" + NUMBER_TOKEN + r")\b"
    r"\s*[:.)\-–—]?\s*(?P<title>.*)$",
    re.IGNORECASE,
)
_SPECIAL_RE = re.compile(
    r"^(prologue|epilogue|introduction|conclusion|preface|foreword|afterword|"
    r"acknowledge?ments?|bibliography|index)$",
    re.IGNORECASE,
)
_NUMBERED_RE = re.compile(r"^(?P<number>\d{1,3})[.:)]?\s+(?P<title>[A-Z][^.!?]+)$")
_ROMAN_TITLE_RE = re.compile(r"^(?P<number>[IVXLC]+)[.:)]\s+(?P<title>[A-Z].+)$")
_LOOSE_ROMAN_TITLE_RE = re.compile(r"^(?P<number>[IVXLC]+)[.:)]?\s+(?P<title>[A-Z].+)$")
_BARE_ROMAN_RE = re.compile(r"^[IVXLC]+$")
_SMALL_NUMBER_RE = re.compile(r"^\d{1,3}$")
_TRAILING_PUNCT_RE = re.compile(r"[.!?,;]$")
_CONTINUATION_END_RE = re.compile(r"[.!?:\"'”’)]$")
_TITLE_STRIP = " \t:.-–—"
_NUMBER_WORD_SET = frozenset(NUMBER_WORDS)

_MAX_PAIR_NUMBER = 199
_OCR_UPPERCASE_LETTER_RATIO = 0.6


class DetectionMode(str, Enum):
    STRUCTURAL = "structural"
    OCR_LENIENT = "ocr-lenient"

    @classmethod
    def for_method(cls, method: ExtractionMethod | str) -> "DetectionMode":
        if ExtractionMethod(method) is ExtractionMethod.SECONDARY_FALLBACK:
            return cls.OCR_LENIENT
        return cls.STRUCTURAL


class BoundaryKind(str, Enum):
    KEYWORD = "keyword"
    SPECIAL = "special"
    NUMBERED = "numbered"
    ROMAN = "roman"
    ALL_CAPS = "all_caps"
    NUMBER_PAIR = "number_pair"
    BARE_ROMAN = "bare_roman"
    UPPERCASE = "uppercase"


@dataclass(frozen=True, slots=True)
class HeadingMatch:
    kind: BoundaryKind
    title: str | None
    label: str | None = None


@dataclass(frozen=True, slots=True)
class ChapterBoundary:
    """A detected heading and the source lines it occupies."""

    line_indices: tuple[int, ...]
    kind: BoundaryKind
    title: str | None
    label: str | None = None
    text: str = ""

    @property
    def line_index(self) -> int:
        return self.line_indices[0]


@dataclass(slots=True)
class _Section:
    heading: ChapterBoundary | None
    start_index: int
    paragraphs: list[Paragraph] = field(default_factory=list)

    def content_length(self) -> int:
        return len(PARAGRAPH_SEPARATOR.join(paragraph.content for paragraph in self.paragraphs))


def _clean_title(raw: str) -> str | None:
    title = raw.strip(_TITLE_STRIP)
    return title or None


def _format_number(token: str) -> str:
    if token.isdigit():
        return token
    if token.casefold() in _NUMBER_WORD_SET:
        return token.capitalize()
    return token.upper()


def _letters_all_upper(text: str, *, minimum_letters: int = 2) -> bool:
    letters = [char for char in text if char.isalpha()]
    return len(letters) >= minimum_letters and all(char.isupper() for char in letters)


def _letter_uppercase_ratio(text: str) -> float:
    letters = [char for char in text if char.isalpha()]
    if not letters:
        return 0.0
    return sum(1 for char in letters if char.isupper()) / len(letters)


def _prefer(pending: ChapterBoundary | None, incoming: ChapterBoundary) -> ChapterBoundary:
    """Pick the heading for a section whose consecutive headings had no content between them."""

    if pending is None:
        return incoming
    if incoming.title is None and pending.title is not None:
        return pending
    return incoming


class ChapterDetector:
    """Find chapter headings and split paragraphs into chapters."""

    def __init__(
        self,
        settings: StructureSettings | None = None,
        mode: DetectionMode = DetectionMode.STRUCTURAL,
    ) -> None:
        self._settings = settings or DEFAULT_SETTINGS
        self._mode = mode

    @property
    def mode(self) -> DetectionMode:
        return self._mode

    @property
    def min_chapter_chars(self) -> int:
        if self._mode is DetectionMode.OCR_LENIENT:
            return self._settings.ocr_min_chapter_chars
        return self._settings.structural_min_chapter_chars

    def match_heading(self, text: str) -> HeadingMatch | None:
        """Return the heading shape *text* matches, or None for body text."""

        lenient = self._mode is DetectionMode.OCR_LENIENT
        candidate = normalize_ocr_text(text) if lenient else text.strip()
        if not candidate or len(candidate) > self._settings.max_heading_chars:
            return None

        keyword = _KEYWORD_RE.match(candidate)
        if keyword:
            label = f"{keyword.group('keyword').capitalize()} {_format_number(keyword.group('number'))}"
            return HeadingMatch(BoundaryKind.KEYWORD, _clean_title(keyword.group("title")), label)

        if _SPECIAL_RE.match(candidate):
            return HeadingMatch(BoundaryKind.SPECIAL, candidate.capitalize() if candidate.isupper() else candidate)

        numbered = _NUMBERED_RE.match(candidate)
        if numbered:
            return HeadingMatch(BoundaryKind.NUMBERED, _clean_title(numbered.group("title")))

        roman = (_LOOSE_ROMAN_TITLE_RE if lenient else _ROMAN_TITLE_RE).match(candidate)
        if roman:
            return HeadingMatch(BoundaryKind.ROMAN, _clean_title(roman.group("title")), f"Chapter {roman.group('number')}")

        if _TRAILING_PUNCT_RE.search(candidate):
            return None

        minimum_length = 3 if lenient else 4
        if len(candidate) >= minimum_length and _letters_all_upper(candidate):
            return HeadingMatch(BoundaryKind.ALL_CAPS, candidate)

        if not lenient:
            return None

        if _BARE_ROMAN_RE.match(candidate):
            return HeadingMatch(BoundaryKind.BARE_ROMAN, None, f"Chapter {candidate}")

        if (
            len(candidate) < self._settings.max_header_length
            and sum(1 for char in candidate if char.isalpha()) >= 3
            and _letter_uppercase_ratio(candidate) >= _OCR_UPPERCASE_LETTER_RATIO
        ):
            return HeadingMatch(BoundaryKind.UPPERCASE, candidate)

        return None

    def _stands_alone(self, classified: Sequence[tuple[Line, LineClass]], position: int) -> bool:
        """Return True when a content line would form a paragraph on its own."""

        text = classified[position][0].trimmed
        if len(text) > self._settings.max_heading_chars or _TRAILING_PUNCT_RE.search(text):
            return False

        if position > 0:
            previous, previous_class = classified[position - 1]
            if previous_class is LineClass.PARAGRAPH and not _CONTINUATION_END_RE.search(previous.trimmed):
                return False

        if position + 1 < len(classified):
            following, following_class = classified[position + 1]
            if following_class is LineClass.PARAGRAPH and following.trimmed[:1].islower():
                return False

        return True

    def _number_pair(
        self,
        classified: Sequence[tuple[Line, LineClass]],
        position: int,
    ) -> ChapterBoundary | None:
        number_line = classified[position][0]
        if int(number_line.trimmed) > _MAX_PAIR_NUMBER:
            return None

        for next_position in range(position + 1, len(classified)):
            title_line, title_class = classified[next_position]
            if title_class is LineClass.BLANK:
                continue
            title_text = normalize_ocr_text(title_line.trimmed)
            if (
                title_class in (LineClass.PAGE_NUMBER, LineClass.FOOTNOTE)
                or not title_text[:1].isupper()
                or len(title_text) > self._settings.max_header_length
                or _TRAILING_PUNCT_RE.search(title_text)
            ):
                return None
            if title_class is LineClass.PARAGRAPH and not self._stands_alone(classified, next_position):
                return None

            heading = self.match_heading(title_text)
            if heading is not None and heading.kind is BoundaryKind.KEYWORD:
                title, label = heading.title, heading.label
            else:
                title, label = title_text, f"Chapter {number_line.trimmed}"
            return ChapterBoundary(
                line_indices=(number_line.index, title_line.index),
                kind=BoundaryKind.NUMBER_PAIR,
                title=title,
                label=label,
                text=f"{number_line.trimmed} {title_text}",
            )
        return None

    def find_boundaries(self, classified: Sequence[tuple[Line, LineClass]]) -> list[ChapterBoundary]:
        """Scan classified lines for chapter headings in document order."""

        lenient = self._mode is DetectionMode.OCR_LENIENT
        boundaries: list[ChapterBoundary] = []
        consumed: set[int] = set()

        for position, (line, line_class) in enumerate(classified):
            if line.index in consumed or line_class in (LineClass.BLANK, LineClass.FOOTNOTE):
                continue
            if line_class is LineClass.PARAGRAPH and not self._stands_alone(classified, position):
                continue

            if lenient and _SMALL_NUMBER_RE.match(line.trimmed):
                pair = self._number_pair(classified, position)
                if pair is not None:
                    boundaries.append(pair)
                    consumed.update(pair.line_indices)
                    continue

            if line_class is LineClass.PAGE_NUMBER:
                continue

            heading = self.match_heading(line.trimmed)
            if heading is None:
                continue
            boundaries.append(
                ChapterBoundary(
                    line_indices=(line.index,),
                    kind=heading.kind,
                    title=heading.title,
                    label=heading.label,
                    text=line.trimmed,
                )
            )

        kept = self._drop_running_headers(boundaries)
        logger.debug("Detected %d chapter boundaries (%s mode)", len(kept), self._mode.value)
        return kept

    def _drop_running_headers(self, boundaries: list[ChapterBoundary]) -> list[ChapterBoundary]:
        def key(boundary: ChapterBoundary) -> str:
            return normalize_text(re.sub(r"\d+", "#", boundary.text))

        counts = Counter(key(boundary) for boundary in boundaries if boundary.kind is not BoundaryKind.KEYWORD)
        repeats = self._settings.running_header_repeats
        return [
            boundary
            for boundary in boundaries
            if boundary.kind is BoundaryKind.KEYWORD or counts[key(boundary)] < repeats
        ]

    def partition(
        self,
        paragraphs: Sequence[Paragraph],
        boundaries: Sequence[ChapterBoundary],
        *,
        fallback_title: str | None = None,
    ) -> list[Chapter]:
        """Group paragraphs into chapters at the given boundaries.

        Consecutive headings without content between them collapse into one.
        Sections whose joined content is not over the substance floor are
        discarded, unless no section reaches the floor at all.
        """

        whole_title = fallback_title or self._settings.fallback_chapter_title
        if not paragraphs:
            return []
        if not boundaries:
            return [Chapter.from_paragraphs(whole_title, tuple(paragraphs), start_index=0)]

        ordered = sorted(boundaries, key=lambda boundary: boundary.line_index)
        sections: list[_Section] = []
        current = _Section(heading=None, start_index=0)
        cursor = 0

        for position, paragraph in enumerate(paragraphs):
            while cursor < len(ordered) and ordered[cursor].line_index < paragraph.start_line_index:
                boundary = ordered[cursor]
                cursor += 1
                if current.paragraphs:
                    sections.append(current)
                    current = _Section(heading=boundary, start_index=position)
                else:
                    current.heading = _prefer(current.heading, boundary)
                    current.start_index = position
            current.paragraphs.append(paragraph)

        if current.paragraphs:
            sections.append(current)

        floor = self.min_chapter_chars
        substantial = [section for section in sections if section.content_length() > floor]
        if substantial:
            dropped = len(sections) - len(substantial)
            if dropped:
                logger.debug("Dropped %d section(s) under the %d-char floor", dropped, floor)
            sections = substantial

        chapters: list[Chapter] = []
        for ordinal, section in enumerate(sections, start=1):
            heading = section.heading
            if heading is None:
                title = whole_title
            else:
                title = heading.title or heading.label or f"Chapter {ordinal}"
            chapters.append(
                Chapter.from_paragraphs(title, tuple(section.paragraphs), start_index=section.start_index)
            )
        return chapters
