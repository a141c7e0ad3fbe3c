"""Structure recovery pipeline: extracted text in, ``BookStructure`` out."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from bookstruct.extraction.config import ExtractionSettings
from bookstruct.extraction.selector import ExtractionStrategySelector
from bookstruct.structure.assembler import assemble_paragraphs, is_blank_delimited
from bookstruct.structure.chapters import ChapterDetector, DetectionMode
from bookstruct.structure.classifier import classify_lines
from bookstruct.structure.config import DEFAULT_SETTINGS, StructureSettings
from bookstruct.structure.errors import EmptyInputError, NoParagraphsError
from bookstruct.structure.metadata import sniff_author, sniff_title
from bookstruct.structure.models import (
    PARAGRAPH_SEPARATOR,
    BookStructure,
    ExtractionMethod,
    Line,
    LineClass,
    Paragraph,
)
from bookstruct.structure.stitching import stitch_page_breaks

logger = logging.getLogger(__name__)


def _build_paragraphs(
    classified: Sequence[tuple[Line, LineClass]],
    settings: StructureSettings,
    *,
    breaks: Iterable[int] = (),
) -> list[Paragraph]:
    break_indices = tuple(breaks)
    close_on_sentence_end = not is_blank_delimited(classified, max_block_lines=settings.blank_block_max_lines)
    assembled = assemble_paragraphs(
        classified,
        close_on_sentence_end=close_on_sentence_end,
        breaks=break_indices,
    )
    kept = [paragraph for paragraph in assembled if len(paragraph.content) > settings.min_paragraph_chars]
    return stitch_page_breaks(kept, settings, barriers=break_indices)


class StructureParser:
    """Turn already-extracted plain text into paragraphs and chapters."""

    def __init__(self, settings: StructureSettings | None = None) -> None:
        self._settings = settings or DEFAULT_SETTINGS

    @property
    def settings(self) -> StructureSettings:
        return self._settings

    def parse_text(
        self,
        text: str,
        method: ExtractionMethod | str = ExtractionMethod.PRIMARY,
        *,
        title_hint: str | None = None,
        author_hint: str | None = None,
    ) -> BookStructure:
        """Recover the book structure from *text*.

        *method* selects the chapter detection mode.  The hints are embedded
        document metadata and are only used when nothing is found in the text.
        """

        if not text or not text.strip():
            raise EmptyInputError(message="Extracted text is empty", stage="extract")

        extraction_method = ExtractionMethod(method)
        settings = self._settings
        classified = classify_lines(text, settings)

        detector = ChapterDetector(settings, DetectionMode.for_method(extraction_method))
        boundaries = detector.find_boundaries(classified)
        heading_lines = [index for boundary in boundaries for index in boundary.line_indices]

        paragraphs = _build_paragraphs(classified, settings, breaks=heading_lines)
        if not paragraphs:
            raise NoParagraphsError(message="No paragraphs survived line classification", stage="assemble")

        lines = [line for line, _ in classified]
        title = sniff_title(lines, settings) or title_hint
        author = sniff_author(lines, settings, title=title) or author_hint

        chapters = detector.partition(paragraphs, boundaries, fallback_title=title)
        logger.info(
            "Recovered %d paragraph(s) in %d chapter(s) (method=%s)",
            len(paragraphs),
            len(chapters),
            extraction_method.value,
        )
        return BookStructure(
            title=title,
            author=author,
            chapters=tuple(chapters),
            extraction_method=extraction_method.value,
        )


def split_paragraphs(text: str, settings: StructureSettings | None = None) -> list[Paragraph]:
    """Split *text* into stitched paragraphs without chapter or title detection."""

    if not text or not text.strip():
        return []
    active = settings or DEFAULT_SETTINGS
    return _build_paragraphs(classify_lines(text, active), active)


def paragraphs_to_text(paragraphs: Iterable[Paragraph]) -> str:
    return PARAGRAPH_SEPARATOR.join(paragraph.content for paragraph in paragraphs)


def save_paragraphs(paragraphs: Iterable[Paragraph], path: Path) -> Path:
    """Write paragraphs separated by blank lines and return the written path."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(paragraphs_to_text(paragraphs), encoding="utf-8")
    return path


async def parse_book(
    raw: bytes,
    *,
    extraction: ExtractionSettings | None = None,
    settings: StructureSettings | None = None,
    selector: ExtractionStrategySelector | None = None,
) -> BookStructure:
    """Extract text from *raw* document bytes and recover its structure."""

    active_selector = selector or ExtractionStrategySelector(extraction or ExtractionSettings())
    result = await active_selector.select(raw)
    return StructureParser(settings).parse_text(
        result.text,
        result.method,
        title_hint=result.title,
        author_hint=result.author,
    )
