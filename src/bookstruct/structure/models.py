"""Canonical data structures shared by the structure-recovery stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


PARAGRAPH_SEPARATOR = "\n\n"


class ExtractionMethod(str, Enum):
    """Strategy that produced the final plain text of a document."""

    PRIMARY = "primary"
    SECONDARY_FALLBACK = "secondary-fallback"


class LineClass(Enum):
    BLANK = "blank"
    PAGE_NUMBER = "page_number"
    HEADER = "header"
    FOOTNOTE = "footnote"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Plain text of one source document plus the method that produced it.

    ``title``/``author`` carry embedded document metadata, when present.
    """

    text: str
    method: ExtractionMethod
    provider: str | None = None
    title: str | None = None
    author: str | None = None


@dataclass(frozen=True, slots=True)
class Line:
    """One raw line of extracted text and its position in the document."""

    raw: str
    trimmed: str
    index: int

    @classmethod
    def from_raw(cls, raw: str, index: int) -> "Line":
        return cls(raw=raw, trimmed=raw.strip(), index=index)


@dataclass(frozen=True, slots=True)
class Paragraph:
    """Cleaned paragraph with the range of source lines it was built from."""

    content: str
    start_line_index: int
    end_line_index: int


@dataclass(frozen=True, slots=True)
class Chapter:
    """Titled group of consecutive paragraphs.

    ``start_index``/``end_index`` are a half-open range of positions in the
    stitched paragraph list.
    """

    title: str
    content: str
    start_index: int
    end_index: int
    paragraphs: tuple[Paragraph, ...] = ()

    @classmethod
    def from_paragraphs(
        cls,
        title: str,
        paragraphs: tuple[Paragraph, ...],
        *,
        start_index: int,
    ) -> "Chapter":
        return cls(
            title=title,
            content=PARAGRAPH_SEPARATOR.join(paragraph.content for paragraph in paragraphs),
            start_index=start_index,
            end_index=start_index + len(paragraphs),
            paragraphs=paragraphs,
        )


@dataclass(frozen=True, slots=True)
class BookStructure:
    """Final logical structure recovered from one source document."""

    title: str | None = None
    author: str | None = None
    chapters: tuple[Chapter, ...] = field(default_factory=tuple)
    extraction_method: str = ExtractionMethod.PRIMARY.value

    @property
    def has_chapters(self) -> bool:
        return len(self.chapters) > 1

    def paragraphs(self) -> list[Paragraph]:
        """Flatten chapters back into the ordered paragraph list."""

        return [paragraph for chapter in self.chapters for paragraph in chapter.paragraphs]

    def to_dict(self) -> dict[str, object]:
        return {
            "title": self.title,
            "author": self.author,
            "chapters": [
                {
                    "title": chapter.title,
                    "content": chapter.content,
                    "startIndex": chapter.start_index,
                    "endIndex": chapter.end_index,
                }
                for chapter in self.chapters
            ],
            "hasChapters": self.has_chapters,
            "extractionMethod": self.extraction_method,
        }
