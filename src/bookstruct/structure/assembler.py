"""Merge classified lines into paragraphs."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Iterable

from bookstruct.structure.models import Line, LineClass, Paragraph
from bookstruct.structure.normalization import clean_text

_SENTENCE_END_RE = re.compile(r"[.!?]\s*$")


@dataclass(slots=True)
class _ParagraphBuffer:
    fragments: list[str] = field(default_factory=list)
    pending_hyphen: bool = False
    start_line_index: int = -1
    end_line_index: int = -1

    def append(self, fragment: str, line_index: int) -> None:
        if not self.fragments:
            self.start_line_index = line_index
            self.fragments.append(fragment)
        elif self.pending_hyphen:
            self.fragments[-1] = self.fragments[-1][:-1] + fragment
        else:
            self.fragments.append(fragment)
        self.pending_hyphen = fragment.endswith("-")
        self.end_line_index = line_index

    def close(self) -> Paragraph | None:
        content = clean_text(" ".join(self.fragments))
        if not content:
            return None
        return Paragraph(
            content=content,
            start_line_index=self.start_line_index,
            end_line_index=self.end_line_index,
        )


def assemble_paragraphs(
    classified: Iterable[tuple[Line, LineClass]],
    *,
    close_on_sentence_end: bool = True,
    breaks: Iterable[int] = (),
) -> list[Paragraph]:
    """Build paragraphs from classified lines.

    Blank lines and non-content lines close the open paragraph; lines listed
    in *breaks* (detected chapter headings) are treated the same way.  A line
    ending in a hyphen is joined to the next one without a space and without
    the hyphen.  With *close_on_sentence_end*, a fragment ending in ``.``,
    ``!`` or ``?`` closes its paragraph even without a following blank line.
    """

    break_indices = frozenset(breaks)
    paragraphs: list[Paragraph] = []
    buffer = _ParagraphBuffer()

    def flush() -> None:
        nonlocal buffer
        if buffer.fragments:
            paragraph = buffer.close()
            if paragraph is not None:
                paragraphs.append(paragraph)
        buffer = _ParagraphBuffer()

    for line, line_class in classified:
        if line_class is not LineClass.PARAGRAPH or line.index in break_indices:
            flush()
            continue

        fragment = clean_text(line.trimmed)
        buffer.append(fragment, line.index)
        if close_on_sentence_end and _SENTENCE_END_RE.search(fragment):
            flush()

    flush()
    return paragraphs


def is_blank_delimited(
    classified: Iterable[tuple[Line, LineClass]],
    *,
    max_block_lines: int,
) -> bool:
    """Return True when blank lines separate short blocks of text.

    In such text blank lines are the paragraph signal and closing on every
    sentence end would split paragraphs into single sentences.
    """

    blocks = 0
    content_lines = 0
    in_block = False
    for _, line_class in classified:
        if line_class is LineClass.BLANK:
            in_block = False
            continue
        content_lines += 1
        if not in_block:
            blocks += 1
            in_block = True

    if blocks < 2:
        return False
    return content_lines / blocks <= max_block_lines
