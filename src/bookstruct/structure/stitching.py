"""Rejoin paragraphs that were split by a physical page boundary."""

from __future__ import annotations

from bisect import bisect_right
from functools import reduce
import re
from typing import Iterable, Sequence

from bookstruct.structure.config import DEFAULT_SETTINGS, StructureSettings
from bookstruct.structure.models import Paragraph
from bookstruct.structure.normalization import clean_text

_TERMINAL_RE = re.compile(r"[.!?;:]$")
_CLOSING_MARKS = "\"'”’)]»"
_LOWERCASE_START_RE = re.compile(r"^[\"'“‘(\[«]?[a-z]")


def _ends_terminal(text: str) -> bool:
    return bool(_TERMINAL_RE.search(text.rstrip(_CLOSING_MARKS)))


def _last_word(text: str) -> str:
    words = text.split()
    return words[-1].casefold() if words else ""


def should_merge(previous: str, candidate: str, settings: StructureSettings = DEFAULT_SETTINGS) -> bool:
    """Return True when *candidate* continues *previous* across a page break."""

    if not _ends_terminal(previous) and _LOWERCASE_START_RE.match(candidate):
        return True
    if previous.endswith("-"):
        return True
    return _last_word(previous) in settings.dangling_words


def _join(previous: Paragraph, candidate: Paragraph) -> Paragraph:
    if previous.content.endswith("-"):
        merged = previous.content[:-1] + candidate.content
    else:
        merged = previous.content + " " + candidate.content
    return Paragraph(
        content=clean_text(merged),
        start_line_index=previous.start_line_index,
        end_line_index=candidate.end_line_index,
    )


def stitch_page_breaks(
    paragraphs: Sequence[Paragraph],
    settings: StructureSettings | None = None,
    *,
    barriers: Iterable[int] = (),
) -> list[Paragraph]:
    """Merge adjacent paragraphs that carry page-break fingerprints.

    Paragraphs separated by a line listed in *barriers* (a detected chapter
    heading) are never merged.
    """

    active = settings or DEFAULT_SETTINGS
    barrier_indices = sorted(set(barriers))

    def crosses_barrier(previous: Paragraph, candidate: Paragraph) -> bool:
        position = bisect_right(barrier_indices, previous.end_line_index)
        return position < len(barrier_indices) and barrier_indices[position] < candidate.start_line_index

    def step(merged: tuple[Paragraph, ...], candidate: Paragraph) -> tuple[Paragraph, ...]:
        if not merged:
            return (candidate,)
        previous = merged[-1]
        if crosses_barrier(previous, candidate) or not should_merge(previous.content, candidate.content, active):
            return merged + (candidate,)
        return merged[:-1] + (_join(previous, candidate),)

    return list(reduce(step, paragraphs, ()))
