from __future__ import annotations

import pytest

from bookstruct.structure.config import StructureSettings
from bookstruct.structure.models import Paragraph
from bookstruct.structure.stitching import should_merge, stitch_page_breaks


@pytest.mark.parametrize(
    ("previous", "candidate"),
    [
        ("The cat sat quietly on the", "mat and purred."),
        ("A well-", "Known fact."),
        ("He walked slowly into the", "Garden of the house."),
        ("She hesitated for a moment and", "Turned away."),
        ("He said it was", "“not his fault.”"),
    ],
)
def test_page_break_fingerprints_merge(previous: str, candidate: str) -> None:
    assert should_merge(previous, candidate)


@pytest.mark.parametrize(
    ("previous", "candidate"),
    [
        ("He left.", "She stayed."),
        ("He left.", "then she stayed."),
        ('He shouted "stop."', "then he left."),
        ("The list was long:", "apples first."),
        ("Nobody answered", "The door stayed shut."),
    ],
)
def test_complete_paragraphs_stay_apart(previous: str, candidate: str) -> None:
    assert not should_merge(previous, candidate)


def test_dangling_words_come_from_settings() -> None:
    settings = StructureSettings(dangling_words=frozenset({"answered"}))

    assert should_merge("Nobody answered", "The door stayed shut.", settings)


def test_stitch_merges_split_paragraph_and_keeps_line_range() -> None:
    paragraphs = [
        Paragraph("The story continues across the", 0, 0),
        Paragraph("page boundary here.", 2, 2),
        Paragraph("A new paragraph starts.", 4, 4),
    ]

    stitched = stitch_page_breaks(paragraphs)

    assert [p.content for p in stitched] == [
        "The story continues across the page boundary here.",
        "A new paragraph starts.",
    ]
    assert (stitched[0].start_line_index, stitched[0].end_line_index) == (0, 2)


def test_stitch_dehyphenates_across_pages() -> None:
    stitched = stitch_page_breaks([Paragraph("some inter-", 0, 0), Paragraph("national news.", 3, 3)])

    assert [p.content for p in stitched] == ["some international news."]


def test_stitch_chains_several_fragments() -> None:
    stitched = stitch_page_breaks(
        [
            Paragraph("It went on and", 0, 0),
            Paragraph("on through the", 2, 2),
            Paragraph("night.", 4, 4),
        ]
    )

    assert [p.content for p in stitched] == ["It went on and on through the night."]


def test_stitch_never_crosses_barrier_lines() -> None:
    paragraphs = [
        Paragraph("The story continues across the", 0, 0),
        Paragraph("page boundary here.", 2, 2),
    ]

    stitched = stitch_page_breaks(paragraphs, barriers=[1])

    assert stitched == paragraphs


def test_stitch_does_not_mutate_input() -> None:
    paragraphs = [Paragraph("first and", 0, 0), Paragraph("second.", 1, 1)]
    original = list(paragraphs)

    stitch_page_breaks(paragraphs)

    assert paragraphs == original


def test_stitch_empty_input() -> None:
    assert stitch_page_breaks([]) == []
