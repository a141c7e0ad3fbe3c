from __future__ import annotations

import pytest

from bookstruct.structure.classifier import split_lines
from bookstruct.structure.config import StructureSettings
from bookstruct.structure.metadata import sniff_author, sniff_title


def test_title_is_first_title_like_line() -> None:
    lines = split_lines("The Silent Sea\nby Jane Doe\n\nChapter 1\n\nIt began at dawn.")

    assert sniff_title(lines) == "The Silent Sea"


def test_title_skips_markers_headings_and_sentences() -> None:
    text = "\n".join(
        [
            "Page 1",
            "Copyright 2020 Example Press",
            "Chapter 1",
            "It began at dawn.",
            "The Real Title Here",
        ]
    )

    assert sniff_title(split_lines(text)) == "The Real Title Here"


def test_all_caps_title_is_used_only_as_fallback() -> None:
    assert sniff_title(split_lines("THE SILENT SEA\n\nIt began at dawn.")) == "The Silent Sea"
    assert sniff_title(split_lines("THE SILENT SEA\nA Story of Tides")) == "A Story of Tides"


def test_all_caps_chapter_heading_is_not_a_title() -> None:
    assert sniff_title(split_lines("CHAPTER ONE\n\nIt began at dawn.")) is None


def test_title_scan_is_limited_to_opening_lines() -> None:
    sentences = "\n".join(f"Sentence number {index} ends here." for index in range(12))

    assert sniff_title(split_lines(sentences + "\nA Late Title Line")) is None


def test_single_word_lines_are_not_titles() -> None:
    assert sniff_title(split_lines("Moby\n\nIt began at dawn.")) is None


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("by Jane Doe", "Jane Doe"),
        ("Author: Mary Shelley", "Mary Shelley"),
        ("Written by Bram Stoker", "Bram Stoker"),
        ("Leo Tolstoy, author", "Leo Tolstoy"),
    ],
)
def test_author_bylines(line: str, expected: str) -> None:
    lines = split_lines(f"The Silent Sea\n{line}\n\nIt began at dawn.")

    assert sniff_author(lines, title="The Silent Sea") == expected


def test_author_patterns_are_tried_in_order() -> None:
    lines = split_lines("Author: Second Choice\nThe Silent Sea\nby First Choice")

    assert sniff_author(lines) == "First Choice"


def test_byline_capture_must_read_as_a_name() -> None:
    lines = split_lines("The Silent Sea\n\nBy morning the storm had\npassed over the harbour.")

    assert sniff_author(lines, title="The Silent Sea") is None


def test_author_guess_from_capitalized_name_line() -> None:
    lines = split_lines("The Silent Sea\nA Novel\nJane Austen\n\nIt was a fine day.")

    assert sniff_author(lines, title="The Silent Sea") == "Jane Austen"


def test_author_guess_ignores_title_line() -> None:
    lines = split_lines("Preface\nNotes\nSilent Sea Tales\n\nIt was a fine day.")

    assert sniff_author(lines, title="Silent Sea Tales") is None


def test_author_missing_returns_none() -> None:
    lines = split_lines("Just some text here.\nAnother sentence follows.")

    assert sniff_author(lines) is None


def test_heading_detection_follows_passed_settings() -> None:
    lines = split_lines("Chapter One The Long Road Home\nIt began at dawn.")

    assert sniff_title(lines) is None
    assert sniff_title(lines, StructureSettings(max_heading_chars=10)) == "Chapter One The Long Road Home"
