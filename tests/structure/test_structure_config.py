from __future__ import annotations

import pytest

from bookstruct.structure.config import DEFAULT_SETTINGS, StructureSettings


def test_from_env_uses_defaults_when_unset() -> None:
    settings = StructureSettings.from_env({})

    assert settings == StructureSettings()
    assert settings.page_width == 80
    assert settings.structural_min_chapter_chars == 200
    assert settings.ocr_min_chapter_chars == 100
    assert settings.uppercase_ratio_threshold == 0.7
    assert settings.max_header_length == 60


def test_from_env_reads_overrides() -> None:
    settings = StructureSettings.from_env(
        {
            "BOOKSTRUCT_PAGE_WIDTH": "100",
            "BOOKSTRUCT_STRUCTURAL_MIN_CHAPTER_CHARS": "500",
            "BOOKSTRUCT_OCR_MIN_CHAPTER_CHARS": "0",
            "BOOKSTRUCT_MIN_PARAGRAPH_CHARS": "3",
            "BOOKSTRUCT_UPPERCASE_RATIO_THRESHOLD": "0.9",
            "BOOKSTRUCT_MAX_HEADER_LENGTH": " 45 ",
        }
    )

    assert settings.page_width == 100
    assert settings.structural_min_chapter_chars == 500
    assert settings.ocr_min_chapter_chars == 0
    assert settings.min_paragraph_chars == 3
    assert settings.uppercase_ratio_threshold == 0.9
    assert settings.max_header_length == 45


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("BOOKSTRUCT_PAGE_WIDTH", "", "BOOKSTRUCT_PAGE_WIDTH cannot be empty"),
        ("BOOKSTRUCT_PAGE_WIDTH", "0", "BOOKSTRUCT_PAGE_WIDTH must be >= 1"),
        ("BOOKSTRUCT_STRUCTURAL_MIN_CHAPTER_CHARS", "-1", "BOOKSTRUCT_STRUCTURAL_MIN_CHAPTER_CHARS must be >= 0"),
        ("BOOKSTRUCT_UPPERCASE_RATIO_THRESHOLD", "1.5", "BOOKSTRUCT_UPPERCASE_RATIO_THRESHOLD must be in"),
        ("BOOKSTRUCT_MAX_HEADER_LENGTH", "   ", "BOOKSTRUCT_MAX_HEADER_LENGTH cannot be empty"),
    ],
)
def test_from_env_rejects_invalid_values(name: str, value: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        StructureSettings.from_env({name: value})


def test_non_numeric_value_raises_value_error() -> None:
    with pytest.raises(ValueError):
        StructureSettings.from_env({"BOOKSTRUCT_PAGE_WIDTH": "wide"})


def test_with_overrides_returns_new_settings() -> None:
    wider = DEFAULT_SETTINGS.with_overrides(page_width=120)

    assert wider.page_width == 120
    assert DEFAULT_SETTINGS.page_width == 80
    assert wider.dangling_words == DEFAULT_SETTINGS.dangling_words


def test_settings_are_immutable() -> None:
    with pytest.raises(AttributeError):
        DEFAULT_SETTINGS.page_width = 10  # type: ignore[misc]
