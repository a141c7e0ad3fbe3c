from __future__ import annotations

import asyncio
import logging

import pytest

from bookstruct.extraction.base import ExtractionProvider
from bookstruct.extraction.config import ExtractionSettings
from bookstruct.extraction.ocr import LocalOcrProvider
from bookstruct.extraction.primary import PrimaryText
from bookstruct.extraction.selector import ExtractionStrategySelector, build_provider
from bookstruct.structure.errors import EmptyInputError, ProviderError
from bookstruct.structure.models import ExtractionMethod

_RAW_PDF = b"%PDF-1.7 fake document"


class _FakePrimary:
    def __init__(self, text: str = "", *, format_name: str = "pdf", error: Exception | None = None) -> None:
        self._text = text
        self._format_name = format_name
        self._error = error

    def extract(self, raw: bytes) -> PrimaryText:
        if self._error is not None:
            raise self._error
        return PrimaryText(text=self._text, format_name=self._format_name, title="Embedded Title")


class _FakeProvider:
    name = "local-ocr"

    def __init__(self, text: str = "", *, error: Exception | None = None, delay: float = 0.0) -> None:
        self._text = text
        self._error = error
        self._delay = delay
        self.calls: list[bytes] = []

    async def extract(self, raw: bytes) -> str:
        self.calls.append(raw)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._text


def _settings(**overrides: object) -> ExtractionSettings:
    values: dict[str, object] = {"enabled": True, "fallback_threshold_chars": 10, "provider": "local-ocr"}
    values.update(overrides)
    return ExtractionSettings(**values)  # type: ignore[arg-type]


def _selector(
    primary_text: str,
    provider: _FakeProvider,
    *,
    settings: ExtractionSettings | None = None,
    format_name: str = "pdf",
) -> ExtractionStrategySelector:
    return ExtractionStrategySelector(
        settings or _settings(),
        primary=_FakePrimary(primary_text, format_name=format_name),
        provider_factory=lambda _settings: provider,
    )


def test_primary_text_at_threshold_skips_provider() -> None:
    provider = _FakeProvider("y" * 500)

    result = asyncio.run(_selector("x" * 10, provider).select(_RAW_PDF))

    assert result.method is ExtractionMethod.PRIMARY
    assert result.text == "x" * 10
    assert result.provider is None
    assert provider.calls == []


def test_primary_text_below_threshold_consults_provider() -> None:
    provider = _FakeProvider("y" * 50)

    result = asyncio.run(_selector("x" * 9, provider).select(_RAW_PDF))

    assert provider.calls == [_RAW_PDF]
    assert result.method is ExtractionMethod.SECONDARY_FALLBACK
    assert result.provider == "local-ocr"
    assert result.text == "y" * 50
    assert result.title == "Embedded Title"


def test_threshold_ignores_surrounding_whitespace() -> None:
    provider = _FakeProvider("y" * 50)

    result = asyncio.run(_selector("\n\n" + "x" * 9 + "   \n", provider).select(_RAW_PDF))

    assert provider.calls == [_RAW_PDF]
    assert result.method is ExtractionMethod.SECONDARY_FALLBACK


@pytest.mark.parametrize("secondary", ["y" * 5, "y" * 9])
def test_primary_wins_when_secondary_is_not_longer(secondary: str) -> None:
    provider = _FakeProvider(secondary)

    result = asyncio.run(_selector("x" * 9, provider).select(_RAW_PDF))

    assert provider.calls == [_RAW_PDF]
    assert result.method is ExtractionMethod.PRIMARY
    assert result.text == "x" * 9


def test_provider_failure_keeps_primary_text(caplog: pytest.LogCaptureFixture) -> None:
    provider = _FakeProvider(error=ProviderError(provider="local-ocr", message="Tesseract is not installed"))

    with caplog.at_level(logging.WARNING, logger="bookstruct.extraction.selector"):
        result = asyncio.run(_selector("short", provider).select(_RAW_PDF))

    assert result.method is ExtractionMethod.PRIMARY
    assert result.text == "short"
    assert any("Tesseract is not installed" in record.getMessage() for record in caplog.records)


def test_provider_failure_with_empty_primary_is_empty_input() -> None:
    failure = ProviderError(provider="local-ocr", message="Tesseract is not installed")
    provider = _FakeProvider(error=failure)

    with pytest.raises(EmptyInputError, match="fallback failed") as exc_info:
        asyncio.run(_selector("", provider).select(_RAW_PDF))

    assert exc_info.value.__cause__ is failure


def test_unexpected_provider_error_keeps_primary_text(caplog: pytest.LogCaptureFixture) -> None:
    provider = _FakeProvider(error=RuntimeError("pixmap rendering failed"))

    with caplog.at_level(logging.WARNING, logger="bookstruct.extraction.selector"):
        selector = _selector("short text", provider, settings=_settings(fallback_threshold_chars=100))
        result = asyncio.run(selector.select(_RAW_PDF))

    assert result.method is ExtractionMethod.PRIMARY
    assert result.text == "short text"
    assert any("pixmap rendering failed" in record.getMessage() for record in caplog.records)


def test_unexpected_provider_error_with_empty_primary_is_chained() -> None:
    failure = RuntimeError("pixmap rendering failed")
    provider = _FakeProvider(error=failure)

    with pytest.raises(EmptyInputError, match="pixmap rendering failed") as exc_info:
        asyncio.run(_selector("", provider).select(_RAW_PDF))

    wrapped = exc_info.value.__cause__
    assert isinstance(wrapped, ProviderError)
    assert wrapped.__cause__ is failure


def test_provider_timeout_keeps_primary_text() -> None:
    provider = _FakeProvider("y" * 500, delay=1.0)
    settings = _settings(provider_timeout_seconds=0.01)

    result = asyncio.run(_selector("short", provider, settings=settings).select(_RAW_PDF))

    assert result.method is ExtractionMethod.PRIMARY
    assert result.text == "short"


def test_disabled_fallback_never_builds_provider() -> None:
    built: list[ExtractionSettings] = []

    def _factory(settings: ExtractionSettings) -> _FakeProvider:
        built.append(settings)
        return _FakeProvider("y" * 50)

    selector = ExtractionStrategySelector(
        _settings(enabled=False),
        primary=_FakePrimary("tiny"),
        provider_factory=_factory,
    )

    result = asyncio.run(selector.select(_RAW_PDF))

    assert result.method is ExtractionMethod.PRIMARY
    assert built == []


def test_plain_text_input_is_not_sent_to_provider() -> None:
    provider = _FakeProvider("y" * 50)

    result = asyncio.run(_selector("tiny", provider, format_name="txt").select(b"tiny"))

    assert result.method is ExtractionMethod.PRIMARY
    assert provider.calls == []


def test_empty_primary_without_fallback_is_empty_input() -> None:
    selector = _selector("  \n ", _FakeProvider(), settings=_settings(enabled=False))

    with pytest.raises(EmptyInputError, match="stage=extract"):
        asyncio.run(selector.select(_RAW_PDF))


def test_primary_failure_is_treated_as_empty_text(caplog: pytest.LogCaptureFixture) -> None:
    provider = _FakeProvider("Recovered text from the scanned pages.")
    selector = ExtractionStrategySelector(
        _settings(),
        primary=_FakePrimary(error=ProviderError(provider="primary", message="Could not open PDF")),
        provider_factory=lambda _settings: provider,
    )

    with caplog.at_level(logging.WARNING, logger="bookstruct.extraction.selector"):
        result = asyncio.run(selector.select(_RAW_PDF))

    assert result.method is ExtractionMethod.SECONDARY_FALLBACK
    assert result.text == "Recovered text from the scanned pages."
    assert any("Primary extraction failed" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_unsupported_provider_degrades_to_primary() -> None:
    selector = ExtractionStrategySelector(
        _settings(provider="carrier-pigeon"),
        primary=_FakePrimary("short"),
    )

    result = await selector.select(_RAW_PDF)

    assert result.method is ExtractionMethod.PRIMARY


@pytest.mark.asyncio
async def test_vision_provider_without_credentials_degrades_to_primary() -> None:
    selector = ExtractionStrategySelector(
        _settings(provider="vision-api", api_key=None),
        primary=_FakePrimary("short"),
    )

    result = await selector.select(_RAW_PDF)

    assert result.method is ExtractionMethod.PRIMARY
    assert result.text == "short"


def test_build_provider_rejects_unknown_names() -> None:
    with pytest.raises(ProviderError, match="Unsupported extraction provider"):
        build_provider(_settings(provider="carrier-pigeon"))


def test_build_provider_requires_api_key_for_vision() -> None:
    with pytest.raises(ProviderError, match="OPENROUTER_API_KEY"):
        build_provider(_settings(provider="vision-api"))


def test_build_provider_returns_local_ocr_provider() -> None:
    provider = build_provider(_settings(provider="local-ocr", ocr_languages="eng+rus"))

    assert isinstance(provider, LocalOcrProvider)
    assert isinstance(provider, ExtractionProvider)
    assert provider.name == "local-ocr"
