"""Choose between primary text extraction and a secondary OCR/vision provider."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from bookstruct.extraction.base import ExtractionProvider
from bookstruct.extraction.config import LOCAL_OCR_PROVIDER, VISION_API_PROVIDER, ExtractionSettings
from bookstruct.extraction.primary import PrimaryText, PrimaryTextExtractor, is_pdf
from bookstruct.structure.errors import EmptyInputError, ProviderError
from bookstruct.structure.models import ExtractionMethod, ExtractionResult

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ExtractionSettings], ExtractionProvider]


class PrimaryExtractor(Protocol):
    def extract(self, raw: bytes) -> PrimaryText:
        """Return the embedded text of *raw*."""


def build_provider(settings: ExtractionSettings) -> ExtractionProvider:
    """Build the secondary provider named by ``settings.provider``."""

    if settings.provider == VISION_API_PROVIDER:
        from bookstruct.extraction.vision import VisionApiProvider

        return VisionApiProvider(settings)
    if settings.provider == LOCAL_OCR_PROVIDER:
        from bookstruct.extraction.ocr import LocalOcrProvider

        return LocalOcrProvider(settings)
    raise ProviderError(
        provider=settings.provider or "none",
        message=f"Unsupported extraction provider: {settings.provider!r}",
    )


class ExtractionStrategySelector:
    """Run primary extraction and fall back to a provider when it yields too little text."""

    def __init__(
        self,
        settings: ExtractionSettings,
        *,
        primary: PrimaryExtractor | None = None,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        self._settings = settings
        self._primary = primary or PrimaryTextExtractor()
        self._provider_factory = provider_factory or build_provider

    @property
    def settings(self) -> ExtractionSettings:
        return self._settings

    async def select(self, raw: bytes) -> ExtractionResult:
        primary = await self._run_primary(raw)
        primary_length = len(primary.text.strip())
        threshold = self._settings.fallback_threshold_chars

        if primary_length >= threshold or not self._settings.fallback_configured or not primary.is_pdf:
            logger.info("Using primary extraction (%d chars, threshold %d)", primary_length, threshold)
            return self._primary_result(primary)

        try:
            provider = self._provider_factory(self._settings)
            secondary_text = await asyncio.wait_for(
                provider.extract(raw),
                timeout=self._settings.provider_timeout_seconds,
            )
        except ProviderError as exc:
            return self._recover(primary, exc)
        except asyncio.TimeoutError as exc:
            timeout_error = ProviderError(
                provider=self._settings.provider or "none",
                message=f"Provider timed out after {self._settings.provider_timeout_seconds:g}s",
            )
            timeout_error.__cause__ = exc
            return self._recover(primary, timeout_error)
        except Exception as exc:
            provider_error = ProviderError(provider=self._settings.provider or "none", message=str(exc))
            provider_error.__cause__ = exc
            return self._recover(primary, provider_error)

        secondary_length = len(secondary_text.strip())
        logger.info(
            "Primary extraction gave %d chars, %s gave %d chars",
            primary_length,
            provider.name,
            secondary_length,
        )
        if secondary_length > primary_length:
            return ExtractionResult(
                text=secondary_text,
                method=ExtractionMethod.SECONDARY_FALLBACK,
                provider=provider.name,
                title=primary.title,
                author=primary.author,
            )
        return self._primary_result(primary)

    async def _run_primary(self, raw: bytes) -> PrimaryText:
        try:
            return await asyncio.to_thread(self._primary.extract, raw)
        except ProviderError as exc:
            logger.warning("Primary extraction failed, treating it as empty: %s", exc)
            return PrimaryText(text="", format_name="pdf" if is_pdf(raw) else "unknown")

    def _primary_result(self, primary: PrimaryText) -> ExtractionResult:
        if not primary.text.strip():
            raise EmptyInputError(message="No text could be extracted from the document", stage="extract")
        return ExtractionResult(
            text=primary.text,
            method=ExtractionMethod.PRIMARY,
            provider=None,
            title=primary.title,
            author=primary.author,
        )

    def _recover(self, primary: PrimaryText, error: ProviderError) -> ExtractionResult:
        if not primary.text.strip():
            raise EmptyInputError(
                message=f"No text extracted and fallback failed: {error}",
                stage="extract",
            ) from error
        logger.warning("Secondary extraction failed, keeping primary text: %s", error)
        return self._primary_result(primary)
