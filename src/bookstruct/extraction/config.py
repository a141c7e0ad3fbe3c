"""Runtime configuration for text extraction and its secondary fallback."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping


DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_VISION_MODEL = "openai/gpt-4o-mini"
DEFAULT_FALLBACK_THRESHOLD_CHARS = 100
DEFAULT_OCR_LANGUAGES = "eng"
DEFAULT_OCR_DPI = 300
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 120.0

VISION_API_PROVIDER = "vision-api"
LOCAL_OCR_PROVIDER = "local-ocr"
SUPPORTED_PROVIDERS = (VISION_API_PROVIDER, LOCAL_OCR_PROVIDER)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(*, name: str, raw_value: str) -> bool:
    value = raw_value.strip().casefold()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be one of: {', '.join(sorted(_TRUE_VALUES | _FALSE_VALUES))}")


def _parse_positive_int(*, name: str, raw_value: str) -> int:
    value = int(raw_value)
    if value < 1:
        raise ValueError(f"{name} must be >= 1")
    return value


def _parse_positive_float(*, name: str, raw_value: str) -> float:
    value = float(raw_value)
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


@dataclass(frozen=True, slots=True)
class ExtractionSettings:
    """Validated extraction settings.

    ``provider`` names the secondary strategy (``vision-api`` or
    ``local-ocr``); ``None`` leaves only the primary extractor.  Provider
    names are checked when the provider is built so that a bad value
    degrades to primary extraction instead of failing configuration.

    ``fallback_threshold_chars`` is compared with the length of the primary
    text after stripping surrounding whitespace; a text exactly at the
    threshold skips the fallback.
    """

    enabled: bool = False
    fallback_threshold_chars: int = DEFAULT_FALLBACK_THRESHOLD_CHARS
    provider: str | None = None
    api_key: str | None = None
    vision_model: str = DEFAULT_VISION_MODEL
    base_url: str = DEFAULT_OPENROUTER_BASE_URL
    ocr_languages: str = DEFAULT_OCR_LANGUAGES
    ocr_dpi: int = DEFAULT_OCR_DPI
    provider_timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS

    @property
    def fallback_configured(self) -> bool:
        return self.enabled and bool(self.provider)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ExtractionSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        enabled_raw = source.get("BOOKSTRUCT_FALLBACK_ENABLED", "false").strip()
        threshold_raw = source.get(
            "BOOKSTRUCT_FALLBACK_THRESHOLD_CHARS", str(DEFAULT_FALLBACK_THRESHOLD_CHARS)
        ).strip()
        provider = source.get("BOOKSTRUCT_FALLBACK_PROVIDER", "").strip().lower() or None
        api_key = source.get("OPENROUTER_API_KEY", "").strip() or None
        vision_model = source.get("BOOKSTRUCT_VISION_MODEL", DEFAULT_VISION_MODEL).strip()
        base_url = source.get("OPENROUTER_BASE_URL", DEFAULT_OPENROUTER_BASE_URL).strip()
        ocr_languages = source.get("BOOKSTRUCT_OCR_LANG", DEFAULT_OCR_LANGUAGES).strip()
        dpi_raw = source.get("BOOKSTRUCT_OCR_DPI", str(DEFAULT_OCR_DPI)).strip()
        timeout_raw = source.get(
            "BOOKSTRUCT_PROVIDER_TIMEOUT_SECONDS", str(DEFAULT_PROVIDER_TIMEOUT_SECONDS)
        ).strip()

        if not threshold_raw:
            raise ValueError("BOOKSTRUCT_FALLBACK_THRESHOLD_CHARS cannot be empty")
        if not vision_model:
            raise ValueError("BOOKSTRUCT_VISION_MODEL cannot be empty")
        if not ocr_languages:
            raise ValueError("BOOKSTRUCT_OCR_LANG cannot be empty")
        if not base_url:
            raise ValueError("OPENROUTER_BASE_URL cannot be empty")
        if not (base_url.startswith("http://") or base_url.startswith("https://")):
            raise ValueError("OPENROUTER_BASE_URL must start with http:// or https://")

        return cls(
            enabled=_parse_bool(name="BOOKSTRUCT_FALLBACK_ENABLED", raw_value=enabled_raw or "false"),
            fallback_threshold_chars=_parse_positive_int(
                name="BOOKSTRUCT_FALLBACK_THRESHOLD_CHARS", raw_value=threshold_raw
            ),
            provider=provider,
            api_key=api_key,
            vision_model=vision_model,
            base_url=base_url.rstrip("/"),
            ocr_languages=ocr_languages,
            ocr_dpi=_parse_positive_int(name="BOOKSTRUCT_OCR_DPI", raw_value=dpi_raw or str(DEFAULT_OCR_DPI)),
            provider_timeout_seconds=_parse_positive_float(
                name="BOOKSTRUCT_PROVIDER_TIMEOUT_SECONDS",
                raw_value=timeout_raw or str(DEFAULT_PROVIDER_TIMEOUT_SECONDS),
            ),
        )
