"""OpenRouter vision-model provider that transcribes rendered PDF pages."""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from typing import Any, Callable

import pymupdf

from bookstruct.extraction.config import VISION_API_PROVIDER, ExtractionSettings
from bookstruct.structure.errors import ProviderError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_PDF_BASE_DPI = 72
_TRANSCRIBE_PROMPT = (
    "Transcribe all text on this book page exactly as printed. "
    "Keep line breaks and headings, do not summarize, translate or add commentary."
)


def _build_default_client(settings: ExtractionSettings) -> Any:
    if not settings.api_key:
        raise ProviderError(provider=VISION_API_PROVIDER, message="OPENROUTER_API_KEY is not configured")
    try:
        from openai import OpenAI
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise ProviderError(
            provider=VISION_API_PROVIDER,
            message=f"OpenAI SDK unavailable for OpenRouter client: {exc}",
        ) from exc

    return OpenAI(api_key=settings.api_key, base_url=settings.base_url)


def _is_retryable(exc: Exception) -> bool:
    status_code = getattr(exc, "status_code", None)
    if status_code in _RETRYABLE_STATUS_CODES:
        return True

    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True

    return type(exc).__name__ in {
        "RateLimitError",
        "APITimeoutError",
        "APIConnectionError",
        "InternalServerError",
    }


def _message_text(response: Any) -> str:
    choices = getattr(response, "choices", None)
    if not isinstance(choices, list) or not choices:
        return ""

    first = choices[0]
    message = getattr(first, "message", None)
    content = getattr(message, "content", None) if message is not None else None
    if content is None and isinstance(first, dict):
        message_dict = first.get("message", {})
        if isinstance(message_dict, dict):
            content = message_dict.get("content")

    if isinstance(content, list):
        content = "".join(str(part.get("text", "")) for part in content if isinstance(part, dict))

    return str(content or "").strip()


def render_page_images(raw: bytes, *, dpi: int) -> list[str]:
    """Render every PDF page to a base64-encoded PNG."""

    scale = dpi / _PDF_BASE_DPI
    try:
        doc = pymupdf.open(stream=raw, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise ProviderError(provider=VISION_API_PROVIDER, message=f"Could not open PDF: {exc}") from exc

    images: list[str] = []
    with doc:
        for page_index, page in enumerate(doc, start=1):
            try:
                pixmap = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale))
            except (RuntimeError, ValueError) as exc:
                raise ProviderError(
                    provider=VISION_API_PROVIDER,
                    message=f"Could not render page {page_index}: {exc}",
                ) from exc
            images.append(base64.b64encode(pixmap.tobytes("png")).decode("ascii"))
    return images


class VisionApiProvider:
    """Send page images to a vision model and join the transcriptions."""

    name = VISION_API_PROVIDER

    def __init__(
        self,
        settings: ExtractionSettings,
        *,
        client: Any | None = None,
        max_retries: int = 2,
        retry_base_seconds: float = 0.25,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if retry_base_seconds < 0:
            raise ValueError("retry_base_seconds cannot be negative")

        self._settings = settings
        self._client = client or _build_default_client(settings)
        self._max_retries = max_retries
        self._retry_base_seconds = retry_base_seconds
        self._sleep = sleep

    @property
    def model(self) -> str:
        return self._settings.vision_model

    async def extract(self, raw: bytes) -> str:
        return await asyncio.to_thread(self._extract_sync, raw)

    def _extract_sync(self, raw: bytes) -> str:
        images = render_page_images(raw, dpi=self._settings.ocr_dpi)
        pages: list[str] = []
        for page_index, image in enumerate(images, start=1):
            response = self._request_transcription(image, page_index=page_index)
            text = _message_text(response)
            if not text:
                logger.debug("Vision model returned no text for page %d", page_index)
                continue
            pages.append(text)
        return "\n\n".join(pages)

    def _request_transcription(self, image: str, *, page_index: int) -> Any:
        attempts = self._max_retries + 1
        attempts_made = 0
        last_error: Exception | None = None

        for attempt in range(attempts):
            attempts_made = attempt + 1
            try:
                return self._client.chat.completions.create(
                    model=self._settings.vision_model,
                    messages=[
                        {
                            "role": "user",
                            "content": [
                                {"type": "text", "text": _TRANSCRIBE_PROMPT},
                                {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{image}"}},
                            ],
                        }
                    ],
                    temperature=0,
                )
            except Exception as exc:  # pragma: no cover - covered via tests with stubs
                last_error = exc
                should_retry = attempt < self._max_retries and _is_retryable(exc)
                if not should_retry:
                    break
                delay = self._retry_base_seconds * (2**attempt)
                self._sleep(delay)

        detail = str(last_error) if last_error is not None else "unknown OpenRouter error"
        raise ProviderError(
            provider=self.name,
            message=f"Transcription of page {page_index} failed after {attempts_made} attempt(s): {detail}",
        ) from last_error
