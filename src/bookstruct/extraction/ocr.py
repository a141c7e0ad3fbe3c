"""Local Tesseract OCR provider for scanned PDF documents.

Every page is rendered with pymupdf and passed through pytesseract.  When the
Tesseract binary is missing the first call logs a single warning and every
call raises ``ProviderError`` so the selector keeps the primary text.
"""

from __future__ import annotations

import asyncio
import io
import logging

import pymupdf
import pytesseract
from PIL import Image

from bookstruct.extraction.config import LOCAL_OCR_PROVIDER, ExtractionSettings
from bookstruct.structure.errors import ProviderError

logger = logging.getLogger(__name__)

_PDF_BASE_DPI = 72
_TESSERACT_CONFIG = "--oem 3 --psm 6"

# None: not probed yet, True: ran at least once, False: binary missing.
_tesseract_available: bool | None = None


def _is_tesseract_not_found(exc: Exception) -> bool:
    """Return True when *exc* indicates that the Tesseract binary is missing."""
    if "TesseractNotFoundError" in type(exc).__name__:
        return True
    msg = str(exc).lower()
    return "tesseract is not installed" in msg or "tesseract is not in your path" in msg


def _render_page(page: pymupdf.Page, *, dpi: int) -> Image.Image:
    scale = dpi / _PDF_BASE_DPI
    pix = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), colorspace=pymupdf.csRGB)
    return Image.open(io.BytesIO(pix.tobytes("png")))


class LocalOcrProvider:
    """Recognize text of every page with a local Tesseract installation."""

    name = LOCAL_OCR_PROVIDER

    def __init__(self, settings: ExtractionSettings) -> None:
        self._languages = settings.ocr_languages
        self._dpi = settings.ocr_dpi

    async def extract(self, raw: bytes) -> str:
        return await asyncio.to_thread(self._extract_sync, raw)

    def _extract_sync(self, raw: bytes) -> str:
        global _tesseract_available

        if _tesseract_available is False:
            raise ProviderError(provider=self.name, message="Tesseract is not installed or not in PATH")

        try:
            doc = pymupdf.open(stream=raw, filetype="pdf")
        except (RuntimeError, ValueError) as exc:
            raise ProviderError(provider=self.name, message=f"Could not open PDF: {exc}") from exc

        pages: list[str] = []
        with doc:
            for page_index, page in enumerate(doc, start=1):
                try:
                    image = _render_page(page, dpi=self._dpi)
                    page_text = pytesseract.image_to_string(
                        image,
                        lang=self._languages,
                        config=_TESSERACT_CONFIG,
                    )
                except Exception as exc:
                    if _is_tesseract_not_found(exc):
                        _tesseract_available = False
                        logger.warning(
                            "Tesseract is not installed or not in PATH; local OCR disabled for this run"
                        )
                        raise ProviderError(
                            provider=self.name,
                            message="Tesseract is not installed or not in PATH",
                        ) from exc
                    raise ProviderError(
                        provider=self.name,
                        message=f"OCR failed for page {page_index}: {exc}",
                    ) from exc
                _tesseract_available = True
                pages.append(page_text.strip())

        return "\n\n".join(page for page in pages if page)
