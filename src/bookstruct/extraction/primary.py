"""Primary text extraction from document bytes (embedded PDF text or plain text)."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from charset_normalizer import from_bytes
import pymupdf

from bookstruct.structure.errors import ProviderError
from bookstruct.structure.normalization import normalize_whitespace

logger = logging.getLogger(__name__)

PRIMARY_PROVIDER = "primary"

_PDF_MAGIC = b"%PDF-"
_PAGE_SEPARATOR = "\n\n"


@dataclass(frozen=True, slots=True)
class PrimaryText:
    """Embedded text of a document plus any metadata stored alongside it."""

    text: str
    format_name: str
    title: str | None = None
    author: str | None = None

    @property
    def is_pdf(self) -> bool:
        return self.format_name == "pdf"


def is_pdf(raw: bytes) -> bool:
    return raw.lstrip()[: len(_PDF_MAGIC)] == _PDF_MAGIC


def _first_non_empty(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = normalize_whitespace(value)
    return cleaned or None


def decode_text(raw: bytes) -> str:
    """Decode plain-text bytes, detecting the charset when it is not UTF-8."""

    best = from_bytes(raw).best()
    if best and best.encoding:
        name = best.encoding.lower()
        if name in {"windows-1251", "cp1251"}:
            return raw.decode("cp1251")
        return raw.decode(best.encoding)

    for fallback in ("utf-8", "cp1251"):
        try:
            return raw.decode(fallback)
        except UnicodeDecodeError:
            continue
    raise ValueError("Could not detect text encoding")


class PrimaryTextExtractor:
    """Fast extraction that reads the text layer and never renders pages."""

    name = PRIMARY_PROVIDER

    def extract(self, raw: bytes) -> PrimaryText:
        if not raw:
            return PrimaryText(text="", format_name="empty")
        if is_pdf(raw):
            return self._extract_pdf(raw)

        try:
            text = decode_text(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            raise ProviderError(provider=self.name, message=f"Could not decode text input: {exc}") from exc
        return PrimaryText(text=text, format_name="txt")

    def _extract_pdf(self, raw: bytes) -> PrimaryText:
        try:
            with pymupdf.open(stream=raw, filetype="pdf") as doc:
                doc_metadata = doc.metadata or {}
                pages = [page.get_text("text") for page in doc]
        except (RuntimeError, ValueError) as exc:
            raise ProviderError(provider=self.name, message=f"Could not open PDF: {exc}") from exc

        text = _PAGE_SEPARATOR.join(page.strip("\n") for page in pages)
        logger.debug("Primary extraction read %d page(s), %d chars", len(pages), len(text))
        return PrimaryText(
            text=text,
            format_name="pdf",
            title=_first_non_empty(doc_metadata.get("title")),
            author=_first_non_empty(doc_metadata.get("author")),
        )
