"""Shared contract for secondary (OCR / vision) extraction providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ExtractionProvider(Protocol):
    """Protocol that every secondary extraction provider must implement."""

    name: str

    async def extract(self, raw: bytes) -> str:
        """Return plain text recognized from the rendered pages of *raw*."""
