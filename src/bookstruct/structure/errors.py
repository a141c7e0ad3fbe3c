"""Domain errors raised by the structure-recovery pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class StructureError(Exception):
    """Fatal pipeline failure; no partial result is returned."""

    message: str
    stage: str

    def __str__(self) -> str:
        return f"{self.message} (stage={self.stage})"


class EmptyInputError(StructureError):
    """The source yielded no extractable characters from any strategy."""


class NoParagraphsError(StructureError):
    """Text was extracted but no paragraph survived classification."""


@dataclass(slots=True)
class ProviderError(RuntimeError):
    """Secondary extraction failed (credentials, network, unsupported provider)."""

    provider: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (provider={self.provider})"
