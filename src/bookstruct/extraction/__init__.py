"""Text extraction strategies and the primary/secondary selector."""

from .base import ExtractionProvider
from .config import ExtractionSettings
from .primary import PrimaryText, PrimaryTextExtractor, decode_text
from .selector import ExtractionStrategySelector, build_provider

__all__ = [
    "ExtractionProvider",
    "ExtractionSettings",
    "ExtractionStrategySelector",
    "PrimaryText",
    "PrimaryTextExtractor",
    "build_provider",
    "decode_text",
]
