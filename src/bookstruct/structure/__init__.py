"""Structure recovery primitives: line classes, paragraphs and chapters."""

from .config import DEFAULT_SETTINGS, StructureSettings
from .errors import EmptyInputError, NoParagraphsError, ProviderError, StructureError
from .models import BookStructure, Chapter, ExtractionMethod, ExtractionResult, Line, LineClass, Paragraph

__all__ = [
    "DEFAULT_SETTINGS",
    "BookStructure",
    "Chapter",
    "EmptyInputError",
    "ExtractionMethod",
    "ExtractionResult",
    "Line",
    "LineClass",
    "NoParagraphsError",
    "Paragraph",
    "ProviderError",
    "StructureError",
    "StructureSettings",
]
