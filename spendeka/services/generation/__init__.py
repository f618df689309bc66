"""Generation backend package."""

from spendeka.services.generation.gemini_client import (
    EmptyGenerationError,
    GeminiGenerationClient,
    GenerationError,
)
from spendeka.services.generation.interface import GenerationClient, InlineImage

__all__ = [
    "EmptyGenerationError",
    "GeminiGenerationClient",
    "GenerationClient",
    "GenerationError",
    "InlineImage",
]
