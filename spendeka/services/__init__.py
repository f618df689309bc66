"""Services package."""

from spendeka.services.assets import AssetGuard, discard_file, store_upload
from spendeka.services.generation import (
    EmptyGenerationError,
    GeminiGenerationClient,
    GenerationClient,
    GenerationError,
    InlineImage,
)
from spendeka.services.ocr import OcrEngineError, TesseractOCRService

__all__ = [
    # Asset handling
    "AssetGuard",
    "discard_file",
    "store_upload",
    # Generation backend
    "EmptyGenerationError",
    "GeminiGenerationClient",
    "GenerationClient",
    "GenerationError",
    "InlineImage",
    # OCR
    "OcrEngineError",
    "TesseractOCRService",
]
