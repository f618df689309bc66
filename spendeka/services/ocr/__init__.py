"""OCR services package."""

from spendeka.services.ocr.tesseract_service import OcrEngineError, TesseractOCRService

__all__ = [
    "OcrEngineError",
    "TesseractOCRService",
]
