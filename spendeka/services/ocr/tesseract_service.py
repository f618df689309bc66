"""
OCR Service using Tesseract

This service handles:
1. Running Tesseract over a stored receipt image
2. Requesting combined Vietnamese + English recognition
3. Returning the recognized text as-is

It does NOT trim, judge or parse the text; the bill-scan flow decides what
an empty result means. Engine failures are wrapped in OcrEngineError.

Tesseract is a blocking subprocess call, so it runs in a worker thread to
keep the event loop free for other requests.
"""

import asyncio
from pathlib import Path
from typing import Optional

import pytesseract
from PIL import Image

from spendeka.config import OcrSettings, get_settings
from spendeka.errors import UpstreamError


class OcrEngineError(UpstreamError):
    """The OCR engine failed to run or could not read the image."""

    default_message = "OCR engine failed to process the bill image"


class TesseractOCRService:
    """
    OCR service wrapping the Tesseract engine.

    IMPORTANT BOUNDARIES:
    1. This service ONLY recognizes text
    2. It never deletes or moves the image; the caller owns it
    3. Each call is attempted once
    """

    def __init__(self, settings: Optional[OcrSettings] = None):
        self._settings = settings or get_settings().ocr
        if self._settings.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._settings.tesseract_cmd

    @property
    def languages(self) -> str:
        return self._settings.languages

    def _recognize_sync(self, image_path: Path) -> str:
        try:
            with Image.open(image_path) as image:
                return pytesseract.image_to_string(
                    image,
                    lang=self._settings.languages,
                    timeout=self._settings.timeout_seconds,
                )
        except Exception as e:
            raise OcrEngineError() from e

    async def recognize(self, image_path: Path) -> str:
        """
        Recognize text in an image.

        Args:
            image_path: Path to the stored image

        Returns:
            Raw recognized text (may be empty or whitespace)

        Raises:
            OcrEngineError: If Tesseract is missing, times out, or cannot
                read the image
        """
        return await asyncio.to_thread(self._recognize_sync, Path(image_path))
