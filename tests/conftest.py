"""
Shared fixtures for Spendeka tests.

No real API calls in tests: the generation backend and the OCR engine are
replaced by the fakes below.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest

from spendeka.config import get_settings
from spendeka.models import UploadedAsset
from spendeka.services.generation import GenerationClient, InlineImage


REFERENCE = datetime(2024, 1, 2, 10, 0, 0, tzinfo=timezone.utc)


class FakeGenerationClient(GenerationClient):
    """Returns canned responses in order and records every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float,
        image: Optional[InlineImage] = None,
    ) -> str:
        self.calls.append({"prompt": prompt, "temperature": temperature, "image": image})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


class FakeOCRService:
    """Stands in for TesseractOCRService."""

    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.paths = []

    async def recognize(self, image_path: Path) -> str:
        self.paths.append(Path(image_path))
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch, tmp_path):
    """Every test gets a valid, isolated configuration."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def reference() -> datetime:
    return REFERENCE


@pytest.fixture
def make_asset(tmp_path):
    """Create an UploadedAsset backed by a real temporary file."""

    def _make(data: bytes = b"\xff\xd8\xffimage-bytes", size_bytes: Optional[int] = None,
              mime_type: str = "image/jpeg") -> UploadedAsset:
        path = tmp_path / f"asset-{len(list(tmp_path.iterdir()))}.jpg"
        path.write_bytes(data)
        return UploadedAsset(
            path=path,
            size_bytes=len(data) if size_bytes is None else size_bytes,
            mime_type=mime_type,
            original_filename="receipt.jpg",
        )

    return _make


def transaction_payload(**overrides) -> dict:
    payload = {
        "caption": "Lunch",
        "amount": 12,
        "category": "food",
        "type": "spent",
        "createdAt": "2024-01-02T10:00:00.000Z",
    }
    payload.update(overrides)
    return payload
