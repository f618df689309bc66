"""
Generation Client using Google Gemini

This service handles:
1. Configuring the Gemini SDK from injected settings
2. Sending a prompt, optionally with an inline image
3. Returning the raw candidate text

It does NOT parse or validate the output; that is the extractor's and
validators' job. SDK exceptions are wrapped in GenerationError with a fixed
message so backend details never reach the caller.
"""

from typing import Optional

import google.generativeai as genai
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from spendeka.config import GeminiSettings, get_settings
from spendeka.errors import UpstreamGenerationError
from spendeka.services.generation.interface import GenerationClient, InlineImage


logger = structlog.get_logger(__name__)


class GenerationError(UpstreamGenerationError):
    """The backend request failed (network, auth, quota, non-success response)."""

    default_message = "Generation backend request failed"


class EmptyGenerationError(GenerationError):
    """The backend answered but returned no usable text."""

    default_message = "Generation backend did not return any content"


class GeminiGenerationClient(GenerationClient):
    """
    Gemini implementation of GenerationClient.

    Each call is attempted GeminiSettings.max_attempts times (default 1,
    i.e. no retries). Without request_timeout_seconds a call waits
    indefinitely.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)

    def _get_model(self, temperature: float) -> genai.GenerativeModel:
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": temperature,
                "max_output_tokens": self._settings.max_output_tokens,
                "response_mime_type": "application/json",
            },
        )

    def _request_options(self) -> Optional[dict]:
        if self._settings.request_timeout_seconds is None:
            return None
        return {"timeout": self._settings.request_timeout_seconds}

    async def _generate_once(self, model: genai.GenerativeModel, contents: list) -> str:
        try:
            response = await model.generate_content_async(
                contents,
                request_options=self._request_options(),
            )
        except Exception as e:
            logger.warning(
                "generation_request_failed",
                model=self._settings.model_name,
                error=str(e),
            )
            raise GenerationError() from e

        try:
            text = response.text
        except (ValueError, AttributeError, IndexError) as e:
            # Blocked prompts and empty candidate lists raise on .text
            raise EmptyGenerationError() from e

        if not text or not text.strip():
            raise EmptyGenerationError()

        return text

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float,
        image: Optional[InlineImage] = None,
    ) -> str:
        contents: list = []
        if image is not None:
            contents.append({"mime_type": image.mime_type, "data": image.data})
        contents.append(prompt)

        model = self._get_model(temperature)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(GenerationError),
            reraise=True,
        )
        return await retrying(self._generate_once, model, contents)
