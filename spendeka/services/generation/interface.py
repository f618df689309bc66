"""
Abstract Generation Interface

The generation backend is an external collaborator. Flows and agents depend
on this interface only, so tests can substitute a fake client and the
backend can be swapped without touching the pipeline.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field


class InlineImage(BaseModel):
    """Image bytes sent inline with a prompt."""

    mime_type: str = Field(default="image/jpeg")
    data: bytes


class GenerationClient(ABC):
    """
    Abstract interface for a text/vision generation backend.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        temperature: float,
        image: Optional[InlineImage] = None,
    ) -> str:
        """
        Send a prompt (and optional image) and return the raw generated text.

        Args:
            prompt: Instruction string
            temperature: Sampling temperature for this task
            image: Optional inline image for vision tasks

        Returns:
            The generated text, unparsed

        Raises:
            UpstreamGenerationError: If the backend fails or returns nothing
        """
        pass
