"""
AI Agents for Spendeka

Both generation tasks run the same three steps:

    prompt → backend → raw text → first JSON object → validated model

StructuredPayloadAgent implements those steps once. Each task supplies
its own prompt and validator:

1. TRANSACTION AGENT:
   - Text (user input or OCR output) → Transaction
   - Temperature 0 for deterministic parsing

2. CAPTION AGENT:
   - Photo → CaptionResult (items + caption)
   - Slightly higher temperature for friendlier captions

BOUNDARIES:
- Agents never trust the backend's shape; every payload is re-validated
- Agents never retry and never repair output
- Agents never touch uploaded files; the flows own them
"""

from datetime import datetime
from typing import Any, Generic, Optional, Protocol, TypeVar

from spendeka.models.transaction import CaptionResult, Language, Transaction
from spendeka.prompts import build_caption_prompt, build_transaction_prompt
from spendeka.services.generation import (
    GeminiGenerationClient,
    GenerationClient,
    InlineImage,
)
from spendeka.validation import (
    CaptionValidator,
    TransactionValidator,
    extract_json_object,
)


T = TypeVar("T")


class PayloadValidator(Protocol[T]):
    def validate(self, payload: Any) -> T:
        ...


class StructuredTask(Generic[T]):
    """
    One kind of structured generation: a name, a temperature and the
    validator its payload must pass.
    """

    def __init__(
        self,
        name: str,
        validator: PayloadValidator[T],
        temperature: float,
    ):
        self.name = name
        self.validator = validator
        self.temperature = temperature

    def __repr__(self) -> str:
        return f"StructuredTask(name={self.name!r}, temperature={self.temperature})"


TRANSACTION_TASK: StructuredTask[Transaction] = StructuredTask(
    name="transaction",
    validator=TransactionValidator(),
    temperature=0.0,
)

CAPTION_TASK: StructuredTask[CaptionResult] = StructuredTask(
    name="caption",
    validator=CaptionValidator(),
    temperature=0.2,
)


class StructuredPayloadAgent:
    """
    Generates a structured payload for any StructuredTask.
    """

    def __init__(self, client: Optional[GenerationClient] = None):
        self._client = client or GeminiGenerationClient()

    async def run(
        self,
        task: StructuredTask[T],
        prompt: str,
        image: Optional[InlineImage] = None,
    ) -> T:
        """
        Run one generation and return the validated model.

        Raises:
            UpstreamGenerationError: backend failure
            ExtractionError: no JSON object in the output
            ValidationError: object does not match the task's schema
        """
        raw = await self._client.generate(
            prompt,
            temperature=task.temperature,
            image=image,
        )
        payload = extract_json_object(raw)
        return task.validator.validate(payload)


class TransactionAgent:
    """
    Parses free text into a Transaction.
    """

    def __init__(
        self,
        payload_agent: Optional[StructuredPayloadAgent] = None,
        task: StructuredTask[Transaction] = TRANSACTION_TASK,
    ):
        self._payload_agent = payload_agent or StructuredPayloadAgent()
        self._task = task

    async def parse_text(
        self,
        text: str,
        language: Language,
        reference: datetime,
    ) -> Transaction:
        """
        Parse text into a transaction.

        Args:
            text: Non-blank user or OCR text
            language: Caption language
            reference: Request-start datetime for relative dates
        """
        prompt = build_transaction_prompt(text, language, reference)
        return await self._payload_agent.run(self._task, prompt)


class CaptionAgent:
    """
    Captions a photo of purchased items.
    """

    def __init__(
        self,
        payload_agent: Optional[StructuredPayloadAgent] = None,
        task: StructuredTask[CaptionResult] = CAPTION_TASK,
    ):
        self._payload_agent = payload_agent or StructuredPayloadAgent()
        self._task = task

    async def caption_image(
        self,
        image: InlineImage,
        language: Language,
    ) -> CaptionResult:
        prompt = build_caption_prompt(language)
        return await self._payload_agent.run(self._task, prompt, image=image)
