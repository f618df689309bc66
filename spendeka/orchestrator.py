"""
Main Orchestrator for Spendeka

This module ties together all the components and defines the
end-to-end flows for:
1. Text → Transaction (prompt → backend → extract → validate → normalize)
2. Bill scan (size check → OCR → text flow → cleanup)
3. Image caption (image → vision prompt → extract → validate → cleanup)

The orchestrator enforces the boundaries:
- Input is checked before any external call
- Every error leaving a flow belongs to the error taxonomy
- Every uploaded asset is released exactly once, on every path
- Every step is audited
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional
from uuid import UUID

from spendeka.agents import CaptionAgent, StructuredPayloadAgent, TransactionAgent
from spendeka.audit import AuditLogger, create_correlation_id
from spendeka.config import get_settings
from spendeka.error_classifier import is_classified
from spendeka.errors import (
    InputValidationError,
    InternalError,
    OcrEmptyResultError,
    PayloadTooLargeError,
)
from spendeka.models.transaction import (
    BillScanResult,
    BillScanStage,
    CaptionResult,
    Language,
    Transaction,
    UploadedAsset,
)
from spendeka.services.assets import AssetGuard
from spendeka.services.generation import GeminiGenerationClient, InlineImage
from spendeka.services.ocr import TesseractOCRService
from spendeka.validation import resolve_created_at


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TextToTransactionFlow:
    """
    Orchestrates the text → transaction flow.

    Flow:
    1. Check text is present (no external call otherwise)
    2. Capture the reference datetime once
    3. Prompt → backend → extract → validate
    4. Re-apply the deterministic date rules
    """

    def __init__(
        self,
        transaction_agent: Optional[TransactionAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._agent = transaction_agent or TransactionAgent()
        self._audit_logger = audit_logger
        self._clock = clock

    async def parse(
        self,
        text: Optional[str],
        language: Language = Language.ENGLISH,
        reference: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Parse free text into a transaction.

        Args:
            text: User text; missing or blank text is rejected
            language: Caption language
            reference: Reference datetime; captured now if not given
            correlation_id: Request correlation ID

        Raises:
            InputValidationError: text missing or blank
            UpstreamError: backend failure, unparseable or invalid output
            InternalError: anything unanticipated
        """
        correlation_id = correlation_id or create_correlation_id()

        if not isinstance(text, str) or not text.strip():
            error = InputValidationError("Missing or invalid 'text'")
            if self._audit_logger:
                await self._audit_logger.log_failure(error, correlation_id)
            raise error

        reference = reference or self._clock()

        if self._audit_logger:
            await self._audit_logger.log_request_received(
                flow="text_to_transaction",
                language=language.value,
                correlation_id=correlation_id,
                details={"text_length": len(text)},
            )

        try:
            transaction = await self._agent.parse_text(text, language, reference)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_failure(e, correlation_id)
            if is_classified(e):
                raise
            raise InternalError() from e

        resolved = resolve_created_at(text, reference, transaction.created_at)
        if resolved != transaction.created_at:
            if self._audit_logger:
                await self._audit_logger.log_created_at_normalized(
                    generated=transaction.created_at,
                    resolved=resolved,
                    correlation_id=correlation_id,
                )
            transaction = transaction.model_copy(update={"created_at": resolved})

        if self._audit_logger:
            await self._audit_logger.log_transaction_parsed(
                category=transaction.category.value,
                transaction_type=transaction.type.value,
                correlation_id=correlation_id,
            )

        return transaction


class BillScanFlow:
    """
    Orchestrates the bill scan flow.

    States:
        received → size_checked → recognized → text_extracted → parsed → cleaned_up
    with `failed` reachable from any step.

    The asset is released on every path. A receipt without legible text is
    terminal; it is not retried.
    """

    def __init__(
        self,
        ocr_service: Optional[TesseractOCRService] = None,
        text_flow: Optional[TextToTransactionFlow] = None,
        audit_logger: Optional[AuditLogger] = None,
        max_size_bytes: Optional[int] = None,
    ):
        self._ocr_service = ocr_service or TesseractOCRService()
        self._text_flow = text_flow or TextToTransactionFlow(audit_logger=audit_logger)
        self._audit_logger = audit_logger
        self._max_size_bytes = max_size_bytes or get_settings().app.max_bill_image_size_bytes

    def _check_size(self, asset: UploadedAsset) -> None:
        if asset.size_bytes <= 0:
            raise InputValidationError("Uploaded bill image is empty")
        if asset.size_bytes > self._max_size_bytes:
            raise PayloadTooLargeError(asset.size_bytes, self._max_size_bytes)

    async def _enter(self, asset: UploadedAsset, stage: BillScanStage, correlation_id: UUID):
        if self._audit_logger:
            await self._audit_logger.log_bill_scan_stage(
                asset_id=asset.asset_id,
                stage=stage.value,
                correlation_id=correlation_id,
            )

    async def scan(
        self,
        asset: UploadedAsset,
        language: Language = Language.ENGLISH,
        reference: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BillScanResult:
        """
        Scan a bill image into a transaction.

        Returns:
            BillScanResult with the trimmed OCR text and the parsed transaction

        Raises:
            InputValidationError: empty asset
            PayloadTooLargeError: asset over the size limit
            UpstreamError: OCR engine or generation backend failure
            OcrEmptyResultError: OCR found no text
            InternalError: anything unanticipated
        """
        correlation_id = correlation_id or create_correlation_id()
        stage = BillScanStage.RECEIVED

        with AssetGuard(asset):
            try:
                await self._enter(asset, stage, correlation_id)

                self._check_size(asset)
                stage = BillScanStage.SIZE_CHECKED
                await self._enter(asset, stage, correlation_id)

                recognized = await self._ocr_service.recognize(asset.path)
                stage = BillScanStage.RECOGNIZED
                await self._enter(asset, stage, correlation_id)

                raw_text = (recognized or "").strip()
                if not raw_text:
                    raise OcrEmptyResultError()
                stage = BillScanStage.TEXT_EXTRACTED
                if self._audit_logger:
                    await self._audit_logger.log_ocr_completed(
                        asset_id=asset.asset_id,
                        character_count=len(raw_text),
                        correlation_id=correlation_id,
                    )

                parsed = await self._text_flow.parse(
                    raw_text,
                    language,
                    reference=reference,
                    correlation_id=correlation_id,
                )
                stage = BillScanStage.PARSED
                await self._enter(asset, stage, correlation_id)
            except Exception as e:
                if self._audit_logger:
                    # The text flow audits its own failures
                    if stage is not BillScanStage.TEXT_EXTRACTED:
                        await self._audit_logger.log_failure(
                            e,
                            correlation_id,
                            stage=stage.value,
                            service="tesseract",
                        )
                    await self._enter(asset, BillScanStage.FAILED, correlation_id)
                if is_classified(e):
                    raise
                raise InternalError() from e

        await self._enter(asset, BillScanStage.CLEANED_UP, correlation_id)
        return BillScanResult(raw_text=raw_text, parsed=parsed)


class ImageCaptionFlow:
    """
    Orchestrates the image caption flow.

    Flow:
    1. Read the asset bytes
    2. Vision prompt + inline image → backend → extract → validate
    3. Release the asset (every path)
    """

    def __init__(
        self,
        caption_agent: Optional[CaptionAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._agent = caption_agent or CaptionAgent()
        self._audit_logger = audit_logger

    async def caption(
        self,
        asset: UploadedAsset,
        language: Language = Language.ENGLISH,
        correlation_id: Optional[UUID] = None,
    ) -> CaptionResult:
        """
        Generate a caption and item list for a photo.

        Raises:
            UpstreamError: backend failure, unparseable or invalid output
            InternalError: unreadable asset or anything unanticipated
        """
        correlation_id = correlation_id or create_correlation_id()

        with AssetGuard(asset):
            try:
                if self._audit_logger:
                    await self._audit_logger.log_request_received(
                        flow="image_caption",
                        language=language.value,
                        correlation_id=correlation_id,
                        details={"size_bytes": asset.size_bytes},
                    )

                data = await asyncio.to_thread(asset.path.read_bytes)
                image = InlineImage(mime_type=asset.mime_type, data=data)
                result = await self._agent.caption_image(image, language)
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_failure(e, correlation_id)
                if is_classified(e):
                    raise
                raise InternalError() from e

        if self._audit_logger:
            await self._audit_logger.log_caption_generated(
                item_count=len(result.items),
                correlation_id=correlation_id,
            )
        return result


@dataclass(frozen=True)
class AppComponents:
    """Everything the boundary layer needs, built once per process."""

    text_flow: TextToTransactionFlow
    bill_flow: BillScanFlow
    caption_flow: ImageCaptionFlow
    audit_logger: AuditLogger
    default_language: Language
    upload_dir: Path


def create_app_components() -> AppComponents:
    """
    Factory function to create all application components.

    Reads settings once and injects them into the clients.
    """
    settings = get_settings()
    audit_logger = AuditLogger()

    payload_agent = StructuredPayloadAgent(GeminiGenerationClient(settings.gemini))

    text_flow = TextToTransactionFlow(
        transaction_agent=TransactionAgent(payload_agent),
        audit_logger=audit_logger,
    )
    bill_flow = BillScanFlow(
        ocr_service=TesseractOCRService(settings.ocr),
        text_flow=text_flow,
        audit_logger=audit_logger,
        max_size_bytes=settings.app.max_bill_image_size_bytes,
    )
    caption_flow = ImageCaptionFlow(
        caption_agent=CaptionAgent(payload_agent),
        audit_logger=audit_logger,
    )

    return AppComponents(
        text_flow=text_flow,
        bill_flow=bill_flow,
        caption_flow=caption_flow,
        audit_logger=audit_logger,
        default_language=Language(settings.app.default_language),
        upload_dir=settings.app.upload_path,
    )
