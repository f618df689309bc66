"""
Audit Logger

Every significant step of a request is logged as a structured event.
This provides:
1. Traceability of one request across prompt, backend, OCR and cleanup
2. Debugging capability when the backend returns unusable output
3. A visible record of every automatic correction

The audit logger:
- Is async so flows can await it between external calls
- Never raises: a logging failure must not fail the request
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from spendeka.errors import (
    ExtractionError,
    InputValidationError,
    OcrEmptyResultError,
    PayloadTooLargeError,
    SpendekaError,
    UpstreamError,
    ValidationError,
)
from spendeka.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """
    Route structlog output through the stdlib root logger.

    Call once at process start. Without it the stdlib default level
    (WARNING) drops info-level audit events.
    """
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )


class AuditLogger:
    """
    Central audit logging service.

    Writes every event to the structured local log.
    """

    def __init__(self, logger_name: str = "spendeka.audit"):
        self._logger = structlog.get_logger(logger_name)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity.value == "error":
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    async def log_request_received(
        self,
        flow: str,
        language: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        """Log the start of a flow."""
        event = AuditEventBuilder.request_received(
            flow=flow,
            language=language,
            correlation_id=correlation_id,
            details=details,
        )
        await self.log(event)

    async def log_asset_received(
        self,
        asset_id: UUID,
        filename: Optional[str],
        size_bytes: int,
        mime_type: str,
        correlation_id: UUID,
    ) -> None:
        """Log that an upload was stored as a temporary asset."""
        event = AuditEventBuilder.asset_received(
            asset_id=asset_id,
            filename=filename,
            size_bytes=size_bytes,
            mime_type=mime_type,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_bill_scan_stage(
        self,
        asset_id: UUID,
        stage: str,
        correlation_id: UUID,
    ) -> None:
        """Log a bill-scan state transition."""
        event = AuditEventBuilder.bill_scan_stage(
            asset_id=asset_id,
            stage=stage,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ocr_completed(
        self,
        asset_id: UUID,
        character_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log OCR completion."""
        event = AuditEventBuilder.ocr_completed(
            asset_id=asset_id,
            character_count=character_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_parsed(
        self,
        category: str,
        transaction_type: str,
        correlation_id: UUID,
    ) -> None:
        """Log a successfully validated transaction."""
        event = AuditEventBuilder.transaction_parsed(
            category=category,
            transaction_type=transaction_type,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_created_at_normalized(
        self,
        generated: str,
        resolved: str,
        correlation_id: UUID,
    ) -> None:
        """Log that the backend's createdAt was replaced."""
        event = AuditEventBuilder.created_at_normalized(
            generated=generated,
            resolved=resolved,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_caption_generated(
        self,
        item_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a validated caption."""
        event = AuditEventBuilder.caption_generated(
            item_count=item_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_failure(
        self,
        error: Exception,
        correlation_id: Optional[UUID] = None,
        stage: Optional[str] = None,
        service: str = "gemini",
    ) -> None:
        """
        Log a failed request with the event type matching the error class.

        Args:
            error: The exception that ended the flow
            correlation_id: Request correlation ID
            stage: Flow stage the failure happened in, if known
            service: External service to blame for upstream errors
        """
        if isinstance(error, ValidationError):
            event = AuditEventBuilder.validation_failed(
                field=error.field,
                error_message=error.detail or error.message,
                correlation_id=correlation_id,
            )
        elif isinstance(error, ExtractionError):
            event = AuditEventBuilder.extraction_failed(
                error_message=error.message,
                correlation_id=correlation_id,
            )
        elif isinstance(error, UpstreamError):
            cause = error.__cause__
            event = AuditEventBuilder.external_service_error(
                service=service,
                error_message=str(cause) if cause else error.message,
                correlation_id=correlation_id,
            )
        elif isinstance(
            error,
            (InputValidationError, PayloadTooLargeError, OcrEmptyResultError),
        ):
            event = AuditEventBuilder.request_rejected(
                error_code=type(error).__name__,
                error_message=error.message,
                correlation_id=correlation_id,
                stage=stage,
            )
        else:
            cause = error.__cause__ if isinstance(error, SpendekaError) else error
            event = AuditEventBuilder.system_error(
                error_type=type(cause or error).__name__,
                error_message=str(cause or error),
                details={"stage": stage} if stage else None,
                correlation_id=correlation_id,
            )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request.
    Pass it through all subsequent operations.
    """
    return uuid4()
