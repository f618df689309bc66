"""
Audit Models for Spendeka

Every significant step of a request is recorded as a structured event.
This provides:
1. Traceability of each request through the pipeline
2. Debugging information when a backend misbehaves
3. A record of every automatic correction (never silent)

Events are correlated by a per-request UUID. They are written to the
structured log only; nothing is persisted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Request handling
    REQUEST_RECEIVED = "request_received"
    REQUEST_REJECTED = "request_rejected"
    ASSET_RECEIVED = "asset_received"

    # Bill scan
    BILL_SCAN_STAGE = "bill_scan_stage"
    OCR_COMPLETED = "ocr_completed"

    # Generation
    EXTRACTION_FAILED = "extraction_failed"
    VALIDATION_FAILED = "validation_failed"
    TRANSACTION_PARSED = "transaction_parsed"
    CREATED_AT_NORMALIZED = "created_at_normalized"
    CAPTION_GENERATED = "caption_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'asset', 'transaction', 'caption')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events of one request share this
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


# Longer upload filenames are cut in asset events
MAX_LOGGED_FILENAME_LENGTH = 200


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.request_received("text", "eng", correlation_id)
        event = AuditEventBuilder.ocr_completed(asset_id, 120, correlation_id)
    """

    @staticmethod
    def request_received(
        flow: str,
        language: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_RECEIVED,
            entity_type="request",
            correlation_id=correlation_id,
            description=f"{flow} request received",
            details={"flow": flow, "language": language, **(details or {})},
        )

    @staticmethod
    def request_rejected(
        error_code: str,
        error_message: str,
        correlation_id: Optional[UUID],
        stage: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="request",
            correlation_id=correlation_id,
            description=f"Request rejected: {error_code}",
            details={"stage": stage} if stage else {},
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def asset_received(
        asset_id: UUID,
        filename: Optional[str],
        size_bytes: int,
        mime_type: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        shown = filename[:MAX_LOGGED_FILENAME_LENGTH] if filename else filename
        return AuditEvent(
            event_type=AuditEventType.ASSET_RECEIVED,
            entity_type="asset",
            entity_id=asset_id,
            correlation_id=correlation_id,
            description=f"Asset stored: {shown or 'unnamed upload'}",
            details={
                "filename": shown,
                "size_bytes": size_bytes,
                "mime_type": mime_type,
            },
        )

    @staticmethod
    def bill_scan_stage(
        asset_id: UUID,
        stage: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        failed = stage == "failed"
        return AuditEvent(
            event_type=AuditEventType.BILL_SCAN_STAGE,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.DEBUG,
            entity_type="asset",
            entity_id=asset_id,
            correlation_id=correlation_id,
            description=f"Bill scan reached stage: {stage}",
            details={"stage": stage},
        )

    @staticmethod
    def ocr_completed(
        asset_id: UUID,
        character_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_COMPLETED,
            entity_type="asset",
            entity_id=asset_id,
            correlation_id=correlation_id,
            description=f"OCR recognized {character_count} characters",
            details={"character_count": character_count},
        )

    @staticmethod
    def extraction_failed(
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="generation",
            correlation_id=correlation_id,
            description="No JSON object could be extracted from generated output",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        field: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="generation",
            correlation_id=correlation_id,
            description=f"Generated payload failed validation on '{field}'",
            details={"field": field},
            error_message=error_message,
        )

    @staticmethod
    def transaction_parsed(
        category: str,
        transaction_type: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_PARSED,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Transaction parsed: {transaction_type} / {category}",
            details={
                "category": category,
                "type": transaction_type,
            },
        )

    @staticmethod
    def created_at_normalized(
        generated: str,
        resolved: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CREATED_AT_NORMALIZED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            correlation_id=correlation_id,
            description="Generated createdAt replaced by the resolved date",
            details={
                "generated": generated,
                "resolved": resolved,
            },
        )

    @staticmethod
    def caption_generated(
        item_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CAPTION_GENERATED,
            entity_type="caption",
            correlation_id=correlation_id,
            description=f"Caption generated with {item_count} items",
            details={"item_count": item_count},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
