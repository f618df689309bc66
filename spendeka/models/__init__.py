"""
Data Models Package

This package contains all Pydantic models used in Spendeka.
All data flowing through the system must conform to these schemas.
"""

from spendeka.models.transaction import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    BillScanResult,
    BillScanStage,
    CaptionResult,
    Language,
    Transaction,
    TransactionCategory,
    TransactionType,
    UploadedAsset,
    parse_iso_datetime,
)
from spendeka.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "BillScanResult",
    "BillScanStage",
    "CaptionResult",
    "Language",
    "Transaction",
    "TransactionCategory",
    "TransactionType",
    "UploadedAsset",
    "parse_iso_datetime",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
