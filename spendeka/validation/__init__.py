"""Extraction and validation package."""

from spendeka.validation.dates import (
    format_iso_datetime,
    resolve_created_at,
    scan_date_cues,
)
from spendeka.validation.extractor import extract_json_object
from spendeka.validation.validator import CaptionValidator, TransactionValidator

__all__ = [
    "CaptionValidator",
    "TransactionValidator",
    "extract_json_object",
    "format_iso_datetime",
    "resolve_created_at",
    "scan_date_cues",
]
