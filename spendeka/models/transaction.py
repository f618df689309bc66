"""
Core Data Models for Spendeka

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Serialize to the camelCase shapes the mobile client expects

Transactions are ephemeral: built per request, returned to the caller,
never persisted here.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Language(str, Enum):
    """
    Supported prompt/caption languages.

    Anything unrecognized falls back to English.
    """
    VIETNAMESE = "vie"
    ENGLISH = "eng"

    @classmethod
    def parse(cls, value: Any, default: Optional["Language"] = None) -> "Language":
        """Resolve a request value ("vie", "eng", ...) to a Language."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for language in cls:
                if language.value == key:
                    return language
        return default or cls.ENGLISH

    @property
    def display_name(self) -> str:
        return "Vietnamese" if self is Language.VIETNAMESE else "English"


class TransactionType(str, Enum):
    """Direction of money flow."""
    INCOME = "income"
    SPENT = "spent"


class TransactionCategory(str, Enum):
    """
    Closed category taxonomy.

    The backend is told to pick one of these; the validator rejects
    anything else.
    """
    # Expenses
    FOOD = "food"
    TRANSPORT = "transport"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    BILLS = "bills"
    HEALTH = "health"
    EDUCATION = "education"
    OTHER = "other"

    # Income
    SALARY = "salary"
    FREELANCE = "freelance"
    INVESTMENT = "investment"
    GIFT = "gift"
    REFUND = "refund"
    OTHER_INCOME = "other_income"


EXPENSE_CATEGORIES: tuple[TransactionCategory, ...] = (
    TransactionCategory.FOOD,
    TransactionCategory.TRANSPORT,
    TransactionCategory.SHOPPING,
    TransactionCategory.ENTERTAINMENT,
    TransactionCategory.BILLS,
    TransactionCategory.HEALTH,
    TransactionCategory.EDUCATION,
    TransactionCategory.OTHER,
)

INCOME_CATEGORIES: tuple[TransactionCategory, ...] = (
    TransactionCategory.SALARY,
    TransactionCategory.FREELANCE,
    TransactionCategory.INVESTMENT,
    TransactionCategory.GIFT,
    TransactionCategory.REFUND,
    TransactionCategory.OTHER_INCOME,
)


class BillScanStage(str, Enum):
    """States of the bill-scan flow, used in audit events."""
    RECEIVED = "received"
    SIZE_CHECKED = "size_checked"
    RECOGNIZED = "recognized"
    TEXT_EXTRACTED = "text_extracted"
    PARSED = "parsed"
    CLEANED_UP = "cleaned_up"
    FAILED = "failed"


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A parsed personal-finance transaction.

    Field order matters: validation errors are reported for the first
    failing field in declaration order.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    caption: str = Field(
        ...,
        min_length=1,
        description="Short note describing the transaction"
    )
    amount: Union[StrictInt, StrictFloat] = Field(
        ...,
        description="Positive amount of money, int or float as received"
    )
    category: TransactionCategory = Field(
        ...,
        description="Category from the closed taxonomy"
    )
    type: TransactionType = Field(
        ...,
        description="income or spent"
    )
    created_at: str = Field(
        ...,
        alias="createdAt",
        description="ISO 8601 datetime"
    )

    @field_validator('category', mode='before')
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Union[int, float]) -> Union[int, float]:
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("amount must be a finite number")
        if v <= 0:
            raise ValueError("amount must be greater than 0")
        return v

    @field_validator('created_at')
    @classmethod
    def validate_created_at(cls, v: str) -> str:
        """Must parse as an ISO 8601 datetime."""
        parse_iso_datetime(v)
        return v

    @property
    def created_at_datetime(self) -> datetime:
        return parse_iso_datetime(self.created_at)

    def to_response(self) -> dict[str, Any]:
        """Serialize to the public JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


class CaptionResult(BaseModel):
    """Caption and item names generated from a photo."""
    model_config = ConfigDict(str_strip_whitespace=True)

    items: list[str] = Field(
        default_factory=list,
        max_length=5,
        description="Main items in the photo, at most five"
    )
    caption: str = Field(
        ...,
        min_length=1,
        description="Short caption for the expense"
    )

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class BillScanResult(BaseModel):
    """What OCR read from a receipt, plus the transaction parsed from it."""
    model_config = ConfigDict(populate_by_name=True)

    raw_text: str = Field(
        ...,
        alias="rawText",
        description="Trimmed OCR text"
    )
    parsed: Transaction

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# UPLOAD MODELS
# =============================================================================

class UploadedAsset(BaseModel):
    """
    A temporarily stored upload.

    Owned by exactly one request, which must delete it exactly once.
    size_bytes is what the upload layer reported; the flows decide whether
    it is acceptable.
    """

    asset_id: UUID = Field(
        default_factory=uuid4,
        description="Unique asset identifier"
    )
    uploaded_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    path: Path
    size_bytes: int
    mime_type: str = "image/jpeg"
    original_filename: Optional[str] = None


# =============================================================================
# HELPERS
# =============================================================================

def parse_iso_datetime(value: str) -> datetime:
    """
    Parse an ISO 8601 datetime, accepting a trailing "Z".

    Raises ValueError if the string is not a datetime.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("createdAt must be a non-empty ISO 8601 string")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)
