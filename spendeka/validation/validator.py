"""
Payload Validation

The backend is only instructed, never guaranteed, to honor the schema.
Every extracted object is re-validated here before it leaves the pipeline.

TRANSACTION VALIDATION checks, in order:
- caption: non-empty string
- amount: JSON number, strictly positive
- category: member of the closed taxonomy
- type: exactly "income" or "spent"
- createdAt: string that parses as an ISO 8601 datetime

The first failing field is reported; later violations are not collected.

CAPTION VALIDATION checks:
- caption: non-empty string
- items: list of strings

IMPORTANT: Validation never fills in missing values.
"""

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from spendeka.errors import ValidationError
from spendeka.models.transaction import CaptionResult, Transaction


logger = structlog.get_logger(__name__)


class TransactionValidator:
    """
    Validates a decoded backend payload into a Transaction.
    """

    FIELD_ORDER: tuple[str, ...] = ("caption", "amount", "category", "type", "createdAt")

    # pydantic reports field names, callers see the wire names
    _WIRE_NAMES = {"created_at": "createdAt"}

    def _first_invalid_field(self, error: PydanticValidationError) -> tuple[str, str]:
        """Pick the earliest failing field in FIELD_ORDER."""
        failures = []
        for detail in error.errors():
            loc = detail.get("loc") or ()
            name = str(loc[0]) if loc else "payload"
            name = self._WIRE_NAMES.get(name, name)
            failures.append((name, detail.get("msg", "invalid value")))

        def rank(failure: tuple[str, str]) -> int:
            name = failure[0]
            return self.FIELD_ORDER.index(name) if name in self.FIELD_ORDER else -1

        return min(failures, key=rank)

    def validate(self, payload: Any) -> Transaction:
        """
        Validate a decoded payload.

        Raises:
            ValidationError: naming the first missing or invalid field
        """
        if not isinstance(payload, dict):
            raise ValidationError(
                "payload",
                "Generated transaction is not a JSON object",
            )

        try:
            return Transaction.model_validate(payload)
        except PydanticValidationError as e:
            field, detail = self._first_invalid_field(e)
            raise ValidationError(field, detail=detail) from e


class CaptionValidator:
    """
    Validates a decoded backend payload into a CaptionResult.

    The validator does not reject long item lists; the result keeps the
    first MAX_ITEMS entries.
    """

    MAX_ITEMS = 5

    def validate(self, payload: Any) -> CaptionResult:
        """
        Validate a decoded caption payload.

        Raises:
            ValidationError: naming the first missing or invalid field
        """
        if not isinstance(payload, dict):
            raise ValidationError(
                "payload",
                "Generated caption is not a JSON object",
            )

        caption = payload.get("caption")
        if not isinstance(caption, str) or not caption.strip():
            raise ValidationError("caption")

        items = payload.get("items")
        if not isinstance(items, list):
            raise ValidationError("items")

        if len(items) > self.MAX_ITEMS:
            logger.warning(
                "caption_items_trimmed",
                received=len(items),
                kept=self.MAX_ITEMS,
            )
            items = items[:self.MAX_ITEMS]

        try:
            return CaptionResult(items=items, caption=caption)
        except PydanticValidationError as e:
            first = e.errors()[0]
            loc = first.get("loc") or ("items",)
            raise ValidationError(str(loc[0]), detail=first.get("msg")) from e
