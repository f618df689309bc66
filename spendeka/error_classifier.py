"""
Error Classification

Maps any exception raised by a flow to what the caller needs to know:
a severity class, an HTTP status and a message that is safe to show.

Nothing here retries. `retryable` only tells the caller whether sending
the same request again could succeed.
"""

from enum import Enum

from pydantic import BaseModel

from spendeka.errors import (
    InputValidationError,
    InternalError,
    OcrEmptyResultError,
    PayloadTooLargeError,
    SpendekaError,
    UpstreamError,
)


class ErrorSeverity(str, Enum):
    """Caller-facing error classes."""
    INPUT_ERROR = "input_error"              # fix the input
    PAYLOAD_TOO_LARGE = "payload_too_large"  # resize and retry
    UPSTREAM_FAILURE = "upstream_failure"    # transient, may retry
    OCR_EMPTY = "ocr_empty"                  # provide a clearer image
    INTERNAL_ERROR = "internal_error"


class ClassifiedError(BaseModel):
    """What the boundary layer renders for a failed request."""

    kind: str
    severity: ErrorSeverity
    status_code: int
    message: str
    retryable: bool

    def to_response(self) -> dict:
        return {"error": self.message, "severity": self.severity.value}


# Checked in order; subclasses must come before their bases
_CLASSIFICATION: tuple[tuple[type, ErrorSeverity, int, bool], ...] = (
    (InputValidationError, ErrorSeverity.INPUT_ERROR, 400, False),
    (PayloadTooLargeError, ErrorSeverity.PAYLOAD_TOO_LARGE, 413, False),
    (UpstreamError, ErrorSeverity.UPSTREAM_FAILURE, 502, True),
    (OcrEmptyResultError, ErrorSeverity.OCR_EMPTY, 422, False),
)


def classify_error(error: BaseException) -> ClassifiedError:
    """
    Classify an exception for the caller.

    Unclassified exceptions become internal errors with a generic message;
    their own message is never exposed.
    """
    for error_type, severity, status_code, retryable in _CLASSIFICATION:
        if isinstance(error, error_type):
            return ClassifiedError(
                kind=type(error).__name__,
                severity=severity,
                status_code=status_code,
                message=error.message,
                retryable=retryable,
            )

    return ClassifiedError(
        kind=InternalError.__name__,
        severity=ErrorSeverity.INTERNAL_ERROR,
        status_code=500,
        message=InternalError.default_message,
        retryable=False,
    )


def is_classified(error: BaseException) -> bool:
    """True for errors that already belong to the taxonomy."""
    return isinstance(error, SpendekaError)
