"""
Error Taxonomy

Every failure the pipeline can surface to a caller is one of these.
The boundary layer never sees raw SDK or engine exceptions: services wrap
them in a subclass below, and the flows wrap anything unexpected in
InternalError.

    SpendekaError
    ├── InputValidationError       caller must fix the input
    ├── PayloadTooLargeError       caller must resize and retry
    ├── UpstreamError              transient, caller may retry
    │   └── UpstreamGenerationError
    │       ├── ExtractionError    no JSON object in generated output
    │       └── ValidationError    JSON object does not match the schema
    ├── OcrEmptyResultError        caller must provide a clearer image
    └── InternalError              anything unanticipated
"""

from typing import Optional


class SpendekaError(Exception):
    """Base exception for all classified pipeline errors."""

    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InputValidationError(SpendekaError):
    """Malformed or missing caller input. Raised before any external call."""

    default_message = "Invalid input"


class PayloadTooLargeError(SpendekaError):
    """Uploaded asset exceeds the hard size limit."""

    def __init__(self, size_bytes: int, limit_bytes: int):
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        limit_mb = limit_bytes / (1024 * 1024)
        super().__init__(
            f"Bill image too large. Please upload an image under {limit_mb:g}MB."
        )


class UpstreamError(SpendekaError):
    """An external collaborator (generation backend, OCR engine) failed."""

    default_message = "Upstream service failed"


class UpstreamGenerationError(UpstreamError):
    """The generation backend failed or produced unusable output."""

    default_message = "Generation backend failed"


class ExtractionError(UpstreamGenerationError):
    """No parseable JSON object in the generated text."""

    default_message = "Failed to parse generation backend response as JSON"


class ValidationError(UpstreamGenerationError):
    """The extracted object does not match the expected schema."""

    def __init__(
        self,
        field: str,
        message: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        self.field = field
        self.detail = detail
        super().__init__(
            message or f"Generated payload is missing or has an invalid '{field}'"
        )


class OcrEmptyResultError(SpendekaError):
    """OCR ran but found no legible text."""

    default_message = "OCR did not detect any text in the bill image."


class InternalError(SpendekaError):
    """Anything the pipeline did not anticipate."""

    default_message = "Internal server error"
