"""
FastAPI backend for Spendeka

Exposes:
- GET /                     : service info
- GET /health               : liveness check
- POST /text-to-transaction : free text → transaction
- POST /scan-bill           : receipt photo → OCR text + transaction
- POST /image-caption       : item photo → item names + caption

This layer only translates HTTP to flow calls and errors to responses.
Every decision about the data is made by the flows in spendeka.orchestrator.
"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, Optional
from uuid import UUID

import structlog
from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from spendeka import __version__
from spendeka.audit import configure_logging, create_correlation_id
from spendeka.config import AppSettings, validate_all_settings
from spendeka.error_classifier import classify_error
from spendeka.errors import InputValidationError, InternalError, SpendekaError
from spendeka.models import Language, UploadedAsset
from spendeka.orchestrator import AppComponents, create_app_components
from spendeka.services.assets import AssetGuard, store_upload


logger = structlog.get_logger(__name__)


def check_settings() -> Dict[str, Any]:
    """Validate every settings section and log the ones that fail."""
    status = validate_all_settings()
    for name in ("gemini", "ocr", "app"):
        if not status.get(name):
            logger.warning("settings_invalid", section=name, error=status.get(f"{name}_error"))
    return status


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        debug = AppSettings().debug_mode
    except ValueError:
        # Reported by check_settings below
        debug = False
    configure_logging(debug=debug)
    check_settings()
    yield


app = FastAPI(title="Spendeka", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache()
def get_components() -> AppComponents:
    """Build the flows once per process."""
    return create_app_components()


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------

def _error_response(error: BaseException) -> JSONResponse:
    classified = classify_error(error)
    return JSONResponse(status_code=classified.status_code, content=classified.to_response())


@app.exception_handler(SpendekaError)
async def _handle_spendeka_error(request: Request, exc: SpendekaError) -> JSONResponse:
    return _error_response(exc)


_UPLOAD_PATHS = ("/scan-bill", "/image-caption")


def _invalid_field(request: Request, exc: RequestValidationError) -> str:
    """Name the first failing request field, or the endpoint's main one."""
    for error in exc.errors():
        names = [part for part in error.get("loc", ()) if isinstance(part, str) and part != "body"]
        if names:
            return names[-1]
    return "file" if request.url.path in _UPLOAD_PATHS else "text"


@app.exception_handler(RequestValidationError)
async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies are plain input errors
    field = _invalid_field(request, exc)
    return _error_response(InputValidationError(f"Missing or invalid '{field}'"))


@app.exception_handler(Exception)
async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return _error_response(exc)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

class TextTransactionRequest(BaseModel):
    """Payload for POST /text-to-transaction."""
    text: Optional[str] = None
    language: Optional[str] = None


@app.get("/")
def info() -> Dict[str, Any]:
    return {
        "ok": True,
        "service": "spendeka",
        "version": app.version,
        "endpoints": ["/health", "/text-to-transaction", "/scan-bill", "/image-caption"],
    }


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True}


@app.post("/text-to-transaction")
async def text_to_transaction(
    body: Optional[TextTransactionRequest] = None,
    components: AppComponents = Depends(get_components),
) -> Dict[str, Any]:
    body = body or TextTransactionRequest()
    language = Language.parse(body.language, components.default_language)

    transaction = await components.text_flow.parse(body.text, language)
    return transaction.to_response()


async def _receive_upload(
    file: Optional[UploadFile],
    components: AppComponents,
    correlation_id: UUID,
) -> UploadedAsset:
    """Store an uploaded file as a temporary asset owned by this request."""
    if file is None:
        raise InputValidationError("Missing 'file' upload")

    content = await file.read()
    try:
        asset = await store_upload(
            content,
            components.upload_dir,
            filename=file.filename,
            mime_type=file.content_type,
        )
    except OSError as e:
        raise InternalError() from e

    # The flows take ownership of the file; until then it is released here
    try:
        await components.audit_logger.log_asset_received(
            asset_id=asset.asset_id,
            filename=asset.original_filename,
            size_bytes=asset.size_bytes,
            mime_type=asset.mime_type,
            correlation_id=correlation_id,
        )
    except Exception as e:
        AssetGuard(asset).release()
        raise InternalError() from e
    return asset


@app.post("/scan-bill")
async def scan_bill(
    file: Optional[UploadFile] = File(None),
    language: Optional[str] = Form(None),
    components: AppComponents = Depends(get_components),
) -> Dict[str, Any]:
    correlation_id = create_correlation_id()
    asset = await _receive_upload(file, components, correlation_id)

    result = await components.bill_flow.scan(
        asset,
        Language.parse(language, components.default_language),
        correlation_id=correlation_id,
    )
    return result.to_response()


@app.post("/image-caption")
async def image_caption(
    file: Optional[UploadFile] = File(None),
    language: Optional[str] = Form(None),
    components: AppComponents = Depends(get_components),
) -> Dict[str, Any]:
    correlation_id = create_correlation_id()
    asset = await _receive_upload(file, components, correlation_id)

    result = await components.caption_flow.caption(
        asset,
        Language.parse(language, components.default_language),
        correlation_id=correlation_id,
    )
    return result.to_response()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
