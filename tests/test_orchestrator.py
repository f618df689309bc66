"""
Integration tests for the flows, with faked backend and OCR engine.
"""

import asyncio

import pytest

from spendeka.agents import CaptionAgent, StructuredPayloadAgent, TransactionAgent
from spendeka.audit import AuditLogger
from spendeka.errors import (
    ExtractionError,
    InputValidationError,
    InternalError,
    OcrEmptyResultError,
    PayloadTooLargeError,
    ValidationError,
)
from spendeka.models import AuditEventType, Language
from spendeka.orchestrator import BillScanFlow, ImageCaptionFlow, TextToTransactionFlow
from spendeka.services.generation import GenerationError
from spendeka.services.ocr import OcrEngineError

from conftest import REFERENCE, FakeGenerationClient, FakeOCRService, transaction_payload


class RecordingAuditLogger(AuditLogger):
    """Keeps events in memory instead of writing them."""

    def __init__(self):
        super().__init__()
        self.events = []

    async def log(self, event):
        self.events.append(event)
        return True

    def of_type(self, event_type):
        return [e for e in self.events if e.event_type == event_type]

    @property
    def stages(self):
        return [e.details["stage"] for e in self.of_type(AuditEventType.BILL_SCAN_STAGE)]


def make_text_flow(client, audit_logger=None):
    return TextToTransactionFlow(
        transaction_agent=TransactionAgent(StructuredPayloadAgent(client)),
        audit_logger=audit_logger,
        clock=lambda: REFERENCE,
    )


class TestTextToTransactionFlow:
    """Tests for TextToTransactionFlow."""

    def test_parses_text_with_reference_date(self):
        client = FakeGenerationClient(transaction_payload(createdAt="2024-01-02T08:00:00.000Z"))
        audit = RecordingAuditLogger()
        flow = make_text_flow(client, audit)

        transaction = asyncio.run(flow.parse("Bought lunch for 12", Language.ENGLISH))

        assert transaction.amount == 12
        assert transaction.type.value == "spent"
        assert transaction.created_at == "2024-01-02T10:00:00.000Z"
        assert len(audit.of_type(AuditEventType.CREATED_AT_NORMALIZED)) == 1
        assert len(audit.of_type(AuditEventType.TRANSACTION_PARSED)) == 1

    def test_yesterday_is_midnight(self):
        client = FakeGenerationClient(transaction_payload(createdAt="2024-01-01T10:00:00.000Z"))
        flow = make_text_flow(client)

        transaction = asyncio.run(flow.parse("Taxi yesterday 8", Language.ENGLISH))

        assert transaction.created_at == "2024-01-01T00:00:00.000Z"

    def test_date_in_text_is_not_replaced(self):
        client = FakeGenerationClient(transaction_payload(
            caption="Rent", amount=500, category="bills", createdAt="2024-01-05T00:00:00.000Z",
        ))
        audit = RecordingAuditLogger()
        flow = make_text_flow(client, audit)

        transaction = asyncio.run(flow.parse("Paid rent 500 on the 5th", Language.ENGLISH))

        assert transaction.created_at == "2024-01-05T00:00:00.000Z"
        assert audit.of_type(AuditEventType.CREATED_AT_NORMALIZED) == []

    def test_time_of_day_keeps_generated_time(self):
        client = FakeGenerationClient(transaction_payload(createdAt="2024-01-01T12:00:00.000Z"))
        flow = make_text_flow(client)

        transaction = asyncio.run(flow.parse("Lunch yesterday at noon, 12", Language.ENGLISH))

        assert transaction.created_at == "2024-01-01T12:00:00.000Z"

    def test_matching_date_is_not_logged_as_correction(self):
        client = FakeGenerationClient(transaction_payload())
        audit = RecordingAuditLogger()
        flow = make_text_flow(client, audit)

        asyncio.run(flow.parse("Bought lunch for 12", Language.ENGLISH))

        assert audit.of_type(AuditEventType.CREATED_AT_NORMALIZED) == []

    def test_explicit_reference_is_used(self):
        client = FakeGenerationClient(transaction_payload(createdAt="2024-01-05T07:30:00.000Z"))
        flow = make_text_flow(client)
        reference = REFERENCE.replace(day=5)

        transaction = asyncio.run(flow.parse("coffee 3", reference=reference))

        assert transaction.created_at == "2024-01-05T10:00:00.000Z"
        assert "2024-01-05T10:00:00.000Z" in client.calls[0]["prompt"]

    @pytest.mark.parametrize("text", [None, "", "   \n", 42])
    def test_blank_text_makes_no_backend_call(self, text):
        client = FakeGenerationClient()
        audit = RecordingAuditLogger()
        flow = make_text_flow(client, audit)

        with pytest.raises(InputValidationError) as exc_info:
            asyncio.run(flow.parse(text))

        assert exc_info.value.message == "Missing or invalid 'text'"
        assert client.calls == []
        assert len(audit.of_type(AuditEventType.REQUEST_REJECTED)) == 1

    def test_upstream_errors_propagate(self):
        client = FakeGenerationClient(transaction_payload(amount=-3))
        audit = RecordingAuditLogger()
        flow = make_text_flow(client, audit)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(flow.parse("refund 3"))

        assert exc_info.value.field == "amount"
        assert len(audit.of_type(AuditEventType.VALIDATION_FAILED)) == 1

    def test_unexpected_errors_become_internal(self):
        client = FakeGenerationClient(RuntimeError("socket closed"))
        flow = make_text_flow(client, RecordingAuditLogger())

        with pytest.raises(InternalError) as exc_info:
            asyncio.run(flow.parse("lunch 12"))

        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestBillScanFlow:
    """Tests for BillScanFlow."""

    def make_flow(self, ocr, client=None, audit=None, max_size_bytes=1024):
        audit = audit or RecordingAuditLogger()
        return BillScanFlow(
            ocr_service=ocr,
            text_flow=make_text_flow(client or FakeGenerationClient(), audit),
            audit_logger=audit,
            max_size_bytes=max_size_bytes,
        )

    def test_scans_bill(self, make_asset):
        asset = make_asset()
        ocr = FakeOCRService(text="\n  PHO 24\nTOTAL 45.000  \n")
        client = FakeGenerationClient(transaction_payload(caption="Phở", amount=45000))
        audit = RecordingAuditLogger()
        flow = self.make_flow(ocr, client, audit)

        result = asyncio.run(flow.scan(asset, Language.VIETNAMESE))

        assert result.raw_text == "PHO 24\nTOTAL 45.000"
        assert result.parsed.amount == 45000
        assert "PHO 24\nTOTAL 45.000" in client.calls[0]["prompt"]
        assert ocr.paths == [asset.path]
        assert not asset.path.exists()
        assert audit.stages == [
            "received", "size_checked", "recognized", "parsed", "cleaned_up",
        ]

    def test_oversize_image_is_rejected_before_ocr(self, make_asset):
        asset = make_asset(size_bytes=6 * 1024 * 1024)
        ocr = FakeOCRService(text="TOTAL 10")
        flow = self.make_flow(ocr, max_size_bytes=5 * 1024 * 1024)

        with pytest.raises(PayloadTooLargeError) as exc_info:
            asyncio.run(flow.scan(asset))

        assert exc_info.value.message == "Bill image too large. Please upload an image under 5MB."
        assert ocr.paths == []
        assert not asset.path.exists()

    def test_empty_image_is_rejected(self, make_asset):
        asset = make_asset(size_bytes=0)
        flow = self.make_flow(FakeOCRService(text="x"))

        with pytest.raises(InputValidationError):
            asyncio.run(flow.scan(asset))
        assert not asset.path.exists()

    @pytest.mark.parametrize("text", ["", "  \n\t "])
    def test_no_text_is_terminal(self, make_asset, text):
        asset = make_asset()
        client = FakeGenerationClient()
        audit = RecordingAuditLogger()
        flow = self.make_flow(FakeOCRService(text=text), client, audit)

        with pytest.raises(OcrEmptyResultError):
            asyncio.run(flow.scan(asset))

        assert client.calls == []
        assert not asset.path.exists()
        assert audit.stages[-1] == "failed"

    def test_ocr_engine_failure(self, make_asset):
        asset = make_asset()
        audit = RecordingAuditLogger()
        flow = self.make_flow(FakeOCRService(error=OcrEngineError()), audit=audit)

        with pytest.raises(OcrEngineError):
            asyncio.run(flow.scan(asset))

        assert not asset.path.exists()
        failure = audit.of_type(AuditEventType.EXTERNAL_SERVICE_ERROR)[0]
        assert failure.details["service"] == "tesseract"

    def test_generation_failure_still_cleans_up(self, make_asset):
        asset = make_asset()
        client = FakeGenerationClient(GenerationError())
        audit = RecordingAuditLogger()
        flow = self.make_flow(FakeOCRService(text="TOTAL 10"), client, audit)

        with pytest.raises(GenerationError):
            asyncio.run(flow.scan(asset))

        assert not asset.path.exists()
        # Logged once, by the text flow
        assert len(audit.of_type(AuditEventType.EXTERNAL_SERVICE_ERROR)) == 1

    def test_missing_file_does_not_mask_result(self, make_asset):
        asset = make_asset()
        asset.path.unlink()
        flow = self.make_flow(
            FakeOCRService(text="TOTAL 10"),
            FakeGenerationClient(transaction_payload()),
        )

        result = asyncio.run(flow.scan(asset))
        assert result.parsed.caption == "Lunch"


class TestImageCaptionFlow:
    """Tests for ImageCaptionFlow."""

    def make_flow(self, client, audit=None):
        return ImageCaptionFlow(
            caption_agent=CaptionAgent(StructuredPayloadAgent(client)),
            audit_logger=audit,
        )

    def test_captions_photo(self, make_asset):
        asset = make_asset(data=b"\x89PNGphoto", mime_type="image/png")
        client = FakeGenerationClient({"items": ["milk tea"], "caption": "Afternoon tea"})
        audit = RecordingAuditLogger()
        flow = self.make_flow(client, audit)

        result = asyncio.run(flow.caption(asset, Language.ENGLISH))

        assert result.to_response() == {"items": ["milk tea"], "caption": "Afternoon tea"}
        image = client.calls[0]["image"]
        assert image.data == b"\x89PNGphoto"
        assert image.mime_type == "image/png"
        assert not asset.path.exists()
        assert len(audit.of_type(AuditEventType.CAPTION_GENERATED)) == 1

    def test_failure_cleans_up(self, make_asset):
        asset = make_asset()
        client = FakeGenerationClient("not json")
        flow = self.make_flow(client)

        with pytest.raises(ExtractionError):
            asyncio.run(flow.caption(asset))

        assert not asset.path.exists()

    def test_unreadable_asset_is_internal(self, make_asset):
        asset = make_asset()
        asset.path.unlink()
        client = FakeGenerationClient()

        with pytest.raises(InternalError):
            asyncio.run(self.make_flow(client).caption(asset))
        assert client.calls == []
