import base64

import pytest

from deedengine.models import (
    AcquisitionResult,
    AssembledDocument,
    CandidateDiagnostic,
    CandidateFailureReason,
    FailureKind,
    FormatKind,
    OriginSignal,
    TransactionRecord,
)


def test_transaction_identifier_prefers_document_id():
    assert TransactionRecord(source="x", document_id="2023-0456", book_number="1", page_number="2").identifier == "2023-0456"
    assert TransactionRecord(source="x", book_number="100", page_number="200").identifier == "100_200"
    assert TransactionRecord(source="x", book_number="100").identifier is None


def test_origin_ranks_follow_tier_order():
    assert [signal.rank for signal in OriginSignal] == [1, 2, 3, 4, 5]


@pytest.mark.parametrize("pdf_bytes, page_count", [(b"<html>", 1), (b"%PDF-1.4", 0)])
def test_assembled_document_invariants(pdf_bytes, page_count):
    with pytest.raises(ValueError):
        AssembledDocument(pdf_bytes=pdf_bytes, page_count=page_count, source_format=FormatKind.PDF)


def test_success_result_serializes_document(pdf_factory):
    pdf_bytes = pdf_factory(2)
    result = AcquisitionResult(
        success=True,
        address="123 Main St",
        elapsed_ms=1500,
        document=AssembledDocument(pdf_bytes=pdf_bytes, page_count=2, source_format=FormatKind.PDF),
        filename="palm_beach_deed_100_200.pdf",
    )

    payload = result.to_dict()

    assert payload["success"] is True
    assert payload["failureKind"] is None
    assert payload["document"]["pageCount"] == 2
    assert payload["document"]["filename"] == "palm_beach_deed_100_200.pdf"
    assert payload["document"]["fileSize"] == len(pdf_bytes)
    assert payload["document"]["sourceFormat"] == "pdf"
    assert base64.b64decode(payload["document"]["pdfBase64"]) == pdf_bytes


def test_failed_result_serializes_diagnostics():
    diagnostic = CandidateDiagnostic(
        rank=1,
        origin_signal=OriginSignal.NETWORK_CAPTURE,
        url="https://records.example.gov/viewimage.php",
        reason=CandidateFailureReason.HTML_ERROR_PAGE,
        detail="Portal returned an HTML page",
    )
    result = AcquisitionResult(
        success=False,
        address="123 Main St",
        elapsed_ms=10,
        failure_kind=FailureKind.ALL_STRATEGIES_EXHAUSTED,
        diagnostics=[diagnostic],
    )

    payload = result.to_dict()

    assert payload["document"] is None
    assert payload["failureKind"] == "all-strategies-exhausted"
    assert payload["diagnostics"] == [
        {
            "rank": 1,
            "originSignal": "network-capture",
            "url": "https://records.example.gov/viewimage.php",
            "reason": "html-error-page",
            "detail": "Portal returned an HTML page",
        }
    ]
