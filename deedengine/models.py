import base64
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

PDF_SIGNATURE = b"%PDF-"


class OriginSignal(str, Enum):
    """Where a candidate document location was discovered, best signal first."""

    NETWORK_CAPTURE = "network-capture"
    FRAME_SRC = "frame-src"
    EMBED_OBJECT = "embed-object"
    INLINE_IMAGE = "inline-image"
    PAGE_SOURCE_SCAN = "page-source-scan"

    @property
    def rank(self) -> int:
        return _ORIGIN_RANKS[self]


_ORIGIN_RANKS = {
    OriginSignal.NETWORK_CAPTURE: 1,
    OriginSignal.FRAME_SRC: 2,
    OriginSignal.EMBED_OBJECT: 3,
    OriginSignal.INLINE_IMAGE: 4,
    OriginSignal.PAGE_SOURCE_SCAN: 5,
}


class FormatKind(str, Enum):
    PDF = "pdf"
    TIFF = "tiff"
    RASTER_IMAGE = "raster-image"
    HTML_ERROR_PAGE = "html-error-page"
    UNKNOWN = "unknown"


class FailureKind(str, Enum):
    """Terminal failure of one address acquisition."""

    PARCEL_NOT_FOUND = "parcel-not-found"
    NO_TRANSACTIONS = "no-transactions"
    DOCUMENT_NOT_LOCATED = "document-not-located"
    ALL_STRATEGIES_EXHAUSTED = "all-strategies-exhausted"
    ACQUISITION_TIMEOUT = "acquisition-timeout"
    SITE_ERROR = "site-error"
    UNSUPPORTED_JURISDICTION = "unsupported-jurisdiction"
    INVALID_ADDRESS = "invalid-address"


class CandidateFailureReason(str, Enum):
    """Why a single candidate location was discarded."""

    NETWORK_ERROR = "network-error"
    HTTP_ERROR = "http-error"
    TIMEOUT = "timeout"
    HTML_ERROR_PAGE = "html-error-page"
    UNSUPPORTED_FORMAT = "unsupported-format"
    BLANK_CONTENT = "blank-content"
    INVALID_PDF = "invalid-pdf"


class AcquisitionStage(str, Enum):
    RESOLVING_PARCEL = "ResolvingParcel"
    SELECTING_TRANSACTION = "SelectingTransaction"
    LOCATING_DOCUMENT = "LocatingDocument"
    CAPTURING = "Capturing"
    VERIFYING = "Verifying"
    ASSEMBLING = "Assembling"
    DONE = "Done"
    FAILED = "Failed"


@dataclass(frozen=True)
class TransactionRecord:
    """One recorded instrument for a parcel, as listed by the site adapter."""

    source: str
    document_id: Optional[str] = None
    book_number: Optional[str] = None
    page_number: Optional[str] = None
    sale_date: Optional[str] = None
    page_count: Optional[int] = None

    @property
    def identifier(self) -> Optional[str]:
        if self.document_id:
            return self.document_id
        if self.book_number and self.page_number:
            return f"{self.book_number}_{self.page_number}"
        return None


@dataclass(frozen=True)
class CandidateLocation:
    url: str
    origin_signal: OriginSignal
    priority_rank: int


@dataclass(frozen=True)
class ObservedRequest:
    """A network response seen while the adapter navigated to the document page."""

    url: str
    resource_type: str
    content_type: Optional[str] = None


@dataclass(frozen=True)
class InlineImage:
    src: str
    width: int = 0
    height: int = 0


@dataclass
class PageSnapshot:
    """DOM signals of the document page at one point in time."""

    url: str
    html: str = ""
    frame_urls: List[str] = field(default_factory=list)
    embed_urls: List[str] = field(default_factory=list)
    images: List[InlineImage] = field(default_factory=list)


@dataclass(frozen=True)
class SessionCredentials:
    """What a credentialed fetch needs from the live browsing session.

    Cookies keep their domain and path so the fetcher only sends each one to the
    hosts the browser would.
    """

    cookies: List[Dict[str, Any]]
    referer: str
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class CapturedResource:
    data: bytes
    content_type: Optional[str]
    source_url: str


@dataclass(frozen=True)
class ClassifiedFormat:
    kind: FormatKind
    raster_kind: Optional[str] = None

    @property
    def is_raster(self) -> bool:
        return self.kind in (FormatKind.TIFF, FormatKind.RASTER_IMAGE)


@dataclass(frozen=True)
class AssembledDocument:
    pdf_bytes: bytes
    page_count: int
    source_format: FormatKind

    def __post_init__(self):
        if not self.pdf_bytes.startswith(PDF_SIGNATURE):
            raise ValueError("Assembled document does not start with a PDF header")
        if self.page_count < 1:
            raise ValueError("Assembled document must have at least one page")


@dataclass(frozen=True)
class CandidateDiagnostic:
    rank: int
    origin_signal: OriginSignal
    url: str
    reason: CandidateFailureReason
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "originSignal": self.origin_signal.value,
            "url": self.url,
            "reason": self.reason.value,
            "detail": self.detail,
        }


@dataclass
class CapturedPages:
    """Bytes captured for one candidate, before they are verified and assembled.

    A PDF candidate carries ``pdf_bytes``; raster candidates carry one PNG per page.
    """

    candidate: CandidateLocation
    source_format: FormatKind
    pdf_bytes: Optional[bytes] = None
    raster_pages: List[bytes] = field(default_factory=list)


@dataclass
class AcquisitionResult:
    """Terminal output of one address's pipeline run."""

    success: bool
    address: str
    elapsed_ms: int
    document: Optional[AssembledDocument] = None
    filename: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    diagnostics: List[CandidateDiagnostic] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the caller-facing shape, with the PDF base64 encoded."""
        payload: Dict[str, Any] = {
            "success": self.success,
            "address": self.address,
            "elapsedMs": self.elapsed_ms,
            "failureKind": self.failure_kind.value if self.failure_kind else None,
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
            "errors": list(self.errors),
            "timestamp": self.timestamp,
            "document": None,
        }
        if self.document is not None:
            payload["document"] = {
                "pdfBase64": base64.b64encode(self.document.pdf_bytes).decode("ascii"),
                "pageCount": self.document.page_count,
                "filename": self.filename,
                "fileSize": len(self.document.pdf_bytes),
                "sourceFormat": self.document.source_format.value,
            }
        return payload

