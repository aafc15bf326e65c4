"""Byte-signature classification of captured resources."""

from typing import Optional

from ..models import ClassifiedFormat, FormatKind, PDF_SIGNATURE

# Never look further into the payload than this
SNIFF_WINDOW = 512

TIFF_BYTE_ORDER_MARKS = (b"II", b"MM")

RASTER_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
    (b"BM", "bmp"),
)

HTML_PREFIXES = (b"<html", b"<!doctype")
SERVER_ERROR_MARKERS = (b"notice</b>", b"error</b>", b"undefined variable")


def _raster_kind_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    mime = content_type.split(";", 1)[0].strip().lower()
    if not mime.startswith("image/"):
        return None
    subtype = mime.split("/", 1)[1]
    return {"jpg": "jpeg", "pjpeg": "jpeg", "x-png": "png"}.get(subtype, subtype)


def _raster_kind_from_signature(head: bytes) -> Optional[str]:
    for signature, kind in RASTER_SIGNATURES:
        if head.startswith(signature):
            return kind
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "webp"
    return None


def classify(data: bytes, content_type: Optional[str] = None) -> ClassifiedFormat:
    """
    Classify raw bytes into the format that decides the downstream path.

    Checks run in order and the first match wins: PDF signature, TIFF byte-order
    mark, raster image (declared image MIME type or PNG/JPEG/GIF/BMP/WEBP magic),
    HTML or server error page, otherwise unknown.

    Args:
        data: Raw payload; only the first SNIFF_WINDOW bytes are inspected
        content_type: Optional Content-Type header value

    Returns:
        ClassifiedFormat: The tagged format
    """
    head = bytes(data[:SNIFF_WINDOW])

    if head[:5] == PDF_SIGNATURE:
        return ClassifiedFormat(FormatKind.PDF)

    if head[:2] in TIFF_BYTE_ORDER_MARKS:
        return ClassifiedFormat(FormatKind.TIFF, raster_kind="tiff")

    raster_kind = _raster_kind_from_signature(head) or _raster_kind_from_content_type(content_type)
    if raster_kind:
        if raster_kind == "tiff":
            return ClassifiedFormat(FormatKind.TIFF, raster_kind="tiff")
        return ClassifiedFormat(FormatKind.RASTER_IMAGE, raster_kind=raster_kind)

    lowered = head.lstrip(b"\xef\xbb\xbf \t\r\n").lower()
    if lowered.startswith(HTML_PREFIXES) or any(marker in lowered for marker in SERVER_ERROR_MARKERS):
        return ClassifiedFormat(FormatKind.HTML_ERROR_PAGE)

    return ClassifiedFormat(FormatKind.UNKNOWN)


def is_pdf(data: bytes) -> bool:
    return classify(data).kind is FormatKind.PDF
