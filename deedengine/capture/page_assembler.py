"""Multi-page detection and assembly.

Page sources are tried in preference order: an explicit "page N of M" indicator
driven through the viewer's paging controls starting from page 1, frames that each
render one page, and a vertically stacked rendering cut into equal bands. When none
applies the capture stays single-page. A per-page capture that comes up short, or
errors, falls back to one capture of the whole rendered surface.
"""

import io
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Tuple

from pypdf import PdfReader, PdfWriter

from ..exceptions import BlankContentError, InvalidPdfError, UnsupportedFormatError
from ..models import AssembledDocument, FormatKind, PDF_SIGNATURE
from .blank_detector import is_blank_image
from .image_converter import DEFAULT_PAGE_ENVELOPE, image_to_pdf

logger = logging.getLogger(__name__)

PAGE_INDICATOR_PATTERNS = (
    re.compile(r"page\s+(\d+)\s+of\s+(\d+)", re.IGNORECASE),
    re.compile(r"#\s*pages\s*in\s*image:\s*(\d+)", re.IGNORECASE),
    re.compile(r"\b(\d+)\s+pages\b", re.IGNORECASE),
)

# Guard against counters that are clearly not page counts
MAX_REASONABLE_PAGES = 200


class RenderSurface(Protocol):
    """The parts of a live document page the assembler needs."""

    async def visible_text(self) -> str: ...

    async def advance_page(self, page_index: int) -> bool: ...

    async def capture_view(self) -> bytes: ...

    async def page_frame_count(self) -> int: ...

    async def capture_frame(self, frame_index: int) -> bytes: ...

    async def scroll_height(self) -> int: ...

    async def capture_band(self, offset: int, height: int) -> bytes: ...

    async def capture_full(self) -> bytes: ...


class PageSourceKind(str, Enum):
    PAGE_INDICATOR = "page-indicator"
    FRAMES = "frames"
    VERTICAL_BANDS = "vertical-bands"
    SINGLE = "single"


@dataclass(frozen=True)
class PageSource:
    kind: PageSourceKind
    expected_pages: int = 1
    band_height: int = 0
    # 1-based page the viewer shows when detection ran
    current_page: int = 1


def parse_page_indicator(text: str) -> Optional[Tuple[int, int]]:
    """
    Read the current page and total page count from viewer text.

    Recognises "Page 2 of 3", "# Pages in Image: 3" and "3 pages". Only the first
    form names a current page; the others report page 1. Bare counters such as
    "Showing 1 of 5" are not page indicators.

    Returns:
        Optional[Tuple[int, int]]: (current, total), or None when no indicator is present
    """
    if not text:
        return None

    for pattern in PAGE_INDICATOR_PATTERNS:
        for match in pattern.finditer(text):
            groups = match.groups()
            total = int(groups[-1])
            current = int(groups[0]) if len(groups) > 1 else 1
            if 1 <= total <= MAX_REASONABLE_PAGES and 1 <= current <= total:
                return current, total
    return None


def parse_page_count(text: str) -> Optional[int]:
    """Read the total page count from viewer text, None when no indicator is present."""
    indicator = parse_page_indicator(text)
    return indicator[1] if indicator else None


async def detect_page_source(surface: RenderSurface, known_page_count: Optional[int] = None) -> PageSource:
    """
    Work out how the pages of the current document are exposed.

    Args:
        surface: The live document page
        known_page_count: Page count reported by the site adapter, if any

    Returns:
        PageSource: The first applicable source, SINGLE when nothing applies
    """
    indicator = parse_page_indicator(await surface.visible_text())
    if indicator and indicator[1] > 1:
        current, total = indicator
        return PageSource(PageSourceKind.PAGE_INDICATOR, expected_pages=total, current_page=current)

    frame_count = await surface.page_frame_count()
    if frame_count > 1:
        return PageSource(PageSourceKind.FRAMES, expected_pages=frame_count)

    if known_page_count and known_page_count > 1:
        total_height = await surface.scroll_height()
        band_height = total_height // known_page_count
        if band_height > 0:
            return PageSource(
                PageSourceKind.VERTICAL_BANDS,
                expected_pages=known_page_count,
                band_height=band_height,
            )

    return PageSource(PageSourceKind.SINGLE)


async def _capture_raw_pages(surface: RenderSurface, source: PageSource) -> List[bytes]:
    pages: List[bytes] = []
    if source.kind is PageSourceKind.PAGE_INDICATOR:
        if source.current_page > 1 and not await surface.advance_page(0):
            logger.warning(f"Viewer opened on page {source.current_page} and could not be moved back to page 1")
            return pages
        for index in range(source.expected_pages):
            if index > 0 and not await surface.advance_page(index):
                logger.warning(f"Could not advance viewer to page {index + 1}/{source.expected_pages}")
                break
            pages.append(await surface.capture_view())
    elif source.kind is PageSourceKind.FRAMES:
        for index in range(source.expected_pages):
            pages.append(await surface.capture_frame(index))
    elif source.kind is PageSourceKind.VERTICAL_BANDS:
        for index in range(source.expected_pages):
            pages.append(await surface.capture_band(index * source.band_height, source.band_height))
    return pages


def _usable(pages: Sequence[bytes]) -> List[bytes]:
    usable = []
    for number, page in enumerate(pages, start=1):
        try:
            if is_blank_image(page):
                logger.warning(f"Discarding blank page {number}")
                continue
        except UnsupportedFormatError as e:
            logger.warning(f"Discarding undecodable page {number}: {e}")
            continue
        usable.append(page)
    return usable


async def collect_rendered_pages(
    surface: RenderSurface,
    first_page: bytes,
    known_page_count: Optional[int] = None,
) -> List[bytes]:
    """
    Expand a single accepted raster page into every page the viewer renders.

    Render-surface errors fall back to a whole-surface capture and then to the
    already verified first page alone.

    Args:
        surface: The live document page
        first_page: The page already captured and blank-checked for the winning candidate
        known_page_count: Page count reported by the site adapter, if any

    Returns:
        List[bytes]: Non-blank raster pages in document order, never empty
    """
    try:
        source = await detect_page_source(surface, known_page_count)
    except Exception as e:
        logger.warning(f"Could not inspect the viewer for more pages, keeping the first page: {e}")
        return [first_page]

    if source.kind is PageSourceKind.SINGLE:
        return [first_page]

    logger.info(f"📄 Document exposes {source.expected_pages} page(s) via {source.kind.value}")
    try:
        pages = _usable(await _capture_raw_pages(surface, source))
    except Exception as e:
        logger.warning(f"Per-page capture via {source.kind.value} failed: {e}")
        pages = []
    if len(pages) >= source.expected_pages:
        return pages[: source.expected_pages]

    logger.warning(
        f"Only {len(pages)}/{source.expected_pages} usable pages via {source.kind.value}, "
        "falling back to a single capture of the whole surface"
    )
    try:
        fallback = _usable([await surface.capture_full()])
    except Exception as e:
        logger.warning(f"Whole-surface capture failed, keeping the first page: {e}")
        fallback = []
    return fallback or [first_page]


def count_pdf_pages(pdf_bytes: bytes) -> int:
    """
    Validate a PDF payload and return its page count.

    Raises:
        InvalidPdfError: If the signature is missing, pypdf cannot read it or it has no pages
    """
    if not pdf_bytes.startswith(PDF_SIGNATURE):
        raise InvalidPdfError("Payload does not start with a PDF header")
    try:
        page_count = len(PdfReader(io.BytesIO(pdf_bytes)).pages)
    except Exception as e:  # pypdf surfaces malformed input as many error types
        raise InvalidPdfError(f"Unreadable PDF: {e}") from e
    if page_count < 1:
        raise InvalidPdfError("PDF has no pages")
    return page_count


def assemble_pages(
    pages: Sequence[bytes],
    envelope: Tuple[float, float] = DEFAULT_PAGE_ENVELOPE,
    source_format: FormatKind = FormatKind.RASTER_IMAGE,
) -> AssembledDocument:
    """
    Build one PDF with one page per raster buffer, in input order.

    Args:
        pages: Raster buffers that already passed blank detection
        envelope: Standard page envelope in points
        source_format: Format the pages were captured in

    Returns:
        AssembledDocument: The merged document

    Raises:
        BlankContentError: If there are no pages to assemble
    """
    if not pages:
        raise BlankContentError("No usable pages to assemble")

    if len(pages) == 1:
        pdf_bytes = image_to_pdf(pages[0], envelope)
        return AssembledDocument(pdf_bytes=pdf_bytes, page_count=1, source_format=source_format)

    writer = PdfWriter()
    for number, page in enumerate(pages, start=1):
        logger.debug(f"Adding page {number}/{len(pages)}")
        reader = PdfReader(io.BytesIO(image_to_pdf(page, envelope)))
        for pdf_page in reader.pages:
            writer.add_page(pdf_page)

    buffer = io.BytesIO()
    writer.write(buffer)
    pdf_bytes = buffer.getvalue()
    logger.info(f"✅ PDF assembled: {len(writer.pages)} page(s), {len(pdf_bytes) / 1024:.2f} KB")
    return AssembledDocument(pdf_bytes=pdf_bytes, page_count=len(writer.pages), source_format=source_format)
