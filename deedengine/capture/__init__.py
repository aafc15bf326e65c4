"""
Document capture components - jurisdiction-agnostic acquisition and assembly.

- Location resolver: ranks candidate document locations from network and DOM signals
- Fetcher: credentialed fetch of candidate bytes using the browsing session's cookies
- Format classifier: byte-signature classification of captured resources
- Blank detector: rejects empty and placeholder renders
- Image converter: one raster image to one PDF page
- Page assembler: multi-page detection and ordered PDF assembly
"""

from .location_resolver import resolve_candidates, snapshot_from_html
from .fetcher import CaptureFetcher
from .format_classifier import classify
from .blank_detector import is_blank, is_blank_image, RasterStats
from .image_converter import image_to_pdf, decode_pages, fit_to_envelope
from .page_assembler import (
    assemble_pages,
    collect_rendered_pages,
    count_pdf_pages,
    parse_page_count,
    parse_page_indicator,
)

__all__ = [
    "resolve_candidates",
    "snapshot_from_html",
    "CaptureFetcher",
    "classify",
    "is_blank",
    "is_blank_image",
    "RasterStats",
    "image_to_pdf",
    "decode_pages",
    "fit_to_envelope",
    "assemble_pages",
    "collect_rendered_pages",
    "count_pdf_pages",
    "parse_page_count",
    "parse_page_indicator",
]
