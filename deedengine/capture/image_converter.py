import io
import logging
from typing import List, Tuple

from PIL import Image, ImageSequence, UnidentifiedImageError

from ..exceptions import UnsupportedFormatError

logger = logging.getLogger(__name__)

# US Letter in PDF points
DEFAULT_PAGE_ENVELOPE = (612.0, 792.0)

# Pillow writes PDF pages in points at 72 dpi
POINTS_PER_INCH = 72.0


def fit_to_envelope(
    width: float, height: float, envelope: Tuple[float, float] = DEFAULT_PAGE_ENVELOPE
) -> Tuple[float, float]:
    """
    Compute page dimensions for an image, one pixel per point before scaling.

    The image is scaled down, preserving aspect ratio, only when it exceeds the
    envelope; it is never upscaled.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        envelope: (max_width, max_height) in points

    Returns:
        Tuple[float, float]: Page width and height in points
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image dimensions: {width}x{height}")

    max_width, max_height = envelope
    if width <= max_width and height <= max_height:
        return float(width), float(height)

    scale = min(max_width / width, max_height / height)
    return width * scale, height * scale


def _normalize_mode(image: Image.Image) -> Image.Image:
    if image.mode in ("1", "L"):
        return image.convert("L")
    return image.convert("RGB")


def reencode_as_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    _normalize_mode(image).save(buffer, format="PNG")
    return buffer.getvalue()


def decode_pages(data: bytes) -> List[bytes]:
    """
    Decode a raster payload into one PNG per page.

    Multi-frame TIFFs yield one PNG per frame; every other format yields exactly one.

    Raises:
        UnsupportedFormatError: If Pillow cannot decode the payload
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            pages = [reencode_as_png(frame.copy()) for frame in ImageSequence.Iterator(image)]
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedFormatError(f"Could not decode raster image: {e}") from e

    if not pages:
        raise UnsupportedFormatError("Raster image has no frames")
    return pages


def image_to_pdf(data: bytes, envelope: Tuple[float, float] = DEFAULT_PAGE_ENVELOPE) -> bytes:
    """
    Turn one raster image into a single-page PDF.

    The image is decoded to PNG first (TIFF frames included) so nothing is embedded
    in its native encoding, then written onto a page sized by :func:`fit_to_envelope`
    and filled edge to edge.

    Args:
        data: Encoded raster image bytes (PNG, JPEG, TIFF, GIF, ...)
        envelope: Standard page envelope in points

    Returns:
        bytes: PDF document with exactly one page
    """
    png_bytes = decode_pages(data)[0]

    with Image.open(io.BytesIO(png_bytes)) as image:
        image.load()
        page_width, page_height = fit_to_envelope(image.width, image.height, envelope)
        # Page size in points = pixels * 72 / dpi
        resolution = image.width * POINTS_PER_INCH / page_width

        buffer = io.BytesIO()
        _normalize_mode(image).save(buffer, format="PDF", resolution=resolution)

    pdf_bytes = buffer.getvalue()
    logger.debug(
        f"Converted {image.width}x{image.height} image to {page_width:.1f}x{page_height:.1f}pt page "
        f"({len(pdf_bytes) / 1024:.2f} KB)"
    )
    return pdf_bytes
