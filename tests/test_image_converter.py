import io

import pytest
from pypdf import PdfReader

from deedengine.capture.format_classifier import classify
from deedengine.capture.image_converter import decode_pages, fit_to_envelope, image_to_pdf
from deedengine.exceptions import UnsupportedFormatError
from deedengine.models import FormatKind


def _page_sizes(pdf_bytes):
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return [(float(page.mediabox.width), float(page.mediabox.height)) for page in reader.pages]


def test_small_image_is_never_upscaled():
    assert fit_to_envelope(300, 400) == (300.0, 400.0)


def test_oversized_image_is_scaled_into_envelope():
    width, height = fit_to_envelope(1000, 2000)
    assert height == pytest.approx(792)
    assert width == pytest.approx(396)


def test_wide_image_is_limited_by_width():
    width, height = fit_to_envelope(2448, 1584, (612, 792))
    assert width == pytest.approx(612)
    assert width / height == pytest.approx(2448 / 1584)


@pytest.mark.parametrize("width, height", [(0, 10), (10, -1)])
def test_invalid_dimensions(width, height):
    with pytest.raises(ValueError):
        fit_to_envelope(width, height)


def test_png_round_trip_produces_single_page_pdf(png_factory):
    pdf_bytes = image_to_pdf(png_factory(300, 400))
    assert classify(pdf_bytes).kind is FormatKind.PDF
    [(width, height)] = _page_sizes(pdf_bytes)
    assert width == pytest.approx(300, abs=1)
    assert height == pytest.approx(400, abs=1)


def test_large_jpeg_keeps_aspect_ratio(jpeg_factory):
    pdf_bytes = image_to_pdf(jpeg_factory(1224, 1584))
    [(width, height)] = _page_sizes(pdf_bytes)
    assert width <= 612 + 1 and height <= 792 + 1
    assert width / height == pytest.approx(1224 / 1584, rel=0.01)


def test_tiff_converts_through_png(tiff_factory):
    pdf_bytes = image_to_pdf(tiff_factory())
    assert classify(pdf_bytes).kind is FormatKind.PDF
    assert len(_page_sizes(pdf_bytes)) == 1


def test_multi_frame_tiff_decodes_one_png_per_frame(tiff_factory):
    pages = decode_pages(tiff_factory([(300, 400), (320, 400), (340, 400)]))
    assert len(pages) == 3
    assert all(classify(page).raster_kind == "png" for page in pages)


def test_undecodable_payload_raises():
    with pytest.raises(UnsupportedFormatError):
        image_to_pdf(b"not an image at all")
