import asyncio
import io

import pytest
from pypdf import PdfReader

from deedengine.capture.page_assembler import (
    PageSourceKind,
    assemble_pages,
    collect_rendered_pages,
    count_pdf_pages,
    detect_page_source,
    parse_page_count,
    parse_page_indicator,
)
from deedengine.exceptions import BlankContentError, InvalidPdfError
from deedengine.models import FormatKind, PageSnapshot

SNAPSHOT = PageSnapshot(url="https://records.example.gov/viewer")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Page 1 of 3", 3),
        ("# Pages in Image: 4", 4),
        ("This instrument has 2 pages", 2),
        ("Page 2 of 3", 3),
        ("Showing 1 of 5", None),
        ("Results 1 of 12 records", None),
        ("Book 100 Page 200", None),
        ("", None),
        ("Page 1 of 9999", None),
    ],
)
def test_parse_page_count(text, expected):
    assert parse_page_count(text) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Page 2 of 3", (2, 3)),
        ("Showing 1 of 5 results. Page 1 of 2", (1, 2)),
        ("# Pages in Image: 4", (1, 4)),
        ("Page 4 of 3", None),
    ],
)
def test_parse_page_indicator_reports_current_page(text, expected):
    assert parse_page_indicator(text) == expected


def test_indicator_takes_precedence_over_frames(page_factory, png_factory):
    surface = page_factory(SNAPSHOT, text="Page 1 of 2", frames=[png_factory()] * 3)
    source = asyncio.run(detect_page_source(surface))
    assert source.kind is PageSourceKind.PAGE_INDICATOR
    assert source.expected_pages == 2


def test_frames_then_bands_then_single(page_factory, png_factory):
    framed = page_factory(SNAPSHOT, frames=[png_factory()] * 2)
    assert asyncio.run(detect_page_source(framed)).kind is PageSourceKind.FRAMES

    stacked = page_factory(SNAPSHOT, height=2400)
    source = asyncio.run(detect_page_source(stacked, known_page_count=3))
    assert source.kind is PageSourceKind.VERTICAL_BANDS
    assert source.band_height == 800

    assert asyncio.run(detect_page_source(stacked)).kind is PageSourceKind.SINGLE


def test_single_source_keeps_first_page(page_factory, png_factory):
    first = png_factory()
    pages = asyncio.run(collect_rendered_pages(page_factory(SNAPSHOT), first))
    assert pages == [first]


def test_indicator_pages_are_captured_in_order(page_factory, png_factory):
    views = [png_factory(300, 400), png_factory(320, 400), png_factory(340, 400)]
    surface = page_factory(SNAPSHOT, text="Page 1 of 3", views=views)
    pages = asyncio.run(collect_rendered_pages(surface, views[0]))
    assert pages == views


def test_bands_are_cut_at_equal_offsets(page_factory, png_factory):
    bands = [png_factory(), png_factory(310, 400)]
    surface = page_factory(SNAPSHOT, bands=bands, height=1000)
    pages = asyncio.run(collect_rendered_pages(surface, bands[0], known_page_count=2))
    assert pages == bands
    assert surface.band_requests == [(0, 500), (500, 500)]


def test_short_capture_falls_back_to_whole_surface(page_factory, png_factory):
    blank = png_factory(mark=False)
    full = png_factory(600, 1600)
    surface = page_factory(SNAPSHOT, frames=[png_factory(), blank, blank], full=full)
    pages = asyncio.run(collect_rendered_pages(surface, png_factory()))
    assert pages == [full]


def test_blank_fallback_keeps_first_page(page_factory, png_factory):
    blank = png_factory(mark=False)
    first = png_factory(330, 400)
    surface = page_factory(SNAPSHOT, frames=[blank, blank], full=blank)
    assert asyncio.run(collect_rendered_pages(surface, first)) == [first]


def test_viewer_opened_mid_document_is_rewound(page_factory, png_factory):
    views = [png_factory(300, 400), png_factory(320, 400), png_factory(340, 400)]
    surface = page_factory(SNAPSHOT, text="Page 2 of 3", views=views)
    surface.current = 1

    source = asyncio.run(detect_page_source(surface))
    pages = asyncio.run(collect_rendered_pages(surface, views[1]))

    assert source.current_page == 2
    assert pages == views


def test_viewer_that_cannot_rewind_falls_back_to_whole_surface(page_factory, png_factory):
    views = [png_factory(300, 400), png_factory(320, 400)]
    full = png_factory(600, 1600)
    surface = page_factory(SNAPSHOT, text="Page 2 of 2", views=views, full=full)
    surface.current = 1

    async def stuck(page_index):
        return False

    surface.advance_page = stuck
    assert asyncio.run(collect_rendered_pages(surface, views[1])) == [full]


def test_render_errors_fall_back_to_whole_surface(page_factory, png_factory):
    full = png_factory(600, 1600)
    surface = page_factory(SNAPSHOT, text="Page 1 of 3", views=[png_factory()] * 3, full=full)

    async def closed_view():
        raise RuntimeError("Target page, context or browser has been closed")

    surface.capture_view = closed_view
    assert asyncio.run(collect_rendered_pages(surface, png_factory())) == [full]


def test_render_errors_everywhere_keep_first_page(page_factory, png_factory):
    first = png_factory(330, 400)
    surface = page_factory(SNAPSHOT, frames=[png_factory()] * 2)

    async def broken(*args):
        raise RuntimeError("Element is not attached to the DOM")

    surface.capture_frame = broken
    surface.capture_full = broken
    assert asyncio.run(collect_rendered_pages(surface, first)) == [first]


def test_unreadable_viewer_keeps_first_page(page_factory, png_factory):
    first = png_factory()
    surface = page_factory(SNAPSHOT)

    async def timed_out():
        raise TimeoutError("inner_text timed out")

    surface.visible_text = timed_out
    assert asyncio.run(collect_rendered_pages(surface, first)) == [first]


def test_assemble_preserves_input_order(png_factory):
    widths = [300, 400, 500]
    document = assemble_pages([png_factory(width, 400) for width in widths])

    assert document.page_count == 3
    assert document.source_format is FormatKind.RASTER_IMAGE
    reader = PdfReader(io.BytesIO(document.pdf_bytes))
    assert [round(float(page.mediabox.width)) for page in reader.pages] == widths


def test_assemble_single_page(png_factory):
    document = assemble_pages([png_factory()], source_format=FormatKind.TIFF)
    assert document.page_count == 1
    assert document.pdf_bytes.startswith(b"%PDF-")
    assert document.source_format is FormatKind.TIFF


def test_assemble_nothing_is_blank_content():
    with pytest.raises(BlankContentError):
        assemble_pages([])


def test_count_pdf_pages(pdf_factory):
    assert count_pdf_pages(pdf_factory(4)) == 4


@pytest.mark.parametrize("payload", [b"<html></html>", b"%PDF-1.7\ngarbage without xref"])
def test_count_pdf_pages_rejects_invalid(payload):
    with pytest.raises(InvalidPdfError):
        count_pdf_pages(payload)
