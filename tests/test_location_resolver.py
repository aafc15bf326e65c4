from deedengine.capture.location_resolver import (
    network_candidates,
    resolve_candidates,
    snapshot_from_html,
)
from deedengine.models import InlineImage, ObservedRequest, OriginSignal, PageSnapshot

PAGE_URL = "https://records.example.gov/search/detail?inst=2023000456"

VIEWER_HTML = """
<html><body>
  <img src="/static/logo.png" width="120" height="60">
  <iframe src="about:blank"></iframe>
  <iframe src="/viewer/document.aspx?id=456"></iframe>
  <embed src="/files/456.pdf" type="application/pdf">
  <object data="/files/456.tif"></object>
  <img src="/scan/page1.jpg" width="850" height="1100">
  <script>var fallback = "https://records.example.gov/GetDocumentImage?id=456&amp;page=1";</script>
</body></html>
"""


def test_snapshot_from_html_collects_signals():
    snapshot = snapshot_from_html(PAGE_URL, VIEWER_HTML)

    assert snapshot.frame_urls == ["about:blank", "/viewer/document.aspx?id=456"]
    assert snapshot.embed_urls == ["/files/456.pdf", "/files/456.tif"]
    assert snapshot.images == [
        InlineImage(src="/static/logo.png", width=120, height=60),
        InlineImage(src="/scan/page1.jpg", width=850, height=1100),
    ]


def test_rendered_image_sizes_override_attributes():
    html = '<img src="/scan/page1.jpg">'
    snapshot = snapshot_from_html(PAGE_URL, html, image_sizes={"/scan/page1.jpg": (1700, 2200)})
    assert snapshot.images == [InlineImage(src="/scan/page1.jpg", width=1700, height=2200)]


def test_tiers_are_ranked_best_first():
    snapshot = snapshot_from_html(PAGE_URL, VIEWER_HTML)
    requests = [
        ObservedRequest("https://records.example.gov/api/image/thumb", "image", "image/png"),
        ObservedRequest("https://records.example.gov/viewimage.php?doc=456", "document", "text/html"),
        ObservedRequest("https://records.example.gov/app.js", "script", "text/javascript"),
    ]

    candidates = resolve_candidates(snapshot, requests)

    assert [(c.origin_signal, c.url) for c in candidates] == [
        (OriginSignal.NETWORK_CAPTURE, "https://records.example.gov/viewimage.php?doc=456"),
        (OriginSignal.NETWORK_CAPTURE, "https://records.example.gov/api/image/thumb"),
        (OriginSignal.FRAME_SRC, "https://records.example.gov/viewer/document.aspx?id=456"),
        (OriginSignal.EMBED_OBJECT, "https://records.example.gov/files/456.pdf"),
        (OriginSignal.EMBED_OBJECT, "https://records.example.gov/files/456.tif"),
        (OriginSignal.INLINE_IMAGE, "https://records.example.gov/scan/page1.jpg"),
        (OriginSignal.PAGE_SOURCE_SCAN, "https://records.example.gov/GetDocumentImage?id=456&page=1"),
    ]
    assert [c.priority_rank for c in candidates] == [1, 1, 2, 3, 3, 4, 5]


def test_resolution_is_deterministic():
    snapshot = snapshot_from_html(PAGE_URL, VIEWER_HTML)
    requests = [ObservedRequest("https://records.example.gov/document/pages/1", "document")]
    assert resolve_candidates(snapshot, requests) == resolve_candidates(snapshot, requests)


def test_network_ordering_is_stable_within_specificity():
    requests = [
        ObservedRequest("https://a.example/getimage?p=2", "image"),
        ObservedRequest("https://a.example/getimage?p=1", "image"),
        ObservedRequest("https://a.example/image/1", "image"),
        ObservedRequest("https://a.example/deed.pdf", "document"),
    ]
    assert network_candidates(requests) == [
        "https://a.example/getimage?p=2",
        "https://a.example/getimage?p=1",
        "https://a.example/deed.pdf",
        "https://a.example/image/1",
    ]


def test_url_found_by_several_tiers_is_kept_once_at_best_tier():
    snapshot = PageSnapshot(
        url=PAGE_URL,
        html='<embed src="https://records.example.gov/files/456.pdf">',
        embed_urls=["https://records.example.gov/files/456.pdf"],
    )
    candidates = resolve_candidates(snapshot)
    assert len(candidates) == 1
    assert candidates[0].origin_signal is OriginSignal.EMBED_OBJECT


def test_small_and_inline_data_images_are_ignored():
    snapshot = PageSnapshot(
        url=PAGE_URL,
        images=[
            InlineImage("/icons/error.gif", 32, 32),
            InlineImage("/banner.png", 900, 120),
            InlineImage("data:image/png;base64,AAAA", 1000, 1000),
            InlineImage("/scan/page.png", 300, 400),
        ],
    )
    candidates = resolve_candidates(snapshot, min_image_px=200)
    assert [c.url for c in candidates] == ["https://records.example.gov/scan/page.png"]


def test_nothing_found_is_empty():
    assert resolve_candidates(PageSnapshot(url=PAGE_URL, html="<html><body>No image</body></html>")) == []
