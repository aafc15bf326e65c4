"""
Ranks every place the document bytes could live.

Signal tiers, best first:
    1. network-captured document/image requests matching document URL patterns
    2. frame/iframe src attributes
    3. embed/object src/data attributes
    4. large inline images
    5. a regex scan of the page source for absolute document-like URLs

Candidates keep their discovery order inside a tier; only tier 1 is additionally
ordered by match specificity, and that sort is stable.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ..models import CandidateLocation, InlineImage, ObservedRequest, OriginSignal, PageSnapshot

logger = logging.getLogger(__name__)

DEFAULT_MIN_IMAGE_PX = 200

# Explicit document endpoints seen across portals
SPECIFIC_DOCUMENT_PATTERNS = (
    re.compile(r"getdocumentimage", re.IGNORECASE),
    re.compile(r"/document/?pages", re.IGNORECASE),
    re.compile(r"viewimage", re.IGNORECASE),
    re.compile(r"getimage", re.IGNORECASE),
    re.compile(r"\.pdf(?:[?#]|$)", re.IGNORECASE),
    re.compile(r"\.tiff?(?:[?#]|$)", re.IGNORECASE),
)
GENERIC_DOCUMENT_PATTERNS = (
    re.compile(r"/document", re.IGNORECASE),
    re.compile(r"/image", re.IGNORECASE),
)

NETWORK_RESOURCE_TYPES = ("document", "image")

FRAME_TOKENS = ("pdf", "tif", "image", "img", "document", "doc", "viewer", "deed")
EMBED_TOKENS = ("pdf", "tif", "image", "img", "png", "jpg", "jpeg")

ABSOLUTE_URL_PATTERN = re.compile(r"https?://[^\s\"'<>()\\]+", re.IGNORECASE)

UNFETCHABLE_PREFIXES = ("data:", "blob:", "javascript:", "about:", "chrome-error:")


def _specificity(url: str) -> Optional[int]:
    if any(pattern.search(url) for pattern in SPECIFIC_DOCUMENT_PATTERNS):
        return 0
    if any(pattern.search(url) for pattern in GENERIC_DOCUMENT_PATTERNS):
        return 1
    return None


def _fetchable(url: Optional[str]) -> bool:
    if not url:
        return False
    stripped = url.strip()
    return bool(stripped) and not stripped.lower().startswith(UNFETCHABLE_PREFIXES)


def _has_token(url: str, tokens: Sequence[str]) -> bool:
    lowered = url.lower()
    return any(token in lowered for token in tokens)


def network_candidates(requests: Iterable[ObservedRequest]) -> List[str]:
    """Tier 1: observed document/image requests, most specific pattern first."""
    matches = []
    for position, request in enumerate(requests):
        if request.resource_type.lower() not in NETWORK_RESOURCE_TYPES:
            continue
        if not _fetchable(request.url):
            continue
        specificity = _specificity(request.url)
        if specificity is None:
            continue
        matches.append((specificity, position, request.url))

    return [url for _, _, url in sorted(matches)]


def frame_candidates(snapshot: PageSnapshot) -> List[str]:
    """Tier 2: frame sources that look like a document viewer."""
    return [
        urljoin(snapshot.url, src)
        for src in snapshot.frame_urls
        if _fetchable(src) and src.strip().lower() != "about:blank" and _has_token(src, FRAME_TOKENS)
    ]


def embed_candidates(snapshot: PageSnapshot) -> List[str]:
    """Tier 3: embed/object sources with PDF, TIFF or image tokens."""
    return [
        urljoin(snapshot.url, src)
        for src in snapshot.embed_urls
        if _fetchable(src) and _has_token(src, EMBED_TOKENS)
    ]


def image_candidates(snapshot: PageSnapshot, min_image_px: int = DEFAULT_MIN_IMAGE_PX) -> List[str]:
    """Tier 4: inline images large enough to be a scanned page rather than an icon."""
    return [
        urljoin(snapshot.url, image.src)
        for image in snapshot.images
        if _fetchable(image.src) and image.width >= min_image_px and image.height >= min_image_px
    ]


def page_source_candidates(snapshot: PageSnapshot) -> List[str]:
    """Tier 5: absolute document-like URLs anywhere in the page source."""
    found = []
    for match in ABSOLUTE_URL_PATTERN.finditer(snapshot.html or ""):
        url = match.group(0).rstrip(".,;")
        if _specificity(url) is not None:
            found.append(url.replace("&amp;", "&"))
    return found


def resolve_candidates(
    snapshot: PageSnapshot,
    observed_requests: Sequence[ObservedRequest] = (),
    min_image_px: int = DEFAULT_MIN_IMAGE_PX,
) -> List[CandidateLocation]:
    """
    Produce the ranked list of candidate document locations.

    A URL found by more than one tier is kept only at its best tier.

    Args:
        snapshot: DOM signals of the document page
        observed_requests: Requests seen while the adapter navigated to the page
        min_image_px: Minimum width and height of an inline image candidate

    Returns:
        List[CandidateLocation]: Most-likely-correct first; empty when nothing was found
    """
    tiers = (
        (OriginSignal.NETWORK_CAPTURE, network_candidates(observed_requests)),
        (OriginSignal.FRAME_SRC, frame_candidates(snapshot)),
        (OriginSignal.EMBED_OBJECT, embed_candidates(snapshot)),
        (OriginSignal.INLINE_IMAGE, image_candidates(snapshot, min_image_px)),
        (OriginSignal.PAGE_SOURCE_SCAN, page_source_candidates(snapshot)),
    )

    seen = set()
    candidates: List[CandidateLocation] = []
    for origin, urls in tiers:
        for url in urls:
            if url in seen:
                continue
            seen.add(url)
            candidates.append(CandidateLocation(url=url, origin_signal=origin, priority_rank=origin.rank))

    logger.info(f"🔎 Resolved {len(candidates)} candidate location(s)")
    for candidate in candidates:
        logger.debug(f"  [{candidate.priority_rank}] {candidate.origin_signal.value}: {candidate.url}")
    return candidates


def snapshot_from_html(
    url: str,
    html: str,
    frame_urls: Sequence[str] = (),
    image_sizes: Optional[Dict[str, tuple]] = None,
) -> PageSnapshot:
    """
    Build a PageSnapshot from page HTML.

    Args:
        url: URL of the document page, used to resolve relative sources
        html: Page source
        frame_urls: Frame URLs reported by the browser, merged after DOM frames
        image_sizes: Natural (width, height) per img src as rendered by the browser;
            falls back to the width/height attributes

    Returns:
        PageSnapshot: Frames, embeds and images in document order
    """
    soup = BeautifulSoup(html or "", "html.parser")
    image_sizes = image_sizes or {}

    frames = [tag.get("src", "") for tag in soup.find_all(["iframe", "frame"])]
    for frame_url in frame_urls:
        if frame_url not in frames:
            frames.append(frame_url)

    embeds = []
    for tag in soup.find_all(["embed", "object"]):
        source = tag.get("src") or tag.get("data")
        if source:
            embeds.append(source)

    images = []
    for tag in soup.find_all("img"):
        src = tag.get("src")
        if not src:
            continue
        width, height = image_sizes.get(src, (_int_attr(tag.get("width")), _int_attr(tag.get("height"))))
        images.append(InlineImage(src=src, width=width, height=height))

    return PageSnapshot(url=url, html=html or "", frame_urls=frames, embed_urls=embeds, images=images)


def _int_attr(value) -> int:
    try:
        return int(str(value).strip().rstrip("px"))
    except (TypeError, ValueError):
        return 0
