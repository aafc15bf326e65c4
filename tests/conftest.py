from __future__ import annotations

import asyncio
import io
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Dict, List, Optional, Sequence

import pytest
import requests
from PIL import Image
from pypdf import PdfWriter
from requests.structures import CaseInsensitiveDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from deedengine.adapters.base import ParcelHandle, SiteAdapter  # noqa: E402
from deedengine.config import Settings  # noqa: E402
from deedengine.models import PageSnapshot, SessionCredentials, TransactionRecord  # noqa: E402


def encode_image(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def page_image(width: int = 300, height: int = 400, background="white", mark: bool = True) -> Image.Image:
    """A scanned-page stand-in: uniform background with a 50x50 contrasting block in the centre."""
    image = Image.new("RGB", (width, height), background)
    if mark:
        left, top = (width - 50) // 2, (height - 50) // 2
        fill = (0, 0, 0) if background == "white" else (255, 255, 255)
        image.paste(fill, (left, top, left + 50, top + 50))
    return image


def session_cookie(name: str = "ASP.NET_SessionId", value: str = "abc123", domain: str = "records.example.gov") -> dict:
    """A cookie as the browser context reports it."""
    return {
        "name": name,
        "value": value,
        "domain": domain,
        "path": "/",
        "expires": -1,
        "httpOnly": True,
        "secure": False,
        "sameSite": "Lax",
    }


@pytest.fixture()
def png_factory() -> Callable[..., bytes]:
    def _create(width: int = 300, height: int = 400, background="white", mark: bool = True) -> bytes:
        return encode_image(page_image(width, height, background, mark), "PNG")

    return _create


@pytest.fixture()
def jpeg_factory() -> Callable[..., bytes]:
    def _create(width: int = 300, height: int = 400) -> bytes:
        return encode_image(page_image(width, height), "JPEG")

    return _create


@pytest.fixture()
def tiff_factory() -> Callable[..., bytes]:
    def _create(sizes: Sequence[tuple] = ((300, 400),)) -> bytes:
        frames = [page_image(width, height).convert("L") for width, height in sizes]
        buffer = io.BytesIO()
        frames[0].save(buffer, format="TIFF", save_all=True, append_images=frames[1:])
        return buffer.getvalue()

    return _create


@pytest.fixture()
def pdf_factory() -> Callable[[int], bytes]:
    def _create(pages: int = 1) -> bytes:
        writer = PdfWriter()
        for _ in range(pages):
            writer.add_blank_page(width=612, height=792)
        buffer = io.BytesIO()
        writer.write(buffer)
        return buffer.getvalue()

    return _create


@pytest.fixture()
def settings() -> Settings:
    return Settings(headless=True, fetch_timeout=5, acquisition_timeout=30)


class FakeHttpSession:
    """Stands in for requests.Session: url -> (status, headers, body) or an exception to raise."""

    def __init__(self, routes: Dict[str, object]):
        self.routes = routes
        self.calls: List[SimpleNamespace] = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append(SimpleNamespace(url=url, **kwargs))
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"No route to {url}")
        if isinstance(route, Exception):
            raise route
        status, headers, body = route
        return SimpleNamespace(status_code=status, headers=CaseInsensitiveDict(headers), content=body, url=url)

    def close(self):
        self.closed = True


@pytest.fixture()
def http(monkeypatch) -> FakeHttpSession:
    fake = FakeHttpSession({})
    monkeypatch.setattr("deedengine.capture.fetcher.requests.session", lambda: fake)
    return fake


class FakeBrowserSession:
    def __init__(self):
        self.started = False
        self.close_calls = 0
        self.observers = []

    async def start(self):
        self.started = True

    def attach_observer(self, observer):
        self.observers.append(observer)

    def detach_observer(self, observer):
        if observer in self.observers:
            self.observers.remove(observer)

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def close(self):
        self.observers.clear()
        self.close_calls += 1


class FakeDocumentPage:
    """A document page that is also a render surface."""

    def __init__(
        self,
        snapshot: PageSnapshot,
        text: str = "",
        views: Sequence[bytes] = (),
        frames: Sequence[bytes] = (),
        bands: Sequence[bytes] = (),
        full: Optional[bytes] = None,
        height: int = 0,
    ):
        self._snapshot = snapshot
        self.text = text
        self.views = list(views)
        self.frames = list(frames)
        self.bands = list(bands)
        self.full = full
        self.height = height
        self.current = 0
        self.band_requests: List[tuple] = []

    @property
    def url(self) -> str:
        return self._snapshot.url

    async def credentials(self) -> SessionCredentials:
        return SessionCredentials(cookies=[session_cookie()], referer=self.url, user_agent="TestAgent/1.0")

    async def snapshot(self) -> PageSnapshot:
        return self._snapshot

    async def visible_text(self) -> str:
        return self.text

    async def advance_page(self, page_index: int) -> bool:
        if page_index >= len(self.views):
            return False
        self.current = page_index
        return True

    async def capture_view(self) -> bytes:
        return self.views[self.current]

    async def page_frame_count(self) -> int:
        return len(self.frames)

    async def capture_frame(self, frame_index: int) -> bytes:
        return self.frames[frame_index]

    async def scroll_height(self) -> int:
        return self.height

    async def capture_band(self, offset: int, height: int) -> bytes:
        self.band_requests.append((offset, height))
        return self.bands[len(self.band_requests) - 1]

    async def capture_full(self) -> bytes:
        return self.full


class FakeAdapter(SiteAdapter):
    jurisdiction = "Palm Beach"

    def __init__(
        self,
        parcel: Optional[ParcelHandle] = None,
        transactions: Sequence[TransactionRecord] = (),
        page: Optional[FakeDocumentPage] = None,
        network: Sequence[tuple] = (),
        delay: float = 0.0,
        search_error: Optional[Exception] = None,
    ):
        super().__init__(FakeBrowserSession())
        self.parcel = parcel
        self.transactions = list(transactions)
        self.page = page
        self.network = list(network)
        self.delay = delay
        self.search_error = search_error
        self.searched = []

    async def search(self, address):
        self.searched.append(address)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.search_error is not None:
            raise self.search_error
        return self.parcel

    async def list_transactions(self, parcel):
        return self.transactions

    async def open_document_page(self, record):
        for url, resource_type, content_type in self.network:
            for observer in self.session.observers:
                observer.record(url, resource_type, content_type)
        return self.page


@pytest.fixture()
def adapter_factory() -> Callable[..., FakeAdapter]:
    return FakeAdapter


@pytest.fixture()
def page_factory() -> Callable[..., FakeDocumentPage]:
    return FakeDocumentPage


@pytest.fixture()
def parcel() -> ParcelHandle:
    return ParcelHandle(parcel_id="00-42-43-27-05-001-0010", owner_name="DOE JOHN")


@pytest.fixture()
def book_page_record() -> TransactionRecord:
    return TransactionRecord(source="palm-beach-official-records", book_number="100", page_number="200")
