import logging
from typing import List, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, Response, async_playwright

from ..config import Settings
from ..models import ObservedRequest

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-debugging-pane",  # Disable the debugging pane for a cleaner UI.
    "--disable-automation",  # Disable automation flags to reduce detection.
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
]


class NetworkObserver:
    """Accumulates the responses a page receives while it is attached."""

    def __init__(self):
        self._requests: List[ObservedRequest] = []
        self._page: Optional[Page] = None

    @property
    def attached(self) -> bool:
        return self._page is not None

    @property
    def requests(self) -> List[ObservedRequest]:
        return list(self._requests)

    def record(self, url: str, resource_type: str, content_type: Optional[str] = None):
        self._requests.append(ObservedRequest(url=url, resource_type=resource_type, content_type=content_type))

    def _on_response(self, response: Response):
        self.record(
            response.url,
            response.request.resource_type,
            response.headers.get("content-type"),
        )

    def attach(self, page: Page):
        if self._page is not None:
            return
        page.on("response", self._on_response)
        self._page = page

    def detach(self):
        if self._page is None:
            return
        self._page.remove_listener("response", self._on_response)
        self._page = None
        logger.debug(f"Network observer detached after {len(self._requests)} response(s)")


class BrowserSession:
    """
    One headless browser tab owned by exactly one pipeline.

    Sessions share nothing: each launches its own browser and context, so cookies
    issued by a portal never cross into another acquisition.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self._observers: List[NetworkObserver] = []

    async def start(self) -> Page:
        """Launch the browser and open the session's tab."""
        if self.page is not None:
            return self.page

        logger.info("🚀 Initializing browser...")
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.settings.headless,
            args=LAUNCH_ARGS,
        )
        self._context = await self._browser.new_context(viewport={"width": 1366, "height": 900})
        self._context.set_default_timeout(self.settings.navigation_timeout_ms)
        self._context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
        self.page = await self._context.new_page()
        return self.page

    def attach_observer(self, observer: NetworkObserver):
        if self.page is None:
            raise RuntimeError("Browser session has not been started")
        observer.attach(self.page)
        self._observers.append(observer)

    def detach_observer(self, observer: NetworkObserver):
        observer.detach()
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def closed(self) -> bool:
        return self._playwright is None and self.page is None

    async def close(self):
        """Tear the session down. Safe to call more than once."""
        for observer in list(self._observers):
            self.detach_observer(observer)

        try:
            if self._context is not None:
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
        finally:
            if self._playwright is not None:
                await self._playwright.stop()
            self._context = None
            self._browser = None
            self._playwright = None
            self.page = None
            logger.info("🧹 Browser session closed")
