import logging
from typing import Dict, List, Optional, Tuple

from playwright.async_api import ElementHandle, Error as PlaywrightError, Page

from ..capture.location_resolver import snapshot_from_html
from ..models import PageSnapshot, SessionCredentials

logger = logging.getLogger(__name__)

NEXT_PAGE_SELECTORS = [
    'button[aria-label*="next" i]',
    'a[aria-label*="next" i]',
    '[title*="next page" i]',
    'button:has-text("Next")',
    'a:has-text("Next")',
    'input[type="button"][value*="next" i]',
    'img[alt*="next" i]',
    ".next-page",
]

FIRST_PAGE_SELECTORS = [
    'button[aria-label*="first" i]',
    'a[aria-label*="first" i]',
    '[title*="first page" i]',
    'button:has-text("First")',
    'a:has-text("First")',
    'img[alt*="first" i]',
    ".first-page",
]

PAGE_SELECT_SELECTORS = [
    'select[name*="page" i]',
    'select[id*="page" i]',
]

IMAGE_SIZES_SCRIPT = """
() => Array.from(document.images).map(img => [
    img.getAttribute('src'),
    img.naturalWidth || img.width || 0,
    img.naturalHeight || img.height || 0,
])
"""

LARGEST_VISUAL_SCRIPT = """
() => {
    const nodes = Array.from(document.querySelectorAll('img, canvas, embed, object'));
    let best = -1, bestArea = 0;
    nodes.forEach((node, index) => {
        const rect = node.getBoundingClientRect();
        const area = rect.width * rect.height;
        if (area > bestArea) { bestArea = area; best = index; }
    });
    return best;
}
"""


class BrowsingContext:
    """
    The document page a site adapter leaves the session positioned on.

    Exposes the session credentials, a DOM snapshot for the location resolver and
    the render-surface operations used for multi-page capture.

    Args:
        page: Playwright page showing the document
        navigation_timeout_ms: Timeout for navigations and element waits
        page_frame_selector: Selector for frames that each render one page, when the
            portal is known to work that way
    """

    def __init__(
        self,
        page: Page,
        navigation_timeout_ms: int = 30000,
        page_frame_selector: Optional[str] = None,
    ):
        self.page = page
        self.navigation_timeout_ms = navigation_timeout_ms
        self.page_frame_selector = page_frame_selector

    @property
    def url(self) -> str:
        return self.page.url

    async def credentials(self) -> SessionCredentials:
        # Every cookie of the context, so document hosts other than the viewer get theirs
        cookies = await self.page.context.cookies()
        user_agent = await self.page.evaluate("() => navigator.userAgent")
        return SessionCredentials(
            cookies=[dict(cookie) for cookie in cookies],
            referer=self.page.url,
            user_agent=user_agent,
        )

    async def snapshot(self) -> PageSnapshot:
        html = await self.page.content()
        frame_urls = [frame.url for frame in self.page.frames if frame != self.page.main_frame]
        sizes: Dict[str, Tuple[int, int]] = {}
        for src, width, height in await self.page.evaluate(IMAGE_SIZES_SCRIPT):
            if src and src not in sizes:
                sizes[src] = (int(width), int(height))
        return snapshot_from_html(self.page.url, html, frame_urls=frame_urls, image_sizes=sizes)

    async def visible_text(self) -> str:
        texts = []
        for frame in self.page.frames:
            try:
                texts.append(await frame.inner_text("body", timeout=self.navigation_timeout_ms))
            except PlaywrightError as e:
                logger.debug(f"No readable text in frame {frame.url}: {e}")
        return "\n".join(texts)

    async def advance_page(self, page_index: int) -> bool:
        """Move the viewer to page_index (0-based) through a page select, or a first/next control."""
        for selector in PAGE_SELECT_SELECTORS:
            select = await self.page.query_selector(selector)
            if select is None:
                continue
            try:
                await select.select_option(str(page_index + 1))
                await self._settle()
                return True
            except PlaywrightError as e:
                logger.debug(f"Page select {selector} did not accept {page_index + 1}: {e}")

        # Without a select, index 0 rewinds and anything else steps forward one page
        controls = FIRST_PAGE_SELECTORS if page_index == 0 else NEXT_PAGE_SELECTORS
        for selector in controls:
            control = await self.page.query_selector(selector)
            if control is None or not await control.is_visible():
                continue
            try:
                await control.click(timeout=self.navigation_timeout_ms)
            except PlaywrightError as e:
                logger.debug(f"Paging control {selector} could not be clicked: {e}")
                continue
            await self._settle()
            return True

        return False

    async def capture_view(self) -> bytes:
        element = await self._largest_visual()
        if element is not None:
            return await element.screenshot(type="png", timeout=self.navigation_timeout_ms)
        return await self.page.screenshot(type="png", timeout=self.navigation_timeout_ms)

    async def _page_frames(self) -> List[ElementHandle]:
        if not self.page_frame_selector:
            return []
        return await self.page.query_selector_all(self.page_frame_selector)

    async def page_frame_count(self) -> int:
        return len(await self._page_frames())

    async def capture_frame(self, frame_index: int) -> bytes:
        frames = await self._page_frames()
        element = frames[frame_index]
        await element.scroll_into_view_if_needed(timeout=self.navigation_timeout_ms)
        return await element.screenshot(type="png", timeout=self.navigation_timeout_ms)

    async def scroll_height(self) -> int:
        return int(await self.page.evaluate("() => document.documentElement.scrollHeight"))

    async def capture_band(self, offset: int, height: int) -> bytes:
        # Scrolling first triggers lazy-loaded page images
        await self.page.evaluate("(y) => window.scrollTo(0, y)", offset)
        await self.page.wait_for_timeout(500)
        width = await self.page.evaluate("() => document.documentElement.scrollWidth")
        return await self.page.screenshot(
            type="png",
            full_page=True,
            clip={"x": 0, "y": offset, "width": width, "height": height},
            timeout=self.navigation_timeout_ms,
        )

    async def capture_full(self) -> bytes:
        return await self.page.screenshot(type="png", full_page=True, timeout=self.navigation_timeout_ms)

    async def _largest_visual(self) -> Optional[ElementHandle]:
        index = await self.page.evaluate(LARGEST_VISUAL_SCRIPT)
        if index is None or index < 0:
            return None
        nodes = await self.page.query_selector_all("img, canvas, embed, object")
        return nodes[index] if index < len(nodes) else None

    async def _settle(self):
        try:
            await self.page.wait_for_load_state("networkidle", timeout=self.navigation_timeout_ms)
        except PlaywrightError as e:
            logger.debug(f"Page did not reach network idle after paging: {e}")
        await self.page.wait_for_timeout(1000)
