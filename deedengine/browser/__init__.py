"""Browser plumbing: one Playwright tab per pipeline and the document page it lands on."""

from .session import BrowserSession, NetworkObserver
from .context import BrowsingContext

__all__ = ["BrowserSession", "NetworkObserver", "BrowsingContext"]
