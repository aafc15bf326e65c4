from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..address import Address
from ..browser.context import BrowsingContext
from ..browser.session import BrowserSession
from ..models import TransactionRecord


@dataclass(frozen=True)
class ParcelHandle:
    """Whatever an adapter needs to find its way back to a parcel."""

    parcel_id: str
    owner_name: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class SiteAdapter(ABC):
    """
    Jurisdiction-specific navigation, behind the three calls the engine consumes.

    Implementations own the form filling, selectors and any CAPTCHA resolution for
    one portal. The engine never looks past these calls; it only uses ``session``
    to observe network traffic and to tear the browser down.
    """

    jurisdiction: str = "unknown"

    def __init__(self, session: BrowserSession):
        self.session = session

    @abstractmethod
    async def search(self, address: Address) -> Optional[ParcelHandle]:
        """Find the parcel for an address. Returns None when the portal has no match."""

    @abstractmethod
    async def list_transactions(self, parcel: ParcelHandle) -> List[TransactionRecord]:
        """Recorded instruments for the parcel, newest first."""

    @abstractmethod
    async def open_document_page(self, record: TransactionRecord) -> BrowsingContext:
        """Navigate to the document page of one instrument and return it."""

    async def close(self):
        await self.session.close()
