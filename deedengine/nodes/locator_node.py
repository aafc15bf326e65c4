import logging

from ..adapters.base import SiteAdapter
from ..browser.session import NetworkObserver
from ..capture.location_resolver import resolve_candidates
from ..config import Settings
from ..models import AcquisitionStage, FailureKind
from ..state import AcquisitionState

logger = logging.getLogger(__name__)


class LocatorNode:
    """
    Node for opening the document page and ranking where the document bytes may live.

    The network observer is attached before the adapter navigates, so requests the
    viewer makes while loading are available to the network-capture tier.
    """

    def __init__(self, adapter: SiteAdapter, settings: Settings):
        self.adapter = adapter
        self.settings = settings

    async def run(self, state: AcquisitionState) -> dict:
        record = state["selected_transaction"]
        logger.info(f"🧭 Locating document {record.identifier or ''} on {record.source}")

        observer = NetworkObserver()
        try:
            self.adapter.session.attach_observer(observer)
            document_page = await self.adapter.open_document_page(record)
            snapshot = await document_page.snapshot()
        except Exception as e:
            self.adapter.session.detach_observer(observer)
            error_msg = f"Document page error: {str(e)}"
            logger.error(error_msg)
            return {
                "failure_kind": FailureKind.SITE_ERROR,
                "stage": AcquisitionStage.FAILED,
                "errors": [error_msg],
            }

        candidates = resolve_candidates(snapshot, observer.requests, self.settings.min_inline_image_px)
        if not candidates:
            self.adapter.session.detach_observer(observer)
            logger.warning(f"⚠️ No candidate document locations on {snapshot.url}")
            return {
                "document_page": document_page,
                "candidates": [],
                "failure_kind": FailureKind.DOCUMENT_NOT_LOCATED,
                "stage": AcquisitionStage.FAILED,
                "errors": [f"No document location found on {snapshot.url}"],
            }

        return {
            "document_page": document_page,
            "network_observer": observer,
            "candidates": candidates,
            "candidate_index": 0,
            "stage": AcquisitionStage.CAPTURING,
        }
