import logging

from ..adapters.base import SiteAdapter
from ..capture.blank_detector import is_blank_image
from ..capture.page_assembler import collect_rendered_pages, count_pdf_pages
from ..exceptions import BlankContentError, CandidateError
from ..models import AcquisitionStage, FormatKind
from ..state import AcquisitionState
from .capture_node import diagnostic_for, release_observer

logger = logging.getLogger(__name__)


class VerifyNode:
    """Node for rejecting invalid PDFs and blank rasters before anything is assembled."""

    def __init__(self, adapter: SiteAdapter):
        self.adapter = adapter

    async def run(self, state: AcquisitionState) -> dict:
        captured = state["captured"]
        candidate = captured.candidate

        try:
            if captured.source_format is FormatKind.PDF:
                page_count = count_pdf_pages(captured.pdf_bytes)
                logger.info(f"✅ Verified PDF with {page_count} page(s) from {candidate.url}")
                verified_pages = None
            else:
                verified_pages = await self._verify_raster(state, captured.raster_pages)
        except CandidateError as e:
            logger.warning(f"❌ Candidate {candidate.url} failed verification: {e.reason.value} ({e})")
            return {
                "captured": None,
                "candidate_index": state["candidate_index"] + 1,
                "diagnostics": [diagnostic_for(candidate, e)],
                "stage": AcquisitionStage.CAPTURING,
            }

        # Capture is over once a candidate verifies
        release_observer(self.adapter, state)
        return {
            "verified_pages": verified_pages,
            "stage": AcquisitionStage.ASSEMBLING,
        }

    async def _verify_raster(self, state: AcquisitionState, raster_pages):
        usable = [page for page in raster_pages if not is_blank_image(page)]
        if not usable:
            raise BlankContentError(f"All {len(raster_pages)} captured page(s) are blank")

        if len(usable) == 1:
            record = state.get("selected_transaction")
            usable = await collect_rendered_pages(
                state["document_page"],
                usable[0],
                record.page_count if record else None,
            )

        logger.info(f"✅ Verified {len(usable)} non-blank page(s) from {state['captured'].candidate.url}")
        return usable
