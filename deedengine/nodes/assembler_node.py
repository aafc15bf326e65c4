import logging

from ..capture.page_assembler import assemble_pages, count_pdf_pages
from ..config import Settings
from ..exceptions import CandidateError
from ..models import AcquisitionStage, AssembledDocument, FormatKind
from ..state import AcquisitionState
from .capture_node import diagnostic_for

logger = logging.getLogger(__name__)


class AssemblerNode:
    """Node for producing the final normalized PDF from the verified capture."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def run(self, state: AcquisitionState) -> dict:
        captured = state["captured"]

        try:
            if captured.source_format is FormatKind.PDF:
                # Native PDFs pass through untouched
                document = AssembledDocument(
                    pdf_bytes=captured.pdf_bytes,
                    page_count=count_pdf_pages(captured.pdf_bytes),
                    source_format=FormatKind.PDF,
                )
            else:
                document = assemble_pages(
                    state["verified_pages"],
                    self.settings.page_envelope,
                    captured.source_format,
                )
        except CandidateError as e:
            logger.warning(f"❌ Could not assemble {captured.candidate.url}: {e.reason.value} ({e})")
            return {
                "captured": None,
                "verified_pages": None,
                "candidate_index": state["candidate_index"] + 1,
                "diagnostics": [diagnostic_for(captured.candidate, e)],
                "stage": AcquisitionStage.CAPTURING,
            }

        logger.info(
            f"📚 Assembled {document.page_count}-page PDF "
            f"({len(document.pdf_bytes) / 1024:.2f} KB, source {document.source_format.value})"
        )
        return {"document": document}
