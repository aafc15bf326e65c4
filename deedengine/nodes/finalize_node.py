import logging
import re
from datetime import datetime
from typing import Optional

from ..models import AcquisitionStage, TransactionRecord
from ..state import AcquisitionState

logger = logging.getLogger(__name__)


def deed_filename(jurisdiction: str, record: Optional[TransactionRecord]) -> str:
    """
    Build the caller-facing filename of an acquired deed.

    Example: ("Palm Beach", record with document_id "2023-0456") -> "palm_beach_deed_2023-0456.pdf"
    """
    prefix = re.sub(r"[^a-z0-9]+", "_", jurisdiction.lower()).strip("_") or "county"
    identifier = record.identifier if record else None
    if not identifier:
        identifier = datetime.now().strftime("%Y%m%d%H%M%S")
    identifier = re.sub(r"[^A-Za-z0-9._-]+", "_", identifier)
    return f"{prefix}_deed_{identifier}.pdf"


class FinalizeNode:
    """Node for closing out the state machine in Done or Failed."""

    def __init__(self, jurisdiction: str):
        self.jurisdiction = jurisdiction

    async def run(self, state: AcquisitionState) -> dict:
        document = state.get("document")
        diagnostics = state.get("diagnostics") or []

        if document is None:
            failure_kind = state.get("failure_kind")
            logger.info(
                f"🏁 Acquisition failed for {state['address']}: "
                f"{failure_kind.value if failure_kind else 'unknown'} "
                f"({len(diagnostics)} candidate diagnostic(s))"
            )
            return {"stage": AcquisitionStage.FAILED}

        filename = deed_filename(self.jurisdiction, state.get("selected_transaction"))
        logger.info(f"🏁 Acquired {filename} for {state['address']} ({document.page_count} page(s))")
        return {"filename": filename, "stage": AcquisitionStage.DONE}
