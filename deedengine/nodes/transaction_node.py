import logging

from ..adapters.base import SiteAdapter
from ..models import AcquisitionStage, FailureKind
from ..state import AcquisitionState

logger = logging.getLogger(__name__)


class TransactionNode:
    """Node for picking the instrument to pursue from the parcel's transaction history."""

    def __init__(self, adapter: SiteAdapter):
        self.adapter = adapter

    async def run(self, state: AcquisitionState) -> dict:
        parcel = state["parcel"]
        logger.info(f"📜 Listing transactions for parcel {parcel.parcel_id}")

        try:
            transactions = await self.adapter.list_transactions(parcel)
        except Exception as e:
            error_msg = f"Transaction listing error: {str(e)}"
            logger.error(error_msg)
            return {
                "failure_kind": FailureKind.SITE_ERROR,
                "stage": AcquisitionStage.FAILED,
                "errors": [error_msg],
            }

        if not transactions:
            logger.warning(f"⚠️ Parcel {parcel.parcel_id} has no recorded transactions")
            return {
                "transactions": [],
                "failure_kind": FailureKind.NO_TRANSACTIONS,
                "stage": AcquisitionStage.FAILED,
                "errors": [f"No transactions recorded for parcel {parcel.parcel_id}"],
            }

        # Adapters list newest first; the most recent conveyance is the deed we want
        selected = transactions[0]
        logger.info(
            f"📑 Selected {selected.identifier or 'unnumbered'} instrument "
            f"({selected.sale_date or 'undated'}) out of {len(transactions)}"
        )
        return {
            "transactions": transactions,
            "selected_transaction": selected,
            "stage": AcquisitionStage.LOCATING_DOCUMENT,
        }
