import logging

from ..adapters.base import SiteAdapter
from ..address import parse_address
from ..exceptions import ParcelNotFoundError
from ..models import AcquisitionStage, FailureKind
from ..state import AcquisitionState

logger = logging.getLogger(__name__)


class ParcelNode:
    """Node for resolving the parcel behind an address on the county portal."""

    def __init__(self, adapter: SiteAdapter):
        self.adapter = adapter

    async def run(self, state: AcquisitionState) -> dict:
        """Normalize the address, open the browser session and search the portal."""
        logger.info(f"🔍 Resolving parcel for: {state['address']}")

        address = parse_address(state["address"])
        try:
            await self.adapter.session.start()
            parcel = await self.adapter.search(address)
        except ParcelNotFoundError as e:
            logger.warning(f"⚠️ {str(e)}")
            parcel = None
        except Exception as e:
            error_msg = f"Parcel search error: {str(e)}"
            logger.error(error_msg)
            return {
                "normalized_address": address,
                "failure_kind": FailureKind.SITE_ERROR,
                "stage": AcquisitionStage.FAILED,
                "errors": [error_msg],
            }

        if parcel is None:
            logger.warning(f"⚠️ No parcel found for {address.street_line}")
            return {
                "normalized_address": address,
                "failure_kind": FailureKind.PARCEL_NOT_FOUND,
                "stage": AcquisitionStage.FAILED,
                "errors": [f"No parcel found for {state['address']}"],
            }

        logger.info(f"✅ Found parcel {parcel.parcel_id}")
        return {
            "normalized_address": address,
            "parcel": parcel,
            "stage": AcquisitionStage.SELECTING_TRANSACTION,
        }
