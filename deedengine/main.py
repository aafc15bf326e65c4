import asyncio
import logging
import time
from typing import Iterable, List, Optional, Tuple

from langgraph.graph import START, StateGraph, END

from .adapters.base import SiteAdapter
from .adapters.registry import create_adapter
from .capture.fetcher import CaptureFetcher
from .config import Settings
from .exceptions import DeedEngineError, UnsupportedJurisdictionError
from .models import AcquisitionResult, AcquisitionStage, FailureKind
from .state import InputState, AcquisitionState
from .nodes import (
    ParcelNode,
    TransactionNode,
    LocatorNode,
    CaptureNode,
    VerifyNode,
    AssemblerNode,
    FinalizeNode,
)

logger = logging.getLogger(__name__)

# Every discarded candidate costs two or three graph steps
RECURSION_LIMIT = 500

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None):
    """Set up process-wide logging. Embedding applications may skip this and configure their own."""
    level = level or Settings.from_env().log_level
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class DeedAcquisitionGraph:
    def __init__(
        self,
        adapter: SiteAdapter,
        settings: Optional[Settings] = None,
        jurisdiction: Optional[str] = None,
    ):
        """Initialize the acquisition graph for one pipeline.

        The graph owns the adapter's browser session and its own credentialed fetcher;
        both are torn down when ``run`` returns, so a graph serves a single address.

        Args:
            adapter: Site adapter for the county portal
            settings: Runtime settings, read from the environment when omitted
            jurisdiction: Name used in the output filename, defaults to the adapter's
        """
        self.adapter = adapter
        self.settings = settings or Settings.from_env()
        self.jurisdiction = jurisdiction or adapter.jurisdiction
        self.fetcher = CaptureFetcher(timeout=self.settings.fetch_timeout, verify_tls=self.settings.verify_tls)
        self._init_nodes()
        self._build_workflow()
        self.compiled_app = None

    def _init_nodes(self):
        """Initialize all workflow nodes"""
        self.parcel_node = ParcelNode(self.adapter)
        self.transaction_node = TransactionNode(self.adapter)
        self.locator_node = LocatorNode(self.adapter, self.settings)
        self.capture_node = CaptureNode(self.adapter, self.fetcher)
        self.verify_node = VerifyNode(self.adapter)
        self.assembler_node = AssemblerNode(self.settings)
        self.finalizer = FinalizeNode(self.jurisdiction)

    def _build_workflow(self):
        """Configure the state graph workflow"""
        self.workflow = StateGraph(AcquisitionState)

        # Add nodes
        self.workflow.add_node("resolve_parcel", self.parcel_node.run)
        self.workflow.add_node("select_transaction", self.transaction_node.run)
        self.workflow.add_node("locate_document", self.locator_node.run)
        self.workflow.add_node("capture", self.capture_node.run)
        self.workflow.add_node("verify", self.verify_node.run)
        self.workflow.add_node("assemble", self.assembler_node.run)
        self.workflow.add_node("finalize", self.finalizer.run)

        self.workflow.add_edge(START, "resolve_parcel")

        # Any terminal failure jumps straight to finalize
        self.workflow.add_conditional_edges(
            "resolve_parcel",
            lambda state: self._has_failed(state),
            {True: "finalize", False: "select_transaction"},
        )
        self.workflow.add_conditional_edges(
            "select_transaction",
            lambda state: self._has_failed(state),
            {True: "finalize", False: "locate_document"},
        )
        self.workflow.add_conditional_edges(
            "locate_document",
            lambda state: self._has_failed(state),
            {True: "finalize", False: "capture"},
        )
        self.workflow.add_conditional_edges(
            "capture",
            lambda state: self._has_failed(state),
            {True: "finalize", False: "verify"},
        )

        # A rejected capture goes back for the next candidate
        self.workflow.add_conditional_edges(
            "verify",
            lambda state: state.get("stage") is AcquisitionStage.ASSEMBLING,
            {True: "assemble", False: "capture"},
        )
        self.workflow.add_conditional_edges(
            "assemble",
            lambda state: state.get("document") is not None,
            {True: "finalize", False: "capture"},
        )

        self.workflow.add_edge("finalize", END)

    def _has_failed(self, state: AcquisitionState) -> bool:
        return state.get("failure_kind") is not None

    def compile(self):
        """Compile the workflow and cache the compiled app.

        Returns:
            The compiled workflow app
        """
        if self.compiled_app is None:
            logger.info("Compiling deed acquisition workflow")
            self.compiled_app = self.workflow.compile()
        return self.compiled_app

    def create_initial_state(self, address: str) -> AcquisitionState:
        """Create an initial state for the workflow.

        Returns:
            AcquisitionState: The initial state for the workflow
        """
        if not address or not address.strip():
            raise ValueError("Address must be set before creating initial state")

        input_state = InputState(address=address.strip())
        return AcquisitionState(
            address=input_state["address"],
            normalized_address=None,
            parcel=None,
            transactions=None,
            selected_transaction=None,
            document_page=None,
            network_observer=None,
            candidates=None,
            candidate_index=0,
            captured=None,
            verified_pages=None,
            document=None,
            filename=None,
            failure_kind=None,
            stage=AcquisitionStage.RESOLVING_PARCEL,
            diagnostics=[],
            errors=[],
        )

    async def run(self, address: str, timeout: Optional[float] = None) -> AcquisitionResult:
        """Acquire the deed for one address.

        The browser session is torn down before this returns, whatever the outcome.
        A caller timeout ends the run as acquisition-timeout, keeping the diagnostics
        collected so far. A blank address ends it as invalid-address before any browser
        work. Cancellation is propagated after teardown.

        Args:
            address: Property address to acquire the deed for
            timeout: Seconds before the run is abandoned, defaults to settings.acquisition_timeout

        Returns:
            AcquisitionResult: Document and filename on success, failure kind and diagnostics otherwise
        """
        app = self.compile()
        timeout = self.settings.acquisition_timeout if timeout is None else timeout
        try:
            state = self.create_initial_state(address)
        except ValueError as e:
            logger.error(f"❌ Rejected address {address!r}: {e}")
            await self.teardown()
            return AcquisitionResult(
                success=False,
                address=address,
                elapsed_ms=0,
                failure_kind=FailureKind.INVALID_ADDRESS,
                errors=[str(e)],
            )
        latest = dict(state)

        async def _drive():
            nonlocal latest
            try:
                async for values in app.astream(
                    state, config={"recursion_limit": RECURSION_LIMIT}, stream_mode="values"
                ):
                    latest = values
            except (asyncio.TimeoutError, TimeoutError) as e:
                # Only the caller's deadline may end the run as acquisition-timeout
                raise DeedEngineError(f"Step timed out during {latest['stage'].value}: {e}") from e

        logger.info(f"Starting deed acquisition workflow for {state['address']}")
        started = time.monotonic()
        try:
            await asyncio.wait_for(_drive(), timeout=timeout)
        except asyncio.TimeoutError:
            stage = latest.get("stage") or AcquisitionStage.RESOLVING_PARCEL
            error_msg = f"Acquisition timed out after {timeout}s during {stage.value}"
            logger.error(error_msg)
            latest = {
                **latest,
                "failure_kind": FailureKind.ACQUISITION_TIMEOUT,
                "document": None,
                "stage": AcquisitionStage.FAILED,
                "errors": list(latest.get("errors") or []) + [error_msg],
            }
        except Exception as e:
            logger.exception(f"Deed acquisition workflow crashed: {e}")
            latest = {
                **latest,
                "failure_kind": FailureKind.SITE_ERROR,
                "document": None,
                "stage": AcquisitionStage.FAILED,
                "errors": list(latest.get("errors") or []) + [f"Unexpected error: {str(e)}"],
            }
        finally:
            await self.teardown()

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"Deed acquisition workflow completed in {elapsed_ms} ms")
        return self._build_result(state["address"], latest, elapsed_ms)

    async def teardown(self):
        """Close the browser session and the fetcher. Safe to call more than once."""
        try:
            await self.adapter.close()
        except Exception as e:
            logger.error(f"Browser session teardown error: {str(e)}")
        finally:
            self.fetcher.close()

    def _build_result(self, address: str, final: dict, elapsed_ms: int) -> AcquisitionResult:
        document = final.get("document")
        success = document is not None and final.get("failure_kind") is None
        return AcquisitionResult(
            success=success,
            address=address,
            elapsed_ms=elapsed_ms,
            document=document if success else None,
            filename=final.get("filename") if success else None,
            failure_kind=None if success else (final.get("failure_kind") or FailureKind.SITE_ERROR),
            diagnostics=list(final.get("diagnostics") or []),
            errors=list(final.get("errors") or []),
        )


async def acquire_deed(
    address: str,
    county: str,
    state: Optional[str] = None,
    settings: Optional[Settings] = None,
    timeout: Optional[float] = None,
) -> AcquisitionResult:
    """
    Acquire the most recent deed for an address in the given county.

    Args:
        address: Property address
        county: County name, e.g. "Palm Beach" or "miami-dade county"
        state: Two-letter state code, may be omitted when the county name is unambiguous
        settings: Runtime settings, read from the environment when omitted
        timeout: Seconds before the run is abandoned

    Returns:
        AcquisitionResult: Never raises for acquisition failures; inspect failure_kind
    """
    settings = settings or Settings.from_env()
    try:
        adapter = create_adapter(county, state, settings)
    except UnsupportedJurisdictionError as e:
        logger.error(str(e))
        return AcquisitionResult(
            success=False,
            address=address,
            elapsed_ms=0,
            failure_kind=FailureKind.UNSUPPORTED_JURISDICTION,
            errors=[str(e)],
        )

    graph = DeedAcquisitionGraph(adapter, settings)
    return await graph.run(address, timeout=timeout)


async def acquire_many(
    requests: Iterable[Tuple[str, ...]],
    settings: Optional[Settings] = None,
) -> List[AcquisitionResult]:
    """
    Acquire deeds for several addresses, each in its own isolated pipeline.

    Args:
        requests: (address, county, state) or (address, county) tuples
        settings: Runtime settings; max_concurrency bounds how many browsers run at once

    Returns:
        List[AcquisitionResult]: One result per request, in input order
    """
    settings = settings or Settings.from_env()
    semaphore = asyncio.Semaphore(max(1, settings.max_concurrency))

    async def _bounded(address: str, county: str, state: Optional[str] = None) -> AcquisitionResult:
        async with semaphore:
            try:
                return await acquire_deed(address, county, state, settings)
            except Exception as e:
                # Every request gets a result
                logger.exception(f"Deed acquisition for {address!r} in {county} crashed: {e}")
                return AcquisitionResult(
                    success=False,
                    address=address,
                    elapsed_ms=0,
                    failure_kind=FailureKind.SITE_ERROR,
                    errors=[f"Unexpected error: {str(e)}"],
                )

    return list(await asyncio.gather(*(_bounded(*request) for request in requests)))
