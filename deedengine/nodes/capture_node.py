import logging

from ..adapters.base import SiteAdapter
from ..capture.fetcher import CaptureFetcher
from ..capture.format_classifier import classify
from ..capture.image_converter import decode_pages
from ..exceptions import CandidateError, HtmlErrorPageError, UnsupportedFormatError
from ..models import (
    AcquisitionStage,
    CandidateDiagnostic,
    CandidateLocation,
    CapturedPages,
    FailureKind,
    FormatKind,
)
from ..state import AcquisitionState

logger = logging.getLogger(__name__)


def diagnostic_for(candidate: CandidateLocation, error: CandidateError) -> CandidateDiagnostic:
    return CandidateDiagnostic(
        rank=candidate.priority_rank,
        origin_signal=candidate.origin_signal,
        url=candidate.url,
        reason=error.reason,
        detail=str(error),
    )


def release_observer(adapter: SiteAdapter, state: AcquisitionState):
    observer = state.get("network_observer")
    if observer is not None:
        adapter.session.detach_observer(observer)


class CaptureNode:
    """
    Node for fetching candidate locations in rank order until one yields document bytes.

    Each discarded candidate leaves exactly one diagnostic behind. Verification of
    the bytes happens in VerifyNode, which routes back here with the next index
    when a capture turns out to be unusable.
    """

    def __init__(self, adapter: SiteAdapter, fetcher: CaptureFetcher):
        self.adapter = adapter
        self.fetcher = fetcher

    async def run(self, state: AcquisitionState) -> dict:
        candidates = state.get("candidates") or []
        index = state.get("candidate_index", 0)
        document_page = state["document_page"]

        try:
            credentials = await document_page.credentials()
        except Exception as e:
            release_observer(self.adapter, state)
            error_msg = f"Session credential error: {str(e)}"
            logger.error(error_msg)
            return {
                "failure_kind": FailureKind.SITE_ERROR,
                "stage": AcquisitionStage.FAILED,
                "errors": [error_msg],
            }

        diagnostics = []
        while index < len(candidates):
            candidate = candidates[index]
            logger.info(
                f"🎯 Trying candidate {index + 1}/{len(candidates)} "
                f"({candidate.origin_signal.value}): {candidate.url}"
            )
            try:
                captured = await self._capture(candidate, credentials)
            except CandidateError as e:
                logger.warning(f"❌ Candidate {candidate.url} discarded: {e.reason.value} ({e})")
                diagnostics.append(diagnostic_for(candidate, e))
                index += 1
                continue

            return {
                "captured": captured,
                "candidate_index": index,
                "diagnostics": diagnostics,
                "stage": AcquisitionStage.VERIFYING,
            }

        release_observer(self.adapter, state)
        logger.error(f"❌ All {len(candidates)} candidate location(s) exhausted")
        return {
            "captured": None,
            "candidate_index": index,
            "diagnostics": diagnostics,
            "failure_kind": FailureKind.ALL_STRATEGIES_EXHAUSTED,
            "stage": AcquisitionStage.FAILED,
            "errors": [f"All {len(candidates)} candidate location(s) failed"],
        }

    async def _capture(self, candidate, credentials) -> CapturedPages:
        resource = await self.fetcher.fetch_async(candidate, credentials)
        classified = classify(resource.data, resource.content_type)

        if classified.kind is FormatKind.PDF:
            return CapturedPages(candidate=candidate, source_format=FormatKind.PDF, pdf_bytes=resource.data)

        if classified.is_raster:
            return CapturedPages(
                candidate=candidate,
                source_format=classified.kind,
                raster_pages=decode_pages(resource.data),
            )

        if classified.kind is FormatKind.HTML_ERROR_PAGE:
            raise HtmlErrorPageError(f"Portal returned an HTML page instead of a document ({resource.content_type})")

        raise UnsupportedFormatError(
            f"Unrecognized payload of {len(resource.data)} bytes ({resource.content_type or 'no content type'})"
        )
