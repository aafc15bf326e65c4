from typing import Any, List, Optional, TypedDict, Annotated
from typing_extensions import Required
import operator

from .address import Address
from .models import (
    AcquisitionStage,
    AssembledDocument,
    CandidateDiagnostic,
    CandidateLocation,
    CapturedPages,
    FailureKind,
    TransactionRecord,
)


class InputState(TypedDict, total=False):
    """
    Input state for one deed acquisition.

    Attributes:
        address: Required property address to acquire the deed for
    """

    address: Required[str]


class AcquisitionState(InputState):
    """
    Complete state of one address's acquisition pipeline.

    Objects tied to the live browsing session (the document page and the network
    observer) live here too; the graph runs without a checkpointer, so nothing is
    serialized.
    """

    normalized_address: Optional[Address]
    """Address split into the parts portal search forms ask for"""

    parcel: Optional[Any]
    """ParcelHandle returned by the site adapter"""

    transactions: Optional[List[TransactionRecord]]
    """Recorded instruments for the parcel, newest first"""

    selected_transaction: Optional[TransactionRecord]
    """The instrument being pursued (index 0 of transactions)"""

    document_page: Optional[Any]
    """BrowsingContext positioned on the document page"""

    network_observer: Optional[Any]
    """NetworkObserver attached before navigating to the document page"""

    candidates: Optional[List[CandidateLocation]]
    """
    Ranked candidate document locations:
    - url: where the bytes may live
    - origin_signal: which tier found it
    - priority_rank: tier number, 1 is best
    """

    candidate_index: int
    """Index of the next candidate to try"""

    captured: Optional[CapturedPages]
    """Bytes captured for the current candidate, waiting for verification"""

    verified_pages: Optional[List[bytes]]
    """Non-blank raster pages of the winning candidate, in document order"""

    document: Optional[AssembledDocument]
    """The final normalized PDF"""

    filename: Optional[str]
    """Filename the caller should store the document under"""

    failure_kind: Optional[FailureKind]
    """Set by the first node that fails the acquisition"""

    stage: Annotated[AcquisitionStage, lambda x, y: y]  # Take the latest stage
    """Current state-machine stage"""

    diagnostics: Annotated[List[CandidateDiagnostic], operator.add]  # Combine diagnostics
    """One entry per discarded candidate, in the order tried"""

    errors: Annotated[List[str], operator.add]  # Combine error lists
    """Human readable errors encountered during the run"""
