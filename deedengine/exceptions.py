"""Exceptions raised by the deed acquisition engine.

Candidate-level errors carry the :class:`CandidateFailureReason` they are recorded
under; the capture and verify nodes catch them and move on to the next candidate.
"""

from typing import Optional

from .models import CandidateFailureReason


class DeedEngineError(Exception):
    """Base class for every engine error."""


class CandidateError(DeedEngineError):
    """A single candidate location could not produce a usable document."""

    reason = CandidateFailureReason.UNSUPPORTED_FORMAT


class FetchError(CandidateError):
    """Raised when a credentialed fetch fails.

    Args:
        kind: One of network-error, http-error or timeout
        message: Human readable detail
        status_code: HTTP status, when a response was received
    """

    def __init__(
        self,
        kind: CandidateFailureReason,
        message: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.reason = kind
        self.status_code = status_code


class UnsupportedFormatError(CandidateError):
    reason = CandidateFailureReason.UNSUPPORTED_FORMAT


class HtmlErrorPageError(CandidateError):
    reason = CandidateFailureReason.HTML_ERROR_PAGE


class BlankContentError(CandidateError):
    reason = CandidateFailureReason.BLANK_CONTENT


class InvalidPdfError(CandidateError):
    reason = CandidateFailureReason.INVALID_PDF


class ParcelNotFoundError(DeedEngineError):
    """The site adapter could not find a parcel for the address."""


class UnsupportedJurisdictionError(DeedEngineError):
    """No site adapter is registered for the requested jurisdiction."""
