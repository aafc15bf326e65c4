"""
Deed Acquisition Engine - retrieves the most recently recorded deed for a property address.

This package drives a jurisdiction-specific site adapter to the document page of the
latest recorded instrument, works out which in-page signal really points at the
document, fetches and classifies the bytes, rejects blank captures and normalizes
whatever came back into a single multi-page PDF.
"""

from .config import Settings
from .models import AcquisitionResult, AssembledDocument, FailureKind
from .main import DeedAcquisitionGraph, acquire_deed, acquire_many

__all__ = [
    "Settings",
    "AcquisitionResult",
    "AssembledDocument",
    "FailureKind",
    "DeedAcquisitionGraph",
    "acquire_deed",
    "acquire_many",
]
