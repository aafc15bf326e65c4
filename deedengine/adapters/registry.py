"""Jurisdiction routing: which site adapter serves which county."""

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from ..browser.session import BrowserSession
from ..config import Settings
from ..exceptions import UnsupportedJurisdictionError
from .base import SiteAdapter

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[BrowserSession], SiteAdapter]

_ADAPTERS: Dict[Tuple[str, str], AdapterFactory] = {}


def normalize_county_name(county: Optional[str]) -> Optional[str]:
    """
    Normalize a county name for routing.

    Example: "  miami-dade county " -> "Miami-Dade"
    """
    if not county:
        return None
    name = re.sub(r"\s+county$", "", county.strip(), flags=re.IGNORECASE)
    name = " ".join(name.split())
    return "-".join(part.title() for part in name.split("-")) or None


def _key(county: str, state: Optional[str]) -> Tuple[str, str]:
    return normalize_county_name(county), (state or "").strip().upper()


def register_adapter(county: str, state: str, factory: AdapterFactory):
    """Register the adapter factory serving one county."""
    key = _key(county, state)
    if key in _ADAPTERS:
        logger.warning(f"Replacing site adapter registered for {key[0]}, {key[1]}")
    _ADAPTERS[key] = factory


def unregister_adapter(county: str, state: str):
    _ADAPTERS.pop(_key(county, state), None)


def registered_jurisdictions() -> List[Tuple[str, str]]:
    return sorted(_ADAPTERS)


def get_adapter_factory(county: str, state: Optional[str] = None) -> AdapterFactory:
    """
    Look up the factory for a county.

    Without a state the county name alone must be unambiguous.
    """
    key = _key(county, state)
    if not key[1]:
        matches = [k for k in _ADAPTERS if k[0] == key[0]]
        if len(matches) == 1:
            return _ADAPTERS[matches[0]]
    try:
        return _ADAPTERS[key]
    except KeyError:
        raise UnsupportedJurisdictionError(f"No site adapter registered for {key[0]} County, {key[1]}") from None


def create_adapter(county: str, state: Optional[str] = None, settings: Optional[Settings] = None) -> SiteAdapter:
    """Build a fresh adapter with its own browser session."""
    factory = get_adapter_factory(county, state)
    return factory(BrowserSession(settings))
