from .base import ParcelHandle, SiteAdapter
from .registry import (
    create_adapter,
    get_adapter_factory,
    normalize_county_name,
    register_adapter,
    registered_jurisdictions,
    unregister_adapter,
)

__all__ = [
    "ParcelHandle",
    "SiteAdapter",
    "create_adapter",
    "get_adapter_factory",
    "normalize_county_name",
    "register_adapter",
    "registered_jurisdictions",
    "unregister_adapter",
]
