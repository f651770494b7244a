"""HTTP clients for the remote catalog."""

from .catalog import (
    CatalogClient,
    CatalogPortion,
    ItemSource,
    PortionSource,
    Record,
    item_id_from_url,
)

__all__ = [
    "CatalogClient",
    "CatalogPortion",
    "ItemSource",
    "PortionSource",
    "Record",
    "item_id_from_url",
]
