"""Asset catalog lookup, selection and loading."""

from .catalog import AssetCatalog, CatalogError, rarity_weight
from .loader import CatalogLoader

__all__ = ["AssetCatalog", "CatalogError", "CatalogLoader", "rarity_weight"]
