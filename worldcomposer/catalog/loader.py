"""Load asset catalogs from YAML."""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from worldcomposer import config
from worldcomposer.schemas import AssetDescriptor
from worldcomposer.settings import ComposerSettings, load_settings

from .catalog import AssetCatalog, CatalogError

logger = logging.getLogger(__name__)


class CatalogLoader:
    """Build an `AssetCatalog` from a YAML file.

    Expected layout::

        assets:
          - id: oak_tree1
            category: tree
            rarity: common
            affinity: [forest, grassland]
    """

    def __init__(self, settings: Optional[ComposerSettings] = None):
        self.settings = settings or load_settings()

    def load(self, path: str | Path | None = None) -> AssetCatalog:
        catalog_path = Path(path) if path is not None else config.DEFAULT_CATALOG_PATH
        if not catalog_path.exists():
            raise CatalogError(f"Catalog not found: {catalog_path}")

        try:
            with open(catalog_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CatalogError(f"Unreadable catalog {catalog_path}: {e}") from e

        return self.from_dict(data, source=str(catalog_path))

    def from_dict(self, data: dict, source: str = "<dict>") -> AssetCatalog:
        entries = data.get("assets", []) if isinstance(data, dict) else []
        descriptors = []
        for index, entry in enumerate(entries):
            try:
                descriptors.append(AssetDescriptor.model_validate(entry))
            except ValidationError as e:
                raise CatalogError(f"Invalid asset #{index} in {source}: {e}") from e

        catalog = AssetCatalog(descriptors, settings=self.settings)
        logger.info(f"Loaded {len(catalog)} assets in {len(catalog.categories)} categories from {source}")
        return catalog
