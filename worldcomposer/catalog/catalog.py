"""Weighted asset pools keyed by category, rarity and unlock level."""

import logging
import random
from typing import Iterable, Optional

from worldcomposer import config
from worldcomposer.schemas import AssetDescriptor, Footprint, RarityTier
from worldcomposer.settings import FULL_TURN, ComposerSettings

logger = logging.getLogger(__name__)

DEFAULT_FOOTPRINT = Footprint(w=32, h=32)


class CatalogError(ValueError):
    """Raised when a catalog cannot be built or loaded."""


def rarity_weight(descriptor: AssetDescriptor) -> int:
    if descriptor.rarity_tier is None:
        return config.UNKNOWN_RARITY_WEIGHT
    return config.RARITY_WEIGHTS.get(descriptor.rarity_tier.value, config.UNKNOWN_RARITY_WEIGHT)


class AssetCatalog:
    """Read-only asset lookup and rarity-weighted selection.

    Descriptors are resolved once on construction: any footprint,
    rotation or offset capability missing from an entry is filled in from its
    category defaults, so placement never has to inspect asset names.
    """

    def __init__(
        self,
        descriptors: Iterable[AssetDescriptor],
        settings: Optional[ComposerSettings] = None,
    ):
        self.settings = settings
        self._by_id: dict[str, AssetDescriptor] = {}
        self._by_category: dict[str, list[AssetDescriptor]] = {}

        for descriptor in descriptors:
            if descriptor.id in self._by_id:
                raise CatalogError(f"Duplicate asset id: {descriptor.id}")
            resolved = self._resolve(descriptor)
            self._by_id[resolved.id] = resolved
            self._by_category.setdefault(resolved.category, []).append(resolved)

    def _resolve(self, descriptor: AssetDescriptor) -> AssetDescriptor:
        defaults = self.settings.category(descriptor.category) if self.settings else None
        if defaults is None:
            if self.settings is not None:
                logger.debug(f"No category defaults for '{descriptor.category}' ({descriptor.id})")
            footprint = DEFAULT_FOOTPRINT
            orientation_sensitive = False
            rotation_range = FULL_TURN
            rotation_step = None
            offset = 0.0
        else:
            footprint = defaults.footprint
            orientation_sensitive = defaults.orientation_sensitive
            rotation_range = defaults.rotation_range
            rotation_step = defaults.rotation_step
            offset = defaults.offset

        # An explicit rotation range on the entry means it may rotate
        if descriptor.orientation_sensitive is None and descriptor.rotation_range is not None:
            orientation_sensitive = False

        return descriptor.model_copy(
            update={
                "footprint": descriptor.footprint or footprint,
                "orientation_sensitive": (
                    orientation_sensitive
                    if descriptor.orientation_sensitive is None
                    else descriptor.orientation_sensitive
                ),
                "rotation_range": descriptor.rotation_range or rotation_range,
                "rotation_step": (
                    rotation_step if descriptor.rotation_step is None else descriptor.rotation_step
                ),
                "offset": offset if descriptor.offset is None else descriptor.offset,
            }
        )

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._by_id

    @property
    def descriptors(self) -> list[AssetDescriptor]:
        return list(self._by_id.values())

    @property
    def categories(self) -> list[str]:
        return list(self._by_category)

    def get(self, asset_id: str) -> Optional[AssetDescriptor]:
        return self._by_id.get(asset_id)

    def by_category(self, category: str) -> list[AssetDescriptor]:
        return list(self._by_category.get(category, []))

    def by_categories(self, categories: Iterable[str]) -> list[AssetDescriptor]:
        pool: list[AssetDescriptor] = []
        for category in dict.fromkeys(categories):
            pool.extend(self._by_category.get(category, []))
        return pool

    def by_rarity(self, tier: Optional[RarityTier], max_unlock_level: int) -> list[AssetDescriptor]:
        """Assets of `tier` (None selects unknown-tier assets) unlocked by `max_unlock_level`."""
        return [
            d for d in self._by_id.values()
            if d.rarity_tier == tier and d.unlock_level <= max_unlock_level
        ]

    @staticmethod
    def with_affinity(pool: list[AssetDescriptor], tag: str) -> list[AssetDescriptor]:
        """Subset of `pool` tagged with `tag`, or the whole pool if none are."""
        tagged = [d for d in pool if tag in d.affinity_tags]
        return tagged or pool

    @staticmethod
    def unlocked(pool: list[AssetDescriptor], max_unlock_level: int) -> list[AssetDescriptor]:
        return [d for d in pool if d.unlock_level <= max_unlock_level]

    def select(self, pool: list[AssetDescriptor], rng: random.Random) -> Optional[AssetDescriptor]:
        """Rarity-weighted draw from `pool`; None when the pool is empty."""
        if not pool:
            return None
        if len(pool) == 1:
            return pool[0]

        weights = [rarity_weight(d) for d in pool]
        remaining = sum(weights) * rng.random()
        for descriptor, weight in zip(pool, weights):
            remaining -= weight
            if remaining <= 0:
                return descriptor
        return pool[-1]

    def fallback_for(self, category: str) -> Optional[AssetDescriptor]:
        """First designated default for `category` present in the catalog.

        Defaults of the same category are skipped: they exist only when the
        category itself is non-empty.
        """
        if self.settings is None:
            return None
        for asset_id in self.settings.fallbacks.get(category, []):
            descriptor = self._by_id.get(asset_id)
            if descriptor is not None and descriptor.category != category:
                return descriptor
        return None
