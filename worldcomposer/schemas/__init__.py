"""Pydantic schemas for world composition."""

from .base import (
    Biome,
    RarityTier,
    ClusterKind,
    LayerKind,
    Point,
    Footprint,
    BoundingBox,
)
from .region import Region, ClusterAnchor
from .asset import AssetDescriptor
from .placement import PlacementRecord, Layer
from .world import (
    TerrainCell,
    TerrainGrid,
    WorldConfig,
    WorldBounds,
    WorldStats,
    ComposedWorld,
)

__all__ = [
    # base
    "Biome",
    "RarityTier",
    "ClusterKind",
    "LayerKind",
    "Point",
    "Footprint",
    "BoundingBox",
    # region
    "Region",
    "ClusterAnchor",
    # asset
    "AssetDescriptor",
    # placement
    "PlacementRecord",
    "Layer",
    # world
    "TerrainCell",
    "TerrainGrid",
    "WorldConfig",
    "WorldBounds",
    "WorldStats",
    "ComposedWorld",
]
