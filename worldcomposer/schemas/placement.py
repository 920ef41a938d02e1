"""Placement output schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .base import BoundingBox, LayerKind, Point


class PlacementRecord(BaseModel):
    """A single placed asset instance. Never mutated after emission."""

    model_config = ConfigDict(frozen=True)

    asset_id: str
    category: str
    position: Point
    scale: float = Field(gt=0)
    rotation: float = 0.0
    tint: int = Field(default=0xFFFFFF, ge=0, le=0xFFFFFF)
    depth: float
    bounding_box: BoundingBox
    metadata: dict[str, Any] = Field(default_factory=dict)


class Layer(BaseModel):
    """Placements produced by one pipeline stage."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: LayerKind
    z_order: float
    placements: tuple[PlacementRecord, ...] = ()
    visible: bool = True

    def asset_ids(self) -> set[str]:
        return {p.asset_id for p in self.placements}
