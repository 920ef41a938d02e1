"""Base types and enums for composition schemas."""

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Biome(str, Enum):
    GRASSLAND = "grassland"
    FOREST = "forest"
    DESERT = "desert"
    MOUNTAINOUS = "mountainous"
    WETLAND = "wetland"
    COASTAL = "coastal"
    VILLAGE = "village"
    WASTELAND = "wasteland"
    MYSTICAL = "mystical"


class RarityTier(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"


class ClusterKind(str, Enum):
    # Vegetation
    FOREST_GROVE = "forest_grove"
    FLOWER_MEADOW = "flower_meadow"
    MUSHROOM_CIRCLE = "mushroom_circle"
    ROCK_FORMATION = "rock_formation"
    WATER_FEATURE = "water_feature"
    # Structures
    SETTLEMENT = "settlement"
    RUINS_SITE = "ruins_site"


class LayerKind(str, Enum):
    TERRAIN = "terrain"
    TRANSITION = "transition"
    DETAIL = "detail"
    VEGETATION = "vegetation"
    STRUCTURE = "structure"
    PROPS = "props"
    EFFECTS = "effects"


class Point(BaseModel):
    """A 2D coordinate in world-pixel space."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


class Footprint(BaseModel):
    """Unscaled width and height of an asset's visual silhouette."""

    model_config = ConfigDict(frozen=True)

    w: float = Field(gt=0)
    h: float = Field(gt=0)


class BoundingBox(BaseModel):
    """Axis-aligned box; (x, y) is the top-left corner."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    w: float = Field(ge=0)
    h: float = Field(ge=0)

    @classmethod
    def around(cls, center: Point, footprint: Footprint, scale: float) -> "BoundingBox":
        """Box of `footprint` scaled by `scale`, centered on `center`."""
        w = footprint.w * scale
        h = footprint.h * scale
        return cls(x=center.x - w / 2, y=center.y - h / 2, w=w, h=h)

    @property
    def center(self) -> Point:
        return Point(x=self.x + self.w / 2, y=self.y + self.h / 2)

    def overlaps(self, other: "BoundingBox") -> bool:
        """True when both the x ranges and the y ranges intersect."""
        return (
            self.x < other.x + other.w
            and other.x < self.x + self.w
            and self.y < other.y + other.h
            and other.y < self.y + self.h
        )
