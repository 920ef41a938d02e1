"""Composition tunables loaded from composer.toml."""

import math
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from worldcomposer import config
from worldcomposer.schemas import Biome, ClusterKind, Footprint

Range = tuple[float, float]

FULL_TURN: Range = (0.0, 2 * math.pi)


def _ordered(value: Optional[Range], label: str) -> None:
    if value is not None and value[0] > value[1]:
        raise ValueError(f"{label} must be (min, max), got {value}")


class CategorySettings(BaseModel):
    """Defaults applied to every asset of a category at catalog build time."""

    footprint: Footprint
    scale: Range = (1.0, 1.0)
    orientation_sensitive: bool = False
    rotation_range: Range = FULL_TURN
    rotation_step: Optional[float] = Field(default=None, gt=0)
    # Positional jitter as a fraction of the tile size
    offset: float = Field(default=0.0, ge=0, le=0.5)
    claims_space: bool = True

    @model_validator(mode="before")
    @classmethod
    def _footprint_pair(cls, data):
        if isinstance(data, dict) and isinstance(data.get("footprint"), (list, tuple)):
            w, h = data["footprint"]
            data = {**data, "footprint": {"w": w, "h": h}}
        return data

    @model_validator(mode="after")
    def _check_ranges(self):
        _ordered(self.scale, "scale")
        _ordered(self.rotation_range, "rotation_range")
        if self.scale[0] <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        return self


class SeparationRule(BaseModel):
    a: str
    b: str
    distance: float = Field(ge=0)


class ClusterKindSettings(BaseModel):
    radius: Range
    density: Range
    items: tuple[int, int] = (1, 1)
    asset_categories: list[str] = Field(default_factory=list)
    suitable: list[Biome] = Field(default_factory=list)
    forbidden: list[Biome] = Field(default_factory=list)
    spacing_factor: float = Field(default=1.0, gt=0)
    attempt_factor: int = Field(default=4, ge=1)
    margin: float = Field(default=0.0, ge=0)
    claims_zone: bool = False

    @model_validator(mode="after")
    def _check_ranges(self):
        _ordered(self.radius, "radius")
        _ordered(self.density, "density")
        if self.radius[0] <= 0:
            raise ValueError(f"radius must be positive, got {self.radius}")
        if not (0 < self.density[0] and self.density[1] <= 1):
            raise ValueError(f"density must lie in (0, 1], got {self.density}")
        if self.items[0] > self.items[1]:
            raise ValueError(f"items must be (min, max), got {self.items}")
        return self

    def accepts(self, biome: Biome) -> bool:
        if biome in self.forbidden:
            return False
        return not self.suitable or biome in self.suitable


class ScatterSettings(BaseModel):
    """One scattered placement pass."""

    pools: list[str] = Field(default_factory=list)
    density: Optional[float] = Field(default=None, ge=0)
    count: Optional[int] = Field(default=None, ge=0)
    noise_threshold: Optional[float] = None
    scale: Optional[Range] = None
    margin: float = Field(default=0.0, ge=0)
    biomes: list[Biome] = Field(default_factory=list)
    exclude_biomes: list[Biome] = Field(default_factory=list)
    tint: Optional[int] = None
    depth_offset: float = 0.0
    interactive_chance: float = Field(default=0.0, ge=0, le=1)
    metadata_type: Optional[str] = None

    def accepts(self, biome: Biome) -> bool:
        if biome in self.exclude_biomes:
            return False
        return not self.biomes or biome in self.biomes


class StageSettings(ScatterSettings):
    name: str
    z_order: float
    scale_variation: float = 0.0
    probability: float = Field(default=1.0, ge=0, le=1)
    offset: float = 0.0
    depth_jitter: float = 0.0
    cluster_share: float = Field(default=0.0, ge=0, le=1)
    kinds: dict[ClusterKind, float] = Field(default_factory=dict)
    passes: dict[str, ScatterSettings] = Field(default_factory=dict)


class ComposerSettings(BaseModel):
    categories: dict[str, CategorySettings]
    separation: list[SeparationRule] = Field(default_factory=list)
    clusters: dict[ClusterKind, ClusterKindSettings]
    stages: dict[str, StageSettings]
    fallbacks: dict[str, list[str]] = Field(default_factory=dict)

    def category(self, name: str) -> Optional[CategorySettings]:
        return self.categories.get(name)

    def cluster_kind(self, kind: ClusterKind) -> ClusterKindSettings:
        return self.clusters[kind]

    def stage(self, name: str) -> StageSettings:
        return self.stages[name]


def load_settings(path: str | Path | None = None) -> ComposerSettings:
    """Load and validate composer.toml (the packaged copy by default)."""
    settings_path = Path(path) if path is not None else config.SETTINGS_PATH
    with open(settings_path, "rb") as f:
        data = tomllib.load(f)
    return ComposerSettings.model_validate(data)
