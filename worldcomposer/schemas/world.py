"""Terrain input, world configuration and composed output schemas."""

from typing import Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .base import Biome, Point
from .placement import Layer
from .region import ClusterAnchor, Region


class TerrainCell(BaseModel):
    """One tile of the external terrain/biome grid."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    category: Biome
    category_strength: float = Field(default=1.0, ge=0.0, le=1.0)


class TerrainGrid(BaseModel):
    """Row-major grid of terrain cells: `rows[y][x]`."""

    model_config = ConfigDict(frozen=True)

    tile_size: int = Field(default=32, gt=0)
    rows: tuple[tuple[TerrainCell, ...], ...] = ()

    @property
    def width(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    @property
    def height(self) -> int:
        return len(self.rows)

    @property
    def pixel_width(self) -> float:
        return float(self.width * self.tile_size)

    @property
    def pixel_height(self) -> float:
        return float(self.height * self.tile_size)

    def is_rectangular(self) -> bool:
        return all(len(row) == self.width for row in self.rows)

    def cell(self, tile_x: int, tile_y: int) -> Optional[TerrainCell]:
        if 0 <= tile_y < len(self.rows) and 0 <= tile_x < len(self.rows[tile_y]):
            return self.rows[tile_y][tile_x]
        return None

    def cell_at(self, px: float, py: float) -> Optional[TerrainCell]:
        """Cell containing world-pixel position (px, py)."""
        if px < 0 or py < 0:
            return None
        return self.cell(int(px // self.tile_size), int(py // self.tile_size))

    def category_at(self, px: float, py: float, default: Biome = Biome.GRASSLAND) -> Biome:
        cell = self.cell_at(px, py)
        return cell.category if cell is not None else default

    def neighbors(self, tile_x: int, tile_y: int) -> list[TerrainCell]:
        """Orthogonal neighbours (N, S, W, E) that exist."""
        candidates = [
            self.cell(tile_x, tile_y - 1),
            self.cell(tile_x, tile_y + 1),
            self.cell(tile_x - 1, tile_y),
            self.cell(tile_x + 1, tile_y),
        ]
        return [c for c in candidates if c is not None]

    def iter_cells(self) -> Iterator[TerrainCell]:
        for row in self.rows:
            yield from row

    @classmethod
    def from_categories(
        cls, categories: list[list[Union[Biome, str]]], tile_size: int = 32
    ) -> "TerrainGrid":
        """Build a grid from a row-major matrix of category labels."""
        rows = tuple(
            tuple(
                TerrainCell(x=tx, y=ty, category=Biome(label))
                for tx, label in enumerate(row)
            )
            for ty, row in enumerate(categories)
        )
        return cls(tile_size=tile_size, rows=rows)


class WorldConfig(BaseModel):
    """World dimensions and target counts, sanitized upstream."""

    width: int = Field(gt=0, description="Width in tiles")
    height: int = Field(gt=0, description="Height in tiles")
    tile_size: int = Field(default=32, gt=0)
    region_count: int = Field(default=50, ge=0)
    region_min_distance: float = Field(default=100.0, gt=0)
    cluster_count: int = Field(default=50, ge=0)
    chunk_size: int = Field(default=1000, gt=0)

    @property
    def pixel_width(self) -> float:
        return float(self.width * self.tile_size)

    @property
    def pixel_height(self) -> float:
        return float(self.height * self.tile_size)

    @classmethod
    def for_grid(cls, grid: TerrainGrid, **overrides) -> "WorldConfig":
        return cls(width=grid.width, height=grid.height, tile_size=grid.tile_size, **overrides)


class WorldBounds(BaseModel):
    """Pixel extents of the world: [0, width) x [0, height)."""

    model_config = ConfigDict(frozen=True)

    width: float = Field(gt=0)
    height: float = Field(gt=0)

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, point: Point, margin: float = 0.0) -> bool:
        return (
            margin <= point.x <= self.width - margin
            and margin <= point.y <= self.height - margin
        )


class WorldStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_placements: int = Field(ge=0)
    diversity_index: float = Field(ge=0.0, le=1.0)
    generation_time_ms: int = Field(ge=0)
    cluster_count: int = Field(default=0, ge=0)
    layer_count: int = Field(default=0, ge=0)


class ComposedWorld(BaseModel):
    """The single artifact of a composition run."""

    model_config = ConfigDict(frozen=True)

    seed: str
    width: float
    height: float
    layers: tuple[Layer, ...] = ()
    clusters: tuple[ClusterAnchor, ...] = ()
    regions: tuple[Region, ...] = ()
    stats: WorldStats

    def layer(self, name: str) -> Optional[Layer]:
        return next((layer for layer in self.layers if layer.name == name), None)

    def all_placements(self) -> Iterator:
        for layer in self.layers:
            yield from layer.placements
