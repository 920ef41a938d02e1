"""Region partitioning: Poisson-disk sites, Voronoi cells and biome labels."""

import logging
import math
import random
from collections import defaultdict
from typing import Optional, Protocol

import numpy as np
from scipy.spatial import Delaunay, QhullError, cKDTree

from worldcomposer import config
from worldcomposer.geometry import XY, Rect, circumcenter, clip_to_rect, dedupe, order_around, polygon_area
from worldcomposer.sampling import poisson_disk_sample
from worldcomposer.schemas import Biome, Point, Region, TerrainGrid, WorldBounds

logger = logging.getLogger(__name__)

# Ghost sites placed this many world diagonals from the center close off
# the cells of hull sites without affecting anything inside the world.
GHOST_RING_SCALE = 10.0
GHOST_COUNT = 8


class BiomeClassifier(Protocol):
    def __call__(self, center: Point, area: float, bounds: WorldBounds) -> Biome: ...


class PositionalClassifier:
    """Label regions from where their center sits in the world.

    Top band is mountainous, bottom band coastal, west forest, east desert;
    small interior cells become villages and the rest grassland.
    """

    def __init__(self, village_area_threshold: float = config.VILLAGE_AREA_THRESHOLD):
        self.village_area_threshold = village_area_threshold

    def __call__(self, center: Point, area: float, bounds: WorldBounds) -> Biome:
        if center.y < bounds.height * 0.2:
            return Biome.MOUNTAINOUS
        if center.y > bounds.height * 0.8:
            return Biome.COASTAL
        if center.x < bounds.width * 0.3:
            return Biome.FOREST
        if center.x > bounds.width * 0.7:
            return Biome.DESERT
        if 0 < area < self.village_area_threshold:
            return Biome.VILLAGE
        return Biome.GRASSLAND


class TerrainGridClassifier:
    """Label regions by the terrain grid's dominant category near the center.

    Categories in a (2r+1)^2 tile window are weighted by
    `category_strength`; ties resolve in `Biome` declaration order.
    """

    def __init__(
        self,
        grid: TerrainGrid,
        radius_tiles: int = 1,
        fallback: Optional[BiomeClassifier] = None,
    ):
        self.grid = grid
        self.radius_tiles = radius_tiles
        self.fallback = fallback or PositionalClassifier()

    def __call__(self, center: Point, area: float, bounds: WorldBounds) -> Biome:
        tile_x = int(center.x // self.grid.tile_size)
        tile_y = int(center.y // self.grid.tile_size)

        weights: dict[Biome, float] = defaultdict(float)
        for dy in range(-self.radius_tiles, self.radius_tiles + 1):
            for dx in range(-self.radius_tiles, self.radius_tiles + 1):
                cell = self.grid.cell(tile_x + dx, tile_y + dy)
                if cell is not None:
                    weights[cell.category] += cell.category_strength

        if not weights:
            return self.fallback(center, area, bounds)

        order = list(Biome)
        return max(weights, key=lambda b: (weights[b], -order.index(b)))


class RegionPartitioner:
    """Partition a rectangular world into categorized Voronoi regions."""

    def __init__(
        self,
        classifier: Optional[BiomeClassifier] = None,
        attempts: int = config.POISSON_ATTEMPTS,
    ):
        self.classifier = classifier or PositionalClassifier()
        self.attempts = attempts

    def partition(
        self,
        world_width: float,
        world_height: float,
        target_region_count: int,
        min_distance: float,
        rng: random.Random,
    ) -> list[Region]:
        """Generate up to `target_region_count` regions covering the world.

        Args:
            world_width: World width in pixels
            world_height: World height in pixels
            target_region_count: Desired number of regions
            min_distance: Minimum distance between region sites
            rng: Random stream for site sampling

        Returns:
            Regions ordered by site id; boundaries are clipped to the world
            and may be empty for degenerate sites.
        """
        bounds = WorldBounds(width=world_width, height=world_height)
        sites = poisson_disk_sample(
            world_width, world_height, target_region_count, min_distance, rng, self.attempts
        )

        if len(sites) < target_region_count:
            logger.warning(
                f"Region sampling starved: {len(sites)}/{target_region_count} sites "
                f"fit at min distance {min_distance}"
            )

        cells = self.build_cells(sites, bounds)

        regions = []
        for site_id, (site, cell) in enumerate(zip(sites, cells)):
            center = Point(x=site[0], y=site[1])
            area = polygon_area(cell)
            regions.append(
                Region(
                    site_id=site_id,
                    center=center,
                    boundary=tuple(Point(x=x, y=y) for x, y in cell),
                    area=area,
                    category=self.classifier(center, area, bounds),
                )
            )

        if regions:
            logger.info(
                f"Partitioned {bounds.width:.0f}x{bounds.height:.0f} world into "
                f"{len(regions)} regions (avg area {bounds.area / len(regions):.0f})"
            )
        return regions

    def build_cells(self, sites: list[XY], bounds: WorldBounds) -> list[list[XY]]:
        """Voronoi cell of each site, clipped to the world rectangle.

        Each cell is the angularly ordered ring of circumcenters of the
        Delaunay triangles incident to its site.
        """
        if not sites:
            return []

        rect = Rect(0.0, 0.0, bounds.width, bounds.height)
        points = np.array(list(sites) + self._ghost_sites(bounds), dtype=np.float64)

        try:
            triangulation = Delaunay(points)
        except (QhullError, ValueError) as e:
            logger.warning(f"Delaunay triangulation failed for {len(sites)} sites: {e}")
            return [[] for _ in sites]

        incident: dict[int, list[XY]] = defaultdict(list)
        for simplex in triangulation.simplices:
            a, b, c = (tuple(points[i]) for i in simplex)
            center = circumcenter(a, b, c)
            if center is None:
                continue
            for vertex in simplex:
                if vertex < len(sites):
                    incident[int(vertex)].append(center)

        cells = []
        degenerate = 0
        for index, site in enumerate(sites):
            ring = dedupe(order_around(site, incident.get(index, [])))
            if len(ring) < 3:
                degenerate += 1
                cells.append([])
                continue
            cells.append(clip_to_rect(ring, rect))

        if degenerate:
            logger.warning(f"{degenerate} region sites produced empty boundaries")
        return cells

    def _ghost_sites(self, bounds: WorldBounds) -> list[XY]:
        cx, cy = bounds.width / 2, bounds.height / 2
        radius = GHOST_RING_SCALE * math.hypot(bounds.width, bounds.height)
        return [
            (
                cx + radius * math.cos(2 * math.pi * i / GHOST_COUNT),
                cy + radius * math.sin(2 * math.pi * i / GHOST_COUNT),
            )
            for i in range(GHOST_COUNT)
        ]


class RegionMap:
    """Point-in-region lookup over a partition via nearest site."""

    def __init__(self, regions: list[Region], bounds: WorldBounds, default: Biome = Biome.GRASSLAND):
        self.regions = list(regions)
        self.bounds = bounds
        self.default = default
        self._tree = (
            cKDTree(np.array([r.center.as_tuple() for r in self.regions], dtype=np.float64))
            if self.regions
            else None
        )

    def region_at(self, x: float, y: float) -> Optional[Region]:
        if self._tree is None:
            return None
        _, index = self._tree.query((x, y))
        return self.regions[int(index)]

    def category_at(self, x: float, y: float) -> Biome:
        region = self.region_at(x, y)
        return region.category if region is not None else self.default
