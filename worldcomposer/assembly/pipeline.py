"""Layered world composition pipeline."""

import logging
import time
from typing import Optional

from worldcomposer.catalog import AssetCatalog
from worldcomposer.cluster_planner import ClusterPlanner
from worldcomposer.noise import OrganicNoise
from worldcomposer.occupancy import OccupancyIndex, SeparationTable
from worldcomposer.placement import OrganicPlacementEngine, ProgressCallback
from worldcomposer.regions import RegionMap, RegionPartitioner, TerrainGridClassifier
from worldcomposer.schemas import (
    ComposedWorld,
    Layer,
    TerrainGrid,
    WorldBounds,
    WorldConfig,
    WorldStats,
)
from worldcomposer.seeds import SeedStreams
from worldcomposer.seeds.streams import Seed
from worldcomposer.settings import ComposerSettings, load_settings

from .stages import STAGES, CompositionState, Stage, StageContext

logger = logging.getLogger(__name__)


class MalformedInputError(ValueError):
    """Raised when compose() is given a missing, empty or ragged input."""


def diversity_index(layers: tuple[Layer, ...]) -> float:
    """Unique asset ids over total placements; 0 for an empty world."""
    total = sum(len(layer.placements) for layer in layers)
    if total == 0:
        return 0.0
    unique = set().union(*(layer.asset_ids() for layer in layers))
    return len(unique) / total


class LayeredCompositionPipeline:
    """Compose a world from a seed, a terrain grid and an asset catalog.

    Pipeline order:
    1. Partition the world into categorized regions
    2. Terrain base
    3. Biome transitions
    4. Scattered details
    5. Vegetation clusters
    6. Structure clusters
    7. Interactive props
    8. Atmospheric effects
    """

    def __init__(
        self,
        settings: Optional[ComposerSettings] = None,
        stages: tuple[tuple[str, Stage], ...] = STAGES,
    ):
        self.settings = settings or load_settings()
        self.stages = stages
        self.separation = SeparationTable.from_settings(self.settings)

    def compose(
        self,
        world_seed: Seed,
        terrain_grid: TerrainGrid,
        catalog: AssetCatalog,
        world_config: Optional[WorldConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ComposedWorld:
        """Run every stage in order and return the finished world.

        Args:
            world_seed: Seed for every random stream of the run
            terrain_grid: Non-empty rectangular terrain grid
            catalog: Non-empty asset catalog
            world_config: Region and cluster targets; derived from the grid if omitted
            on_progress: Called as (stage, done, total) at chunk checkpoints

        Returns:
            The composed world

        Raises:
            MalformedInputError: if the grid or catalog is missing or empty
        """
        self._check_inputs(terrain_grid, catalog)
        start_time = time.time()

        world_config = world_config or WorldConfig.for_grid(terrain_grid)
        bounds = WorldBounds(width=terrain_grid.pixel_width, height=terrain_grid.pixel_height)
        streams = SeedStreams(world_seed)
        logger.info(
            f"Composing world seed={world_seed} ({terrain_grid.width}x{terrain_grid.height} tiles, "
            f"{len(catalog)} assets)"
        )

        # 1. Regions
        partitioner = RegionPartitioner(classifier=TerrainGridClassifier(terrain_grid))
        regions = partitioner.partition(
            bounds.width,
            bounds.height,
            world_config.region_count,
            world_config.region_min_distance,
            streams.stream("regions"),
        )

        ctx = StageContext(
            grid=terrain_grid,
            catalog=catalog,
            settings=self.settings,
            world_config=world_config,
            region_map=RegionMap(regions, bounds),
            engine=OrganicPlacementEngine(
                catalog,
                self.settings,
                bounds,
                tile_size=terrain_grid.tile_size,
                chunk_size=world_config.chunk_size,
            ),
            planner=ClusterPlanner(self.settings),
            streams=streams,
            noise=OrganicNoise(streams.int_seed("noise")),
            on_progress=on_progress,
        )

        # 2-8. Layers
        state = CompositionState(occupancy=OccupancyIndex(self.separation))
        for key, stage in self.stages:
            state, layer = stage(state, ctx)
            logger.info(f"Layer '{layer.name}': {len(layer.placements)} placements")

        elapsed_ms = int((time.time() - start_time) * 1000)
        stats = WorldStats(
            total_placements=sum(len(layer.placements) for layer in state.layers),
            diversity_index=diversity_index(state.layers),
            generation_time_ms=elapsed_ms,
            cluster_count=len(state.clusters),
            layer_count=len(state.layers),
        )
        logger.info(
            f"Composed {stats.total_placements} placements in {stats.layer_count} layers, "
            f"{stats.cluster_count} clusters, diversity {stats.diversity_index:.3f} ({elapsed_ms}ms)"
        )

        return ComposedWorld(
            seed=str(world_seed),
            width=bounds.width,
            height=bounds.height,
            layers=state.layers,
            clusters=state.clusters,
            regions=tuple(regions),
            stats=stats,
        )

    def _check_inputs(self, terrain_grid: Optional[TerrainGrid], catalog: Optional[AssetCatalog]) -> None:
        if terrain_grid is None or terrain_grid.height == 0 or terrain_grid.width == 0:
            raise MalformedInputError("Terrain grid is missing or empty")
        if not terrain_grid.is_rectangular():
            raise MalformedInputError(
                f"Terrain grid rows are ragged: expected {terrain_grid.width} cells per row"
            )
        if catalog is None or len(catalog) == 0:
            raise MalformedInputError("Asset catalog is missing or empty")
