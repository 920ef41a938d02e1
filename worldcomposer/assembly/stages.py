"""Pipeline stages.

Each stage is a function `(state, ctx) -> (state', layer)`. A stage never
mutates the state it receives: it forks the occupancy index, places into
the fork and returns a new state carrying it forward.
"""

import logging
import random
from dataclasses import dataclass, replace
from typing import Callable, Optional

from worldcomposer import config
from worldcomposer.catalog import AssetCatalog
from worldcomposer.cluster_planner import ClusterPlanner, allocate_counts
from worldcomposer.noise import OrganicNoise
from worldcomposer.occupancy import OccupancyIndex
from worldcomposer.placement import (
    OrganicPlacementEngine,
    PlacementStyle,
    ProgressCallback,
    iter_chunks,
)
from worldcomposer.regions import RegionMap
from worldcomposer.schemas import (
    AssetDescriptor,
    ClusterAnchor,
    ClusterKind,
    Layer,
    LayerKind,
    PlacementRecord,
    Point,
    TerrainGrid,
    WorldConfig,
)
from worldcomposer.seeds import SeedStreams
from worldcomposer.settings import ComposerSettings, ScatterSettings
from worldcomposer.tints import biome_tint, random_biome_tint, structure_tint, transition_tint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompositionState:
    """Everything accumulated by the stages run so far."""

    occupancy: OccupancyIndex
    layers: tuple[Layer, ...] = ()
    clusters: tuple[ClusterAnchor, ...] = ()
    claimed: tuple[ClusterAnchor, ...] = ()

    def advance(
        self,
        layer: Layer,
        occupancy: OccupancyIndex,
        clusters: tuple[ClusterAnchor, ...] = (),
        claimed: Optional[tuple[ClusterAnchor, ...]] = None,
    ) -> "CompositionState":
        return replace(
            self,
            occupancy=occupancy,
            layers=self.layers + (layer,),
            clusters=self.clusters + tuple(clusters),
            claimed=self.claimed if claimed is None else tuple(claimed),
        )


@dataclass(frozen=True)
class StageContext:
    """Read-only inputs shared by every stage of one run."""

    grid: TerrainGrid
    catalog: AssetCatalog
    settings: ComposerSettings
    world_config: WorldConfig
    region_map: RegionMap
    engine: OrganicPlacementEngine
    planner: ClusterPlanner
    streams: SeedStreams
    noise: OrganicNoise
    on_progress: Optional[ProgressCallback] = None


Stage = Callable[[CompositionState, StageContext], tuple[CompositionState, Layer]]


def _layer(ctx: StageContext, key: str, kind: LayerKind, placements: list[PlacementRecord]) -> Layer:
    stage = ctx.settings.stage(key)
    return Layer(name=stage.name, kind=kind, z_order=stage.z_order, placements=tuple(placements))


def _scatter_filter(scatter: ScatterSettings, ctx: StageContext) -> Callable[[Point], bool]:
    def accept(position: Point) -> bool:
        if scatter.noise_threshold is not None and not ctx.noise.passes(
            position.x, position.y, scatter.noise_threshold, config.DETAIL_NOISE_FREQUENCY
        ):
            return False
        return scatter.accepts(ctx.region_map.category_at(position.x, position.y))

    return accept


def _scatter_style(scatter: ScatterSettings, ctx: StageContext, **extra) -> PlacementStyle:
    def tint(position: Point, rng: random.Random) -> int:
        if scatter.tint is not None:
            return scatter.tint
        return biome_tint(ctx.region_map.category_at(position.x, position.y))

    def metadata(position: Point, rng: random.Random) -> dict:
        data = {"biome": ctx.region_map.category_at(position.x, position.y).value, **extra}
        if scatter.metadata_type:
            data["type"] = scatter.metadata_type
        if scatter.interactive_chance:
            data["interactive"] = rng.random() < scatter.interactive_chance
        return data

    return PlacementStyle(
        scale_range=scatter.scale,
        tint=tint,
        depth_offset=scatter.depth_offset,
        metadata=metadata,
    )


def _scatter(
    scatter: ScatterSettings,
    label: str,
    occupancy: OccupancyIndex,
    rng: random.Random,
    ctx: StageContext,
    **extra,
) -> list[PlacementRecord]:
    pool = ctx.engine.resolve_pool(scatter.pools, label)
    return ctx.engine.place_scattered(
        scatter.density or 0.0,
        pool,
        occupancy,
        rng,
        count=scatter.count,
        accept=_scatter_filter(scatter, ctx),
        margin=scatter.margin,
        style=_scatter_style(scatter, ctx, **extra),
        label=label,
        on_progress=ctx.on_progress,
    )


def terrain_stage(state: CompositionState, ctx: StageContext) -> tuple[CompositionState, Layer]:
    """One ground tile per terrain cell, chosen by organic noise.

    Assets whose affinity tags name the cell's biome are preferred; the
    noise index keeps neighbouring tiles on similar variants.
    """
    stage = ctx.settings.stage("terrain")
    occupancy = state.occupancy.fork()
    rng = ctx.streams.stream("stage.terrain")
    pool = ctx.engine.resolve_pool(stage.pools, stage.name)
    tile = ctx.grid.tile_size

    placements: list[PlacementRecord] = []
    if pool:
        cells = list(ctx.grid.iter_cells())
        done = 0
        for chunk in iter_chunks(cells, ctx.world_config.chunk_size):
            for cell in chunk:
                center = Point(x=cell.x * tile + tile / 2, y=cell.y * tile + tile / 2)
                choices = AssetCatalog.with_affinity(pool, cell.category.value)
                descriptor = choices[ctx.noise.organic_index(center.x, center.y, len(choices))]
                variation = ctx.noise.variation(center.x, center.y)
                dx, dy = ctx.engine.offset_for(descriptor, rng)
                position = Point(x=center.x + dx, y=center.y + dy)
                style = PlacementStyle(
                    tint=biome_tint(cell.category, variation),
                    metadata={"biome": cell.category.value, "tile_x": cell.x, "tile_y": cell.y},
                )
                record = ctx.engine.place_descriptor(
                    descriptor,
                    position,
                    occupancy,
                    rng,
                    style,
                    scale=1.0 + variation * stage.scale_variation,
                )
                if record is not None:
                    placements.append(record)
            done += len(chunk)
            ctx.engine.checkpoint(stage.name, done, len(cells), ctx.on_progress)

    layer = _layer(ctx, "terrain", LayerKind.TERRAIN, placements)
    return state.advance(layer, occupancy), layer


def transition_stage(state: CompositionState, ctx: StageContext) -> tuple[CompositionState, Layer]:
    """Foliage sprinkled along tiles that border a different biome."""
    stage = ctx.settings.stage("transition")
    occupancy = state.occupancy.fork()
    rng = ctx.streams.stream("stage.transition")
    pool = ctx.engine.resolve_pool(stage.pools, stage.name)
    tile = ctx.grid.tile_size
    spread = tile * stage.offset * 2

    placements: list[PlacementRecord] = []
    if pool:
        cells = list(ctx.grid.iter_cells())
        done = 0
        for chunk in iter_chunks(cells, ctx.world_config.chunk_size):
            for cell in chunk:
                others = [n.category for n in ctx.grid.neighbors(cell.x, cell.y) if n.category != cell.category]
                if not others or rng.random() >= stage.probability:
                    continue
                position = Point(
                    x=cell.x * tile + tile / 2 + (rng.random() - 0.5) * spread,
                    y=cell.y * tile + tile / 2 + (rng.random() - 0.5) * spread,
                )
                style = PlacementStyle(
                    scale_range=stage.scale,
                    tint=transition_tint(cell.category, others[0]),
                    metadata={
                        "type": "biome_transition",
                        "transition_between": [cell.category.value, others[0].value],
                    },
                )
                record = ctx.engine.place_at(position, pool, occupancy, rng, style)
                if record is not None:
                    placements.append(record)
            done += len(chunk)
            ctx.engine.checkpoint(stage.name, done, len(cells), ctx.on_progress)

    layer = _layer(ctx, "transition", LayerKind.TRANSITION, placements)
    return state.advance(layer, occupancy), layer


def detail_stage(state: CompositionState, ctx: StageContext) -> tuple[CompositionState, Layer]:
    """Small rocks, mushrooms and decorations in the positive patches of noise."""
    stage = ctx.settings.stage("detail")
    occupancy = state.occupancy.fork()
    rng = ctx.streams.stream("stage.detail")
    placements = _scatter(stage, stage.name, occupancy, rng, ctx)
    layer = _layer(ctx, "detail", LayerKind.DETAIL, placements)
    return state.advance(layer, occupancy), layer


def _cluster_stage(
    key: str,
    kind: LayerKind,
    state: CompositionState,
    ctx: StageContext,
    tint: Callable[[ClusterAnchor], Callable[[Point, random.Random], int]],
) -> tuple[CompositionState, Layer]:
    stage = ctx.settings.stage(key)
    occupancy = state.occupancy.fork()

    total = round(ctx.world_config.cluster_count * stage.cluster_share)
    counts = allocate_counts(total, stage.kinds)
    anchors, claimed = ctx.planner.plan_passes(
        counts, ctx.region_map, ctx.streams.stream(f"clusters.{key}"), claimed=state.claimed
    )

    rng = ctx.streams.stream(f"stage.{key}")
    pools: dict[ClusterKind, list[AssetDescriptor]] = {}
    placements: list[PlacementRecord] = []

    for index, anchor in enumerate(anchors):
        if anchor.cluster_kind not in pools:
            categories = ctx.settings.cluster_kind(anchor.cluster_kind).asset_categories
            pools[anchor.cluster_kind] = ctx.engine.resolve_pool(
                categories, f"{stage.name} ({anchor.cluster_kind.value})"
            )
        pool = AssetCatalog.with_affinity(pools[anchor.cluster_kind], anchor.category.value)

        style = PlacementStyle(
            scale_range=stage.scale,
            tint=tint(anchor),
            depth_offset=stage.depth_offset,
            depth_jitter=stage.depth_jitter,
            metadata={
                "cluster_kind": anchor.cluster_kind.value,
                "cluster_center": [anchor.center.x, anchor.center.y],
                "biome": anchor.category.value,
            },
        )
        placements.extend(
            ctx.engine.place_in_cluster(anchor, pool, occupancy, rng, style=style, margin=stage.margin)
        )
        ctx.engine.checkpoint(stage.name, index + 1, len(anchors), ctx.on_progress)

    layer = _layer(ctx, key, kind, placements)
    return state.advance(layer, occupancy, clusters=tuple(anchors), claimed=tuple(claimed)), layer


def vegetation_stage(state: CompositionState, ctx: StageContext) -> tuple[CompositionState, Layer]:
    """Groves, meadows, mushroom rings, rock formations and ponds."""
    return _cluster_stage(
        "vegetation",
        LayerKind.VEGETATION,
        state,
        ctx,
        tint=lambda anchor: lambda position, rng: random_biome_tint(anchor.category, rng),
    )


def structure_stage(state: CompositionState, ctx: StageContext) -> tuple[CompositionState, Layer]:
    """Settlements and ruin sites; their zones never nest inside each other."""
    return _cluster_stage(
        "structure",
        LayerKind.STRUCTURE,
        state,
        ctx,
        tint=lambda anchor: lambda position, rng: structure_tint(anchor.category),
    )


def props_stage(state: CompositionState, ctx: StageContext) -> tuple[CompositionState, Layer]:
    stage = ctx.settings.stage("props")
    occupancy = state.occupancy.fork()
    rng = ctx.streams.stream("stage.props")
    placements = _scatter(stage, stage.name, occupancy, rng, ctx)
    layer = _layer(ctx, "props", LayerKind.PROPS, placements)
    return state.advance(layer, occupancy), layer


def effects_stage(state: CompositionState, ctx: StageContext) -> tuple[CompositionState, Layer]:
    """Water shimmer over wetland and light motes in forest, one pass each."""
    stage = ctx.settings.stage("effects")
    occupancy = state.occupancy.fork()

    placements: list[PlacementRecord] = []
    for name, scatter in stage.passes.items():
        rng = ctx.streams.stream(f"stage.effects.{name}")
        placements.extend(
            _scatter(scatter, f"{stage.name} ({name})", occupancy, rng, ctx, animated=True)
        )

    layer = _layer(ctx, "effects", LayerKind.EFFECTS, placements)
    return state.advance(layer, occupancy), layer


# Later stages check against occupants placed by earlier ones
STAGES: tuple[tuple[str, Stage], ...] = (
    ("terrain", terrain_stage),
    ("transition", transition_stage),
    ("detail", detail_stage),
    ("vegetation", vegetation_stage),
    ("structure", structure_stage),
    ("props", props_stage),
    ("effects", effects_stage),
)
