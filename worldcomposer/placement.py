"""Organic, collision-aware placement of catalog assets."""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence, TypeVar

from worldcomposer import config
from worldcomposer.catalog import AssetCatalog
from worldcomposer.catalog.catalog import DEFAULT_FOOTPRINT
from worldcomposer.occupancy import OccupancyIndex
from worldcomposer.sampling import gaussian_unit
from worldcomposer.schemas import (
    AssetDescriptor,
    BoundingBox,
    ClusterAnchor,
    PlacementRecord,
    Point,
    WorldBounds,
)
from worldcomposer.settings import ComposerSettings, Range
from worldcomposer.tints import WHITE

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]
TintSource = Callable[[Point, random.Random], int]
MetadataSource = Callable[[Point, random.Random], dict[str, Any]]

T = TypeVar("T")


def iter_chunks(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Consecutive slices of at most `size` items."""
    for start in range(0, len(items), max(1, size)):
        yield items[start:start + size]


@dataclass(frozen=True)
class PlacementStyle:
    """Per-call appearance settings shared by every placement of a pass.

    `tint` and `metadata` may be constants or callables of
    (position, rng) for values that vary per placement.
    """

    scale_range: Optional[Range] = None
    tint: int | TintSource | None = None
    depth_offset: float = 0.0
    depth_jitter: float = 0.0
    metadata: dict[str, Any] | MetadataSource = field(default_factory=dict)

    def tint_for(self, position: Point, rng: random.Random) -> int:
        if self.tint is None:
            return WHITE
        if callable(self.tint):
            return self.tint(position, rng)
        return self.tint

    def metadata_for(self, position: Point, rng: random.Random) -> dict[str, Any]:
        if callable(self.metadata):
            return self.metadata(position, rng)
        return dict(self.metadata)


class OrganicPlacementEngine:
    """Draws candidate positions and turns accepted ones into records.

    Every attempt selects an asset, derives its scale, rotation, tint and
    bounding box, and validates the box against the occupancy index.
    Rejected attempts are dropped; calls never retry past their cap.
    """

    def __init__(
        self,
        catalog: AssetCatalog,
        settings: ComposerSettings,
        bounds: WorldBounds,
        tile_size: int = config.DEFAULT_TILE_SIZE,
        attempt_factor: int = config.DEFAULT_ATTEMPT_FACTOR,
        chunk_size: int = config.DEFAULT_CHUNK_SIZE,
    ):
        self.catalog = catalog
        self.settings = settings
        self.bounds = bounds
        self.tile_size = tile_size
        self.attempt_factor = attempt_factor
        self.chunk_size = chunk_size

    # ===== POOLS =====

    def resolve_pool(self, categories: Iterable[str], label: str) -> list[AssetDescriptor]:
        """Union of the catalog pools for `categories`.

        Each empty category is replaced by its designated fallback when the
        catalog has one, and logged either way. Returns an empty list when
        nothing resolves, which makes every attempt against it a skip.
        """
        categories = list(dict.fromkeys(categories))
        pool: list[AssetDescriptor] = []
        seen: set[str] = set()

        for category in categories:
            members = self.catalog.by_category(category)
            if not members:
                fallback = self.catalog.fallback_for(category)
                if fallback is None:
                    logger.warning(f"{label}: no assets or fallback for '{category}'")
                    continue
                logger.warning(
                    f"{label}: no assets for '{category}', using fallback '{fallback.id}'"
                )
                members = [fallback]

            for descriptor in members:
                if descriptor.id not in seen:
                    seen.add(descriptor.id)
                    pool.append(descriptor)

        if not pool:
            logger.warning(f"{label}: nothing to place for {categories}, skipping placements")
        return pool

    # ===== SINGLE PLACEMENTS =====

    def scale_range_for(self, descriptor: AssetDescriptor, style: PlacementStyle) -> Range:
        if style.scale_range is not None:
            return style.scale_range
        defaults = self.settings.category(descriptor.category)
        return defaults.scale if defaults is not None else (1.0, 1.0)

    def rotation_for(self, descriptor: AssetDescriptor, rng: random.Random) -> float:
        """Rotation within the descriptor's range; 0 for orientation-sensitive assets."""
        if descriptor.orientation_sensitive or descriptor.rotation_range is None:
            return 0.0
        low, high = descriptor.rotation_range
        angle = rng.uniform(low, high)
        step = descriptor.rotation_step
        if step:
            angle = low + round((angle - low) / step) * step
            # Snapping up to a full turn lands back on the start angle
            if angle >= high and high - low >= 2 * math.pi - 1e-9:
                angle = low
            angle = min(angle, high)
        return angle

    def offset_for(self, descriptor: AssetDescriptor, rng: random.Random) -> tuple[float, float]:
        """Uniform (dx, dy) within +/- the descriptor's offset fraction of a tile."""
        if not descriptor.offset:
            return 0.0, 0.0
        spread = descriptor.offset * self.tile_size
        return rng.uniform(-spread, spread), rng.uniform(-spread, spread)

    def claims_space(self, category: str) -> bool:
        defaults = self.settings.category(category)
        return defaults.claims_space if defaults is not None else True

    def place_descriptor(
        self,
        descriptor: AssetDescriptor,
        position: Point,
        occupancy: OccupancyIndex,
        rng: random.Random,
        style: PlacementStyle = PlacementStyle(),
        scale: Optional[float] = None,
    ) -> Optional[PlacementRecord]:
        """Validate and emit one placement of `descriptor` at `position`.

        Returns:
            The record, or None if the position is outside the world or
            the box conflicts with an occupant.
        """
        if not self.bounds.contains(position):
            return None

        if scale is None:
            scale = rng.uniform(*self.scale_range_for(descriptor, style))
        rotation = self.rotation_for(descriptor, rng)
        tint = style.tint_for(position, rng)
        box = BoundingBox.around(position, descriptor.footprint or DEFAULT_FOOTPRINT, scale)

        if self.claims_space(descriptor.category):
            if not occupancy.try_insert(box, descriptor.category, scale):
                return None

        depth = position.y + style.depth_offset
        if style.depth_jitter:
            depth += rng.random() * style.depth_jitter

        return PlacementRecord(
            asset_id=descriptor.id,
            category=descriptor.category,
            position=position,
            scale=scale,
            rotation=rotation,
            tint=tint,
            depth=depth,
            bounding_box=box,
            metadata=style.metadata_for(position, rng),
        )

    def place_at(
        self,
        position: Point,
        pool: list[AssetDescriptor],
        occupancy: OccupancyIndex,
        rng: random.Random,
        style: PlacementStyle = PlacementStyle(),
    ) -> Optional[PlacementRecord]:
        """Rarity-weighted pick from `pool` placed at `position`; None skips."""
        descriptor = self.catalog.select(pool, rng)
        if descriptor is None:
            return None
        return self.place_descriptor(descriptor, position, occupancy, rng, style)

    # ===== CLUSTERS =====

    def cluster_target(self, anchor: ClusterAnchor, rng: random.Random) -> int:
        """Item count for `anchor`: a draw from its kind's range thinned by density."""
        low, high = self.settings.cluster_kind(anchor.cluster_kind).items
        return max(1, round(rng.randint(low, high) * anchor.density))

    def place_in_cluster(
        self,
        anchor: ClusterAnchor,
        pool: list[AssetDescriptor],
        occupancy: OccupancyIndex,
        rng: random.Random,
        target: Optional[int] = None,
        style: PlacementStyle = PlacementStyle(),
        margin: float = 0.0,
    ) -> list[PlacementRecord]:
        """Scatter up to `target` placements around `anchor`.

        Positions use a uniform angle and a Gaussian radial fraction of
        the anchor radius, so items thin out towards the rim. Positions
        closer than `margin` to a world edge are rejected.
        """
        if target is None:
            target = self.cluster_target(anchor, rng)
        if target <= 0 or not pool:
            return []

        attempt_factor = self.settings.cluster_kind(anchor.cluster_kind).attempt_factor
        max_attempts = target * attempt_factor
        placed: list[PlacementRecord] = []

        for _ in range(max_attempts):
            angle = rng.random() * 2 * math.pi
            distance = gaussian_unit(rng) * anchor.radius
            position = Point(
                x=anchor.center.x + math.cos(angle) * distance,
                y=anchor.center.y + math.sin(angle) * distance,
            )
            if margin and not self.bounds.contains(position, margin):
                continue
            record = self.place_at(position, pool, occupancy, rng, style)
            if record is not None:
                placed.append(record)
                if len(placed) >= target:
                    break

        logger.debug(
            f"Cluster {anchor.cluster_kind.value} at ({anchor.center.x:.0f}, {anchor.center.y:.0f}): "
            f"{len(placed)}/{target} placed"
        )
        return placed

    # ===== SCATTER =====

    def scatter_target(self, density: float, area: Optional[float] = None) -> int:
        """Placements for `density` items per tile over `area` (world area by default)."""
        area = self.bounds.area if area is None else area
        return int(area / (self.tile_size * self.tile_size) * density)

    def place_scattered(
        self,
        density: float,
        pool: list[AssetDescriptor],
        occupancy: OccupancyIndex,
        rng: random.Random,
        count: Optional[int] = None,
        accept: Optional[Callable[[Point], bool]] = None,
        margin: float = 0.0,
        style: PlacementStyle = PlacementStyle(),
        label: str = "scatter",
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[PlacementRecord]:
        """Scatter placements uniformly over the world.

        Args:
            density: Target placements per tile; ignored when `count` is given
            pool: Candidate assets
            occupancy: Index to validate against and insert into
            rng: Random stream for this pass
            count: Explicit target count
            accept: Position filter (biome, noise gate); rejections use up attempts
            margin: Distance kept from the world edges
            style: Appearance settings
            label: Name reported to `on_progress`
            on_progress: Called as (label, attempts_done, attempts_total) per chunk

        Returns:
            Up to the target number of records
        """
        target = count if count is not None else self.scatter_target(density)
        if target <= 0 or not pool:
            return []

        usable_w = self.bounds.width - 2 * margin
        usable_h = self.bounds.height - 2 * margin
        if usable_w <= 0 or usable_h <= 0:
            margin, usable_w, usable_h = 0.0, self.bounds.width, self.bounds.height

        max_attempts = target * self.attempt_factor
        placed: list[PlacementRecord] = []
        done = 0

        while done < max_attempts and len(placed) < target:
            chunk_end = min(max_attempts, done + self.chunk_size)
            while done < chunk_end and len(placed) < target:
                done += 1
                position = Point(
                    x=margin + rng.random() * usable_w,
                    y=margin + rng.random() * usable_h,
                )
                if accept is not None and not accept(position):
                    continue
                record = self.place_at(position, pool, occupancy, rng, style)
                if record is not None:
                    placed.append(record)
            self.checkpoint(label, done, max_attempts, on_progress)

        if len(placed) < target:
            logger.warning(f"{label}: placed {len(placed)}/{target} after {done} attempts")
        return placed

    def checkpoint(
        self,
        label: str,
        done: int,
        total: int,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        logger.debug(f"{label}: {done}/{total}")
        if on_progress is not None:
            on_progress(label, done, total)
