"""Invariant checks for a composed world."""

import math
from dataclasses import dataclass, field
from itertools import combinations
from typing import Callable, Optional

from worldcomposer.catalog import AssetCatalog
from worldcomposer.occupancy import SeparationTable
from worldcomposer.schemas import ComposedWorld, PlacementRecord

# Relative slack allowed between summed region area and world area
REGION_COVERAGE_TOLERANCE = 0.05


@dataclass
class ValidationResult:
    """Result of validation check."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, msg: str):
        self.errors.append(msg)
        self.valid = False

    def add_warning(self, msg: str):
        self.warnings.append(msg)

    def merge(self, other: "ValidationResult"):
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        if not other.valid:
            self.valid = False


def illegal_overlap(a: PlacementRecord, b: PlacementRecord, separation: SeparationTable) -> bool:
    """True if `a` and `b` overlap closer than their pair minimum allows."""
    minimum = separation.minimum(a.category, b.category)
    if minimum <= 0 or not a.bounding_box.overlaps(b.bounding_box):
        return False
    distance = a.position.distance_to(b.position)
    return distance < minimum * max(a.scale, b.scale) - 1e-9


class WorldValidator:
    """Re-checks a finished world against the composition invariants."""

    def __init__(self, separation: SeparationTable, catalog: Optional[AssetCatalog] = None):
        self.separation = separation
        self.catalog = catalog
        self.checks: list[Callable[[ComposedWorld], ValidationResult]] = [
            self._check_asset_ids,
            self._check_overlaps,
            self._check_clusters,
            self._check_regions,
            self._check_stats,
        ]

    def validate(self, world: ComposedWorld) -> ValidationResult:
        """Validate an entire composed world."""
        result = ValidationResult(valid=True)
        for check in self.checks:
            result.merge(check(world))
        return result

    def _check_asset_ids(self, world: ComposedWorld) -> ValidationResult:
        result = ValidationResult(valid=True)
        if self.catalog is None:
            result.add_warning("No catalog given, asset ids not checked")
            return result

        missing = {p.asset_id for p in world.all_placements() if p.asset_id not in self.catalog}
        for asset_id in sorted(missing):
            result.add_error(f"Placement references unknown asset '{asset_id}'")
        return result

    def _check_overlaps(self, world: ComposedWorld) -> ValidationResult:
        result = ValidationResult(valid=True)
        separated = {name for a, b, _ in self.separation.pairs() for name in (a, b)}
        placements = [p for p in world.all_placements() if p.category in separated]
        # Sweep along x so only boxes with intersecting x ranges are compared
        placements.sort(key=lambda p: p.bounding_box.x)
        active: list[PlacementRecord] = []
        for current in placements:
            left = current.bounding_box.x
            active = [p for p in active if p.bounding_box.x + p.bounding_box.w > left]
            for other in active:
                if illegal_overlap(current, other, self.separation):
                    result.add_error(
                        f"{current.asset_id} at ({current.position.x:.1f}, {current.position.y:.1f}) "
                        f"overlaps {other.asset_id} at ({other.position.x:.1f}, {other.position.y:.1f})"
                    )
            active.append(current)
        return result

    def _check_clusters(self, world: ComposedWorld) -> ValidationResult:
        result = ValidationResult(valid=True)
        for index, anchor in enumerate(world.clusters):
            if not anchor.radius > 0:
                result.add_error(f"Cluster {index}: radius {anchor.radius} is not positive")
            if not 0 < anchor.density <= 1:
                result.add_error(f"Cluster {index}: density {anchor.density} outside (0, 1]")

        for a, b in combinations(world.clusters, 2):
            if a.cluster_kind == b.cluster_kind and a.center == b.center:
                result.add_warning(f"Duplicate {a.cluster_kind.value} anchor at {a.center.as_tuple()}")
        return result

    def _check_regions(self, world: ComposedWorld) -> ValidationResult:
        result = ValidationResult(valid=True)
        if not world.regions:
            result.add_warning("World has no regions")
            return result

        world_area = world.width * world.height
        covered = sum(r.area for r in world.regions)
        if world_area > 0 and abs(covered - world_area) / world_area > REGION_COVERAGE_TOLERANCE:
            result.add_error(
                f"Regions cover {covered:.0f} of {world_area:.0f} world area "
                f"({covered / world_area:.1%})"
            )

        empty = [r.site_id for r in world.regions if not r.boundary]
        if empty:
            result.add_warning(f"{len(empty)} regions have empty boundaries: {empty[:10]}")
        return result

    def _check_stats(self, world: ComposedWorld) -> ValidationResult:
        result = ValidationResult(valid=True)
        placements = list(world.all_placements())
        stats = world.stats

        if stats.total_placements != len(placements):
            result.add_error(
                f"Stats report {stats.total_placements} placements, world has {len(placements)}"
            )
        if not 0 <= stats.diversity_index <= 1:
            result.add_error(f"Diversity index {stats.diversity_index} outside [0, 1]")

        unique = len({p.asset_id for p in placements})
        expected = unique / len(placements) if placements else 0.0
        if not math.isclose(stats.diversity_index, expected, abs_tol=1e-9):
            result.add_error(f"Diversity index {stats.diversity_index:.4f}, expected {expected:.4f}")
        return result
