"""Cluster anchor planning by bounded rejection sampling."""

import logging
import math
import random
from typing import Sequence

from worldcomposer.regions import RegionMap
from worldcomposer.schemas import ClusterAnchor, ClusterKind, Point, WorldBounds
from worldcomposer.settings import ComposerSettings

logger = logging.getLogger(__name__)


def allocate_counts(total: int, shares: dict[ClusterKind, float]) -> dict[ClusterKind, int]:
    """Split `total` across kinds proportionally (largest remainder)."""
    weight_sum = sum(shares.values())
    if total <= 0 or weight_sum <= 0:
        return {kind: 0 for kind in shares}

    exact = {kind: total * share / weight_sum for kind, share in shares.items()}
    counts = {kind: int(value) for kind, value in exact.items()}
    leftover = total - sum(counts.values())
    by_remainder = sorted(shares, key=lambda k: exact[k] - counts[k], reverse=True)
    for kind in by_remainder[:leftover]:
        counts[kind] += 1
    return counts


class ClusterPlanner:
    """Pick separated cluster anchors on suitable region categories."""

    def __init__(self, settings: ComposerSettings):
        self.settings = settings

    def min_distance(self, kind: ClusterKind, count: int, bounds: WorldBounds) -> float:
        spec = self.settings.cluster_kind(kind)
        return math.sqrt(bounds.area / max(1, count)) * spec.spacing_factor

    def plan_clusters(
        self,
        kind: ClusterKind,
        count: int,
        world: RegionMap,
        rng: random.Random,
        claimed: Sequence[ClusterAnchor] = (),
    ) -> list[ClusterAnchor]:
        """Plan up to `count` anchors of `kind`.

        Args:
            kind: Cluster kind; radius, density and suitability come from its table entry
            count: Maximum anchors to return
            world: Region lookup used for bounds and categories
            rng: Random stream for this pass
            claimed: Anchors claimed by earlier passes that new anchors must keep away from

        Returns:
            Between 0 and `count` anchors
        """
        if count <= 0:
            return []

        spec = self.settings.cluster_kind(kind)
        bounds = world.bounds
        min_dist = self.min_distance(kind, count, bounds)
        margin_x = spec.margin if spec.margin * 2 < bounds.width else 0.0
        margin_y = spec.margin if spec.margin * 2 < bounds.height else 0.0

        accepted: list[ClusterAnchor] = []
        max_attempts = count * spec.attempt_factor

        for _ in range(max_attempts):
            x = margin_x + rng.random() * (bounds.width - 2 * margin_x)
            y = margin_y + rng.random() * (bounds.height - 2 * margin_y)
            center = Point(x=x, y=y)

            category = world.category_at(x, y)
            if not spec.accepts(category):
                continue
            if any(a.center.distance_to(center) < min_dist for a in accepted):
                continue
            if any(c.center.distance_to(center) < min_dist for c in claimed):
                continue

            accepted.append(
                ClusterAnchor(
                    center=center,
                    radius=rng.uniform(*spec.radius),
                    category=category,
                    cluster_kind=kind,
                    density=rng.uniform(*spec.density),
                )
            )
            if len(accepted) >= count:
                break

        if len(accepted) < count:
            logger.warning(
                f"Cluster planning starved for {kind.value}: {len(accepted)}/{count} anchors "
                f"after {max_attempts} attempts"
            )
        return accepted

    def plan_passes(
        self,
        counts: dict[ClusterKind, int],
        world: RegionMap,
        rng: random.Random,
        claimed: Sequence[ClusterAnchor] = (),
    ) -> tuple[list[ClusterAnchor], list[ClusterAnchor]]:
        """Run one pass per kind in order, sharing claimed zones.

        Returns:
            (anchors planned by these passes, updated claimed zones)
        """
        planned: list[ClusterAnchor] = []
        zones = list(claimed)
        for kind, count in counts.items():
            anchors = self.plan_clusters(kind, count, world, rng, claimed=zones)
            planned.extend(anchors)
            if self.settings.cluster_kind(kind).claims_zone:
                zones.extend(anchors)
        return planned, zones
