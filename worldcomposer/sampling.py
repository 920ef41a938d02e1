"""Random point distributions: Poisson-disk sites and radial falloff."""

import math
import random
from typing import Optional

from worldcomposer import config
from worldcomposer.geometry import XY


def poisson_disk_sample(
    width: float,
    height: float,
    target_count: int,
    min_distance: float,
    rng: random.Random,
    attempts: int = config.POISSON_ATTEMPTS,
) -> list[XY]:
    """Bridson-style Poisson-disk sampling inside [0, width) x [0, height).

    Every pair of returned points is at least `min_distance` apart. Stops
    when `target_count` points are accepted or no active point can spawn a
    new one; returning fewer points than requested is expected for small
    worlds.

    Args:
        width: Sampling area width
        height: Sampling area height
        target_count: Maximum number of points to return
        min_distance: Minimum pairwise distance
        rng: Random stream to draw from
        attempts: Candidates tried in the annulus around an active point

    Returns:
        List of (x, y) points in acceptance order
    """
    if min_distance <= 0:
        raise ValueError(f"min_distance must be positive, got {min_distance}")
    if target_count <= 0 or width <= 0 or height <= 0:
        return []

    cell_size = min_distance / math.sqrt(2)
    cols = max(1, math.ceil(width / cell_size))
    rows = max(1, math.ceil(height / cell_size))
    # One point per cell at most, since the cell diagonal equals min_distance
    grid: list[list[Optional[XY]]] = [[None] * cols for _ in range(rows)]

    def cell_of(p: XY) -> tuple[int, int]:
        return (min(int(p[0] / cell_size), cols - 1), min(int(p[1] / cell_size), rows - 1))

    def far_enough(candidate: XY) -> bool:
        col, row = cell_of(candidate)
        for r in range(max(0, row - 2), min(rows, row + 3)):
            for c in range(max(0, col - 2), min(cols, col + 3)):
                neighbor = grid[r][c]
                if neighbor is not None and math.dist(candidate, neighbor) < min_distance:
                    return False
        return True

    first = (rng.random() * width, rng.random() * height)
    points = [first]
    active = [first]
    col, row = cell_of(first)
    grid[row][col] = first

    while active and len(points) < target_count:
        index = rng.randrange(len(active))
        origin = active[index]
        accepted = False

        for _ in range(attempts):
            angle = rng.random() * 2 * math.pi
            radius = min_distance * (1 + rng.random())
            candidate = (
                origin[0] + radius * math.cos(angle),
                origin[1] + radius * math.sin(angle),
            )
            if not (0 <= candidate[0] < width and 0 <= candidate[1] < height):
                continue
            if far_enough(candidate):
                points.append(candidate)
                active.append(candidate)
                col, row = cell_of(candidate)
                grid[row][col] = candidate
                accepted = True
                break

        if not accepted:
            active.pop(index)

    return points


def gaussian_unit(rng: random.Random) -> float:
    """Half-normal Box-Muller draw with 3 sigma mapped to 1, clamped to [0, 1].

    Used as a radial fraction: most draws land near the center and become
    rarer towards the rim.
    """
    u1 = rng.random() or 1e-12
    u2 = rng.random()
    z0 = math.sqrt(-2 * math.log(u1)) * math.cos(2 * math.pi * u2)
    return min(1.0, abs(z0) / 3)
