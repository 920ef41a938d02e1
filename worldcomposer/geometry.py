"""Planar geometry helpers on (x, y) tuples.

Polygons are lists of vertices in order; the closing edge from the last
vertex back to the first is implied.
"""

import math
from typing import NamedTuple, Optional

XY = tuple[float, float]


class Rect(NamedTuple):
    """Axis-aligned clip rectangle."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float


def distance(a: XY, b: XY) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def circumcenter(a: XY, b: XY, c: XY) -> Optional[XY]:
    """Circumcenter of triangle abc, or None when the points are collinear."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    ex, ey = c[0] - a[0], c[1] - a[1]
    det = dx * ey - dy * ex
    if abs(det) < 1e-12:
        return None

    bl = dx * dx + dy * dy
    cl = ex * ex + ey * ey
    d = 0.5 / det
    return (a[0] + (ey * bl - dy * cl) * d, a[1] + (dx * cl - ex * bl) * d)


def signed_area(polygon: list[XY]) -> float:
    """Shoelace area; positive for counter-clockwise winding."""
    if len(polygon) < 3:
        return 0.0

    total = 0.0
    for i, (x1, y1) in enumerate(polygon):
        x2, y2 = polygon[(i + 1) % len(polygon)]
        total += x1 * y2 - x2 * y1
    return total / 2


def polygon_area(polygon: list[XY]) -> float:
    return abs(signed_area(polygon))


def order_around(center: XY, points: list[XY]) -> list[XY]:
    """Sort points by angle around `center`, counter-clockwise."""
    cx, cy = center
    return sorted(points, key=lambda p: math.atan2(p[1] - cy, p[0] - cx))


def dedupe(points: list[XY], tolerance: float = 1e-9) -> list[XY]:
    """Drop consecutive near-duplicate vertices (including last vs first)."""
    result: list[XY] = []
    for p in points:
        if not result or distance(p, result[-1]) > tolerance:
            result.append(p)
    if len(result) > 1 and distance(result[0], result[-1]) <= tolerance:
        result.pop()
    return result


def clip_to_rect(polygon: list[XY], rect: Rect) -> list[XY]:
    """Sutherland-Hodgman clip of a convex or simple polygon to `rect`."""

    def clip_edge(points: list[XY], inside, intersect) -> list[XY]:
        if not points:
            return []
        output: list[XY] = []
        prev = points[-1]
        for curr in points:
            if inside(curr):
                if not inside(prev):
                    output.append(intersect(prev, curr))
                output.append(curr)
            elif inside(prev):
                output.append(intersect(prev, curr))
            prev = curr
        return output

    def at_x(x):
        def intersect(p, q):
            t = (x - p[0]) / (q[0] - p[0])
            return (x, p[1] + t * (q[1] - p[1]))
        return intersect

    def at_y(y):
        def intersect(p, q):
            t = (y - p[1]) / (q[1] - p[1])
            return (p[0] + t * (q[0] - p[0]), y)
        return intersect

    points = list(polygon)
    points = clip_edge(points, lambda p: p[0] >= rect.min_x, at_x(rect.min_x))
    points = clip_edge(points, lambda p: p[0] <= rect.max_x, at_x(rect.max_x))
    points = clip_edge(points, lambda p: p[1] >= rect.min_y, at_y(rect.min_y))
    points = clip_edge(points, lambda p: p[1] <= rect.max_y, at_y(rect.max_y))
    return dedupe(points)
