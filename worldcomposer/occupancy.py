"""Type-pair separation table and the running occupancy index."""

import math
import threading
from typing import Iterator, NamedTuple, Optional

from worldcomposer.schemas import BoundingBox
from worldcomposer.settings import ComposerSettings

DEFAULT_CELL_SIZE = 128.0


class SeparationTable:
    """Symmetric minimum center distance keyed by (category, category).

    Distances are for scale 1.0; callers multiply by the larger of the two
    instance scales. Unlisted pairs need no separation.
    """

    def __init__(self, rules: Optional[dict[tuple[str, str], float]] = None):
        self._table: dict[frozenset, float] = {}
        for (a, b), distance in (rules or {}).items():
            self.set(a, b, distance)

    @classmethod
    def from_settings(cls, settings: ComposerSettings) -> "SeparationTable":
        return cls({(rule.a, rule.b): rule.distance for rule in settings.separation})

    def set(self, a: str, b: str, distance: float) -> None:
        if distance < 0:
            raise ValueError(f"Separation for ({a}, {b}) must be >= 0, got {distance}")
        self._table[frozenset((a, b))] = float(distance)

    def minimum(self, a: str, b: str) -> float:
        return self._table.get(frozenset((a, b)), 0.0)

    def requires_separation(self, a: str, b: str) -> bool:
        return self.minimum(a, b) > 0

    def pairs(self) -> Iterator[tuple[str, str, float]]:
        for key, distance in self._table.items():
            # Same-category pairs are stored as one-element sets
            names = sorted(key)
            yield names[0], names[-1], distance

    def __len__(self) -> int:
        return len(self._table)


class Occupant(NamedTuple):
    x: float
    y: float
    w: float
    h: float
    category: str
    scale: float

    @property
    def cx(self) -> float:
        return self.x + self.w / 2

    @property
    def cy(self) -> float:
        return self.y + self.h / 2


class OccupancyIndex:
    """Spatial hash of placed bounding boxes.

    A box is filed under every grid cell it touches, so any box that
    overlaps a candidate shares at least one cell with it. `try_insert`
    checks and inserts under one lock; readers may call `conflicts`
    concurrently with other readers.
    """

    def __init__(self, separation: SeparationTable, cell_size: float = DEFAULT_CELL_SIZE):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.separation = separation
        self.cell_size = cell_size
        self._cells: dict[tuple[int, int], list[Occupant]] = {}
        self._count = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self._count

    def _cell_range(self, box: BoundingBox) -> Iterator[tuple[int, int]]:
        x0 = math.floor(box.x / self.cell_size)
        x1 = math.floor((box.x + box.w) / self.cell_size)
        y0 = math.floor(box.y / self.cell_size)
        y1 = math.floor((box.y + box.h) / self.cell_size)
        for cy in range(y0, y1 + 1):
            for cx in range(x0, x1 + 1):
                yield (cx, cy)

    def conflicts(self, box: BoundingBox, category: str, scale: float) -> bool:
        """True if `box` would sit illegally close to an occupant.

        A conflict needs both overlapping x/y ranges and a center distance
        below the pair minimum times the larger scale.
        """
        cx = box.x + box.w / 2
        cy = box.y + box.h / 2
        seen: set[int] = set()
        for key in self._cell_range(box):
            for occupant in self._cells.get(key, ()):
                if id(occupant) in seen:
                    continue
                seen.add(id(occupant))

                if not (
                    box.x < occupant.x + occupant.w
                    and occupant.x < box.x + box.w
                    and box.y < occupant.y + occupant.h
                    and occupant.y < box.y + box.h
                ):
                    continue

                minimum = self.separation.minimum(category, occupant.category)
                if minimum <= 0:
                    continue
                required = minimum * max(scale, occupant.scale)
                if math.hypot(cx - occupant.cx, cy - occupant.cy) < required:
                    return True
        return False

    def insert(self, box: BoundingBox, category: str, scale: float) -> None:
        occupant = Occupant(box.x, box.y, box.w, box.h, category, scale)
        for key in self._cell_range(box):
            self._cells.setdefault(key, []).append(occupant)
        self._count += 1

    def try_insert(self, box: BoundingBox, category: str, scale: float) -> bool:
        """Insert `box` unless it conflicts; returns whether it was inserted."""
        with self._lock:
            if self.conflicts(box, category, scale):
                return False
            self.insert(box, category, scale)
            return True

    def fork(self) -> "OccupancyIndex":
        """Independent copy; inserts into the fork leave this index untouched."""
        clone = OccupancyIndex(self.separation, self.cell_size)
        with self._lock:
            clone._cells = {key: list(items) for key, items in self._cells.items()}
            clone._count = self._count
        return clone
