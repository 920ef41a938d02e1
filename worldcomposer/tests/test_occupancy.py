"""Tests for the separation table and occupancy index."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from worldcomposer.occupancy import OccupancyIndex, SeparationTable
from worldcomposer.schemas import BoundingBox, Footprint, Point

TREE = Footprint(w=64, h=96)
ROCK = Footprint(w=40, h=32)


def box_at(x, y, footprint=TREE, scale=1.0):
    return BoundingBox.around(Point(x=x, y=y), footprint, scale)


@pytest.fixture
def index(settings):
    return OccupancyIndex(SeparationTable.from_settings(settings))


class TestSeparationTable:
    def test_symmetric(self):
        """Lookups ignore pair order."""
        table = SeparationTable({("tree", "rock"): 40})
        assert table.minimum("tree", "rock") == table.minimum("rock", "tree") == 40

    def test_unlisted_pair(self):
        """Unlisted pairs need no separation."""
        table = SeparationTable({("tree", "tree"): 55})
        assert table.minimum("tree", "mushroom") == 0.0
        assert not table.requires_separation("tree", "mushroom")

    def test_from_settings(self, settings):
        """The packaged table carries the tree/tree minimum."""
        table = SeparationTable.from_settings(settings)
        assert table.minimum("tree", "tree") == 55

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            SeparationTable({("a", "b"): -1})

    def test_pairs(self):
        """Pairs iterate with both names, including same-category pairs."""
        table = SeparationTable({("tree", "tree"): 55, ("rock", "tree"): 40})
        assert sorted(table.pairs()) == [("rock", "tree", 40.0), ("tree", "tree", 55.0)]


class TestTryInsert:
    def test_trees_40_apart_rejected(self, index):
        """Two scale-1.0 trees 40 apart overlap below the 55 minimum."""
        assert index.try_insert(box_at(100, 100), "tree", 1.0)
        assert not index.try_insert(box_at(140, 100), "tree", 1.0)
        assert len(index) == 1

    def test_trees_apart_accepted(self, index):
        """Trees whose boxes do not overlap are both accepted."""
        assert index.try_insert(box_at(100, 100), "tree", 1.0)
        assert index.try_insert(box_at(200, 100), "tree", 1.0)
        assert len(index) == 2

    def test_overlap_beyond_minimum_allowed(self, index):
        """Overlapping boxes at or beyond the pair minimum are allowed."""
        assert index.try_insert(box_at(100, 100, ROCK), "rock", 1.0)
        assert index.try_insert(box_at(135, 100, ROCK), "rock", 1.0)

    def test_larger_scale_widens_minimum(self, index):
        """The minimum scales by the larger of the two instance scales."""
        assert index.try_insert(box_at(100, 100, ROCK, 1.4), "rock", 1.4)
        assert not index.try_insert(box_at(135, 100, ROCK), "rock", 1.0)

    def test_unlisted_pair_never_blocks(self, index):
        """Categories without a pair minimum may share a spot."""
        assert index.try_insert(box_at(100, 100), "tree", 1.0)
        assert index.try_insert(box_at(100, 100, Footprint(w=16, h=18)), "mushroom", 1.0)

    def test_conflict_across_cell_boundary(self, settings):
        """Boxes straddling hash cells are still compared."""
        index = OccupancyIndex(SeparationTable.from_settings(settings), cell_size=64)
        assert index.try_insert(box_at(60, 100), "tree", 1.0)
        assert not index.try_insert(box_at(90, 100), "tree", 1.0)

    def test_conflicts_does_not_insert(self, index):
        """conflicts() is a pure query."""
        assert not index.conflicts(box_at(100, 100), "tree", 1.0)
        assert len(index) == 0

    def test_concurrent_inserts(self, index):
        """Only one of many concurrent inserts at one spot wins."""
        box = box_at(300, 300)
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: index.try_insert(box, "tree", 1.0), range(32)))
        assert results.count(True) == 1
        assert len(index) == 1


class TestFork:
    def test_fork_is_independent(self, index):
        """Inserts into a fork leave the original untouched."""
        index.try_insert(box_at(100, 100), "tree", 1.0)
        fork = index.fork()

        assert fork.try_insert(box_at(400, 400), "tree", 1.0)
        assert len(fork) == 2
        assert len(index) == 1
        assert not index.conflicts(box_at(400, 400), "tree", 1.0)

    def test_fork_keeps_occupants(self, index):
        """A fork still sees what was placed before it."""
        index.try_insert(box_at(100, 100), "tree", 1.0)
        assert index.fork().conflicts(box_at(120, 100), "tree", 1.0)

    def test_invalid_cell_size(self):
        with pytest.raises(ValueError):
            OccupancyIndex(SeparationTable(), cell_size=0)
