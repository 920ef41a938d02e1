"""Shared fixtures for composition tests."""

import pytest

from worldcomposer.catalog import CatalogLoader
from worldcomposer.schemas import TerrainGrid
from worldcomposer.settings import load_settings


def banded_categories(width: int, height: int) -> list[list[str]]:
    """Forest in the west third, grassland in the middle, wetland in the east."""
    rows = []
    for _ in range(height):
        row = []
        for x in range(width):
            if x < width // 3:
                row.append("forest")
            elif x < 2 * width // 3:
                row.append("grassland")
            else:
                row.append("wetland")
        rows.append(row)
    return rows


@pytest.fixture(scope="session")
def settings():
    return load_settings()


@pytest.fixture(scope="session")
def catalog(settings):
    return CatalogLoader(settings).load()


@pytest.fixture
def terrain_grid():
    return TerrainGrid.from_categories(banded_categories(24, 20))


@pytest.fixture
def make_grid():
    def factory(width: int, height: int, tile_size: int = 32) -> TerrainGrid:
        return TerrainGrid.from_categories(banded_categories(width, height), tile_size=tile_size)

    return factory
