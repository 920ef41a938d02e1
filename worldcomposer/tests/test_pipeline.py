"""Tests for the layered composition pipeline."""

import logging

import pytest

from worldcomposer.assembly import (
    STAGES,
    LayeredCompositionPipeline,
    MalformedInputError,
    diversity_index,
)
from worldcomposer.catalog import AssetCatalog
from worldcomposer.occupancy import SeparationTable
from worldcomposer.schemas import Biome, LayerKind, TerrainGrid, WorldConfig
from worldcomposer.validator import WorldValidator

LAYER_NAMES = [
    "Terrain Base",
    "Biome Transitions",
    "Scattered Details",
    "Vegetation Clusters",
    "Structures & Ruins",
    "Interactive Props",
    "Atmospheric Effects",
]


def banded_grid(width=24, height=20):
    third = width // 3
    row = ["forest"] * third + ["grassland"] * third + ["wetland"] * (width - 2 * third)
    return TerrainGrid.from_categories([list(row) for _ in range(height)])


@pytest.fixture(scope="module")
def pipeline(settings):
    return LayeredCompositionPipeline(settings)


@pytest.fixture(scope="module")
def world(pipeline, catalog):
    return pipeline.compose(42, banded_grid(), catalog)


class TestCompose:
    def test_layers_in_order(self, world):
        """All seven layers come back in stage order with rising z-order."""
        assert [layer.name for layer in world.layers] == LAYER_NAMES
        assert [layer.z_order for layer in world.layers] == [0.0, 0.5, 1.0, 2.0, 3.0, 4.0, 5.0]
        assert world.layers[0].kind == LayerKind.TERRAIN

    def test_terrain_covers_grid(self, world):
        """One terrain placement per cell."""
        terrain = world.layer("Terrain Base")
        assert len(terrain.placements) == 24 * 20
        tiles = {(p.metadata["tile_x"], p.metadata["tile_y"]) for p in terrain.placements}
        assert len(tiles) == 24 * 20

    def test_terrain_jitters_near_tile_center(self, world):
        """Terrain sits within 5% of a tile from its cell center, not exactly on it."""
        terrain = world.layer("Terrain Base")
        limit = 0.05 * 32 + 1e-9
        off_center = 0
        for p in terrain.placements:
            cx = p.metadata["tile_x"] * 32 + 16
            cy = p.metadata["tile_y"] * 32 + 16
            assert abs(p.position.x - cx) <= limit
            assert abs(p.position.y - cy) <= limit
            off_center += (p.position.x, p.position.y) != (cx, cy)
        assert off_center > 0

    def test_terrain_prefers_biome_assets(self, world, catalog):
        """Terrain tiles use assets tagged for their biome when one exists."""
        for placement in world.layer("Terrain Base").placements:
            tags = catalog.get(placement.asset_id).affinity_tags
            assert placement.metadata["biome"] in tags

    def test_stats(self, world):
        """Stats agree with the composed layers."""
        placements = list(world.all_placements())
        assert world.stats.total_placements == len(placements)
        assert world.stats.layer_count == 7
        assert world.stats.cluster_count == len(world.clusters)
        assert world.stats.generation_time_ms >= 0

    def test_diversity_index(self, world):
        """Diversity is unique asset ids over total placements."""
        placements = list(world.all_placements())
        unique = len({p.asset_id for p in placements})
        assert world.stats.diversity_index == pytest.approx(unique / len(placements))
        assert 0 <= world.stats.diversity_index <= 1

    def test_world_passes_validation(self, world, settings, catalog):
        """The composed world holds every invariant."""
        result = WorldValidator(SeparationTable.from_settings(settings), catalog).validate(world)
        assert result.valid, result.errors

    def test_regions_from_terrain(self, world):
        """Regions are labelled from the terrain grid and cover the world."""
        assert world.regions
        assert {r.category for r in world.regions} <= {Biome.FOREST, Biome.GRASSLAND, Biome.WETLAND}
        assert sum(r.area for r in world.regions) == pytest.approx(world.width * world.height, rel=0.05)

    def test_no_props_in_wetland(self, world):
        """Props never land on wetland."""
        for placement in world.layer("Interactive Props").placements:
            assert placement.metadata["biome"] != Biome.WETLAND.value
            assert isinstance(placement.metadata["interactive"], bool)

    def test_effects_follow_biomes(self, world):
        """Water effects sit in wetland, light particles in forest."""
        for placement in world.layer("Atmospheric Effects").placements:
            if placement.metadata["type"] == "water_effect":
                assert placement.metadata["biome"] == Biome.WETLAND.value
                assert placement.tint == 0x88DDFF
            else:
                assert placement.metadata["type"] == "light_particle"
                assert placement.metadata["biome"] == Biome.FOREST.value

    def test_clusters_recorded(self, world):
        """Cluster anchors from both cluster stages are returned."""
        assert world.clusters
        assert all(c.radius > 0 and 0 < c.density <= 1 for c in world.clusters)


class TestDeterminism:
    def test_same_seed_same_world(self, pipeline, catalog, world):
        """Re-running with the same seed reproduces the world."""
        again = pipeline.compose(42, banded_grid(), catalog)
        exclude = {"stats": {"generation_time_ms"}}
        assert again.model_dump(exclude=exclude) == world.model_dump(exclude=exclude)

    def test_different_seed_differs(self, pipeline, catalog, world):
        """A different seed gives an independent world."""
        other = pipeline.compose("alpha", banded_grid(), catalog)
        assert other.seed == "alpha"
        assert other.model_dump()["layers"] != world.model_dump()["layers"]


class TestDegradedInputs:
    def test_empty_category_yields_empty_layer(self, pipeline, catalog, settings, caplog):
        """A catalog missing a category and its fallback composes, with an empty layer and a warning."""
        # stump1 is the designated stand-in for props
        no_props = AssetCatalog(
            [d for d in catalog.descriptors if d.category not in ("prop", "decoration")], settings
        )

        with caplog.at_level(logging.WARNING):
            result = pipeline.compose(7, banded_grid(), no_props)

        assert result.layer("Interactive Props").placements == ()
        assert any(
            "Interactive Props" in r.getMessage() and r.levelno == logging.WARNING
            for r in caplog.records
        )

    def test_partly_empty_pool_warns_and_falls_back(self, pipeline, catalog, settings, caplog):
        """One empty category in a mixed pool is logged and replaced by its fallback."""
        no_mushrooms = AssetCatalog(
            [d for d in catalog.descriptors if d.category != "mushroom"], settings
        )

        with caplog.at_level(logging.WARNING):
            result = pipeline.compose(7, banded_grid(), no_mushrooms)

        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert any(
            "Scattered Details" in m and "'mushroom'" in m and "fern1" in m for m in warnings
        )
        assert WorldValidator(SeparationTable.from_settings(settings), no_mushrooms).validate(result).valid

    def test_empty_category_with_fallback_still_places(self, pipeline, catalog, settings):
        """Props fall back to their stand-in when the catalog has none."""
        no_props = AssetCatalog([d for d in catalog.descriptors if d.category != "prop"], settings)
        result = pipeline.compose(7, banded_grid(), no_props)

        ids = {p.asset_id for p in result.layer("Interactive Props").placements}
        assert ids <= {"stump1"}

    def test_small_world(self, pipeline, catalog):
        """A single-tile world still composes."""
        result = pipeline.compose(1, TerrainGrid.from_categories([["grassland"]]), catalog)
        assert len(result.layer("Terrain Base").placements) == 1
        assert len(result.regions) == 1

    def test_custom_world_config(self, pipeline, catalog):
        """No cluster target means no cluster placements."""
        grid = banded_grid(12, 12)
        result = pipeline.compose(
            3, grid, catalog, world_config=WorldConfig.for_grid(grid, cluster_count=0, region_count=5)
        )
        assert result.clusters == ()
        assert result.layer("Vegetation Clusters").placements == ()
        assert len(result.regions) <= 5


class TestMalformedInput:
    def test_empty_grid(self, pipeline, catalog):
        with pytest.raises(MalformedInputError):
            pipeline.compose(1, TerrainGrid(), catalog)

    def test_missing_grid(self, pipeline, catalog):
        with pytest.raises(MalformedInputError):
            pipeline.compose(1, None, catalog)

    def test_ragged_grid(self, pipeline, catalog):
        grid = TerrainGrid.from_categories([["forest", "forest"], ["forest"]])
        with pytest.raises(MalformedInputError):
            pipeline.compose(1, grid, catalog)

    def test_empty_catalog(self, pipeline, settings):
        with pytest.raises(MalformedInputError):
            pipeline.compose(1, banded_grid(), AssetCatalog([], settings))

    def test_missing_catalog(self, pipeline):
        with pytest.raises(MalformedInputError):
            pipeline.compose(1, banded_grid(), None)


class TestStagesAndProgress:
    def test_progress_callback(self, pipeline, catalog):
        """Progress reports name the stages as they run."""
        seen = []
        pipeline.compose(5, banded_grid(6, 6), catalog, on_progress=lambda stage, done, total: seen.append(stage))
        assert "Terrain Base" in seen
        assert "Biome Transitions" in seen

    def test_custom_stage_list(self, settings, catalog):
        """The pipeline runs exactly the stages it is given."""
        terrain_only = LayeredCompositionPipeline(settings, stages=STAGES[:1])
        result = terrain_only.compose(9, banded_grid(6, 6), catalog)
        assert [layer.name for layer in result.layers] == ["Terrain Base"]
        assert result.stats.layer_count == 1

    def test_diversity_of_nothing(self):
        """An empty world has diversity 0."""
        assert diversity_index(()) == 0.0
