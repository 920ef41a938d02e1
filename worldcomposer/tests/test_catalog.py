"""Tests for asset catalog lookup, selection and loading."""

import math
import random

import pytest

from worldcomposer.catalog import AssetCatalog, CatalogError, CatalogLoader, rarity_weight
from worldcomposer.schemas import AssetDescriptor, RarityTier


def make_asset(asset_id, category="tree", rarity="common", **kwargs):
    return AssetDescriptor.model_validate(
        {"id": asset_id, "category": category, "rarity": rarity, **kwargs}
    )


class TestSelection:
    def test_weighted_selection_bias(self):
        """Over 10,000 draws common vs rare lands within 3% of 100/115."""
        common = make_asset("common_oak", rarity="common")
        rare = make_asset("rare_oak", rarity="rare")
        catalog = AssetCatalog([common, rare])
        rng = random.Random(12345)

        picks = [catalog.select([common, rare], rng) for _ in range(10_000)]
        ratio = sum(1 for p in picks if p.id == "common_oak") / len(picks)

        assert ratio == pytest.approx(100 / 115, abs=0.03)

    def test_empty_pool_returns_none(self):
        """An empty pool selects nothing rather than raising."""
        assert AssetCatalog([]).select([], random.Random(0)) is None

    def test_single_item_pool(self):
        """A one-item pool always returns that item."""
        only = make_asset("only", rarity="epic")
        catalog = AssetCatalog([only])
        rng = random.Random(1)
        assert all(catalog.select([only], rng).id == "only" for _ in range(20))

    def test_rarity_weights(self):
        """Tier weights follow the fixed table; unknown tiers weigh 60."""
        assert rarity_weight(make_asset("a", rarity="common")) == 100
        assert rarity_weight(make_asset("b", rarity="uncommon")) == 40
        assert rarity_weight(make_asset("c", rarity="rare")) == 15
        assert rarity_weight(make_asset("d", rarity="epic")) == 5
        assert rarity_weight(make_asset("e", rarity="legendary")) == 60

    def test_unknown_rarity_parsed_as_none(self):
        """Unrecognised rarity strings are kept as an unknown tier."""
        assert make_asset("x", rarity="mythic").rarity_tier is None


class TestLookups:
    @pytest.fixture
    def small_catalog(self):
        return AssetCatalog(
            [
                make_asset("oak", "tree", "common", affinity=["forest"]),
                make_asset("palm", "tree", "rare", unlock_level=3, affinity=["coastal"]),
                make_asset("boulder", "rock", "rare", unlock_level=1),
                make_asset("pebble", "rock", "common"),
            ]
        )

    def test_by_category(self, small_catalog):
        """Category lookup returns only that category, in catalog order."""
        assert [d.id for d in small_catalog.by_category("tree")] == ["oak", "palm"]
        assert small_catalog.by_category("structure") == []

    def test_by_categories_merges(self, small_catalog):
        """Multi-category pools concatenate without duplicating categories."""
        pool = small_catalog.by_categories(["rock", "tree", "rock"])
        assert [d.id for d in pool] == ["boulder", "pebble", "oak", "palm"]

    def test_by_rarity_respects_unlock(self, small_catalog):
        """Rarity lookup filters out assets above the unlock level."""
        assert [d.id for d in small_catalog.by_rarity(RarityTier.RARE, 1)] == ["boulder"]
        assert [d.id for d in small_catalog.by_rarity(RarityTier.RARE, 5)] == ["palm", "boulder"]

    def test_with_affinity(self, small_catalog):
        """Affinity filter narrows the pool, or keeps it whole if nothing matches."""
        trees = small_catalog.by_category("tree")
        assert [d.id for d in AssetCatalog.with_affinity(trees, "coastal")] == ["palm"]
        assert AssetCatalog.with_affinity(trees, "desert") == trees

    def test_contains_and_get(self, small_catalog):
        """Membership and lookup by id."""
        assert "oak" in small_catalog
        assert "maple" not in small_catalog
        assert small_catalog.get("pebble").category == "rock"
        assert len(small_catalog) == 4

    def test_duplicate_ids_rejected(self):
        """Two entries with one id cannot share a catalog."""
        with pytest.raises(CatalogError):
            AssetCatalog([make_asset("oak"), make_asset("oak", category="foliage")])


class TestCapabilities:
    def test_orientation_sensitive_from_category(self, catalog):
        """Trees are orientation-sensitive and get the tree footprint."""
        oak = catalog.get("oak_tree1")
        assert oak.orientation_sensitive is True
        assert (oak.footprint.w, oak.footprint.h) == (64, 96)

    def test_terrain_snaps_to_quarter_turns(self, catalog):
        """Terrain rotates freely in quarter-turn steps."""
        grass = catalog.get("terrain-grass")
        assert grass.orientation_sensitive is False
        assert grass.rotation_step == pytest.approx(math.pi / 2)

    def test_offset_from_category(self, catalog):
        """Terrain jitters off the tile center; trees stay put."""
        assert catalog.get("terrain-grass").offset == pytest.approx(0.05)
        assert catalog.get("oak_tree1").offset == 0.0

    def test_explicit_range_enables_rotation(self, catalog):
        """An entry with its own rotation range may rotate within it."""
        pine = catalog.get("pine_tree1")
        assert pine.orientation_sensitive is False
        assert pine.rotation_range == pytest.approx((-0.2618, 0.2618))

    def test_unknown_category_gets_defaults(self, settings):
        """Categories missing from the settings fall back to a 32x32 footprint."""
        catalog = AssetCatalog([make_asset("thing", category="gizmo")], settings)
        thing = catalog.get("thing")
        assert (thing.footprint.w, thing.footprint.h) == (32, 32)
        assert thing.orientation_sensitive is False


class TestFallbacks:
    def test_fallback_present(self, catalog):
        """The first designated default found in the catalog is used."""
        assert catalog.fallback_for("tree").id == "bush_emerald_1"

    def test_fallbacks_name_other_categories(self, catalog, settings):
        """Every packaged fallback resolves to an asset outside its own category."""
        for category, asset_ids in settings.fallbacks.items():
            resolved = [catalog.get(asset_id) for asset_id in asset_ids]
            assert all(d is not None for d in resolved), category
            assert all(d.category != category for d in resolved), category

    def test_same_category_default_skipped(self, settings):
        """A default of the empty category itself is never returned."""
        catalog = AssetCatalog(
            [make_asset("bush_emerald_1", "tree"), make_asset("fern1", "foliage")], settings
        )
        assert catalog.fallback_for("tree").id == "fern1"

    def test_fallback_absent(self, settings):
        """Defaults missing from the catalog are never invented."""
        catalog = AssetCatalog([make_asset("pebble", "rock")], settings)
        assert catalog.fallback_for("tree") is None

    def test_no_settings_no_fallback(self):
        """Without settings there are no designated defaults."""
        assert AssetCatalog([make_asset("oak_tree1")]).fallback_for("tree") is None


class TestLoader:
    def test_load_default(self, catalog):
        """The packaged catalog loads with every fallback category covered."""
        assert len(catalog) > 0
        for category in ("terrain", "tree", "structure", "prop", "effect"):
            assert catalog.by_category(category)

    def test_load_from_file(self, settings, tmp_path):
        """Catalogs load from a YAML file."""
        path = tmp_path / "catalog.yaml"
        path.write_text("assets:\n  - {id: oak, category: tree, rarity: common}\n")
        catalog = CatalogLoader(settings).load(path)
        assert catalog.get("oak").rarity_tier == RarityTier.COMMON

    def test_missing_file(self, settings, tmp_path):
        """A missing file raises CatalogError."""
        with pytest.raises(CatalogError):
            CatalogLoader(settings).load(tmp_path / "nope.yaml")

    def test_unparseable_yaml(self, settings, tmp_path):
        """Malformed YAML raises CatalogError."""
        path = tmp_path / "broken.yaml"
        path.write_text("assets: [unclosed\n")
        with pytest.raises(CatalogError):
            CatalogLoader(settings).load(path)

    def test_invalid_entry(self, settings):
        """Schema violations are reported as CatalogError."""
        with pytest.raises(CatalogError):
            CatalogLoader(settings).from_dict({"assets": [{"id": "", "category": "tree"}]})

    def test_empty_document(self, settings):
        """A document without assets yields an empty catalog."""
        assert len(CatalogLoader(settings).from_dict({})) == 0
