"""CLI interface for the world composition pipeline."""

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from worldcomposer import config
from worldcomposer.catalog import CatalogError, CatalogLoader
from worldcomposer.schemas import ComposedWorld, TerrainGrid, WorldConfig
from worldcomposer.settings import load_settings


def load_terrain(path: Path) -> TerrainGrid:
    """Read a terrain grid from JSON.

    Accepts either the full grid schema (`{"tile_size", "rows": [[cell]]}`)
    or a compact category matrix (`{"tile_size", "categories": [["forest"]]}`).
    """
    with open(path) as f:
        data = json.load(f)
    if "categories" in data:
        return TerrainGrid.from_categories(data["categories"], tile_size=data.get("tile_size", 32))
    return TerrainGrid.model_validate(data)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """World Composition Pipeline"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


@cli.command()
@click.option("--terrain", "terrain_path", required=True, type=click.Path(exists=True, path_type=Path),
              help="Terrain grid JSON")
@click.option("--catalog", "catalog_path", default=None, type=click.Path(path_type=Path),
              help="Asset catalog YAML")
@click.option("--settings", "settings_path", default=None, type=click.Path(path_type=Path),
              help="Composer settings TOML")
@click.option("--seed", default="42", help="World seed")
@click.option("--regions", default=50, help="Target region count")
@click.option("--clusters", default=50, help="Target cluster count")
@click.option("--output", default="world.json", help="Output file")
def compose(
    terrain_path: Path,
    catalog_path: Optional[Path],
    settings_path: Optional[Path],
    seed: str,
    regions: int,
    clusters: int,
    output: str,
):
    """Compose a world from a terrain grid and an asset catalog."""
    from worldcomposer.assembly import LayeredCompositionPipeline, MalformedInputError

    settings = load_settings(settings_path)
    try:
        grid = load_terrain(terrain_path)
        catalog = CatalogLoader(settings).load(catalog_path)
    except (ValidationError, json.JSONDecodeError, CatalogError) as e:
        raise click.ClickException(str(e))

    click.echo(f"Composing world (seed: {seed}, grid: {grid.width}x{grid.height})")

    pipeline = LayeredCompositionPipeline(settings)
    try:
        world = pipeline.compose(
            seed,
            grid,
            catalog,
            world_config=WorldConfig.for_grid(grid, region_count=regions, cluster_count=clusters),
        )
    except MalformedInputError as e:
        raise click.ClickException(str(e))

    output_path = Path(output)
    with open(output_path, "w") as f:
        f.write(world.model_dump_json(indent=2))

    for layer in world.layers:
        click.echo(f"  {layer.name}: {len(layer.placements)}")
    click.echo(f"Placements: {world.stats.total_placements}")
    click.echo(f"Diversity: {world.stats.diversity_index:.3f}")
    click.echo(f"Generation time: {world.stats.generation_time_ms}ms")
    click.echo(f"Saved to {output_path}")


@cli.command()
@click.option("--width", default=1000.0, help="World width in pixels")
@click.option("--height", default=1000.0, help="World height in pixels")
@click.option("--regions", default=50, help="Target region count")
@click.option("--min-distance", default=config.DEFAULT_REGION_MIN_DISTANCE, help="Minimum site distance")
@click.option("--seed", default="42", help="World seed")
def partition(width: float, height: float, regions: int, min_distance: float, seed: str):
    """Partition a world into regions and summarize them."""
    from worldcomposer.regions import RegionPartitioner
    from worldcomposer.seeds import SeedStreams

    result = RegionPartitioner().partition(
        width, height, regions, min_distance, SeedStreams(seed).stream("regions")
    )

    total = sum(r.area for r in result)
    click.echo(f"Regions: {len(result)}")
    click.echo(f"Coverage: {total / (width * height):.1%}")
    for category, count in sorted(Counter(r.category.value for r in result).items()):
        click.echo(f"  {category}: {count}")


@cli.command()
@click.argument("world_path", type=click.Path(exists=True, path_type=Path))
@click.option("--catalog", "catalog_path", default=None, type=click.Path(path_type=Path),
              help="Asset catalog YAML")
@click.option("--settings", "settings_path", default=None, type=click.Path(path_type=Path),
              help="Composer settings TOML")
def validate(world_path: Path, catalog_path: Optional[Path], settings_path: Optional[Path]):
    """Re-check a composed world against its invariants."""
    from worldcomposer.occupancy import SeparationTable
    from worldcomposer.validator import WorldValidator

    settings = load_settings(settings_path)
    try:
        world = ComposedWorld.model_validate_json(world_path.read_text())
        catalog = CatalogLoader(settings).load(catalog_path)
    except (ValidationError, CatalogError) as e:
        raise click.ClickException(str(e))

    result = WorldValidator(SeparationTable.from_settings(settings), catalog).validate(world)

    for warning in result.warnings:
        click.echo(f"WARNING: {warning}")
    for error in result.errors:
        click.echo(f"ERROR: {error}")

    if not result.valid:
        raise click.ClickException(f"{len(result.errors)} errors found")
    click.echo("World is valid")


@cli.command()
@click.option("--catalog", "catalog_path", default=None, type=click.Path(path_type=Path),
              help="Asset catalog YAML")
def catalog(catalog_path: Optional[Path]):
    """Show asset catalog statistics."""
    try:
        loaded = CatalogLoader().load(catalog_path)
    except CatalogError as e:
        raise click.ClickException(str(e))

    click.echo("Asset Catalog Statistics:")
    click.echo(f"  Assets: {len(loaded)}")
    for category in sorted(loaded.categories):
        click.echo(f"  {category}: {len(loaded.by_category(category))}")


if __name__ == "__main__":
    cli()
