"""Region and cluster anchor schemas."""

from pydantic import BaseModel, ConfigDict, Field

from .base import Biome, ClusterKind, Point


class Region(BaseModel):
    """A Voronoi cell of world space with an assigned category.

    `boundary` may be empty or partial for degenerate or clipped sites.
    """

    model_config = ConfigDict(frozen=True)

    site_id: int
    center: Point
    boundary: tuple[Point, ...] = ()
    area: float = Field(default=0.0, ge=0.0)
    category: Biome


class ClusterAnchor(BaseModel):
    """Center point with radius and density used to scatter related content."""

    model_config = ConfigDict(frozen=True)

    center: Point
    radius: float = Field(gt=0)
    category: Biome
    cluster_kind: ClusterKind
    density: float = Field(gt=0, le=1)
