"""Seed handling for reproducible composition."""

from .streams import SeedStreams, derive_seed

__all__ = ["SeedStreams", "derive_seed"]
