"""Procedural world composition: regions, clusters and layered placement."""

__version__ = "0.1.0"
