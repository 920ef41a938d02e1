"""Biome-aware tint colours as 0xRRGGBB integers."""

import random

from worldcomposer.schemas import Biome

WHITE = 0xFFFFFF

BIOME_TINTS: dict[Biome, int] = {
    Biome.GRASSLAND: 0x90EE90,
    Biome.FOREST: 0x228B22,
    Biome.WETLAND: 0x87CEEB,
    Biome.MOUNTAINOUS: 0x696969,
    Biome.MYSTICAL: 0xF4A460,
    Biome.VILLAGE: 0xDEB887,
}

STRUCTURE_TINTS: dict[Biome, int] = {
    Biome.GRASSLAND: 0xF5F5DC,  # beige
    Biome.FOREST: 0x8B4513,  # saddle brown
    Biome.WETLAND: 0x708090,  # slate gray
    Biome.MOUNTAINOUS: 0x696969,  # dim gray
    Biome.MYSTICAL: 0xD2B48C,  # tan
    Biome.VILLAGE: 0xDEB887,  # burlywood
}


def split_rgb(color: int) -> tuple[int, int, int]:
    return (color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF


def join_rgb(r: int, g: int, b: int) -> int:
    return (r << 16) | (g << 8) | b


def biome_tint(biome: Biome, variation: float = 0.0) -> int:
    """Base tint of `biome` brightened or darkened by up to 10 %.

    `variation` is expected in [-1, 1]; channels are clamped to 0..255.
    """
    factor = 1 + variation * 0.1
    r, g, b = (max(0, min(255, int(c * factor))) for c in split_rgb(BIOME_TINTS.get(biome, WHITE)))
    return join_rgb(r, g, b)


def random_biome_tint(biome: Biome, rng: random.Random) -> int:
    return biome_tint(biome, (rng.random() - 0.5) * 2)


def transition_tint(from_biome: Biome, to_biome: Biome) -> int:
    """Even mix of the two biomes' base tints."""
    a = split_rgb(biome_tint(from_biome))
    b = split_rgb(biome_tint(to_biome))
    return join_rgb(*((x + y) // 2 for x, y in zip(a, b)))


def structure_tint(biome: Biome) -> int:
    return STRUCTURE_TINTS.get(biome, WHITE)
