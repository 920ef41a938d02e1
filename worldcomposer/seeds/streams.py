"""Named random streams derived from a single world seed."""

import hashlib
import random
from typing import Union

Seed = Union[int, str]


def derive_seed(world_seed: Seed, stream: str) -> int:
    """Stable 64-bit integer seed for `stream` under `world_seed`.

    Format of the hashed input: "{world_seed}:{stream}".
    """
    digest = hashlib.sha256(f"{world_seed}:{stream}".encode()).hexdigest()
    return int(digest[:16], 16)


class SeedStreams:
    """Independent `random.Random` streams, one per stage or subsystem.

    Asking for the same stream name twice returns a fresh generator in the
    same initial state, so a stage re-run from the same seed sees the same
    draws regardless of what other stages consumed.
    """

    def __init__(self, world_seed: Seed):
        self.world_seed = world_seed

    def stream(self, name: str) -> random.Random:
        return random.Random(derive_seed(self.world_seed, name))

    def int_seed(self, name: str, bits: int = 31) -> int:
        """Non-negative integer seed for libraries that take an int seed."""
        return derive_seed(self.world_seed, name) & ((1 << bits) - 1)
