"""Seeded simplex noise for organic variation."""

from opensimplex import OpenSimplex

from worldcomposer import config


class OrganicNoise:
    """2D simplex noise field in [-1, 1] with helpers used by the stages."""

    def __init__(self, seed: int):
        self.seed = seed
        self._noise = OpenSimplex(seed=seed)

    def sample(self, x: float, y: float) -> float:
        return self._noise.noise2(x=x, y=y)

    def organic_index(self, x: float, y: float, length: int) -> int:
        """Pick an index in [0, length) from three octaves of noise.

        Neighbouring positions tend to land on the same or adjacent
        indices, giving patchy rather than salt-and-pepper variety.
        """
        if length <= 0:
            return 0
        f1, f2, f3 = config.ORGANIC_NOISE_FREQUENCIES
        n1 = self.sample(x * f1, y * f1)
        n2 = self.sample(x * f2, y * f2) * 0.5
        n3 = self.sample(x * f3, y * f3) * 0.25
        combined = (n1 + n2 + n3 + 2) / 3.5
        return max(0, min(length - 1, int(combined * length)))

    def variation(self, x: float, y: float, frequency: float = 0.01) -> float:
        return self.sample(x * frequency, y * frequency)

    def passes(self, x: float, y: float, threshold: float, frequency: float) -> bool:
        """True in the "positive" patches of the field above `threshold`."""
        return self.sample(x * frequency, y * frequency) > threshold
