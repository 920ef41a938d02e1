"""Configuration for the world composition pipeline."""

from pathlib import Path

# Paths
COMPOSER_ROOT = Path(__file__).parent
GENERATION_DIR = COMPOSER_ROOT / "generation"
SETTINGS_PATH = GENERATION_DIR / "composer.toml"
CATALOGS_DIR = COMPOSER_ROOT / "catalogs"
DEFAULT_CATALOG_PATH = CATALOGS_DIR / "default.yaml"

# Region partitioning
POISSON_ATTEMPTS = 30  # candidates tried around each active point
DEFAULT_REGION_MIN_DISTANCE = 100.0
VILLAGE_AREA_THRESHOLD = 5000.0

# Asset selection
RARITY_WEIGHTS = {
    "common": 100,
    "uncommon": 40,
    "rare": 15,
    "epic": 5,
}
UNKNOWN_RARITY_WEIGHT = 60

# Placement
DEFAULT_ATTEMPT_FACTOR = 4
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_TILE_SIZE = 32

# Noise used for organic selection and detail gating
ORGANIC_NOISE_FREQUENCIES = (0.1, 0.05, 0.2)
DETAIL_NOISE_FREQUENCY = 0.01
