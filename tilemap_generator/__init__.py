# tilemap_generator/__init__.py

# This file makes the 'tilemap_generator' directory a Python package.
# It also defines the public API consumed by the viewer.

from .config import ConfigurationError
from .grid import TileGrid
from .random_sources import CoherentNoiseSource, LehmerSource, RandomSource, UniformSource
from .operations import ACTIONS, GenerationOperations, LayeredRun, randomize
from .biomes import Biome, classify, classify_grid

__all__ = [
    "ConfigurationError",
    "TileGrid",
    "RandomSource", "UniformSource", "LehmerSource", "CoherentNoiseSource",
    "ACTIONS", "GenerationOperations", "LayeredRun", "randomize",
    "Biome", "classify", "classify_grid",
]
