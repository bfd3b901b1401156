# tilemap_generator/biomes.py

"""
================================================================================
BIOME CLASSIFICATION & COLOR MAPPING
================================================================================
This module maps normalized elevation values to one of eight ordered biomes
and converts grids of values into RGB color arrays for display.

It is designed to be a pure, stateless utility with no dependencies on Pygame,
so the classifier can be used and tested without a display.

Data Contract:
---------------
- Inputs:
    - Scalar elevations or NumPy arrays of shape (height, width).
- Outputs:
    - Biome members, uint8 biome-ID arrays, or uint8 RGB arrays of shape
      (width, height, 3), ready for pygame.surfarray.
- Side Effects: None.
- Invariants: Classification uses half-open intervals [lower, upper) and is
  total over the real line; values below 0 are deep water and values at or
  above the last boundary are high mountains.
================================================================================
"""
import bisect
from enum import IntEnum

import numpy as np


class Biome(IntEnum):
    """Terrain categories, ordered from lowest to highest elevation."""
    DEEP_WATER = 0
    SHALLOW_WATER = 1
    SAND = 2
    GRASS = 3
    FOREST = 4
    DIRT = 5
    MOUNTAINS = 6
    HIGH_MOUNTAINS = 7


# --- Biome Table ---
# Sorted (upper boundary, biome) pairs. A value belongs to the first biome
# whose boundary is strictly greater than it; anything else is the top biome.
BIOME_TABLE = (
    (0.18, Biome.DEEP_WATER),
    (0.30, Biome.SHALLOW_WATER),
    (0.40, Biome.SAND),
    (0.50, Biome.GRASS),
    (0.70, Biome.FOREST),
    (0.82, Biome.DIRT),
    (0.95, Biome.MOUNTAINS),
)
TOP_BIOME = Biome.HIGH_MOUNTAINS

_BOUNDARIES = [boundary for boundary, _ in BIOME_TABLE]
_BIOMES_BY_INDEX = [biome for _, biome in BIOME_TABLE] + [TOP_BIOME]


def classify(value: float) -> Biome:
    """Returns the biome for a single normalized elevation."""
    return _BIOMES_BY_INDEX[bisect.bisect_right(_BOUNDARIES, value)]


def classify_grid(values: np.ndarray) -> np.ndarray:
    """Vectorized classify(): returns a uint8 array of Biome IDs with the shape of `values`."""
    indices = np.searchsorted(np.asarray(_BOUNDARIES), values, side='right')
    lookup = np.array([int(biome) for biome in _BIOMES_BY_INDEX], dtype=np.uint8)
    return lookup[indices]


# --- Default Color Mappings ---
COLOR_MAP_BIOME = {
    Biome.DEEP_WATER: (0, 0, 128),
    Biome.SHALLOW_WATER: (0, 0, 255),
    Biome.SAND: (240, 240, 64),
    Biome.GRASS: (0, 255, 0),
    Biome.FOREST: (0, 128, 0),
    Biome.DIRT: (128, 64, 0),
    Biome.MOUNTAINS: (128, 128, 128),
    Biome.HIGH_MOUNTAINS: (255, 255, 255),
}

# Saturation and value of the hue-wheel view.
HUE_VIEW_SATURATION = 0.5
HUE_VIEW_VALUE = 0.75


def create_biome_color_lut() -> np.ndarray:
    """Creates a LUT where the index is the Biome ID and the value is the RGB color."""
    return np.array([COLOR_MAP_BIOME[biome] for biome in Biome], dtype=np.uint8)


def get_terrain_color_array(biome_map: np.ndarray, biome_lut: np.ndarray) -> np.ndarray:
    """
    Converts a pre-calculated integer biome map into an RGB color array
    using a pre-computed lookup table. This is a very fast operation.
    """
    colors = biome_lut[biome_map]
    return np.transpose(colors, (1, 0, 2))


def get_elevation_color_array(values: np.ndarray) -> np.ndarray:
    """Shows elevation as a black-to-green gradient."""
    green = (np.clip(values, 0.0, 1.0) * 255).astype(np.uint8)
    colors = np.zeros(values.shape + (3,), dtype=np.uint8)
    colors[..., 1] = green
    return np.transpose(colors, (1, 0, 2))


def get_hue_color_array(values: np.ndarray) -> np.ndarray:
    """Maps elevation onto the hue wheel (0 = red, 1 = red again) at fixed saturation and value."""
    hue = np.clip(values, 0.0, 1.0) * 360.0
    chroma = HUE_VIEW_VALUE * HUE_VIEW_SATURATION
    sector = hue / 60.0
    second = chroma * (1 - np.abs(np.mod(sector, 2) - 1))
    match = HUE_VIEW_VALUE - chroma

    sector_index = np.floor(sector).astype(int) % 6
    zeros = np.zeros_like(hue)
    conditions = [sector_index == k for k in range(6)]
    red = np.select(conditions, [chroma + zeros, second, zeros, zeros, second, chroma + zeros])
    green = np.select(conditions, [second, chroma + zeros, chroma + zeros, second, zeros, zeros])
    blue = np.select(conditions, [zeros, zeros, second, chroma + zeros, chroma + zeros, second])

    colors = np.stack([red, green, blue], axis=-1) + match
    colors = (colors * 255).astype(np.uint8)
    return np.transpose(colors, (1, 0, 2))
