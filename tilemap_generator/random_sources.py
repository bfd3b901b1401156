# tilemap_generator/random_sources.py

"""
================================================================================
RANDOM SOURCES
================================================================================
This module provides the interchangeable value sources used to randomize the
tile grid. Every source satisfies the same small capability: produce unit
values in [0, 1), one per cell, and declare which blend formula its values
are combined with.

Data Contract:
---------------
- Public Classes:
    - UniformSource: numpy-backed uniform draws (full or coarse resolution).
    - LehmerSource: deterministic Park-Miller multiplicative congruential
      generator.
    - CoherentNoiseSource: seeded multi-octave Perlin noise, sampled by
      normalized grid coordinates.
- Outputs:
    - draw(width, height) returns a float64 array of shape (height, width).
- Side Effects: Stateful sources advance their internal state on every draw.
- Invariants: LehmerSource and CoherentNoiseSource are deterministic for a
  given seed. Every value returned is in [0, 1].
================================================================================
"""

from typing import Protocol

import numpy as np
from numba import njit

from . import config as DEFAULTS
from . import noise
from .config import ConfigurationError

# --- Blend Modes (Rule 1) ---
# Which blend formula a source's values are combined with.
BLEND_MULTIPLY = "multiply"
BLEND_BIASED = "biased"

# Largest product the numba kernel can form without overflowing int64.
_INT64_MAX = 2**63 - 1


class RandomSource(Protocol):
    """
    The capability every randomizer provides to the generation operators.
    """
    blend_mode: str

    def next_uniform(self) -> float: ...
    def draw(self, width: int, height: int) -> np.ndarray: ...


class UniformSource:
    """
    Uniform draws from a numpy Generator.

    With resolution=None the values are full-precision floats in [0, 1).
    With an integer resolution K they are whole multiples of 1/K in
    [0, (K-1)/K], reproducing a coarse host "random integer" call.
    """
    blend_mode = BLEND_MULTIPLY

    def __init__(self, seed: int = None, resolution: int = None):
        if resolution is not None and resolution <= 0:
            raise ConfigurationError(f"Uniform source resolution must be positive, got {resolution}")
        self.resolution = resolution
        self._rng = np.random.default_rng(seed)

    def next_uniform(self) -> float:
        if self.resolution is None:
            return float(self._rng.random())
        return int(self._rng.integers(0, self.resolution)) / self.resolution

    def draw(self, width: int, height: int) -> np.ndarray:
        if self.resolution is None:
            return self._rng.random((height, width))
        return self._rng.integers(0, self.resolution, size=(height, width)) / self.resolution


@njit
def _lehmer_sequence(state, multiplier, modulus, resolution, count):
    """Advances the recurrence `count` times, returning the new state and the draws."""
    out = np.empty(count)
    for k in range(count):
        state = (state * multiplier) % modulus
        out[k] = (state % resolution) / resolution
    return state, out


class LehmerSource:
    """
    A Lehmer (Park-Miller) generator: seed' = (seed * A) mod M.

    next_uniform() returns (state mod K) / K, deliberately coarse (K=100
    gives steps of 0.01). The same non-zero seed always yields the same
    sequence.
    """
    blend_mode = BLEND_MULTIPLY

    def __init__(self, seed: int,
                 multiplier: int = DEFAULTS.LEHMER_MULTIPLIER,
                 modulus: int = DEFAULTS.LEHMER_MODULUS,
                 resolution: int = DEFAULTS.LEHMER_RESOLUTION):
        if modulus <= 1 or multiplier <= 0:
            raise ConfigurationError("Lehmer multiplier must be positive and modulus greater than 1.")
        if multiplier * (modulus - 1) > _INT64_MAX:
            raise ConfigurationError("Lehmer multiplier and modulus overflow 64-bit state.")
        if resolution <= 0:
            raise ConfigurationError(f"Lehmer resolution must be positive, got {resolution}")
        self.multiplier = multiplier
        self.modulus = modulus
        self.resolution = resolution
        self.seed = self._check_seed(seed)

    def _check_seed(self, seed: int) -> int:
        state = int(seed) % self.modulus
        if state == 0:
            # Zero is a fixed point of the recurrence: every output would be 0.
            raise ConfigurationError(f"Lehmer seed {seed} is congruent to 0 modulo {self.modulus}")
        return state

    def reseed(self, seed: int):
        self.seed = self._check_seed(seed)

    def advance(self) -> int:
        """Steps the recurrence once and returns the new state."""
        self.seed = (self.seed * self.multiplier) % self.modulus
        return self.seed

    def next_uniform(self) -> float:
        return (self.advance() % self.resolution) / self.resolution

    def draw(self, width: int, height: int) -> np.ndarray:
        """Row-major draws, identical to width * height calls of next_uniform()."""
        state, values = _lehmer_sequence(self.seed, self.multiplier, self.modulus,
                                         self.resolution, width * height)
        self.seed = int(state)
        return values.reshape((height, width))


class CoherentNoiseSource:
    """
    Seeded multi-octave Perlin noise over normalized coordinates.

    Unlike the other sources this is a function of position, not a stream:
    query it with sample(x_norm, y_norm) or draw(width, height), which samples
    every cell at (x / width, y / height). Raw noise is clamped into [0, 1].
    """
    blend_mode = BLEND_BIASED

    def __init__(self, seed: int,
                 alpha: float = DEFAULTS.NOISE_ALPHA,
                 beta: float = DEFAULTS.NOISE_BETA,
                 octaves: int = DEFAULTS.NOISE_OCTAVES):
        DEFAULTS.validate_noise_settings(alpha, beta, octaves)
        self.alpha = float(alpha)
        self.beta = float(beta)
        self.octaves = int(octaves)
        self.reseed(seed)

    def reseed(self, seed: int):
        """Rebuilds the permutation table; the noise configuration is kept."""
        self.seed = seed
        self._p = noise.make_permutation_table(seed)

    def next_uniform(self) -> float:
        raise TypeError("Coherent noise is positional; use sample(x_norm, y_norm) or draw(width, height).")

    def sample_grid(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Samples at matching coordinate arrays of any shape; the result has that shape."""
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        if x.shape != y.shape:
            raise ValueError(f"Coordinate shapes differ: {x.shape} and {y.shape}")
        # The kernel walks (rows, cols), so flatten everything into a single row.
        raw = noise.perlin_noise_2d(
            self._p,
            np.ascontiguousarray(x.reshape((1, -1))),
            np.ascontiguousarray(y.reshape((1, -1))),
            octaves=self.octaves,
            alpha=self.alpha,
            beta=self.beta
        )
        return np.clip(raw, 0.0, 1.0).reshape(x.shape)

    def sample(self, x_norm: float, y_norm: float) -> float:
        return float(self.sample_grid(np.array([[x_norm]]), np.array([[y_norm]]))[0, 0])

    def draw(self, width: int, height: int) -> np.ndarray:
        xs = np.arange(width) / width
        ys = np.arange(height) / height
        x_grid, y_grid = np.meshgrid(xs, ys)
        return self.sample_grid(x_grid, y_grid)
