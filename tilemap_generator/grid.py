# tilemap_generator/grid.py

"""
================================================================================
TILE GRID
================================================================================
This module provides the TileGrid class, the W x H field of scalar elevation
values that every generation operator mutates and the renderer reads.

Data Contract:
---------------
- Inputs (on initialization):
    - width, height (int): Fixed dimensions, immutable afterwards.
    - fill_value (float): Initial value of every cell.
- Storage:
    - A float64 NumPy array of shape (height, width). Cell (x, y) lives at
      row y, column x.
- Side Effects: None beyond its own state.
- Invariants:
    - Every read and write happens under a single re-entrant lock, so a
      reader never observes an operator half-applied.
    - Values are NOT clamped between operations; only normalize() guarantees
      the [0, 1] range.
================================================================================
"""

import logging
import threading

import numpy as np

from . import config as DEFAULTS
from .config import ConfigurationError


class TileGrid:
    """A thread-safe, fixed-size field of float64 elevation values."""

    def __init__(self, width: int, height: int, fill_value: float = DEFAULTS.DEFAULT_CELL_VALUE,
                 logger: logging.Logger = None):
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"Grid dimensions must be positive, got {width}x{height}")
        self.logger = logger or logging.getLogger(__name__)
        self._width = int(width)
        self._height = int(height)
        self.lock = threading.RLock()
        self._values = np.full((self._height, self._width), fill_value, dtype=np.float64)

    # --- Read-only accessors for the renderer ---
    def width(self) -> int:
        return self._width

    def height(self) -> int:
        return self._height

    @property
    def shape(self) -> tuple:
        """(height, width), the shape of every buffer this grid accepts."""
        return (self._height, self._width)

    def value(self, x: int, y: int) -> float:
        """Returns the value of cell (x, y). Out-of-range coordinates raise IndexError."""
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(f"Cell ({x}, {y}) is outside the {self._width}x{self._height} grid")
        with self.lock:
            return float(self._values[y, x])

    def snapshot(self) -> np.ndarray:
        """Returns a consistent copy of all cells, shape (height, width)."""
        with self.lock:
            return self._values.copy()

    # --- Mutation ---
    def reset(self, value: float = DEFAULTS.DEFAULT_CELL_VALUE):
        """Sets every cell to `value`, discarding prior state."""
        with self.lock:
            self._values.fill(value)

    def normalize(self):
        """
        Rescales all cells so the minimum becomes 0 and the maximum 1,
        preserving their order. A flat grid (max == min) is left unchanged.
        """
        with self.lock:
            self._values = normalize_values(self._values, self.logger)

    def update(self, fn):
        """
        Replaces the cells with fn(values) while holding the lock.
        `fn` receives a copy and must return an array of the grid's shape.
        """
        with self.lock:
            self.publish(fn(self._values.copy()))

    def publish(self, values: np.ndarray):
        """Atomically replaces every cell with a complete buffer of the grid's shape."""
        values = np.asarray(values, dtype=np.float64)
        if values.shape != self.shape:
            raise ValueError(f"Buffer shape {values.shape} does not match grid shape {self.shape}")
        with self.lock:
            self._values = values.copy()

    def for_each_cell(self, fn):
        """
        Rewrites every cell as fn(x, y, old_value). Traversal order is
        unspecified; cells must be independent of one another.
        """
        with self.lock:
            values = self._values.copy()
            for y in range(self._height):
                for x in range(self._width):
                    values[y, x] = fn(x, y, values[y, x])
            self._values = values


def normalize_values(values: np.ndarray, logger: logging.Logger = None) -> np.ndarray:
    """Min-max normalization of a detached buffer. Flat buffers are returned unchanged."""
    min_value = values.min()
    max_value = values.max()
    if not max_value > min_value:
        if logger:
            logger.debug(f"Normalize skipped: flat field at {min_value}.")
        return values
    return (values - min_value) / (max_value - min_value)
