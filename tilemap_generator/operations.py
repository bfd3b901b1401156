# tilemap_generator/operations.py

"""
================================================================================
GENERATION OPERATIONS
================================================================================
This module contains the blend formulas, the single-pass randomize operator
and the GenerationOperations class, which owns a tile grid together with its
random sources and exposes one entry point per user action.

Data Contract:
---------------
- Inputs (on initialization):
    - grid (TileGrid, optional): The grid to operate on. Created from the
      configuration if omitted.
    - config (dict): User parameters overriding the defaults in config.py.
    - logger: A configured Python logging object for runtime messages.
    - on_pass (callable, optional): Called as on_pass(epoch, pass_index)
      after every layered generation pass.
- Outputs:
    - Mutations of the grid. layered_generate() returns a LayeredRun handle.
- Side Effects: Logs messages; layered generation runs on a background thread.
- Invariants:
    - At most one layered generation can publish at a time. Starting a new
      one supersedes the one in flight, whose scratch buffer is discarded.
    - Layered generation never writes to the grid until it publishes a
      complete, normalized buffer.
================================================================================
"""

import logging
import threading

import numpy as np

from . import config as DEFAULTS
from .grid import TileGrid, normalize_values
from .random_sources import (
    BLEND_BIASED,
    BLEND_MULTIPLY,
    CoherentNoiseSource,
    LehmerSource,
    UniformSource,
)

# --- User Actions (Rule 1) ---
# Maps the action names emitted by the UI layer to operator method names.
ACTIONS = {
    "reset": "reset",
    "randomize-platform": "randomize_platform",
    "randomize-uniform-rng": "randomize_uniform",
    "randomize-coherent-noise": "randomize_coherent_noise",
    "randomize-lehmer": "randomize_lehmer",
    "normalize": "normalize",
    "layered-generate": "layered_generate",
}


# --- Blend Formulas ---
def multiply_blend(old, r):
    """Averages the old value with old * r."""
    return (old + old * r) / 2

def biased_blend(old, r, bias=DEFAULTS.COHERENT_BLEND_BIAS):
    """Averages the old value with clamp(old * r + bias, 0, 1)."""
    new = np.clip(old * r + bias, 0.0, 1.0)
    return (old + new) / 2

def blend_values(old, r, blend_mode: str, bias=DEFAULTS.COHERENT_BLEND_BIAS):
    """Combines prior values with fresh draws using the formula of the source that drew them."""
    if blend_mode == BLEND_MULTIPLY:
        return multiply_blend(old, r)
    if blend_mode == BLEND_BIASED:
        return biased_blend(old, r, bias)
    raise ValueError(f"Unknown blend mode '{blend_mode}'")


def apply_pass(values: np.ndarray, source, blend: bool, bias=DEFAULTS.COHERENT_BLEND_BIAS) -> np.ndarray:
    """
    Runs one randomize pass over a detached (height, width) buffer and
    returns the new buffer. With blend=False every cell is overwritten.
    """
    height, width = values.shape
    drawn = source.draw(width, height)
    if not blend:
        return drawn
    return blend_values(values, drawn, source.blend_mode, bias)


def randomize(grid: TileGrid, source, blend: bool, bias=DEFAULTS.COHERENT_BLEND_BIAS):
    """Randomizes every cell of the grid from `source` as one atomic operation."""
    grid.update(lambda values: apply_pass(values, source, blend, bias))


class LayeredRun:
    """Handle on one layered generation, foreground or background."""

    def __init__(self, epoch: int, reset: bool, seeds: list, base: np.ndarray = None):
        self.epoch = epoch
        self.reset = reset
        self.seeds = list(seeds)
        # Blend base for the first pass; None means start from a reset field.
        self._base = base
        self.published = False
        self.cancelled = False
        self.error = None
        self._done = threading.Event()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float = None) -> bool:
        """Blocks until the run has published, been cancelled or failed."""
        return self._done.wait(timeout)

    def take_base(self, shape: tuple, fill_value: float) -> np.ndarray:
        """Hands over the first-pass blend base, a reset field if there is none."""
        base, self._base = self._base, None
        if base is None:
            return np.full(shape, fill_value, dtype=np.float64)
        return base

    def finish(self):
        """Marks the run as over and releases anyone waiting on it."""
        self._base = None
        self._done.set()


class GenerationOperations:
    """
    Owns a tile grid and its generators, and implements every user-triggered
    generation action on it. Several instances can coexist independently.
    """

    def __init__(self, grid: TileGrid = None, config: dict = None,
                 logger: logging.Logger = None, on_pass=None):
        self.logger = logger or logging.getLogger(__name__)
        self.settings = DEFAULTS.build_settings(config)
        self.on_pass = on_pass

        if grid is None:
            grid = TileGrid(self.settings['grid_width'], self.settings['grid_height'],
                            fill_value=self.settings['default_cell_value'], logger=self.logger)
        self.grid = grid

        # --- Master seed stream ---
        # Every reseed (Lehmer, coherent noise, layered passes) is drawn from
        # here, so a fixed master seed makes the whole session reproducible.
        self._seed_lock = threading.Lock()
        self._rng = np.random.default_rng(self.settings['seed'])

        # --- Sources ---
        self.platform_source = UniformSource(seed=self.draw_seed(),
                                             resolution=self.settings['platform_resolution'])
        self.uniform_source = UniformSource(seed=self.draw_seed())
        self.lehmer_source = LehmerSource(
            self._draw_lehmer_seed(),
            multiplier=self.settings['lehmer_multiplier'],
            modulus=self.settings['lehmer_modulus'],
            resolution=self.settings['lehmer_resolution']
        )
        self.noise_source = self._new_noise_source(self.draw_seed())

        # --- Layered generation state ---
        self._epoch = 0
        self._active_run = None

        self.logger.info(
            f"GenerationOperations initialized on a {self.grid.width()}x{self.grid.height()} grid "
            f"(seed: {self.settings['seed']})"
        )

    # --- Seeds ---
    def draw_seed(self) -> int:
        """Draws a fresh non-negative 63-bit seed from the master stream."""
        with self._seed_lock:
            return int(self._rng.integers(0, DEFAULTS.MAX_DRAWN_SEED))

    def _draw_lehmer_seed(self) -> int:
        with self._seed_lock:
            return int(self._rng.integers(1, self.settings['lehmer_modulus']))

    def _new_noise_source(self, seed: int) -> CoherentNoiseSource:
        return CoherentNoiseSource(
            seed,
            alpha=self.settings['noise_alpha'],
            beta=self.settings['noise_beta'],
            octaves=self.settings['noise_octaves']
        )

    # --- User Action Entry Points ---
    def dispatch(self, action: str, modifier: bool = False):
        """Runs the operator bound to a UI action name. Unknown names raise KeyError."""
        return getattr(self, ACTIONS[action])(modifier)

    def reset(self, modifier: bool = False):
        self.grid.reset(self.settings['default_cell_value'])
        self.logger.debug("Grid reset.")

    def normalize(self, modifier: bool = False):
        self.grid.normalize()
        self.logger.debug("Grid normalized.")

    def randomize_platform(self, modifier: bool = False):
        self._randomize(self.platform_source, blend=modifier)

    def randomize_uniform(self, modifier: bool = False):
        self._randomize(self.uniform_source, blend=modifier)

    def randomize_coherent_noise(self, modifier: bool = False):
        self.noise_source.reseed(self.draw_seed())
        self._randomize(self.noise_source, blend=modifier)

    def randomize_lehmer(self, modifier: bool = False):
        self._randomize(self.lehmer_source, blend=modifier)

    def layered_generate(self, modifier: bool = False) -> LayeredRun:
        """Starts a background layered generation. Holding the modifier keeps the current grid."""
        return self.start_layered(reset=not modifier)

    def _randomize(self, source, blend: bool):
        randomize(self.grid, source, blend, self.settings['coherent_blend_bias'])
        self.logger.debug(f"Randomized grid from {type(source).__name__} (blend={blend}).")

    # --- Layered Generation ---
    @property
    def is_generating(self) -> bool:
        run = self._active_run
        return run is not None and not run.done

    def wait_idle(self, timeout: float = None) -> bool:
        run = self._active_run
        return run is None or run.wait(timeout)

    def run_layered(self, reset: bool = True, seeds: list = None) -> LayeredRun:
        """Runs a layered generation on the calling thread and returns its finished handle."""
        run = self._begin_layered(reset, seeds)
        self._execute_layered(run)
        if run.error is not None:
            raise run.error
        return run

    def start_layered(self, reset: bool = True, seeds: list = None) -> LayeredRun:
        """
        Starts a layered generation on a background thread, superseding any
        run already in flight. Returns immediately with the run's handle.
        """
        run = self._begin_layered(reset, seeds)
        thread = threading.Thread(target=self._execute_layered, args=(run,),
                                  name=f"layered-generation-{run.epoch}", daemon=True)
        thread.start()
        return run

    def _begin_layered(self, reset: bool, seeds: list) -> LayeredRun:
        pass_count = DEFAULTS.LAYERED_PASS_COUNT
        if seeds is None:
            seeds = [self.draw_seed() for _ in range(pass_count)]
        elif len(seeds) != pass_count:
            raise ValueError(f"Layered generation takes exactly {pass_count} seeds, got {len(seeds)}")

        with self.grid.lock:
            self._epoch += 1
            run = LayeredRun(self._epoch, reset, seeds,
                             base=None if reset else self.grid.snapshot())
            previous = self._active_run
            self._active_run = run

        if previous is not None and not previous.done:
            self.logger.info(f"Layered generation {previous.epoch} superseded by {run.epoch}.")
        self.logger.info(f"Layered generation {run.epoch} started (reset={reset}).")
        return run

    def _is_current(self, run: LayeredRun) -> bool:
        return run.epoch == self._epoch

    def _execute_layered(self, run: LayeredRun):
        try:
            scratch = run.take_base(self.grid.shape, self.settings['default_cell_value'])
            source = self._new_noise_source(run.seeds[0])
            bias = self.settings['coherent_blend_bias']

            for pass_index, seed in enumerate(run.seeds):
                if not self._is_current(run):
                    self._cancel(run, pass_index)
                    return
                source.reseed(seed)
                scratch = apply_pass(scratch, source, True, bias)
                self.logger.debug(f"Layered generation {run.epoch}: pass {pass_index + 1} done (seed {seed}).")
                if self.on_pass is not None:
                    self.on_pass(run.epoch, pass_index)

            scratch = normalize_values(scratch, self.logger)

            with self.grid.lock:
                if not self._is_current(run):
                    self._cancel(run, len(run.seeds))
                    return
                self.grid.publish(scratch)
                run.published = True
            self.logger.info(f"Layered generation {run.epoch} published.")
        except Exception as e:
            run.error = e
            self.logger.critical(f"Layered generation {run.epoch} failed: {e}", exc_info=True)
        finally:
            run.finish()

    def _cancel(self, run: LayeredRun, completed_passes: int):
        run.cancelled = True
        self.logger.info(
            f"Layered generation {run.epoch} discarded after {completed_passes} pass(es); "
            f"epoch {self._epoch} is current."
        )
