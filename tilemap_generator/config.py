# tilemap_generator/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the tilemap
generator. These values are used if they are not explicitly provided by the
user's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC MAP.
Instead, pass a configuration dictionary to the GenerationOperations instance.
================================================================================
"""


class ConfigurationError(ValueError):
    """Raised when a generator or grid is constructed with invalid settings."""


# --- Grid ---
# One cell per screen pixel in the default 1200x675 window.
DEFAULT_GRID_WIDTH = 1200
DEFAULT_GRID_HEIGHT = 675
# Every cell starts at (and is reset to) mid elevation.
DEFAULT_CELL_VALUE = 0.5

# --- Master Seed ---
# None means the master generator is seeded from OS entropy, giving a new map
# sequence on every run. Any integer makes the whole session reproducible.
DEFAULT_SEED = None

# --- Coherent Noise (Perlin) ---
# Amplitude is divided by ALPHA for each successive octave.
NOISE_ALPHA = 3.0
# Frequency is multiplied by BETA for each successive octave.
NOISE_BETA = 4.0
NOISE_OCTAVES = 9
# Size of the shuffled permutation table (before it is doubled for wrapping).
PERMUTATION_TABLE_SIZE = 256

# --- Blending ---
# Added to the multiplied value before clamping when blending coherent noise.
# Keeps repeated noise passes from collapsing the field towards zero.
COHERENT_BLEND_BIAS = 0.25

# --- Lehmer (Park-Miller) Generator ---
LEHMER_MULTIPLIER = 48271
LEHMER_MODULUS = 2**31 - 1
# Output is (state mod RESOLUTION) / RESOLUTION, i.e. steps of 0.01.
LEHMER_RESOLUTION = 100

# --- Platform Generator ---
# The "platform" randomizer draws whole percentages, like a host
# GetRandomValue(0, 100) / 100 call, but excludes 1.0.
PLATFORM_RESOLUTION = 100

# --- Layered Generation ---
# Fixed number of coherent-noise blend passes in one layered generation.
LAYERED_PASS_COUNT = 4

# Upper bound (exclusive) for seeds drawn from the master generator.
MAX_DRAWN_SEED = 2**63 - 1


def build_settings(user_config: dict = None) -> dict:
    """
    Consolidates a user configuration dictionary over the internal defaults
    and validates the result.

    Raises:
        ConfigurationError: If any value is out of its valid range.
    """
    user_config = user_config or {}
    settings = {
        'grid_width': user_config.get('grid_width', DEFAULT_GRID_WIDTH),
        'grid_height': user_config.get('grid_height', DEFAULT_GRID_HEIGHT),
        'default_cell_value': user_config.get('default_cell_value', DEFAULT_CELL_VALUE),
        'seed': user_config.get('seed', DEFAULT_SEED),

        'noise_alpha': user_config.get('noise_alpha', NOISE_ALPHA),
        'noise_beta': user_config.get('noise_beta', NOISE_BETA),
        'noise_octaves': user_config.get('noise_octaves', NOISE_OCTAVES),

        'coherent_blend_bias': user_config.get('coherent_blend_bias', COHERENT_BLEND_BIAS),

        'lehmer_multiplier': user_config.get('lehmer_multiplier', LEHMER_MULTIPLIER),
        'lehmer_modulus': user_config.get('lehmer_modulus', LEHMER_MODULUS),
        'lehmer_resolution': user_config.get('lehmer_resolution', LEHMER_RESOLUTION),
        'platform_resolution': user_config.get('platform_resolution', PLATFORM_RESOLUTION),
    }

    if settings['grid_width'] <= 0 or settings['grid_height'] <= 0:
        raise ConfigurationError(
            f"Grid dimensions must be positive, got "
            f"{settings['grid_width']}x{settings['grid_height']}"
        )
    validate_noise_settings(settings['noise_alpha'], settings['noise_beta'], settings['noise_octaves'])
    if settings['lehmer_resolution'] <= 0 or settings['platform_resolution'] <= 0:
        raise ConfigurationError("Generator output resolutions must be positive.")
    if settings['lehmer_modulus'] <= 1 or settings['lehmer_multiplier'] <= 0:
        raise ConfigurationError("Lehmer multiplier must be positive and modulus greater than 1.")

    return settings


def validate_noise_settings(alpha: float, beta: float, octaves: int):
    """Rejects coherent-noise parameters that would produce a degenerate field."""
    if int(octaves) != octaves or octaves <= 0:
        raise ConfigurationError(f"Noise octave count must be a positive integer, got {octaves}")
    if not alpha > 0:
        raise ConfigurationError(f"Noise persistence (alpha) must be positive, got {alpha}")
    if not beta > 0:
        raise ConfigurationError(f"Noise frequency multiplier (beta) must be positive, got {beta}")
