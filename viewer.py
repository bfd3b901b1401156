# FOLDER: /

# viewer.py

import pygame
import json
import os
import logging
import logging.config
import sys
import time

from tilemap_generator.operations import GenerationOperations
from tilemap_generator import biomes

# --- Application Constants (Rule 1) ---
TARGET_FPS = 60
# How long the "last key pressed" banner stays visible, in seconds.
KEY_BANNER_SECONDS = 2.0
OVERLAY_FONT_SIZE = 20
OVERLAY_TEXT_COLOR = (0, 0, 0)
OVERLAY_PANEL_COLOR = (255, 255, 255, 128)

CONFIG_PATH = 'config.json'
LOGGING_CONFIG_PATH = 'logging_config.json'
LOG_DIR = 'logs'

# Key -> (action name, label shown in the banner).
KEY_BINDINGS = {
    pygame.K_1: ("reset", "1"),
    pygame.K_r: ("randomize-platform", "R"),
    pygame.K_m: ("randomize-uniform-rng", "M"),
    pygame.K_p: ("randomize-coherent-noise", "P"),
    pygame.K_l: ("randomize-lehmer", "L"),
    pygame.K_n: ("normalize", "N"),
    pygame.K_g: ("layered-generate", "G"),
}

HELP_LINES = [
    "Press R to randomize (platform)",
    "Press M to randomize (uniform rng)",
    "Press P to randomize (perlin)",
    "Press L to randomize (lehmer)",
    "Press N to normalize",
    "Press G to generate with a layered approach",
    "Hold shift to layer (blend) the random values",
    "Press 1 to reset, V to change view",
]

VIEW_MODES = ["terrain", "elevation", "hue"]


class ViewerApp:
    """The main application class for the tilemap viewer."""
    def __init__(self):
        self._setup_logging()
        self.logger.info("Application starting.")
        self.config = self._load_config()

        self.operations = GenerationOperations(
            config=self.config.get('generation_parameters', {}),
            logger=self.logger
        )
        self.grid = self.operations.grid
        self.tile_size = self.config.get('display', {}).get('tile_size', 1)
        self.biome_lut = biomes.create_biome_color_lut()
        self.view_mode_index = 0

        self.last_key_label = "1"
        self.last_key_time = time.monotonic()

        self.logger.info("Initializing Pygame...")
        pygame.init()
        self.screen_width = self.grid.width() * self.tile_size
        self.screen_height = self.grid.height() * self.tile_size
        self.screen = pygame.display.set_mode((self.screen_width, self.screen_height))
        pygame.display.set_caption("Tilemap")
        self.grid_surface = pygame.Surface((self.grid.width(), self.grid.height()))
        self.font = pygame.font.Font(None, OVERLAY_FONT_SIZE)

        self.clock = pygame.time.Clock()
        self.is_running = True

    def _setup_logging(self):
        """Initializes the logging system from a config file."""
        if not os.path.exists(LOG_DIR):
            os.makedirs(LOG_DIR)
        with open(LOGGING_CONFIG_PATH, 'rt') as f:
            log_config = json.load(f)
        log_config['handlers']['file']['filename'] = os.path.join(LOG_DIR, 'viewer.log')
        logging.config.dictConfig(log_config)
        self.logger = logging.getLogger(__name__)

    def _load_config(self) -> dict:
        """Loads display and generation parameters from the config file."""
        self.logger.info(f"Loading configuration from {CONFIG_PATH}")
        try:
            with open(CONFIG_PATH, 'r') as f:
                return json.load(f)
        except FileNotFoundError:
            self.logger.critical(f"Configuration file not found at {CONFIG_PATH}. Exiting.")
            sys.exit(1)
        except json.JSONDecodeError:
            self.logger.critical(f"Error decoding JSON from {CONFIG_PATH}. Exiting.")
            sys.exit(1)

    def run(self):
        """The main application loop."""
        while self.is_running:
            self.handle_events()
            self.draw()
            self.clock.tick(TARGET_FPS)

        self.logger.info("Exiting viewer.")
        pygame.quit()
        sys.exit()

    def handle_events(self):
        """Processes user input and other events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.is_running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self.is_running = False
                elif event.key == pygame.K_v:
                    self.view_mode_index = (self.view_mode_index + 1) % len(VIEW_MODES)
                    self.logger.info(f"View mode switched to '{VIEW_MODES[self.view_mode_index]}'.")
                elif event.key in KEY_BINDINGS:
                    action, label = KEY_BINDINGS[event.key]
                    shift_held = bool(event.mod & pygame.KMOD_SHIFT)
                    self.last_key_label = f"Shift + {label}" if shift_held else label
                    self.last_key_time = time.monotonic()
                    self.operations.dispatch(action, shift_held)

    def _grid_colors(self):
        values = self.grid.snapshot()
        view_mode = VIEW_MODES[self.view_mode_index]
        if view_mode == "elevation":
            return biomes.get_elevation_color_array(values)
        if view_mode == "hue":
            return biomes.get_hue_color_array(values)
        return biomes.get_terrain_color_array(biomes.classify_grid(values), self.biome_lut)

    def draw(self):
        """Handles all rendering for the application."""
        pygame.surfarray.blit_array(self.grid_surface, self._grid_colors())
        if self.tile_size == 1:
            self.screen.blit(self.grid_surface, (0, 0))
        else:
            self.screen.blit(pygame.transform.scale(self.grid_surface, (self.screen_width, self.screen_height)), (0, 0))

        self._draw_panel(HELP_LINES, (5, 5))
        if self.operations.is_generating:
            self._draw_panel(["Generating..."], (5, int(self.screen_height * 0.85)))
        if time.monotonic() - self.last_key_time < KEY_BANNER_SECONDS:
            self._draw_panel([f"Last key pressed: {self.last_key_label}"], (5, int(self.screen_height * 0.91)))

        pygame.display.set_caption(f"Tilemap | View: {VIEW_MODES[self.view_mode_index]} | FPS: {self.clock.get_fps():.0f}")
        pygame.display.flip()

    def _draw_panel(self, lines, position):
        """Draws lines of text on a translucent white panel."""
        line_height = self.font.get_linesize()
        width = max(self.font.size(line)[0] for line in lines) + 10
        panel = pygame.Surface((width, line_height * len(lines) + 10), pygame.SRCALPHA)
        panel.fill(OVERLAY_PANEL_COLOR)
        for i, line in enumerate(lines):
            panel.blit(self.font.render(line, True, OVERLAY_TEXT_COLOR), (5, 5 + i * line_height))
        self.screen.blit(panel, position)


if __name__ == '__main__':
    app = ViewerApp()
    app.run()
