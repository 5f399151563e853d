"""
Pygame Window Viewer

Shows the rendered universe text in a window. The window's main loop is
the host: it owns a ManualFrameScheduler and runs exactly one pending
frame per display refresh (clock.tick), so the driver sees the same
one-shot "next frame" primitive it gets everywhere else.

Controls:
  SPACE       Pause / Resume
  R           Reseed with the current preset
  H           Toggle HUD overlay
  Q / ESC     Quit
"""

import logging

import numpy as np
import pygame

from .config import DriverConfig
from .driver import DriverState, FrameDriver
from .errors import FrameFailure, SinkWriteFailure
from .presets import build_universe, get_preset
from .scheduling import ManualFrameScheduler
from .sinks import TextSink

logger = logging.getLogger(__name__)

BG = (12, 12, 18)
FG = (200, 205, 215)
HALT_FG = (230, 90, 90)


class PygameTextSink(TextSink):
    """Keeps the latest frame as lines and draws them onto a surface."""

    def __init__(self, font=None, color=FG, line_gap=0):
        self.font = font
        self.color = color
        self.line_gap = line_gap
        self.lines = []

    def write(self, text):
        if pygame.display.get_surface() is None:
            raise SinkWriteFailure("display surface is gone")
        self.lines = text.splitlines()

    def draw(self, surface, x=8, y=32):
        line_h = self.font.get_linesize() + self.line_gap
        for i, line in enumerate(self.lines):
            surface.blit(self.font.render(line, True, self.color), (x, y + i * line_h))


class Viewer:

    def __init__(self, width=900, height=900, preset="classic", grid=None,
                 config=None):
        self.width = width
        self.height = height
        self.preset_key = preset
        self.grid = grid  # (w, h) override or None
        self.config = config if config is not None else DriverConfig()

        self.running = True
        self.paused = False
        self.show_hud = True
        self.fps_history = []

        self.host = None
        self.driver = None
        self.engine = None
        self.sink = None
        self.hud_font = None

    def _start_driver(self):
        if self.driver is not None:
            self.driver.stop()
        w, h = self.grid or (None, None)
        self.engine = build_universe(self.preset_key, width=w, height=h)
        self.host = ManualFrameScheduler()
        self.driver = FrameDriver(self.host, self.config)
        self.driver.start(self.engine, self.sink)

    def _draw_hud(self, screen, fps):
        if not self.show_hud:
            return
        preset = get_preset(self.preset_key)
        stats = self.engine.stats
        line = (f"{preset['name']}  |  Gen: {stats['generation']:,}  |  "
                f"Alive: {stats['alive_pct']:.1f}%  |  FPS: {fps:.0f}")
        color = FG
        if self.driver.state is DriverState.HALTED:
            if self.driver.last_error is not None:
                line = f"[HALTED: {self.driver.last_error}]  " + line
                color = HALT_FG
            else:
                line = "[DONE]  " + line
        elif self.paused:
            line = "[PAUSED]  " + line

        bg_surface = pygame.Surface((self.width, 24), pygame.SRCALPHA)
        bg_surface.fill((0, 0, 0, 140))
        screen.blit(bg_surface, (0, 0))
        screen.blit(self.hud_font.render(line, True, color), (10, 6))

    def _handle_keydown(self, event):
        key = event.key
        if key in (pygame.K_q, pygame.K_ESCAPE):
            self.running = False
        elif key == pygame.K_SPACE:
            self.paused = not self.paused
        elif key == pygame.K_r:
            self._start_driver()
        elif key == pygame.K_h:
            self.show_hud = not self.show_hud

    def run(self):
        """Main viewer loop."""
        pygame.init()
        screen = pygame.display.set_mode((self.width, self.height), pygame.RESIZABLE)
        pygame.display.set_caption("Game of Life")
        clock = pygame.time.Clock()

        self.hud_font = pygame.font.SysFont("menlo", 13)
        self.sink = PygameTextSink(pygame.font.SysFont("dejavusansmono,menlo", 11))
        self._start_driver()
        since_frame = 0.0

        while self.running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                elif event.type == pygame.KEYDOWN:
                    self._handle_keydown(event)

            since_frame += clock.get_time() / 1000.0
            due = self.config.pacing != "interval" or since_frame >= self.config.interval
            if due and not self.paused and self.driver.running:
                since_frame = 0.0
                try:
                    self.host.run_frame()
                except FrameFailure as e:
                    # Already logged by the driver; keep the last good frame up.
                    logger.debug("Host saw failure: %s", e)

            screen.fill(BG)
            self.sink.draw(screen)

            self.fps_history.append(clock.get_time() / 1000.0)
            if len(self.fps_history) > 30:
                self.fps_history.pop(0)
            avg_fps = 1.0 / max(np.mean(self.fps_history), 0.001)
            self._draw_hud(screen, avg_fps)

            pygame.display.flip()
            clock.tick(int(self.config.fps))

        self.driver.stop()
        pygame.quit()
