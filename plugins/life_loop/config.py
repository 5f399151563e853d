"""
Driver Configuration

Options for the frame driver and the pacing it runs under. Values come
from defaults, then LIFE_LOOP_* environment variables, then CLI flags.
"""

import enum
import os
from dataclasses import dataclass

from .scheduling import AsyncioFrameScheduler, DelayedFrameScheduler

PACING_MODES = ("refresh", "interval")


class ErrorPolicy(str, enum.Enum):
    """What the driver does when a frame fails."""

    HALT = "halt"          # log, stop scheduling, raise out of the callback
    CONTINUE = "continue"  # log, skip the frame, keep scheduling


@dataclass
class DriverConfig:
    fps: float = 60
    pacing: str = "refresh"
    interval: float = 0.05
    error_policy: ErrorPolicy = ErrorPolicy.HALT
    max_failures: int = None
    max_frames: int = None

    def __post_init__(self):
        self.error_policy = ErrorPolicy(self.error_policy)
        self.validate()

    def validate(self):
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")
        if self.pacing not in PACING_MODES:
            raise ValueError(f"pacing must be one of {PACING_MODES}, got {self.pacing!r}")
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")
        if self.max_failures is not None and self.max_failures < 1:
            raise ValueError(f"max_failures must be >= 1, got {self.max_failures}")
        if self.max_frames is not None and self.max_frames < 1:
            raise ValueError(f"max_frames must be >= 1, got {self.max_frames}")

    @classmethod
    def from_env(cls, environ=None, **overrides):
        """Build a config from LIFE_LOOP_* variables, then `overrides`."""
        env = os.environ if environ is None else environ
        values = {}
        if "LIFE_LOOP_FPS" in env:
            values["fps"] = float(env["LIFE_LOOP_FPS"])
        if "LIFE_LOOP_PACING" in env:
            values["pacing"] = env["LIFE_LOOP_PACING"].lower()
        if "LIFE_LOOP_INTERVAL" in env:
            values["interval"] = float(env["LIFE_LOOP_INTERVAL"])
        if "LIFE_LOOP_ON_ERROR" in env:
            values["error_policy"] = env["LIFE_LOOP_ON_ERROR"].lower()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def make_scheduler(config, loop=None):
    """Build the asyncio pacing strategy a config asks for."""
    refresh = AsyncioFrameScheduler(fps=config.fps, loop=loop)
    if config.pacing == "interval":
        return DelayedFrameScheduler(refresh, delay=config.interval, loop=loop)
    return refresh
