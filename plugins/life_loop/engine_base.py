"""
Abstract Base Class for Simulation Engines

The frame driver only ever calls step() and render(). Anything that
implements those two can be driven, so the driver, the sinks, and the
viewer work with any engine interchangeably.
"""

from abc import ABC, abstractmethod


class SimEngine(ABC):
    """Base class for steppable, renderable simulations."""

    engine_name = ""   # e.g. "life"
    engine_label = ""  # e.g. "Game of Life"

    def __init__(self):
        self.generation = 0

    @abstractmethod
    def step(self):
        """Advance exactly one generation. Return value is ignored."""

    @abstractmethod
    def render(self):
        """Return a complete text snapshot of the current state.

        Must not mutate state: calling it twice without an intervening
        step() returns identical text.
        """

    def step_n(self, n):
        """Advance n generations."""
        for _ in range(n):
            self.step()

    @property
    def stats(self):
        """Return current engine statistics."""
        return {"generation": self.generation}

    def __str__(self):
        return self.render()
