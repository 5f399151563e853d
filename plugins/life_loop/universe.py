"""
Game of Life Universe - the reference engine

A toroidal grid of dead/alive cells advanced with B/S (birth/survival)
rules. Conway's B3/S23 is the default:
- a live cell with 2 or 3 live neighbours survives
- a dead cell with exactly 3 live neighbours is born
- everything else dies or stays dead

Edges wrap in both directions. The text rendering draws each cell as a
filled or hollow square followed by a space, one line per row.
"""

import enum

import numpy as np

from .engine_base import SimEngine


ALIVE_GLYPH = "◼"
DEAD_GLYPH = "◻"


class Cell(enum.IntEnum):
    DEAD = 0
    ALIVE = 1


def parse_rule(rule_str):
    """Parse B/S notation like 'B3/S23' into (birth_set, survive_set)."""
    rule_str = rule_str.upper().replace(" ", "")
    birth = None
    survive = None
    for part in rule_str.split("/"):
        if part.startswith("B"):
            birth = {int(c) for c in part[1:]}
        elif part.startswith("S"):
            survive = {int(c) for c in part[1:]}
    if birth is None or survive is None:
        raise ValueError(f"Rule must have B and S parts: {rule_str!r}")
    if any(n > 8 for n in birth | survive):
        raise ValueError(f"Neighbour counts above 8 in rule: {rule_str!r}")
    return birth, survive


def _count_neighbors(grid):
    """Count Moore neighbourhood (8 neighbours) with periodic boundaries."""
    n = np.zeros(grid.shape, dtype=np.uint8)
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dy == 0 and dx == 0:
                continue
            n += np.roll(np.roll(grid, dy, axis=0), dx, axis=1)
    return n


class Universe(SimEngine):

    engine_name = "life"
    engine_label = "Game of Life"

    def __init__(self, width=64, height=64, rule="B3/S23"):
        super().__init__()
        if width <= 0 or height <= 0:
            raise ValueError(f"Universe must be at least 1x1, got {width}x{height}")
        self._width = width
        self._height = height
        self.rule_str = rule
        self.birth, self.survive = parse_rule(rule)
        self.grid = np.zeros((height, width), dtype=np.uint8)

    @classmethod
    def new(cls, width=64, height=64, density=0.5, rule="B3/S23", rng=None):
        """Random soup: each cell alive with probability `density`."""
        if not 0.0 <= density <= 1.0:
            raise ValueError(f"density must be in [0, 1], got {density}")
        if rng is None:
            rng = np.random.default_rng()
        universe = cls(width, height, rule=rule)
        universe.grid = (rng.random((height, width)) < density).astype(np.uint8)
        return universe

    @classmethod
    def from_cells(cls, width, height, cells, rule="B3/S23"):
        """Build from a flat row-major sequence of cells."""
        cells = list(cells)
        if len(cells) != width * height:
            raise ValueError(
                f"Expected {width * height} cells for {width}x{height}, got {len(cells)}"
            )
        universe = cls(width, height, rule=rule)
        universe.grid = np.array([int(c) for c in cells], dtype=np.uint8).reshape(height, width)
        return universe

    def to_cells(self):
        """Flat row-major list of Cell values."""
        return [Cell(int(v)) for v in self.grid.ravel()]

    @property
    def width(self):
        return self._width

    @property
    def height(self):
        return self._height

    @property
    def cells(self):
        """Copy of the grid as a (height, width) array of 0/1."""
        return self.grid.copy()

    def tick(self):
        """Advance one generation."""
        neighbors = _count_neighbors(self.grid)
        alive = self.grid == 1

        born = np.isin(neighbors, list(self.birth)) & ~alive
        kept = np.isin(neighbors, list(self.survive)) & alive

        self.grid = (born | kept).astype(np.uint8)
        self.generation += 1

    def step(self):
        self.tick()

    def render(self):
        lines = []
        for row in self.grid:
            lines.append("".join(
                (ALIVE_GLYPH if v else DEAD_GLYPH) + " " for v in row
            ) + "\n")
        return "".join(lines)

    @property
    def stats(self):
        alive_count = int(self.grid.sum())
        return {
            "generation": self.generation,
            "alive": alive_count,
            "alive_pct": alive_count / self.grid.size * 100,
        }
