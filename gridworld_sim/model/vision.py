"""Partial observability: what an agent currently sees and has seen."""

import numpy as np

from .grid import GridModel, Position


class FogOfWar:
    """
    Tracks visibility for one observer.

    visible: cells inside the vision radius right now
    observed: cells that have ever been visible
    """

    def __init__(self, grid: GridModel, vision_range: float):
        self.grid = grid
        self.vision_range = vision_range
        self.visible = np.zeros(grid.shape, dtype=bool)
        self.observed = np.zeros(grid.shape, dtype=bool)

        ys, xs = np.mgrid[0:grid.height, 0:grid.width]
        self._xs = xs
        self._ys = ys

    def update(self, position: Position) -> int:
        """
        Recompute visibility around position (Euclidean radius).
        Returns the number of walls seen for the first time.
        """
        px, py = position
        dist = np.hypot(self._xs - px, self._ys - py)
        self.visible = dist <= self.vision_range
        newly_seen = self.visible & ~self.observed
        self.observed |= self.visible
        return int(np.count_nonzero(newly_seen & self.grid.walls))

    def is_known_wall(self, x: int, y: int) -> bool:
        return bool(self.observed[y, x] and self.grid.walls[y, x])

    def believed_passable(self, x: int, y: int) -> bool:
        """
        Neighbor predicate for planning under fog: unobserved cells are
        assumed open, observed cells report their true wall state.
        """
        if not self.grid.in_bounds(x, y):
            return False
        return not self.is_known_wall(x, y)

    def reset(self) -> None:
        self.visible.fill(False)
        self.observed.fill(False)
