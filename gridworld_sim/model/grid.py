"""Grid map management for grid-world simulations."""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np
from scipy import ndimage

from .errors import InvalidGridDimensions, OutOfBoundsError

Position = Tuple[int, int]
Passable = Callable[[int, int], bool]


class Connectivity(Enum):
    """Neighbor enumeration mode."""
    ORTHOGONAL = "orthogonal"  # 4 directions
    OCTILE = "octile"          # 8 directions, no corner cutting


ORTHOGONAL_OFFSETS = [(-1, 0), (1, 0), (0, -1), (0, 1)]

OCTILE_OFFSETS = [
    (-1, -1), (0, -1), (1, -1),
    (-1, 0),           (1, 0),
    (-1, 1),  (0, 1),  (1, 1)
]


@dataclass(frozen=True)
class Cell:
    """Read-only view of one grid cell."""
    x: int
    y: int
    is_wall: bool
    elevation: float
    rgb: Tuple[int, int, int]


class GridModel:
    """
    Fixed-size 2D grid with walls and terrain layers.

    Coordinate convention: (x, y) for API, [y, x] for array indexing.
    Layers:
    - walls: bool, True = impassable
    - elevation: float in [0, 100]
    - rgb: int channels in [0, 255]
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise InvalidGridDimensions(width, height)
        self.width = width
        self.height = height

        self.walls = np.zeros((height, width), dtype=bool)
        self.elevation = np.full((height, width), 50.0, dtype=np.float64)
        self.rgb = np.zeros((height, width, 3), dtype=np.int32)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def _require(self, x: int, y: int) -> None:
        if not self.in_bounds(x, y):
            raise OutOfBoundsError(x, y, self.width, self.height)

    def cell(self, x: int, y: int) -> Cell:
        """Bounds-checked cell lookup."""
        self._require(x, y)
        r, g, b = (int(c) for c in self.rgb[y, x])
        return Cell(x, y, bool(self.walls[y, x]),
                    float(self.elevation[y, x]), (r, g, b))

    def is_wall(self, x: int, y: int) -> bool:
        self._require(x, y)
        return bool(self.walls[y, x])

    def is_walkable(self, x: int, y: int) -> bool:
        """Check if cell is within bounds and not a wall."""
        if not self.in_bounds(x, y):
            return False
        return not self.walls[y, x]

    def set_wall(self, x: int, y: int, value: bool = True) -> None:
        self._require(x, y)
        self.walls[y, x] = value

    def toggle_wall(self, x: int, y: int) -> bool:
        """Flip a wall (edit mode). Returns the new wall state."""
        self._require(x, y)
        self.walls[y, x] = not self.walls[y, x]
        return bool(self.walls[y, x])

    def clear_cells(self, coords: Iterable[Position]) -> None:
        """Open specific cells."""
        for x, y in coords:
            self._require(x, y)
            self.walls[y, x] = False

    def neighbors(self, x: int, y: int,
                  connectivity: Connectivity = Connectivity.ORTHOGONAL,
                  passable: Optional[Passable] = None) -> List[Position]:
        """
        Enumerate in-bounds neighbors accepted by `passable`.

        In octile mode a diagonal step is only returned when both
        orthogonal shoulder cells are passable as well.
        """
        if passable is None:
            passable = self.is_walkable

        if connectivity is Connectivity.OCTILE:
            offsets = OCTILE_OFFSETS
        else:
            offsets = ORTHOGONAL_OFFSETS

        result = []
        for dx, dy in offsets:
            nx, ny = x + dx, y + dy
            if not self.in_bounds(nx, ny) or not passable(nx, ny):
                continue
            if dx != 0 and dy != 0:
                if not (passable(x + dx, y) and passable(x, y + dy)):
                    continue
            result.append((nx, ny))
        return result

    def reachable_mask(self, start: Position,
                       passable: Optional[Passable] = None) -> np.ndarray:
        """Breadth-first flood fill (4-connected) from start."""
        if passable is None:
            passable = self.is_walkable

        visited = np.zeros(self.shape, dtype=bool)
        sx, sy = start
        self._require(sx, sy)
        visited[sy, sx] = True
        queue = deque([start])

        while queue:
            x, y = queue.popleft()
            for nx, ny in self.neighbors(x, y, Connectivity.ORTHOGONAL, passable):
                if not visited[ny, nx]:
                    visited[ny, nx] = True
                    queue.append((nx, ny))
        return visited

    def is_reachable(self, start: Position, goal: Position) -> bool:
        """BFS reachability over non-wall cells."""
        sx, sy = start
        gx, gy = goal
        if self.is_wall(sx, sy) or self.is_wall(gx, gy):
            return False
        return bool(self.reachable_mask(start)[gy, gx])

    def open_cells(self) -> List[Position]:
        ys, xs = np.where(~self.walls)
        return [(int(x), int(y)) for x, y in zip(xs, ys)]

    def region_labels(self) -> Tuple[np.ndarray, int]:
        """Label 4-connected open regions (0 = wall)."""
        labels, count = ndimage.label(~self.walls)
        return labels, int(count)

    def random_open_cell(self, rng: np.random.Generator,
                         exclude: Iterable[Position] = ()) -> Position:
        """Uniformly pick an open cell not in exclude."""
        excluded = set(exclude)
        candidates = [p for p in self.open_cells() if p not in excluded]
        if not candidates:
            raise ValueError("No open cell available")
        return candidates[int(rng.integers(len(candidates)))]

    def copy(self) -> "GridModel":
        clone = GridModel(self.width, self.height)
        clone.walls = self.walls.copy()
        clone.elevation = self.elevation.copy()
        clone.rgb = self.rgb.copy()
        return clone
