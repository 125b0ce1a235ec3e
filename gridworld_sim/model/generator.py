"""Procedural maze and terrain generation."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

import numpy as np

from .errors import InvalidGridDimensions
from .grid import GridModel, Position

logger = logging.getLogger(__name__)

MAZE_ALGORITHMS = ("recursive_backtracking", "prims", "recursive_division", "open")
TERRAIN_ALGORITHMS = ("diamond_square", "rgb")
ALGORITHMS = MAZE_ALGORITHMS + TERRAIN_ALGORITHMS

# Carving moves two cells at a time so walls survive between passages
STEP_TWO = [(0, -2), (2, 0), (0, 2), (-2, 0)]


@dataclass
class TerrainParams:
    roughness: float = 0.5         # diamond-square noise factor
    intensity: float = 1.0         # extra diamond-square amplitude multiplier
    color_intensity: float = 0.5   # rgb base colour scale
    color_variation: float = 0.8   # rgb per-channel spread


def _pick(options: List, rng: np.random.Generator):
    return options[int(rng.integers(len(options)))]


def _walled_grid(width: int, height: int) -> GridModel:
    grid = GridModel(width, height)
    grid.walls[:, :] = True
    return grid


def recursive_backtracking(width: int, height: int,
                           rng: np.random.Generator) -> GridModel:
    """
    Iterative depth-first carve from (0, 0).

    Only cells two steps away are visited; the wall between the current
    cell and the chosen one is opened. The result is a perfect maze over
    the even-coordinate lattice.
    """
    grid = _walled_grid(width, height)
    visited = np.zeros(grid.shape, dtype=bool)

    grid.walls[0, 0] = False
    visited[0, 0] = True
    stack: List[Position] = [(0, 0)]

    while stack:
        cx, cy = stack[-1]
        options = [
            (cx + dx, cy + dy) for dx, dy in STEP_TWO
            if grid.in_bounds(cx + dx, cy + dy) and not visited[cy + dy, cx + dx]
        ]
        if not options:
            stack.pop()
            continue

        nx, ny = _pick(options, rng)
        visited[ny, nx] = True
        grid.walls[ny, nx] = False
        grid.walls[(cy + ny) // 2, (cx + nx) // 2] = False
        stack.append((nx, ny))

    return grid


def prims(width: int, height: int, rng: np.random.Generator) -> GridModel:
    """
    Randomized Prim's maze.

    The frontier holds walled lattice cells two steps from the maze. A random
    frontier cell is joined to a random in-maze cell two steps away.
    """
    grid = _walled_grid(width, height)
    in_maze = np.zeros(grid.shape, dtype=bool)
    frontier: List[Position] = []
    queued = set()

    def expose(x: int, y: int) -> None:
        for dx, dy in STEP_TWO:
            nx, ny = x + dx, y + dy
            if (grid.in_bounds(nx, ny) and not in_maze[ny, nx]
                    and (nx, ny) not in queued):
                frontier.append((nx, ny))
                queued.add((nx, ny))

    grid.walls[0, 0] = False
    in_maze[0, 0] = True
    expose(0, 0)

    while frontier:
        fx, fy = frontier.pop(int(rng.integers(len(frontier))))
        linked = [
            (fx + dx, fy + dy) for dx, dy in STEP_TWO
            if grid.in_bounds(fx + dx, fy + dy) and in_maze[fy + dy, fx + dx]
        ]
        mx, my = _pick(linked, rng)

        grid.walls[fy, fx] = False
        grid.walls[(fy + my) // 2, (fx + mx) // 2] = False
        in_maze[fy, fx] = True
        expose(fx, fy)

    return grid


def recursive_division(width: int, height: int,
                       rng: np.random.Generator) -> GridModel:
    """
    Recursive division inside a walled border.

    Each chamber is split across its longer axis by one wall line with a
    single gap. Walls sit on even indices and gaps on odd ones, so a later
    wall never seals an earlier gap. Chambers narrower than 3 are left open.
    """
    grid = GridModel(width, height)
    grid.walls[0, :] = True
    grid.walls[-1, :] = True
    grid.walls[:, 0] = True
    grid.walls[:, -1] = True

    def divide(x: int, y: int, w: int, h: int) -> None:
        if w < 3 or h < 3:
            return

        if h > w:
            rows = [r for r in range(y + 1, y + h - 1) if r % 2 == 0]
            if not rows:
                return
            wy = _pick(rows, rng)
            gx = _pick([c for c in range(x, x + w) if c % 2 == 1], rng)
            grid.walls[wy, x:x + w] = True
            grid.walls[wy, gx] = False
            divide(x, y, w, wy - y)
            divide(x, wy + 1, w, y + h - wy - 1)
        else:
            cols = [c for c in range(x + 1, x + w - 1) if c % 2 == 0]
            if not cols:
                return
            wx = _pick(cols, rng)
            gy = _pick([r for r in range(y, y + h) if r % 2 == 1], rng)
            grid.walls[y:y + h, wx] = True
            grid.walls[gy, wx] = False
            divide(x, y, wx - x, h)
            divide(wx + 1, y, x + w - wx - 1, h)

    divide(1, 1, width - 2, height - 2)
    return grid


def open_field(width: int, height: int, rng: np.random.Generator) -> GridModel:
    """No base walls; obstacles come only from the density pass."""
    return GridModel(width, height)


def diamond_square(width: int, height: int, rng: np.random.Generator,
                   roughness: float = 0.5, intensity: float = 1.0) -> GridModel:
    """
    Diamond-square heightmap on a power-of-two padded lattice.

    Noise amplitude is roughness * scale * intensity, with scale starting
    at 100 and halving at every level. Values are clamped to [0, 100] and
    the padded field is cropped to width x height.
    """
    grid = GridModel(width, height)

    size = 1
    while size < max(width, height):
        size *= 2
    last = size
    field = np.full((size + 1, size + 1), 50.0)

    for cy, cx in ((0, 0), (0, last), (last, 0), (last, last)):
        field[cy, cx] = rng.uniform(0, 100)

    step = size
    scale = 100.0
    while step > 1:
        half = step // 2
        amplitude = roughness * scale * intensity

        # Square step: centre of each square
        for y in range(half, size, step):
            for x in range(half, size, step):
                avg = (field[y - half, x - half] + field[y - half, x + half] +
                       field[y + half, x - half] + field[y + half, x + half]) / 4
                field[y, x] = avg + rng.uniform(-1, 1) * amplitude

        # Diamond step: edge midpoints from the available neighbors
        for y in range(0, size + 1, half):
            for x in range((y + half) % step, size + 1, step):
                values = [
                    field[ny, nx]
                    for nx, ny in ((x, y - half), (x, y + half),
                                   (x - half, y), (x + half, y))
                    if 0 <= nx <= last and 0 <= ny <= last
                ]
                field[y, x] = np.mean(values) + rng.uniform(-1, 1) * amplitude

        np.clip(field, 0.0, 100.0, out=field)
        step = half
        scale *= 0.5

    grid.elevation = field[:height, :width].copy()
    return grid


def rgb_terrain(width: int, height: int, rng: np.random.Generator,
                color_intensity: float = 0.5,
                color_variation: float = 0.8) -> GridModel:
    """Per-cell base colour plus independent channel variation."""
    grid = GridModel(width, height)
    base = rng.random((height, width)) * 255 * color_intensity
    spread = (rng.random((height, width, 3)) - 0.5) * color_variation * 255
    channels = np.floor(base[:, :, np.newaxis] + spread)
    grid.rgb = np.clip(channels, 0, 255).astype(np.int32)
    return grid


GENERATORS: Dict[str, Callable[[int, int, np.random.Generator, TerrainParams], GridModel]] = {
    "recursive_backtracking": lambda w, h, rng, p: recursive_backtracking(w, h, rng),
    "prims": lambda w, h, rng, p: prims(w, h, rng),
    "recursive_division": lambda w, h, rng, p: recursive_division(w, h, rng),
    "open": lambda w, h, rng, p: open_field(w, h, rng),
    "diamond_square": lambda w, h, rng, p: diamond_square(
        w, h, rng, p.roughness, p.intensity),
    "rgb": lambda w, h, rng, p: rgb_terrain(
        w, h, rng, p.color_intensity, p.color_variation),
}


def apply_density(grid: GridModel, density: float, rng: np.random.Generator,
                  protected: Iterable[Position] = ()) -> int:
    """Randomly wall off open cells. Returns the number of cells converted."""
    mask = (~grid.walls) & (rng.random(grid.shape) < density)
    for x, y in protected:
        mask[y, x] = False
    grid.walls |= mask
    return int(np.count_nonzero(mask))


def carve_corridor(grid: GridModel, start: Position, goal: Position) -> None:
    """Open a staircase corridor, stepping in x then in y, from start to goal."""
    x, y = start
    gx, gy = goal
    grid.walls[y, x] = False
    while (x, y) != (gx, gy):
        if x != gx:
            x += 1 if gx > x else -1
            grid.walls[y, x] = False
        if y != gy:
            y += 1 if gy > y else -1
            grid.walls[y, x] = False


def repair_connectivity(grid: GridModel, start: Position, goal: Position) -> bool:
    """
    Guarantee goal is reachable from start.
    Returns True when a fallback corridor had to be carved.
    """
    grid.clear_cells([start, goal])
    if grid.is_reachable(start, goal):
        return False
    carve_corridor(grid, start, goal)
    logger.debug("Carved fallback corridor %s -> %s", start, goal)
    return True


def generate_grid(width: int, height: int, density: float = 0.0,
                  algorithm: str = "recursive_backtracking",
                  params: Optional[TerrainParams] = None,
                  start: Optional[Position] = None,
                  goal: Optional[Position] = None,
                  rng: Optional[np.random.Generator] = None) -> GridModel:
    """
    Build a grid: base algorithm, density pass, then connectivity repair.

    start defaults to (0, 0) and goal to the opposite corner.
    """
    if width <= 0 or height <= 0:
        raise InvalidGridDimensions(width, height)
    if not 0.0 <= density <= 1.0:
        raise ValueError(f"wall density must be in [0, 1], got {density}")
    if algorithm not in GENERATORS:
        raise ValueError(f"Unknown algorithm: {algorithm} "
                         f"(expected one of {', '.join(ALGORITHMS)})")

    rng = rng if rng is not None else np.random.default_rng()
    params = params or TerrainParams()
    start = start if start is not None else (0, 0)
    goal = goal if goal is not None else (width - 1, height - 1)

    grid = GENERATORS[algorithm](width, height, rng, params)
    # Endpoints must be inside the grid before any carving
    grid.cell(*start)
    grid.cell(*goal)

    added = apply_density(grid, density, rng, protected=(start, goal))
    repaired = repair_connectivity(grid, start, goal)

    logger.info("Generated %dx%d grid with %s (%d density walls, repaired=%s)",
                width, height, algorithm, added, repaired)
    return grid
