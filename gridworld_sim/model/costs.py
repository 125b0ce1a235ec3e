"""Step costs, heuristics and named path policies for A* search."""

import math
from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

import numpy as np

from .grid import Connectivity, GridModel, Position

CostFn = Callable[[GridModel, Position, Position], float]
HeuristicFn = Callable[[Position, Position], float]

SQRT2 = math.sqrt(2)

CHANNELS = {"red": 0, "green": 1, "blue": 2}

POLICIES = ("shortest", "easiest", "highest", "elevation",
            "most", "least", "rgb_easiest")


# -------------------- cost functions --------------------

def movement_cost(grid: GridModel, current: Position, neighbor: Position) -> float:
    """1 per orthogonal step, sqrt(2) per diagonal step."""
    dx = abs(neighbor[0] - current[0])
    dy = abs(neighbor[1] - current[1])
    return SQRT2 if dx == 1 and dy == 1 else 1.0


def easiest_cost(weight: float = 2.0) -> CostFn:
    """Movement cost plus weighted elevation change."""
    def cost(grid: GridModel, current: Position, neighbor: Position) -> float:
        climb = abs(grid.elevation[neighbor[1], neighbor[0]] -
                    grid.elevation[current[1], current[0]])
        return movement_cost(grid, current, neighbor) + weight * climb
    return cost


def highest_cost(grid: GridModel, current: Position, neighbor: Position) -> float:
    """Cheaper on high ground; floored at zero."""
    lift = grid.elevation[neighbor[1], neighbor[0]] / 100
    return max(0.0, movement_cost(grid, current, neighbor) - lift)


def elevation_cost(grid: GridModel, current: Position, neighbor: Position) -> float:
    """Pay a tenth of the elevation of every cell entered."""
    return float(grid.elevation[neighbor[1], neighbor[0]]) / 10


def _channel_indices(channels: Sequence[str]) -> Tuple[int, ...]:
    try:
        return tuple(CHANNELS[c] for c in channels)
    except KeyError as e:
        raise ValueError(f"Unknown colour channel: {e.args[0]}") from None


def _color_vector(grid: GridModel, pos: Position,
                  indices: Tuple[int, ...]) -> np.ndarray:
    # Normalised so the magnitude never exceeds 255 whatever the channel count
    values = grid.rgb[pos[1], pos[0], list(indices)].astype(np.float64)
    return values / math.sqrt(len(indices))


def color_cost(mode: str, channels: Sequence[str]) -> CostFn:
    """
    Colour-magnitude weighting over the selected channels.

    mode 'most' makes saturated cells cheap, 'least' makes them expensive.
    With no channels selected this is plain movement cost.
    """
    if mode not in ("most", "least"):
        raise ValueError(f"Unknown colour mode: {mode}")
    indices = _channel_indices(channels)
    if not indices:
        return movement_cost

    def cost(grid: GridModel, current: Position, neighbor: Position) -> float:
        magnitude = np.linalg.norm(_color_vector(grid, neighbor, indices)) / 255
        base = movement_cost(grid, current, neighbor)
        if mode == "most":
            return base * max(0.0, 1.0 - magnitude)
        return base * magnitude
    return cost


def color_change_cost(channels: Sequence[str]) -> CostFn:
    """Movement cost scaled by the colour difference between cells."""
    indices = _channel_indices(channels)
    if not indices:
        return movement_cost

    def cost(grid: GridModel, current: Position, neighbor: Position) -> float:
        diff = (_color_vector(grid, neighbor, indices) -
                _color_vector(grid, current, indices))
        return movement_cost(grid, current, neighbor) * np.linalg.norm(diff) / 255
    return cost


# -------------------- heuristics --------------------

def manhattan(cell: Position, goal: Position) -> float:
    return float(abs(cell[0] - goal[0]) + abs(cell[1] - goal[1]))


def octile(cell: Position, goal: Position) -> float:
    dx = abs(cell[0] - goal[0])
    dy = abs(cell[1] - goal[1])
    return SQRT2 * min(dx, dy) + abs(dx - dy)


def chebyshev(cell: Position, goal: Position) -> float:
    return float(max(abs(cell[0] - goal[0]), abs(cell[1] - goal[1])))


def zero_heuristic(cell: Position, goal: Position) -> float:
    return 0.0


def distance_heuristic(connectivity: Connectivity) -> HeuristicFn:
    """Admissible distance estimate for unit-per-step movement."""
    return octile if connectivity is Connectivity.OCTILE else manhattan


# -------------------- policies --------------------

@dataclass(frozen=True)
class PathPolicy:
    """A cost function paired with a heuristic that stays admissible for it."""
    name: str
    cost: CostFn
    heuristic: HeuristicFn
    connectivity: Connectivity = Connectivity.ORTHOGONAL


def make_policy(name: str,
                connectivity: Connectivity = Connectivity.ORTHOGONAL,
                channels: Sequence[str] = (),
                elevation_weight: float = 2.0) -> PathPolicy:
    """Build a named policy."""
    distance = distance_heuristic(connectivity)

    if name == "shortest":
        return PathPolicy(name, movement_cost, distance, connectivity)
    if name == "easiest":
        return PathPolicy(name, easiest_cost(elevation_weight), distance, connectivity)
    if name == "highest":
        return PathPolicy(name, highest_cost, zero_heuristic, connectivity)
    if name == "elevation":
        return PathPolicy(name, elevation_cost, zero_heuristic, connectivity)
    if name in ("most", "least"):
        heuristic = zero_heuristic if channels else distance
        return PathPolicy(name, color_cost(name, channels), heuristic, connectivity)
    if name == "rgb_easiest":
        heuristic = zero_heuristic if channels else distance
        return PathPolicy(name, color_change_cost(channels), heuristic, connectivity)

    raise ValueError(f"Unknown cost policy: {name} (expected one of {', '.join(POLICIES)})")
