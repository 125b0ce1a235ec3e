"""Generalized A* search over a GridModel."""

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .costs import CostFn, HeuristicFn, PathPolicy, manhattan, movement_cost
from .errors import NegativeCostError, NoPathFound
from .grid import Connectivity, GridModel, Passable, Position

logger = logging.getLogger(__name__)


@dataclass
class Path:
    """
    Cells from (excluding) start to (including) goal, consumed by a cursor.

    A path is stale once the grid, the goal or the known walls change;
    callers discard it and search again.
    """
    steps: List[Position]
    cost: float
    step_costs: List[float] = field(default_factory=list)
    cursor: int = 0

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def goal(self) -> Optional[Position]:
        return self.steps[-1] if self.steps else None

    def is_exhausted(self) -> bool:
        return self.cursor >= len(self.steps)

    def next_step(self) -> Optional[Position]:
        """Peek at the next cell without consuming it."""
        if self.is_exhausted():
            return None
        return self.steps[self.cursor]

    def next_cost(self) -> float:
        if self.is_exhausted() or not self.step_costs:
            return 0.0
        return self.step_costs[self.cursor]

    def advance(self) -> Position:
        """Consume and return the next cell."""
        if self.is_exhausted():
            raise IndexError("Path already exhausted")
        pos = self.steps[self.cursor]
        self.cursor += 1
        return pos

    def remaining(self) -> List[Position]:
        return self.steps[self.cursor:]


def path_cost(grid: GridModel, start: Position, steps: Sequence[Position],
              cost: CostFn = movement_cost) -> float:
    """Sum of step costs along start -> steps."""
    total = 0.0
    previous = start
    for pos in steps:
        total += cost(grid, previous, pos)
        previous = pos
    return total


def find_path(grid: GridModel, start: Position, goal: Position,
              cost: CostFn = movement_cost,
              heuristic: HeuristicFn = manhattan,
              connectivity: Connectivity = Connectivity.ORTHOGONAL,
              passable: Optional[Passable] = None) -> Path:
    """
    A* from start to goal.

    Search state (g, f, parent) lives in dictionaries local to this call,
    so concurrent searches on one grid never share scratch data. The open
    cell with the lowest f is expanded next; ties go to the cell that
    entered the open set first.

    Raises NoPathFound when the open set empties without reaching goal.
    """
    grid.cell(*start)
    grid.cell(*goal)

    if start == goal:
        return Path(steps=[], cost=0.0)

    g: Dict[Position, float] = {start: 0.0}
    f: Dict[Position, float] = {start: heuristic(start, goal)}
    parent: Dict[Position, Position] = {}
    entered: Dict[Position, float] = {}
    order: Dict[Position, int] = {start: 0}
    counter = itertools.count(1)

    open_heap = [(f[start], 0, start)]
    open_set = {start}
    closed = set()

    while open_heap:
        _, _, current = heapq.heappop(open_heap)
        if current in closed:
            continue  # superseded entry

        if current == goal:
            return _reconstruct(parent, entered, start, goal, g[goal])

        open_set.discard(current)
        closed.add(current)

        for neighbor in grid.neighbors(*current, connectivity, passable):
            if neighbor in closed:
                continue

            step = cost(grid, current, neighbor)
            if step < 0:
                raise NegativeCostError(
                    f"Negative step cost {step} from {current} to {neighbor}")
            tentative = g[current] + step

            if neighbor in open_set:
                if g[neighbor] <= tentative:
                    continue
            else:
                open_set.add(neighbor)
                order[neighbor] = next(counter)

            parent[neighbor] = current
            entered[neighbor] = step
            g[neighbor] = tentative
            f[neighbor] = tentative + heuristic(neighbor, goal)
            heapq.heappush(open_heap, (f[neighbor], order[neighbor], neighbor))

    logger.debug("Open set exhausted after %d expansions: %s -> %s",
                 len(closed), start, goal)
    raise NoPathFound(start, goal)


def find_path_with(grid: GridModel, start: Position, goal: Position,
                   policy: PathPolicy,
                   passable: Optional[Passable] = None) -> Path:
    """find_path using a bundled PathPolicy."""
    return find_path(grid, start, goal, policy.cost, policy.heuristic,
                     policy.connectivity, passable)


def _reconstruct(parent: Dict[Position, Position], entered: Dict[Position, float],
                 start: Position, goal: Position, total: float) -> Path:
    steps = []
    costs = []
    node = goal
    while node != start:
        steps.append(node)
        costs.append(entered[node])
        node = parent[node]
    steps.reverse()
    costs.reverse()
    return Path(steps=steps, cost=total, step_costs=costs)
