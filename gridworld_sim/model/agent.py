"""Agent entity moved along computed paths."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .pathfinding import Path


class AgentState(Enum):
    """Controller state machine positions."""
    IDLE = "idle"
    PLANNING = "planning"
    FOLLOWING = "following"
    REPLANNING = "replanning"
    TELEPORT = "teleport"


@dataclass
class StepEffects:
    """Side effects produced by entering a cell."""
    cost: float = 0.0
    collected_goal: Optional[int] = None
    discovered_walls: int = 0


class Agent:
    """
    A robot/player on the grid.

    The agent only references the grid through its controller; it owns
    its position and scalar resources.
    """

    def __init__(self, agent_id: int,
                 position: Tuple[int, int],
                 energy: float = math.inf,
                 role: str = "robot"):
        self.id = agent_id
        self.position = position
        self.role = role
        self.state = AgentState.IDLE
        self.initial_energy = energy
        self.energy = energy
        self.steps_taken = 0
        self.total_cost = 0.0
        self.inventory: Dict[str, int] = {}

    def move_to(self, position: Tuple[int, int], cost: float = 0.0) -> None:
        """Take one step, paying its cost in energy."""
        self.position = position
        self.steps_taken += 1
        self.total_cost += cost
        self.energy -= cost

    def follow(self, path: Path) -> Tuple[int, int]:
        """Advance one cell along path."""
        cost = path.next_cost()
        position = path.advance()
        self.move_to(position, cost)
        return position

    def teleport(self, position: Tuple[int, int]) -> None:
        """Relocate without spending a step."""
        self.position = position

    def collect(self, item: str, amount: int = 1) -> None:
        self.inventory[item] = self.inventory.get(item, 0) + amount

    def is_exhausted(self) -> bool:
        """Check if agent has run out of energy."""
        return self.energy <= 0

    def __repr__(self) -> str:
        return (f"Agent(id={self.id}, pos={self.position}, "
                f"state={self.state.value})")
