"""State snapshot dataclasses for grid-world simulations."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class AgentSnapshot:
    """Immutable snapshot of an agent's state at a given time step."""
    agent_id: int
    x: int
    y: int
    state: str   # "idle", "planning", "following", "replanning", "teleport"
    role: str
    energy: float
    status: str = ""


@dataclass(frozen=True)
class Movement:
    """One committed step."""
    step: int
    agent_id: int
    from_pos: Tuple[int, int]
    to_pos: Tuple[int, int]
    cost: float


@dataclass
class SimulationState:
    """Complete snapshot of simulation state at a given time step."""
    step: int
    agents: List[AgentSnapshot]
    walls: np.ndarray                        # Copy of wall mask
    paths: Dict[int, List[Tuple[int, int]]]  # Remaining path per agent
    goals: List[Tuple[int, int]]             # Open goals / targets
    metrics: Dict[str, float]
    movements: List[Movement] = field(default_factory=list)
    observed: Optional[np.ndarray] = None    # Fog memory, when present

    def to_csv_rows(self) -> List[Dict]:
        """Convert to CSV-compatible format."""
        return [
            {
                "step": self.step,
                "agent_id": a.agent_id,
                "x": a.x,
                "y": a.y,
                "state": a.state,
                "energy": a.energy
            }
            for a in self.agents
        ]
