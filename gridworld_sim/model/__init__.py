"""Model package for grid-world pathfinding simulations."""

from .state import AgentSnapshot, Movement, SimulationState
from .grid import Connectivity, GridModel
from .generator import generate_grid
from .pathfinding import Path, find_path
from .agent import Agent, AgentState
from .engine import SimulationEngine

__all__ = [
    'AgentSnapshot',
    'Movement',
    'SimulationState',
    'Connectivity',
    'GridModel',
    'generate_grid',
    'Path',
    'find_path',
    'Agent',
    'AgentState',
    'SimulationEngine',
]
