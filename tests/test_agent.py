import math

import numpy as np

from gridworld_sim.model.agent import Agent, AgentState
from gridworld_sim.model.pathfinding import Path
from gridworld_sim.model.state import AgentSnapshot, SimulationState


def test_follow_spends_energy():
    agent = Agent(1, (0, 0), energy=5.0)
    path = Path(steps=[(1, 0), (2, 0)], cost=3.0, step_costs=[1.0, 2.0])
    assert agent.follow(path) == (1, 0)
    assert agent.follow(path) == (2, 0)
    assert agent.energy == 2.0
    assert agent.total_cost == 3.0
    assert agent.steps_taken == 2
    assert not agent.is_exhausted()


def test_unbounded_energy_never_exhausts():
    agent = Agent(1, (0, 0))
    agent.move_to((1, 0), 1000.0)
    assert agent.energy == math.inf
    assert not agent.is_exhausted()


def test_teleport_and_inventory():
    agent = Agent(3, (0, 0))
    agent.teleport((4, 4))
    agent.collect("goals")
    agent.collect("goals", 2)
    assert agent.position == (4, 4)
    assert agent.steps_taken == 0
    assert agent.inventory == {"goals": 3}
    assert repr(agent) == "Agent(id=3, pos=(4, 4), state=idle)"


def test_state_csv_rows():
    state = SimulationState(
        step=4,
        agents=[AgentSnapshot(1, 2, 3, AgentState.FOLLOWING.value, "robot", 7.5)],
        walls=np.zeros((4, 4), dtype=bool),
        paths={1: [(3, 3)]},
        goals=[(3, 3)],
        metrics={},
    )
    assert state.to_csv_rows() == [
        {"step": 4, "agent_id": 1, "x": 2, "y": 3, "state": "following", "energy": 7.5}
    ]
