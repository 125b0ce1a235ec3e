"""Simulation engine for grid-world pathfinding demos."""

import logging
import numpy as np
from collections import deque
from typing import Callable, Deque, Dict, List, Optional, TYPE_CHECKING

from .grid import GridModel, Position
from .agent import Agent, AgentState
from .clock import SimulationClock
from .controller import (AgentController, FogController, FollowerController,
                         MultiGoalController, NavigatorController,
                         TagController, TagCoordinator, WanderController)
from .costs import PathPolicy, make_policy
from .generator import generate_grid
from .state import AgentSnapshot, Movement, SimulationState

if TYPE_CHECKING:
    from ..config import SimulationConfig

logger = logging.getLogger(__name__)

MOVEMENT_LOG_SIZE = 10


class SimulationEngine:
    """
    Orchestrates the discrete-time simulation loop.

    Implements:
    1. Fixed-step driving from display-refresh deltas
    2. Parallel update: every controller decides against the same snapshot
    3. Commit of all moves, then post-move interactions
    4. State snapshot generation
    """

    def __init__(self, grid: GridModel,
                 controllers: List[AgentController],
                 clock: Optional[SimulationClock] = None,
                 max_steps: int = 1000,
                 rng: Optional[np.random.Generator] = None):
        self.grid = grid
        self.controllers = controllers
        self.clock = clock or SimulationClock(step_interval_ms=500.0)
        self.max_steps = max_steps
        self.rng = rng if rng is not None else np.random.default_rng()
        self.current_step = 0

        # Metrics tracking
        self.movements: Deque[Movement] = deque(maxlen=MOVEMENT_LOG_SIZE)
        self.move_count = 0
        self.total_cost = 0.0

    @classmethod
    def from_config(cls, config: "SimulationConfig") -> "SimulationEngine":
        """Generate the grid and spawn the configured scenario."""
        rng = np.random.default_rng(config.seed)
        width, height = config.grid.width, config.grid.height

        grid = generate_grid(
            width, height,
            density=config.generation.wall_density,
            algorithm=config.generation.algorithm,
            params=config.generation.terrain_params(),
            start=(0, 0),
            goal=(width - 1, height - 1),
            rng=rng
        )

        policy = make_policy(
            config.pathfinding.cost,
            config.pathfinding.connectivity_mode,
            config.pathfinding.channels,
            config.pathfinding.elevation_weight
        )

        spawn = SPAWNERS[config.scenario]
        controllers = spawn(config, grid, policy, rng)
        clock = SimulationClock.from_speed(config.clock.speed)

        logger.info("Scenario %s with %d agents on %dx%d grid",
                    config.scenario, len(controllers), width, height)
        return cls(grid, controllers, clock, config.max_steps, rng)

    @property
    def agents(self) -> List[Agent]:
        return [c.agent for c in self.controllers]

    # -------------------- run control --------------------

    def start(self) -> None:
        """Start all controllers and the clock."""
        for controller in self.controllers:
            controller.start()
        self.clock.start()

    def stop(self) -> None:
        self.clock.stop()

    def step_simulation(self, delta_ms: float) -> Optional[SimulationState]:
        """
        Display-refresh entry point. Returns a snapshot when a simulation
        step fired, otherwise None.
        """
        if not self.clock.running:
            return None
        if not self.clock.advance(delta_ms):
            return None
        return self.step()

    def on_frame(self, timestamp_ms: float) -> Optional[SimulationState]:
        """Same as step_simulation, fed with absolute callback timestamps."""
        if not self.clock.running:
            return None
        if not self.clock.tick(timestamp_ms):
            return None
        return self.step()

    def step(self) -> SimulationState:
        """
        Execute one discrete time step.

        1. Every controller plans/decides against the current positions
        2. Commit all moves and apply cell side effects
        3. Resolve interactions between agents (catch, tag)
        4. Return current state snapshot
        """
        self.current_step += 1

        # Phase 1: decide against a consistent snapshot
        proposals = [(c, c.propose_move()) for c in self.controllers]

        # Phase 2: commit
        for controller, target in proposals:
            if target is None:
                continue
            origin = controller.agent.position
            effects = controller.commit()
            move = Movement(
                step=self.current_step,
                agent_id=controller.agent.id,
                from_pos=origin,
                to_pos=controller.agent.position,
                cost=effects.cost
            )
            self.movements.appendleft(move)
            self.move_count += 1
            self.total_cost += effects.cost

            if effects.collected_goal is not None:
                logger.debug("Agent %d collected goal %d at step %d",
                             controller.agent.id, effects.collected_goal,
                             self.current_step)
            if effects.discovered_walls:
                logger.debug("Agent %d saw %d new walls at %s",
                             controller.agent.id, effects.discovered_walls,
                             controller.agent.position)

        # Phase 3: interactions
        for controller in self.controllers:
            controller.resolve(self.current_step)

        if self.is_finished():
            self.stop()

        return self._create_state_snapshot()

    # -------------------- edit mode --------------------

    def toggle_wall(self, x: int, y: int) -> bool:
        """
        Flip a wall between steps. Agents on a new wall are moved to a
        random open cell and every controller re-plans on the next step.
        """
        if (x, y) in self._protected_cells():
            raise ValueError(f"Cannot wall off goal cell {(x, y)}")

        is_wall = self.grid.toggle_wall(x, y)
        if is_wall:
            occupied = [a.position for a in self.agents]
            for controller in self.controllers:
                if controller.agent.position == (x, y):
                    cell = self.grid.random_open_cell(self.rng, exclude=occupied)
                    controller.relocate(cell)
                    occupied.append(cell)

        for controller in self.controllers:
            controller.request_replan("grid edited")
        return is_wall

    def _protected_cells(self) -> List[Position]:
        cells = []
        for controller in self.controllers:
            cells.extend(controller.open_goals())
        return cells

    # -------------------- reporting --------------------

    def _counters(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for controller in self.controllers:
            for key, value in controller.counters().items():
                totals[key] = totals.get(key, 0) + value
        return totals

    def snapshot(self) -> SimulationState:
        """Current state without advancing the simulation."""
        return self._create_state_snapshot()

    def _create_state_snapshot(self) -> SimulationState:
        """Create immutable snapshot of current simulation state."""
        agent_snapshots = [
            AgentSnapshot(
                agent_id=c.agent.id,
                x=c.agent.position[0],
                y=c.agent.position[1],
                state=c.agent.state.value,
                role=c.agent.role,
                energy=c.agent.energy,
                status=c.status
            )
            for c in self.controllers
        ]

        paths = {
            c.agent.id: c.path.remaining()
            for c in self.controllers if c.path is not None
        }

        observed = None
        for controller in self.controllers:
            fog = getattr(controller, "fog", None)
            if fog is not None:
                observed = fog.observed.copy()
                break

        active = sum(1 for c in self.controllers if c.state is not AgentState.IDLE)
        metrics: Dict[str, float] = {
            'agents': len(self.controllers),
            'active_agents': active,
            'moves': self.move_count,
            'total_cost': self.total_cost,
        }
        metrics.update(self._counters())

        return SimulationState(
            step=self.current_step,
            agents=agent_snapshots,
            walls=self.grid.walls.copy(),
            paths=paths,
            goals=self._protected_cells(),
            metrics=metrics,
            movements=list(self.movements),
            observed=observed
        )

    def is_finished(self) -> bool:
        """Check if simulation should terminate."""
        return (self.current_step >= self.max_steps or
                all(c.is_done() for c in self.controllers))

    def get_summary(self) -> Dict:
        """Get summary statistics for the simulation."""
        summary = {
            'total_steps': self.current_step,
            'moves': self.move_count,
            'total_cost': self.total_cost,
            'agents_total': len(self.controllers),
            'agents_idle': sum(1 for c in self.controllers
                               if c.state is AgentState.IDLE),
        }
        summary.update(self._counters())
        return summary


# -------------------- scenario spawning --------------------

def _largest_region(grid: GridModel) -> List[Position]:
    labels, count = grid.region_labels()
    if count == 0:
        return []
    sizes = np.bincount(labels.ravel())[1:]
    ys, xs = np.where(labels == int(np.argmax(sizes)) + 1)
    return [(int(x), int(y)) for x, y in zip(xs, ys)]


def _sample_cells(grid: GridModel, rng: np.random.Generator, count: int) -> List[Position]:
    """Distinct cells from the largest open region."""
    cells = _largest_region(grid)
    if len(cells) < count:
        raise ValueError(f"Grid has room for {len(cells)} placements, {count} needed")
    picks = rng.choice(len(cells), size=count, replace=False)
    return [cells[int(i)] for i in picks]


def _spawn_navigator(config: "SimulationConfig", grid: GridModel,
                     policy: PathPolicy, rng: np.random.Generator) -> List[AgentController]:
    agent = Agent(1, (0, 0), energy=config.agents.energy)
    goal = (config.grid.width - 1, config.grid.height - 1)
    return [NavigatorController(agent, grid, policy, rng, goal)]


def _spawn_fog(config: "SimulationConfig", grid: GridModel,
               policy: PathPolicy, rng: np.random.Generator) -> List[AgentController]:
    agent = Agent(1, (0, 0), energy=config.agents.energy)
    goal = (config.grid.width - 1, config.grid.height - 1)
    return [FogController(agent, grid, policy, rng, goal, config.agents.vision_range)]


def _spawn_multi_goal(config: "SimulationConfig", grid: GridModel,
                      policy: PathPolicy, rng: np.random.Generator) -> List[AgentController]:
    room = len(_largest_region(grid))
    goal_count = min(config.agents.goal_count, max(0, room - 1))
    if goal_count < config.agents.goal_count:
        logger.warning("Only %d of %d goals fit on the grid",
                       goal_count, config.agents.goal_count)
    cells = _sample_cells(grid, rng, goal_count + 1)
    agent = Agent(1, cells[0], energy=config.agents.energy)
    return [MultiGoalController(agent, grid, policy, rng, cells[1:],
                                config.agents.goal_selection)]


def _spawn_follow(config: "SimulationConfig", grid: GridModel,
                  policy: PathPolicy, rng: np.random.Generator) -> List[AgentController]:
    chaser_pos, target_pos = _sample_cells(grid, rng, 2)
    chaser = Agent(1, chaser_pos, energy=config.agents.energy)
    target = Agent(2, target_pos, role="target")
    wander = WanderController(target, grid, policy, rng,
                              config.agents.move_steps, config.agents.pause_steps)
    # Chaser first: its recovery may relocate the target before the target moves
    return [
        FollowerController(chaser, grid, policy, rng, target, target_controller=wander),
        wander,
    ]


def _spawn_tag(config: "SimulationConfig", grid: GridModel,
               policy: PathPolicy, rng: np.random.Generator) -> List[AgentController]:
    cells = _sample_cells(grid, rng, config.agents.count)
    coordinator = TagCoordinator(it_id=1, cooldown=config.agents.tag_cooldown)
    controllers: List[AgentController] = []
    for agent_id, pos in enumerate(cells, start=1):
        agent = Agent(agent_id, pos, energy=config.agents.energy)
        controllers.append(TagController(agent, grid, policy, rng, coordinator))
    return controllers


SPAWNERS: Dict[str, Callable[..., List[AgentController]]] = {
    "navigator": _spawn_navigator,
    "fog": _spawn_fog,
    "multi_goal": _spawn_multi_goal,
    "follow": _spawn_follow,
    "tag": _spawn_tag,
}
