"""
Agent controllers: when to search, how to consume the resulting path.

Every controller runs the same state machine:

    Idle -> Planning -> Following -> Following (next step)
                                  -> Replanning -> Planning
                                  -> Idle (goal reached / exhausted)
    Planning -(no path)-> Idle or Teleport -> Planning

A simulation step calls propose_move() on every controller against the
same snapshot of positions, then commit() on each, then resolve().
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .agent import Agent, AgentState, StepEffects
from .costs import PathPolicy
from .errors import NoPathFound
from .grid import GridModel, Passable, Position
from .pathfinding import Path, find_path_with
from .vision import FogOfWar

logger = logging.getLogger(__name__)

TRANSITIONS = {
    AgentState.IDLE: {AgentState.PLANNING},
    AgentState.PLANNING: {AgentState.FOLLOWING, AgentState.IDLE, AgentState.TELEPORT},
    AgentState.FOLLOWING: {AgentState.FOLLOWING, AgentState.REPLANNING,
                           AgentState.PLANNING, AgentState.IDLE, AgentState.TELEPORT},
    AgentState.REPLANNING: {AgentState.PLANNING, AgentState.IDLE},
    AgentState.TELEPORT: {AgentState.PLANNING, AgentState.IDLE},
}


class AgentController:
    """Base re-planning controller for one agent."""

    def __init__(self, agent: Agent, grid: GridModel, policy: PathPolicy,
                 rng: np.random.Generator):
        self.agent = agent
        self.grid = grid
        self.policy = policy
        self.rng = rng
        self.path: Optional[Path] = None
        self.status = "idle"
        self.replan_count = 0
        self.failed_plans = 0
        self.teleport_count = 0
        self._pending_replan: Optional[str] = None

    # -------------------- state machine --------------------

    @property
    def state(self) -> AgentState:
        return self.agent.state

    def _transition(self, new_state: AgentState, reason: str = "") -> None:
        old = self.agent.state
        if new_state is not old and new_state not in TRANSITIONS[old]:
            raise RuntimeError(f"Illegal transition {old.value} -> {new_state.value}")
        self.agent.state = new_state
        if reason:
            self.status = reason
        logger.debug("Agent %d: %s -> %s (%s)", self.agent.id,
                     old.value, new_state.value, reason)

    def start(self) -> None:
        """Leave Idle and plan on the next step."""
        if self.state is AgentState.IDLE:
            self._transition(AgentState.PLANNING, "planning")

    def halt(self, reason: str) -> None:
        self.path = None
        self._transition(AgentState.IDLE, reason)

    def request_replan(self, reason: str) -> None:
        """Mark the current path stale (grid edit, goal change, ...)."""
        self._pending_replan = reason

    def relocate(self, position: Position) -> None:
        """Move the agent between steps without walking there."""
        self.agent.teleport(position)

    def is_done(self) -> bool:
        return self.state is AgentState.IDLE

    # -------------------- policy hooks --------------------

    def current_goal(self) -> Optional[Position]:
        raise NotImplementedError

    def open_goals(self) -> List[Position]:
        """Goals still to be reached (for snapshots)."""
        goal = self.current_goal()
        return [] if goal is None else [goal]

    def passable(self) -> Optional[Passable]:
        """Neighbor-validity predicate for search (None = not a wall)."""
        return None

    def replan_reason(self) -> Optional[str]:
        """Triggers checked before every step along a path."""
        if self._pending_replan:
            reason, self._pending_replan = self._pending_replan, None
            return reason
        goal = self.current_goal()
        if goal is not None and self.path is not None and self.path.steps \
                and self.path.goal != goal:
            return "goal moved"
        return None

    def on_step(self, agent: Agent, cell: Position) -> StepEffects:
        """Side effects of entering cell."""
        return StepEffects()

    def on_no_path(self) -> None:
        """Recovery when planning fails. Default: halt."""
        self.halt("no path")

    def on_path_complete(self) -> None:
        if self.agent.position == self.current_goal():
            self.halt("goal reached")
        else:
            self._transition(AgentState.REPLANNING, "path exhausted")
            self.replan_count += 1

    def on_teleport(self) -> bool:
        """Relocate during recovery. Returns False to give up."""
        return False

    def resolve(self, step: int) -> None:
        """Post-commit interactions with other agents."""

    def counters(self) -> Dict[str, int]:
        return {
            "replans": self.replan_count,
            "failed_plans": self.failed_plans,
            "teleports": self.teleport_count,
        }

    # -------------------- planning --------------------

    def search(self, goal: Position) -> Path:
        return find_path_with(self.grid, self.agent.position, goal,
                              self.policy, self.passable())

    def plan(self) -> bool:
        goal = self.current_goal()
        if goal is None:
            self.halt("no goal")
            return False
        try:
            self.path = self.search(goal)
        except NoPathFound:
            self.path = None
            self.failed_plans += 1
            logger.debug("Agent %d: no path to %s", self.agent.id, goal)
            self.on_no_path()
            return False

        if self.path.is_exhausted():
            self.on_path_complete()
            return False
        self._transition(AgentState.FOLLOWING, "following")
        return True

    # -------------------- step protocol --------------------

    def propose_move(self) -> Optional[Position]:
        """Phase 1: plan if needed and return the intended next cell."""
        if self.state is AgentState.TELEPORT:
            if not self.on_teleport():
                self.halt("teleport failed")
                return None
            self.teleport_count += 1
            self._transition(AgentState.PLANNING, "teleported")

        if self.state is AgentState.REPLANNING:
            self._transition(AgentState.PLANNING, "replanning")

        if self.state is AgentState.PLANNING:
            self._pending_replan = None
            if not self.plan():
                return None

        if self.state is not AgentState.FOLLOWING:
            return None

        reason = self.replan_reason()
        if reason:
            self.replan_count += 1
            self._transition(AgentState.REPLANNING, reason)
            self._transition(AgentState.PLANNING, "replanning")
            if not self.plan():
                return None

        nxt = self.path.next_step()
        if nxt is None:
            self.on_path_complete()
        return nxt

    def commit(self) -> StepEffects:
        """Phase 2: advance one cell and apply side effects."""
        cost = self.path.next_cost()
        cell = self.agent.follow(self.path)
        effects = self.on_step(self.agent, cell)
        effects.cost = cost

        if self.agent.is_exhausted():
            self.halt("out of energy")
        elif self.state is AgentState.FOLLOWING and self.path.is_exhausted():
            self.on_path_complete()
        return effects


class NavigatorController(AgentController):
    """Single agent heading for one static goal."""

    def __init__(self, agent: Agent, grid: GridModel, policy: PathPolicy,
                 rng: np.random.Generator, goal: Position):
        super().__init__(agent, grid, policy, rng)
        self.goal = goal

    def current_goal(self) -> Optional[Position]:
        return self.goal

    def set_goal(self, position: Position) -> None:
        """User action: move the goal (must be an open cell)."""
        if self.grid.is_wall(*position):
            raise ValueError(f"Goal {position} is a wall")
        self.goal = position
        self._restart("goal changed")

    def set_start(self, position: Position) -> None:
        """User action: move the agent."""
        if self.grid.is_wall(*position):
            raise ValueError(f"Start {position} is a wall")
        self.agent.teleport(position)
        self._restart("start changed")

    def _restart(self, reason: str) -> None:
        if self.state is AgentState.IDLE:
            self.path = None
            self._transition(AgentState.PLANNING, reason)
        else:
            self.request_replan(reason)


class FogController(NavigatorController):
    """
    Navigator under partial observability.

    Plans through unobserved cells and re-plans when the next cell of its
    path turns out to be a wall.
    """

    def __init__(self, agent: Agent, grid: GridModel, policy: PathPolicy,
                 rng: np.random.Generator, goal: Position, vision_range: float):
        super().__init__(agent, grid, policy, rng, goal)
        self.fog = FogOfWar(grid, vision_range)
        self.fog.update(agent.position)
        self.backtrack_count = 0

    def passable(self) -> Optional[Passable]:
        return self.fog.believed_passable

    def replan_reason(self) -> Optional[str]:
        reason = super().replan_reason()
        if reason:
            return reason
        nxt = self.path.next_step() if self.path else None
        if nxt is not None and self.fog.is_known_wall(*nxt):
            self.backtrack_count += 1
            return "wall discovered"
        return None

    def on_step(self, agent: Agent, cell: Position) -> StepEffects:
        return StepEffects(discovered_walls=self.fog.update(cell))

    def set_start(self, position: Position) -> None:
        super().set_start(position)
        self.fog.update(position)

    def relocate(self, position: Position) -> None:
        super().relocate(position)
        self.fog.update(position)

    def counters(self) -> Dict[str, int]:
        counts = super().counters()
        counts["backtracks"] = self.backtrack_count
        return counts


@dataclass
class Goal:
    x: int
    y: int
    collected: bool = False
    path_cost: float = 0.0

    @property
    def position(self) -> Position:
        return (self.x, self.y)


class MultiGoalController(AgentController):
    """
    Collect every goal, choosing the next one by fewest steps ('nearest')
    or by lowest path cost ('easiest').
    """

    SELECTIONS = ("nearest", "easiest")

    def __init__(self, agent: Agent, grid: GridModel, policy: PathPolicy,
                 rng: np.random.Generator, goals: Sequence[Position],
                 selection: str = "nearest"):
        super().__init__(agent, grid, policy, rng)
        if selection not in self.SELECTIONS:
            raise ValueError(f"Unknown goal selection: {selection}")
        self.goals = [Goal(x, y) for x, y in goals]
        self.selection = selection
        self.target_index: Optional[int] = None

    def uncollected(self) -> List[int]:
        return [i for i, g in enumerate(self.goals) if not g.collected]

    def current_goal(self) -> Optional[Position]:
        if self.target_index is None:
            return None
        return self.goals[self.target_index].position

    def open_goals(self) -> List[Position]:
        return [self.goals[i].position for i in self.uncollected()]

    def plan(self) -> bool:
        # A goal under the agent is collected without moving
        self.on_step(self.agent, self.agent.position)
        remaining = self.uncollected()
        if not remaining:
            self.halt("all goals collected")
            return False

        best = None
        for index in remaining:
            try:
                path = self.search(self.goals[index].position)
            except NoPathFound:
                continue
            metric = len(path) if self.selection == "nearest" else path.cost
            if best is None or metric < best[0]:
                best = (metric, index, path)

        if best is None:
            self.failed_plans += 1
            self.halt("no reachable goal")
            return False

        _, self.target_index, self.path = best
        self.goals[self.target_index].path_cost = self.path.cost
        self._transition(AgentState.FOLLOWING, f"heading to goal {self.target_index}")
        return True

    def on_step(self, agent: Agent, cell: Position) -> StepEffects:
        for index in self.uncollected():
            if self.goals[index].position == cell:
                self.goals[index].collected = True
                agent.collect("goals")
                return StepEffects(collected_goal=index)
        return StepEffects()

    def on_path_complete(self) -> None:
        self.target_index = None
        if self.uncollected():
            self._transition(AgentState.PLANNING, "next goal")
        else:
            self.halt("all goals collected")

    def counters(self) -> Dict[str, int]:
        counts = super().counters()
        counts["goals_collected"] = len(self.goals) - len(self.uncollected())
        return counts


class WanderController(AgentController):
    """
    Random-walk target: moves for move_steps steps, then pauses for
    pause_steps steps. Never searches.
    """

    def __init__(self, agent: Agent, grid: GridModel, policy: PathPolicy,
                 rng: np.random.Generator, move_steps: int = 5, pause_steps: int = 2):
        super().__init__(agent, grid, policy, rng)
        self.move_steps = move_steps
        self.pause_steps = pause_steps
        self.paused = False
        self._phase_steps = 0
        self._next: Optional[Position] = None

    def current_goal(self) -> Optional[Position]:
        return None

    def start(self) -> None:
        super().start()
        self._transition(AgentState.FOLLOWING, "moving")

    def is_done(self) -> bool:
        return True

    def propose_move(self) -> Optional[Position]:
        self._phase_steps += 1
        limit = self.pause_steps if self.paused else self.move_steps
        if self._phase_steps > limit:
            self.paused = not self.paused
            self._phase_steps = 1
            self.status = "paused" if self.paused else "moving"

        self._next = None
        if self.paused:
            return None
        options = self.grid.neighbors(*self.agent.position, self.policy.connectivity)
        if options:
            self._next = options[int(self.rng.integers(len(options)))]
        return self._next

    def commit(self) -> StepEffects:
        cost = self.policy.cost(self.grid, self.agent.position, self._next)
        self.agent.move_to(self._next, cost)
        return StepEffects(cost=cost)


def teleport_pair(grid: GridModel, rng: np.random.Generator,
                  agents: Sequence[Agent]) -> bool:
    """Place agents on distinct open cells of one connected region."""
    labels, count = grid.region_labels()
    if count == 0:
        return False
    sizes = np.bincount(labels.ravel())[1:]
    viable = [i + 1 for i, size in enumerate(sizes) if size >= len(agents)]
    if not viable:
        return False

    region = viable[int(rng.integers(len(viable)))]
    ys, xs = np.where(labels == region)
    picks = rng.choice(len(xs), size=len(agents), replace=False)
    for agent, idx in zip(agents, picks):
        agent.teleport((int(xs[idx]), int(ys[idx])))
    return True


class FollowerController(AgentController):
    """
    Chase a moving target. A target move triggers a re-plan. Catching the
    target while it is paused, or failing to find a path, teleports both
    into one region.

    Without a target_controller the target never moves and is always
    catchable.
    """

    def __init__(self, agent: Agent, grid: GridModel, policy: PathPolicy,
                 rng: np.random.Generator, target: Agent,
                 target_controller: Optional[WanderController] = None):
        super().__init__(agent, grid, policy, rng)
        self.target = target
        self.target_controller = target_controller
        self.catch_count = 0

    @property
    def target_paused(self) -> bool:
        return self.target_controller is None or self.target_controller.paused

    def current_goal(self) -> Optional[Position]:
        return self.target.position

    def open_goals(self) -> List[Position]:
        return []

    def on_no_path(self) -> None:
        self.path = None
        self._transition(AgentState.TELEPORT, "no path")

    def on_teleport(self) -> bool:
        return teleport_pair(self.grid, self.rng, [self.agent, self.target])

    def on_path_complete(self) -> None:
        self._transition(AgentState.PLANNING, "path exhausted")

    def resolve(self, step: int) -> None:
        if self.state is AgentState.IDLE:
            return
        if self.target_paused and self.agent.position == self.target.position:
            self.catch_count += 1
            self.path = None
            self._transition(AgentState.TELEPORT, "caught target")

    def counters(self) -> Dict[str, int]:
        counts = super().counters()
        counts["catches"] = self.catch_count
        return counts


class TagCoordinator:
    """Shared tag state: who is 'it' and when the last tag happened."""

    def __init__(self, it_id: int, cooldown: int = 2):
        self.it_id = it_id
        self.cooldown = cooldown
        self.last_tag_step = -cooldown
        self.tag_count = 0
        self.generation = 0
        self.agents: Dict[int, Agent] = {}
        self._resolved_step = -1

    def register(self, agent: Agent) -> None:
        self.agents[agent.id] = agent

    def resolve(self, step: int) -> None:
        """Tag the first evader within Chebyshev distance 1 of 'it'."""
        if step == self._resolved_step:
            return
        self._resolved_step = step
        if step - self.last_tag_step < self.cooldown:
            return

        it = self.agents[self.it_id]
        for agent in self.agents.values():
            if agent.id == self.it_id:
                continue
            if (abs(agent.position[0] - it.position[0]) <= 1
                    and abs(agent.position[1] - it.position[1]) <= 1):
                logger.debug("Agent %d tagged agent %d at step %d",
                             it.id, agent.id, step)
                self.it_id = agent.id
                self.last_tag_step = step
                self.tag_count += 1
                self.generation += 1
                return


class TagController(AgentController):
    """'It' chases the nearest robot; the others flee."""

    FLEE_SAMPLES = 10

    def __init__(self, agent: Agent, grid: GridModel, policy: PathPolicy,
                 rng: np.random.Generator, coordinator: TagCoordinator):
        super().__init__(agent, grid, policy, rng)
        self.coordinator = coordinator
        coordinator.register(agent)
        self._goal: Optional[Position] = None
        self._prey: Optional[int] = None
        self._generation = coordinator.generation

    @property
    def is_it(self) -> bool:
        return self.coordinator.it_id == self.agent.id

    def current_goal(self) -> Optional[Position]:
        if self._prey is not None:
            return self.coordinator.agents[self._prey].position
        return self._goal

    def open_goals(self) -> List[Position]:
        return []

    def plan(self) -> bool:
        self._generation = self.coordinator.generation
        if self.is_it:
            found = self._plan_chase()
        else:
            found = self._plan_escape()
        if not found:
            self.failed_plans += 1
            self.on_no_path()
            return False
        self._transition(AgentState.FOLLOWING, self.status)
        return True

    def _plan_chase(self) -> bool:
        self._goal = None
        best = None
        for other in self.coordinator.agents.values():
            if other.id == self.agent.id:
                continue
            try:
                path = self.search(other.position)
            except NoPathFound:
                continue
            if path.steps and (best is None or len(path) < len(best[1])):
                best = (other.id, path)
        if best is None:
            self._prey = None
            return False
        self._prey, self.path = best
        self.status = f"chasing {self._prey}"
        return True

    def _plan_escape(self) -> bool:
        self._prey = None
        it = self.coordinator.agents[self.coordinator.it_id]
        best_distance = -1
        best = None
        for _ in range(self.FLEE_SAMPLES):
            candidate = self.grid.random_open_cell(self.rng)
            distance = abs(candidate[0] - it.position[0]) + abs(candidate[1] - it.position[1])
            if distance <= best_distance:
                continue
            try:
                path = self.search(candidate)
            except NoPathFound:
                continue
            if path.steps:
                best_distance = distance
                best = (candidate, path)
        if best is None:
            return False
        self._goal, self.path = best
        self.status = "escaping"
        return True

    def replan_reason(self) -> Optional[str]:
        if self._generation != self.coordinator.generation:
            self._generation = self.coordinator.generation
            return "tag"
        return super().replan_reason()

    def on_no_path(self) -> None:
        self.path = None
        self._transition(AgentState.TELEPORT, "no path")

    def on_teleport(self) -> bool:
        occupied = [a.position for a in self.coordinator.agents.values()]
        try:
            self.agent.teleport(self.grid.random_open_cell(self.rng, exclude=occupied))
        except ValueError:
            return False
        return True

    def on_path_complete(self) -> None:
        self._transition(AgentState.PLANNING, "path exhausted")

    def resolve(self, step: int) -> None:
        self.coordinator.resolve(step)

    def is_done(self) -> bool:
        return False

    def counters(self) -> Dict[str, int]:
        counts = super().counters()
        counts["tags"] = self.coordinator.tag_count if self.is_it else 0
        return counts
