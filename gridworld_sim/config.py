"""Configuration dataclasses and YAML loader for grid-world simulations."""

import math
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from pathlib import Path
import yaml

from .model.costs import CHANNELS, POLICIES
from .model.errors import InvalidGridDimensions
from .model.generator import ALGORITHMS, TerrainParams
from .model.grid import Connectivity

SCENARIOS = ("navigator", "fog", "multi_goal", "follow", "tag")
GOAL_SELECTIONS = ("nearest", "easiest")


@dataclass
class GridConfig:
    width: int
    height: int


@dataclass
class GenerationConfig:
    algorithm: str = "recursive_backtracking"
    wall_density: float = 0.0
    roughness: float = 0.5          # diamond-square noise factor
    terrain_intensity: float = 1.0
    color_intensity: float = 0.5    # rgb terrain
    color_variation: float = 0.8

    def terrain_params(self) -> TerrainParams:
        return TerrainParams(
            roughness=self.roughness,
            intensity=self.terrain_intensity,
            color_intensity=self.color_intensity,
            color_variation=self.color_variation
        )


@dataclass
class PathfindingConfig:
    connectivity: str = "orthogonal"
    cost: str = "shortest"
    channels: List[str] = field(default_factory=list)
    elevation_weight: float = 2.0

    @property
    def connectivity_mode(self) -> Connectivity:
        return Connectivity(self.connectivity)


@dataclass
class AgentConfig:
    count: int = 1
    energy: float = math.inf
    vision_range: float = 3.0
    goal_count: int = 5
    goal_selection: str = "nearest"
    move_steps: int = 5      # follow: target walking phase
    pause_steps: int = 2     # follow: target pause phase
    tag_cooldown: int = 2


@dataclass
class ClockConfig:
    speed: float = 0.5                  # seconds per simulation step
    frame_ms: float = 1000.0 / 60.0     # synthetic display refresh interval


@dataclass
class SimulationConfig:
    grid: GridConfig
    scenario: str
    max_steps: int
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    pathfinding: PathfindingConfig = field(default_factory=PathfindingConfig)
    agents: AgentConfig = field(default_factory=AgentConfig)
    clock: ClockConfig = field(default_factory=ClockConfig)

    # Export flags (can be overridden by CLI)
    csv_enabled: bool = True
    snapshot_enabled: bool = True
    gif_enabled: bool = False
    quiet: bool = False
    seed: Optional[int] = None
    out_dir: Path = field(default_factory=lambda: Path("./output"))


def _choice(value: str, allowed, what: str) -> str:
    if value not in allowed:
        raise ValueError(f"Unknown {what}: {value} (expected one of {', '.join(allowed)})")
    return value


def validate_config(config: SimulationConfig) -> SimulationConfig:
    """Reject parameters the engine cannot run with."""
    if config.grid.width <= 0 or config.grid.height <= 0:
        raise InvalidGridDimensions(config.grid.width, config.grid.height)
    _choice(config.scenario, SCENARIOS, "scenario")
    _choice(config.generation.algorithm, ALGORITHMS, "algorithm")
    _choice(config.pathfinding.connectivity,
            [c.value for c in Connectivity], "connectivity")
    _choice(config.pathfinding.cost, POLICIES, "cost policy")
    for channel in config.pathfinding.channels:
        _choice(channel, CHANNELS, "colour channel")
    _choice(config.agents.goal_selection, GOAL_SELECTIONS, "goal selection")

    if not 0.0 <= config.generation.wall_density <= 1.0:
        raise ValueError(f"wall_density must be in [0, 1], got {config.generation.wall_density}")
    if config.max_steps < 0:
        raise ValueError("max_steps must not be negative")
    if config.clock.speed <= 0 or config.clock.frame_ms <= 0:
        raise ValueError("clock speed and frame_ms must be positive")
    if config.scenario == "tag" and config.agents.count < 2:
        raise ValueError("tag needs at least 2 agents")
    return config


def _parse_generation(raw: Dict[str, Any]) -> GenerationConfig:
    defaults = GenerationConfig()
    return GenerationConfig(
        algorithm=raw.get('algorithm', defaults.algorithm),
        wall_density=float(raw.get('wall_density', defaults.wall_density)),
        roughness=float(raw.get('roughness', defaults.roughness)),
        terrain_intensity=float(raw.get('terrain_intensity', defaults.terrain_intensity)),
        color_intensity=float(raw.get('color_intensity', defaults.color_intensity)),
        color_variation=float(raw.get('color_variation', defaults.color_variation))
    )


def _parse_pathfinding(raw: Dict[str, Any]) -> PathfindingConfig:
    defaults = PathfindingConfig()
    return PathfindingConfig(
        connectivity=raw.get('connectivity', defaults.connectivity),
        cost=raw.get('cost', defaults.cost),
        channels=list(raw.get('channels', [])),
        elevation_weight=float(raw.get('elevation_weight', defaults.elevation_weight))
    )


def _parse_agents(raw: Dict[str, Any]) -> AgentConfig:
    defaults = AgentConfig()
    energy = raw.get('energy')
    return AgentConfig(
        count=int(raw.get('count', defaults.count)),
        energy=math.inf if energy is None else float(energy),
        vision_range=float(raw.get('vision_range', defaults.vision_range)),
        goal_count=int(raw.get('goal_count', defaults.goal_count)),
        goal_selection=raw.get('goal_selection', defaults.goal_selection),
        move_steps=int(raw.get('move_steps', defaults.move_steps)),
        pause_steps=int(raw.get('pause_steps', defaults.pause_steps)),
        tag_cooldown=int(raw.get('tag_cooldown', defaults.tag_cooldown))
    )


def _parse_clock(raw: Dict[str, Any]) -> ClockConfig:
    defaults = ClockConfig()
    return ClockConfig(
        speed=float(raw.get('speed', defaults.speed)),
        frame_ms=float(raw.get('frame_ms', defaults.frame_ms))
    )


def parse_config(raw: Dict[str, Any]) -> SimulationConfig:
    """Build and validate a config from already-loaded YAML data."""
    grid = GridConfig(
        width=int(raw['grid']['width']),
        height=int(raw['grid']['height'])
    )

    # Parse simulation config
    sim_raw = raw['simulation']

    # Parse export config (optional)
    export_raw = raw.get('export', {})

    config = SimulationConfig(
        grid=grid,
        scenario=sim_raw.get('scenario', 'navigator'),
        max_steps=int(sim_raw.get('max_steps', 500)),
        generation=_parse_generation(raw.get('generation', {})),
        pathfinding=_parse_pathfinding(raw.get('pathfinding', {})),
        agents=_parse_agents(raw.get('agents', {})),
        clock=_parse_clock(raw.get('clock', {})),
        csv_enabled=export_raw.get('csv', True),
        snapshot_enabled=export_raw.get('snapshot', True),
        gif_enabled=export_raw.get('gif', False),
        seed=sim_raw.get('seed')
    )
    return validate_config(config)


def load_config(config_path: Path) -> SimulationConfig:
    """Load and validate YAML configuration file."""
    with open(config_path) as f:
        raw = yaml.safe_load(f)
    return parse_config(raw)
