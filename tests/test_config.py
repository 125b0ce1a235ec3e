import math
from pathlib import Path

import pytest
import yaml

from gridworld_sim.config import load_config, parse_config
from gridworld_sim.model.errors import InvalidGridDimensions
from gridworld_sim.model.grid import Connectivity

CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"


def minimal(**sections):
    raw = {"grid": {"width": 10, "height": 8}, "simulation": {"max_steps": 50}}
    raw.update(sections)
    return raw


def test_defaults():
    config = parse_config(minimal())
    assert config.scenario == "navigator"
    assert config.generation.algorithm == "recursive_backtracking"
    assert config.pathfinding.connectivity_mode is Connectivity.ORTHOGONAL
    assert config.agents.energy == math.inf
    assert config.csv_enabled and config.snapshot_enabled
    assert not config.gif_enabled
    assert config.seed is None


def test_sections_are_parsed():
    config = parse_config(minimal(
        simulation={"scenario": "multi_goal", "max_steps": 20, "seed": 4},
        generation={"algorithm": "diamond_square", "wall_density": 0.3, "roughness": 0.9},
        pathfinding={"connectivity": "octile", "cost": "least", "channels": ["red"]},
        agents={"goal_count": 3, "goal_selection": "easiest", "energy": 40},
        clock={"speed": 0.2},
        export={"csv": False, "gif": True},
    ))
    assert config.scenario == "multi_goal"
    assert config.seed == 4
    assert config.generation.terrain_params().roughness == 0.9
    assert config.pathfinding.connectivity_mode is Connectivity.OCTILE
    assert config.pathfinding.channels == ["red"]
    assert config.agents.energy == 40.0
    assert config.clock.speed == 0.2
    assert not config.csv_enabled and config.gif_enabled


@pytest.mark.parametrize("section,values", [
    ("generation", {"algorithm": "kruskal"}),
    ("generation", {"wall_density": 1.2}),
    ("pathfinding", {"connectivity": "hex"}),
    ("pathfinding", {"cost": "scenic"}),
    ("pathfinding", {"channels": ["purple"]}),
    ("agents", {"goal_selection": "random"}),
    ("simulation", {"scenario": "racing", "max_steps": 5}),
    ("clock", {"speed": 0}),
])
def test_invalid_values_rejected(section, values):
    with pytest.raises(ValueError):
        parse_config(minimal(**{section: values}))


def test_tag_needs_two_agents():
    with pytest.raises(ValueError):
        parse_config(minimal(simulation={"scenario": "tag", "max_steps": 5},
                             agents={"count": 1}))


def test_bad_dimensions():
    with pytest.raises(InvalidGridDimensions):
        parse_config({"grid": {"width": 0, "height": 5}, "simulation": {}})


def test_load_config_from_file(tmp_path):
    path = tmp_path / "run.yaml"
    path.write_text(yaml.safe_dump(minimal(simulation={"scenario": "fog", "max_steps": 9})))
    config = load_config(path)
    assert config.scenario == "fog"
    assert config.max_steps == 9


@pytest.mark.parametrize("path", sorted(CONFIG_DIR.glob("*.yaml")), ids=lambda p: p.name)
def test_bundled_configs_load(path):
    config = load_config(path)
    assert config.grid.width > 0
