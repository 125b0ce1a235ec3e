import math

import numpy as np
import pytest

from gridworld_sim.model.costs import (POLICIES, chebyshev, color_change_cost, color_cost,
                                       highest_cost, make_policy, manhattan,
                                       movement_cost, octile, zero_heuristic)
from gridworld_sim.model.grid import Connectivity, GridModel


def test_movement_cost_diagonal():
    grid = GridModel(3, 3)
    assert movement_cost(grid, (0, 0), (1, 0)) == 1.0
    assert movement_cost(grid, (0, 0), (1, 1)) == pytest.approx(math.sqrt(2))


def test_heuristics():
    assert manhattan((0, 0), (3, 4)) == 7
    assert chebyshev((0, 0), (3, 4)) == 4
    assert octile((0, 0), (3, 4)) == pytest.approx(3 * math.sqrt(2) + 1)
    assert zero_heuristic((0, 0), (9, 9)) == 0


def test_highest_cost_floored():
    grid = GridModel(2, 1)
    grid.elevation[0, 1] = 100.0
    assert highest_cost(grid, (0, 0), (1, 0)) == 0.0
    grid.elevation[0, 1] = 20.0
    assert highest_cost(grid, (0, 0), (1, 0)) == pytest.approx(0.8)


def test_color_costs_stay_in_unit_range():
    grid = GridModel(2, 1)
    grid.rgb[0, 1] = (255, 255, 0)
    most = color_cost("most", ["red", "green"])
    least = color_cost("least", ["red", "green"])
    assert most(grid, (0, 0), (1, 0)) == pytest.approx(0.0)
    assert least(grid, (0, 0), (1, 0)) == pytest.approx(1.0)

    grid.rgb[0, 1] = (0, 0, 0)
    assert most(grid, (0, 0), (1, 0)) == pytest.approx(1.0)
    assert least(grid, (0, 0), (1, 0)) == pytest.approx(0.0)


def test_color_change_cost():
    grid = GridModel(2, 1)
    cost = color_change_cost(["blue"])
    assert cost(grid, (0, 0), (1, 0)) == 0.0
    grid.rgb[0, 1] = (0, 0, 255)
    assert cost(grid, (0, 0), (1, 0)) == pytest.approx(1.0)


def test_no_channels_means_movement_cost():
    assert color_cost("most", []) is movement_cost
    assert color_change_cost([]) is movement_cost


def test_unknown_names_rejected():
    with pytest.raises(ValueError):
        color_cost("medium", ["red"])
    with pytest.raises(ValueError):
        color_cost("most", ["purple"])
    with pytest.raises(ValueError):
        make_policy("scenic")


@pytest.mark.parametrize("name", POLICIES)
def test_every_policy_is_non_negative(name):
    rng = np.random.default_rng(0)
    grid = GridModel(4, 4)
    grid.elevation = rng.uniform(0, 100, (4, 4))
    grid.rgb = rng.integers(0, 256, (4, 4, 3)).astype(np.int32)
    policy = make_policy(name, Connectivity.OCTILE, channels=["red", "blue"])
    assert policy.connectivity is Connectivity.OCTILE
    for cell in [(0, 0), (1, 2), (3, 3)]:
        for neighbor in grid.neighbors(*cell, Connectivity.OCTILE):
            assert policy.cost(grid, cell, neighbor) >= 0


def test_zero_cost_policies_use_zero_heuristic():
    assert make_policy("highest").heuristic is zero_heuristic
    assert make_policy("elevation").heuristic is zero_heuristic
    assert make_policy("least", channels=["red"]).heuristic is zero_heuristic
    assert make_policy("shortest").heuristic is manhattan
    assert make_policy("shortest", Connectivity.OCTILE).heuristic is octile
