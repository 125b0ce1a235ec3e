import numpy as np
import pytest

from gridworld_sim.model.errors import InvalidGridDimensions, OutOfBoundsError
from gridworld_sim.model.grid import Connectivity, GridModel
from conftest import grid_from_rows


def test_invalid_dimensions_rejected():
    with pytest.raises(InvalidGridDimensions):
        GridModel(0, 5)
    with pytest.raises(ValueError):
        GridModel(3, -1)


def test_cell_lookup_is_bounds_checked(open_grid):
    cell = open_grid.cell(2, 3)
    assert (cell.x, cell.y) == (2, 3)
    assert cell.is_wall is False
    assert cell.elevation == 50.0
    assert cell.rgb == (0, 0, 0)

    with pytest.raises(OutOfBoundsError):
        open_grid.cell(6, 0)
    with pytest.raises(IndexError):
        open_grid.is_wall(-1, 0)
    with pytest.raises(OutOfBoundsError):
        open_grid.toggle_wall(0, 6)


def test_toggle_wall_returns_new_state(open_grid):
    assert open_grid.toggle_wall(1, 1) is True
    assert open_grid.is_wall(1, 1)
    assert open_grid.toggle_wall(1, 1) is False
    assert not open_grid.is_wall(1, 1)


def test_orthogonal_neighbors_stay_in_bounds(open_grid):
    assert sorted(open_grid.neighbors(0, 0)) == [(0, 1), (1, 0)]
    assert len(open_grid.neighbors(3, 3)) == 4


def test_octile_neighbors_block_corner_cutting():
    grid = grid_from_rows([
        "...",
        ".#.",
        "...",
    ])
    # (0,1) -> (1,0) would clip the wall at (1,1)
    assert (1, 0) not in grid.neighbors(0, 1, Connectivity.OCTILE)
    assert (0, 0) in grid.neighbors(0, 1, Connectivity.OCTILE)

    open3 = GridModel(3, 3)
    assert len(open3.neighbors(1, 1, Connectivity.OCTILE)) == 8


def test_passable_predicate_overrides_walls(open_grid):
    open_grid.set_wall(1, 0)
    everything = open_grid.neighbors(0, 0, passable=open_grid.in_bounds)
    assert (1, 0) in everything


def test_reachability_and_regions():
    grid = grid_from_rows([
        "..#..",
        "..#..",
        "..#..",
    ])
    assert grid.is_reachable((0, 0), (1, 2))
    assert not grid.is_reachable((0, 0), (4, 0))

    labels, count = grid.region_labels()
    assert count == 2
    assert labels[0, 0] != labels[0, 4]
    assert labels[0, 2] == 0


def test_random_open_cell_respects_exclusions(rng):
    grid = grid_from_rows([
        "#.#",
        "#.#",
    ])
    assert grid.random_open_cell(rng, exclude=[(1, 0)]) == (1, 1)
    with pytest.raises(ValueError):
        grid.random_open_cell(rng, exclude=[(1, 0), (1, 1)])


def test_copy_is_independent(open_grid):
    clone = open_grid.copy()
    clone.set_wall(0, 0)
    clone.elevation[0, 0] = 99.0
    assert not open_grid.is_wall(0, 0)
    assert open_grid.elevation[0, 0] == 50.0
    assert np.array_equal(clone.rgb, open_grid.rgb)
