import numpy as np
import pytest

from gridworld_sim.model.errors import InvalidGridDimensions
from gridworld_sim.model.generator import (ALGORITHMS, TerrainParams, apply_density,
                                           carve_corridor, diamond_square,
                                           generate_grid, prims, recursive_backtracking,
                                           recursive_division, repair_connectivity,
                                           rgb_terrain)
from gridworld_sim.model.grid import GridModel


def _open_adjacencies(walls):
    open_cells = ~walls
    horizontal = np.count_nonzero(open_cells[:, :-1] & open_cells[:, 1:])
    vertical = np.count_nonzero(open_cells[:-1, :] & open_cells[1:, :])
    return int(horizontal + vertical)


def _assert_perfect_maze(grid):
    """Connected and acyclic: open cells form a spanning tree."""
    open_count = int(np.count_nonzero(~grid.walls))
    reached = grid.reachable_mask((0, 0))
    assert int(np.count_nonzero(reached)) == open_count
    assert _open_adjacencies(grid.walls) == open_count - 1


@pytest.mark.parametrize("generator", [recursive_backtracking, prims])
@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_carved_mazes_are_perfect(generator, seed):
    grid = generator(15, 11, np.random.default_rng(seed))
    _assert_perfect_maze(grid)
    # Every even-lattice cell is carved
    assert not grid.walls[::2, ::2].any()


def test_perfect_maze_on_even_dimensions():
    grid = recursive_backtracking(12, 8, np.random.default_rng(5))
    _assert_perfect_maze(grid)


def test_recursive_division_keeps_border_and_connectivity():
    grid = recursive_division(21, 15, np.random.default_rng(3))
    assert grid.walls[0, :].all() and grid.walls[-1, :].all()
    assert grid.walls[:, 0].all() and grid.walls[:, -1].all()

    interior = ~grid.walls
    reached = grid.reachable_mask((1, 1))
    assert np.array_equal(reached, interior)


def test_diamond_square_range_and_shape():
    grid = diamond_square(20, 13, np.random.default_rng(8), roughness=0.7)
    assert grid.elevation.shape == (13, 20)
    assert grid.elevation.min() >= 0.0
    assert grid.elevation.max() <= 100.0
    assert np.ptp(grid.elevation) > 0
    assert not grid.walls.any()


def test_rgb_terrain_channels_clamped():
    grid = rgb_terrain(10, 10, np.random.default_rng(4), color_intensity=1.0,
                       color_variation=2.0)
    assert grid.rgb.shape == (10, 10, 3)
    assert grid.rgb.min() >= 0
    assert grid.rgb.max() <= 255


def test_density_pass_protects_endpoints(rng):
    grid = GridModel(8, 8)
    added = apply_density(grid, 1.0, rng, protected=[(0, 0), (7, 7)])
    assert added == 62
    assert not grid.is_wall(0, 0)
    assert not grid.is_wall(7, 7)


def test_full_density_is_repaired():
    grid = generate_grid(10, 10, density=1.0, algorithm="open",
                         rng=np.random.default_rng(0))
    assert grid.is_reachable((0, 0), (9, 9))


def test_repair_carves_only_when_needed():
    grid = GridModel(5, 5)
    assert repair_connectivity(grid, (0, 0), (4, 4)) is False

    grid.walls[:, 2] = True
    assert repair_connectivity(grid, (0, 0), (4, 4)) is True
    assert grid.is_reachable((0, 0), (4, 4))


def test_corridor_steps_x_then_y():
    grid = GridModel(4, 4)
    grid.walls[:, :] = True
    carve_corridor(grid, (0, 0), (3, 3))
    opened = {(int(x), int(y)) for y, x in zip(*np.where(~grid.walls))}
    assert opened == {(0, 0), (1, 0), (1, 1), (2, 1), (2, 2), (3, 2), (3, 3)}


@pytest.mark.parametrize("algorithm", ALGORITHMS)
@pytest.mark.parametrize("density", [0.0, 0.3, 0.6, 0.95])
def test_generated_grids_are_solvable(algorithm, density):
    for seed in range(3):
        grid = generate_grid(17, 13, density=density, algorithm=algorithm,
                             params=TerrainParams(roughness=0.6),
                             rng=np.random.default_rng(seed))
        assert grid.is_reachable((0, 0), (16, 12))


def test_custom_endpoints_are_repaired():
    grid = generate_grid(11, 11, density=0.5, start=(3, 4), goal=(9, 1),
                         rng=np.random.default_rng(7))
    assert grid.is_reachable((3, 4), (9, 1))


def test_same_seed_same_grid():
    a = generate_grid(15, 15, density=0.2, algorithm="prims",
                      rng=np.random.default_rng(42))
    b = generate_grid(15, 15, density=0.2, algorithm="prims",
                      rng=np.random.default_rng(42))
    assert np.array_equal(a.walls, b.walls)


def test_invalid_parameters():
    with pytest.raises(InvalidGridDimensions):
        generate_grid(0, 10)
    with pytest.raises(ValueError):
        generate_grid(10, 10, density=1.5)
    with pytest.raises(ValueError):
        generate_grid(10, 10, algorithm="kruskal")
