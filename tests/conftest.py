import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest

from gridworld_sim.model.grid import GridModel


def grid_from_rows(rows):
    """Build a grid from strings: '#' wall, '.' open. Row index is y."""
    grid = GridModel(len(rows[0]), len(rows))
    grid.walls = np.array([[ch == '#' for ch in row] for row in rows], dtype=bool)
    return grid


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def corridor_grid():
    return grid_from_rows([
        "#####",
        "#####",
        ".....",
        "#####",
        "#####",
    ])


@pytest.fixture
def open_grid():
    return GridModel(6, 6)
