from gridworld_sim.model.grid import GridModel
from gridworld_sim.model.vision import FogOfWar
from conftest import grid_from_rows


def test_euclidean_radius():
    fog = FogOfWar(GridModel(7, 7), vision_range=2.0)
    fog.update((3, 3))
    assert fog.visible[3, 5]
    assert fog.visible[4, 4]
    assert not fog.visible[5, 5]
    assert fog.visible.sum() == 13


def test_observed_accumulates_and_counts_new_walls():
    grid = grid_from_rows([
        ".....#",
        "......",
    ])
    fog = FogOfWar(grid, vision_range=1.0)
    assert fog.update((0, 0)) == 0
    assert not fog.is_known_wall(5, 0)
    assert fog.believed_passable(5, 0)

    assert fog.update((4, 0)) == 1
    assert fog.update((4, 1)) == 0
    assert fog.observed[0, 0]
    assert not fog.visible[0, 0]
    assert fog.is_known_wall(5, 0)
    assert not fog.believed_passable(5, 0)
    assert not fog.believed_passable(-1, 0)


def test_reset():
    fog = FogOfWar(GridModel(3, 3), vision_range=5)
    fog.update((1, 1))
    fog.reset()
    assert not fog.observed.any()
    assert not fog.visible.any()
