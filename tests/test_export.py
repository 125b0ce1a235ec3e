import csv

import numpy as np
from PIL import Image

from gridworld_sim.export.csv_writer import CSVWriter
from gridworld_sim.export.reporter import Reporter
from gridworld_sim.export.visualizer import Visualizer
from gridworld_sim.model.agent import Agent
from gridworld_sim.model.controller import FogController
from gridworld_sim.model.costs import make_policy
from gridworld_sim.model.engine import SimulationEngine
from gridworld_sim.model.grid import GridModel


def fog_engine():
    grid = GridModel(8, 6)
    grid.walls[2, 1:6] = True
    grid.elevation = np.linspace(0, 100, 48).reshape(6, 8)
    rng = np.random.default_rng(3)
    controller = FogController(Agent(1, (0, 0), energy=50.0), grid,
                               make_policy("shortest"), rng, goal=(7, 5),
                               vision_range=2.0)
    return SimulationEngine(grid, [controller], rng=rng)


def run(engine, reporter=None, writer=None, visualizer=None):
    engine.start()
    states = []
    while not engine.is_finished():
        state = engine.step()
        states.append(state)
        if reporter:
            reporter.update(state)
        if writer:
            writer.append(state)
        if visualizer:
            visualizer.buffer_frame(state)
    return states


def test_csv_log(tmp_path):
    engine = fog_engine()
    path = tmp_path / "out" / "log.csv"
    with CSVWriter(path) as writer:
        states = run(engine, writer=writer)

    with open(path, newline='') as f:
        rows = list(csv.DictReader(f))
    assert list(rows[0].keys()) == ['step', 'agent_id', 'x', 'y', 'state', 'energy']
    assert len(rows) == len(states)
    assert rows[-1]['x'] == '7' and rows[-1]['y'] == '5'
    assert float(rows[-1]['energy']) == engine.agents[0].energy


def test_snapshot_and_gif(tmp_path):
    engine = fog_engine()
    visualizer = Visualizer(engine.grid)
    states = run(engine, visualizer=visualizer)

    png = tmp_path / "final.png"
    visualizer.save_snapshot(states[-1], png)
    assert png.exists()

    gif = tmp_path / "anim.gif"
    visualizer.generate_gif(gif, fps=5)
    with Image.open(gif) as image:
        assert image.n_frames == len(states)

    visualizer.clear_frames()
    assert visualizer.frames == []


def test_gif_without_frames_writes_nothing(tmp_path):
    visualizer = Visualizer(GridModel(3, 3))
    visualizer.generate_gif(tmp_path / "empty.gif")
    assert not (tmp_path / "empty.gif").exists()


def test_rgb_terrain_layer():
    grid = GridModel(2, 2)
    grid.rgb[0, 0] = (255, 0, 0)
    visualizer = Visualizer(grid)
    assert np.allclose(visualizer.terrain[0, 0], [1.0, 0.0, 0.0])


def test_report(tmp_path):
    engine = fog_engine()
    reporter = Reporter("configs/fog.yaml", 3, "fog")
    states = run(engine, reporter=reporter)

    text = reporter.generate_summary(states[-1], tmp_path, True, False, False)
    assert "Scenario:      fog" in text
    assert f"Total Steps:           {states[-1].step}" in text
    assert "Fog Backtracks:" in text
    assert "Snapshot:   (disabled)" in text
    assert "LAST MOVES" in text
    assert len(reporter.step_metrics) == len(states)
