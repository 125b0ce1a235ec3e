#!/usr/bin/env python3
"""
Grid-World Pathfinding Simulator

Generates a maze or terrain grid and runs A*-driven agents on it
(single navigator, fog of war, multi-goal collection, follow, tag).

Usage:
    gridworld-sim --config configs/maze.yaml [options]

Examples:
    gridworld-sim --config configs/maze.yaml
    gridworld-sim --config configs/terrain.yaml --gif --out-dir results/
    gridworld-sim --config configs/tag.yaml --no-csv --no-snapshot --quiet
    gridworld-sim --config configs/maze.yaml --algorithm prims --seed 42
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import SCENARIOS, SimulationConfig, load_config, validate_config
from .model.engine import SimulationEngine
from .model.state import SimulationState
from .model.generator import ALGORITHMS
from .export.csv_writer import CSVWriter
from .export.visualizer import Visualizer
from .export.reporter import Reporter

# Buffer a GIF frame every N steps to bound memory
GIF_FRAME_EVERY = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Grid-World Pathfinding Simulator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    gridworld-sim --config configs/maze.yaml
    gridworld-sim --config configs/terrain.yaml --gif --out-dir results/
    gridworld-sim --config configs/tag.yaml --no-csv --no-snapshot --quiet
    gridworld-sim --config configs/maze.yaml --algorithm prims --seed 42
        """
    )

    parser.add_argument('--config', type=Path, required=True,
                        help='Path to YAML configuration file')

    # Optional overrides
    parser.add_argument('--steps', type=int, default=None,
                        help='Override max simulation steps')
    parser.add_argument('--out-dir', type=Path, default=Path('./output'),
                        help='Output directory for exports (default: ./output)')
    parser.add_argument('--algorithm', choices=ALGORITHMS, default=None,
                        help='Override generation algorithm')
    parser.add_argument('--scenario', choices=SCENARIOS, default=None,
                        help='Override scenario')

    # Export toggles
    parser.add_argument('--csv', dest='csv', action='store_true', default=None,
                        help='Enable CSV export (default)')
    parser.add_argument('--no-csv', dest='csv', action='store_false',
                        help='Disable CSV export')

    parser.add_argument('--snapshot', dest='snapshot', action='store_true', default=None,
                        help='Enable final snapshot (default)')
    parser.add_argument('--no-snapshot', dest='snapshot', action='store_false',
                        help='Disable final snapshot')

    parser.add_argument('--gif', action='store_true', default=False,
                        help='Enable GIF animation export')

    parser.add_argument('--quiet', action='store_true', default=False,
                        help='Suppress stdout output')
    parser.add_argument('--verbose', action='store_true', default=False,
                        help='Enable debug logging')

    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for reproducibility')

    return parser.parse_args(argv)


def apply_overrides(config: SimulationConfig, args: argparse.Namespace) -> SimulationConfig:
    """Layer CLI flags over the YAML values and re-validate."""
    overrides = {
        'max_steps': args.steps,
        'csv_enabled': args.csv,
        'snapshot_enabled': args.snapshot,
        'scenario': args.scenario,
        'seed': args.seed,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    if args.algorithm is not None:
        config.generation.algorithm = args.algorithm
    config.gif_enabled = config.gif_enabled or args.gif
    config.quiet = args.quiet
    config.out_dir = args.out_dir
    return validate_config(config)


def run_loop(engine: SimulationEngine, config: SimulationConfig,
             csv_writer: Optional[CSVWriter], visualizer: Visualizer,
             reporter: Reporter) -> SimulationState:
    """
    Feed synthetic display-refresh deltas to the engine until it finishes.
    Returns the last state produced.
    """
    engine.start()
    final_state = engine.snapshot()
    if config.gif_enabled:
        visualizer.buffer_frame(final_state)

    try:
        while engine.clock.running and not engine.is_finished():
            state = engine.step_simulation(config.clock.frame_ms)
            if state is None:
                continue
            final_state = state

            if csv_writer:
                csv_writer.append(state)
            if config.gif_enabled and (state.step % GIF_FRAME_EVERY == 0
                                       or engine.is_finished()):
                visualizer.buffer_frame(state)
            reporter.update(state)

            if not config.quiet and state.step % 100 == 0:
                print(f"  Step {state.step}: "
                      f"{int(state.metrics.get('active_agents', 0))} active, "
                      f"cost {state.metrics.get('total_cost', 0.0):.1f}")
    except KeyboardInterrupt:
        if not config.quiet:
            print("\nSimulation interrupted by user.")
    finally:
        engine.stop()
    return final_state


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        config = apply_overrides(load_config(args.config), args)
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        return 1
    except (ValueError, KeyError, TypeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    say = (lambda *_: None) if config.quiet else print
    say("Initializing simulation...")
    say(f"  Grid: {config.grid.width}x{config.grid.height} "
        f"({config.generation.algorithm}, density {config.generation.wall_density})")
    say(f"  Scenario: {config.scenario}")
    say(f"  Policy: {config.pathfinding.cost} / {config.pathfinding.connectivity}")
    say(f"  Max steps: {config.max_steps}")

    try:
        engine = SimulationEngine.from_config(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    say(f"  Spawned: {len(engine.agents)} agents")

    csv_path = config.out_dir / 'simulation_log.csv'
    csv_writer = CSVWriter(csv_path) if config.csv_enabled else None
    if csv_writer:
        csv_writer.open()
    visualizer = Visualizer(engine.grid)
    reporter = Reporter(str(args.config), config.seed, config.scenario)

    say("\nRunning simulation...")
    try:
        final_state = run_loop(engine, config, csv_writer, visualizer, reporter)
    finally:
        if csv_writer:
            csv_writer.close()

    if csv_writer:
        say(f"\nCSV saved: {csv_path} ({csv_writer.rows_written} rows)")

    if config.snapshot_enabled:
        snapshot_path = config.out_dir / 'final_state.png'
        visualizer.save_snapshot(final_state, snapshot_path)
        say(f"Snapshot saved: {snapshot_path}")

    if config.gif_enabled:
        gif_path = config.out_dir / 'simulation.gif'
        say(f"Generating GIF ({len(visualizer.frames)} frames)...")
        visualizer.generate_gif(gif_path, fps=10)
        say(f"Animation saved: {gif_path}")

    say(reporter.generate_summary(
        final_state,
        config.out_dir,
        config.csv_enabled,
        config.snapshot_enabled,
        config.gif_enabled
    ))
    return 0


if __name__ == '__main__':
    sys.exit(main())
