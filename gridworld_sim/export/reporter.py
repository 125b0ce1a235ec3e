"""Summary report generation for grid-world simulations."""

from typing import List, Dict, Optional, TYPE_CHECKING
from pathlib import Path

if TYPE_CHECKING:
    from ..model.state import SimulationState


class Reporter:
    """Generates summary statistics and formatted text report."""

    def __init__(self, config_path: str, seed: Optional[int], scenario: str = ""):
        self.config_path = config_path
        self.seed = seed
        self.scenario = scenario
        self.step_metrics: List[Dict] = []
        self.peak_active = 0
        self.idle_steps = 0

    def update(self, state: "SimulationState") -> None:
        """Accumulate metrics per step."""
        self.step_metrics.append(state.metrics.copy())

        active = int(state.metrics.get('active_agents', 0))
        self.peak_active = max(self.peak_active, active)

        # Steps where nobody moved (pauses, failed plans)
        if not state.movements or state.movements[0].step != state.step:
            self.idle_steps += 1

    def generate_summary(self, final_state: "SimulationState",
                         output_dir: Path,
                         csv_enabled: bool,
                         snapshot_enabled: bool,
                         gif_enabled: bool) -> str:
        """Returns formatted text report."""
        metrics = final_state.metrics
        moves = int(metrics.get('moves', 0))
        total_cost = metrics.get('total_cost', 0.0)
        avg_cost = total_cost / moves if moves else 0.0

        lines = [
            "",
            "=" * 80,
            "                    GRID-WORLD PATHFINDING REPORT",
            "=" * 80,
            f"Configuration: {self.config_path}",
            f"Scenario:      {self.scenario}",
            f"Random Seed:   {self.seed if self.seed is not None else 'None (random)'}",
            "",
            "SIMULATION METRICS",
            "-" * 40,
            f"Total Steps:           {final_state.step}",
            f"Agents:                {int(metrics.get('agents', 0))} "
            f"(peak active {self.peak_active})",
            f"Moves:                 {moves}",
            f"Total Path Cost:       {total_cost:.2f}",
            f"Average Step Cost:     {avg_cost:.3f}",
            f"Steps Without Moves:   {self.idle_steps}",
            "",
            "PLANNING EVENTS",
            "-" * 40,
            f"Replans:               {int(metrics.get('replans', 0))}",
            f"Failed Plans:          {int(metrics.get('failed_plans', 0))}",
            f"Teleports:             {int(metrics.get('teleports', 0))}",
        ]

        optional = [
            ('backtracks', "Fog Backtracks:        "),
            ('goals_collected', "Goals Collected:       "),
            ('catches', "Target Catches:        "),
            ('tags', "Tags:                  "),
        ]
        for key, label in optional:
            if key in metrics:
                lines.append(f"{label}{int(metrics[key])}")

        if final_state.movements:
            lines += ["", "LAST MOVES", "-" * 40]
            for move in final_state.movements:
                lines.append(f"  step {move.step:>5}  agent {move.agent_id}  "
                             f"{move.from_pos} -> {move.to_pos}  cost {move.cost:.2f}")

        lines += ["", "OUTPUT FILES", "-" * 40]

        if csv_enabled:
            lines.append(f"CSV Log:    {output_dir / 'simulation_log.csv'}")
        else:
            lines.append("CSV Log:    (disabled)")

        if snapshot_enabled:
            lines.append(f"Snapshot:   {output_dir / 'final_state.png'}")
        else:
            lines.append("Snapshot:   (disabled)")

        if gif_enabled:
            lines.append(f"Animation:  {output_dir / 'simulation.gif'}")
        else:
            lines.append("Animation:  (disabled)")

        lines.append("=" * 80)

        return "\n".join(lines)
