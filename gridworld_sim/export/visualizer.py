"""Rendering of grid-world states to PNG snapshots and GIF animations."""

import io
from pathlib import Path
from typing import List, TYPE_CHECKING

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
from matplotlib.colors import to_rgb
from PIL import Image

if TYPE_CHECKING:
    from ..model.grid import GridModel
    from ..model.state import SimulationState


class Visualizer:
    """
    Draws the grid, terrain layers, fog, planned paths, goals and agents.

    Supports:
    - Single PNG snapshots
    - Animated GIF compilation
    """

    COLORS = {
        'wall': '#2C3E50',
        'floor': '#ECF0F1',
        'fog': '#7F8C8D',
        'goal': '#F39C12',
        'path': '#8E44AD',
        'idle': '#95A5A6',
        'planning': '#F1C40F',
        'following': '#3498DB',
        'replanning': '#E67E22',
        'teleport': '#E74C3C',
    }
    ROLE_MARKERS = {'robot': 'o', 'target': '*'}

    def __init__(self, grid: "GridModel"):
        self.width = grid.width
        self.height = grid.height
        self.terrain = self._terrain_layer(grid)
        self.frames: List[Image.Image] = []

    def _terrain_layer(self, grid: "GridModel") -> np.ndarray:
        """Floor colour, shaded by elevation or replaced by rgb terrain."""
        base = np.ones((self.height, self.width, 3))
        base[:, :] = to_rgb(self.COLORS['floor'])

        if np.any(grid.rgb):
            return grid.rgb.astype(float) / 255.0
        if np.ptp(grid.elevation) > 0:
            shade = 0.35 + 0.65 * (grid.elevation / 100.0)
            base *= shade[:, :, np.newaxis]
        return base

    def _create_figure(self, state: "SimulationState") -> plt.Figure:
        aspect = self.width / self.height
        fig_height = 6
        fig_width = max(6, fig_height * aspect)
        fig, ax = plt.subplots(figsize=(fig_width, fig_height))

        image = self.terrain.copy()
        image[state.walls] = to_rgb(self.COLORS['wall'])
        if state.observed is not None:
            # Unobserved cells are drawn greyed out
            fog_rgb = np.array(to_rgb(self.COLORS['fog']))
            hidden = ~state.observed
            image[hidden] = 0.4 * image[hidden] + 0.6 * fog_rgb

        ax.imshow(image, origin='upper', aspect='equal',
                  extent=[-0.5, self.width - 0.5, self.height - 0.5, -0.5])

        for path in state.paths.values():
            if path:
                xs, ys = zip(*path)
                ax.plot(xs, ys, '-', color=self.COLORS['path'],
                        linewidth=1.5, alpha=0.7)

        for gx, gy in state.goals:
            ax.plot(gx, gy, 's', color=self.COLORS['goal'],
                    markersize=8, markeredgecolor='black', markeredgewidth=0.5)

        for agent in state.agents:
            color = self.COLORS.get(agent.state, self.COLORS['idle'])
            marker = self.ROLE_MARKERS.get(agent.role, 'o')
            ax.plot(agent.x, agent.y, marker, color=color,
                    markersize=9, markeredgecolor='black', markeredgewidth=0.5)

        ax.set_title(f'Step {state.step} | Moves: {int(state.metrics.get("moves", 0))} | '
                     f'Cost: {state.metrics.get("total_cost", 0.0):.1f}')
        ax.set_xlim(-0.5, self.width - 0.5)
        ax.set_ylim(self.height - 0.5, -0.5)
        ax.set_xlabel('X')
        ax.set_ylabel('Y')

        legend_elements = [
            plt.Line2D([0], [0], marker='o', color='w', label='Following',
                       markerfacecolor=self.COLORS['following'], markersize=8),
            plt.Line2D([0], [0], marker='o', color='w', label='Idle',
                       markerfacecolor=self.COLORS['idle'], markersize=8),
            plt.Line2D([0], [0], marker='s', color='w', label='Goal',
                       markerfacecolor=self.COLORS['goal'], markersize=8),
            plt.Line2D([0], [0], color=self.COLORS['path'], label='Path'),
        ]
        ax.legend(handles=legend_elements, loc='upper right', fontsize=8)

        plt.tight_layout()
        return fig

    def buffer_frame(self, state: "SimulationState") -> None:
        """Store frame for GIF generation."""
        fig = self._create_figure(state)

        buf = io.BytesIO()
        fig.savefig(buf, format='png', dpi=80)
        buf.seek(0)
        img = Image.open(buf).copy()
        self.frames.append(img)
        buf.close()
        plt.close(fig)

    def save_snapshot(self, state: "SimulationState", output_path: Path) -> None:
        """Save single PNG image of current state."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig = self._create_figure(state)
        fig.savefig(output_path, dpi=150, bbox_inches='tight')
        plt.close(fig)

    def generate_gif(self, output_path: Path, fps: int = 10) -> None:
        """Compile buffered frames into animated GIF."""
        if not self.frames:
            return

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        duration = int(1000 / fps)

        self.frames[0].save(
            output_path,
            save_all=True,
            append_images=self.frames[1:],
            duration=duration,
            loop=0
        )

    def clear_frames(self) -> None:
        self.frames.clear()
