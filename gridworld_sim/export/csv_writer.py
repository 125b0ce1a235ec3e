"""CSV export for grid-world simulations."""

import csv
from pathlib import Path
from typing import Optional, TextIO, TYPE_CHECKING

if TYPE_CHECKING:
    from ..model.state import SimulationState

FIELDNAMES = ['step', 'agent_id', 'x', 'y', 'state', 'energy']


class CSVWriter:
    """
    Streams one row per agent per step.

    Output format:
        step,agent_id,x,y,state,energy
        1,1,0,1,following,inf
        ...
    """

    def __init__(self, output_path: Path):
        self.output_path = Path(output_path)
        self._handle: Optional[TextIO] = None
        self._writer: Optional[csv.DictWriter] = None
        self.rows_written = 0

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def open(self) -> None:
        """Create the file (and parent dirs) and write the header."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = open(self.output_path, 'w', newline='')
        self._writer = csv.DictWriter(self._handle, fieldnames=FIELDNAMES)
        self._writer.writeheader()
        self.rows_written = 0

    def append(self, state: "SimulationState") -> None:
        if not self.is_open:
            self.open()
        rows = state.to_csv_rows()
        self._writer.writerows(rows)
        self._handle.flush()
        self.rows_written += len(rows)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
        self._handle = None
        self._writer = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
