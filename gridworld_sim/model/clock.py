"""Fixed-step simulation clock."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class SimulationClock:
    """
    Turns display-refresh callbacks into simulation steps.

    Elapsed time is accumulated; once it reaches step_interval_ms the
    accumulator is reset to zero and exactly one step fires. A backlog of
    several intervals still yields a single step for that callback.
    """
    step_interval_ms: float
    accumulated_ms: float = 0.0
    last_timestamp_ms: Optional[float] = None
    steps_fired: int = 0
    running: bool = False

    def __post_init__(self):
        if self.step_interval_ms <= 0:
            raise ValueError(f"step interval must be positive, got {self.step_interval_ms}")

    @classmethod
    def from_speed(cls, seconds_per_step: float) -> "SimulationClock":
        """Build from the speed slider value (seconds per step)."""
        return cls(step_interval_ms=seconds_per_step * 1000.0)

    def start(self) -> None:
        self.running = True
        self.accumulated_ms = 0.0
        self.last_timestamp_ms = None

    def stop(self) -> None:
        self.running = False

    def set_speed(self, seconds_per_step: float) -> None:
        if seconds_per_step <= 0:
            raise ValueError(f"speed must be positive, got {seconds_per_step}")
        self.step_interval_ms = seconds_per_step * 1000.0

    def advance(self, delta_ms: float) -> bool:
        """Accumulate elapsed time. Returns True when a step should fire."""
        if not self.running:
            return False
        self.accumulated_ms += max(0.0, delta_ms)
        if self.accumulated_ms >= self.step_interval_ms:
            self.accumulated_ms = 0.0
            self.steps_fired += 1
            return True
        return False

    def tick(self, timestamp_ms: float) -> bool:
        """
        Feed an absolute callback timestamp. The first callback after
        start() only establishes the baseline.
        """
        if self.last_timestamp_ms is None:
            self.last_timestamp_ms = timestamp_ms
            delta = 0.0
        else:
            delta = timestamp_ms - self.last_timestamp_ms
            self.last_timestamp_ms = timestamp_ms
        return self.advance(delta)
