"""Exception types for the grid-world engine."""


class GridError(Exception):
    """Base class for grid model errors."""


class OutOfBoundsError(GridError, IndexError):
    """Coordinate outside [0, width) x [0, height)."""

    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(f"({x}, {y}) is outside the {width}x{height} grid")
        self.x = x
        self.y = y


class InvalidGridDimensions(GridError, ValueError):
    """Width or height is not a positive integer."""

    def __init__(self, width: int, height: int):
        super().__init__(f"Invalid grid dimensions: {width}x{height}")
        self.width = width
        self.height = height


class PathfindingError(Exception):
    """Base class for search errors."""


class NoPathFound(PathfindingError):
    """The open set emptied before the goal was reached."""

    def __init__(self, start, goal):
        super().__init__(f"No path from {start} to {goal}")
        self.start = start
        self.goal = goal


class NegativeCostError(PathfindingError, ValueError):
    """A cost function returned a negative step cost."""
