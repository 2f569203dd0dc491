"""Error taxonomy for table editing (FastAPI-free).

Every error is raised before a command touches the table or its history.
`BoundsAdjustedWarning` is informational: commands attach it to their result
instead of raising it.
"""

from __future__ import annotations


class PowerTableError(ValueError):
    """Base class for all table editing errors."""


class ParseError(PowerTableError):
    """Malformed .ptab content, header or metadata, or an unreadable upload."""


class PointExistsError(PowerTableError):
    def __init__(self, cadence: int, power: int):
        super().__init__(f"Point already exists at {power}W on the {cadence} RPM line")
        self.cadence = cadence
        self.power = power


class PointNotFoundError(PowerTableError):
    def __init__(self, cadence: int, power: int):
        super().__init__(f"No point at {power}W on the {cadence} RPM line")
        self.cadence = cadence
        self.power = power


class InvalidValueError(PowerTableError):
    """Non-numeric, negative or out-of-range input."""


class InsufficientDataError(PowerTableError):
    """The table does not hold enough points for the requested operation."""


class NoActiveCadenceError(PowerTableError):
    """A chart-driven command needs a selected cadence line."""


class BoundsAdjustedWarning(UserWarning):
    """A requested resistance was altered to keep the table consistent."""

    def __init__(self, cadence: int, power: int, requested: int, applied: int):
        super().__init__(
            f"Value adjusted to {applied} to maintain constraints "
            f"({cadence} RPM @ {power}W, requested {requested})"
        )
        self.cadence = cadence
        self.power = power
        self.requested = requested
        self.applied = applied
