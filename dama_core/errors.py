from __future__ import annotations


class DamaError(Exception):
    """Base class for every rule-engine failure surfaced to callers."""


class InvalidMove(DamaError, ValueError):
    """A move that cannot be executed on the board as described."""


class IllegalMove(DamaError, ValueError):
    """A well-formed move that the rules forbid in the current position."""


class OutOfBounds(DamaError, IndexError):
    def __init__(self, row: int, col: int) -> None:
        super().__init__(f"Square ({row}, {col}) is outside the 8x8 board.")
        self.row = row
        self.col = col


class InvalidState(DamaError, ValueError):
    """A board or saved game that breaks the placement invariants."""
