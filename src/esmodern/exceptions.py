"""Exceptions raised by the esmodern engine."""

from __future__ import annotations


class NeverThrown(RuntimeError):
    """Raised by :func:`esmodern.invariants.never` when an unreachable path runs."""

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.env = dict(env or {})


class ParseError(ValueError):
    """Source text could not be parsed."""

    def __init__(self, message: str, *, line: int = 0, column: int = 0):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line:
            return f"{self.message} (line {self.line}, column {self.column})"
        return self.message


class StabilizationExceeded(RuntimeError):
    """The pass ceiling was reached before a fixpoint."""

    def __init__(self, limit: int):
        super().__init__(f"no fixpoint after {limit} passes")
        self.limit = limit
