from __future__ import annotations

from dataclasses import dataclass

from esmodern.exceptions import StabilizationExceeded
from esmodern.invariants import never

DEFAULT_MAX_PASSES = 10


@dataclass
class PassBudget:
    """Counts rewrite passes against a fixed ceiling."""

    limit: int = DEFAULT_MAX_PASSES
    used: int = 0

    def __post_init__(self) -> None:
        if int(self.limit) <= 0:
            never("invalid pass budget limit", limit=self.limit)
        self.limit = int(self.limit)

    def consume(self) -> None:
        if self.used >= self.limit:
            raise StabilizationExceeded(self.limit)
        self.used += 1

    @property
    def remaining(self) -> int:
        return self.limit - self.used
