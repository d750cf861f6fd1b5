from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Callable, Protocol, Union

if TYPE_CHECKING:
    from esmodern.analysis.provenance import ProvenanceResolver
    from esmodern.analysis.scope import ScopeAnalysis
    from esmodern.syntax.build import NodeFactory
    from esmodern.syntax.tree import Program


class CapabilityLevel(IntEnum):
    WIDELY_AVAILABLE = 1
    NEWLY_AVAILABLE = 2

    @classmethod
    def parse(cls, value: object) -> CapabilityLevel:
        if isinstance(value, CapabilityLevel):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            key = value.strip().lower().replace("_", "-")
            level = _LEVEL_NAMES.get(key)
            if level is not None:
                return level
        raise ValueError(f"unknown capability level: {value!r}")

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", "-")


_LEVEL_NAMES = {
    "level1": CapabilityLevel.WIDELY_AVAILABLE,
    "widely-available": CapabilityLevel.WIDELY_AVAILABLE,
    "level2": CapabilityLevel.NEWLY_AVAILABLE,
    "newly-available": CapabilityLevel.NEWLY_AVAILABLE,
}


@dataclass(frozen=True)
class Replace:
    target: int
    replacements: tuple[int, ...]


@dataclass(frozen=True)
class SetAttr:
    target: int
    name: str
    value: object


Edit = Union[Replace, SetAttr]


@dataclass(frozen=True)
class Rewrite:
    """What one rule wants to change at one anchor node."""

    anchor: int
    edits: tuple[Edit, ...]


@dataclass
class RuleContext:
    program: Program
    analysis: ScopeAnalysis
    build: NodeFactory
    resolvers: dict[str, ProvenanceResolver] = field(default_factory=dict)

    def resolver(
        self, key: str, make: Callable[[ScopeAnalysis], ProvenanceResolver]
    ) -> ProvenanceResolver:
        """The pass-local resolver registered under ``key``, created on first use."""
        found = self.resolvers.get(key)
        if found is None:
            found = make(self.analysis)
            self.resolvers[key] = found
        return found


class Rule(Protocol):
    rule_id: str
    since: CapabilityLevel
    family: str

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        """Describe the rewrite at ``node`` or return ``None``."""


@dataclass(frozen=True)
class ChangeRecord:
    type: str
    line: int

    def to_dict(self) -> dict[str, object]:
        return {"type": self.type, "line": self.line}


@dataclass(frozen=True)
class TransformResult:
    code: str
    modified: bool
    changes: tuple[ChangeRecord, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code,
            "modified": self.modified,
            "changes": [change.to_dict() for change in self.changes],
        }

    @property
    def change_types(self) -> tuple[str, ...]:
        return tuple(sorted({change.type for change in self.changes}))
