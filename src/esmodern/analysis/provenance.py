"""Proves that a name holds the value of one recognized originating expression.

A resolver answers :class:`Provenance` only when the binding is established
once, never written again, never escapes, and is not a module-level name
carrying the external-handle marker prefix. Every other case is ``UNKNOWN``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Final

from esmodern.analysis.scope import Binding, Scope, ScopeAnalysis, ScopeKind
from esmodern.syntax.kinds import NodeKind, statement_slot
from esmodern.syntax.shapes import call_parts
from esmodern.syntax.tree import Program

logger = logging.getLogger(__name__)

EXTERNAL_MARKER = "$"

OriginTest = Callable[[Program, int], bool]
UseTest = Callable[[Program, int], bool]


class _Unknown:
    _instance: _Unknown | None = None

    def __new__(cls) -> _Unknown:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False


UNKNOWN: Final = _Unknown()


@dataclass(frozen=True)
class Provenance:
    name: str
    origin: int
    establishing: int
    binding_scope: int


def _never_safe(program: Program, call: int) -> bool:
    return False


class ProvenanceResolver:
    """Per-pass resolver for one kind of originating expression.

    ``recognizes`` decides whether an expression is an acceptable origin.
    ``allows_receiver`` decides whether a read used as the object of a member
    access (``name.x``) keeps the value local. ``safe_callee`` decides whether
    passing the name to a call is harmless.
    """

    def __init__(
        self,
        analysis: ScopeAnalysis,
        recognizes: OriginTest,
        *,
        allows_receiver: UseTest | None = None,
        safe_callee: UseTest = _never_safe,
    ):
        self.analysis = analysis
        self.program = analysis.program
        self.recognizes = recognizes
        self.allows_receiver = allows_receiver
        self.safe_callee = safe_callee
        self._cache: dict[tuple[int, str], Provenance | _Unknown] = {}

    def resolve(self, scope: Scope, name: str) -> Provenance | _Unknown:
        key = (scope.id, name)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        result = self._resolve(scope, name)
        self._cache[key] = result
        logger.debug("provenance %s in scope %d -> %r", name, scope.id, result)
        return result

    def _resolve(self, scope: Scope, name: str) -> Provenance | _Unknown:
        analysis = self.analysis
        if analysis.dynamic:
            return UNKNOWN
        binding = analysis.lookup(scope, name)
        if binding is None:
            return UNKNOWN
        if name.startswith(EXTERNAL_MARKER) and binding.scope.kind is ScopeKind.MODULE:
            return UNKNOWN
        established = self._establishing(binding)
        if established is None:
            return UNKNOWN
        origin, site = established
        if not self.recognizes(self.program, origin):
            return UNKNOWN
        for read in binding.reads:
            if not analysis.precedes(site, read) or self.program.is_within(read, site):
                return UNKNOWN
            if self._escapes(binding, read):
                return UNKNOWN
        return Provenance(
            name=name, origin=origin, establishing=site, binding_scope=binding.scope.id
        )

    def _establishing(self, binding: Binding) -> tuple[int, int] | None:
        """``(origin expression, establishing node)`` for a single-assignment binding."""
        program = self.program
        if len(binding.declarations) != 1 or binding.keyword not in ("var", "let", "const"):
            return None
        if binding.declarator is None:
            return None
        if binding.init is not None:
            if self.analysis.is_reassigned(binding.name, binding.scope):
                return None
            return binding.init, binding.declarator
        if len(binding.writes) != 1:
            return None
        (write,) = binding.writes
        if binding.reads & binding.writes:
            return None
        assignment = program.parent(write)
        if program.kind(assignment) is not NodeKind.ASSIGNMENT_EXPRESSION:
            return None
        assert assignment is not None
        if program.child(assignment, "left") != write:
            return None
        statement = program.parent(assignment)
        if program.kind(statement) is not NodeKind.EXPRESSION_STATEMENT:
            return None
        assert statement is not None
        container = program.parent(statement)
        if container is None or statement_slot(program.kind(container)) is None:
            return None
        if self.analysis.scope_at(statement) is not binding.scope:
            return None
        right = program.child(assignment, "right")
        if right is None:
            return None
        return right, assignment

    def _escapes(self, binding: Binding, read: int) -> bool:
        program = self.program
        analysis = self.analysis
        scope = analysis.scope_at(read)
        if scope is None or scope.function_scope() is not binding.scope.function_scope():
            return True
        if analysis.is_shadowed_at(binding.name, binding.scope, read):
            return True
        if program.kind(read) is not NodeKind.IDENTIFIER:
            return True
        parent = program.parent(read)
        parent_kind = program.kind(parent)
        assert parent is not None
        if parent_kind is NodeKind.ARGUMENTS:
            call = program.parent(parent)
            parts = call_parts(program, call)
            if parts is None or call is None:
                return True
            return not self.safe_callee(program, call)
        if (
            parent_kind is NodeKind.MEMBER_EXPRESSION
            and program.child(parent, "object") == read
        ):
            if self.allows_receiver is None:
                return False
            return not self.allows_receiver(program, parent)
        return True
