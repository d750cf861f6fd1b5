from __future__ import annotations

from dataclasses import dataclass

from esmodern.analysis.scope import ScopeAnalysis
from esmodern.rewrite.model import CapabilityLevel, Replace, Rewrite, RuleContext
from esmodern.syntax.kinds import NodeKind
from esmodern.syntax.shapes import accepts_any_expression
from esmodern.syntax.tree import Program


@dataclass(frozen=True)
class AnonymousFunctionToArrow:
    """Anonymous ``function`` expressions become arrow functions.

    Declined when the function binds anything an arrow cannot: its own
    ``this``, ``super``, ``new.target`` or ``arguments``, a name, a generator,
    or use as a constructor. Initializers of variable declarators are left
    alone so the function keeps its inferred name.
    """

    rule_id: str = "anonymousFunctionToArrow"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        analysis = ctx.analysis
        if program.kind(node) is not NodeKind.FUNCTION_EXPRESSION:
            return None
        if program.child(node, "name") is not None or program.attr(node, "generator"):
            return None
        parameters = program.child(node, "parameters")
        body = program.child(node, "body")
        if parameters is None or program.kind(body) is not NodeKind.STATEMENT_BLOCK:
            return None
        assert body is not None
        parent = program.parent(node)
        if parent is None:
            return None
        slot = program.parent_slot(node)
        if program.kind(parent) is NodeKind.VARIABLE_DECLARATOR and slot == "value":
            return None
        if program.kind(_outer(program, node)) is NodeKind.EXPORT_STATEMENT:
            return None
        if analysis.is_constructed(node):
            return None
        if analysis.uses_this(node) or analysis.uses_own_arguments(node):
            return None
        if _repeats_parameter(analysis, parameters):
            return None
        arrow = ctx.build.arrow(
            parameters, body, is_async=bool(program.attr(node, "async"))
        )
        if not accepts_any_expression(program, node):
            arrow = ctx.build.parenthesized(arrow)
        return Rewrite(node, (Replace(node, (arrow,)),))


def _outer(program: Program, node_id: int) -> int | None:
    """The first ancestor that is not a parenthesized expression."""
    for ancestor in program.ancestors(node_id):
        if program.kind(ancestor) is not NodeKind.PARENTHESIZED_EXPRESSION:
            return ancestor
    return None


def _repeats_parameter(analysis: ScopeAnalysis, parameters: int) -> bool:
    """Sloppy-mode ``function (a, a)`` has no arrow equivalent."""
    names = [
        name
        for item in analysis.program.children(parameters, "items")
        for name in analysis.declared_names(item)
    ]
    return len(names) != len(set(names))
