from __future__ import annotations

from dataclasses import dataclass

from esmodern.rewrite.model import CapabilityLevel, Replace, Rewrite, RuleContext
from esmodern.syntax.kinds import NodeKind
from esmodern.syntax.shapes import is_identifier, string_value
from esmodern.syntax.tree import Program

_MODULE_STATEMENTS = frozenset({NodeKind.IMPORT_STATEMENT, NodeKind.EXPORT_STATEMENT})


@dataclass(frozen=True)
class ConsoleLogToInfo:
    rule_id: str = "consoleLogToInfo"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        if program.kind(node) is not NodeKind.CALL_EXPRESSION:
            return None
        if program.child(node, "optional_chain") is not None:
            return None
        callee = program.child(node, "function")
        if program.kind(callee) is not NodeKind.MEMBER_EXPRESSION:
            return None
        assert callee is not None
        target = program.child(callee, "object")
        prop = program.child(callee, "property")
        if prop is None or program.kind(prop) is not NodeKind.PROPERTY_IDENTIFIER:
            return None
        if program.text(prop) != "log" or not is_identifier(program, target, "console"):
            return None
        assert target is not None
        if not ctx.analysis.is_global(target, "console"):
            return None
        info = ctx.build.property_identifier("info")
        return Rewrite(node, (Replace(prop, (info,)),))


@dataclass(frozen=True)
class RemoveUseStrictFromModules:
    """ES modules are always strict; their ``"use strict"`` prologue is noise."""

    rule_id: str = "removeUseStrictFromModules"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        if program.kind(node) is not NodeKind.EXPRESSION_STATEMENT:
            return None
        if program.parent(node) != program.root:
            return None
        if node not in directive_prologue(program) or not is_module(program):
            return None
        if string_value(program, program.child(node, "expression")) != "use strict":
            return None
        return Rewrite(node, (Replace(node, ()),))


def is_module(program: Program) -> bool:
    return any(
        program.kind(statement) in _MODULE_STATEMENTS
        for statement in program.children(program.root, "body")
    )


def directive_prologue(program: Program) -> list[int]:
    """The leading string-literal statements of the program."""
    directives: list[int] = []
    for statement in program.children(program.root, "body"):
        origin = program.node(statement).origin
        if origin is not None and origin.source_type == "hash_bang_line":
            continue
        if program.kind(statement) is not NodeKind.EXPRESSION_STATEMENT:
            break
        if program.kind(program.child(statement, "expression")) is not NodeKind.STRING:
            break
        directives.append(statement)
    return directives
