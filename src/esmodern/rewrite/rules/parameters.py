from __future__ import annotations

from dataclasses import dataclass

from esmodern.analysis.scope import ScopeAnalysis
from esmodern.rewrite.model import CapabilityLevel, Replace, Rewrite, RuleContext
from esmodern.syntax.kinds import DECLARATION_KINDS, NodeKind
from esmodern.syntax.shapes import is_identifier, member_parts, method_call_parts
from esmodern.syntax.tree import Program

_REGULAR_FUNCTIONS = frozenset(
    {
        NodeKind.FUNCTION_DECLARATION,
        NodeKind.FUNCTION_EXPRESSION,
        NodeKind.GENERATOR_FUNCTION,
        NodeKind.GENERATOR_FUNCTION_DECLARATION,
    }
)


@dataclass(frozen=True)
class ArgumentsToRestParameters:
    """``const args = Array.from(arguments)`` becomes a ``...args`` parameter.

    Applies to functions without parameters whose body opens with that single
    declarator, ``[].slice.call(arguments)`` and
    ``Array.prototype.slice.call(arguments)`` included. Any other mention of
    the function's ``arguments`` keeps the function as it is.
    """

    rule_id: str = "argumentsToRestParameters"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        analysis = ctx.analysis
        if program.kind(node) not in _REGULAR_FUNCTIONS:
            return None
        if not analysis.uses_free_identifier(node, "arguments"):
            return None
        parameters = program.child(node, "parameters")
        body = program.child(node, "body")
        if parameters is None or program.children(parameters, "items"):
            return None
        if program.kind(body) is not NodeKind.STATEMENT_BLOCK:
            return None
        assert body is not None
        statements = program.children(body, "body")
        if not statements or program.kind(statements[0]) not in DECLARATION_KINDS:
            return None
        declaration = statements[0]
        declarators = program.children(declaration, "declarators")
        if len(declarators) != 1:
            return None
        name = program.child(declarators[0], "name")
        if program.kind(name) is not NodeKind.IDENTIFIER:
            return None
        assert name is not None
        copied = _copied_arguments(
            program, analysis, program.child(declarators[0], "value")
        )
        own = analysis.own_arguments(node)
        if copied is None or own is None or own.references != {copied}:
            return None
        binding = analysis.binding_of(name)
        if binding is None or len(binding.declarations) != 1:
            return None
        build = ctx.build
        rest = build.rest(build.identifier(program.text(name)))
        return Rewrite(
            node,
            (
                Replace(declaration, ()),
                Replace(parameters, (build.parameters([rest]),)),
            ),
        )


def _copied_arguments(
    program: Program, analysis: ScopeAnalysis, node_id: int | None
) -> int | None:
    """The ``arguments`` read by an array copy of the whole ``arguments`` object."""
    parts = method_call_parts(program, node_id)
    if parts is None:
        return None
    receiver, method, items = parts
    if len(items) != 1 or not is_identifier(program, items[0], "arguments"):
        return None
    if method == "from":
        if is_identifier(program, receiver, "Array") and analysis.is_global(receiver, "Array"):
            return items[0]
        return None
    if method != "call":
        return None
    member = member_parts(program, receiver)
    if member is None or member[1] != "slice":
        return None
    owner = member[0]
    if program.kind(owner) is NodeKind.ARRAY and not program.children(owner, "items"):
        return items[0]
    prototype = member_parts(program, owner)
    if prototype is None or prototype[1] != "prototype":
        return None
    array = prototype[0]
    if is_identifier(program, array, "Array") and analysis.is_global(array, "Array"):
        return items[0]
    return None
