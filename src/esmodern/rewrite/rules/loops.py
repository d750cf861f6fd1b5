from __future__ import annotations

from dataclasses import dataclass

from esmodern.analysis.scope import Binding
from esmodern.rewrite.model import CapabilityLevel, Replace, Rewrite, RuleContext
from esmodern.syntax.kinds import DECLARATION_KINDS, NodeKind
from esmodern.syntax.shapes import identifier_name, member_parts
from esmodern.syntax.tree import Program


@dataclass(frozen=True)
class _IndexLoop:
    index: Binding
    array: Binding
    uses: frozenset[int]


@dataclass(frozen=True)
class ForLoopToForOf:
    """Index loops over an array become ``for...of`` loops.

    ``for (let i = 0; i < arr.length; i++) { const item = arr[i]; ... }``
    becomes ``for (const item of arr) { ... }`` when the index is used for
    nothing else and ``arr`` is a local binding that is never reassigned.
    ``arr`` is taken to be an array or another iterable with ordinary
    indexing; strings with astral characters iterate differently.
    """

    rule_id: str = "forLoopToForOf"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        analysis = ctx.analysis
        if analysis.dynamic or program.kind(node) is not NodeKind.FOR_STATEMENT:
            return None
        loop = _index_loop(ctx, node)
        if loop is None:
            return None
        body = program.child(node, "body")
        if program.kind(body) is not NodeKind.STATEMENT_BLOCK:
            return None
        assert body is not None
        statements = program.children(body, "body")
        if len(statements) < 2:
            return None
        first = statements[0]
        keyword = program.attr(first, "keyword")
        if program.kind(first) not in DECLARATION_KINDS or keyword not in ("let", "const"):
            return None
        declarators = program.children(first, "declarators")
        if len(declarators) != 1:
            return None
        item = identifier_name(program, program.child(declarators[0], "name"))
        element = program.child(declarators[0], "value")
        if item is None or not _reads_element(ctx, element, loop):
            return None
        assert element is not None
        if loop.index.references != loop.uses | {program.child(element, "index")}:
            return None
        build = ctx.build
        for_of = build.for_of(
            str(keyword),
            build.identifier(item),
            build.identifier(loop.array.name),
            body,
        )
        return Rewrite(node, (Replace(first, ()), Replace(node, (for_of,))))


def _index_loop(ctx: RuleContext, node: int) -> _IndexLoop | None:
    """The bindings of ``for (let i = 0; i < arr.length; i++)``."""
    program = ctx.program
    analysis = ctx.analysis
    initializer = program.child(node, "initializer")
    if program.kind(initializer) not in DECLARATION_KINDS:
        return None
    assert initializer is not None
    declarators = program.children(initializer, "declarators")
    if program.attr(initializer, "keyword") != "let" or len(declarators) != 1:
        return None
    name = program.child(declarators[0], "name")
    start = program.child(declarators[0], "value")
    if program.kind(name) is not NodeKind.IDENTIFIER or not _is_zero(program, start):
        return None
    assert name is not None
    index = analysis.binding_of(name)
    condition = _condition(program, node)
    if index is None or program.kind(condition) is not NodeKind.BINARY_EXPRESSION:
        return None
    assert condition is not None
    if program.attr(condition, "operator") != "<":
        return None
    bound = program.child(condition, "left")
    length = member_parts(program, program.child(condition, "right"))
    if bound is None or analysis.binding_of(bound) is not index:
        return None
    if length is None or length[1] != "length":
        return None
    array = analysis.binding_of(length[0])
    if array is None or program.kind(length[0]) is not NodeKind.IDENTIFIER:
        return None
    if analysis.is_reassigned(array.name, array.scope):
        return None
    increment = program.child(node, "increment")
    if program.kind(increment) is not NodeKind.UPDATE_EXPRESSION:
        return None
    assert increment is not None
    if program.attr(increment, "operator") != "++":
        return None
    step = program.child(increment, "argument")
    if step is None or analysis.binding_of(step) is not index:
        return None
    return _IndexLoop(index=index, array=array, uses=frozenset({bound, step}))


def _condition(program: Program, node: int) -> int | None:
    condition = program.child(node, "condition")
    # Older grammars wrap the test in an expression statement.
    if program.kind(condition) is NodeKind.EXPRESSION_STATEMENT:
        assert condition is not None
        return program.child(condition, "expression")
    return condition


def _is_zero(program: Program, node_id: int | None) -> bool:
    return (
        node_id is not None
        and program.kind(node_id) is NodeKind.NUMBER
        and program.text(node_id) == "0"
    )


def _reads_element(ctx: RuleContext, node_id: int | None, loop: _IndexLoop) -> bool:
    """Whether ``node_id`` is ``arr[i]`` over the loop's own bindings."""
    program = ctx.program
    if node_id is None or program.kind(node_id) is not NodeKind.SUBSCRIPT_EXPRESSION:
        return False
    if program.child(node_id, "optional_chain") is not None:
        return False
    target = program.child(node_id, "object")
    index = program.child(node_id, "index")
    if program.kind(target) is not NodeKind.IDENTIFIER or index is None:
        return False
    assert target is not None
    return (
        ctx.analysis.binding_of(target) is loop.array
        and ctx.analysis.binding_of(index) is loop.index
    )
