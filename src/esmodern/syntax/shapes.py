"""Reusable shape predicates over arena nodes."""

from __future__ import annotations

from typing import Callable, Iterator

from esmodern.syntax.kinds import FUNCTION_KINDS, NodeKind
from esmodern.syntax.tree import Program

GlobalTest = Callable[[int, str], bool]

PROMISE_COMBINATORS = frozenset({"all", "allSettled", "any", "race", "resolve", "reject"})
HANDLER_REGISTRATIONS = frozenset({"then", "catch", "finally"})

# Parent slots in which an expression of any precedence can stand unparenthesized.
_OPEN_SLOTS = frozenset(
    {
        (NodeKind.EXPRESSION_STATEMENT, "expression"),
        (NodeKind.RETURN_STATEMENT, "argument"),
        (NodeKind.THROW_STATEMENT, "argument"),
        (NodeKind.VARIABLE_DECLARATOR, "value"),
        (NodeKind.ASSIGNMENT_EXPRESSION, "right"),
        (NodeKind.PARENTHESIZED_EXPRESSION, "expression"),
        (NodeKind.ARGUMENTS, "items"),
        (NodeKind.ARRAY, "items"),
        (NodeKind.PAIR, "value"),
        (NodeKind.TEMPLATE_SUBSTITUTION, "expression"),
        (NodeKind.SUBSCRIPT_EXPRESSION, "index"),
    }
)


def identifier_name(program: Program, node_id: int | None) -> str | None:
    if node_id is None or program.kind(node_id) is not NodeKind.IDENTIFIER:
        return None
    return program.text(node_id)


def is_identifier(program: Program, node_id: int | None, name: str) -> bool:
    return identifier_name(program, node_id) == name


def string_value(program: Program, node_id: int | None) -> str | None:
    """The value of a plain string literal, or ``None`` when it has escapes."""
    if node_id is None or program.kind(node_id) is not NodeKind.STRING:
        return None
    text = program.text(node_id)
    if len(text) < 2 or "\\" in text:
        return None
    return text[1:-1]


def string_quote(program: Program, node_id: int) -> str:
    text = program.text(node_id)
    return text[0] if text[:1] in ("'", '"') else '"'


def is_undefined(program: Program, node_id: int | None) -> bool:
    if node_id is None:
        return False
    kind = program.kind(node_id)
    if kind is NodeKind.UNDEFINED:
        return True
    return kind is NodeKind.IDENTIFIER and program.text(node_id) == "undefined"


def is_null(program: Program, node_id: int | None) -> bool:
    return node_id is not None and program.kind(node_id) is NodeKind.NULL


def unwrap_parens(program: Program, node_id: int) -> int:
    while program.kind(node_id) is NodeKind.PARENTHESIZED_EXPRESSION:
        inner = program.child(node_id, "expression")
        if inner is None:
            break
        node_id = inner
    return node_id


def member_parts(program: Program, node_id: int | None) -> tuple[int, str] | None:
    """``(object, property)`` for a plain, non-computed ``a.b``."""
    if node_id is None or program.kind(node_id) is not NodeKind.MEMBER_EXPRESSION:
        return None
    if program.child(node_id, "optional_chain") is not None:
        return None
    target = program.child(node_id, "object")
    prop = program.child(node_id, "property")
    if target is None or program.kind(prop) is not NodeKind.PROPERTY_IDENTIFIER:
        return None
    assert prop is not None
    return target, program.text(prop)


def call_parts(program: Program, node_id: int | None) -> tuple[int, list[int]] | None:
    """``(callee, arguments)`` for a plain call with a parenthesized argument list."""
    if node_id is None or program.kind(node_id) is not NodeKind.CALL_EXPRESSION:
        return None
    if program.child(node_id, "optional_chain") is not None:
        return None
    callee = program.child(node_id, "function")
    arguments = program.child(node_id, "arguments")
    if callee is None or program.kind(arguments) is not NodeKind.ARGUMENTS:
        return None
    assert arguments is not None
    return callee, program.children(arguments, "items")


def method_call_parts(
    program: Program, node_id: int | None
) -> tuple[int, str, list[int]] | None:
    """``(receiver, method, arguments)`` for ``receiver.method(...)``."""
    call = call_parts(program, node_id)
    if call is None:
        return None
    callee, arguments = call
    member = member_parts(program, callee)
    if member is None:
        return None
    return member[0], member[1], arguments


def is_static_call(
    program: Program, node_id: int | None, owner: str, methods: frozenset[str]
) -> bool:
    parts = method_call_parts(program, node_id)
    if parts is None:
        return False
    receiver, method, _arguments = parts
    return is_identifier(program, receiver, owner) and method in methods


def has_spread(program: Program, arguments: list[int]) -> bool:
    return any(program.kind(item) is NodeKind.SPREAD_ELEMENT for item in arguments)


def is_pending_computation(
    program: Program, node_id: int | None, is_global: GlobalTest
) -> bool:
    """Whether an expression syntactically produces a promise.

    ``is_global`` decides whether a ``Promise`` or ``fetch`` reference names
    the built-in rather than a local binding.
    """
    if node_id is None:
        return False
    node_id = unwrap_parens(program, node_id)
    kind = program.kind(node_id)
    if kind is NodeKind.NEW_EXPRESSION:
        constructor = program.child(node_id, "constructor")
        return (
            constructor is not None
            and is_identifier(program, constructor, "Promise")
            and is_global(constructor, "Promise")
        )
    if kind is not NodeKind.CALL_EXPRESSION:
        return False
    if is_static_call(program, node_id, "Promise", PROMISE_COMBINATORS):
        parts = method_call_parts(program, node_id)
        assert parts is not None
        return is_global(parts[0], "Promise")
    call = call_parts(program, node_id)
    if call is not None and is_identifier(program, call[0], "fetch"):
        return is_global(call[0], "fetch")
    parts = method_call_parts(program, node_id)
    return parts is not None and parts[1] in HANDLER_REGISTRATIONS


def enclosing_function(program: Program, node_id: int) -> int | None:
    for ancestor in program.ancestors(node_id):
        if program.kind(ancestor) in FUNCTION_KINDS:
            return ancestor
    return None


def own_nodes(program: Program, function_id: int) -> Iterator[int]:
    """Nodes of a function's body that do not belong to a nested function."""
    body = program.child(function_id, "body")
    if body is None:
        return
    stack = [body]
    while stack:
        current = stack.pop()
        yield current
        if program.kind(current) in FUNCTION_KINDS:
            continue
        stack.extend(reversed(list(program.child_ids(current))))


def own_returns(program: Program, function_id: int) -> list[int]:
    return [
        node_id
        for node_id in own_nodes(program, function_id)
        if program.kind(node_id) is NodeKind.RETURN_STATEMENT
    ]


def always_completes(program: Program, node_id: int | None) -> bool:
    """Whether a statement always ends in ``return`` or ``throw``."""
    if node_id is None:
        return False
    kind = program.kind(node_id)
    if kind in (NodeKind.RETURN_STATEMENT, NodeKind.THROW_STATEMENT):
        return True
    if kind is NodeKind.STATEMENT_BLOCK:
        body = program.children(node_id, "body")
        return bool(body) and always_completes(program, body[-1])
    if kind is NodeKind.IF_STATEMENT:
        alternative = program.child(node_id, "alternative")
        if alternative is None:
            return False
        return always_completes(
            program, program.child(node_id, "consequence")
        ) and always_completes(program, program.child(alternative, "body"))
    if kind is NodeKind.TRY_STATEMENT:
        if program.child(node_id, "finalizer") is not None:
            return False
        handler = program.child(node_id, "handler")
        if handler is None:
            return False
        return always_completes(
            program, program.child(node_id, "body")
        ) and always_completes(program, program.child(handler, "body"))
    return False


def accepts_any_expression(program: Program, node_id: int) -> bool:
    """Whether ``node_id``'s position holds any expression without parentheses."""
    parent = program.parent(node_id)
    if parent is None:
        return False
    slot = program.parent_slot(node_id)
    return (program.kind(parent), slot) in _OPEN_SLOTS


def source_text(program: Program, node_id: int) -> str | None:
    """The original text of a parsed node; ``None`` for generated nodes."""
    origin = program.node(node_id).origin
    if origin is None:
        return None
    return program.encoded[origin.start : origin.end].decode("utf-8")
