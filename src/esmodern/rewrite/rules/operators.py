from __future__ import annotations

import re
from dataclasses import dataclass

from esmodern.rewrite.model import CapabilityLevel, Replace, Rewrite, RuleContext
from esmodern.syntax.kinds import NodeKind
from esmodern.syntax.printer import PRIMARY_KINDS
from esmodern.syntax.shapes import (
    accepts_any_expression,
    has_spread,
    is_identifier,
    is_null,
    is_undefined,
    method_call_parts,
    source_text,
)
from esmodern.syntax.tree import Program

# Expressions whose evaluation can have side effects.
_EFFECT_KINDS = frozenset(
    {
        NodeKind.CALL_EXPRESSION,
        NodeKind.NEW_EXPRESSION,
        NodeKind.ASSIGNMENT_EXPRESSION,
        NodeKind.AUGMENTED_ASSIGNMENT_EXPRESSION,
        NodeKind.UPDATE_EXPRESSION,
        NodeKind.AWAIT_EXPRESSION,
        NodeKind.YIELD_EXPRESSION,
        NodeKind.OTHER,
    }
)
_NOT_EQUAL = frozenset({"!=", "!=="})
_LOGICAL = frozenset({"||", "&&"})
_LITERAL_ELEMENTS = frozenset(
    {
        NodeKind.STRING,
        NodeKind.NUMBER,
        NodeKind.TRUE,
        NodeKind.FALSE,
        NodeKind.NULL,
    }
)
_ARRAY_HOLE = re.compile(r"^\[\s*,|,\s*,|,\s*\]$")

# (operator, comparison value, indexOf on the left) -> includes() or !includes()
_INCLUDES_FORMS: dict[tuple[str, int, bool], bool] = {
    ("!==", -1, True): True,
    ("===", -1, True): False,
    (">", -1, True): True,
    ("<=", -1, True): False,
    ("!==", -1, False): True,
    ("===", -1, False): False,
    ("<", -1, False): True,
    (">=", -1, False): False,
    (">=", 0, True): True,
    ("<", 0, True): False,
    ("<=", 0, False): True,
    (">", 0, False): False,
}


def is_effect_free(program: Program, node_id: int) -> bool:
    return all(
        program.kind(item) not in _EFFECT_KINDS for item in program.preorder(node_id)
    )


def small_integer(program: Program, node_id: int | None) -> int | None:
    """``0`` and ``-1`` style literals as ints."""
    if node_id is None:
        return None
    kind = program.kind(node_id)
    if kind is NodeKind.NUMBER:
        text = program.text(node_id)
        return int(text) if text.isdigit() else None
    if kind is NodeKind.UNARY_EXPRESSION and program.attr(node_id, "operator") == "-":
        value = small_integer(program, program.child(node_id, "argument"))
        return -value if value is not None else None
    return None


@dataclass(frozen=True)
class NullishCoalescingOperator:
    """``a !== null && a !== undefined ? a : b`` becomes ``a ?? b``."""

    rule_id: str = "nullishCoalescingOperator"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        analysis = ctx.analysis
        if program.kind(node) is not NodeKind.TERNARY_EXPRESSION:
            return None
        condition = program.child(node, "condition")
        consequence = program.child(node, "consequence")
        alternative = program.child(node, "alternative")
        if condition is None or consequence is None or alternative is None:
            return None
        if program.kind(condition) is not NodeKind.BINARY_EXPRESSION:
            return None
        if program.attr(condition, "operator") != "&&":
            return None
        first = _nullish_check(program, program.child(condition, "left"))
        second = _nullish_check(program, program.child(condition, "right"))
        if first is None or second is None:
            return None
        if {first[1], second[1]} != {"null", "undefined"}:
            return None
        undefined_literal = first[2] if first[1] == "undefined" else second[2]
        if not analysis.is_global(undefined_literal, "undefined"):
            return None
        value = first[0]
        if not analysis.are_equivalent(value, second[0]):
            return None
        if not analysis.are_equivalent(value, consequence):
            return None
        if not is_effect_free(program, value):
            return None
        build = ctx.build
        replacement = build.binary(
            _coalesce_operand(ctx, consequence), "??", _coalesce_operand(ctx, alternative)
        )
        return Rewrite(node, (Replace(node, (replacement,)),))


def _nullish_check(
    program: Program, node_id: int | None
) -> tuple[int, str, int] | None:
    """``(value, "null" | "undefined", literal)`` for ``value !== null`` and friends."""
    if node_id is None or program.kind(node_id) is not NodeKind.BINARY_EXPRESSION:
        return None
    if program.attr(node_id, "operator") not in _NOT_EQUAL:
        return None
    left = program.child(node_id, "left")
    right = program.child(node_id, "right")
    for value, literal in ((left, right), (right, left)):
        if value is None or literal is None:
            continue
        if is_null(program, literal):
            return value, "null", literal
        if is_undefined(program, literal):
            return value, "undefined", literal
    return None


def _coalesce_operand(ctx: RuleContext, node_id: int) -> int:
    program = ctx.program
    kind = program.kind(node_id)
    if kind in PRIMARY_KINDS or kind is NodeKind.UNARY_EXPRESSION:
        return node_id
    operator = program.attr(node_id, "operator")
    if kind is NodeKind.BINARY_EXPRESSION and operator not in _LOGICAL:
        return node_id
    return ctx.build.parenthesized(node_id)


@dataclass(frozen=True)
class MathPowToExponentiation:
    rule_id: str = "mathPowToExponentiation"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        parts = method_call_parts(program, node)
        if parts is None:
            return None
        receiver, method, arguments = parts
        if method != "pow" or not is_identifier(program, receiver, "Math"):
            return None
        if len(arguments) != 2 or has_spread(program, arguments):
            return None
        if not ctx.analysis.is_global(receiver, "Math"):
            return None
        base, exponent = arguments
        build = ctx.build
        power = build.binary(_power_operand(ctx, base), "**", _power_operand(ctx, exponent))
        if not _holds_power(program, node):
            power = build.parenthesized(power)
        return Rewrite(node, (Replace(node, (power,)),))


def _power_operand(ctx: RuleContext, node_id: int) -> int:
    if ctx.program.kind(node_id) in PRIMARY_KINDS:
        return node_id
    return ctx.build.parenthesized(node_id)


def _holds_power(program: Program, node_id: int) -> bool:
    """Whether ``a ** b`` can stand where ``node_id`` is without parentheses."""
    if accepts_any_expression(program, node_id):
        return True
    parent = program.parent(node_id)
    return (
        program.kind(parent) is NodeKind.BINARY_EXPRESSION
        and parent is not None
        and program.attr(parent, "operator") != "**"
    )


@dataclass(frozen=True)
class IndexOfToIncludes:
    """``x.indexOf(v) !== -1`` becomes ``x.includes(v)`` for literal receivers."""

    rule_id: str = "indexOfToIncludes"
    since: CapabilityLevel = CapabilityLevel.NEWLY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        if program.kind(node) is not NodeKind.BINARY_EXPRESSION:
            return None
        operator = str(program.attr(node, "operator"))
        left = program.child(node, "left")
        right = program.child(node, "right")
        for call, bound, on_left in ((left, right, True), (right, left, False)):
            parts = method_call_parts(program, call)
            if parts is None or parts[1] != "indexOf":
                continue
            receiver, _method, arguments = parts
            value = small_integer(program, bound)
            if value is None:
                return None
            positive = _INCLUDES_FORMS.get((operator, value, on_left))
            if positive is None:
                return None
            if len(arguments) != 1 or has_spread(program, arguments):
                return None
            if not _has_includes(program, receiver):
                return None
            build = ctx.build
            replacement = build.method_call(receiver, "includes", arguments)
            if not positive:
                replacement = build.unary("!", replacement)
            return Rewrite(node, (Replace(node, (replacement,)),))
        return None


def _has_includes(program: Program, receiver: int) -> bool:
    """Whether ``receiver`` is a literal on which includes() matches indexOf()."""
    kind = program.kind(receiver)
    if kind in (NodeKind.STRING, NodeKind.TEMPLATE_STRING):
        return True
    if kind is not NodeKind.ARRAY:
        return False
    text = source_text(program, receiver)
    if text is None or _ARRAY_HOLE.search(text):
        return False
    return all(
        program.kind(item) in _LITERAL_ELEMENTS
        for item in program.children(receiver, "items")
    )
