"""Turn a (possibly rewritten) :class:`Program` back into source text.

Parsed nodes are printed by splicing: their original text is copied and only
the holes whose slots may have changed are printed again. Nodes created by
rewrites have no original text and are generated from per-kind templates.
"""

from __future__ import annotations

from typing import Callable

from esmodern.invariants import never
from esmodern.syntax.kinds import STATEMENT_LIST_KINDS, NodeKind
from esmodern.syntax.tree import Hole, Program

# Expressions that never need parentheses as an operand.
PRIMARY_KINDS = frozenset(
    {
        NodeKind.IDENTIFIER,
        NodeKind.THIS,
        NodeKind.SUPER,
        NodeKind.NUMBER,
        NodeKind.STRING,
        NodeKind.TEMPLATE_STRING,
        NodeKind.REGEX,
        NodeKind.NULL,
        NodeKind.TRUE,
        NodeKind.FALSE,
        NodeKind.UNDEFINED,
        NodeKind.ARRAY,
        NodeKind.OBJECT,
        NodeKind.MEMBER_EXPRESSION,
        NodeKind.SUBSCRIPT_EXPRESSION,
        NodeKind.CALL_EXPRESSION,
        NodeKind.PARENTHESIZED_EXPRESSION,
        NodeKind.META_PROPERTY,
    }
)


def print_program(program: Program) -> str:
    return Printer(program).render()


class Printer:
    def __init__(self, program: Program):
        self.program = program
        self.unit = program.indent_unit
        self.newline = program.newline
        self._generators: dict[NodeKind, Callable[[int, str], str]] = {
            NodeKind.VARIABLE_DECLARATION: self._declaration,
            NodeKind.LEXICAL_DECLARATION: self._declaration,
            NodeKind.VARIABLE_DECLARATOR: self._declarator,
            NodeKind.STATEMENT_BLOCK: self._block,
            NodeKind.TRY_STATEMENT: self._try,
            NodeKind.CATCH_CLAUSE: self._catch,
            NodeKind.RETURN_STATEMENT: self._return,
            NodeKind.THROW_STATEMENT: self._throw,
            NodeKind.EXPRESSION_STATEMENT: self._expression_statement,
            NodeKind.AWAIT_EXPRESSION: self._await,
            NodeKind.CALL_EXPRESSION: self._call,
            NodeKind.ARGUMENTS: self._arguments,
            NodeKind.MEMBER_EXPRESSION: self._member,
            NodeKind.BINARY_EXPRESSION: self._binary,
            NodeKind.UNARY_EXPRESSION: self._unary,
            NodeKind.ASSIGNMENT_EXPRESSION: self._assignment,
            NodeKind.PARENTHESIZED_EXPRESSION: self._parenthesized,
            NodeKind.ARROW_FUNCTION: self._arrow,
            NodeKind.FORMAL_PARAMETERS: self._parameters,
            NodeKind.REST_PATTERN: self._rest,
            NodeKind.FOR_IN_STATEMENT: self._for_in,
        }

    def render(self) -> str:
        root = self.program.node(self.program.root)
        text = self._render(self.program.root, "")
        if root.origin is None:
            return text
        leading = self._slice(0, root.origin.start)
        trailing = self._slice(root.origin.end, len(self.program.encoded))
        return leading + text + trailing

    # -- parsed nodes -----------------------------------------------------

    def _render(self, node_id: int, indent: str) -> str:
        node = self.program.node(node_id)
        origin = node.origin
        if origin is None:
            if node.attrs.get("text") is not None and not node.slots:
                return node.text
            generator = self._generators.get(node.kind)
            if generator is None:
                never("no generator for node kind", kind=node.kind.value)
            return generator(node_id, indent)
        if not origin.holes:
            text = node.text if "text" in node.attrs else self._slice(origin.start, origin.end)
        else:
            text = self._splice(node_id)
        if node.attrs.get("async") and not origin.was_async:
            text = "async " + text
        if indent != origin.line_indent and self._can_shift(node_id):
            text = shift_indent(text, origin.line_indent, indent)
        return text

    def _slice(self, start: int, end: int) -> str:
        return self.program.encoded[start:end].decode("utf-8")

    def _splice(self, node_id: int) -> str:
        node = self.program.node(node_id)
        origin = node.origin
        assert origin is not None
        parts: list[str] = []
        cursor = origin.start
        for hole in origin.holes:
            parts.append(self._slice(cursor, hole.start))
            parts.append(self._fill(node_id, hole))
            cursor = hole.end
        parts.append(self._slice(cursor, origin.end))
        return "".join(parts)

    def _fill(self, node_id: int, hole: Hole) -> str:
        node = self.program.node(node_id)
        if hole.token:
            return str(node.attrs.get(hole.slot, self._slice(hole.start, hole.end)))
        value = node.slots.get(hole.slot)
        if value is None:
            return ""
        if isinstance(value, list):
            if hole.index is None:
                return self._render_list(node_id, hole.slot, value, hole.line_indent)
            if hole.index >= len(value):
                never("element hole past end of list", slot=hole.slot)
            return self._render(value[hole.index], hole.line_indent)
        return self._render(value, hole.line_indent)

    def _render_list(
        self, node_id: int, slot: str, items: list[int], indent: str
    ) -> str:
        statements = self.program.kind(node_id) in STATEMENT_LIST_KINDS
        default = (self.newline + indent) if statements else ", "
        parts: list[str] = []
        for position, item in enumerate(items):
            if position:
                gap = self.program.node(item).gap_before
                if gap is None:
                    gap = default
                parts.append(gap)
            parts.append(self._render(item, indent))
        return "".join(parts)

    def _can_shift(self, node_id: int) -> bool:
        """Whether the text of ``node_id`` may be re-indented."""
        for descendant in self.program.preorder(node_id):
            node = self.program.node(descendant)
            if node.kind is NodeKind.TEMPLATE_STRING and node.origin is not None:
                if "\n" in self._slice(node.origin.start, node.origin.end):
                    return False
        return True

    # -- generated nodes --------------------------------------------------

    def _terminator(self, node_id: int) -> str:
        return ";" if self.program.attr(node_id, "semicolon", True) else ""

    def _declaration(self, node_id: int, indent: str) -> str:
        keyword = self.program.attr(node_id, "keyword")
        declarators = ", ".join(
            self._render(item, indent)
            for item in self.program.children(node_id, "declarators")
        )
        return f"{keyword} {declarators}{self._terminator(node_id)}"

    def _declarator(self, node_id: int, indent: str) -> str:
        name = self._render(self._required(node_id, "name"), indent)
        value = self.program.child(node_id, "value")
        if value is None:
            return name
        return f"{name} = {self._render(value, indent)}"

    def _block(self, node_id: int, indent: str) -> str:
        inner = indent + self.unit
        body = self.program.children(node_id, "body")
        if not body:
            return "{}"
        parts = ["{"]
        for item in body:
            parts.append(self._separator(item, inner))
            parts.append(inner + self._render(item, inner))
        parts.append(self.newline + indent + "}")
        return "".join(parts)

    def _separator(self, item: int, indent: str) -> str:
        """Line break before a statement in a generated block, keeping comments."""
        gap = self.program.node(item).gap_before or ""
        comments = [line.strip() for line in gap.splitlines() if line.strip()]
        return self.newline + "".join(
            indent + comment + self.newline for comment in comments
        )

    def _try(self, node_id: int, indent: str) -> str:
        text = "try " + self._render(self._required(node_id, "body"), indent)
        handler = self.program.child(node_id, "handler")
        if handler is not None:
            text += " " + self._render(handler, indent)
        finalizer = self.program.child(node_id, "finalizer")
        if finalizer is not None:
            text += " " + self._render(finalizer, indent)
        return text

    def _catch(self, node_id: int, indent: str) -> str:
        body = self._render(self._required(node_id, "body"), indent)
        parameter = self.program.child(node_id, "parameter")
        if parameter is None:
            return f"catch {body}"
        return f"catch ({self._render(parameter, indent)}) {body}"

    def _return(self, node_id: int, indent: str) -> str:
        argument = self.program.child(node_id, "argument")
        if argument is None:
            return "return" + self._terminator(node_id)
        return f"return {self._render(argument, indent)}{self._terminator(node_id)}"

    def _throw(self, node_id: int, indent: str) -> str:
        argument = self._render(self._required(node_id, "argument"), indent)
        return f"throw {argument}{self._terminator(node_id)}"

    def _expression_statement(self, node_id: int, indent: str) -> str:
        expression = self._render(self._required(node_id, "expression"), indent)
        return expression + self._terminator(node_id)

    def _await(self, node_id: int, indent: str) -> str:
        argument = self._required(node_id, "argument")
        if self.program.kind(argument) is NodeKind.NEW_EXPRESSION:
            return "await " + self._render(argument, indent)
        return "await " + self._operand(argument, indent)

    def _call(self, node_id: int, indent: str) -> str:
        callee = self._operand(self._required(node_id, "function"), indent)
        return callee + self._render(self._required(node_id, "arguments"), indent)

    def _arguments(self, node_id: int, indent: str) -> str:
        items = self.program.children(node_id, "items")
        return "(" + ", ".join(self._render(item, indent) for item in items) + ")"

    def _member(self, node_id: int, indent: str) -> str:
        target = self._operand(self._required(node_id, "object"), indent)
        prop = self._render(self._required(node_id, "property"), indent)
        return f"{target}.{prop}"

    def _binary(self, node_id: int, indent: str) -> str:
        left = self._render(self._required(node_id, "left"), indent)
        right = self._render(self._required(node_id, "right"), indent)
        return f"{left} {self.program.attr(node_id, 'operator')} {right}"

    def _unary(self, node_id: int, indent: str) -> str:
        operator = str(self.program.attr(node_id, "operator"))
        argument = self._operand(self._required(node_id, "argument"), indent)
        if operator.isalpha():
            return f"{operator} {argument}"
        return operator + argument

    def _assignment(self, node_id: int, indent: str) -> str:
        left = self._render(self._required(node_id, "left"), indent)
        right = self._render(self._required(node_id, "right"), indent)
        return f"{left} = {right}"

    def _parenthesized(self, node_id: int, indent: str) -> str:
        return "(" + self._render(self._required(node_id, "expression"), indent) + ")"

    def _arrow(self, node_id: int, indent: str) -> str:
        prefix = "async " if self.program.attr(node_id, "async") else ""
        parameters = self.program.child(node_id, "parameters")
        if parameters is None:
            params = self._render(self._required(node_id, "parameter"), indent)
        else:
            params = self._render(parameters, indent)
        body = self._render(self._required(node_id, "body"), indent)
        return f"{prefix}{params} => {body}"

    def _parameters(self, node_id: int, indent: str) -> str:
        items = self.program.children(node_id, "items")
        return "(" + ", ".join(self._render(item, indent) for item in items) + ")"

    def _rest(self, node_id: int, indent: str) -> str:
        return "..." + self._render(self._required(node_id, "argument"), indent)

    def _for_in(self, node_id: int, indent: str) -> str:
        keyword = self.program.attr(node_id, "keyword")
        head = f"{keyword} " if keyword else ""
        left = self._render(self._required(node_id, "left"), indent)
        right = self._render(self._required(node_id, "right"), indent)
        operator = self.program.attr(node_id, "operator")
        body = self._render(self._required(node_id, "body"), indent)
        return f"for ({head}{left} {operator} {right}) {body}"

    def _operand(self, node_id: int, indent: str) -> str:
        text = self._render(node_id, indent)
        if self.program.kind(node_id) in PRIMARY_KINDS:
            return text
        return f"({text})"

    def _required(self, node_id: int, slot: str) -> int:
        child = self.program.child(node_id, slot)
        if child is None:
            never("generated node is missing a slot", slot=slot)
        return child


def shift_indent(text: str, old: str, new: str) -> str:
    """Re-indent every line after the first from ``old`` to ``new``."""
    if "\n" not in text:
        return text
    lines = text.split("\n")
    shifted = [lines[0]]
    for line in lines[1:]:
        if not line.strip():
            shifted.append(line.strip(" \t"))
        elif line.startswith(old):
            shifted.append(new + line[len(old) :])
        else:
            shifted.append(new + line.lstrip(" \t"))
    return "\n".join(shifted)
