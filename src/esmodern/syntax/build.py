from __future__ import annotations

from dataclasses import dataclass

from esmodern.syntax.kinds import NodeKind
from esmodern.syntax.tree import Node, Program, SlotValue


@dataclass
class NodeFactory:
    """Creates detached nodes in a program's arena.

    Nodes made here have no parent until a rewrite places them in the tree.
    Existing nodes passed as children are moved, not copied.
    """

    program: Program

    def _new(
        self,
        kind: NodeKind,
        slots: dict[str, SlotValue] | None = None,
        **attrs: object,
    ) -> int:
        return self.program.add(Node(kind=kind, slots=dict(slots or {}), attrs=attrs))

    def leaf(self, kind: NodeKind, text: str) -> int:
        return self._new(kind, text=text)

    def identifier(self, name: str) -> int:
        return self.leaf(NodeKind.IDENTIFIER, name)

    def property_identifier(self, name: str) -> int:
        return self.leaf(NodeKind.PROPERTY_IDENTIFIER, name)

    def string(self, value: str, quote: str = '"') -> int:
        return self.leaf(NodeKind.STRING, f"{quote}{value}{quote}")

    def declaration(
        self, keyword: str, declarators: list[int], *, semicolon: bool = True
    ) -> int:
        kind = (
            NodeKind.VARIABLE_DECLARATION
            if keyword == "var"
            else NodeKind.LEXICAL_DECLARATION
        )
        return self._new(
            kind, {"declarators": list(declarators)}, keyword=keyword, semicolon=semicolon
        )

    def declarator(self, name: int, value: int | None = None) -> int:
        slots: dict[str, SlotValue] = {"name": name}
        if value is not None:
            slots["value"] = value
        return self._new(NodeKind.VARIABLE_DECLARATOR, slots)

    def block(self, statements: list[int]) -> int:
        return self._new(NodeKind.STATEMENT_BLOCK, {"body": list(statements)})

    def try_catch(self, body: int, parameter: int | None, handler_body: int) -> int:
        slots: dict[str, SlotValue] = {}
        if parameter is not None:
            slots["parameter"] = parameter
        slots["body"] = handler_body
        handler = self._new(NodeKind.CATCH_CLAUSE, slots)
        return self._new(NodeKind.TRY_STATEMENT, {"body": body, "handler": handler})

    def return_(self, argument: int | None, *, semicolon: bool = True) -> int:
        slots: dict[str, SlotValue] = {}
        if argument is not None:
            slots["argument"] = argument
        return self._new(NodeKind.RETURN_STATEMENT, slots, semicolon=semicolon)

    def throw(self, argument: int, *, semicolon: bool = True) -> int:
        return self._new(
            NodeKind.THROW_STATEMENT, {"argument": argument}, semicolon=semicolon
        )

    def expression_statement(self, expression: int, *, semicolon: bool = True) -> int:
        return self._new(
            NodeKind.EXPRESSION_STATEMENT,
            {"expression": expression},
            semicolon=semicolon,
        )

    def await_(self, argument: int) -> int:
        return self._new(NodeKind.AWAIT_EXPRESSION, {"argument": argument})

    def call(self, callee: int, arguments: list[int]) -> int:
        args = self._new(NodeKind.ARGUMENTS, {"items": list(arguments)})
        return self._new(NodeKind.CALL_EXPRESSION, {"function": callee, "arguments": args})

    def member(self, target: int, name: str) -> int:
        return self._new(
            NodeKind.MEMBER_EXPRESSION,
            {"object": target, "property": self.property_identifier(name)},
        )

    def method_call(self, target: int, name: str, arguments: list[int]) -> int:
        return self.call(self.member(target, name), arguments)

    def binary(self, left: int, operator: str, right: int) -> int:
        return self._new(
            NodeKind.BINARY_EXPRESSION, {"left": left, "right": right}, operator=operator
        )

    def unary(self, operator: str, argument: int) -> int:
        return self._new(NodeKind.UNARY_EXPRESSION, {"argument": argument}, operator=operator)

    def assignment(self, left: int, right: int) -> int:
        return self._new(NodeKind.ASSIGNMENT_EXPRESSION, {"left": left, "right": right})

    def parenthesized(self, expression: int) -> int:
        return self._new(NodeKind.PARENTHESIZED_EXPRESSION, {"expression": expression})

    def arrow(self, parameters: int, body: int, *, is_async: bool = False) -> int:
        node_id = self._new(
            NodeKind.ARROW_FUNCTION, {"parameters": parameters, "body": body}, generator=False
        )
        self.program.node(node_id).attrs["async"] = is_async
        return node_id

    def parameters(self, items: list[int]) -> int:
        return self._new(NodeKind.FORMAL_PARAMETERS, {"items": list(items)})

    def rest(self, argument: int) -> int:
        return self._new(NodeKind.REST_PATTERN, {"argument": argument})

    def for_of(self, keyword: str, left: int, right: int, body: int) -> int:
        return self._new(
            NodeKind.FOR_IN_STATEMENT,
            {"left": left, "right": right, "body": body},
            keyword=keyword,
            operator="of",
        )
