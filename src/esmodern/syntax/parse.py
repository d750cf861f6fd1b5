from __future__ import annotations

import logging
from functools import lru_cache

from tree_sitter import Node as TSNode
from tree_sitter import Parser
from tree_sitter_language_pack import get_language

from esmodern.exceptions import ParseError
from esmodern.syntax.kinds import (
    FIELD_LIST_SLOTS,
    FUNCTION_KINDS,
    LEAF_KINDS,
    LIST_SLOTS,
    OPAQUE_TYPES,
    SINGLE_SLOTS,
    NodeKind,
    kind_for_type,
)
from esmodern.syntax.tree import Hole, Node, Origin, Program

logger = logging.getLogger(__name__)

LANGUAGE = "javascript"

_DECLARATION_KEYWORDS = frozenset({"var", "let", "const"})
_TERMINATED_KINDS = frozenset(
    {
        NodeKind.EXPRESSION_STATEMENT,
        NodeKind.VARIABLE_DECLARATION,
        NodeKind.LEXICAL_DECLARATION,
        NodeKind.RETURN_STATEMENT,
        NodeKind.THROW_STATEMENT,
    }
)


@lru_cache(maxsize=1)
def _parser() -> Parser:
    return Parser(get_language(LANGUAGE))


def parse_program(source: str) -> Program:
    """Parse JavaScript ``source`` into an arena :class:`Program`.

    Raises :class:`ParseError` when the text is not valid JavaScript.
    """
    encoded = source.encode("utf-8")
    tree = _parser().parse(encoded)
    root = tree.root_node
    if root.has_error:
        raise _parse_error(root, encoded)
    builder = _ArenaBuilder(source, encoded)
    program = builder.build(root)
    logger.debug("parsed %d nodes", len(program.nodes))
    return program


def _parse_error(root: TSNode, encoded: bytes) -> ParseError:
    stack = [root]
    while stack:
        current = stack.pop()
        if current.is_missing:
            row, column = current.start_point
            return ParseError(
                f"Missing {current.type!r}", line=row + 1, column=column + 1
            )
        if current.is_error:
            row, column = current.start_point
            snippet = encoded[current.start_byte : current.end_byte].decode(
                "utf-8", errors="replace"
            )
            snippet = snippet.splitlines()[0] if snippet else ""
            return ParseError(
                f"Unexpected token {snippet[:40]!r}", line=row + 1, column=column + 1
            )
        if current.has_error:
            stack.extend(reversed(current.children))
    return ParseError("Unable to parse source")


def detect_indent_unit(source: str) -> str:
    widths: list[int] = []
    for line in source.splitlines()[:400]:
        stripped = line.lstrip(" \t")
        if not stripped or len(stripped) == len(line):
            continue
        leading = line[: len(line) - len(stripped)]
        if leading.startswith("\t"):
            return "\t"
        widths.append(len(leading))
    if not widths:
        return "  "
    return " " * max(1, min(min(widths), 8))


class _ArenaBuilder:
    def __init__(self, source: str, encoded: bytes):
        self.source = source
        self.encoded = encoded
        self.program = Program(
            source=source,
            encoded=encoded,
            indent_unit=detect_indent_unit(source),
            newline="\r\n" if "\r\n" in source else "\n",
        )
        self._line_starts = [0]
        for offset, byte in enumerate(encoded):
            if byte == 0x0A:
                self._line_starts.append(offset + 1)

    def build(self, root: TSNode) -> Program:
        root_id = self._make(root, parent=None)
        self.program.root = root_id
        stack = [(root, root_id)]
        while stack:
            ts_node, node_id = stack.pop()
            for child_ts, child_id in self._expand(ts_node, node_id):
                stack.append((child_ts, child_id))
        return self.program

    def _slice(self, start: int, end: int) -> str:
        return self.encoded[start:end].decode("utf-8")

    def _line_indent(self, offset: int) -> str:
        low, high = 0, len(self._line_starts) - 1
        while low < high:
            mid = (low + high + 1) // 2
            if self._line_starts[mid] <= offset:
                low = mid
            else:
                high = mid - 1
        start = self._line_starts[low]
        end = start
        while end < len(self.encoded) and self.encoded[end] in (0x20, 0x09):
            end += 1
        return self._slice(start, end)

    def _is_leaf(self, ts_node: TSNode, kind: NodeKind) -> bool:
        if kind in LEAF_KINDS or ts_node.type in OPAQUE_TYPES:
            return True
        return not any(
            child.is_named and child.type != "comment" for child in ts_node.children
        )

    def _make(self, ts_node: TSNode, parent: int | None) -> int:
        kind = kind_for_type(ts_node.type)
        node = Node(kind=kind, parent=parent)
        if self._is_leaf(ts_node, kind):
            node.attrs["text"] = self._slice(ts_node.start_byte, ts_node.end_byte)
            node.origin = self._origin(ts_node, ())
        return self.program.add(node)

    def _origin(
        self, ts_node: TSNode, holes: tuple[Hole, ...], *, was_async: bool = False
    ) -> Origin:
        row, column = ts_node.start_point
        return Origin(
            start=ts_node.start_byte,
            end=ts_node.end_byte,
            line=row + 1,
            column=column,
            line_indent=self._line_indent(ts_node.start_byte),
            holes=holes,
            source_type=ts_node.type,
            was_async=was_async,
        )

    def _expand(self, ts_node: TSNode, node_id: int) -> list[tuple[TSNode, int]]:
        node = self.program.nodes[node_id]
        if node.origin is not None:
            return []
        kind = node.kind
        named: list[tuple[str, TSNode]] = []
        tokens: list[tuple[str | None, TSNode]] = []
        cursor = ts_node.walk()
        if cursor.goto_first_child():
            while True:
                child = cursor.node
                field_name = cursor.field_name
                if child.is_named:
                    if child.type != "comment":
                        named.append((self._slot_name(kind, field_name), child))
                else:
                    tokens.append((field_name, child))
                if not cursor.goto_next_sibling():
                    break

        counts: dict[str, int] = {}
        for slot, _child in named:
            counts[slot] = counts.get(slot, 0) + 1
        list_slots = {
            slot
            for slot, count in counts.items()
            if count > 1
            or slot == "children"
            or LIST_SLOTS.get(kind) == slot
            or (kind, slot) in FIELD_LIST_SLOTS
        }
        if kind in LIST_SLOTS:
            node.slots.setdefault(LIST_SLOTS[kind], [])

        entries: list[tuple[int, int, str, int | None, int]] = []
        created: list[tuple[TSNode, int]] = []
        previous_end: dict[str, int] = {}
        for slot, child in named:
            child_id = self._make(child, parent=node_id)
            created.append((child, child_id))
            if slot in list_slots:
                items = node.slots.setdefault(slot, [])
                assert isinstance(items, list)
                index = len(items)
                items.append(child_id)
                if slot in previous_end:
                    self.program.nodes[child_id].gap_before = self._slice(
                        previous_end[slot], child.start_byte
                    )
                previous_end[slot] = child.end_byte
            else:
                index = None
                node.slots[slot] = child_id
            entries.append((child.start_byte, child.end_byte, slot, index, child_id))

        self._read_tokens(node, tokens)
        if kind is NodeKind.UPDATE_EXPRESSION and tokens and named:
            node.attrs["prefix"] = tokens[0][1].start_byte < named[0][1].start_byte
        holes = self._holes(entries, list_slots)
        for field_name, token in tokens:
            if field_name == "kind" or (
                kind is NodeKind.VARIABLE_DECLARATION and token.type == "var"
            ):
                holes.append(
                    Hole(
                        start=token.start_byte,
                        end=token.end_byte,
                        slot="keyword",
                        index=None,
                        line_indent="",
                        token=True,
                    )
                )
        holes.sort(key=lambda hole: hole.start)
        node.origin = self._origin(
            ts_node, tuple(holes), was_async=bool(node.attrs.get("async"))
        )
        return created

    def _slot_name(self, kind: NodeKind, field_name: str | None) -> str:
        if field_name:
            return field_name
        if kind in LIST_SLOTS:
            return LIST_SLOTS[kind]
        if kind in SINGLE_SLOTS:
            return SINGLE_SLOTS[kind]
        return "children"

    def _read_tokens(self, node: Node, tokens: list[tuple[str | None, TSNode]]) -> None:
        kind = node.kind
        if kind in FUNCTION_KINDS:
            node.attrs["async"] = False
            node.attrs["generator"] = kind in (
                NodeKind.GENERATOR_FUNCTION,
                NodeKind.GENERATOR_FUNCTION_DECLARATION,
            )
        for field_name, token in tokens:
            text = token.type
            if field_name == "kind" and text in _DECLARATION_KEYWORDS:
                node.attrs["keyword"] = text
            elif kind is NodeKind.VARIABLE_DECLARATION and text == "var":
                node.attrs["keyword"] = "var"
            elif field_name == "operator":
                node.attrs["operator"] = self._slice(token.start_byte, token.end_byte)
            elif kind in FUNCTION_KINDS and text == "async":
                node.attrs["async"] = True
            elif kind in FUNCTION_KINDS and text == "*":
                node.attrs["generator"] = True
            elif kind is NodeKind.METHOD_DEFINITION and text in ("get", "set", "static"):
                modifiers = node.attrs.setdefault("modifiers", [])
                assert isinstance(modifiers, list)
                modifiers.append(text)
            elif text == ";" and kind in _TERMINATED_KINDS:
                node.attrs["semicolon"] = True
            elif kind is NodeKind.FOR_IN_STATEMENT and text == "await":
                node.attrs["await"] = True
        if kind in _TERMINATED_KINDS:
            node.attrs.setdefault("semicolon", False)

    def _holes(
        self,
        entries: list[tuple[int, int, str, int | None, int]],
        list_slots: set[str],
    ) -> list[Hole]:
        holes: list[Hole] = []
        positions: dict[str, list[int]] = {}
        for position, entry in enumerate(entries):
            if entry[2] in list_slots:
                positions.setdefault(entry[2], []).append(position)
        merged: set[str] = set()
        for slot, where in positions.items():
            if where[-1] - where[0] == len(where) - 1:
                merged.add(slot)
                first = entries[where[0]]
                last = entries[where[-1]]
                holes.append(
                    Hole(
                        start=first[0],
                        end=last[1],
                        slot=slot,
                        index=None,
                        line_indent=self._line_indent(first[0]),
                    )
                )
        for start, end, slot, index, _child_id in entries:
            if slot in merged:
                continue
            holes.append(
                Hole(
                    start=start,
                    end=end,
                    slot=slot,
                    index=index,
                    line_indent=self._line_indent(start),
                )
            )
        return holes
