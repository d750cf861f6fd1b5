"""Arena-backed syntax tree.

Nodes live in one list owned by a :class:`Program` and refer to each other by
integer index. Each node keeps its parent index; child order is given by the
node's slots. Nodes created by rewrites carry no ``origin`` and are printed from
templates; parsed nodes keep the source span they were read from so the
printer can copy untouched text verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from esmodern.invariants import never
from esmodern.syntax.kinds import LEAF_KINDS, NodeKind

SlotValue = int | list[int] | None


@dataclass(frozen=True)
class Hole:
    """A region of a parsed node's text that is re-rendered on print."""

    start: int
    end: int
    slot: str
    index: int | None
    line_indent: str
    token: bool = False


@dataclass(frozen=True)
class Origin:
    start: int
    end: int
    line: int
    column: int
    line_indent: str
    holes: tuple[Hole, ...]
    source_type: str
    was_async: bool = False


@dataclass(eq=False)
class Node:
    kind: NodeKind
    slots: dict[str, SlotValue] = field(default_factory=dict)
    attrs: dict[str, object] = field(default_factory=dict)
    parent: int | None = None
    origin: Origin | None = None
    gap_before: str | None = None

    @property
    def text(self) -> str:
        return str(self.attrs.get("text", ""))


@dataclass
class Program:
    source: str
    encoded: bytes
    nodes: list[Node] = field(default_factory=list)
    root: int = 0
    indent_unit: str = "  "
    newline: str = "\n"

    # -- access -----------------------------------------------------------

    def node(self, node_id: int) -> Node:
        return self.nodes[node_id]

    def kind(self, node_id: int | None) -> NodeKind | None:
        if node_id is None:
            return None
        return self.nodes[node_id].kind

    def attr(self, node_id: int, name: str, default: object = None) -> object:
        return self.nodes[node_id].attrs.get(name, default)

    def text(self, node_id: int) -> str:
        return self.nodes[node_id].text

    def parent(self, node_id: int) -> int | None:
        return self.nodes[node_id].parent

    def child(self, node_id: int, slot: str) -> int | None:
        value = self.nodes[node_id].slots.get(slot)
        if isinstance(value, list):
            never("list slot read as single child", slot=slot)
        return value

    def children(self, node_id: int, slot: str) -> list[int]:
        value = self.nodes[node_id].slots.get(slot)
        if value is None:
            return []
        if isinstance(value, list):
            return list(value)
        return [value]

    def child_ids(self, node_id: int) -> Iterator[int]:
        for value in self.nodes[node_id].slots.values():
            if value is None:
                continue
            if isinstance(value, list):
                yield from value
            else:
                yield value

    def slot_of(self, node_id: int) -> tuple[str, int | None]:
        parent_id = self.nodes[node_id].parent
        if parent_id is None:
            never("slot lookup on detached node", node=node_id)
        for slot, value in self.nodes[parent_id].slots.items():
            if isinstance(value, list):
                if node_id in value:
                    return slot, value.index(node_id)
            elif value == node_id:
                return slot, None
        never("node missing from its parent's slots", node=node_id, parent=parent_id)

    def parent_slot(self, node_id: int) -> str | None:
        if self.nodes[node_id].parent is None:
            return None
        return self.slot_of(node_id)[0]

    def ancestors(self, node_id: int) -> Iterator[int]:
        current = self.nodes[node_id].parent
        while current is not None:
            yield current
            current = self.nodes[current].parent

    def is_attached(self, node_id: int) -> bool:
        if node_id == self.root:
            return True
        for ancestor in self.ancestors(node_id):
            if ancestor == self.root:
                return True
        return False

    def is_within(self, node_id: int, container: int) -> bool:
        if node_id == container:
            return True
        return any(ancestor == container for ancestor in self.ancestors(node_id))

    def preorder(self, start: int | None = None) -> Iterator[int]:
        stack = [self.root if start is None else start]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(list(self.child_ids(current))))

    def line_of(self, node_id: int) -> int:
        origin = self.nodes[node_id].origin
        if origin is not None:
            return origin.line
        for descendant in self.preorder(node_id):
            origin = self.nodes[descendant].origin
            if origin is not None:
                return origin.line
        for ancestor in self.ancestors(node_id):
            origin = self.nodes[ancestor].origin
            if origin is not None:
                return origin.line
        return 1

    def is_leaf(self, node_id: int) -> bool:
        return self.nodes[node_id].kind in LEAF_KINDS

    # -- mutation ---------------------------------------------------------

    def add(self, node: Node) -> int:
        self.nodes.append(node)
        return len(self.nodes) - 1

    def set_attr(self, node_id: int, name: str, value: object) -> bool:
        attrs = self.nodes[node_id].attrs
        if name in attrs and attrs[name] == value:
            return False
        attrs[name] = value
        return True

    def replace(self, target: int, replacements: tuple[int, ...]) -> bool:
        """Put ``replacements`` where ``target`` sits and detach ``target``."""
        node = self.nodes[target]
        parent_id = node.parent
        if parent_id is None:
            never("replace on detached node", node=target)
        parent = self.nodes[parent_id]
        slot, index = self.slot_of(target)
        if index is None:
            if len(replacements) != 1:
                never("single slot takes exactly one replacement", slot=slot)
            if replacements[0] == target:
                return False
            parent.slots[slot] = replacements[0]
        else:
            items = parent.slots[slot]
            assert isinstance(items, list)
            if tuple(items[index : index + 1]) == tuple(replacements):
                return False
            items[index : index + 1] = list(replacements)
            if replacements and node.gap_before is not None:
                first = self.nodes[replacements[0]]
                if first.gap_before is None:
                    first.gap_before = node.gap_before
        if target not in replacements:
            node.parent = None
        for replacement in replacements:
            self._adopt(replacement, parent_id)
        return True

    def _adopt(self, node_id: int, parent_id: int) -> None:
        stack = [(node_id, parent_id)]
        while stack:
            current, owner = stack.pop()
            self.nodes[current].parent = owner
            for child in self.child_ids(current):
                if self.nodes[child].parent != current:
                    stack.append((child, current))
