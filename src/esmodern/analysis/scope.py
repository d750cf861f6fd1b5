"""Lexical scope and binding analysis for one program state.

The analysis is rebuilt from scratch for every rewrite pass. Every query
answers conservatively (shadowed, reassigned, free identifier used) when the
program contains dynamic scope (``eval`` or ``with``) or when it is asked
about a node it never saw.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from esmodern.syntax.kinds import (
    FUNCTION_KINDS,
    NON_ARROW_FUNCTION_KINDS,
    NodeKind,
)
from esmodern.syntax.shapes import call_parts, identifier_name
from esmodern.syntax.tree import Program

logger = logging.getLogger(__name__)


class ScopeKind(str, Enum):
    MODULE = "module"
    FUNCTION = "function"
    BLOCK = "block"
    CATCH = "catch"
    FOR = "for"


class DeclarationForm(str, Enum):
    FIXED = "fixed-once"
    MUTABLE = "mutable"
    PARAMETER = "parameter"
    IMPLICIT = "implicit"


_FORM_BY_KEYWORD = {
    "const": DeclarationForm.FIXED,
    "import": DeclarationForm.FIXED,
    "function-name": DeclarationForm.FIXED,
    "param": DeclarationForm.PARAMETER,
    "catch": DeclarationForm.PARAMETER,
    "implicit": DeclarationForm.IMPLICIT,
}

_REFERENCE_KINDS = frozenset(
    {
        NodeKind.IDENTIFIER,
        NodeKind.SHORTHAND_PROPERTY_IDENTIFIER,
        NodeKind.SHORTHAND_PROPERTY_IDENTIFIER_PATTERN,
    }
)

_PATTERN_CONTAINERS = frozenset(
    {NodeKind.ARRAY_PATTERN, NodeKind.OBJECT_PATTERN, NodeKind.REST_PATTERN}
)

# Attributes that only describe layout.
_LAYOUT_ATTRS = frozenset({"semicolon"})


@dataclass(eq=False)
class Binding:
    name: str
    scope: Scope
    form: DeclarationForm
    keyword: str
    declarations: list[int] = field(default_factory=list)
    declarator: int | None = None
    init: int | None = None
    writes: set[int] = field(default_factory=set)
    reads: set[int] = field(default_factory=set)

    @property
    def references(self) -> set[int]:
        return self.reads | self.writes


@dataclass(eq=False)
class Scope:
    id: int
    kind: ScopeKind
    node: int
    parent_ref: weakref.ReferenceType[Scope] | None = None
    bindings: dict[str, Binding] = field(default_factory=dict)

    @property
    def parent(self) -> Scope | None:
        if self.parent_ref is None:
            return None
        return self.parent_ref()

    def function_scope(self) -> Scope:
        current: Scope | None = self
        while current is not None:
            if current.kind in (ScopeKind.FUNCTION, ScopeKind.MODULE):
                return current
            current = current.parent
        return self

    def chain(self) -> Iterator[Scope]:
        current: Scope | None = self
        while current is not None:
            yield current
            current = current.parent


class PatternNames:
    """Restartable iteration over the names a binding pattern introduces."""

    def __init__(self, program: Program, pattern: int | None):
        self.program = program
        self.pattern = pattern

    def __iter__(self) -> Iterator[str]:
        for node_id in pattern_identifiers(self.program, self.pattern):
            yield self.program.text(node_id)


def pattern_identifiers(program: Program, pattern: int | None) -> Iterator[int]:
    if pattern is None:
        return
    stack = [pattern]
    while stack:
        current = stack.pop()
        kind = program.kind(current)
        if kind in (NodeKind.IDENTIFIER, NodeKind.SHORTHAND_PROPERTY_IDENTIFIER_PATTERN):
            yield current
        elif kind in (NodeKind.ARRAY_PATTERN, NodeKind.OBJECT_PATTERN):
            stack.extend(reversed(program.children(current, "items")))
        elif kind is NodeKind.PAIR_PATTERN:
            stack.extend(program.children(current, "value"))
        elif kind in (NodeKind.ASSIGNMENT_PATTERN, NodeKind.OBJECT_ASSIGNMENT_PATTERN):
            stack.extend(program.children(current, "left"))
        elif kind is NodeKind.REST_PATTERN:
            stack.extend(program.children(current, "argument"))


class ScopeAnalysis:
    def __init__(self, program: Program):
        self.program = program
        self.scopes: list[Scope] = []
        self.dynamic = False
        self.unresolved: dict[str, list[int]] = {}
        self._scope_of: dict[int, Scope] = {}
        self._scope_by_node: dict[int, Scope] = {}
        self._declaration_sites: dict[int, Binding] = {}
        self._ignored: set[int] = set()
        self._resolution: dict[int, Binding] = {}
        self._order: dict[int, int] = {}
        self.module = self._new_scope(ScopeKind.MODULE, program.root, None)
        self._collect()
        self._resolve()
        logger.debug(
            "scope analysis: %d scopes, %d resolved references, dynamic=%s",
            len(self.scopes),
            len(self._resolution),
            self.dynamic,
        )

    # -- construction -----------------------------------------------------

    def _new_scope(self, kind: ScopeKind, node: int, parent: Scope | None) -> Scope:
        scope = Scope(
            id=len(self.scopes),
            kind=kind,
            node=node,
            parent_ref=weakref.ref(parent) if parent is not None else None,
        )
        self.scopes.append(scope)
        self._scope_by_node[node] = scope
        return scope

    def _declare(
        self,
        scope: Scope,
        identifier: int | None,
        keyword: str,
        *,
        declarator: int | None = None,
        init: int | None = None,
    ) -> None:
        if identifier is None:
            return
        name = self.program.text(identifier)
        binding = scope.bindings.get(name)
        if binding is None:
            binding = Binding(
                name=name,
                scope=scope,
                form=_FORM_BY_KEYWORD.get(keyword, DeclarationForm.MUTABLE),
                keyword=keyword,
                declarator=declarator,
                init=init,
            )
            scope.bindings[name] = binding
        binding.declarations.append(identifier)
        self._declaration_sites[identifier] = binding

    def _declare_pattern(
        self, scope: Scope, pattern: int | None, keyword: str, declarator: int | None = None
    ) -> None:
        init = None
        if declarator is not None and self.program.kind(pattern) is NodeKind.IDENTIFIER:
            init = self.program.child(declarator, "value")
        for identifier in pattern_identifiers(self.program, pattern):
            self._declare(scope, identifier, keyword, declarator=declarator, init=init)

    def _collect(self) -> None:
        program = self.program
        stack: list[tuple[int, Scope]] = [(program.root, self.module)]
        counter = 0
        while stack:
            node_id, scope = stack.pop()
            self._order[node_id] = counter
            counter += 1
            self._scope_of[node_id] = scope
            inner = self._enter(node_id, scope)
            children = list(program.child_ids(node_id))
            stack.extend((child, inner) for child in reversed(children))

    def _enter(self, node_id: int, scope: Scope) -> Scope:
        program = self.program
        kind = program.kind(node_id)
        if kind in FUNCTION_KINDS:
            if kind in (
                NodeKind.FUNCTION_DECLARATION,
                NodeKind.GENERATOR_FUNCTION_DECLARATION,
            ):
                self._declare(scope, program.child(node_id, "name"), "function")
            inner = self._new_scope(ScopeKind.FUNCTION, node_id, scope)
            if kind in (NodeKind.FUNCTION_EXPRESSION, NodeKind.GENERATOR_FUNCTION):
                name = program.child(node_id, "name")
                if name is not None:
                    self._declare(inner, name, "function-name")
            if kind is NodeKind.METHOD_DEFINITION:
                name = program.child(node_id, "name")
                if name is not None:
                    self._ignored.add(name)
            if kind in NON_ARROW_FUNCTION_KINDS:
                inner.bindings["arguments"] = Binding(
                    name="arguments",
                    scope=inner,
                    form=DeclarationForm.IMPLICIT,
                    keyword="implicit",
                )
            parameter = program.child(node_id, "parameter")
            if parameter is not None:
                self._declare_pattern(inner, parameter, "param")
            parameters = program.child(node_id, "parameters")
            if parameters is not None:
                for item in program.children(parameters, "items"):
                    self._declare_pattern(inner, item, "param")
            return inner
        if kind is NodeKind.STATEMENT_BLOCK:
            parent = program.parent(node_id)
            if program.kind(parent) in FUNCTION_KINDS:
                return scope
            return self._new_scope(ScopeKind.BLOCK, node_id, scope)
        if kind is NodeKind.SWITCH_BODY:
            return self._new_scope(ScopeKind.BLOCK, node_id, scope)
        if kind in (NodeKind.FOR_STATEMENT, NodeKind.FOR_IN_STATEMENT):
            inner = self._new_scope(ScopeKind.FOR, node_id, scope)
            keyword = program.attr(node_id, "keyword")
            if kind is NodeKind.FOR_IN_STATEMENT and keyword is not None:
                target = inner.function_scope() if keyword == "var" else inner
                self._declare_pattern(target, program.child(node_id, "left"), str(keyword))
            return inner
        if kind is NodeKind.CATCH_CLAUSE:
            inner = self._new_scope(ScopeKind.CATCH, node_id, scope)
            self._declare_pattern(inner, program.child(node_id, "parameter"), "catch")
            return inner
        if kind in (NodeKind.VARIABLE_DECLARATION, NodeKind.LEXICAL_DECLARATION):
            keyword = str(program.attr(node_id, "keyword", "var"))
            target = scope.function_scope() if keyword == "var" else scope
            for declarator in program.children(node_id, "declarators"):
                self._declare_pattern(
                    target, program.child(declarator, "name"), keyword, declarator
                )
            return scope
        if kind is NodeKind.CLASS_DECLARATION:
            self._declare(scope, program.child(node_id, "name"), "class")
        elif kind is NodeKind.CLASS:
            name = program.child(node_id, "name")
            if name is not None:
                self._ignored.add(name)
        elif kind is NodeKind.IMPORT_STATEMENT:
            self._collect_imports(node_id)
        elif kind is NodeKind.EXPORT_SPECIFIER:
            alias = program.child(node_id, "alias")
            if alias is not None:
                self._ignored.add(alias)
        elif kind is NodeKind.WITH_STATEMENT:
            self.dynamic = True
        return scope

    def _collect_imports(self, statement: int) -> None:
        program = self.program
        for node_id in program.preorder(statement):
            kind = program.kind(node_id)
            if kind not in _REFERENCE_KINDS:
                continue
            parent = program.parent(node_id)
            parent_kind = program.kind(parent)
            slot = program.parent_slot(node_id)
            declares = (
                parent_kind in (NodeKind.IMPORT_CLAUSE, NodeKind.NAMESPACE_IMPORT)
                or (parent_kind is NodeKind.IMPORT_SPECIFIER and slot == "alias")
                or (
                    parent_kind is NodeKind.IMPORT_SPECIFIER
                    and slot == "name"
                    and parent is not None
                    and program.child(parent, "alias") is None
                )
            )
            if declares:
                self._declare(self.module, node_id, "import")
            else:
                self._ignored.add(node_id)

    def _resolve(self) -> None:
        program = self.program
        for node_id, scope in self._scope_of.items():
            if program.kind(node_id) not in _REFERENCE_KINDS:
                continue
            if node_id in self._declaration_sites or node_id in self._ignored:
                continue
            name = program.text(node_id)
            binding = self.lookup(scope, name)
            read, write = self._access(node_id)
            if binding is None:
                self.unresolved.setdefault(name, []).append(node_id)
                if name == "eval" and self._is_callee(node_id):
                    self.dynamic = True
                continue
            self._resolution[node_id] = binding
            if read:
                binding.reads.add(node_id)
            if write:
                binding.writes.add(node_id)

    def _is_callee(self, node_id: int) -> bool:
        parent = self.program.parent(node_id)
        call = call_parts(self.program, parent)
        return call is not None and call[0] == node_id

    def _access(self, identifier: int) -> tuple[bool, bool]:
        """``(read, write)`` classification of a reference."""
        program = self.program
        child = identifier
        parent = program.parent(child)
        while parent is not None:
            kind = program.kind(parent)
            slot = program.parent_slot(child)
            climbs = (
                kind in _PATTERN_CONTAINERS
                or kind is NodeKind.PARENTHESIZED_EXPRESSION
                or (kind is NodeKind.PAIR_PATTERN and slot == "value")
                or (
                    kind in (NodeKind.ASSIGNMENT_PATTERN, NodeKind.OBJECT_ASSIGNMENT_PATTERN)
                    and slot == "left"
                )
            )
            if not climbs:
                break
            child, parent = parent, program.parent(parent)
        if parent is None:
            return True, False
        kind = program.kind(parent)
        slot = program.parent_slot(child)
        if kind is NodeKind.ASSIGNMENT_EXPRESSION and slot == "left":
            return False, True
        if kind is NodeKind.AUGMENTED_ASSIGNMENT_EXPRESSION and slot == "left":
            return True, True
        if kind is NodeKind.UPDATE_EXPRESSION:
            return True, True
        if (
            kind is NodeKind.FOR_IN_STATEMENT
            and slot == "left"
            and program.attr(parent, "keyword") is None
        ):
            return False, True
        return True, False

    # -- queries ----------------------------------------------------------

    def scope_at(self, node_id: int) -> Scope | None:
        return self._scope_of.get(node_id)

    def scope_for(self, node_id: int) -> Scope | None:
        """The scope created by ``node_id``, if it creates one."""
        return self._scope_by_node.get(node_id)

    def lookup(self, scope: Scope | None, name: str) -> Binding | None:
        if scope is None:
            return None
        for current in scope.chain():
            binding = current.bindings.get(name)
            if binding is not None:
                return binding
        return None

    def binding_of(self, identifier: int) -> Binding | None:
        binding = self._declaration_sites.get(identifier)
        if binding is not None:
            return binding
        return self._resolution.get(identifier)

    def is_global(self, node_id: int, name: str) -> bool:
        """Whether ``name`` at ``node_id`` refers to a global (undeclared) name."""
        if self.dynamic:
            return False
        scope = self.scope_at(node_id)
        return scope is not None and self.lookup(scope, name) is None

    def order(self, node_id: int) -> int | None:
        return self._order.get(node_id)

    def precedes(self, first: int, second: int) -> bool:
        a = self._order.get(first)
        b = self._order.get(second)
        return a is not None and b is not None and a < b

    def declared_names(self, pattern: int | None) -> PatternNames:
        return PatternNames(self.program, pattern)

    def is_shadowed_at(self, name: str, declaring_scope: Scope, use_site: int) -> bool:
        if self.dynamic:
            return True
        scope = self.scope_at(use_site)
        if scope is None:
            return True
        for current in scope.chain():
            if current is declaring_scope:
                return False
            if name in current.bindings:
                return True
        return True

    def is_reassigned(self, name: str, declaring_scope: Scope) -> bool:
        if self.dynamic:
            return True
        binding = declaring_scope.bindings.get(name)
        if binding is None:
            return True
        return bool(binding.writes) or len(binding.declarations) > 1

    def uses_free_identifier(self, function_id: int, name: str) -> bool:
        """Whether the function refers to ``name`` without declaring it.

        The implicit ``arguments`` of the function itself is not a
        declaration; that of a nested function is.
        """
        if self.dynamic:
            return True
        function_scope = self.scope_for(function_id)
        if function_scope is None or function_scope.kind is not ScopeKind.FUNCTION:
            return True
        program = self.program
        for node_id in program.preorder(function_id):
            if program.kind(node_id) not in _REFERENCE_KINDS:
                continue
            if program.text(node_id) != name:
                continue
            if node_id in self._declaration_sites or node_id in self._ignored:
                continue
            binding = self._resolution.get(node_id)
            if binding is None or not self._scope_within(binding.scope, function_scope):
                return True
            if binding.scope is function_scope and binding.form is DeclarationForm.IMPLICIT:
                return True
        return False

    def _scope_within(self, scope: Scope, container: Scope) -> bool:
        return any(current is container for current in scope.chain())

    def is_captured(self, binding: Binding) -> bool:
        """Whether some reference sits in a different function than the binding."""
        home = binding.scope.function_scope()
        for reference in binding.references:
            scope = self.scope_at(reference)
            if scope is None or scope.function_scope() is not home:
                return True
        return False

    def uses_this(self, function_id: int) -> bool:
        """Whether a function refers to its own ``this``, ``super`` or ``new.target``."""
        program = self.program
        stack = list(program.child_ids(function_id))
        while stack:
            current = stack.pop()
            kind = program.kind(current)
            if kind in (NodeKind.THIS, NodeKind.SUPER, NodeKind.META_PROPERTY):
                return True
            if kind is NodeKind.OTHER and program.text(current) in ("this", "super"):
                return True
            if kind in NON_ARROW_FUNCTION_KINDS:
                continue
            stack.extend(program.child_ids(current))
        return False

    def uses_own_arguments(self, function_id: int) -> bool:
        if self.program.kind(function_id) not in NON_ARROW_FUNCTION_KINDS:
            return False
        return self.uses_free_identifier(function_id, "arguments")

    def own_arguments(self, function_id: int) -> Binding | None:
        """The implicit ``arguments`` binding of a non-arrow function."""
        scope = self.scope_for(function_id)
        if scope is None:
            return None
        binding = scope.bindings.get("arguments")
        if binding is None or binding.form is not DeclarationForm.IMPLICIT:
            return None
        return binding

    def is_constructed(self, function_id: int) -> bool:
        """Whether a function is used with ``new``, extended, or has its prototype read.

        Looks at the function expression itself and at every binding that
        names it: its declared name, or the declarator or assignment it
        initializes.
        """
        if self._constructs(function_id):
            return True
        for binding in self._naming_bindings(function_id):
            for reference in binding.reads:
                if self._constructs(reference):
                    return True
        return False

    def _naming_bindings(self, function_id: int) -> list[Binding]:
        program = self.program
        names = [program.child(function_id, "name")]
        child, holder = self._outer_expression(function_id)
        holder_kind = program.kind(holder)
        if holder is not None:
            if holder_kind is NodeKind.VARIABLE_DECLARATOR:
                if program.child(holder, "value") == child:
                    names.append(program.child(holder, "name"))
            elif holder_kind is NodeKind.ASSIGNMENT_EXPRESSION:
                if program.child(holder, "right") == child:
                    names.append(program.child(holder, "left"))
        found: list[Binding] = []
        for name in names:
            if program.kind(name) is not NodeKind.IDENTIFIER:
                continue
            assert name is not None
            binding = self.binding_of(name)
            if binding is not None and binding not in found:
                found.append(binding)
        return found

    def _outer_expression(self, node_id: int) -> tuple[int, int | None]:
        """``(child, holder)``: the first non-parenthesis ancestor and its child on the path."""
        program = self.program
        child = node_id
        holder = program.parent(child)
        while program.kind(holder) is NodeKind.PARENTHESIZED_EXPRESSION:
            assert holder is not None
            child, holder = holder, program.parent(holder)
        return child, holder

    def _constructs(self, node_id: int) -> bool:
        program = self.program
        child, holder = self._outer_expression(node_id)
        if holder is None:
            return False
        kind = program.kind(holder)
        if kind is NodeKind.NEW_EXPRESSION:
            return program.child(holder, "constructor") == child
        if kind is NodeKind.MEMBER_EXPRESSION and program.child(holder, "object") == child:
            prop = program.child(holder, "property")
            return prop is not None and program.text(prop) == "prototype"
        origin = program.node(holder).origin
        return origin is not None and origin.source_type == "class_heritage"

    def are_equivalent(self, first: int | None, second: int | None) -> bool:
        """Structural equality of two expression subtrees.

        Kinds, leaf text and every semantic attribute (operator, prefix,
        async, generator, keyword) must match; statement terminators do not
        matter.
        """
        program = self.program
        pairs = [(first, second)]
        while pairs:
            a, b = pairs.pop()
            if a is None or b is None:
                if a is not b:
                    return False
                continue
            if a == b:
                continue
            kind = program.kind(a)
            if kind is not program.kind(b) or kind is NodeKind.OTHER:
                return False
            node_a = program.node(a)
            node_b = program.node(b)
            if _semantic_attrs(node_a.attrs) != _semantic_attrs(node_b.attrs):
                return False
            if node_a.slots.keys() != node_b.slots.keys():
                return False
            for slot, value in node_a.slots.items():
                other = node_b.slots[slot]
                if isinstance(value, list) or isinstance(other, list):
                    left = program.children(a, slot)
                    right = program.children(b, slot)
                    if len(left) != len(right):
                        return False
                    pairs.extend(zip(left, right))
                else:
                    pairs.append((value, other))
        return True

    def name_of(self, node_id: int | None) -> str | None:
        return identifier_name(self.program, node_id)


def _semantic_attrs(attrs: dict[str, object]) -> dict[str, object]:
    return {name: value for name, value in attrs.items() if name not in _LAYOUT_ATTRS}
