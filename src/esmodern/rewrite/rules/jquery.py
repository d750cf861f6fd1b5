"""Opt-in rewrites of common jQuery calls to DOM APIs.

A receiver is translatable when it is ``$(this)``, ``$("#id")`` or a binding
whose provenance is ``$("#id")``. Like the tools these rules replace, id
selectors are assumed to match an element that exists.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from esmodern.analysis.provenance import Provenance, ProvenanceResolver
from esmodern.analysis.scope import Scope, ScopeAnalysis
from esmodern.rewrite.model import CapabilityLevel, Edit, Replace, Rewrite, RuleContext
from esmodern.syntax.kinds import NodeKind
from esmodern.syntax.shapes import (
    call_parts,
    has_spread,
    identifier_name,
    member_parts,
    string_quote,
    string_value,
)
from esmodern.syntax.tree import Program

JQUERY_NAMES = frozenset({"$", "jQuery"})
CLASS_METHODS = {
    "addClass": "add",
    "removeClass": "remove",
    "toggleClass": "toggle",
    "hasClass": "contains",
}
DOM_PROPERTIES = {"text": "textContent", "html": "innerHTML", "val": "value"}

_ID_SELECTOR = re.compile(r"^#([A-Za-z_][\w-]*)$")
_RESOLVER_KEY = "jquery-id-selector"


@dataclass(frozen=True)
class JQueryCall:
    call: int
    receiver: int
    method: str
    arguments: tuple[int, ...]


def jquery_argument(
    program: Program, analysis: ScopeAnalysis, node_id: int | None
) -> int | None:
    """``x`` for a call ``$(x)`` or ``jQuery(x)`` of the global jQuery."""
    parts = call_parts(program, node_id)
    if parts is None:
        return None
    callee, arguments = parts
    name = identifier_name(program, callee)
    if name not in JQUERY_NAMES or len(arguments) != 1 or has_spread(program, arguments):
        return None
    if not analysis.is_global(callee, str(name)):
        return None
    return arguments[0]


def id_selector(
    program: Program, analysis: ScopeAnalysis, node_id: int | None
) -> str | None:
    """The element id selected by ``$("#id")``."""
    argument = jquery_argument(program, analysis, node_id)
    match = _ID_SELECTOR.match(string_value(program, argument) or "")
    return match.group(1) if match else None


def is_statement(program: Program, node_id: int) -> bool:
    parent = program.parent(node_id)
    return program.kind(parent) is NodeKind.EXPRESSION_STATEMENT


def jquery_call(program: Program, node_id: int | None) -> JQueryCall | None:
    """A call of a translatable jQuery method whose arguments and position fit."""
    parts = call_parts(program, node_id)
    if parts is None:
        return None
    callee, arguments = parts
    member = member_parts(program, callee)
    if member is None or has_spread(program, arguments):
        return None
    receiver, method = member
    assert node_id is not None
    found = JQueryCall(node_id, receiver, method, tuple(arguments))
    if method in CLASS_METHODS:
        tokens = class_tokens(program, found)
        if tokens is None:
            return None
        if method != "hasClass" and not is_statement(program, node_id):
            return None
        return found
    if method in DOM_PROPERTIES:
        if not arguments:
            return found
        if len(arguments) == 1 and is_statement(program, node_id):
            return found
    return None


def class_tokens(program: Program, found: JQueryCall) -> list[tuple[str, str]] | None:
    """``(class name, quote)`` pairs named by a class method's literal argument."""
    if len(found.arguments) != 1:
        return None
    (argument,) = found.arguments
    value = string_value(program, argument)
    if value is None:
        return None
    names = value.split()
    if not names:
        return None
    if len(names) > 1 and found.method in ("hasClass", "toggleClass"):
        return None
    quote = string_quote(program, argument)
    return [(name, quote) for name in names]


def translate(ctx: RuleContext, found: JQueryCall, element: int) -> int:
    """Build the DOM expression replacing ``found``, acting on ``element``."""
    build = ctx.build
    if found.method in CLASS_METHODS:
        tokens = class_tokens(ctx.program, found)
        assert tokens is not None
        class_list = build.member(element, "classList")
        names = [build.string(name, quote) for name, quote in tokens]
        return build.method_call(class_list, CLASS_METHODS[found.method], names)
    prop = build.member(element, DOM_PROPERTIES[found.method])
    if not found.arguments:
        return prop
    return build.assignment(prop, found.arguments[0])


def element_for(ctx: RuleContext, receiver: int) -> int | None:
    """The DOM element expression for a direct ``$(this)`` or ``$("#id")``."""
    program = ctx.program
    argument = jquery_argument(program, ctx.analysis, receiver)
    if argument is None:
        return None
    if program.kind(argument) is NodeKind.THIS:
        return argument
    element_id = id_selector(program, ctx.analysis, receiver)
    if element_id is None:
        return None
    assert argument is not None
    return _get_element_by_id(ctx, element_id, string_quote(program, argument))


def _get_element_by_id(ctx: RuleContext, element_id: str, quote: str) -> int:
    build = ctx.build
    document = build.identifier("document")
    return build.method_call(document, "getElementById", [build.string(element_id, quote)])


def _direct_rewrite(ctx: RuleContext, node: int, methods: dict[str, str]) -> Rewrite | None:
    found = jquery_call(ctx.program, node)
    if found is None or found.method not in methods:
        return None
    element = element_for(ctx, found.receiver)
    if element is None:
        return None
    return Rewrite(node, (Replace(node, (translate(ctx, found, element),)),))


@dataclass(frozen=True)
class JQueryClassList:
    rule_id: str = "jQueryClassList"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "jquery"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        return _direct_rewrite(ctx, node, CLASS_METHODS)


@dataclass(frozen=True)
class JQueryDomProperty:
    rule_id: str = "jQueryDomProperty"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "jquery"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        return _direct_rewrite(ctx, node, DOM_PROPERTIES)


def _id_resolver(analysis: ScopeAnalysis) -> ProvenanceResolver:
    def recognizes(program: Program, origin: int) -> bool:
        return id_selector(program, analysis, origin) is not None

    def allows_receiver(program: Program, member: int) -> bool:
        parent = program.parent(member)
        if parent is None or program.child(parent, "function") != member:
            return False
        return jquery_call(program, parent) is not None

    return ProvenanceResolver(analysis, recognizes, allows_receiver=allows_receiver)


@dataclass(frozen=True)
class JQueryIdSelector:
    """``const el = $("#id")`` becomes ``document.getElementById("id")``.

    The single assignment ``el = $("#id")`` to a declared ``let`` or ``var``
    is rewritten the same way. Only fires when the binding provably holds
    that selection and every read is a translatable method call, which is
    rewritten along with it.
    """

    rule_id: str = "jQueryIdSelector"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "jquery"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        named = _establishing_name(ctx, node)
        if named is None:
            return None
        name, scope = named
        resolver = ctx.resolver(_RESOLVER_KEY, _id_resolver)
        provenance = resolver.resolve(scope, name)
        if not isinstance(provenance, Provenance) or provenance.establishing != node:
            return None
        binding = ctx.analysis.lookup(scope, name)
        if binding is None or not binding.reads:
            return None
        element_id = id_selector(program, ctx.analysis, provenance.origin)
        argument = jquery_argument(program, ctx.analysis, provenance.origin)
        assert element_id is not None and argument is not None
        lookup = _get_element_by_id(ctx, element_id, string_quote(program, argument))
        edits: list[Edit] = [Replace(provenance.origin, (lookup,))]
        for read in sorted(binding.reads, key=lambda item: ctx.analysis.order(item) or 0):
            member = program.parent(read)
            assert member is not None
            found = jquery_call(program, program.parent(member))
            assert found is not None
            edits.append(Replace(found.call, (translate(ctx, found, read),)))
        return Rewrite(node, tuple(edits))


def _establishing_name(ctx: RuleContext, node: int) -> tuple[str, Scope] | None:
    """The name a declarator or plain assignment gives a value, and its scope."""
    program = ctx.program
    kind = program.kind(node)
    if kind is NodeKind.VARIABLE_DECLARATOR:
        name = identifier_name(program, program.child(node, "name"))
        scope = ctx.analysis.scope_at(node)
        if name is None or scope is None:
            return None
        return name, scope
    if kind is NodeKind.ASSIGNMENT_EXPRESSION:
        left = program.child(node, "left")
        name = identifier_name(program, left)
        binding = ctx.analysis.binding_of(left) if left is not None else None
        if name is None or binding is None:
            return None
        return name, binding.scope
    return None
