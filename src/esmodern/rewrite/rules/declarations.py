from __future__ import annotations

from dataclasses import dataclass

from esmodern.analysis.scope import Binding, ScopeAnalysis, pattern_identifiers
from esmodern.rewrite.model import CapabilityLevel, Replace, Rewrite, RuleContext, SetAttr
from esmodern.syntax.kinds import FUNCTION_KINDS, LOOP_KINDS, NodeKind
from esmodern.syntax.tree import Program

_HOISTED_FUNCTIONS = frozenset(
    {NodeKind.FUNCTION_DECLARATION, NodeKind.GENERATOR_FUNCTION_DECLARATION}
)


@dataclass(frozen=True)
class VarToLetOrConst:
    """``var`` becomes ``const`` when never reassigned, otherwise ``let``.

    The rewrite is declined whenever block scoping could be observed: uses
    outside the enclosing block, uses before the declaration, redeclarations,
    declarations in switch cases or single-statement bodies, closures that
    capture a per-iteration binding, and names already bound by a scope in
    between, such as a catch parameter.

    Top-level declarations of scripts are rewritten as well. A script that
    reads them back as properties of the global object (``window.x``) relies
    on behaviour these declarations no longer have.
    """

    rule_id: str = "varToLetOrConst"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        if ctx.analysis.dynamic:
            return None
        kind = ctx.program.kind(node)
        if kind is NodeKind.VARIABLE_DECLARATION:
            return self._declaration(node, ctx)
        if kind is NodeKind.FOR_IN_STATEMENT and ctx.program.attr(node, "keyword") == "var":
            return self._loop_head(node, ctx)
        return None

    def _declaration(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        parent = program.parent(node)
        if parent is None:
            return None
        parent_kind = program.kind(parent)
        loop_head = (
            parent_kind is NodeKind.FOR_STATEMENT
            and program.parent_slot(node) == "initializer"
        )
        in_block = parent_kind in (NodeKind.PROGRAM, NodeKind.STATEMENT_BLOCK)
        if not (loop_head or in_block):
            return None
        declarators = program.children(node, "declarators")
        keywords: list[str] = []
        for declarator in declarators:
            keyword = self._keyword_for(declarator, node, parent, ctx, loop_head=loop_head)
            if keyword is None:
                return None
            keywords.append(keyword)
        if not keywords:
            return None
        if loop_head or len(set(keywords)) == 1:
            keyword = "const" if all(item == "const" for item in keywords) else "let"
            return Rewrite(node, (SetAttr(node, "keyword", keyword),))
        semicolon = bool(program.attr(node, "semicolon"))
        replacements = tuple(
            ctx.build.declaration(keyword, [declarator], semicolon=semicolon)
            for keyword, declarator in zip(keywords, declarators)
        )
        return Rewrite(node, (Replace(node, replacements),))

    def _keyword_for(
        self,
        declarator: int,
        declaration: int,
        region: int,
        ctx: RuleContext,
        *,
        loop_head: bool,
    ) -> str | None:
        program = ctx.program
        analysis = ctx.analysis
        identifiers = list(pattern_identifiers(program, program.child(declarator, "name")))
        if not identifiers:
            return None
        initialized = program.child(declarator, "value") is not None
        in_loop = loop_head or _inside_loop(program, declaration)
        if in_loop and not loop_head and not initialized:
            return None
        needs_let = not initialized
        for identifier in identifiers:
            binding = analysis.binding_of(identifier)
            if binding is None or binding.keyword != "var" or len(binding.declarations) != 1:
                return None
            if analysis.is_shadowed_at(binding.name, binding.scope, declarator):
                return None
            if not _references_stay_after(analysis, binding, declarator, region):
                return None
            if in_loop and analysis.is_captured(binding):
                return None
            if analysis.is_reassigned(binding.name, binding.scope):
                needs_let = True
        return "let" if needs_let else "const"

    def _loop_head(self, node: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        analysis = ctx.analysis
        body = program.child(node, "body")
        if body is None:
            return None
        identifiers = list(pattern_identifiers(program, program.child(node, "left")))
        if not identifiers:
            return None
        keyword = "const"
        for identifier in identifiers:
            binding = analysis.binding_of(identifier)
            if binding is None or binding.keyword != "var" or len(binding.declarations) != 1:
                return None
            if analysis.is_shadowed_at(binding.name, binding.scope, node):
                return None
            for reference in binding.references:
                if not program.is_within(reference, body):
                    return None
            if analysis.is_captured(binding):
                return None
            if analysis.is_reassigned(binding.name, binding.scope):
                keyword = "let"
        return Rewrite(node, (SetAttr(node, "keyword", keyword),))


def _inside_loop(program: Program, node_id: int) -> bool:
    for ancestor in program.ancestors(node_id):
        kind = program.kind(ancestor)
        if kind in FUNCTION_KINDS:
            return False
        if kind in LOOP_KINDS:
            return True
    return False


def _references_stay_after(
    analysis: ScopeAnalysis, binding: Binding, declarator: int, region: int
) -> bool:
    """Whether every use sits in ``region`` after ``declarator`` has run."""
    program = analysis.program
    for reference in binding.references:
        if not program.is_within(reference, region):
            return False
        if program.is_within(reference, declarator):
            return False
        if not analysis.precedes(declarator, reference):
            return False
        for hoisted in _hoisted_owners(program, reference, region):
            name = program.child(hoisted, "name")
            owner = analysis.binding_of(name) if name is not None else None
            if owner is None:
                return False
            for use in owner.references:
                if not analysis.precedes(declarator, use):
                    return False
    return True


def _hoisted_owners(program: Program, node_id: int, region: int) -> list[int]:
    """Function declarations between ``node_id`` and ``region``; they can run early."""
    owners: list[int] = []
    for ancestor in program.ancestors(node_id):
        if ancestor == region:
            break
        if program.kind(ancestor) in _HOISTED_FUNCTIONS:
            owners.append(ancestor)
    return owners

