"""Continuation chains become sequential ``await`` code.

Every function is treated on its own. A function that is not async can only
become async when each of its own ``return`` statements already hands back a
pending computation and its body never falls off the end, so callers keep
receiving a promise on every path. Inner functions never make their enclosing
function async.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from esmodern.analysis.scope import DeclarationForm
from esmodern.rewrite.model import (
    CapabilityLevel,
    Edit,
    Replace,
    Rewrite,
    RuleContext,
    SetAttr,
)
from esmodern.syntax.kinds import NodeKind
from esmodern.syntax.shapes import (
    always_completes,
    enclosing_function,
    has_spread,
    is_pending_computation,
    is_static_call,
    method_call_parts,
    own_nodes,
    own_returns,
    unwrap_parens,
)
from esmodern.syntax.tree import Program

logger = logging.getLogger(__name__)

_ASYNC_CANDIDATES = frozenset(
    {NodeKind.FUNCTION_DECLARATION, NodeKind.FUNCTION_EXPRESSION, NodeKind.ARROW_FUNCTION}
)
_HANDLER_KINDS = frozenset({NodeKind.FUNCTION_EXPRESSION, NodeKind.ARROW_FUNCTION})
# Declarations that would leak out of a handler body once it is inlined.
_HOISTING_KINDS = frozenset(
    {
        NodeKind.VARIABLE_DECLARATION,
        NodeKind.FUNCTION_DECLARATION,
        NodeKind.GENERATOR_FUNCTION_DECLARATION,
    }
)
_REFERENCE_KINDS = frozenset(
    {NodeKind.IDENTIFIER, NodeKind.SHORTHAND_PROPERTY_IDENTIFIER}
)


class AsyncState(str, Enum):
    NOT_ASYNC = "not-async"
    REQUIRES_ASYNC = "requires-async"
    ALREADY_ASYNC = "already-async"


@dataclass(frozen=True)
class Handler:
    function: int
    parameter: int
    name: str
    body: int
    statements: tuple[int, ...]


@dataclass(frozen=True)
class ContinuationChain:
    """``base.then(success).catch(failure)`` with both handlers inline."""

    call: int
    base: int
    success: Handler
    failure: Handler


def async_state(program: Program, function_id: int) -> AsyncState:
    if program.attr(function_id, "async"):
        return AsyncState.ALREADY_ASYNC
    return AsyncState.NOT_ASYNC


def handler_of(program: Program, node_id: int) -> Handler | None:
    """Describe an inline, single-parameter, block-bodied, plain handler."""
    if program.kind(node_id) not in _HANDLER_KINDS:
        return None
    if program.attr(node_id, "async") or program.attr(node_id, "generator"):
        return None
    if program.child(node_id, "name") is not None:
        return None
    parameter = program.child(node_id, "parameter")
    if parameter is None:
        parameters = program.child(node_id, "parameters")
        items = program.children(parameters, "items") if parameters is not None else []
        if len(items) != 1:
            return None
        parameter = items[0]
    if program.kind(parameter) is not NodeKind.IDENTIFIER:
        return None
    body = program.child(node_id, "body")
    if program.kind(body) is not NodeKind.STATEMENT_BLOCK:
        return None
    assert body is not None
    return Handler(
        function=node_id,
        parameter=parameter,
        name=program.text(parameter),
        body=body,
        statements=tuple(program.children(body, "body")),
    )


def continuation_chain(program: Program, expression: int | None) -> ContinuationChain | None:
    if expression is None:
        return None
    call = unwrap_parens(program, expression)
    outer = method_call_parts(program, call)
    if outer is None:
        return None
    receiver, method, failure_args = outer
    if method != "catch" or len(failure_args) != 1:
        return None
    inner = method_call_parts(program, receiver)
    if inner is None:
        return None
    base, method, success_args = inner
    if method != "then" or len(success_args) != 1:
        return None
    success = handler_of(program, success_args[0])
    failure = handler_of(program, failure_args[0])
    if success is None or failure is None:
        return None
    return ContinuationChain(call=call, base=base, success=success, failure=failure)


@dataclass(frozen=True)
class PromiseToAsyncAwait:
    rule_id: str = "promiseToAsyncAwait"
    since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    family: str = "core"

    def match(self, node: int, ctx: RuleContext) -> Rewrite | None:
        if ctx.analysis.dynamic:
            return None
        kind = ctx.program.kind(node)
        if kind is NodeKind.RETURN_STATEMENT:
            return self._returned_chain(node, ctx)
        if kind is NodeKind.EXPRESSION_STATEMENT:
            return self._trailing_chain(node, ctx)
        if kind in _ASYNC_CANDIDATES:
            return self._propagate(node, ctx)
        return None

    # -- chains -----------------------------------------------------------

    def _returned_chain(self, statement: int, ctx: RuleContext) -> Rewrite | None:
        planned = self._plan_returned_chain(statement, ctx)
        if planned is None:
            return None
        chain, function, returns = planned
        edits: list[Edit] = [Replace(statement, (_guarded_block(chain, statement, ctx),))]
        if async_state(ctx.program, function) is AsyncState.NOT_ASYNC:
            edits.extend(_async_edits(function, returns, ctx))
        return Rewrite(statement, tuple(edits))

    def _plan_returned_chain(
        self, statement: int, ctx: RuleContext
    ) -> tuple[ContinuationChain, int, list[int]] | None:
        program = ctx.program
        chain = continuation_chain(program, program.child(statement, "argument"))
        if chain is None:
            return None
        function = enclosing_function(program, statement)
        if function is None or program.kind(function) not in _ASYNC_CANDIDATES:
            return None
        completes = all(
            always_completes(program, handler.body)
            for handler in (chain.success, chain.failure)
        )
        if not (completes or _ends_body(program, function, statement)):
            return None
        if _inside_try(program, statement, function):
            return None
        if not _chain_is_safe(chain, ctx):
            return None
        if async_state(program, function) is AsyncState.ALREADY_ASYNC:
            return chain, function, []
        returns = _settled_returns(function, ctx, chain_return=statement)
        if returns is None:
            return None
        return chain, function, returns

    def _trailing_chain(self, statement: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        chain = continuation_chain(program, program.child(statement, "expression"))
        if chain is None:
            return None
        function = enclosing_function(program, statement)
        if function is None or async_state(program, function) is not AsyncState.ALREADY_ASYNC:
            return None
        if not _ends_body(program, function, statement):
            return None
        for handler in (chain.success, chain.failure):
            if own_returns(program, handler.function):
                return None
        if not _chain_is_safe(chain, ctx):
            return None
        replacement = _guarded_block(chain, statement, ctx)
        return Rewrite(statement, (Replace(statement, (replacement,)),))

    # -- propagation ------------------------------------------------------

    def _propagate(self, function: int, ctx: RuleContext) -> Rewrite | None:
        program = ctx.program
        if async_state(program, function) is not AsyncState.NOT_ASYNC:
            return None
        for statement in own_returns(program, function):
            if self._plan_returned_chain(statement, ctx) is not None:
                # The chain rewrite makes this function async itself.
                return None
        returns = _settled_returns(function, ctx)
        if returns is None:
            return None
        return Rewrite(function, tuple(_async_edits(function, returns, ctx)))


def _ends_body(program: Program, function: int, statement: int) -> bool:
    """Whether ``statement`` is the last statement of the function body."""
    body = program.child(function, "body")
    if body is None or program.kind(body) is not NodeKind.STATEMENT_BLOCK:
        return False
    statements = program.children(body, "body")
    return bool(statements) and statements[-1] == statement


def _inside_try(program: Program, statement: int, function: int) -> bool:
    """Whether awaiting at ``statement`` would route rejections into a local handler."""
    for ancestor in program.ancestors(statement):
        if ancestor == function:
            return False
        if program.kind(ancestor) is NodeKind.TRY_STATEMENT:
            return True
    return False


def _chain_is_safe(chain: ContinuationChain, ctx: RuleContext) -> bool:
    program = ctx.program
    analysis = ctx.analysis
    for handler in (chain.success, chain.failure):
        for node_id in own_nodes(program, handler.function):
            if program.kind(node_id) in _HOISTING_KINDS:
                return False
        if program.kind(handler.function) is NodeKind.FUNCTION_EXPRESSION:
            if analysis.uses_this(handler.function):
                return False
            if analysis.uses_own_arguments(handler.function):
                return False
    scope = analysis.scope_for(chain.success.function)
    if scope is None:
        return False
    inlined = {
        name
        for name, binding in scope.bindings.items()
        if binding.form is not DeclarationForm.IMPLICIT
    }
    for node_id in program.preorder(chain.base):
        if program.kind(node_id) in _REFERENCE_KINDS and program.text(node_id) in inlined:
            return False
    return True


def _guarded_block(chain: ContinuationChain, statement: int, ctx: RuleContext) -> int:
    """``try { const v = await base; ...success } catch (e) { ...failure }``."""
    program = ctx.program
    build = ctx.build
    success = chain.success
    scope = ctx.analysis.scope_for(success.function)
    reassigned = scope is None or ctx.analysis.is_reassigned(success.name, scope)
    keyword = "let" if reassigned else "const"
    semicolon = bool(program.attr(statement, "semicolon", True))
    waited = build.declaration(
        keyword,
        [build.declarator(success.parameter, build.await_(chain.base))],
        semicolon=semicolon,
    )
    body = build.block([waited, *success.statements])
    handler_body = build.block(list(chain.failure.statements))
    logger.debug("inlining continuation chain at node %d", chain.call)
    return build.try_catch(body, chain.failure.parameter, handler_body)


def _settled_returns(
    function: int, ctx: RuleContext, *, chain_return: int | None = None
) -> list[int] | None:
    """Own returns to settle when ``function`` turns async, or ``None`` if unsafe.

    ``chain_return`` names a return statement that another edit replaces;
    it counts as a pending return and is left out of the result.
    """
    program = ctx.program
    if program.kind(function) not in _ASYNC_CANDIDATES:
        return None
    if program.attr(function, "generator"):
        return None
    body = program.child(function, "body")
    if program.kind(body) is not NodeKind.STATEMENT_BLOCK:
        return None
    returns = own_returns(program, function)
    if not returns or not always_completes(program, body):
        return None
    if ctx.analysis.is_constructed(function):
        return None
    settled: list[int] = []
    for statement in returns:
        if _inside_try(program, statement, function):
            return None
        if statement == chain_return:
            continue
        argument = program.child(statement, "argument")
        if not is_pending_computation(program, argument, ctx.analysis.is_global):
            return None
        settled.append(statement)
    return settled


def _async_edits(function: int, returns: list[int], ctx: RuleContext) -> list[Edit]:
    logger.debug(
        "function %d: %s -> %s",
        function,
        AsyncState.NOT_ASYNC.value,
        AsyncState.REQUIRES_ASYNC.value,
    )
    edits: list[Edit] = [SetAttr(function, "async", True)]
    for statement in returns:
        argument = ctx.program.child(statement, "argument")
        assert argument is not None
        edits.append(_settled_return(statement, argument, ctx))
    return edits


def _settled_return(statement: int, argument: int, ctx: RuleContext) -> Edit:
    """``return await x``, with immediately settled promises unwrapped."""
    program = ctx.program
    build = ctx.build
    inner = unwrap_parens(program, argument)
    for method in ("resolve", "reject"):
        if not is_static_call(program, inner, "Promise", frozenset({method})):
            continue
        parts = method_call_parts(program, inner)
        assert parts is not None
        if not ctx.analysis.is_global(parts[0], "Promise"):
            break
        values = parts[2]
        if len(values) > 1 or has_spread(program, values):
            break
        value = values[0] if values else build.identifier("undefined")
        if method == "resolve":
            return Replace(argument, (value,))
        semicolon = bool(program.attr(statement, "semicolon", True))
        return Replace(statement, (build.throw(value, semicolon=semicolon),))
    return Replace(argument, (build.await_(argument),))
