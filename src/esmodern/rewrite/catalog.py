"""The ordered rule catalog and its selection by capability level."""

from __future__ import annotations

from typing import Sequence

from esmodern.rewrite.model import CapabilityLevel, Rule
from esmodern.rewrite.rules import (
    AnonymousFunctionToArrow,
    ArgumentsToRestParameters,
    ConsoleLogToInfo,
    ForLoopToForOf,
    IndexOfToIncludes,
    JQueryClassList,
    JQueryDomProperty,
    JQueryIdSelector,
    MathPowToExponentiation,
    NullishCoalescingOperator,
    PromiseToAsyncAwait,
    RemoveUseStrictFromModules,
    VarToLetOrConst,
)

JQUERY_FAMILY = "jquery"

DEFAULT_CATALOG: tuple[Rule, ...] = (
    RemoveUseStrictFromModules(),
    VarToLetOrConst(),
    ArgumentsToRestParameters(),
    ForLoopToForOf(),
    PromiseToAsyncAwait(),
    AnonymousFunctionToArrow(),
    NullishCoalescingOperator(),
    MathPowToExponentiation(),
    IndexOfToIncludes(),
    ConsoleLogToInfo(),
    JQueryIdSelector(),
    JQueryClassList(),
    JQueryDomProperty(),
)


def catalog_for(
    level: CapabilityLevel | str | int,
    *,
    jquery: bool = False,
    catalog: Sequence[Rule] = DEFAULT_CATALOG,
) -> tuple[Rule, ...]:
    """Rules enabled at ``level``, in catalog order.

    A higher level enables every rule of the lower ones.
    """
    resolved = CapabilityLevel.parse(level)
    return tuple(
        rule
        for rule in catalog
        if rule.since <= resolved and (jquery or rule.family != JQUERY_FAMILY)
    )
