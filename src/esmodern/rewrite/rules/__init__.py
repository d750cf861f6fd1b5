from esmodern.rewrite.rules.builtins import ConsoleLogToInfo, RemoveUseStrictFromModules
from esmodern.rewrite.rules.declarations import VarToLetOrConst
from esmodern.rewrite.rules.functions import AnonymousFunctionToArrow
from esmodern.rewrite.rules.jquery import JQueryClassList, JQueryDomProperty, JQueryIdSelector
from esmodern.rewrite.rules.loops import ForLoopToForOf
from esmodern.rewrite.rules.operators import (
    IndexOfToIncludes,
    MathPowToExponentiation,
    NullishCoalescingOperator,
)
from esmodern.rewrite.rules.parameters import ArgumentsToRestParameters
from esmodern.rewrite.rules.promises import PromiseToAsyncAwait

__all__ = [
    "AnonymousFunctionToArrow",
    "ArgumentsToRestParameters",
    "ConsoleLogToInfo",
    "ForLoopToForOf",
    "IndexOfToIncludes",
    "JQueryClassList",
    "JQueryDomProperty",
    "JQueryIdSelector",
    "MathPowToExponentiation",
    "NullishCoalescingOperator",
    "PromiseToAsyncAwait",
    "RemoveUseStrictFromModules",
    "VarToLetOrConst",
]
