from esmodern.rewrite.catalog import DEFAULT_CATALOG, catalog_for
from esmodern.rewrite.engine import RewriteEngine, transform
from esmodern.rewrite.model import (
    CapabilityLevel,
    ChangeRecord,
    Replace,
    Rewrite,
    Rule,
    RuleContext,
    SetAttr,
    TransformResult,
)

__all__ = [
    "CapabilityLevel",
    "ChangeRecord",
    "DEFAULT_CATALOG",
    "Replace",
    "Rewrite",
    "RewriteEngine",
    "Rule",
    "RuleContext",
    "SetAttr",
    "TransformResult",
    "catalog_for",
    "transform",
]
