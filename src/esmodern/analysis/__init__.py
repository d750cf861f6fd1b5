from __future__ import annotations

from esmodern.analysis.provenance import UNKNOWN, Provenance, ProvenanceResolver
from esmodern.analysis.scope import (
    Binding,
    DeclarationForm,
    Scope,
    ScopeAnalysis,
    ScopeKind,
)

__all__ = [
    "Binding",
    "DeclarationForm",
    "Provenance",
    "ProvenanceResolver",
    "Scope",
    "ScopeAnalysis",
    "ScopeKind",
    "UNKNOWN",
]
