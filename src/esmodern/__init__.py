"""esmodern package root."""

from esmodern.exceptions import NeverThrown, ParseError, StabilizationExceeded
from esmodern.invariants import never
from esmodern.rewrite.engine import transform
from esmodern.rewrite.model import CapabilityLevel, ChangeRecord, TransformResult

__all__ = [
    "__version__",
    "CapabilityLevel",
    "ChangeRecord",
    "NeverThrown",
    "ParseError",
    "StabilizationExceeded",
    "TransformResult",
    "never",
    "transform",
]

__version__ = "0.1.0"
