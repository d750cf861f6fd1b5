from __future__ import annotations

from esmodern.syntax.build import NodeFactory
from esmodern.syntax.kinds import NodeKind
from esmodern.syntax.parse import parse_program
from esmodern.syntax.printer import print_program
from esmodern.syntax.tree import Node, Program

__all__ = [
    "Node",
    "NodeFactory",
    "NodeKind",
    "Program",
    "parse_program",
    "print_program",
]
