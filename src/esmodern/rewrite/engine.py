from __future__ import annotations

import logging
from typing import Sequence

from esmodern.analysis.scope import ScopeAnalysis
from esmodern.exceptions import StabilizationExceeded
from esmodern.rewrite.budget import DEFAULT_MAX_PASSES, PassBudget
from esmodern.rewrite.catalog import catalog_for
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
from esmodern.syntax.build import NodeFactory
from esmodern.syntax.parse import parse_program
from esmodern.syntax.printer import print_program
from esmodern.syntax.tree import Program

logger = logging.getLogger(__name__)

# Faults a rule may hit on a node shape it did not expect.
_RULE_FAULTS = (KeyError, IndexError, TypeError, ValueError, AttributeError)


class RewriteEngine:
    """Applies an ordered rule catalog to a program until nothing changes."""

    def __init__(self, catalog: Sequence[Rule], *, max_passes: int = DEFAULT_MAX_PASSES):
        self.catalog: tuple[Rule, ...] = tuple(catalog)
        self.max_passes = max_passes

    def run(self, source: str) -> TransformResult:
        program = parse_program(source)
        changes: list[ChangeRecord] = []
        budget = PassBudget(self.max_passes)
        try:
            while True:
                budget.consume()
                applied = self._run_pass(program, changes)
                logger.debug("pass %d applied %d rewrites", budget.used, applied)
                if not applied:
                    break
        except StabilizationExceeded as exc:
            logger.info("%s; keeping the state reached so far", exc)
        if not changes:
            return TransformResult(code=source, modified=False)
        return TransformResult(
            code=print_program(program), modified=True, changes=tuple(changes)
        )

    def _run_pass(self, program: Program, changes: list[ChangeRecord]) -> int:
        ctx = RuleContext(
            program=program,
            analysis=ScopeAnalysis(program),
            build=NodeFactory(program),
        )
        visited: set[int] = set()
        applied = 0
        for node_id in list(program.preorder()):
            if node_id in visited or not program.is_attached(node_id):
                continue
            for rule in self.catalog:
                rewrite = self._match(rule, node_id, ctx)
                if rewrite is None:
                    continue
                line = program.line_of(rewrite.anchor)
                if self._apply(program, rewrite, visited):
                    changes.append(ChangeRecord(type=rule.rule_id, line=line))
                    applied += 1
                    logger.debug("%s at line %d", rule.rule_id, line)
                visited.add(node_id)
                break
        return applied

    def _match(self, rule: Rule, node_id: int, ctx: RuleContext) -> Rewrite | None:
        try:
            return rule.match(node_id, ctx)
        except _RULE_FAULTS as exc:
            logger.warning(
                "rule %s declined node %d after an unexpected shape: %s",
                rule.rule_id,
                node_id,
                exc,
            )
            return None

    def _apply(self, program: Program, rewrite: Rewrite, visited: set[int]) -> bool:
        touched = [rewrite.anchor]
        changed = False
        for edit in rewrite.edits:
            if isinstance(edit, SetAttr):
                if program.set_attr(edit.target, edit.name, edit.value):
                    changed = True
                touched.append(edit.target)
            elif isinstance(edit, Replace):
                if not program.is_attached(edit.target):
                    continue
                touched.append(edit.target)
                if program.replace(edit.target, edit.replacements):
                    changed = True
                touched.extend(edit.replacements)
        for node_id in touched:
            visited.update(program.preorder(node_id))
        return changed


def transform(
    source: str,
    level: CapabilityLevel | str | int = CapabilityLevel.WIDELY_AVAILABLE,
    *,
    jquery: bool = False,
    max_passes: int = DEFAULT_MAX_PASSES,
) -> TransformResult:
    """Modernize JavaScript ``source`` with the rules enabled at ``level``.

    Raises :class:`esmodern.exceptions.ParseError` when ``source`` does not parse.
    """
    engine = RewriteEngine(catalog_for(level, jquery=jquery), max_passes=max_passes)
    return engine.run(source)
