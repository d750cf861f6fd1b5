from __future__ import annotations

from pathlib import Path
import sys

import pytest


def _load():
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from esmodern.rewrite.budget import PassBudget
    from esmodern.rewrite.catalog import DEFAULT_CATALOG, catalog_for

    return PassBudget, DEFAULT_CATALOG, catalog_for


def _ids(rules) -> list[str]:
    return [rule.rule_id for rule in rules]


def test_widely_available_catalog_order() -> None:
    _budget, _catalog, catalog_for = _load()
    assert _ids(catalog_for("widely-available")) == [
        "removeUseStrictFromModules",
        "varToLetOrConst",
        "argumentsToRestParameters",
        "forLoopToForOf",
        "promiseToAsyncAwait",
        "anonymousFunctionToArrow",
        "nullishCoalescingOperator",
        "mathPowToExponentiation",
        "consoleLogToInfo",
    ]


def test_newly_available_adds_to_widely_available() -> None:
    _budget, _catalog, catalog_for = _load()
    lower = _ids(catalog_for(1))
    higher = _ids(catalog_for(2))
    assert set(lower) < set(higher)
    assert [rule for rule in higher if rule not in lower] == ["indexOfToIncludes"]


def test_jquery_family_is_opt_in() -> None:
    _budget, DEFAULT_CATALOG, catalog_for = _load()
    with_jquery = _ids(catalog_for("level1", jquery=True))
    assert with_jquery[-3:] == ["jQueryIdSelector", "jQueryClassList", "jQueryDomProperty"]
    assert len(_ids(catalog_for("level2", jquery=True))) == len(DEFAULT_CATALOG)


def test_rule_ids_are_unique() -> None:
    _budget, DEFAULT_CATALOG, _catalog_for = _load()
    ids = _ids(DEFAULT_CATALOG)
    assert len(ids) == len(set(ids))


def test_pass_budget_raises_past_limit() -> None:
    PassBudget, _catalog, _catalog_for = _load()
    from esmodern.exceptions import StabilizationExceeded

    budget = PassBudget(2)
    budget.consume()
    budget.consume()
    assert budget.remaining == 0
    with pytest.raises(StabilizationExceeded) as excinfo:
        budget.consume()
    assert excinfo.value.limit == 2


def test_pass_budget_rejects_non_positive_limit() -> None:
    PassBudget, _catalog, _catalog_for = _load()
    from esmodern.exceptions import NeverThrown

    with pytest.raises(NeverThrown) as excinfo:
        PassBudget(0)
    assert excinfo.value.env == {"limit": 0}
