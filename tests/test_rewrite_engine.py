from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import sys
import textwrap

import pytest


def _load():
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from esmodern.rewrite.engine import RewriteEngine, transform
    from esmodern.rewrite.model import CapabilityLevel, ChangeRecord, TransformResult

    return RewriteEngine, transform, CapabilityLevel, ChangeRecord, TransformResult


def _source(text: str) -> str:
    return textwrap.dedent(text).strip() + "\n"


_LEGACY = _source(
    """
    var items = load();
    items.forEach(function (item) {
      console.log(item);
    });
    function fetchAll(url) {
      return Promise.resolve(url);
    }
    var power = Math.pow(items.length, 2);
    """
)


def test_modern_source_is_returned_unchanged() -> None:
    _engine, transform, _level, _record, _result = _load()
    source = _source(
        """
        const x = 1;
        export default async function run() {
          await go(x);
        }
        """
    )
    result = transform(source)
    assert result.modified is False
    assert result.code == source
    assert result.changes == ()


def test_rules_compose_across_passes() -> None:
    _engine, transform, _level, _record, _result = _load()
    result = transform(_LEGACY)
    assert result.code == _source(
        """
        const items = load();
        items.forEach((item) => {
          console.info(item);
        });
        async function fetchAll(url) {
          return url;
        }
        const power = items.length ** 2;
        """
    )
    assert result.change_types == (
        "anonymousFunctionToArrow",
        "consoleLogToInfo",
        "mathPowToExponentiation",
        "promiseToAsyncAwait",
        "varToLetOrConst",
    )


def test_output_is_a_fixpoint() -> None:
    _engine, transform, _level, _record, _result = _load()
    first = transform(_LEGACY, "newly-available")
    second = transform(first.code, "newly-available")
    assert second.modified is False
    assert second.code == first.code


def test_transform_is_deterministic() -> None:
    _engine, transform, _level, _record, _result = _load()
    assert transform(_LEGACY) == transform(_LEGACY)


def test_pass_ceiling_keeps_partial_progress() -> None:
    _engine, transform, _level, _record, _result = _load()
    source = "items.forEach(function (item) { console.log(item); });\n"
    limited = transform(source, max_passes=1)
    assert limited.modified
    assert limited.code == "items.forEach((item) => { console.log(item); });\n"
    full = transform(source)
    assert full.code == "items.forEach((item) => { console.info(item); });\n"


def test_change_records_carry_lines() -> None:
    _engine, transform, _level, ChangeRecord, _result = _load()
    result = transform("let a = 1;\nvar b = 2;\nconsole.log(a, b);\n")
    assert result.changes == (
        ChangeRecord(type="varToLetOrConst", line=2),
        ChangeRecord(type="consoleLogToInfo", line=3),
    )
    assert result.to_dict() == {
        "code": "let a = 1;\nconst b = 2;\nconsole.info(a, b);\n",
        "modified": True,
        "changes": [
            {"type": "varToLetOrConst", "line": 2},
            {"type": "consoleLogToInfo", "line": 3},
        ],
    }


def test_invalid_source_raises_parse_error() -> None:
    _engine, transform, *_ = _load()
    from esmodern.exceptions import ParseError

    with pytest.raises(ParseError):
        transform("function (")


def test_faulting_rule_is_treated_as_not_applicable() -> None:
    RewriteEngine, _transform, CapabilityLevel, _record, _result = _load()
    from esmodern.rewrite.rules import ConsoleLogToInfo

    @dataclass(frozen=True)
    class Broken:
        rule_id: str = "broken"
        since: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
        family: str = "core"

        def match(self, node, ctx):
            raise KeyError(node)

    engine = RewriteEngine([Broken(), ConsoleLogToInfo()])
    result = engine.run("console.log(1);\n")
    assert result.code == "console.info(1);\n"
    assert result.change_types == ("consoleLogToInfo",)


def test_capability_level_parsing() -> None:
    _engine, _transform, CapabilityLevel, _record, _result = _load()
    assert CapabilityLevel.parse("widely-available") is CapabilityLevel.WIDELY_AVAILABLE
    assert CapabilityLevel.parse("Level2") is CapabilityLevel.NEWLY_AVAILABLE
    assert CapabilityLevel.parse(2) is CapabilityLevel.NEWLY_AVAILABLE
    assert CapabilityLevel.NEWLY_AVAILABLE.label == "newly-available"
    with pytest.raises(ValueError):
        CapabilityLevel.parse("level9")
    with pytest.raises(ValueError):
        CapabilityLevel.parse(True)


def test_program_at_fixpoint_reports_no_changes() -> None:
    _engine, transform, _level, _record, TransformResult = _load()
    source = "const x = 1; const y = 2;"
    assert transform(source) == TransformResult(code=source, modified=False)
