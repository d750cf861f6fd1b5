from __future__ import annotations

from pathlib import Path
import sys
import textwrap

import pytest


def _load():
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from esmodern.rewrite.engine import transform

    return transform


def _source(text: str) -> str:
    return textwrap.dedent(text).strip() + "\n"


def test_index_loop_becomes_for_of() -> None:
    transform = _load()
    result = transform(
        _source(
            """
            function total(items) {
              let sum = 0;
              for (let i = 0; i < items.length; i++) {
                const item = items[i];
                sum += item.price;
              }
              return sum;
            }
            """
        )
    )
    assert result.code == _source(
        """
        function total(items) {
          let sum = 0;
          for (const item of items) {
            sum += item.price;
          }
          return sum;
        }
        """
    )
    assert result.change_types == ("forLoopToForOf",)


def test_var_loop_becomes_for_of_after_declarations_are_scoped() -> None:
    transform = _load()
    result = transform(
        _source(
            """
            var names = list();
            for (var i = 0; i < names.length; i++) {
              var name = names[i];
              show(name);
            }
            """
        )
    )
    assert result.code == _source(
        """
        const names = list();
        for (const name of names) {
          show(name);
        }
        """
    )
    assert result.change_types == ("forLoopToForOf", "varToLetOrConst")


@pytest.mark.parametrize(
    "loop",
    [
        "for (let i = 0; i < items.length; i++) {\n  const item = items[i];\n  log(i, item);\n}",
        "for (let i = 1; i < items.length; i++) {\n  const item = items[i];\n  use(item);\n}",
        "for (let i = 0; i < items.length; i += 1) {\n  const item = items[i];\n  use(item);\n}",
        "for (let i = 0; i <= items.length; i++) {\n  const item = items[i];\n  use(item);\n}",
        "for (let i = 0; i < items.length; i++) {\n  const item = other[i];\n  use(item);\n}",
        "for (let i = 0; i < items.length; i++) {\n  const item = items[i];\n}",
        "for (let i = 0; i < items.length; i++) {\n  use(items[i]);\n  use(i);\n}",
    ],
)
def test_loops_needing_the_index_are_kept(loop: str) -> None:
    transform = _load()
    source = "const items = load();\n" + loop + "\n"
    assert not transform(source).modified


def test_reassigned_array_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        let items = load();
        for (let i = 0; i < items.length; i++) {
          const item = items[i];
          use(item);
        }
        items = [];
        """
    )
    assert not transform(source).modified


def test_undeclared_array_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        for (let i = 0; i < items.length; i++) {
          const item = items[i];
          use(item);
        }
        """
    )
    assert not transform(source).modified
