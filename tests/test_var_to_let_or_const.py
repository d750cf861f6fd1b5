from __future__ import annotations

from pathlib import Path
import sys
import textwrap


def _load():
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from esmodern.rewrite.engine import transform

    return transform


def _source(text: str) -> str:
    return textwrap.dedent(text).strip() + "\n"


def test_reassigned_var_becomes_let() -> None:
    transform = _load()
    result = transform("var x = 1; x = 2;")
    assert result.code == "let x = 1; x = 2;"
    assert result.modified
    assert [(change.type, change.line) for change in result.changes] == [
        ("varToLetOrConst", 1)
    ]


def test_unassigned_var_becomes_const() -> None:
    transform = _load()
    result = transform("var x = 1;")
    assert result.code == "const x = 1;"
    assert result.change_types == ("varToLetOrConst",)


def test_uninitialized_var_becomes_let() -> None:
    transform = _load()
    result = transform(_source("var x;\nx = compute();\nuse(x);"))
    assert result.code == _source("let x;\nx = compute();\nuse(x);")


def test_mixed_declarators_are_split() -> None:
    transform = _load()
    result = transform(_source("var a = 1, b;\nb = a;"))
    assert result.code == _source("const a = 1;\nlet b;\nb = a;")


def test_declarator_may_read_an_earlier_one() -> None:
    transform = _load()
    result = transform("var a = 1, b = a;\nuse(b);\n")
    assert result.code == "const a = 1, b = a;\nuse(b);\n"


def test_use_before_declaration_is_kept() -> None:
    transform = _load()
    source = _source("log(x);\nvar x = 1;")
    result = transform(source)
    assert not result.modified
    assert result.code == source


def test_use_outside_block_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        if (ready) {
          var y = 1;
        }
        use(y);
        """
    )
    assert not transform(source).modified


def test_redeclaration_is_kept() -> None:
    transform = _load()
    source = _source("var a = 1;\nvar a = 2;\nuse(a);")
    assert not transform(source).modified


def test_hoisted_function_reading_binding_early_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        show();
        var message = "hi";
        function show() {
          use(message);
        }
        """
    )
    assert "var message" in transform(source).code


def test_loop_counter_becomes_let() -> None:
    transform = _load()
    source = _source(
        """
        for (var i = 0; i < n; i++) {
          total += i;
        }
        """
    )
    assert transform(source).code == source.replace("var i", "let i")


def test_loop_counter_captured_by_closure_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        for (var i = 0; i < 3; i++) {
          setTimeout(function () {
            use(i);
          });
        }
        """
    )
    result = transform(source)
    assert "var i = 0" in result.code
    assert "varToLetOrConst" not in result.change_types


def test_for_in_binding_becomes_const() -> None:
    transform = _load()
    source = _source(
        """
        for (var key in table) {
          use(key);
        }
        """
    )
    assert transform(source).code == source.replace("var key", "const key")


def test_switch_case_declaration_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        switch (kind) {
          case 1:
            var label = "one";
            use(label);
        }
        """
    )
    assert not transform(source).modified


def test_eval_blocks_the_rewrite() -> None:
    transform = _load()
    source = _source('var x = 1;\neval("x = 2");')
    assert not transform(source).modified


def test_var_redeclaring_catch_parameter_is_kept() -> None:
    transform = _load()
    source = "try { go(); } catch (e) {\n  var e = 1;\n}\n"
    result = transform(source)
    assert not result.modified
    assert result.code == source


def test_parameter_of_same_name_does_not_count_as_reassignment() -> None:
    transform = _load()
    result = transform(_source("var x = 1;\nfunction f(x) {\n  x = 2;\n}\nuse(x);"))
    assert result.code == _source(
        "const x = 1;\nfunction f(x) {\n  x = 2;\n}\nuse(x);"
    )


def test_top_level_script_declaration_is_rewritten() -> None:
    # Reads through the global object (window.x) are not followed.
    transform = _load()
    result = transform(_source("var x = 1;\nuse(x);"))
    assert result.code == _source("const x = 1;\nuse(x);")
