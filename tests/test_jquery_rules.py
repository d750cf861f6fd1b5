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


def test_jquery_rules_are_opt_in() -> None:
    transform = _load()
    source = '$("#save").addClass("active");'
    assert not transform(source).modified
    assert transform(source, jquery=True).modified


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        (
            '$("#save").addClass("active");',
            'document.getElementById("save").classList.add("active");',
        ),
        ("$(this).toggleClass('open');", "this.classList.toggle('open');"),
        (
            '$("#menu").removeClass("shown wide");',
            'document.getElementById("menu").classList.remove("shown", "wide");',
        ),
        (
            'const on = $("#menu").hasClass("shown");',
            'const on = document.getElementById("menu").classList.contains("shown");',
        ),
    ],
)
def test_class_methods_become_class_list(source: str, expected: str) -> None:
    transform = _load()
    result = transform(source, jquery=True)
    assert result.code == expected
    assert result.change_types == ("jQueryClassList",)


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        (
            '$("#name").val("Ada");',
            'document.getElementById("name").value = "Ada";',
        ),
        (
            'const label = $("#title").text();',
            'const label = document.getElementById("title").textContent;',
        ),
        ("$(this).html(markup);", "this.innerHTML = markup;"),
    ],
)
def test_dom_methods_become_properties(source: str, expected: str) -> None:
    transform = _load()
    result = transform(source, jquery=True)
    assert result.code == expected
    assert result.change_types == ("jQueryDomProperty",)


@pytest.mark.parametrize(
    "source",
    [
        '$(".item").addClass("active");',
        '$("#a b").addClass("active");',
        '$("#save").addClass(name);',
        '$("#save").toggleClass("a b");',
        'const chained = $("#save").addClass("active");',
        'const value = $("#name").val("Ada");',
        'function f($) { $("#save").addClass("active"); }',
    ],
)
def test_untranslatable_calls_are_kept(source: str) -> None:
    transform = _load()
    assert not transform(source, jquery=True).modified


def test_id_selector_binding_is_rewritten_with_its_uses() -> None:
    transform = _load()
    result = transform(
        _source(
            """
            const panel = $("#panel");
            panel.addClass("open");
            panel.text("Ready");
            """
        ),
        jquery=True,
    )
    assert result.code == _source(
        """
        const panel = document.getElementById("panel");
        panel.classList.add("open");
        panel.textContent = "Ready";
        """
    )
    assert result.change_types == ("jQueryIdSelector",)


def test_escaping_binding_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        const panel = $("#panel");
        panel.addClass("open");
        register(panel);
        """
    )
    assert not transform(source, jquery=True).modified


def test_binding_with_untranslatable_use_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        const panel = $("#panel");
        panel.fadeIn(200);
        """
    )
    assert not transform(source, jquery=True).modified


def test_module_level_marker_binding_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        const $panel = $("#panel");
        $panel.addClass("open");
        """
    )
    assert not transform(source, jquery=True).modified


def test_single_assignment_of_id_selector_is_rewritten() -> None:
    transform = _load()
    result = transform(
        _source(
            """
            let panel;
            panel = $("#panel");
            panel.addClass("open");
            """
        ),
        jquery=True,
    )
    assert result.code == _source(
        """
        let panel;
        panel = document.getElementById("panel");
        panel.classList.add("open");
        """
    )
    assert result.change_types == ("jQueryIdSelector",)


def test_repeated_assignment_of_id_selector_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        let panel;
        panel = $("#panel");
        panel = $("#other");
        panel.addClass("open");
        """
    )
    assert not transform(source, jquery=True).modified
