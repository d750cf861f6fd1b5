from __future__ import annotations

from pathlib import Path
import sys
import textwrap

import pytest


def _load():
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from esmodern.exceptions import ParseError
    from esmodern.syntax.parse import detect_indent_unit, parse_program
    from esmodern.syntax.printer import print_program

    return parse_program, print_program, detect_indent_unit, ParseError


def test_unchanged_program_prints_verbatim() -> None:
    parse_program, print_program, _detect, _error = _load()
    source = textwrap.dedent(
        """
        // leading comment
        var total = 0;   /* trailing */

        function add(a, b) {
            return a + b; // sum
        }
        const s = `line one
        line two ${total}`;
        """
    ).lstrip()
    assert print_program(parse_program(source)) == source


def test_crlf_source_prints_verbatim() -> None:
    parse_program, print_program, _detect, _error = _load()
    source = "var a = 1;\r\nif (a) {\r\n\tb();\r\n}\r\n"
    program = parse_program(source)
    assert program.newline == "\r\n"
    assert print_program(program) == source


def test_declaration_keyword_is_an_attribute() -> None:
    parse_program, _print, _detect, _error = _load()
    from esmodern.syntax.kinds import NodeKind

    program = parse_program("var x = 1;\nlet y;\n")
    first, second = program.children(program.root, "body")
    assert program.kind(first) is NodeKind.VARIABLE_DECLARATION
    assert program.attr(first, "keyword") == "var"
    assert program.attr(first, "semicolon") is True
    assert program.kind(second) is NodeKind.LEXICAL_DECLARATION
    assert program.attr(second, "keyword") == "let"


def test_setting_keyword_reprints_only_the_keyword() -> None:
    parse_program, print_program, _detect, _error = _load()
    program = parse_program("var  x = 1 ;  x = 2;\n")
    (declaration, _statement) = program.children(program.root, "body")
    program.set_attr(declaration, "keyword", "let")
    assert print_program(program) == "let  x = 1 ;  x = 2;\n"


def test_syntax_error_reports_position() -> None:
    parse_program, _print, _detect, ParseError = _load()
    with pytest.raises(ParseError) as excinfo:
        parse_program("let a = 1;\nlet b = ;\n")
    assert excinfo.value.line == 2
    assert "line 2" in str(excinfo.value)


def test_parse_error_message_format() -> None:
    _parse, _print, _detect, ParseError = _load()
    error = ParseError("Unexpected token", line=3, column=4)
    assert str(error) == "Unexpected token (line 3, column 4)"
    assert str(ParseError("Unable to parse source")) == "Unable to parse source"


def test_indent_unit_detection() -> None:
    _parse, _print, detect_indent_unit, _error = _load()
    assert detect_indent_unit("if (a) {\n    b();\n}\n") == "    "
    assert detect_indent_unit("if (a) {\n\tb();\n}\n") == "\t"
    assert detect_indent_unit("a();\n") == "  "


def test_shift_indent_moves_following_lines() -> None:
    _load()
    from esmodern.syntax.printer import shift_indent

    assert shift_indent("{\n  a();\n}", "", "  ") == "{\n    a();\n  }"
    assert shift_indent("a();", "  ", "    ") == "a();"
