from __future__ import annotations

from pathlib import Path
import sys
import textwrap


def _load():
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from esmodern.analysis.provenance import UNKNOWN, Provenance, ProvenanceResolver
    from esmodern.analysis.scope import ScopeAnalysis
    from esmodern.syntax.kinds import NodeKind
    from esmodern.syntax.parse import parse_program

    return UNKNOWN, Provenance, ProvenanceResolver, ScopeAnalysis, NodeKind, parse_program


def _resolver(source: str, **kwargs):
    UNKNOWN, Provenance, ProvenanceResolver, ScopeAnalysis, NodeKind, parse_program = _load()
    program = parse_program(textwrap.dedent(source).strip() + "\n")
    analysis = ScopeAnalysis(program)

    def recognizes(program, origin: int) -> bool:
        return program.kind(origin) is NodeKind.CALL_EXPRESSION

    return program, analysis, ProvenanceResolver(analysis, recognizes, **kwargs)


def test_single_initializer_is_resolved() -> None:
    UNKNOWN, Provenance, *_ = _load()
    program, analysis, resolver = _resolver(
        """
        const el = $("#box");
        el.hide();
        """
    )
    result = resolver.resolve(analysis.module, "el")
    assert isinstance(result, Provenance)
    assert result.name == "el"
    assert program.text(program.child(result.origin, "function")) == "$"
    assert resolver.resolve(analysis.module, "el") is result


def test_single_later_assignment_is_resolved() -> None:
    _unknown, Provenance, *_ = _load()
    program, analysis, resolver = _resolver(
        """
        let el;
        el = $("#box");
        el.hide();
        """
    )
    result = resolver.resolve(analysis.module, "el")
    assert isinstance(result, Provenance)
    assert program.text(program.child(result.establishing, "left")) == "el"


def test_passing_to_a_call_is_unknown_unless_callee_is_safe() -> None:
    UNKNOWN, Provenance, *_ = _load()
    source = """
        const el = $("#box");
        use(el);
        """
    _program, analysis, resolver = _resolver(source)
    assert resolver.resolve(analysis.module, "el") is UNKNOWN
    _program, analysis, resolver = _resolver(
        source, safe_callee=lambda program, call: True
    )
    assert isinstance(resolver.resolve(analysis.module, "el"), Provenance)


def test_reassigned_binding_is_unknown() -> None:
    UNKNOWN, *_ = _load()
    _program, analysis, resolver = _resolver(
        """
        let el = $("#box");
        el = other();
        el.hide();
        """
    )
    assert resolver.resolve(analysis.module, "el") is UNKNOWN


def test_captured_binding_is_unknown() -> None:
    UNKNOWN, *_ = _load()
    _program, analysis, resolver = _resolver(
        """
        const el = $("#box");
        function later() {
          el.hide();
        }
        """
    )
    assert resolver.resolve(analysis.module, "el") is UNKNOWN


def test_returned_binding_is_unknown() -> None:
    UNKNOWN, *_ = _load()
    _program, analysis, resolver = _resolver(
        """
        const el = $("#box");
        export default el;
        """
    )
    assert resolver.resolve(analysis.module, "el") is UNKNOWN


def test_marker_prefix_only_blocks_module_level_names() -> None:
    UNKNOWN, Provenance, _resolver_cls, _analysis, NodeKind, _parse = _load()
    program, analysis, resolver = _resolver(
        """
        const $el = $("#box");
        $el.hide();
        function f() {
          const $inner = $("#box");
          $inner.hide();
        }
        """
    )
    assert resolver.resolve(analysis.module, "$el") is UNKNOWN
    (function,) = [
        node
        for node in program.preorder()
        if program.kind(node) is NodeKind.FUNCTION_DECLARATION
    ]
    inner = analysis.scope_for(function)
    assert inner is not None
    assert isinstance(resolver.resolve(inner, "$inner"), Provenance)


def test_unknown_is_falsy() -> None:
    UNKNOWN, *_ = _load()
    assert not UNKNOWN
    assert repr(UNKNOWN) == "UNKNOWN"
