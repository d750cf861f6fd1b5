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


def test_returned_chain_becomes_try_await() -> None:
    transform = _load()
    result = transform(
        _source(
            """
            function load(p) {
              return p.then(v => { f(v); }).catch(e => { g(e); });
            }
            """
        )
    )
    assert result.code == _source(
        """
        async function load(p) {
          try {
            const v = await p;
            f(v);
          } catch (e) {
            g(e);
          }
        }
        """
    )
    assert result.change_types == ("promiseToAsyncAwait",)
    assert result.changes[0].line == 2


def test_reassigned_handler_parameter_uses_let() -> None:
    transform = _load()
    result = transform(
        _source(
            """
            function load(p) {
              return p.then(function (v) { v = v + 1; f(v); }).catch(function (e) { g(e); });
            }
            """
        )
    )
    assert "let v = await p;" in result.code
    assert result.code.startswith("async function load(p)")


def test_resolved_value_return_is_unwrapped() -> None:
    transform = _load()
    result = transform("function f() { return Promise.resolve(42); }")
    assert result.code == "async function f() { return 42; }"
    assert result.change_types == ("promiseToAsyncAwait",)


def test_rejected_value_return_becomes_throw() -> None:
    transform = _load()
    result = transform('function f() { return Promise.reject(new Error("x")); }')
    assert result.code == 'async function f() { throw new Error("x"); }'


def test_pending_returns_are_awaited() -> None:
    transform = _load()
    source = _source(
        """
        function get(url) {
          if (!url) {
            return Promise.resolve(null);
          }
          return fetch(url);
        }
        """
    )
    assert transform(source).code == _source(
        """
        async function get(url) {
          if (!url) {
            return null;
          }
          return await fetch(url);
        }
        """
    )


def test_function_that_can_fall_off_the_end_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        function maybe(url) {
          if (url) {
            return fetch(url);
          }
        }
        """
    )
    assert not transform(source).modified


def test_plain_value_return_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        function pick(flag) {
          if (flag) {
            return fetch("/a");
          }
          return 1;
        }
        """
    )
    assert not transform(source).modified


def test_chain_inside_try_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        function load(p) {
          try {
            return p.then(v => { f(v); }).catch(e => { g(e); });
          } catch (err) {
            return Promise.reject(err);
          }
        }
        """
    )
    assert "promiseToAsyncAwait" not in transform(source).change_types


def test_handler_using_this_is_not_inlined() -> None:
    transform = _load()
    source = _source(
        """
        function load(p) {
          return p.then(function (v) { this.v = v; }).catch(function (e) { g(e); });
        }
        """
    )
    result = transform(source)
    assert "try {" not in result.code
    assert "this.v = v" in result.code


def test_base_reading_handler_name_is_not_inlined() -> None:
    transform = _load()
    source = _source(
        """
        function load(v) {
          return v.then(v => { f(v); }).catch(e => { g(e); });
        }
        """
    )
    result = transform(source)
    assert "try {" not in result.code
    assert "return await v.then(v =>" in result.code


def test_trailing_chain_in_async_function() -> None:
    transform = _load()
    result = transform(
        _source(
            """
            async function run(p) {
              p.then(v => { f(v); }).catch(e => { g(e); });
            }
            """
        )
    )
    assert result.code == _source(
        """
        async function run(p) {
          try {
            const v = await p;
            f(v);
          } catch (e) {
            g(e);
          }
        }
        """
    )


def test_trailing_chain_in_plain_function_is_kept() -> None:
    transform = _load()
    source = _source(
        """
        function run(p) {
          p.then(v => { f(v); }).catch(e => { g(e); });
        }
        """
    )
    assert not transform(source).modified


def test_nested_function_does_not_make_outer_async() -> None:
    transform = _load()
    result = transform(
        _source(
            """
            function outer() {
              const inner = () => {
                return fetch("/x");
              };
              return inner;
            }
            """
        )
    )
    assert result.code.startswith("function outer()")
    assert "async () =>" in result.code
    assert "return await fetch" in result.code


def test_local_promise_and_fetch_bindings_are_not_builtins() -> None:
    transform = _load()
    for source in (
        "function f(Promise) { return Promise.resolve(1); }\n",
        "function f(fetch, u) { return fetch(u); }\n",
        "function f(Promise) { return new Promise(run); }\n",
    ):
        result = transform(source)
        assert not result.modified
        assert result.code == source


def test_constructor_is_not_made_async() -> None:
    transform = _load()
    for source in (
        "function Loader(u) { return fetch(u); }\nconst l = new Loader(u);\n",
        "function Loader(u) { return fetch(u); }\nLoader.prototype.load = load;\n",
        "function Loader(u) { return fetch(u); }\nclass Cached extends Loader {}\n",
    ):
        result = transform(source)
        assert not result.modified
        assert result.code == source
