"""Invariant markers."""

from __future__ import annotations

from typing import NoReturn

from esmodern.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The env payload is metadata carried on the raised exception for debugging.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)

