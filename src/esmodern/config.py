from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

from esmodern.rewrite.budget import DEFAULT_MAX_PASSES

DEFAULT_CONFIG_NAME = "esmodern.toml"
DEFAULT_EXTENSIONS = (".js", ".mjs", ".cjs", ".jsx")
DEFAULT_EXCLUDES = ("node_modules", ".git")

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def transform_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "transform")


def file_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "files")


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def baseline_setting(section: TomlTable | None) -> str | None:
    if not isinstance(section, dict):
        return None
    value = section.get("baseline")
    return value.strip() if isinstance(value, str) and value.strip() else None


def jquery_setting(section: TomlTable | None) -> bool:
    if not isinstance(section, dict):
        return False
    return _as_bool(section.get("jquery"))


def max_passes_setting(section: TomlTable | None) -> int:
    if not isinstance(section, dict):
        return DEFAULT_MAX_PASSES
    value = section.get("max_passes")
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return DEFAULT_MAX_PASSES
    return value


def extensions_setting(section: TomlTable | None) -> tuple[str, ...]:
    names = _normalize_name_list(section.get("extensions")) if isinstance(section, dict) else []
    if not names:
        return DEFAULT_EXTENSIONS
    return tuple(name if name.startswith(".") else f".{name}" for name in names)


def exclude_setting(section: TomlTable | None) -> tuple[str, ...]:
    if not isinstance(section, dict):
        return DEFAULT_EXCLUDES
    names = _normalize_name_list(section.get("exclude"))
    return tuple(dict.fromkeys([*DEFAULT_EXCLUDES, *names]))
