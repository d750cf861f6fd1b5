from __future__ import annotations

from pathlib import Path
import sys


def _load():
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from esmodern import config

    return config


def test_load_config_reads_default_file(tmp_path: Path) -> None:
    config = _load()
    (tmp_path / "esmodern.toml").write_text(
        '[transform]\nbaseline = "newly-available"\njquery = true\n', encoding="utf-8"
    )
    section = config.transform_defaults(root=tmp_path)
    assert config.baseline_setting(section) == "newly-available"
    assert config.jquery_setting(section) is True


def test_missing_or_invalid_config_is_empty(tmp_path: Path) -> None:
    config = _load()
    assert config.load_config(root=tmp_path) == {}
    broken = tmp_path / "broken.toml"
    broken.write_text("[transform\n", encoding="utf-8")
    assert config.load_config(config_path=broken) == {}


def test_non_table_section_is_ignored(tmp_path: Path) -> None:
    config = _load()
    path = tmp_path / "esmodern.toml"
    path.write_text('transform = "fast"\n', encoding="utf-8")
    assert config.transform_defaults(config_path=path) == {}


def test_max_passes_setting() -> None:
    config = _load()
    assert config.max_passes_setting({"max_passes": 4}) == 4
    assert config.max_passes_setting({"max_passes": 0}) == 10
    assert config.max_passes_setting({"max_passes": True}) == 10
    assert config.max_passes_setting({"max_passes": "4"}) == 10
    assert config.max_passes_setting(None) == 10


def test_bool_and_baseline_settings() -> None:
    config = _load()
    assert config.jquery_setting({"jquery": "yes"}) is True
    assert config.jquery_setting({"jquery": 0}) is False
    assert config.jquery_setting({}) is False
    assert config.baseline_setting({"baseline": " level2 "}) == "level2"
    assert config.baseline_setting({"baseline": "  "}) is None
    assert config.baseline_setting({"baseline": 2}) is None


def test_file_settings() -> None:
    config = _load()
    assert config.extensions_setting({"extensions": ["js", ".es6"]}) == (".js", ".es6")
    assert config.extensions_setting({}) == config.DEFAULT_EXTENSIONS
    assert config.exclude_setting({"exclude": "dist, build"}) == (
        "node_modules",
        ".git",
        "dist",
        "build",
    )
    assert config.exclude_setting({"exclude": ["node_modules"]}) == ("node_modules", ".git")
