from __future__ import annotations

from pathlib import Path
import sys


def _load():
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from esmodern.batch import BatchOptions, discover_files, process_file, process_files

    return BatchOptions, discover_files, process_file, process_files


def test_discover_files_filters_and_orders(tmp_path: Path, write_source) -> None:
    _options, discover_files, _file, _files = _load()
    write_source("src/b.mjs", "b();\n")
    write_source("src/a.js", "a();\n")
    write_source("src/notes.txt", "notes\n")
    write_source("node_modules/lib/index.js", "lib();\n")
    found = discover_files([tmp_path])
    assert found == [tmp_path / "src" / "a.js", tmp_path / "src" / "b.mjs"]


def test_discover_files_keeps_explicit_files_and_skips_missing(
    tmp_path: Path, write_source
) -> None:
    _options, discover_files, _file, _files = _load()
    notes = write_source("notes.txt", "x\n")
    found = discover_files([notes, tmp_path / "missing", notes])
    assert found == [notes]


def test_process_file_reports_without_writing(write_source) -> None:
    BatchOptions, _discover, process_file, _files = _load()
    path = write_source("a.js", "var x = 1;\n")
    outcome = process_file(path, BatchOptions())
    assert outcome.modified
    assert not outcome.written
    assert path.read_text(encoding="utf-8") == "var x = 1;\n"
    assert outcome.to_dict() == {
        "path": str(path),
        "written": False,
        "modified": True,
        "changes": [{"type": "varToLetOrConst", "line": 1}],
    }


def test_process_file_writes_and_keeps_line_endings(write_source) -> None:
    BatchOptions, _discover, process_file, _files = _load()
    path = write_source("a.js", "")
    path.write_bytes(b"var x = 1;\r\nuse(x);\r\n")
    outcome = process_file(path, BatchOptions(write=True))
    assert outcome.written
    assert path.read_bytes() == b"const x = 1;\r\nuse(x);\r\n"


def test_process_file_reports_parse_errors(write_source) -> None:
    BatchOptions, _discover, process_file, _files = _load()
    path = write_source("bad.js", "function (\n")
    outcome = process_file(path, BatchOptions())
    assert outcome.result is None
    assert outcome.error is not None
    assert "(line " in outcome.error
    assert outcome.to_dict()["error"] == outcome.error


def test_process_file_reports_undecodable_files(write_source) -> None:
    BatchOptions, _discover, process_file, _files = _load()
    path = write_source("latin.js", "")
    path.write_bytes(b"var s = '\xff';\n")
    outcome = process_file(path, BatchOptions())
    assert outcome.error is not None
    assert outcome.error.startswith("unreadable:")


def test_process_files_keeps_input_order_in_parallel(write_source) -> None:
    BatchOptions, _discover, _file, process_files = _load()
    paths = [
        write_source("one.js", "var a = 1;\n"),
        write_source("two.js", "const b = 2;\n"),
        write_source("three.js", "console.log(3);\n"),
    ]
    outcomes = process_files(paths, BatchOptions(), jobs=2)
    assert [outcome.path for outcome in outcomes] == paths
    assert [outcome.modified for outcome in outcomes] == [True, False, True]
