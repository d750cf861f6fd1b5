"""File discovery and whole-file processing for command-line runs.

Each file is an independent :func:`esmodern.rewrite.engine.transform` call;
nothing is shared between files, so they may run on separate processes.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from esmodern.config import DEFAULT_EXCLUDES, DEFAULT_EXTENSIONS
from esmodern.exceptions import ParseError
from esmodern.rewrite.budget import DEFAULT_MAX_PASSES
from esmodern.rewrite.engine import transform
from esmodern.rewrite.model import CapabilityLevel, TransformResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchOptions:
    level: CapabilityLevel = CapabilityLevel.WIDELY_AVAILABLE
    jquery: bool = False
    max_passes: int = DEFAULT_MAX_PASSES
    write: bool = False


@dataclass(frozen=True)
class FileOutcome:
    path: Path
    result: TransformResult | None = None
    error: str | None = None
    written: bool = False

    @property
    def modified(self) -> bool:
        return self.result is not None and self.result.modified

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"path": str(self.path), "written": self.written}
        if self.error is not None:
            payload["error"] = self.error
        if self.result is not None:
            payload["modified"] = self.result.modified
            payload["changes"] = [change.to_dict() for change in self.result.changes]
        return payload


def discover_files(
    paths: Iterable[Path],
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    exclude: Sequence[str] = DEFAULT_EXCLUDES,
) -> list[Path]:
    """Source files under ``paths``, in a stable order and without duplicates."""
    suffixes = {suffix.lower() for suffix in extensions}
    skipped = set(exclude)
    found: dict[Path, None] = {}
    for path in paths:
        if path.is_file():
            found.setdefault(path, None)
            continue
        if not path.is_dir():
            logger.warning("skipping %s: not a file or directory", path)
            continue
        for candidate in _walk(path, skipped):
            if candidate.suffix.lower() in suffixes:
                found.setdefault(candidate, None)
    return list(found)


def _walk(root: Path, skipped: set[str]) -> Iterator[Path]:
    for current, directories, files in os.walk(root):
        directories[:] = sorted(name for name in directories if name not in skipped)
        for name in sorted(files):
            yield Path(current) / name


def process_file(path: Path, options: BatchOptions) -> FileOutcome:
    try:
        with path.open(encoding="utf-8", newline="") as handle:
            source = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        return FileOutcome(path=path, error=f"unreadable: {exc}")
    try:
        result = transform(
            source, options.level, jquery=options.jquery, max_passes=options.max_passes
        )
    except ParseError as exc:
        return FileOutcome(path=path, error=str(exc))
    written = False
    if options.write and result.modified:
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(result.code)
        written = True
        logger.info("wrote %s", path)
    return FileOutcome(path=path, result=result, written=written)


def process_files(
    paths: Sequence[Path], options: BatchOptions, jobs: int = 1
) -> list[FileOutcome]:
    """Process ``paths`` and return their outcomes in input order."""
    if jobs <= 1 or len(paths) <= 1:
        return [process_file(path, options) for path in paths]
    with ProcessPoolExecutor(max_workers=jobs) as pool:
        return list(pool.map(process_file, paths, [options] * len(paths)))
