from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from click.core import ParameterSource
import typer

from esmodern.batch import BatchOptions, FileOutcome, discover_files, process_files
from esmodern.config import (
    baseline_setting,
    exclude_setting,
    extensions_setting,
    file_defaults,
    jquery_setting,
    max_passes_setting,
    transform_defaults,
)
from esmodern.rewrite.model import CapabilityLevel

app = typer.Typer(add_completion=False)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _param_is_command_line(ctx: typer.Context, param: str) -> bool:
    # typer may bundle its own click, so compare by member name.
    source = ctx.get_parameter_source(param)
    return source is not None and source.name == ParameterSource.COMMANDLINE.name


def _resolve_level(value: str) -> CapabilityLevel:
    try:
        return CapabilityLevel.parse(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--baseline") from exc


def _describe_changes(outcome: FileOutcome) -> str:
    assert outcome.result is not None
    changes = ", ".join(
        f"{change.type} (line {change.line})" for change in outcome.result.changes
    )
    return f"{outcome.path}: {changes}"


def _emit(outcomes: list[FileOutcome], *, as_json: bool) -> None:
    for outcome in outcomes:
        if outcome.error is not None:
            typer.echo(f"{outcome.path}: {outcome.error}", err=True)
        if as_json:
            typer.echo(json.dumps(outcome.to_dict(), sort_keys=True))
        elif outcome.modified:
            typer.echo(_describe_changes(outcome))


def _summary(outcomes: list[FileOutcome], *, write: bool) -> str:
    changed = [outcome for outcome in outcomes if outcome.modified]
    types = sorted(
        {
            change_type
            for outcome in changed
            if outcome.result is not None
            for change_type in outcome.result.change_types
        }
    )
    failed = sum(1 for outcome in outcomes if outcome.error is not None)
    verb = "updated" if write else "would change"
    text = f"{len(changed)} of {len(outcomes)} file(s) {verb}; {len(types)} rule type(s)"
    if types:
        text += ": " + ", ".join(types)
    if failed:
        text += f"; {failed} file(s) could not be parsed or read"
    return text


@app.command()
def main(
    ctx: typer.Context,
    paths: List[Path] = typer.Argument(None, help="Files or directories to modernize."),
    baseline: str = typer.Option(
        CapabilityLevel.WIDELY_AVAILABLE.label,
        "--baseline",
        help="widely-available or newly-available.",
    ),
    jquery: bool = typer.Option(
        False, "--jquery/--no-jquery", help="Also rewrite jQuery calls to DOM APIs."
    ),
    write: bool = typer.Option(False, "--write", help="Rewrite files in place."),
    check: bool = typer.Option(
        False, "--check", help="Exit with status 1 when any file would change."
    ),
    jobs: int = typer.Option(1, "--jobs", min=1, help="Worker processes."),
    config: Optional[Path] = typer.Option(None, "--config"),
    as_json: bool = typer.Option(False, "--json", help="Emit one JSON object per file."),
    verbose: bool = typer.Option(False, "--verbose"),
) -> None:
    """Modernize JavaScript sources."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING, format=_LOG_FORMAT
    )
    transform_section = transform_defaults(config_path=config)
    files_section = file_defaults(config_path=config)
    if not _param_is_command_line(ctx, "baseline"):
        baseline = baseline_setting(transform_section) or baseline
    if not _param_is_command_line(ctx, "jquery"):
        jquery = jquery_setting(transform_section)
    options = BatchOptions(
        level=_resolve_level(baseline),
        jquery=jquery,
        max_passes=max_passes_setting(transform_section),
        write=write,
    )
    files = discover_files(
        paths or [],
        extensions=extensions_setting(files_section),
        exclude=exclude_setting(files_section),
    )
    if not files:
        typer.echo("No JavaScript files found.", err=True)
        raise typer.Exit(code=2)
    outcomes = process_files(files, options, jobs=jobs)
    _emit(outcomes, as_json=as_json)
    if not as_json:
        typer.echo(_summary(outcomes, write=write))
    if check and any(outcome.modified for outcome in outcomes):
        raise typer.Exit(code=1)
