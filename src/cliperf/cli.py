"""Command-line interface for cliperf.

Subcommands:
    cliperf run          Select variants and hand them to the execution engine
    cliperf list         Show which variants a request would select
    cliperf dimensions   Show the dimensions and their legal values
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click

from cliperf import __version__
from cliperf.errors import CliperfError
from cliperf.logging import elapsed, get_logger, setup_logging

if TYPE_CHECKING:
    from cliperf.engine import VariantRun
    from cliperf.selection.request import SelectionRequest

log = get_logger("cli")


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """cliperf — benchmark build tools without running every combination."""


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------


def _selection_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``run`` and ``list``."""
    options = [
        click.option(
            "-t",
            "--types",
            type=str,
            multiple=True,
            help="Comma-separated type-name substrings. Default is all types.",
        ),
        click.option(
            "-m",
            "--methods",
            type=str,
            multiple=True,
            help="Comma-separated operation-name substrings. Default is all operations.",
        ),
        click.option(
            "-p",
            "--parameters",
            type=str,
            multiple=True,
            help=(
                "Comma-separated dimension filters, e.g. "
                "'sdk-version=2.1.4|2.1.300,source-change-scope=leaf-file-changed'."
            ),
        ),
        click.option(
            "--profile",
            "profile_path",
            type=click.Path(exists=True, path_type=Path),
            default=None,
            help="YAML selection profile; command-line filters override it.",
        ),
        click.option("-v", "--verbose", is_flag=True, help="Show detailed output."),
        click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors."),
        click.option(
            "--log-file",
            type=click.Path(path_type=Path),
            default=None,
            help="Also write a DEBUG log to this file.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_request(
    profile_path: Path | None,
    overrides: dict[str, Any],
) -> SelectionRequest:
    from cliperf.config import load_profile, request_from_profile

    profile_data = load_profile(profile_path) if profile_path else {}
    return request_from_profile(profile_data, cli_overrides=overrides)


def _fail(exc: Exception) -> NoReturn:
    click.echo(f"Error: {exc}", err=True)
    raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@_selection_options
@click.option("-c", "--target-count", type=int, default=None, help="Measured builds (default: 1).")
@click.option("-w", "--warmup-count", type=int, default=None, help="Warm-up builds (default: 0).")
@click.option("-d", "--debug", is_flag=True, default=False, help="Log build tool output.")
@click.option(
    "--timeout",
    type=int,
    default=None,
    help="Per-build timeout in seconds (default: 600).",
)
@click.option(
    "--work-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Root directory holding the scenarios (default: ./scenarios).",
)
@click.option("--dry-run", is_flag=True, help="Show what would run without building anything.")
def run(  # noqa: PLR0913
    types: tuple[str, ...],
    methods: tuple[str, ...],
    parameters: tuple[str, ...],
    profile_path: Path | None,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
    target_count: int | None,
    warmup_count: int | None,
    debug: bool,
    timeout: int | None,
    work_dir: Path | None,
    dry_run: bool,
) -> None:
    """Select benchmark variants and run them.

    \b
    Examples:
        # Typical-usage defaults for every type
        cliperf run

        # Core apps only, with and without restore, three measured builds
        cliperf run -t Core -p restore=true|false -c 3 -w 1

        # Root-file edits on the large apps (excluded by default)
        cliperf run -t Large -m SourceChanged -p source-change-scope=root-file-changed
    """
    from cliperf.config import validate_run_config
    from cliperf.engine import DryRunEngine, ExecutionEngine, ProcessEngine
    from cliperf.selection.pipeline import SelectionPipeline

    setup_logging(verbose=verbose or debug, quiet=quiet, log_file=log_file)
    log.debug("%s Enter run", elapsed())

    overrides: dict[str, Any] = {
        "types": types,
        "methods": methods,
        "parameters": parameters,
        "target_count": target_count,
        "warmup_count": warmup_count,
        "debug": debug,
        "timeout": timeout,
        "work_dir": work_dir,
    }

    try:
        request = _build_request(profile_path, overrides)
        result = SelectionPipeline().select(request)
    except CliperfError as exc:
        _fail(exc)

    config_errors = validate_run_config(request.run_config)
    for err in config_errors:
        if err.severity == "error":
            click.echo(f"Error: {err.message}", err=True)
        elif not dry_run:
            log.warning(err.message)
    if any(e.severity == "error" for e in config_errors):
        raise SystemExit(1)

    if result.warning is not None:
        log.warning("%s", result.warning)
        click.echo("No benchmarks selected; nothing to run.")
        return

    log.info("Selected %d benchmark variant(s)", len(result))

    engine: ExecutionEngine = DryRunEngine() if dry_run else ProcessEngine()
    log.debug("%s Before engine run", elapsed())
    try:
        runs = engine.run(result.variants, result.run_config)
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    from cliperf.formatting import format_section_header, format_table

    click.echo()
    click.echo(format_section_header("Results"))
    click.echo(format_table(*_run_rows(runs)))

    if not all(r.ok for r in runs):
        raise SystemExit(1)


def _run_rows(runs: list[VariantRun]) -> tuple[list[str], list[list[str]]]:
    from cliperf.formatting import format_seconds, format_status_icon

    headers = ["Variant", "Status", "Builds"]
    rows = []
    for r in runs:
        times = ", ".join(format_seconds(it.wall_time_s) for it in r.measured)
        rows.append([r.variant.describe(), format_status_icon(r.status), times or r.error])
    return headers, rows


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


@main.command("list")
@_selection_options
@click.option("--json", "as_json", is_flag=True, help="Output JSON instead of a table.")
def list_variants(
    types: tuple[str, ...],
    methods: tuple[str, ...],
    parameters: tuple[str, ...],
    profile_path: Path | None,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
    as_json: bool,
) -> None:
    """List the variants a request selects, without running anything."""
    from cliperf.formatting import format_table
    from cliperf.selection.dimensions import REGISTRY
    from cliperf.selection.pipeline import SelectionPipeline

    setup_logging(verbose=verbose, quiet=quiet or as_json, log_file=log_file)

    overrides = {"types": types, "methods": methods, "parameters": parameters}
    try:
        request = _build_request(profile_path, overrides)
        result = SelectionPipeline().select(request)
    except CliperfError as exc:
        _fail(exc)

    if as_json:
        data = [
            {
                "type": v.type_name,
                "operation": v.operation,
                "category": v.category.label,
                "scenario": v.scenario,
                "values": {k: REGISTRY.get(k).format(val) for k, val in v.values.items()},
            }
            for v in result.variants
        ]
        click.echo(json.dumps(data, indent=2))
        return

    if result.warning is not None:
        log.warning("%s", result.warning)
        click.echo("No benchmarks selected.")
        return

    rows = []
    for i, v in enumerate(result.variants, 1):
        params = ", ".join(
            f"{dim.name}={dim.format(v.values[dim.name])}" for dim in REGISTRY if v.has(dim.name)
        )
        rows.append([str(i), v.name, v.category.label, params])
    click.echo(
        format_table(
            ["#", "Variant", "Category", "Parameters"], rows, right_align=[0], max_width=200
        )
    )
    click.echo()
    catalogue_size = result.stage_counts[0][1]
    click.echo(f"{len(result)} of {catalogue_size} variant(s) selected.")


# ---------------------------------------------------------------------------
# dimensions
# ---------------------------------------------------------------------------


@main.command()
def dimensions() -> None:
    """Show every dimension and its legal values."""
    from cliperf.formatting import format_table
    from cliperf.selection.dimensions import REGISTRY

    rows = [[d.name, " | ".join(d.allowed_text()), d.description] for d in REGISTRY]
    click.echo(format_table(["Dimension", "Values", "Description"], rows, max_width=80))
