"""Hand-off from selection to execution.

An :class:`ExecutionEngine` receives the ordered selection plus the run
configuration.  Two engines ship with cliperf:

- :class:`DryRunEngine` logs the command each variant would run and
  spawns nothing.
- :class:`ProcessEngine` copies each variant's scenario into a temporary
  directory, pins the SDK there with ``global.json``, and runs the build
  command ``warmup_count + target_count`` times in the copy, recording raw
  wall-clock times.  The scenario tree under ``work_dir`` is never
  modified.  It does no statistics; reporting is the caller's concern.
"""

from __future__ import annotations

import json
import shutil
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from cliperf.logging import elapsed, get_logger
from cliperf.selection.catalogue import NO_CHANGES, SOURCE_CHANGED, Tool, Variant
from cliperf.selection.dimensions import (
    FLAVOR_CORE,
    MSBUILD_FLAVOR,
    NODE_REUSE,
    PARALLEL,
    RAZOR_COMPILE_ON_BUILD,
    RESTORE,
    SDK_VERSION,
)
from cliperf.selection.request import RunConfig
from cliperf.timing import TimedResult, run_timed

log = get_logger("engine")

_RAZOR_PROPERTIES = ["/p:RazorCompileOnBuild=true", "/p:UseRazorBuildServer=true"]


# ---------------------------------------------------------------------------
# Command rendering
# ---------------------------------------------------------------------------


def uses_core_msbuild(variant: Variant) -> bool:
    """Whether the variant builds through ``dotnet build``."""
    return variant.category.tool is Tool.CORE and variant.get(MSBUILD_FLAVOR) == FLAVOR_CORE


def build_command(variant: Variant, *, restore: bool | None = None) -> list[str]:
    """Render the build command line for *variant*.

    Args:
        variant: The variant to build.
        restore: Force restore on or off (the priming build always
            restores); None uses the variant's ``restore`` value.
    """
    if variant.category.tool is Tool.EXTERNAL:
        return ["gradle", "build"]

    do_restore = variant.get(RESTORE) is True if restore is None else restore
    parallel = variant.get(PARALLEL) is True

    if uses_core_msbuild(variant):
        cmd = ["dotnet", "build"]
        if not parallel:
            cmd.append("/m:1")
        if not do_restore:
            cmd.append("--no-restore")
    else:
        cmd = ["msbuild", "/t:build"]
        if do_restore:
            cmd.append("/restore")
        if parallel:
            cmd.append("/m")
        cmd.append(f"/nr:{'true' if variant.get(NODE_REUSE) is True else 'false'}")

    if variant.get(RAZOR_COMPILE_ON_BUILD) is True:
        cmd.extend(_RAZOR_PROPERTIES)
    return cmd


def build_env(variant: Variant) -> dict[str, str]:
    """Extra environment variables for *variant*'s builds."""
    env: dict[str, str] = {}
    if variant.category.tool is Tool.CORE:
        env["DOTNET_CLI_TELEMETRY_OPTOUT"] = "1"
        env["CLIPERF_SDK_VERSION"] = str(variant.get(SDK_VERSION))
    return env


def touch_source(path: Path, iteration: int) -> None:
    """Append a comment line so the next build sees a changed source file."""
    with path.open("a", encoding="utf-8") as fh:
        fh.write(f"\n// cliperf change {iteration}\n")


def prepare_copy(variant: Variant, scenario_dir: Path, dest: Path) -> None:
    """Copy *scenario_dir* to *dest*; core variants also get a ``global.json``.

    Raises:
        OSError: If the copy or the ``global.json`` write fails.
    """
    shutil.copytree(scenario_dir, dest, symlinks=True)
    if variant.category.tool is Tool.CORE:
        global_json = {"sdk": {"version": str(variant.get(SDK_VERSION))}}
        (dest / "global.json").write_text(json.dumps(global_json) + "\n", encoding="utf-8")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class BuildIteration:
    """One timed build of one variant."""

    index: int  # 1-based iteration number
    warmup: bool
    wall_time_s: float
    exit_code: int
    status: str  # "ok", "fail", "timeout"


@dataclass
class VariantRun:
    """Everything the engine recorded for one variant."""

    variant: Variant
    command: list[str] = field(default_factory=list)
    iterations: list[BuildIteration] = field(default_factory=list)
    status: str = "ok"  # "ok", "fail", "timeout", "error", "skipped"
    error: str = ""

    @property
    def measured(self) -> list[BuildIteration]:
        return [it for it in self.iterations if not it.warmup]

    @property
    def ok(self) -> bool:
        return self.status in ("ok", "skipped")


def _status_of(result: TimedResult) -> str:
    if result.timed_out:
        return "timeout"
    return "ok" if result.exit_code == 0 else "fail"


# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------


class ExecutionEngine(Protocol):
    """Anything that can execute an ordered selection."""

    def run(self, variants: Sequence[Variant], run_config: RunConfig) -> list[VariantRun]: ...


class DryRunEngine:
    """Log what would run without spawning any process."""

    def run(self, variants: Sequence[Variant], run_config: RunConfig) -> list[VariantRun]:
        runs: list[VariantRun] = []
        for variant in variants:
            cmd = build_command(variant)
            log.info(
                "Would run %s in %s: %s",
                variant.describe(),
                run_config.work_dir / variant.scenario,
                " ".join(cmd),
            )
            runs.append(VariantRun(variant=variant, command=cmd, status="skipped"))
        return runs


class ProcessEngine:
    """Run each variant's build command and time it."""

    def run(self, variants: Sequence[Variant], run_config: RunConfig) -> list[VariantRun]:
        runs: list[VariantRun] = []
        total = len(variants)
        for i, variant in enumerate(variants, 1):
            log.info("%s [%d/%d] %s", elapsed(), i, total, variant.describe())
            run = self._run_variant(variant, run_config)
            if not run.ok:
                log.warning("%s finished with status %s %s", variant.name, run.status, run.error)
            runs.append(run)
        return runs

    def _run_variant(self, variant: Variant, run_config: RunConfig) -> VariantRun:
        scenario_dir = run_config.work_dir / variant.scenario
        run = VariantRun(variant=variant, command=build_command(variant))

        if not scenario_dir.is_dir():
            run.status = "error"
            run.error = f"scenario directory not found: {scenario_dir}"
            return run

        with tempfile.TemporaryDirectory(prefix="cliperf-") as tmp:
            cwd = Path(tmp) / "app"
            try:
                prepare_copy(variant, scenario_dir, cwd)
            except OSError as exc:
                run.status = "error"
                run.error = f"could not copy scenario: {exc}"
                return run
            self._build_in(cwd, variant, run, run_config)
        return run

    def _build_in(
        self,
        cwd: Path,
        variant: Variant,
        run: VariantRun,
        run_config: RunConfig,
    ) -> None:
        cmd = run.command
        env = build_env(variant)

        edited: Path | None = None
        if variant.operation == SOURCE_CHANGED and variant.source_file:
            edited = cwd / variant.source_file
            if not edited.is_file():
                run.status = "error"
                run.error = f"source file not found: {variant.source_file}"
                return

        # Incremental operations need an up-to-date tree before timing.
        if variant.operation in (NO_CHANGES, SOURCE_CHANGED):
            prime = run_timed(
                build_command(variant, restore=True),
                cwd=cwd,
                env=env,
                timeout=run_config.timeout,
            )
            self._log_output(prime, run_config)
            if not prime.ok:
                run.status = "error"
                run.error = f"priming build failed (exit {prime.exit_code})"
                return

        for index in range(1, run_config.total_iterations + 1):
            if edited is not None:
                try:
                    touch_source(edited, index)
                except OSError as exc:
                    run.status = "error"
                    run.error = f"could not edit {variant.source_file}: {exc}"
                    return

            result = run_timed(cmd, cwd=cwd, env=env, timeout=run_config.timeout)
            self._log_output(result, run_config)

            status = _status_of(result)
            run.iterations.append(
                BuildIteration(
                    index=index,
                    warmup=index <= run_config.warmup_count,
                    wall_time_s=result.wall_time_s,
                    exit_code=result.exit_code,
                    status=status,
                )
            )
            if status != "ok":
                run.status = status
                return

    @staticmethod
    def _log_output(result: TimedResult, run_config: RunConfig) -> None:
        if not run_config.debug:
            return
        if result.stdout:
            log.debug("stdout:\n%s", result.stdout.rstrip())
        if result.stderr:
            log.debug("stderr:\n%s", result.stderr.rstrip())
