from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from actorbundle.abi.canonical import canonical_json_bytes
from actorbundle.abi.manifest import build_abi, decode_abi
from actorbundle.abi.method import method_number
from actorbundle.config import AppConfig, default_config
from actorbundle.dispatch.extract import extract_from_file
from actorbundle.errors import BundleError
from actorbundle.orchestrator.controller import BundleController
from actorbundle.orchestrator.types import BuildReport, RunOptions
from actorbundle.runtime import initialize_runtime
from actorbundle.ui.render import render_abi, render_report
from actorbundle.units.discovery import discover_units
from actorbundle.units.types import UnitKind

app = typer.Typer(help="Build actors and bundle them with their ABI manifests")

console = Console()
logger = logging.getLogger(__name__)

ROOT_OPTION = typer.Option(None, "--root", file_okay=False, help="Workspace root")
KIND_OPTION = typer.Option("all", "--kind", help="targets, tests or all")
INCREMENTAL_OPTION = typer.Option(
    False, "--incremental", help="Keep existing artifacts instead of purging"
)
JOBS_OPTION = typer.Option(1, "--jobs", "-j", min=1)
TIMEOUT_OPTION = typer.Option(None, "--timeout", help="Compiler timeout in seconds")
IF_CHANGED_OPTION = typer.Option(False, "--if-changed", help="Skip when inputs are unchanged")
REPORT_OPTION = typer.Option(None, "--report", dir_okay=False)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v")
SOURCE_ARGUMENT = typer.Argument(..., exists=True, dir_okay=False)
MANIFEST_ARGUMENT = typer.Argument(..., exists=True, dir_okay=False)
NAMES_ARGUMENT = typer.Argument(..., help="Method names")

_KINDS = {"targets": UnitKind.TARGET, "tests": UnitKind.TEST}


def _config(root: Path | None, timeout: float | None = None) -> AppConfig:
    config = default_config(root)
    if timeout is not None:
        config = replace(config, compiler=replace(config.compiler, timeout_s=timeout))
    return config


def _write_report(path: Path, reports: list[BuildReport]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(canonical_json_bytes([report.model_dump(mode="json") for report in reports]))


@app.command("build")
def build(
    root: Path | None = ROOT_OPTION,
    kind: str = KIND_OPTION,
    incremental: bool = INCREMENTAL_OPTION,
    jobs: int = JOBS_OPTION,
    timeout: float | None = TIMEOUT_OPTION,
    if_changed: bool = IF_CHANGED_OPTION,
    report: Path | None = REPORT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    initialize_runtime(verbose=verbose, logger=logger)
    if kind != "all" and kind not in _KINDS:
        console.print(f"Unknown kind: {kind}")
        raise typer.Exit(code=1)
    logger.info("build start root=%s kind=%s", root, kind)
    controller = BundleController(_config(root, timeout))
    if kind == "all":
        reports = controller.run_all(
            RunOptions(purge_targets=not incremental, jobs=jobs, if_changed=if_changed)
        )
    else:
        unit_kind = _KINDS[kind]
        purge = unit_kind is UnitKind.TARGET and not incremental
        reports = [controller.run(unit_kind, purge=purge, jobs=jobs)]
    for item in reports:
        render_report(item, console)
    if report is not None:
        _write_report(report, reports)
    if not all(item.ok for item in reports):
        logger.info("build failed")
        raise typer.Exit(code=1)
    logger.info("build complete")
    console.print("Build OK")


@app.command("discover")
def discover(
    root: Path | None = ROOT_OPTION,
    kind: str = KIND_OPTION,
) -> None:
    initialize_runtime(logger=logger)
    config = _config(root)
    if kind == "all":
        kinds = list(_KINDS.values())
    elif kind in _KINDS:
        kinds = [_KINDS[kind]]
    else:
        console.print(f"Unknown kind: {kind}")
        raise typer.Exit(code=1)
    failed = False
    for unit_kind in kinds:
        try:
            result = discover_units(config.paths, unit_kind, config.naming)
        except BundleError as exc:
            console.print(f"{unit_kind.value}: {escape(str(exc))}")
            failed = True
            continue
        for unit in result.units:
            console.print(f"{unit_kind.value}: {unit.name} {unit.entry_source}")
        for diagnostic in result.diagnostics:
            console.print(f"{unit_kind.value}: skipped: {escape(str(diagnostic))}")
    if failed:
        raise typer.Exit(code=1)


@app.command("extract")
def extract(source: Path = SOURCE_ARGUMENT) -> None:
    initialize_runtime(logger=logger)
    try:
        abi = build_abi(extract_from_file(source))
    except BundleError as exc:
        console.print(f"Extraction failed: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    render_abi(abi, console, title=str(source))


@app.command("inspect")
def inspect(manifest: Path = MANIFEST_ARGUMENT) -> None:
    initialize_runtime(logger=logger)
    try:
        abi = decode_abi(manifest.read_bytes())
    except BundleError as exc:
        console.print(f"Invalid manifest: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    render_abi(abi, console, title=manifest.name)


@app.command("method-hash")
def method_hash(names: list[str] = NAMES_ARGUMENT) -> None:
    failed = False
    for name in names:
        try:
            console.print(f"{name} {method_number(name)}")
        except BundleError as exc:
            console.print(f"{name}: {escape(str(exc))}")
            failed = True
    if failed:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
