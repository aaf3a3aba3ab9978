from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from actorbundle.abi.manifest import build_abi, encode_abi, manifest_digest
from actorbundle.artifacts.assembler import ArtifactAssembler
from actorbundle.compiler.command import clear_compiled_binaries, compiled_binary_path
from actorbundle.compiler.invoke import compile_units
from actorbundle.compiler.stream import Sink
from actorbundle.config import AppConfig
from actorbundle.dispatch.extract import extract_from_file
from actorbundle.errors import (
    AssemblyError,
    BundleError,
    CompileError,
    DirectoryLifecycleError,
    DiscoveryError,
    ExtractionError,
    ManifestError,
    MethodNameError,
)
from actorbundle.fingerprint import (
    build_settings,
    input_fingerprint,
    is_fresh,
    stamp_path,
    write_stamp,
)
from actorbundle.orchestrator.types import BuildReport, BundleRecord, RunOptions, Stage, UnitFailure
from actorbundle.runtime import build_log
from actorbundle.units.discovery import discover_units
from actorbundle.units.types import BuildUnit, UnitKind

logger = logging.getLogger(__name__)


def _stage_for(exc: BundleError) -> Stage:
    if isinstance(exc, ExtractionError):
        return "extraction"
    if isinstance(exc, (MethodNameError, ManifestError)):
        return "manifest"
    return "assembly"


class BundleController:
    def __init__(
        self,
        config: AppConfig,
        *,
        sink: Sink | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self.sink = sink
        self.base_env = base_env

    def run(self, kind: UnitKind, *, purge: bool, jobs: int = 1) -> BuildReport:
        paths = self.config.paths
        report = BuildReport(kind=kind.value, purge=purge)
        logger.info("bundle run start kind=%s purge=%s jobs=%s", kind.value, purge, jobs)

        try:
            discovery = discover_units(paths, kind, self.config.naming)
        except DiscoveryError as exc:
            return self._fatal(report, exc)
        report.diagnostics = [str(item) for item in discovery.diagnostics]
        units = discovery.units

        try:
            clear_compiled_binaries(
                paths.build_dir,
                self.config.compiler,
                self.config.naming,
                discovery.names,
            )
            compiled = compile_units(
                units,
                paths,
                self.config.compiler,
                sink=self.sink,
                base_env=self.base_env,
            )
        except CompileError as exc:
            return self._fatal(report, exc)

        assembler = ArtifactAssembler(paths.artifacts_dir, naming=self.config.naming, purge=purge)
        try:
            assembler.prepare()
        except DirectoryLifecycleError as exc:
            return self._fatal(report, exc)

        outcomes = self._process_units(units, kind, assembler, compiled.output_dir, jobs)
        for unit in units:
            outcome = outcomes[unit.name]
            if isinstance(outcome, BundleRecord):
                report.bundles.append(outcome)
                continue
            build_log().warning("unit failed unit=%s error=%s", unit.name, outcome)
            report.failures.append(
                UnitFailure(
                    unit=unit.name,
                    stage=_stage_for(outcome),
                    error=str(outcome),
                    path=str(outcome.path) if outcome.path is not None else None,
                )
            )
        logger.info(
            "bundle run complete kind=%s bundles=%s failures=%s",
            kind.value,
            len(report.bundles),
            len(report.failures),
        )
        return report

    def run_all(self, options: RunOptions | None = None) -> list[BuildReport]:
        options = options or RunOptions()
        paths = self.config.paths
        stamp = stamp_path(paths)
        settings = build_settings(self.config)
        if options.if_changed and is_fresh(stamp, input_fingerprint(paths, settings)):
            logger.info("bundle inputs unchanged, skipping build stamp=%s", stamp)
            return [
                BuildReport(kind=kind.value, purge=False, skipped=True)
                for kind in (UnitKind.TARGET, UnitKind.TEST)
            ]

        reports = [self.run(UnitKind.TARGET, purge=options.purge_targets, jobs=options.jobs)]
        if reports[0].fatal is None:
            reports.append(self.run(UnitKind.TEST, purge=False, jobs=options.jobs))
        if all(report.ok for report in reports):
            write_stamp(stamp, input_fingerprint(paths, settings))
        return reports

    def _fatal(self, report: BuildReport, exc: BundleError) -> BuildReport:
        logger.error("bundle run aborted kind=%s error=%s", report.kind, exc)
        report.fatal = str(exc)
        return report

    def _process_units(
        self,
        units: list[BuildUnit],
        kind: UnitKind,
        assembler: ArtifactAssembler,
        output_dir: Path,
        jobs: int,
    ) -> dict[str, BundleRecord | BundleError]:
        outcomes: dict[str, BundleRecord | BundleError] = {}
        # names are reserved in discovery order, before any worker runs
        claimed: list[BuildUnit] = []
        for unit in units:
            try:
                assembler.claim(unit, kind)
            except AssemblyError as exc:
                exc.unit = unit.name
                outcomes[unit.name] = exc
                continue
            claimed.append(unit)
        if jobs <= 1 or len(claimed) <= 1:
            for unit in claimed:
                outcomes[unit.name] = self._try_unit(unit, kind, assembler, output_dir)
            return outcomes
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            futures = {
                unit.name: pool.submit(self._try_unit, unit, kind, assembler, output_dir)
                for unit in claimed
            }
            for name, future in futures.items():
                outcomes[name] = future.result()
        return outcomes

    def _try_unit(
        self,
        unit: BuildUnit,
        kind: UnitKind,
        assembler: ArtifactAssembler,
        output_dir: Path,
    ) -> BundleRecord | BundleError:
        try:
            return self._bundle_unit(unit, kind, assembler, output_dir)
        except BundleError as exc:
            if exc.unit is None:
                exc.unit = unit.name
            return exc

    def _bundle_unit(
        self,
        unit: BuildUnit,
        kind: UnitKind,
        assembler: ArtifactAssembler,
        output_dir: Path,
    ) -> BundleRecord:
        table = extract_from_file(unit.entry_source, unit=unit.name)
        abi = build_abi(table, unit=unit.name)
        manifest = encode_abi(abi)
        binary = compiled_binary_path(
            output_dir, self.config.compiler, self.config.naming, unit.name
        )
        bundle = assembler.assemble(unit, kind, binary, manifest)
        return BundleRecord(
            unit=unit.name,
            name=bundle.name,
            binary_path=str(bundle.binary_path),
            manifest_path=str(bundle.manifest_path),
            manifest_sha256=manifest_digest(manifest),
            methods=len(abi.methods),
        )
