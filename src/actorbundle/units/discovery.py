from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from actorbundle.config import NamingSettings, Paths
from actorbundle.errors import DiscoveryError, UnitManifestError
from actorbundle.units.types import BuildUnit, DiscoveryResult, UnitKind

logger = logging.getLogger(__name__)


def unit_root(paths: Paths, kind: UnitKind) -> Path:
    if kind is UnitKind.TARGET:
        return paths.targets_dir
    return paths.tests_dir


def load_unit(path: Path, naming: NamingSettings) -> BuildUnit:
    manifest_path = path / naming.unit_manifest
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise UnitManifestError(
            f"could not read {naming.unit_manifest}: {exc}", path=manifest_path
        ) from exc
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise UnitManifestError(f"not a valid TOML file: {exc}", path=manifest_path) from exc
    name = _package_name(data)
    if name is None:
        raise UnitManifestError('"name" is missing from [package]', path=manifest_path)
    return BuildUnit(
        name=name,
        source_root=path,
        entry_source=path / naming.entry_relpath,
    )


def _package_name(data: dict[str, Any]) -> str | None:
    package = data.get("package")
    if not isinstance(package, dict):
        return None
    name = package.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    return name.strip()


def discover_units(
    paths: Paths,
    kind: UnitKind,
    naming: NamingSettings | None = None,
    *,
    require_units: bool = False,
) -> DiscoveryResult:
    naming = naming or NamingSettings()
    root = unit_root(paths, kind)
    logger.info("discovery start kind=%s root=%s", kind.value, root)
    try:
        candidates = sorted(root.iterdir(), key=lambda item: item.name)
    except OSError as exc:
        raise DiscoveryError(f"could not read unit directory: {exc}", path=root) from exc

    units: list[BuildUnit] = []
    diagnostics: list[UnitManifestError] = []
    seen: dict[str, Path] = {}
    for candidate in candidates:
        if not candidate.is_dir():
            continue
        if not (candidate / naming.unit_manifest).is_file():
            logger.debug("discovery skip dir=%s reason=no-manifest", candidate)
            continue
        try:
            unit = load_unit(candidate, naming)
        except UnitManifestError as exc:
            logger.warning("discovery exclude dir=%s error=%s", candidate, exc)
            diagnostics.append(exc)
            continue
        if unit.name in seen:
            duplicate = UnitManifestError(
                f"duplicate unit name, already declared in {seen[unit.name]}",
                unit=unit.name,
                path=candidate,
            )
            logger.warning("discovery exclude dir=%s error=%s", candidate, duplicate)
            diagnostics.append(duplicate)
            continue
        seen[unit.name] = candidate
        units.append(unit)

    if require_units and not units:
        raise DiscoveryError(f"no {kind.value} units found", path=root)
    logger.info(
        "discovery complete kind=%s units=%s diagnostics=%s",
        kind.value,
        len(units),
        len(diagnostics),
    )
    return DiscoveryResult(kind=kind, units=units, diagnostics=diagnostics)
