from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import asdict
from pathlib import Path
from typing import Any

from actorbundle.abi.canonical import canonical_json_bytes, sha256_bytes, sha256_canonical
from actorbundle.config import AppConfig, Paths

logger = logging.getLogger(__name__)

STAMP_NAME = "inputs.stamp.json"


def watched_paths(paths: Paths) -> list[Path]:
    return [
        paths.workspace_manifest,
        paths.targets_dir,
        paths.tests_dir,
        paths.artifacts_dir,
    ]


def build_input_manifest(
    root: Path,
    watched: Iterable[Path],
    exclude: Iterable[Path] = (),
) -> list[dict[str, Any]]:
    excluded = [item.resolve() for item in exclude]
    files: set[Path] = set()
    for base in watched:
        if base.is_file():
            files.add(base)
        elif base.is_dir():
            files.update(path for path in base.rglob("*") if path.is_file())
    entries: list[dict[str, Any]] = []
    for path in sorted(files, key=lambda item: _display_path(item, root)):
        resolved = path.resolve()
        if any(resolved.is_relative_to(item) for item in excluded):
            continue
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            logger.debug("fingerprint skip vanished path=%s", path)
            continue
        entries.append(
            {
                "path": _display_path(path, root),
                "sha256": sha256_bytes(data),
                "bytes": len(data),
            }
        )
    return entries


def _display_path(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def build_settings(config: AppConfig) -> dict[str, Any]:
    """Settings that change what the compiler emits or where bundles land."""
    compiler = config.compiler
    return {
        "compiler": {
            "command": list(compiler.command),
            "target": compiler.target,
            "profile": compiler.profile,
            "locked": compiler.locked,
            "unset_vars": sorted(compiler.unset_vars),
            "extra_env": dict(compiler.extra_env),
            "output_dir_var": compiler.output_dir_var,
        },
        "naming": asdict(config.naming),
        "artifacts_dir": str(config.paths.artifacts_dir),
    }


def fingerprint(entries: list[dict[str, Any]], settings: dict[str, Any] | None = None) -> str:
    return sha256_canonical({"files": entries, "settings": settings or {}})


def input_fingerprint(paths: Paths, settings: dict[str, Any] | None = None) -> str:
    entries = build_input_manifest(paths.root, watched_paths(paths), exclude=[paths.build_dir])
    return fingerprint(entries, settings)


def stamp_path(paths: Paths) -> Path:
    return paths.build_dir / STAMP_NAME


def is_fresh(path: Path, digest: str) -> bool:
    if not path.exists():
        return False
    try:
        stored = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("ignoring unreadable stamp path=%s error=%s", path, exc)
        return False
    return isinstance(stored, dict) and stored.get("fingerprint") == digest


def write_stamp(path: Path, digest: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(canonical_json_bytes({"fingerprint": digest}))
