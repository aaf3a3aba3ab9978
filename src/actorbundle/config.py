from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    root: Path
    targets_dir: Path
    tests_dir: Path
    artifacts_dir: Path
    build_dir: Path
    workspace_manifest: Path


@dataclass(frozen=True)
class CompilerSettings:
    command: tuple[str, ...] = ("cargo",)
    target: str = "wasm32-unknown-unknown"
    profile: str = "wasm"
    locked: bool = True
    # Set by cargo for build scripts; it would override the flags we pass.
    unset_vars: frozenset[str] = frozenset({"CARGO_ENCODED_RUSTFLAGS"})
    extra_env: Mapping[str, str] = field(default_factory=dict)
    output_dir_var: str = "CARGO_TARGET_DIR"
    timeout_s: float | None = None
    queue_size: int = 1024


@dataclass(frozen=True)
class NamingSettings:
    # declared package name -> compiled file name, applied in order
    substitutions: tuple[tuple[str, str], ...] = (("-", "_"),)
    test_token: str = "test"
    test_marker: str = ".t"
    binary_ext: str = "wasm"
    manifest_ext: str = "cbor"
    unit_manifest: str = "Cargo.toml"
    entry_relpath: str = "src/actor.rs"


@dataclass(frozen=True)
class AppConfig:
    paths: Paths
    compiler: CompilerSettings
    naming: NamingSettings


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name, "").strip()
    return Path(value) if value else default


def default_paths(root: Path | None = None) -> Paths:
    base = root or Path.cwd()
    return Paths(
        root=base,
        targets_dir=_env_path("ACTORBUNDLE_TARGETS_DIR", base / "actors"),
        tests_dir=_env_path("ACTORBUNDLE_TESTS_DIR", base / "tests"),
        artifacts_dir=_env_path("ACTORBUNDLE_ARTIFACTS_DIR", base / "artifacts"),
        build_dir=_env_path("ACTORBUNDLE_BUILD_DIR", base / "target" / "actorbundle"),
        workspace_manifest=base / "Cargo.toml",
    )


def default_compiler_settings() -> CompilerSettings:
    cargo_env = os.getenv("CARGO", "").strip()
    target_env = os.getenv("ACTORBUNDLE_TARGET", "").strip()
    profile_env = os.getenv("ACTORBUNDLE_PROFILE", "").strip()
    timeout_env = os.getenv("ACTORBUNDLE_BUILD_TIMEOUT", "").strip()
    defaults = CompilerSettings()
    timeout_s: float | None = None
    if timeout_env:
        try:
            timeout_s = float(timeout_env)
        except ValueError as exc:
            raise ValueError(f"invalid ACTORBUNDLE_BUILD_TIMEOUT: {timeout_env}") from exc
    return CompilerSettings(
        command=(cargo_env,) if cargo_env else defaults.command,
        target=target_env or defaults.target,
        profile=profile_env or defaults.profile,
        timeout_s=timeout_s,
    )


def default_config(root: Path | None = None) -> AppConfig:
    return AppConfig(
        paths=default_paths(root),
        compiler=default_compiler_settings(),
        naming=NamingSettings(),
    )
