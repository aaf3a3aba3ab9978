from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from pathlib import Path

from actorbundle.artifacts.naming import compiled_file_stem
from actorbundle.config import CompilerSettings, NamingSettings, Paths
from actorbundle.errors import CompileError


def build_command(
    settings: CompilerSettings,
    paths: Paths,
    unit_names: Sequence[str],
) -> list[str]:
    cmd = [*settings.command, "build"]
    cmd.extend(f"-p={name}" for name in unit_names)
    cmd.append(f"--target={settings.target}")
    cmd.append(f"--profile={settings.profile}")
    if settings.locked:
        cmd.append("--locked")
    cmd.append(f"--manifest-path={paths.workspace_manifest}")
    return cmd


def build_environment(
    settings: CompilerSettings,
    output_dir: Path,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    env = dict(os.environ if base_env is None else base_env)
    for key in settings.unset_vars:
        env.pop(key, None)
    env.update(settings.extra_env)
    env[settings.output_dir_var] = str(output_dir)
    return env


def compiled_binary_path(
    output_dir: Path,
    settings: CompilerSettings,
    naming: NamingSettings,
    unit_name: str,
) -> Path:
    stem = compiled_file_stem(unit_name, naming)
    return output_dir / settings.target / settings.profile / f"{stem}.{naming.binary_ext}"


def clear_compiled_binaries(
    output_dir: Path,
    settings: CompilerSettings,
    naming: NamingSettings,
    unit_names: Sequence[str],
) -> None:
    """Drop binaries an earlier run left for these units; the compiler relinks them."""
    for name in unit_names:
        path = compiled_binary_path(output_dir, settings, naming, name)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise CompileError(f"could not remove stale binary: {exc}", path=path) from exc
