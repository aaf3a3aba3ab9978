from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from actorbundle.compiler.command import build_command, build_environment
from actorbundle.compiler.stream import Sink, drain_streams, terminate
from actorbundle.config import CompilerSettings, Paths
from actorbundle.errors import CompileError
from actorbundle.units.types import BuildUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileResult:
    output_dir: Path
    command: list[str] = field(default_factory=list)
    returncode: int = 0
    lines: int = 0
    duration_ms: int = 0


def compile_units(
    units: Sequence[BuildUnit],
    paths: Paths,
    settings: CompilerSettings,
    *,
    output_dir: Path | None = None,
    sink: Sink | None = None,
    base_env: Mapping[str, str] | None = None,
) -> CompileResult:
    output_dir = output_dir or paths.build_dir
    if not units:
        logger.info("compile skipped, no units")
        return CompileResult(output_dir=output_dir)

    cmd = build_command(settings, paths, [unit.name for unit in units])
    env = build_environment(settings, output_dir, base_env)
    logger.info("compile start units=%s cmd=%s", len(units), " ".join(cmd))
    logger.debug("compile env output_dir=%s unset=%s", output_dir, sorted(settings.unset_vars))

    start = time.perf_counter()
    try:
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            env=env,
            cwd=paths.root,
            text=True,
            encoding="utf-8",
            errors="replace",
            start_new_session=os.name == "posix",
        )
    except OSError as exc:
        raise CompileError(f"failed to launch compiler: {exc}", path=Path(cmd[0])) from exc

    try:
        count, timed_out = drain_streams(
            process,
            sink,
            queue_size=settings.queue_size,
            timeout_s=settings.timeout_s,
        )
    except BaseException:
        terminate(process)
        process.wait()
        raise
    returncode = process.wait()
    duration_ms = int((time.perf_counter() - start) * 1000)

    if timed_out:
        raise CompileError(
            f"compiler did not finish within {settings.timeout_s}s",
            returncode=returncode,
            path=paths.workspace_manifest,
        )
    if returncode != 0:
        logger.error("compile failed returncode=%s duration_ms=%s", returncode, duration_ms)
        raise CompileError(
            f"actor build failed with exit status {returncode}",
            returncode=returncode,
            path=paths.workspace_manifest,
        )
    logger.info("compile complete lines=%s duration_ms=%s", count, duration_ms)
    return CompileResult(
        output_dir=output_dir,
        command=cmd,
        returncode=returncode,
        lines=count,
        duration_ms=duration_ms,
    )
