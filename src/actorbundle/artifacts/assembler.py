from __future__ import annotations

import logging
import shutil
import threading
from dataclasses import dataclass
from pathlib import Path

from actorbundle.artifacts.naming import bundle_name
from actorbundle.config import NamingSettings
from actorbundle.errors import AssemblyError, DirectoryLifecycleError
from actorbundle.units.types import BuildUnit, UnitKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactBundle:
    unit: str
    name: str
    binary_path: Path
    manifest_path: Path


def prepare_artifacts_dir(path: Path, *, purge: bool) -> None:
    try:
        path.mkdir(parents=True)
        logger.info("artifacts dir created path=%s", path)
        return
    except FileExistsError:
        if not path.is_dir():
            raise DirectoryLifecycleError("artifacts path exists and is not a directory", path=path)
    except OSError as exc:
        raise DirectoryLifecycleError(f"could not create artifacts dir: {exc}", path=path) from exc

    if not purge:
        logger.debug("artifacts dir exists path=%s", path)
        return
    try:
        shutil.rmtree(path)
    except OSError as exc:
        raise DirectoryLifecycleError(f"could not remove artifacts dir: {exc}", path=path) from exc
    try:
        path.mkdir(parents=True)
    except OSError as exc:
        raise DirectoryLifecycleError(f"could not create artifacts dir: {exc}", path=path) from exc
    logger.info("artifacts dir purged path=%s", path)


class ArtifactAssembler:
    def __init__(
        self,
        artifacts_dir: Path,
        *,
        naming: NamingSettings | None = None,
        purge: bool = False,
    ) -> None:
        self.artifacts_dir = artifacts_dir
        self.naming = naming or NamingSettings()
        self.purge = purge
        self._prepared = False
        self._lock = threading.Lock()
        self._claimed: dict[str, str] = {}

    def prepare(self) -> None:
        with self._lock:
            if self._prepared:
                return
            prepare_artifacts_dir(self.artifacts_dir, purge=self.purge)
            self._prepared = True

    def claim(self, unit: BuildUnit, kind: UnitKind) -> str:
        """Reserve the bundle name of ``unit``; the first unit to claim a name keeps it."""
        try:
            name = bundle_name(unit.name, kind, self.naming)
        except AssemblyError as exc:
            exc.path = unit.source_root
            raise
        with self._lock:
            owner = self._claimed.get(name)
            if owner is not None and owner != unit.name:
                raise AssemblyError(
                    f"artifact name {name} already produced by {owner}", unit=unit.name
                )
            self._claimed[name] = unit.name
        return name

    def assemble(
        self,
        unit: BuildUnit,
        kind: UnitKind,
        binary_path: Path,
        manifest: bytes,
    ) -> ArtifactBundle:
        if not self._prepared:
            raise RuntimeError("prepare() must run before assembling artifacts")
        name = self.claim(unit, kind)
        if not binary_path.is_file():
            raise AssemblyError("compiled binary not found", unit=unit.name, path=binary_path)
        if binary_path.stat().st_size == 0:
            raise AssemblyError("compiled binary is empty", unit=unit.name, path=binary_path)

        binary_dest = self.artifacts_dir / f"{name}.{self.naming.binary_ext}"
        manifest_dest = self.artifacts_dir / f"{name}.{self.naming.manifest_ext}"
        try:
            shutil.copyfile(binary_path, binary_dest)
        except OSError as exc:
            raise AssemblyError(
                f"could not copy binary to artifacts dir: {exc}", unit=unit.name, path=binary_path
            ) from exc
        try:
            manifest_dest.write_bytes(manifest)
        except OSError as exc:
            binary_dest.unlink(missing_ok=True)
            raise AssemblyError(
                f"could not write ABI file: {exc}", unit=unit.name, path=manifest_dest
            ) from exc
        logger.info("bundle assembled unit=%s name=%s", unit.name, name)
        return ArtifactBundle(
            unit=unit.name,
            name=name,
            binary_path=binary_dest,
            manifest_path=manifest_dest,
        )
