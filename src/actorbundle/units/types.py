from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from actorbundle.errors import UnitManifestError


class UnitKind(str, Enum):
    TARGET = "target"
    TEST = "test"


@dataclass(frozen=True)
class BuildUnit:
    name: str
    source_root: Path
    entry_source: Path


@dataclass(frozen=True)
class DiscoveryResult:
    kind: UnitKind
    units: list[BuildUnit] = field(default_factory=list)
    diagnostics: list[UnitManifestError] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [unit.name for unit in self.units]
