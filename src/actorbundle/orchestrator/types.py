from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

Stage = Literal["extraction", "manifest", "assembly"]


class BundleRecord(BaseModel):
    unit: str
    name: str
    binary_path: str
    manifest_path: str
    manifest_sha256: str
    methods: int


class UnitFailure(BaseModel):
    unit: str
    stage: Stage
    error: str
    path: str | None = None


class BuildReport(BaseModel):
    kind: str
    purge: bool
    bundles: list[BundleRecord] = Field(default_factory=list)
    failures: list[UnitFailure] = Field(default_factory=list)
    diagnostics: list[str] = Field(default_factory=list)
    fatal: str | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.fatal is None and not self.failures


@dataclass(frozen=True)
class RunOptions:
    purge_targets: bool = True
    jobs: int = 1
    if_changed: bool = False


__all__ = ["BundleRecord", "UnitFailure", "BuildReport", "RunOptions", "Stage"]
