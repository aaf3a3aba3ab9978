from __future__ import annotations

from pathlib import Path


class BundleError(Exception):
    """Base error; carries the offending unit and path when known."""

    def __init__(
        self,
        message: str,
        *,
        unit: str | None = None,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.unit = unit
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        parts = []
        if self.unit:
            parts.append(f"unit={self.unit}")
        if self.path is not None:
            parts.append(f"path={self.path}")
        if not parts:
            return self.message
        return f"{self.message} ({' '.join(parts)})"


class DiscoveryError(BundleError):
    pass


class UnitManifestError(DiscoveryError):
    pass


class CompileError(BundleError):
    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.returncode = returncode


class ExtractionError(BundleError):
    pass


class SourceSyntaxError(ExtractionError):
    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        col: int | None = None,
        unit: str | None = None,
        path: Path | str | None = None,
    ) -> None:
        if line is not None:
            message = f"{message} at {line}:{col}"
        super().__init__(message, unit=unit, path=path)
        self.line = line
        self.col = col


class EntryPointNotFoundError(ExtractionError):
    pass


class DispatchNotFoundError(ExtractionError):
    pass


class DispatchBlockError(ExtractionError):
    pass


class MethodNameError(BundleError):
    pass


class ManifestError(BundleError):
    pass


class AssemblyError(BundleError):
    pass


class DirectoryLifecycleError(BundleError):
    pass
