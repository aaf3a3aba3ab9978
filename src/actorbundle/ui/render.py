from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from actorbundle.abi.manifest import Abi, MethodDescriptor
from actorbundle.orchestrator.types import BuildReport


def _role(method: MethodDescriptor | None) -> str:
    if method is None:
        return "-"
    return f"{method.name} ({method.number})"


def render_abi(abi: Abi, console: Console | None = None, title: str = "ABI") -> None:
    console = console or Console()
    console.print(f"Constructor: {_role(abi.constructor)}")
    console.print(f"SetUp: {_role(abi.set_up)}")
    table = Table(title=title)
    table.add_column("#")
    table.add_column("Method")
    table.add_column("Number")
    for index, method in enumerate(abi.methods):
        table.add_row(str(index), method.name, str(method.number))
    console.print(table)


def render_report(report: BuildReport, console: Console | None = None) -> None:
    console = console or Console()
    if report.skipped:
        console.print(f"{report.kind}: inputs unchanged, skipped")
        return
    for diagnostic in report.diagnostics:
        console.print(f"{report.kind}: skipped unit: {escape(diagnostic)}")
    if report.fatal is not None:
        console.print(f"{report.kind}: FAILED: {escape(report.fatal)}")
        return
    table = Table(title=f"{report.kind} bundles")
    table.add_column("Unit")
    table.add_column("Bundle")
    table.add_column("Methods")
    for bundle in report.bundles:
        table.add_row(bundle.unit, bundle.name, str(bundle.methods))
    console.print(table)
    for failure in report.failures:
        console.print(f"{report.kind}: {failure.stage} failed: {escape(failure.error)}")
