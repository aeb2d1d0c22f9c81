"""Rich rendering of a pipeline report."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ionprobe.application.diagnostics import DiagnosticStatus
from ionprobe.application.pipeline import PipelineReport


class RichStyles:
    ACCENT = "bold cyan"
    SECONDARY = "magenta"
    SUCCESS = "green"
    WARNING = "yellow"
    ERROR = "bold red"
    DETAIL = "white"


_STATUS_STYLES = {
    DiagnosticStatus.SUCCESS: RichStyles.SUCCESS,
    DiagnosticStatus.ADVISORY_FAILURE: RichStyles.WARNING,
    DiagnosticStatus.FATAL_FAILURE: RichStyles.ERROR,
}


def build_outcome_table(report: PipelineReport) -> Table:
    table = Table(title="ION API connectivity", box=box.SIMPLE_HEAVY)
    table.add_column("", no_wrap=True)
    table.add_column("Check", style=RichStyles.ACCENT)
    table.add_column("Target", style=RichStyles.SECONDARY)
    table.add_column("Result", style=RichStyles.DETAIL)
    for outcome in report.outcomes:
        style = _STATUS_STYLES[outcome.status]
        table.add_row(
            Text(outcome.marker, style=style),
            Text(outcome.check),
            Text(outcome.target),
            Text(outcome.message),
        )
    return table


def render_report(
    report: PipelineReport,
    *,
    stdout_console: Console,
    stderr_console: Console,
) -> None:
    """Print the outcome table, tenant responses and the final verdict."""

    if report.outcomes:
        stderr_console.print(build_outcome_table(report))

    for name, body in report.probe_responses.items():
        stdout_console.print(f"{name} API Response:", markup=False, highlight=False)
        stdout_console.print(body, markup=False, highlight=False, soft_wrap=True)

    if report.skip_reason:
        stderr_console.print(f"⚠ {report.skip_reason}", style=RichStyles.WARNING, markup=False)

    if report.success:
        stderr_console.print(
            f"[{RichStyles.SUCCESS}]✔ Access token obtained; "
            "all required checks passed[/]"
        )
        advisories = len(report.advisories)
        if advisories:
            stderr_console.print(
                f"[{RichStyles.WARNING}]⚠ {advisories} advisory check(s) failed; "
                "see the table above[/]"
            )
        return

    if report.error is not None:
        stderr_console.print(
            f"✖ {report.error.user_message}",
            style=RichStyles.ERROR,
            markup=False,
        )


__all__ = ["RichStyles", "build_outcome_table", "render_report"]
