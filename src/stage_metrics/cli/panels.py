"""Rich panels for stage metrics and delivery results."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from stage_metrics.cli.checker import ConfigIssue
    from stage_metrics.core.analyzer import AnalysisResult
    from stage_metrics.core.metrics import ReportSummary

STATUS_STYLES: dict[str, str] = {
    "SUCCESS": "[green]SUCCESS[/]",
    "FAILURE": "[red]FAILURE[/]",
    "ABORTED": "[yellow]ABORTED[/]",
}

# Build tools that did not come from a graph override are tagged with their origin.
SOURCE_TAGS: dict[str, str] = {"console": "log", "sh-label": "sh"}


def render_stages(result: AnalysisResult, console: Console, *, title: str) -> None:
    table = Table(show_edge=False, pad_edge=False, box=None)
    table.add_column("Status", min_width=8)
    table.add_column("Stage", min_width=14)
    table.add_column("Nodes", style="dim")
    table.add_column("Build tool", min_width=8)
    table.add_column("Duration", justify="right", min_width=6)

    for stage in result.stages:
        metric = stage.metric
        end = stage.interval.end_node_id or "..."
        tool = metric.build_tool or "-"
        if stage.build_tool_source in SOURCE_TAGS:
            tool = f"{tool} [dim]({SOURCE_TAGS[stage.build_tool_source]})[/]"
        table.add_row(
            STATUS_STYLES.get(metric.status.value, metric.status.value),
            metric.name,
            f"{stage.interval.start_node_id}-{end}",
            tool,
            f"{metric.duration_millis / 1000:.1f}s",
        )

    pipeline_tool = result.pipeline_build_tool or "unknown"
    all_ok = all(s.metric.status.value == "SUCCESS" for s in result.stages)
    console.print(
        Panel(
            table,
            title=f"[bold]Stage metrics[/] - {title}",
            subtitle=f"{len(result.stages)} stages - pipeline build tool: {pipeline_tool}",
            border_style="green" if all_ok else "red",
        )
    )


def render_delivery(summary: ReportSummary, console: Console) -> None:
    style = "green" if summary.all_success else "red"
    console.print(
        f"[{style}]Delivered {summary.sent}/{summary.attempted} stage payload(s).[/]"
    )
    for error in summary.errors:
        console.print(f"  [red]x[/] {error}")


def render_issues(issues: list[ConfigIssue], console: Console) -> None:
    table = Table(title="Configuration issues")
    table.add_column("Setting", style="cyan")
    table.add_column("Severity")
    table.add_column("Message")
    for issue in issues:
        severity = "[red]error[/]" if issue.severity == "error" else "[yellow]warning[/]"
        table.add_row(issue.field, severity, issue.message)
    console.print(table)
