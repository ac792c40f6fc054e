"""CLI entry point for stage metrics."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from stage_metrics.core.logging import setup_logging

app = typer.Typer(name="stage-metrics", help="Stage metrics - pipeline run analyzer")
console = Console()


@dataclass
class RunSnapshot:
    """A completed run serialised to disk: run facts plus its node records."""

    run_id: str
    job_name: str
    env: dict[str, str] = field(default_factory=dict)
    nodes: list[dict[str, Any]] = field(default_factory=list)


def load_snapshot(path: Path) -> RunSnapshot:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        data = {"nodes": data}
    return RunSnapshot(
        run_id=str(data.get("runId", data.get("run_id", path.stem))),
        job_name=str(data.get("jobName", data.get("job_name", path.stem))),
        env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
        nodes=list(data.get("nodes") or []),
    )


def _parse_env(pairs: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            console.print(f"[red]Invalid --env value '{pair}'. Use KEY=VALUE.[/]")
            raise typer.Exit(code=1)
        key, value = pair.split("=", 1)
        env[key] = value
    return env


@app.command()
def analyze(
    snapshot_path: Path = typer.Argument(help="JSON run snapshot (runId, jobName, env, nodes)"),
    env_pairs: list[str] = typer.Option([], "--env", "-e", help="Extra KEY=VALUE variables"),
    log_path: Path | None = typer.Option(None, "--log", help="Console log of the run"),
    send: bool = typer.Option(False, "--send", help="Deliver payloads to the configured endpoint"),
    output: str = typer.Option(
        "terminal",
        "--output",
        "-o",
        help="Output format: terminal (default), json",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    json_logs: bool = typer.Option(False, "--json-logs"),
) -> None:
    """Analyze a run snapshot and optionally send its stage metrics."""
    from stage_metrics.cli.panels import render_delivery, render_stages
    from stage_metrics.core.analyzer import GraphAnalyzer
    from stage_metrics.core.config import InMemoryConfigurationStore, StageMetricsSettings
    from stage_metrics.core.exceptions import GraphAnalysisError
    from stage_metrics.core.graph import ExecutionGraph
    from stage_metrics.core.listener import RunCompletionListener, build_run_context
    from stage_metrics.core.reporter import build_payload

    if output not in ("terminal", "json"):
        console.print(f"[red]Invalid output format '{output}'. Choose from: terminal, json[/]")
        raise typer.Exit(code=1)
    if not snapshot_path.exists():
        console.print(f"[red]File not found: {snapshot_path}[/]")
        raise typer.Exit(code=1)

    settings = StageMetricsSettings()
    setup_logging(
        json_output=json_logs or settings.log_json,
        level="DEBUG" if verbose else settings.log_level,
    )

    try:
        snapshot = load_snapshot(snapshot_path)
    except (json.JSONDecodeError, AttributeError) as exc:
        console.print(f"[red]Unreadable snapshot: {exc}[/]")
        raise typer.Exit(code=1) from None
    env = {**snapshot.env, **_parse_env(env_pairs)}
    console_lines = (
        log_path.read_text(encoding="utf-8").splitlines() if log_path is not None else None
    )

    try:
        graph = ExecutionGraph.from_records(snapshot.nodes)
        result = GraphAnalyzer().analyze(graph, console_lines=console_lines)
    except GraphAnalysisError as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1) from None

    if output == "json":
        context = build_run_context(
            snapshot.run_id,
            snapshot.job_name,
            env,
            result,
            controller_name=settings.controller_name,
        )
        payloads = [build_payload(context, m) for m in result.metrics]
        print(json.dumps(payloads, indent=2))
    else:
        render_stages(result, console, title=f"{snapshot.job_name} #{snapshot.run_id}")

    if not send:
        return

    store = InMemoryConfigurationStore(settings)
    listener = RunCompletionListener(store)
    summary = listener.process(
        snapshot.run_id, snapshot.job_name, env, graph, console_lines=console_lines
    )
    render_delivery(summary, Console(stderr=True) if output == "json" else console)
    if store.last_error:
        raise typer.Exit(code=1)


@app.command("check-config")
def check_config() -> None:
    """Validate the reporting settings taken from the environment."""
    from stage_metrics.cli.checker import check_settings, has_errors
    from stage_metrics.cli.panels import render_issues
    from stage_metrics.core.config import StageMetricsSettings

    issues = check_settings(StageMetricsSettings())
    if not issues:
        console.print("[green]Configuration passed all checks.[/]")
        return

    render_issues(issues, console)
    if has_errors(issues):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
