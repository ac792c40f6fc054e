"""Run-completion callback: analyze a finished run and ship its stage metrics."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import httpx
import structlog

from stage_metrics.core.analyzer import AnalysisResult, GraphAnalyzer
from stage_metrics.core.contracts import ExecutionNode, RunContext
from stage_metrics.core.exceptions import (
    ConfigurationError,
    GraphAnalysisError,
    StageMetricsError,
)
from stage_metrics.core.graph import ExecutionGraph
from stage_metrics.core.interfaces import ConfigurationProvider
from stage_metrics.core.metrics import ReportSummary
from stage_metrics.core.reporter import MetricsReporter

logger = structlog.get_logger()

JOB_URL_VARIABLE = "JOB_URL"
BUILD_TOOL_VARIABLE = "BUILD_TOOL"


def build_run_context(
    run_id: str,
    job_name: str,
    env: Mapping[str, str],
    analysis: AnalysisResult,
    *,
    controller_name: str | None = None,
) -> RunContext:
    """Run-level payload fields; a pipeline-scope override beats the BUILD_TOOL variable."""
    return RunContext(
        run_id=run_id,
        job_name=job_name,
        job_url=env.get(JOB_URL_VARIABLE),
        build_tool=analysis.pipeline_build_tool or env.get(BUILD_TOOL_VARIABLE),
        controller_name=controller_name,
    )


class RunCompletionListener:
    """Entry point invoked once per completed run; never raises to its caller."""

    def __init__(
        self,
        config: ConfigurationProvider,
        *,
        analyzer: GraphAnalyzer | None = None,
        reporter: MetricsReporter | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.analyzer = analyzer or GraphAnalyzer()
        self.reporter = reporter or MetricsReporter(config, transport=transport)

    def on_completed(
        self,
        run_id: str,
        job_name: str,
        env: Mapping[str, str],
        graph: ExecutionGraph | Iterable[ExecutionNode | Mapping[str, Any]],
        *,
        console_lines: Iterable[str] | None = None,
    ) -> None:
        self.process(run_id, job_name, env, graph, console_lines=console_lines)

    def process(
        self,
        run_id: str,
        job_name: str,
        env: Mapping[str, str],
        graph: ExecutionGraph | Iterable[ExecutionNode | Mapping[str, Any]],
        *,
        console_lines: Iterable[str] | None = None,
    ) -> ReportSummary:
        """Same as ``on_completed`` but hands back the delivery summary."""
        log = logger.bind(run_id=run_id, job=job_name)
        self.reporter.begin_run()
        summary = ReportSummary()

        try:
            # Checked before analysis so a misconfigured run touches nothing.
            self.reporter.ensure_configured()
            snapshot = _snapshot(graph)
            analysis = self.analyzer.analyze(snapshot, console_lines=console_lines)
            context = build_run_context(
                run_id, job_name, env, analysis, controller_name=self.config.controller_name
            )
            return self.reporter.report(context, analysis.metrics)
        except ConfigurationError as exc:
            message = f"Stage metrics not sent: {exc}"
            log.error("run.not_configured", error=str(exc))
        except GraphAnalysisError as exc:
            message = f"Failed to analyze stage metrics: {exc}"
            log.error("run.analysis_failed", error=str(exc))
        except StageMetricsError as exc:
            message = f"Failed to send stage metrics: {exc}"
            log.error("run.failed", error=str(exc))
        except Exception as exc:
            message = f"Failed to send stage metrics: {exc}"
            log.exception("run.unexpected_error", error=str(exc))

        self.reporter.record_error(message)
        summary.errors.append(message)
        return summary


def _snapshot(
    graph: ExecutionGraph | Iterable[ExecutionNode | Mapping[str, Any]],
) -> ExecutionGraph:
    if isinstance(graph, ExecutionGraph):
        return graph
    nodes = list(graph)
    if all(isinstance(n, ExecutionNode) for n in nodes):
        return ExecutionGraph(nodes)  # type: ignore[arg-type]
    return ExecutionGraph.from_records(
        n.model_dump() if isinstance(n, ExecutionNode) else n for n in nodes
    )
