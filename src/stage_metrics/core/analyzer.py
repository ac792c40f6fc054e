"""Execution graph analyzer: segments stages, then evaluates and resolves each one."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from stage_metrics.core.contracts import StageInterval, StageMetric
from stage_metrics.core.exceptions import GraphAnalysisError
from stage_metrics.core.graph import ExecutionGraph
from stage_metrics.stages.console import scan_stage_variables
from stage_metrics.stages.labels import collect_sh_labels
from stage_metrics.stages.resolver import BuildToolResolver
from stage_metrics.stages.segmenter import StageSegmenter
from stage_metrics.stages.status import StatusEvaluator

logger = structlog.get_logger()


@dataclass(frozen=True)
class StageAnalysis:
    """A stage interval together with the metric derived from it."""

    interval: StageInterval
    metric: StageMetric
    failing_nodes: tuple[str, ...] = ()
    build_tool_source: str | None = None


@dataclass
class AnalysisResult:
    """Everything derived from one run's execution graph."""

    stages: list[StageAnalysis] = field(default_factory=list)
    pipeline_build_tool: str | None = None

    @property
    def metrics(self) -> list[StageMetric]:
        return [s.metric for s in self.stages]


class GraphAnalyzer:
    """Runs the segmenter, then the status evaluator and resolver per stage."""

    def __init__(
        self,
        segmenter: StageSegmenter | None = None,
        resolver: BuildToolResolver | None = None,
        evaluator: StatusEvaluator | None = None,
    ) -> None:
        self.segmenter = segmenter or StageSegmenter()
        self.resolver = resolver or BuildToolResolver()
        self.evaluator = evaluator or StatusEvaluator()
        self._log = logger.bind(component="analyzer")

    def analyze(
        self,
        graph: ExecutionGraph,
        *,
        console_lines: Iterable[str] | None = None,
    ) -> AnalysisResult:
        """Derive one StageMetric per stage; any failure is a GraphAnalysisError."""
        try:
            return self._analyze(graph, console_lines)
        except GraphAnalysisError:
            raise
        except Exception as exc:
            raise GraphAnalysisError(f"Graph analysis failed: {exc}") from exc

    def _analyze(
        self, graph: ExecutionGraph, console_lines: Iterable[str] | None
    ) -> AnalysisResult:
        self._log.info("analysis.started", nodes=len(graph))
        intervals = self.segmenter.segment(graph)
        for interval in intervals:
            self._log.debug(
                "stage.segmented",
                stage=interval.name,
                start=interval.start_node_id,
                end=interval.end_node_id,
            )

        result = AnalysisResult(
            pipeline_build_tool=self.resolver.resolve_pipeline(graph, intervals)
        )
        console_vars = scan_stage_variables(console_lines) if console_lines is not None else {}
        key = self.resolver.config.key

        for interval in intervals:
            start = graph.get(interval.start_node_id)
            status = self.evaluator.evaluate(graph, interval)

            build_tool = self.resolver.resolve_stage(graph, interval, intervals)
            source = "graph" if build_tool else None
            if build_tool is None and console_vars.get(interval.name, {}).get(key):
                build_tool = console_vars[interval.name][key]
                source = "console"
            sh_labels = collect_sh_labels(graph, interval)
            if build_tool is None and sh_labels:
                build_tool = sh_labels[0]
                source = "sh-label"

            metric = StageMetric(
                name=interval.name,
                start_time_millis=(start.start_time_millis or 0) if start else 0,
                duration_millis=self.segmenter.duration_millis(graph, interval),
                status=status,
                build_tool=build_tool,
                sh_labels=tuple(sh_labels),
            )
            failing = tuple(self.evaluator.failing_nodes(graph, interval))
            result.stages.append(
                StageAnalysis(
                    interval=interval,
                    metric=metric,
                    failing_nodes=failing,
                    build_tool_source=source,
                )
            )
            self._log.info(
                "stage.evaluated",
                stage=metric.name,
                status=metric.status.value,
                duration_ms=metric.duration_millis,
                build_tool=metric.build_tool,
                failing_nodes=list(failing),
            )

        self._log.info(
            "analysis.completed",
            stages=len(result.stages),
            pipeline_build_tool=result.pipeline_build_tool,
        )
        return result
