"""Stage segmenter: pairs stage-start nodes with their block terminators."""

from __future__ import annotations

from pydantic import BaseModel

from stage_metrics.core.contracts import ExecutionNode, StageInterval
from stage_metrics.core.graph import ExecutionGraph

DEFAULT_STAGE_FUNCTION = "stage"
STAGE_START_SENTINEL = "Stage : Start"


class SegmenterConfig(BaseModel):
    """Configuration for stage segmentation."""

    stage_function: str = DEFAULT_STAGE_FUNCTION
    sentinel: str = STAGE_START_SENTINEL


class StageSegmenter:
    """Splits an execution graph into the half-open intervals each stage owns."""

    def __init__(self, config: SegmenterConfig | None = None) -> None:
        self.config = config or SegmenterConfig()

    def segment(self, graph: ExecutionGraph) -> list[StageInterval]:
        intervals: list[StageInterval] = []
        for node in graph:
            if not self.is_stage_start(node):
                continue
            end = self.find_end(graph, node)
            intervals.append(
                StageInterval(
                    name=self.stage_name(node),
                    start_node_id=node.node_id,
                    end_node_id=end.node_id if end else None,
                )
            )
        return intervals

    def is_stage_start(self, node: ExecutionNode) -> bool:
        if node.step is None or node.step.function_name != self.config.stage_function:
            return False
        return self.config.sentinel not in (node.step.function_name, node.display_name)

    def stage_name(self, node: ExecutionNode) -> str:
        arguments = node.step.arguments if node.step else {}
        name = arguments.get("name") if isinstance(arguments, dict) else None
        if isinstance(name, str) and name:
            return name
        return node.display_name

    def find_end(self, graph: ExecutionGraph, start: ExecutionNode) -> ExecutionNode | None:
        """First block terminator recorded against *start* that follows it."""
        for node in graph:
            if (
                node.block_start_id == start.node_id
                and graph.is_before(start.node_id, node.node_id)
            ):
                return node
        return None

    def duration_millis(self, graph: ExecutionGraph, interval: StageInterval) -> int:
        if interval.end_node_id is None:
            return 0
        start = graph.get(interval.start_node_id)
        end = graph.get(interval.end_node_id)
        if start is None or end is None:
            return 0
        return max((end.start_time_millis or 0) - (start.start_time_millis or 0), 0)
