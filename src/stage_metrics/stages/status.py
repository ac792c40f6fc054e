"""Terminal status of a stage from its interval and error annotations."""

from __future__ import annotations

from stage_metrics.core.contracts import StageInterval, StageStatus
from stage_metrics.core.graph import ExecutionGraph


class StatusEvaluator:
    """Evaluates SUCCESS / FAILURE / ABORTED once per stage."""

    def evaluate(self, graph: ExecutionGraph, interval: StageInterval) -> StageStatus:
        if interval.end_node_id is None:
            return StageStatus.ABORTED

        end = graph.get(interval.end_node_id)
        if end is not None and end.has_error:
            return StageStatus.FAILURE

        # every node in the interval is scanned; position does not matter
        if any(node.has_error for node in graph.within(interval)):
            return StageStatus.FAILURE
        return StageStatus.SUCCESS

    def failing_nodes(self, graph: ExecutionGraph, interval: StageInterval) -> list[str]:
        """Ids of error-annotated nodes inside the interval and at its end."""
        ids = [node.node_id for node in graph.within(interval) if node.has_error]
        if interval.end_node_id is not None:
            end = graph.get(interval.end_node_id)
            if end is not None and end.has_error:
                ids.append(end.node_id)
        return ids
