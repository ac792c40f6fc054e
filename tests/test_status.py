"""Tests for stage status evaluation."""

from __future__ import annotations

import pytest
from conftest import block_end, stage_start

from stage_metrics.core.contracts import ExecutionNode, StageStatus
from stage_metrics.core.graph import ExecutionGraph
from stage_metrics.stages.segmenter import StageSegmenter
from stage_metrics.stages.status import StatusEvaluator


def _statuses(graph: ExecutionGraph) -> dict[str, StageStatus]:
    evaluator = StatusEvaluator()
    return {i.name: evaluator.evaluate(graph, i) for i in StageSegmenter().segment(graph)}


@pytest.mark.offline
class TestStatusEvaluator:
    def test_clean_stage_is_success(self, e2e_nodes):
        statuses = _statuses(ExecutionGraph(e2e_nodes))
        assert statuses == {"Build": StageStatus.SUCCESS, "Test": StageStatus.SUCCESS}

    def test_unclosed_stage_is_aborted_even_with_errors(self):
        graph = ExecutionGraph(
            [
                stage_start(3, "Deploy", 100),
                ExecutionNode(node_id="4", error="script returned exit code 1"),
                ExecutionNode(node_id="5", error="interrupted"),
            ]
        )
        assert _statuses(graph) == {"Deploy": StageStatus.ABORTED}

    def test_error_strictly_inside_interval_is_failure(self):
        graph = ExecutionGraph(
            [
                stage_start(3, "Test", 100),
                ExecutionNode(node_id="4"),
                ExecutionNode(node_id="5", error="AssertionError"),
                ExecutionNode(node_id="6"),
                block_end(7, 3, 300),
            ]
        )
        assert _statuses(graph) == {"Test": StageStatus.FAILURE}

    def test_error_on_end_node_is_failure(self):
        graph = ExecutionGraph(
            [stage_start(3, "Test", 100), block_end(4, 3, 300, error="hudson.AbortException")]
        )
        assert _statuses(graph) == {"Test": StageStatus.FAILURE}

    def test_error_on_nested_terminator_is_failure(self):
        graph = ExecutionGraph(
            [
                stage_start(3, "Test", 100),
                ExecutionNode(node_id="4", display_name="retry"),
                block_end(5, 4, 200, error="retry exhausted"),
                block_end(6, 3, 300),
            ]
        )
        assert _statuses(graph) == {"Test": StageStatus.FAILURE}

    def test_errors_outside_interval_do_not_leak(self):
        graph = ExecutionGraph(
            [
                ExecutionNode(node_id="2", error="checkout failed"),
                stage_start(3, "Build", 100),
                block_end(4, 3, 200),
                ExecutionNode(node_id="5", error="post failed"),
            ]
        )
        assert _statuses(graph) == {"Build": StageStatus.SUCCESS}

    def test_empty_error_string_is_not_an_error(self):
        graph = ExecutionGraph(
            [stage_start(3, "Build", 100), ExecutionNode(node_id="4", error=""), block_end(5, 3, 2)]
        )
        assert _statuses(graph) == {"Build": StageStatus.SUCCESS}

    def test_failing_nodes_lists_inner_and_end(self):
        graph = ExecutionGraph(
            [
                stage_start(3, "Test", 100),
                ExecutionNode(node_id="4", error="boom"),
                block_end(5, 3, 300, error="boom"),
            ]
        )
        (interval,) = StageSegmenter().segment(graph)
        assert StatusEvaluator().failing_nodes(graph, interval) == ["4", "5"]
