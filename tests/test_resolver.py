"""Tests for build-tool resolution at pipeline and stage scope."""

from __future__ import annotations

import pytest
from conftest import block_end, override, stage_start

from stage_metrics.core.contracts import ExecutionNode, StepDescriptor
from stage_metrics.core.graph import ExecutionGraph
from stage_metrics.stages.resolver import BuildToolResolver, ResolverConfig, parse_override
from stage_metrics.stages.segmenter import StageSegmenter


def _resolve_all(graph: ExecutionGraph) -> tuple[str | None, dict[str, str | None]]:
    resolver = BuildToolResolver()
    intervals = StageSegmenter().segment(graph)
    pipeline = resolver.resolve_pipeline(graph, intervals)
    stages = {i.name: resolver.resolve_stage(graph, i, intervals) for i in intervals}
    return pipeline, stages


@pytest.mark.offline
class TestParseOverride:
    @pytest.mark.parametrize(
        ("entry", "expected"),
        [
            ("BUILD_TOOL=maven", ("BUILD_TOOL", "maven")),
            ("OPTS=-Dx=1", ("OPTS", "-Dx=1")),
            ("BUILD_TOOL=", ("BUILD_TOOL", "")),
            ("no-equals", None),
            (None, None),
            (42, None),
        ],
    )
    def test_parse(self, entry, expected):
        assert parse_override(entry) == expected


@pytest.mark.offline
class TestPipelineScope:
    def test_override_outside_stages_is_pipeline_scoped(self):
        graph = ExecutionGraph(
            [
                override(2, "PATH+X=/opt", "BUILD_TOOL=gradle"),
                stage_start(3, "Build", 100),
                override(4, "BUILD_TOOL=maven", enclosing=(3,)),
                block_end(5, 3, 200),
            ]
        )
        pipeline, stages = _resolve_all(graph)
        assert pipeline == "gradle"
        assert stages == {"Build": "maven"}

    def test_override_inside_open_stage_is_not_pipeline_scoped(self):
        graph = ExecutionGraph(
            [stage_start(3, "Build", 100), override(4, "BUILD_TOOL=maven", enclosing=(3,))]
        )
        pipeline, _ = _resolve_all(graph)
        assert pipeline is None

    def test_first_pipeline_override_in_sequence_wins(self):
        graph = ExecutionGraph([override(2, "BUILD_TOOL=ant"), override(7, "BUILD_TOOL=bazel")])
        pipeline, _ = _resolve_all(graph)
        assert pipeline == "ant"


@pytest.mark.offline
class TestStageScope:
    def test_structural_owner_beats_earlier_nested_stage_override(self):
        graph = ExecutionGraph(
            [
                stage_start(3, "Parallel", 100),
                stage_start(4, "Linux", 110),
                override(5, "BUILD_TOOL=make", enclosing=(4, 3)),
                block_end(6, 4, 150),
                override(7, "BUILD_TOOL=cmake", enclosing=(3,)),
                block_end(8, 3, 200),
            ]
        )
        _, stages = _resolve_all(graph)
        assert stages == {"Parallel": "cmake", "Linux": "make"}

    def test_override_nearest_to_stage_start_wins(self):
        graph = ExecutionGraph(
            [
                stage_start(3, "Build", 100),
                ExecutionNode(node_id="4", step=StepDescriptor(function_name="dir")),
                override(5, "BUILD_TOOL=npm", enclosing=(4, 3)),
                override(6, "BUILD_TOOL=yarn", enclosing=(3,)),
                block_end(7, 3, 200),
            ]
        )
        _, stages = _resolve_all(graph)
        assert stages["Build"] == "yarn"

    def test_falls_back_to_any_override_in_interval(self):
        graph = ExecutionGraph(
            [
                stage_start(3, "Build", 100),
                override(4, "OTHER=1"),
                override(5, "BUILD_TOOL=sbt"),
                block_end(6, 3, 200),
            ]
        )
        _, stages = _resolve_all(graph)
        assert stages["Build"] == "sbt"

    def test_fallback_reaches_into_nested_stages(self):
        graph = ExecutionGraph(
            [
                stage_start(3, "Outer", 100),
                stage_start(4, "Inner", 110),
                override(5, "BUILD_TOOL=go", enclosing=(4, 3)),
                block_end(6, 4, 150),
                block_end(7, 3, 200),
            ]
        )
        _, stages = _resolve_all(graph)
        assert stages == {"Outer": "go", "Inner": "go"}

    def test_stage_without_override_is_absent(self, e2e_nodes):
        _, stages = _resolve_all(ExecutionGraph(e2e_nodes))
        assert stages == {"Build": "maven", "Test": None}

    def test_no_special_case_for_named_stages(self):
        graph = ExecutionGraph(
            [
                stage_start(3, "Dummy Build", 100),
                override(9, "BUILD_TOOL=maven", enclosing=(3,)),
                block_end(10, 3, 200),
            ]
        )
        _, stages = _resolve_all(graph)
        assert stages == {"Dummy Build": "maven"}


@pytest.mark.offline
class TestMalformedArguments:
    @pytest.mark.parametrize(
        "arguments",
        [
            {},
            {"overrides": None},
            {"overrides": 7},
            {"overrides": [None, 3, "MISSING_EQUALS", "BUILD_TOOL="]},
            {"overrides": {"BUILD_TOOL": "maven"}},
        ],
    )
    def test_malformed_overrides_are_no_match(self, arguments):
        node = ExecutionNode(
            node_id="2", step=StepDescriptor(function_name="withEnv", arguments=arguments)
        )
        assert BuildToolResolver().values(node) == []

    def test_single_string_override_accepted(self):
        node = ExecutionNode(
            node_id="2",
            step=StepDescriptor(function_name="withEnv", arguments={"overrides": "BUILD_TOOL=pip"}),
        )
        assert BuildToolResolver().values(node) == ["pip"]

    def test_custom_key(self):
        node = override(2, "BUILD_TOOL=maven", "TOOLCHAIN=llvm")
        resolver = BuildToolResolver(ResolverConfig(key="TOOLCHAIN"))
        assert resolver.values(node) == ["llvm"]


@pytest.mark.offline
def test_resolution_is_idempotent(e2e_nodes):
    graph = ExecutionGraph(e2e_nodes)
    first = _resolve_all(graph)
    for _ in range(5):
        assert _resolve_all(graph) == first
