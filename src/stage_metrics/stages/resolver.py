"""Build-tool resolution from environment-override steps."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel

from stage_metrics.core.contracts import ExecutionNode, StageInterval
from stage_metrics.core.graph import ExecutionGraph

DEFAULT_OVERRIDE_FUNCTION = "withEnv"
DEFAULT_OVERRIDES_ARGUMENT = "overrides"
DEFAULT_BUILD_TOOL_KEY = "BUILD_TOOL"


class ResolverConfig(BaseModel):
    """Configuration for override lookup."""

    override_function: str = DEFAULT_OVERRIDE_FUNCTION
    overrides_argument: str = DEFAULT_OVERRIDES_ARGUMENT
    key: str = DEFAULT_BUILD_TOOL_KEY


def parse_override(entry: Any) -> tuple[str, str] | None:
    """Split a ``KEY=VALUE`` entry; anything else is ``None``."""
    if not isinstance(entry, str) or "=" not in entry:
        return None
    key, value = entry.split("=", 1)
    return key.strip(), value


class BuildToolResolver:
    """Finds the build-tool override applying to the pipeline or to one stage.

    Pure function of the graph: repeated calls give the same answer.
    """

    def __init__(self, config: ResolverConfig | None = None) -> None:
        self.config = config or ResolverConfig()

    def resolve_pipeline(
        self, graph: ExecutionGraph, intervals: Sequence[StageInterval]
    ) -> str | None:
        """Overrides declared outside every stage interval."""
        candidates = (
            node
            for node in graph
            if self.is_override(node)
            and not any(graph.contains(interval, node.node_id) for interval in intervals)
        )
        return self._first_value(candidates)

    def resolve_stage(
        self,
        graph: ExecutionGraph,
        interval: StageInterval,
        intervals: Sequence[StageInterval] = (),
    ) -> str | None:
        """Innermost structurally-owned override first, then any override in the interval."""
        inside = [node for node in graph.within(interval) if self.is_override(node)]
        if not inside:
            return None

        stage_starts = {i.start_node_id for i in intervals} | {interval.start_node_id}
        owned: list[tuple[int, ExecutionNode]] = []
        for node in inside:
            depth = _owning_depth(node, interval.start_node_id, stage_starts)
            if depth is not None:
                owned.append((depth, node))
        # stable sort keeps node order among overrides at the same depth
        owned.sort(key=lambda pair: pair[0])

        value = self._first_value(node for _, node in owned)
        if value is not None:
            return value
        return self._first_value(inside)

    def is_override(self, node: ExecutionNode) -> bool:
        return node.function_name == self.config.override_function

    def values(self, node: ExecutionNode) -> list[str]:
        """All values set for the configured key by one override node."""
        if node.step is None or not isinstance(node.step.arguments, dict):
            return []
        raw = node.step.arguments.get(self.config.overrides_argument)
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list | tuple):
            return []

        found: list[str] = []
        for entry in raw:
            parsed = parse_override(entry)
            if parsed is None:
                continue
            key, value = parsed
            if key == self.config.key and value:
                found.append(value)
        return found

    def _first_value(self, nodes: Iterable[ExecutionNode]) -> str | None:
        for node in nodes:
            matches = self.values(node)
            if matches:
                return matches[0]
        return None


def _owning_depth(node: ExecutionNode, stage_id: str, stage_starts: set[str]) -> int | None:
    """Blocks between *node* and *stage_id*, or None if another stage is nearer."""
    for depth, enclosing in enumerate(node.enclosing_ids):
        if enclosing == stage_id:
            return depth
        if enclosing in stage_starts:
            return None
    return None
