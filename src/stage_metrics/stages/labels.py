"""Collects the labels of shell steps run inside a stage."""

from __future__ import annotations

from stage_metrics.core.contracts import StageInterval
from stage_metrics.core.graph import ExecutionGraph

SHELL_FUNCTION = "sh"
LABEL_ARGUMENT = "label"


def collect_sh_labels(
    graph: ExecutionGraph,
    interval: StageInterval,
    *,
    function_name: str = SHELL_FUNCTION,
) -> list[str]:
    labels: list[str] = []
    for node in graph.within(interval):
        if node.function_name != function_name or node.step is None:
            continue
        arguments = node.step.arguments
        label = arguments.get(LABEL_ARGUMENT) if isinstance(arguments, dict) else None
        if label is not None:
            labels.append(str(label))
    return labels
