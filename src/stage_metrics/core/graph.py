"""Owned, read-only snapshot of a run's execution graph."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from pydantic import ValidationError

from stage_metrics.core.contracts import ExecutionNode, StageInterval, StepDescriptor
from stage_metrics.core.exceptions import GraphAnalysisError

# Record keys accepted by ``from_records`` in addition to the field names.
_RECORD_ALIASES: dict[str, str] = {
    "id": "node_id",
    "nodeId": "node_id",
    "displayName": "display_name",
    "startTimeMillis": "start_time_millis",
    "blockStartId": "block_start_id",
    "enclosingIds": "enclosing_ids",
}


def _is_integer(node_id: str) -> bool:
    try:
        int(node_id)
    except ValueError:
        return False
    return True


class ExecutionGraph:
    """Chronologically ordered node sequence of one completed run.

    Ids are compared as integers when every id in the graph parses as one,
    otherwise every id is compared as a string.
    """

    def __init__(self, nodes: Iterable[ExecutionNode]) -> None:
        collected = list(nodes)
        self.numeric_ids = all(_is_integer(n.node_id) for n in collected)

        # "3" and "03" share an order key; both would break the total order
        seen: dict[int | str, str] = {}
        for node in collected:
            key = self.order_key(node.node_id)
            if key in seen:
                raise GraphAnalysisError(
                    f"Duplicate node id '{node.node_id}' (collides with '{seen[key]}')"
                )
            seen[key] = node.node_id

        self._nodes = tuple(sorted(collected, key=lambda n: self.order_key(n.node_id)))
        self._by_id = {n.node_id: n for n in self._nodes}

    def __iter__(self) -> Iterator[ExecutionNode]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> tuple[ExecutionNode, ...]:
        return self._nodes

    def get(self, node_id: str) -> ExecutionNode | None:
        return self._by_id.get(node_id)

    def order_key(self, node_id: str) -> int | str:
        if self.numeric_ids:
            return int(node_id)
        return node_id

    def is_before(self, left: str, right: str) -> bool:
        return self.order_key(left) < self.order_key(right)  # type: ignore[operator]

    def contains(self, interval: StageInterval, node_id: str) -> bool:
        """True when *node_id* lies strictly inside *interval*."""
        if not self.is_before(interval.start_node_id, node_id):
            return False
        if interval.end_node_id is None:
            return True
        return self.is_before(node_id, interval.end_node_id)

    def within(self, interval: StageInterval) -> list[ExecutionNode]:
        return [n for n in self._nodes if self.contains(interval, n.node_id)]

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> ExecutionGraph:
        """Copy plain mappings (snake_case or camelCase keys) into a snapshot."""
        nodes: list[ExecutionNode] = []
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise GraphAnalysisError(f"Node record #{index} is not a mapping")
            try:
                nodes.append(ExecutionNode(**_normalise_record(record)))
            except ValidationError as exc:
                raise GraphAnalysisError(f"Invalid node record #{index}: {exc}") from exc
        return cls(nodes)

    @classmethod
    def from_json(cls, text: str) -> ExecutionGraph:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise GraphAnalysisError(f"Graph snapshot is not valid JSON: {exc}") from exc
        if isinstance(data, Mapping):
            data = data.get("nodes", [])
        if not isinstance(data, list):
            raise GraphAnalysisError("Graph snapshot must be a list of nodes")
        return cls.from_records(data)


def _normalise_record(record: Mapping[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in record.items():
        if value is not None:
            fields[_RECORD_ALIASES.get(key, key)] = value

    for key in ("node_id", "block_start_id"):
        if fields.get(key) is not None:
            fields[key] = str(fields[key])
    if fields.get("enclosing_ids") is not None:
        fields["enclosing_ids"] = tuple(str(i) for i in fields["enclosing_ids"])

    # Step attributes may be nested under "step" or given flat.
    flat_name = fields.pop("functionName", None)
    function_name = fields.pop("function_name", None) or flat_name
    arguments = fields.pop("arguments", None)
    step = fields.get("step")
    if isinstance(step, Mapping):
        function_name = step.get("functionName") or step.get("function_name") or function_name
        arguments = step.get("arguments", arguments)
        fields["step"] = None
    if function_name:
        fields["step"] = StepDescriptor(
            function_name=str(function_name),
            arguments=dict(arguments) if isinstance(arguments, Mapping) else {},
        )
    return fields
