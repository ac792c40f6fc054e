"""Pydantic v2 contracts for the execution graph and the reported stage metrics."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN = "unknown"


class StageStatus(StrEnum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ABORTED = "ABORTED"


class StepDescriptor(BaseModel):
    """Typed step attached to a node: function name plus its arguments."""

    model_config = ConfigDict(frozen=True)

    function_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ExecutionNode(BaseModel):
    """One recorded event of a pipeline run.

    ``block_start_id`` is only set on block-terminator nodes and names the
    node that opened the block. ``enclosing_ids`` lists the start ids of the
    blocks enclosing this node, innermost first; hosts that cannot supply
    nesting leave it empty.
    """

    model_config = ConfigDict(frozen=True)

    node_id: str
    display_name: str = ""
    start_time_millis: int | None = None
    error: str | None = None
    step: StepDescriptor | None = None
    block_start_id: str | None = None
    enclosing_ids: tuple[str, ...] = ()

    @property
    def is_block_end(self) -> bool:
        return self.block_start_id is not None

    @property
    def has_error(self) -> bool:
        return bool(self.error)

    @property
    def function_name(self) -> str | None:
        return self.step.function_name if self.step else None


class StageInterval(BaseModel):
    """Node-id interval owned by one stage (open at both ends)."""

    model_config = ConfigDict(frozen=True)

    name: str
    start_node_id: str
    end_node_id: str | None = None

    @property
    def closed(self) -> bool:
        return self.end_node_id is not None


class StageMetric(BaseModel):
    """Externally reported unit: one per stage, one payload per metric."""

    model_config = ConfigDict(frozen=True)

    name: str
    start_time_millis: int
    duration_millis: int = Field(ge=0)
    status: StageStatus
    build_tool: str | None = None
    sh_labels: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "startTimeMillis": self.start_time_millis,
            "durationMillis": self.duration_millis,
            "status": self.status.value,
        }
        if self.sh_labels:
            payload["shLabels"] = list(self.sh_labels)
        return payload


class RunContext(BaseModel):
    """Per-invocation facts shared by every stage of one run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    job_name: str
    job_url: str | None = None
    build_tool: str | None = None
    controller_name: str | None = None

    @field_validator("job_url", "build_tool", "controller_name", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "runId": self.run_id,
            "jobName": self.job_name,
            "jobUrl": self.job_url or UNKNOWN,
            "buildTool": self.build_tool or UNKNOWN,
        }
        if self.controller_name:
            payload["controllerName"] = self.controller_name
        return payload
