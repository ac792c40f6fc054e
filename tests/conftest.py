"""Shared fixtures for the stage metrics test suite."""

from __future__ import annotations

import socket
from typing import Any

import httpx
import pytest

from stage_metrics.core.config import InMemoryConfigurationStore, StageMetricsSettings
from stage_metrics.core.contracts import ExecutionNode, StepDescriptor


@pytest.fixture(autouse=True)
def _block_network_for_offline(request, monkeypatch):
    """Block outbound connections in tests marked as offline.

    httpx.MockTransport never opens a socket, so offline tests can still
    exercise the reporter end to end.
    """
    if "offline" in [m.name for m in request.node.iter_markers()]:

        def _blocked(*_args, **_kwargs):
            raise RuntimeError("Offline test attempted to open a network connection")

        monkeypatch.setattr(socket, "create_connection", _blocked)


def stage_start(node_id: int, name: str, at: int, **kwargs: Any) -> ExecutionNode:
    return ExecutionNode(
        node_id=str(node_id),
        display_name=name,
        start_time_millis=at,
        step=StepDescriptor(function_name="stage", arguments={"name": name}),
        **kwargs,
    )


def block_end(node_id: int, start_id: int, at: int, **kwargs: Any) -> ExecutionNode:
    return ExecutionNode(
        node_id=str(node_id),
        display_name="}",
        start_time_millis=at,
        block_start_id=str(start_id),
        **kwargs,
    )


def override(node_id: int, *entries: str, enclosing: tuple[int, ...] = ()) -> ExecutionNode:
    return ExecutionNode(
        node_id=str(node_id),
        display_name="withEnv",
        step=StepDescriptor(function_name="withEnv", arguments={"overrides": list(entries)}),
        enclosing_ids=tuple(str(i) for i in enclosing),
    )


@pytest.fixture()
def e2e_nodes() -> list[ExecutionNode]:
    """Build (with a maven override) followed by Test, both closed cleanly."""
    return [
        stage_start(3, "Build", 1_000),
        override(4, "BUILD_TOOL=maven", enclosing=(3,)),
        block_end(5, 3, 4_500),
        stage_start(6, "Test", 5_000),
        block_end(8, 6, 7_250),
    ]


@pytest.fixture()
def settings() -> StageMetricsSettings:
    return StageMetricsSettings(
        endpoint_url="https://metrics.example.test",
        username="svc-ci",
        password="s3cret",
        controller_name="ci-east",
        _env_file=None,
    )


@pytest.fixture()
def store(settings) -> InMemoryConfigurationStore:
    return InMemoryConfigurationStore(settings)


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replies per call."""

    def __init__(self, statuses: dict[int, int] | None = None, fail_on: set[int] | None = None):
        self.requests: list[httpx.Request] = []
        self.statuses = statuses or {}
        self.fail_on = fail_on or set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        call = len(self.requests)
        if call in self.fail_on:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(self.statuses.get(call, 201), json={"ok": True})


@pytest.fixture()
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture()
def transport(handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)
