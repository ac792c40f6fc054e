"""Hierarchy of domain exceptions for stage metrics reporting."""

from __future__ import annotations


class StageMetricsError(Exception):
    """Base exception for all stage metrics errors."""


class ConfigurationError(StageMetricsError):
    """Reporting configuration is unusable (e.g. no endpoint URL)."""


class GraphAnalysisError(StageMetricsError):
    """Segmenting, resolving or evaluating the execution graph failed."""


class DeliveryError(StageMetricsError):
    """A single stage payload could not be delivered."""

    def __init__(self, stage: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.status_code = status_code
