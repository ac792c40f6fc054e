"""Metrics reporter: one HTTP delivery per stage, failures isolated per stage."""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from stage_metrics.core.contracts import UNKNOWN, RunContext, StageMetric
from stage_metrics.core.exceptions import ConfigurationError, DeliveryError
from stage_metrics.core.interfaces import ConfigurationProvider
from stage_metrics.core.metrics import DeliveryRecord, ReportSummary

logger = structlog.get_logger()

REPORT_PATH = "/rest/v1.0/objects"
REPORT_REQUEST = "sendReportingData"
REPORT_OBJECT_TYPE = "ci_metrics"
SUCCESS_CODES = frozenset({200, 201})

# The payload travels in the query string; the body is always an empty object.
_REQUEST_BODY = b"{}"
_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


def build_payload(context: RunContext, metric: StageMetric) -> dict[str, Any]:
    """Run fields, then stage fields (stage wins on collision), then stageBuildTool."""
    payload = context.to_payload()
    payload.update(metric.to_payload())
    build_tool = metric.build_tool or context.build_tool
    if build_tool and build_tool != UNKNOWN:
        payload["stageBuildTool"] = build_tool
    return payload


def serialize_payload(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def build_report_url(endpoint_url: str, payload: dict[str, Any]) -> str:
    query = urlencode(
        {
            "request": REPORT_REQUEST,
            "payload": serialize_payload(payload),
            "reportObjectTypeName": REPORT_OBJECT_TYPE,
        }
    )
    return f"{endpoint_url.rstrip('/')}{REPORT_PATH}?{query}"


def format_error_entry(message: str, *, now: datetime | None = None) -> str:
    stamp = (now or datetime.now(UTC)).isoformat(timespec="seconds")
    return f"{stamp} {message}"


class MetricsReporter:
    """Assembles and delivers per-stage payloads to the metrics endpoint."""

    def __init__(
        self,
        config: ConfigurationProvider,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.transport = transport
        self._log = logger.bind(component="reporter")

    def begin_run(self) -> None:
        """Drop the error state left by the previous run."""
        self.config.clear_last_error()

    def record_error(self, message: str) -> None:
        self.config.append_to_last_error(format_error_entry(message))

    def ensure_configured(self) -> str:
        endpoint = (self.config.endpoint_url or "").strip()
        if not endpoint:
            raise ConfigurationError("No endpoint URL configured")
        return endpoint

    def report(self, context: RunContext, metrics: Sequence[StageMetric]) -> ReportSummary:
        """Deliver one payload per stage; a failed stage never stops the others."""
        endpoint = self.ensure_configured()
        summary = ReportSummary()

        with self._client() as client:
            for metric in metrics:
                payload = build_payload(context, metric)
                try:
                    status_code = self.send(client, endpoint, metric.name, payload)
                except DeliveryError as exc:
                    message = f"Failed to send metrics for stage '{exc.stage}': {exc}"
                    self.record_error(message)
                    summary.errors.append(message)
                    summary.add(
                        DeliveryRecord(
                            stage=metric.name,
                            success=False,
                            status_code=exc.status_code,
                            error=str(exc),
                        )
                    )
                    self._log.error(
                        "delivery.failed",
                        run_id=context.run_id,
                        stage=metric.name,
                        status=exc.status_code,
                        error=str(exc),
                    )
                    continue

                summary.add(DeliveryRecord(stage=metric.name, success=True, status_code=status_code))
                self._log.info(
                    "delivery.sent", run_id=context.run_id, stage=metric.name, status=status_code
                )

        self._log.info(
            "report.completed",
            run_id=context.run_id,
            attempted=summary.attempted,
            sent=summary.sent,
            failed=summary.failed,
        )
        return summary

    def send(
        self, client: httpx.Client, endpoint: str, stage: str, payload: dict[str, Any]
    ) -> int:
        """POST a single payload; returns the status code or raises DeliveryError."""
        url = build_report_url(endpoint, payload)
        try:
            resp = client.post(url, content=_REQUEST_BODY, headers=_HEADERS)
        except httpx.HTTPError as exc:
            raise DeliveryError(stage, f"Transport failure: {exc}") from exc
        except Exception as exc:
            raise DeliveryError(stage, f"Unexpected delivery failure: {exc}") from exc

        if resp.status_code not in SUCCESS_CODES:
            raise DeliveryError(
                stage,
                f"HTTP response code: {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp.status_code

    def _client(self) -> httpx.Client:
        auth = httpx.BasicAuth(self.config.username or "", self.config.password or "")
        if self.config.trust_self_signed:
            self._log.warning("delivery.tls_verification_disabled")
        return httpx.Client(
            auth=auth,
            verify=not self.config.trust_self_signed,
            timeout=self.config.request_timeout,
            transport=self.transport,
        )
