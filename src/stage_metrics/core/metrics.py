"""Bookkeeping for the delivery of one run's stage payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DeliveryRecord:
    """Outcome of delivering a single stage payload."""

    stage: str
    success: bool
    status_code: int | None = None
    error: str | None = None


@dataclass
class ReportSummary:
    """Aggregated delivery outcome for a full run."""

    deliveries: list[DeliveryRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add(self, record: DeliveryRecord) -> None:
        self.deliveries.append(record)

    @property
    def attempted(self) -> int:
        return len(self.deliveries)

    @property
    def sent(self) -> int:
        return sum(1 for d in self.deliveries if d.success)

    @property
    def failed(self) -> int:
        return self.attempted - self.sent

    @property
    def all_success(self) -> bool:
        return not self.errors and all(d.success for d in self.deliveries)

    def summary(self) -> dict[str, Any]:
        return {
            "attempted": self.attempted,
            "sent": self.sent,
            "failed": self.failed,
            "all_success": self.all_success,
            "errors": list(self.errors),
            "deliveries": [
                {
                    "stage": d.stage,
                    "success": d.success,
                    "status_code": d.status_code,
                    "error": d.error,
                }
                for d in self.deliveries
            ],
        }
