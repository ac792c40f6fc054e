"""Configuration validation: checks that reporting settings are usable."""

from __future__ import annotations

from dataclasses import dataclass

from stage_metrics.core.config import StageMetricsSettings

URL_SCHEMES = ("http://", "https://")


@dataclass(frozen=True)
class ConfigIssue:
    field: str
    severity: str
    message: str


def check_settings(settings: StageMetricsSettings) -> list[ConfigIssue]:
    """Validate *settings* and return every issue found (errors and warnings)."""
    issues: list[ConfigIssue] = []

    endpoint = (settings.endpoint_url or "").strip()
    if not endpoint:
        issues.append(ConfigIssue("endpoint_url", "error", "Please set an endpoint URL"))
    elif not endpoint.startswith(URL_SCHEMES):
        issues.append(
            ConfigIssue("endpoint_url", "warning", "URL should start with http:// or https://")
        )

    if not settings.username:
        issues.append(ConfigIssue("username", "error", "Please set a username"))
    if not settings.password:
        issues.append(ConfigIssue("password", "error", "Please set a password"))

    if not (settings.controller_name or "").strip():
        issues.append(
            ConfigIssue(
                "controller_name",
                "warning",
                "Controller name is optional but recommended for identifying different controllers",
            )
        )

    if settings.trust_self_signed:
        issues.append(
            ConfigIssue(
                "trust_self_signed",
                "warning",
                "TLS certificate verification is disabled for the metrics endpoint",
            )
        )
    return issues


def has_errors(issues: list[ConfigIssue]) -> bool:
    return any(i.severity == "error" for i in issues)
