"""Global settings via pydantic-settings, and the default configuration store."""

from __future__ import annotations

import threading

from pydantic_settings import BaseSettings, SettingsConfigDict

from stage_metrics.core.interfaces import ConfigurationProvider


class StageMetricsSettings(BaseSettings):
    """Reporting configuration loaded from env vars / .env."""

    model_config = SettingsConfigDict(env_prefix="STAGE_METRICS_", env_file=".env", extra="ignore")

    endpoint_url: str | None = None
    username: str | None = None
    password: str | None = None
    trust_self_signed: bool = False
    controller_name: str | None = None
    request_timeout: float | None = None
    log_level: str = "INFO"
    log_json: bool = False


class InMemoryConfigurationStore(ConfigurationProvider):
    """Settings-backed provider keeping the error log in process memory."""

    def __init__(self, settings: StageMetricsSettings | None = None) -> None:
        self.settings = settings if settings is not None else StageMetricsSettings()
        self._last_error = ""
        self._lock = threading.Lock()

    @property
    def endpoint_url(self) -> str | None:
        return self.settings.endpoint_url

    @property
    def username(self) -> str | None:
        return self.settings.username

    @property
    def password(self) -> str | None:
        return self.settings.password

    @property
    def trust_self_signed(self) -> bool:
        return self.settings.trust_self_signed

    @property
    def controller_name(self) -> str | None:
        return self.settings.controller_name

    @property
    def request_timeout(self) -> float | None:
        return self.settings.request_timeout

    @property
    def last_error(self) -> str:
        with self._lock:
            return self._last_error

    def clear_last_error(self) -> None:
        with self._lock:
            self._last_error = ""

    def append_to_last_error(self, entry: str) -> None:
        with self._lock:
            self._last_error += entry + "\n"
