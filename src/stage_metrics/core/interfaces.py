"""Abstract seams the analyzer and reporter depend on."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ConfigurationProvider(ABC):
    """Reporting configuration plus the rolling error log.

    Persistence is owned by the implementation. ``clear_last_error`` and
    ``append_to_last_error`` may be called from several runs completing at
    the same time and must be serialised by the implementation.
    """

    @property
    @abstractmethod
    def endpoint_url(self) -> str | None: ...

    @property
    @abstractmethod
    def username(self) -> str | None: ...

    @property
    @abstractmethod
    def password(self) -> str | None: ...

    @property
    @abstractmethod
    def trust_self_signed(self) -> bool: ...

    @property
    @abstractmethod
    def controller_name(self) -> str | None: ...

    @property
    @abstractmethod
    def request_timeout(self) -> float | None: ...

    @property
    @abstractmethod
    def last_error(self) -> str: ...

    @abstractmethod
    def clear_last_error(self) -> None: ...

    @abstractmethod
    def append_to_last_error(self, entry: str) -> None: ...
