"""Error hierarchy. Every failure names the target it belongs to."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class StarHistoryError(Exception):
    """Base error; ``target`` is the display name of the offending target."""

    def __init__(self, message: str, *, target: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.target = target

    def __str__(self) -> str:
        if self.target:
            return f"{self.target}: {self.message}"
        return self.message


class ConfigurationError(StarHistoryError):
    """Required configuration (e.g. the GitHub token) is missing."""


class TargetNotFound(StarHistoryError):
    """Unknown repository or account."""


class QuotaExhausted(StarHistoryError):
    """Request budget is spent and waiting for the reset is not allowed."""

    def __init__(
        self,
        message: str,
        *,
        target: Optional[str] = None,
        reset_at: Optional[datetime] = None,
    ) -> None:
        super().__init__(message, target=target)
        self.reset_at = reset_at


class SourceUnavailable(StarHistoryError):
    """Transport or server failure talking to the event source."""

    def __init__(
        self,
        message: str,
        *,
        target: Optional[str] = None,
        status_code: Optional[int] = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message, target=target)
        self.status_code = status_code
        self.retryable = retryable


class InconsistentPage(StarHistoryError):
    """A fetched page does not contain the index it must contain."""

    def __init__(self, message: str, *, target: Optional[str] = None, page: int = 0, index: int = 0) -> None:
        super().__init__(message, target=target)
        self.page = page
        self.index = index


class DatasetAssemblyError(StarHistoryError):
    """A target failed, so no dataset is produced."""

    def __init__(self, target: str, cause: StarHistoryError) -> None:
        message = cause.message
        if cause.target and cause.target != target:
            message = f"{cause.target}: {message}"
        super().__init__(message, target=target)
        self.cause = cause
