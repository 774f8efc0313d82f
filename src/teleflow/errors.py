from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .context import Context

__all__ = [
    "AlreadyRunningError",
    "ContextResolutionError",
    "HandlerError",
    "RetryAfter",
    "SessionStoreError",
    "TelegramApiError",
    "TelegramTransportError",
    "TeleflowError",
    "WebhookRejected",
]


class TeleflowError(Exception):
    pass


class TelegramTransportError(TeleflowError):
    """Network failure, timeout or 5xx while talking to the Bot API."""

    def __init__(
        self, method: str, message: str, *, status: int | None = None
    ) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method
        self.status = status


class TelegramApiError(TeleflowError):
    """The Bot API answered with ``ok: false``."""

    def __init__(
        self,
        method: str,
        description: str,
        *,
        error_code: int | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{method}: {description}")
        self.method = method
        self.description = description
        self.error_code = error_code
        self.parameters = parameters or {}


class RetryAfter(TelegramApiError):
    def __init__(
        self,
        method: str,
        retry_after: float,
        description: str | None = None,
    ) -> None:
        super().__init__(
            method, description or f"retry after {retry_after}", error_code=429
        )
        self.retry_after = float(retry_after)


class ContextResolutionError(TeleflowError):
    """A context method needs an identity the update does not carry."""

    def __init__(self, method: str, missing: list[str]) -> None:
        fields = ", ".join(missing)
        super().__init__(
            f"cannot call {method!r}: update has no {fields}"
        )
        self.method = method
        self.missing = tuple(missing)


class HandlerError(TeleflowError):
    def __init__(self, ctx: Context, error: BaseException) -> None:
        super().__init__(f"handler failed: {error!r}")
        self.ctx = ctx
        self.error = error


class SessionStoreError(TeleflowError):
    def __init__(
        self,
        operation: str,
        key: str,
        error: BaseException,
        *,
        ctx: Context | None = None,
    ) -> None:
        super().__init__(f"session {operation} failed for {key!r}: {error!r}")
        self.operation = operation
        self.key = key
        self.error = error
        self.ctx = ctx


class WebhookRejected(TeleflowError):
    def __init__(self, status: int, reason: str) -> None:
        super().__init__(reason)
        self.status = status
        self.reason = reason


class AlreadyRunningError(TeleflowError):
    pass
