"""Telegram update ingestion and dispatch."""

from __future__ import annotations

__version__ = "0.1.0"

from .bot import Bot
from .context import Context
from .dispatcher import DispatchPolicy, Dispatcher
from .errors import (
    AlreadyRunningError,
    ContextResolutionError,
    HandlerError,
    RetryAfter,
    SessionStoreError,
    TelegramApiError,
    TelegramTransportError,
    TeleflowError,
    WebhookRejected,
)
from .events import UpdateKind
from .fetchers import LongPollingFetcher, WebhookFetcher
from .sessions import JsonFileSessionStore, MemorySessionStore, Sessions

__all__ = [
    "AlreadyRunningError",
    "Bot",
    "Context",
    "ContextResolutionError",
    "DispatchPolicy",
    "Dispatcher",
    "HandlerError",
    "JsonFileSessionStore",
    "LongPollingFetcher",
    "MemorySessionStore",
    "RetryAfter",
    "SessionStoreError",
    "Sessions",
    "TelegramApiError",
    "TelegramTransportError",
    "TeleflowError",
    "UpdateKind",
    "WebhookFetcher",
    "WebhookRejected",
    "__version__",
]
