from .base import DispatchFn, Fetcher
from .long_polling import LongPollingFetcher
from .webhook import SECRET_TOKEN_HEADER, WebhookFetcher

__all__ = [
    "DispatchFn",
    "Fetcher",
    "LongPollingFetcher",
    "SECRET_TOKEN_HEADER",
    "WebhookFetcher",
]
