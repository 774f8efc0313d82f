"""Telegram Bot API models and client."""

from .api_models import Update, decode_update
from .client import BotClient, TelegramClient

__all__ = [
    "BotClient",
    "TelegramClient",
    "Update",
    "decode_update",
]
