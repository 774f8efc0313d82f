from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "PollingSettings",
    "SessionSettings",
    "TeleflowSettings",
    "WebhookSettings",
]


class PollingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeout_s: int = Field(default=30, ge=0)
    limit: int = Field(default=100, ge=1, le=100)
    allowed_updates: list[str] | None = None
    backoff_initial_s: float = Field(default=1.0, gt=0)
    backoff_max_s: float = Field(default=60.0, gt=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    concurrent: bool = False
    drop_pending_updates: bool = False
    advance: Literal["before", "after"] = "before"


class WebhookSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    path: str = "/webhook"
    url: str | None = None
    secret_token: str | None = None
    allowed_updates: list[str] | None = None
    drop_pending_updates: bool = False
    delete_on_stop: bool = False

    @field_validator("path")
    @classmethod
    def _path_starts_with_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith("/"):
            value = f"/{value}"
        return value

    @field_validator("secret_token")
    @classmethod
    def _secret_token_charset(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        # Telegram only sends back 1-256 chars of A-Z, a-z, 0-9, _ and -.
        if len(value) > 256 or not all(ch.isalnum() or ch in "_-" for ch in value):
            raise ValueError(
                "secret_token must be 1-256 characters of A-Z, a-z, 0-9, _ or -"
            )
        return value


class SessionSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    path: str | None = None


class TeleflowSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bot_token: str
    mode: Literal["polling", "webhook"] = "polling"
    polling: PollingSettings = Field(default_factory=PollingSettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)
    debug: bool = False

    @field_validator("bot_token")
    @classmethod
    def _token_not_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("bot_token must be a non-empty string")
        return value
