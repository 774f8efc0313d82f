from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Protocol

import httpx
import msgspec

from ..errors import RetryAfter, TelegramApiError, TelegramTransportError
from ..logging import get_logger
from .api_models import Update, User, WebhookInfo, decode_updates

logger = get_logger(__name__)

__all__ = ["BotClient", "InputFile", "TelegramClient"]

# A file id, an http(s) URL, raw bytes or a local path to upload.
InputFile = str | bytes | Path


class BotClient(Protocol):
    async def close(self) -> None: ...

    async def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        files: dict[str, tuple[str, bytes]] | None = None,
    ) -> Any: ...

    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 30,
        limit: int | None = None,
        allowed_updates: list[str] | None = None,
    ) -> list[Update]: ...

    async def get_me(self) -> User: ...

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        message_thread_id: int | None = None,
        reply_to_message_id: int | None = None,
        parse_mode: str | None = None,
        entities: list[dict] | None = None,
        disable_notification: bool | None = None,
        reply_markup: dict | None = None,
    ) -> dict: ...

    async def send_media(
        self,
        method: str,
        field: str,
        chat_id: int,
        media: InputFile,
        params: dict[str, Any] | None = None,
    ) -> dict: ...

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        *,
        parse_mode: str | None = None,
        entities: list[dict] | None = None,
        reply_markup: dict | None = None,
    ) -> dict | bool: ...

    async def delete_message(self, chat_id: int, message_id: int) -> bool: ...

    async def set_message_reaction(
        self,
        chat_id: int,
        message_id: int,
        reaction: list[dict[str, Any]],
        *,
        is_big: bool | None = None,
    ) -> bool: ...

    async def answer_callback_query(
        self,
        callback_query_id: str,
        *,
        text: str | None = None,
        show_alert: bool | None = None,
        url: str | None = None,
        cache_time: int | None = None,
    ) -> bool: ...

    async def set_webhook(
        self,
        url: str,
        *,
        secret_token: str | None = None,
        allowed_updates: list[str] | None = None,
        drop_pending_updates: bool | None = None,
    ) -> bool: ...

    async def delete_webhook(self, *, drop_pending_updates: bool | None = None) -> bool: ...

    async def get_webhook_info(self) -> WebhookInfo: ...


def compact_params(**params: Any) -> dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


_RETRY_AFTER_RE = re.compile(r"retry after (\d+)", re.IGNORECASE)


def _retry_after_from_payload(payload: dict[str, Any]) -> float | None:
    params = payload.get("parameters")
    if isinstance(params, dict):
        retry_after = params.get("retry_after")
        if isinstance(retry_after, (int, float)):
            return float(retry_after)
    description = payload.get("description")
    if isinstance(description, str):
        match = _RETRY_AFTER_RE.search(description)
        if match:
            return float(match.group(1))
    return None


def _form_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return msgspec.json.encode(value).decode()


class TelegramClient:
    def __init__(
        self,
        token: str,
        timeout_s: float = 120,
        client: httpx.AsyncClient | None = None,
        base_url: str = "https://api.telegram.org",
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"{base_url.rstrip('/')}/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(
        self,
        method: str,
        params: dict[str, Any],
        *,
        files: dict[str, tuple[str, bytes]] | None = None,
        timeout_s: float | None = None,
    ) -> Any:
        logger.debug("telegram.request", method=method, payload=params)
        url = f"{self._base}/{method}"
        request_kwargs: dict[str, Any] = {}
        if timeout_s is not None:
            request_kwargs["timeout"] = timeout_s
        try:
            if files:
                resp = await self._client.post(
                    url,
                    data={key: _form_value(value) for key, value in params.items()},
                    files=files,
                    **request_kwargs,
                )
            else:
                resp = await self._client.post(url, json=params, **request_kwargs)
        except httpx.HTTPError as e:
            logger.warning(
                "telegram.network_error",
                method=method,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            raise TelegramTransportError(method, str(e) or e.__class__.__name__) from e

        if resp.status_code >= 500:
            logger.warning(
                "telegram.http_error",
                method=method,
                status=resp.status_code,
                body=resp.text,
            )
            raise TelegramTransportError(
                method, f"HTTP {resp.status_code}", status=resp.status_code
            )

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                error=str(e),
                body=resp.text,
            )
            raise TelegramTransportError(
                method, "response is not JSON", status=resp.status_code
            ) from e

        if not isinstance(payload, dict):
            logger.error("telegram.invalid_payload", method=method, payload=payload)
            raise TelegramTransportError(
                method, "response is not an object", status=resp.status_code
            )

        if not payload.get("ok"):
            description = str(payload.get("description") or f"HTTP {resp.status_code}")
            retry_after = _retry_after_from_payload(payload)
            if resp.status_code == 429 or retry_after is not None:
                retry_after = retry_after if retry_after is not None else 1.0
                logger.info(
                    "telegram.rate_limited", method=method, retry_after=retry_after
                )
                raise RetryAfter(method, retry_after, description)
            error_code = payload.get("error_code")
            logger.error(
                "telegram.api_error",
                method=method,
                error_code=error_code,
                description=description,
            )
            raise TelegramApiError(
                method,
                description,
                error_code=error_code if isinstance(error_code, int) else resp.status_code,
                parameters=payload.get("parameters")
                if isinstance(payload.get("parameters"), dict)
                else None,
            )

        logger.debug("telegram.response", method=method, payload=payload)
        return payload.get("result")

    async def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        files: dict[str, tuple[str, bytes]] | None = None,
    ) -> Any:
        return await self._post(method, params or {}, files=files)

    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 30,
        limit: int | None = None,
        allowed_updates: list[str] | None = None,
    ) -> list[Update]:
        params = compact_params(
            offset=offset,
            timeout=timeout_s,
            limit=limit,
            allowed_updates=allowed_updates,
        )
        # The HTTP timeout has to outlive the long poll itself.
        result = await self._post("getUpdates", params, timeout_s=timeout_s + 10)
        if not isinstance(result, list):
            raise TelegramTransportError("getUpdates", "result is not a list")
        # Invalid entries come back as MalformedUpdate; only id-less ones are lost.
        updates = decode_updates(result)
        if len(updates) < len(result):
            logger.warning("telegram.update.dropped", count=len(result) - len(updates))
        return updates

    async def get_me(self) -> User:
        result = await self._post("getMe", {})
        return msgspec.convert(result, type=User)

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        message_thread_id: int | None = None,
        reply_to_message_id: int | None = None,
        parse_mode: str | None = None,
        entities: list[dict] | None = None,
        disable_notification: bool | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        params = compact_params(
            chat_id=chat_id,
            text=text,
            message_thread_id=message_thread_id,
            parse_mode=parse_mode,
            entities=entities,
            disable_notification=disable_notification,
            reply_markup=reply_markup,
        )
        if reply_to_message_id is not None:
            params["reply_parameters"] = {"message_id": reply_to_message_id}
        return await self._post("sendMessage", params)

    async def send_media(
        self,
        method: str,
        field: str,
        chat_id: int,
        media: InputFile,
        params: dict[str, Any] | None = None,
    ) -> dict:
        payload: dict[str, Any] = {"chat_id": chat_id, **(params or {})}
        if isinstance(media, str):
            payload[field] = media
            return await self._post(method, payload)
        if isinstance(media, Path):
            content = media.read_bytes()
            filename = media.name
        else:
            content = media
            filename = field
        return await self._post(method, payload, files={field: (filename, content)})

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        *,
        parse_mode: str | None = None,
        entities: list[dict] | None = None,
        reply_markup: dict | None = None,
    ) -> dict | bool:
        params = compact_params(
            chat_id=chat_id,
            message_id=message_id,
            text=text,
            parse_mode=parse_mode,
            entities=entities,
            reply_markup=reply_markup,
        )
        return await self._post("editMessageText", params)

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        res = await self._post(
            "deleteMessage",
            {
                "chat_id": chat_id,
                "message_id": message_id,
            },
        )
        return bool(res)

    async def set_message_reaction(
        self,
        chat_id: int,
        message_id: int,
        reaction: list[dict[str, Any]],
        *,
        is_big: bool | None = None,
    ) -> bool:
        params = compact_params(
            chat_id=chat_id,
            message_id=message_id,
            reaction=reaction,
            is_big=is_big,
        )
        return bool(await self._post("setMessageReaction", params))

    async def answer_callback_query(
        self,
        callback_query_id: str,
        *,
        text: str | None = None,
        show_alert: bool | None = None,
        url: str | None = None,
        cache_time: int | None = None,
    ) -> bool:
        params = compact_params(
            callback_query_id=callback_query_id,
            text=text,
            show_alert=show_alert,
            url=url,
            cache_time=cache_time,
        )
        return bool(await self._post("answerCallbackQuery", params))

    async def set_webhook(
        self,
        url: str,
        *,
        secret_token: str | None = None,
        allowed_updates: list[str] | None = None,
        drop_pending_updates: bool | None = None,
    ) -> bool:
        params = compact_params(
            url=url,
            secret_token=secret_token,
            allowed_updates=allowed_updates,
            drop_pending_updates=drop_pending_updates,
        )
        return bool(await self._post("setWebhook", params))

    async def delete_webhook(self, *, drop_pending_updates: bool | None = None) -> bool:
        params = compact_params(drop_pending_updates=drop_pending_updates)
        return bool(await self._post("deleteWebhook", params))

    async def get_webhook_info(self) -> WebhookInfo:
        result = await self._post("getWebhookInfo", {})
        return msgspec.convert(result, type=WebhookInfo)
