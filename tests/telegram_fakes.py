from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import anyio

from teleflow.telegram.api_models import Update, User, WebhookInfo
from teleflow.telegram.client import InputFile

from tests.factories import ME


@dataclass
class Call:
    method: str
    params: dict[str, Any] = field(default_factory=dict)


class FakeBot:
    """In-memory stand-in for :class:`teleflow.telegram.client.TelegramClient`.

    ``batches`` scripts ``get_updates``: each entry is a list of updates or an
    exception to raise. Once the script runs out, ``get_updates`` calls
    ``on_exhausted`` (if any) and returns an empty list.
    """

    def __init__(
        self,
        batches: list[list[Update] | BaseException] | None = None,
        *,
        me: User = ME,
        on_exhausted: Callable[[], None] | None = None,
    ) -> None:
        self.batches = list(batches or [])
        self.me = me
        self.on_exhausted = on_exhausted
        self.calls: list[Call] = []
        self.offsets: list[int | None] = []
        self.results: dict[str, Any] = {}
        self.closed = False

    def _record(self, method: str, **params: Any) -> Any:
        self.calls.append(Call(method, params))
        return self.results.get(method, True)

    def called(self, method: str) -> list[Call]:
        return [call for call in self.calls if call.method == method]

    async def close(self) -> None:
        self.closed = True

    async def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        files: dict[str, tuple[str, bytes]] | None = None,
    ) -> Any:
        return self._record(method, **(params or {}), **({"files": files} if files else {}))

    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 30,
        limit: int | None = None,
        allowed_updates: list[str] | None = None,
    ) -> list[Update]:
        self.offsets.append(offset)
        self.calls.append(
            Call(
                "getUpdates",
                {
                    "offset": offset,
                    "timeout": timeout_s,
                    "limit": limit,
                    "allowed_updates": allowed_updates,
                },
            )
        )
        await anyio.sleep(0)
        if not self.batches:
            if self.on_exhausted is not None:
                self.on_exhausted()
            return []
        item = self.batches.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def get_me(self) -> User:
        self._record("getMe")
        return self.me

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
        self._record(
            "sendMessage",
            chat_id=chat_id,
            text=text,
            message_thread_id=message_thread_id,
            reply_to_message_id=reply_to_message_id,
            parse_mode=parse_mode,
        )
        return {"message_id": 1000, "chat": {"id": chat_id, "type": "private"}}

    async def send_media(
        self,
        method: str,
        field: str,
        chat_id: int,
        media: InputFile,
        params: dict[str, Any] | None = None,
    ) -> dict:
        self._record(method, chat_id=chat_id, **{field: media}, **(params or {}))
        return {"message_id": 1001, "chat": {"id": chat_id, "type": "private"}}

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
        return self._record(
            "editMessageText", chat_id=chat_id, message_id=message_id, text=text
        )

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        return self._record("deleteMessage", chat_id=chat_id, message_id=message_id)

    async def set_message_reaction(
        self,
        chat_id: int,
        message_id: int,
        reaction: list[dict[str, Any]],
        *,
        is_big: bool | None = None,
    ) -> bool:
        return self._record(
            "setMessageReaction",
            chat_id=chat_id,
            message_id=message_id,
            reaction=reaction,
            is_big=is_big,
        )

    async def answer_callback_query(
        self,
        callback_query_id: str,
        *,
        text: str | None = None,
        show_alert: bool | None = None,
        url: str | None = None,
        cache_time: int | None = None,
    ) -> bool:
        return self._record(
            "answerCallbackQuery",
            callback_query_id=callback_query_id,
            text=text,
            show_alert=show_alert,
        )

    async def set_webhook(
        self,
        url: str,
        *,
        secret_token: str | None = None,
        allowed_updates: list[str] | None = None,
        drop_pending_updates: bool | None = None,
    ) -> bool:
        return self._record(
            "setWebhook",
            url=url,
            secret_token=secret_token,
            allowed_updates=allowed_updates,
            drop_pending_updates=drop_pending_updates,
        )

    async def delete_webhook(self, *, drop_pending_updates: bool | None = None) -> bool:
        return self._record("deleteWebhook", drop_pending_updates=drop_pending_updates)

    async def get_webhook_info(self) -> WebhookInfo:
        self._record("getWebhookInfo")
        return WebhookInfo()
