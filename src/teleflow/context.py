from __future__ import annotations

import re
from collections.abc import Sequence
from functools import cached_property
from typing import Any, Generic, TypeVar

import msgspec

from .errors import ContextResolutionError
from .events import UpdateKind, update_kind
from .telegram.api_models import (
    CallbackQuery,
    Chat,
    ChatBoostRemoved,
    ChatBoostUpdated,
    ChatJoinRequest,
    ChatMember,
    ChatMemberUpdated,
    ChosenInlineResult,
    ForumTopic,
    InlineQuery,
    Message,
    MessageReactionCountUpdated,
    MessageReactionUpdated,
    Poll,
    PollAnswer,
    PreCheckoutQuery,
    ShippingQuery,
    Update,
    User,
)
from .telegram.client import BotClient, InputFile, compact_params

__all__ = ["Context", "first_present", "parse_command"]

S = TypeVar("S")


def first_present(candidates: Sequence[Any]) -> Any | None:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def parse_command(
    text: str | None, *, bot_username: str | None = None
) -> tuple[str, str] | None:
    """Split ``/name@bot args`` into ``(name, args_text)``.

    A ``@botname`` suffix only matches when it names this bot; commands
    addressed to another bot return None.
    """
    if not text or not text.startswith("/"):
        return None
    # Any whitespace ends the command token, newlines included.
    token, *rest = text.split(maxsplit=1)
    name = token[1:]
    if "@" in name:
        name, _, target = name.partition("@")
        if bot_username is None or target.lower() != bot_username.lower():
            return None
    if not name:
        return None
    return name, rest[0].strip() if rest else ""


class Context(Generic[S]):
    """Per-update facade handed to filters and handlers.

    Derived fields (``msg``, ``chat``, ``sender``, ...) are resolved once,
    on first access, by walking a fixed precedence list over the update's
    variants. Outbound helpers are scoped to the resolved chat and message
    and raise :class:`ContextResolutionError` before touching the network
    when the identity they need is missing.
    """

    def __init__(
        self,
        update: Update,
        api: BotClient,
        *,
        me: User | None = None,
    ) -> None:
        self._update = update
        self.api = api
        self.me = me
        self._session: S | None = None
        self._session_key: str | None = None
        self._sessions_enabled = False
        self._matches: tuple[re.Match[str], ...] | None = None

    def __repr__(self) -> str:
        return (
            f"Context(update_id={self.update_id}, kind={self.kind.value}, "
            f"chat_id={self.chat_id})"
        )

    @property
    def update(self) -> Update:
        return self._update

    @property
    def update_id(self) -> int:
        return self._update.update_id

    @cached_property
    def kind(self) -> UpdateKind:
        return update_kind(self._update)

    # Variants

    @property
    def message(self) -> Message | None:
        return self._update.message

    @property
    def edited_message(self) -> Message | None:
        return self._update.edited_message

    @property
    def channel_post(self) -> Message | None:
        return self._update.channel_post

    @property
    def edited_channel_post(self) -> Message | None:
        return self._update.edited_channel_post

    @property
    def callback_query(self) -> CallbackQuery | None:
        return self._update.callback_query

    @property
    def inline_query(self) -> InlineQuery | None:
        return self._update.inline_query

    @property
    def chosen_inline_result(self) -> ChosenInlineResult | None:
        return self._update.chosen_inline_result

    @property
    def shipping_query(self) -> ShippingQuery | None:
        return self._update.shipping_query

    @property
    def pre_checkout_query(self) -> PreCheckoutQuery | None:
        return self._update.pre_checkout_query

    @property
    def poll(self) -> Poll | None:
        return self._update.poll

    @property
    def poll_answer(self) -> PollAnswer | None:
        return self._update.poll_answer

    @property
    def my_chat_member(self) -> ChatMemberUpdated | None:
        return self._update.my_chat_member

    @property
    def chat_member(self) -> ChatMemberUpdated | None:
        return self._update.chat_member

    @property
    def chat_join_request(self) -> ChatJoinRequest | None:
        return self._update.chat_join_request

    @property
    def message_reaction(self) -> MessageReactionUpdated | None:
        return self._update.message_reaction

    @property
    def message_reaction_count(self) -> MessageReactionCountUpdated | None:
        return self._update.message_reaction_count

    @property
    def chat_boost(self) -> ChatBoostUpdated | None:
        return self._update.chat_boost

    @property
    def removed_chat_boost(self) -> ChatBoostRemoved | None:
        return self._update.removed_chat_boost

    # Derived accessors

    @cached_property
    def msg(self) -> Message | None:
        """The message, edited message, channel post or edited channel post."""
        update = self._update
        return first_present(
            (
                update.message,
                update.edited_message,
                update.channel_post,
                update.edited_channel_post,
            )
        )

    @cached_property
    def chat(self) -> Chat | None:
        update = self._update
        source = first_present(
            (
                update.chat_join_request,
                update.removed_chat_boost,
                update.chat_boost,
                update.chat_member,
                update.my_chat_member,
                update.message_reaction,
                update.message_reaction_count,
                self.msg,
            )
        )
        return source.chat if source is not None else None

    @cached_property
    def sender(self) -> User | None:
        update = self._update
        source = first_present(
            (
                update.callback_query,
                update.inline_query,
                update.shipping_query,
                update.pre_checkout_query,
                update.chosen_inline_result,
                self.msg,
                update.my_chat_member,
                update.chat_member,
                update.chat_join_request,
            )
        )
        return source.from_ if source is not None else None

    @property
    def from_(self) -> User | None:
        return self.sender

    @property
    def chat_id(self) -> int | None:
        chat = self.chat
        return chat.id if chat is not None else None

    @cached_property
    def message_id(self) -> int | None:
        update = self._update
        source = first_present(
            (self.msg, update.message_reaction, update.message_reaction_count)
        )
        return source.message_id if source is not None else None

    def thread_id(self, override: int | None = None) -> int | None:
        if override is not None:
            return override
        msg = self.msg
        if msg is not None and msg.is_topic_message:
            return msg.message_thread_id
        return None

    @property
    def text(self) -> str | None:
        msg = self.msg
        return msg.text if msg is not None else None

    @property
    def args(self) -> list[str]:
        """Arguments after a leading ``/command`` token, empty otherwise."""
        username = self.me.username if self.me is not None else None
        parsed = parse_command(self.text, bot_username=username)
        if parsed is None:
            return []
        return parsed[1].split()

    @property
    def matches(self) -> tuple[re.Match[str], ...] | None:
        """Regex matches recorded by the filter that selected the handler."""
        return self._matches

    def record_matches(self, matches: Sequence[re.Match[str]]) -> None:
        self._matches = tuple(matches)

    # Sessions

    @property
    def has_session(self) -> bool:
        return self._sessions_enabled and self._session_key is not None

    @property
    def session_key(self) -> str | None:
        return self._session_key

    @property
    def session(self) -> S | None:
        if not self.has_session:
            return None
        return self._session

    @session.setter
    def session(self, value: S) -> None:
        if not self.has_session:
            raise ContextResolutionError("session", ["session key"])
        self._session = value

    def bind_session(self, key: str | None, value: S | None) -> None:
        self._sessions_enabled = True
        self._session_key = key
        self._session = value

    # Identity checks

    def _require_chat(self, method: str) -> int:
        chat_id = self.chat_id
        if chat_id is None:
            raise ContextResolutionError(method, ["chat"])
        return chat_id

    def _require_message(self, method: str) -> tuple[int, int]:
        chat_id = self.chat_id
        message_id = self.message_id
        missing = []
        if chat_id is None:
            missing.append("chat")
        if message_id is None:
            missing.append("message")
        if missing:
            raise ContextResolutionError(method, missing)
        assert chat_id is not None and message_id is not None
        return chat_id, message_id

    def _require_thread(self, method: str, override: int | None) -> tuple[int, int]:
        chat_id = self.chat_id
        thread_id = self.thread_id(override)
        missing = []
        if chat_id is None:
            missing.append("chat")
        if thread_id is None:
            missing.append("message thread")
        if missing:
            raise ContextResolutionError(method, missing)
        assert chat_id is not None and thread_id is not None
        return chat_id, thread_id

    def _require_user(self, method: str, user_id: int | None) -> tuple[int, int]:
        chat_id = self.chat_id
        if user_id is None and self.sender is not None:
            user_id = self.sender.id
        missing = []
        if chat_id is None:
            missing.append("chat")
        if user_id is None:
            missing.append("user")
        if missing:
            raise ContextResolutionError(method, missing)
        assert chat_id is not None and user_id is not None
        return chat_id, user_id

    # Replies

    async def reply(
        self,
        text: str,
        *,
        message_thread_id: int | None = None,
        quote: bool = False,
        parse_mode: str | None = None,
        entities: list[dict] | None = None,
        disable_notification: bool | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        if not text:
            raise ValueError("reply text must not be empty")
        chat_id = self._require_chat("sendMessage")
        return await self.api.send_message(
            chat_id,
            text,
            message_thread_id=self.thread_id(message_thread_id),
            reply_to_message_id=self.message_id if quote else None,
            parse_mode=parse_mode,
            entities=entities,
            disable_notification=disable_notification,
            reply_markup=reply_markup,
        )

    async def _reply_media(
        self,
        method: str,
        field: str,
        media: InputFile,
        *,
        message_thread_id: int | None,
        **params: Any,
    ) -> dict:
        if isinstance(media, (str, bytes)) and not media:
            raise ValueError(f"{field} must not be empty")
        chat_id = self._require_chat(method)
        return await self.api.send_media(
            method,
            field,
            chat_id,
            media,
            compact_params(
                message_thread_id=self.thread_id(message_thread_id), **params
            ),
        )

    async def reply_with_photo(
        self,
        photo: InputFile,
        *,
        caption: str | None = None,
        parse_mode: str | None = None,
        message_thread_id: int | None = None,
        has_spoiler: bool | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        return await self._reply_media(
            "sendPhoto",
            "photo",
            photo,
            message_thread_id=message_thread_id,
            caption=caption,
            parse_mode=parse_mode,
            has_spoiler=has_spoiler,
            reply_markup=reply_markup,
        )

    async def reply_with_document(
        self,
        document: InputFile,
        *,
        caption: str | None = None,
        parse_mode: str | None = None,
        message_thread_id: int | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        return await self._reply_media(
            "sendDocument",
            "document",
            document,
            message_thread_id=message_thread_id,
            caption=caption,
            parse_mode=parse_mode,
            reply_markup=reply_markup,
        )

    async def reply_with_video(
        self,
        video: InputFile,
        *,
        caption: str | None = None,
        parse_mode: str | None = None,
        duration: int | None = None,
        supports_streaming: bool | None = None,
        message_thread_id: int | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        return await self._reply_media(
            "sendVideo",
            "video",
            video,
            message_thread_id=message_thread_id,
            caption=caption,
            parse_mode=parse_mode,
            duration=duration,
            supports_streaming=supports_streaming,
            reply_markup=reply_markup,
        )

    async def reply_with_audio(
        self,
        audio: InputFile,
        *,
        caption: str | None = None,
        performer: str | None = None,
        title: str | None = None,
        message_thread_id: int | None = None,
    ) -> dict:
        return await self._reply_media(
            "sendAudio",
            "audio",
            audio,
            message_thread_id=message_thread_id,
            caption=caption,
            performer=performer,
            title=title,
        )

    async def reply_with_voice(
        self,
        voice: InputFile,
        *,
        caption: str | None = None,
        duration: int | None = None,
        message_thread_id: int | None = None,
    ) -> dict:
        return await self._reply_media(
            "sendVoice",
            "voice",
            voice,
            message_thread_id=message_thread_id,
            caption=caption,
            duration=duration,
        )

    async def reply_with_animation(
        self,
        animation: InputFile,
        *,
        caption: str | None = None,
        message_thread_id: int | None = None,
    ) -> dict:
        return await self._reply_media(
            "sendAnimation",
            "animation",
            animation,
            message_thread_id=message_thread_id,
            caption=caption,
        )

    async def reply_with_sticker(
        self,
        sticker: InputFile,
        *,
        emoji: str | None = None,
        message_thread_id: int | None = None,
    ) -> dict:
        return await self._reply_media(
            "sendSticker",
            "sticker",
            sticker,
            message_thread_id=message_thread_id,
            emoji=emoji,
        )

    async def reply_with_video_note(
        self,
        video_note: InputFile,
        *,
        duration: int | None = None,
        length: int | None = None,
        message_thread_id: int | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        return await self._reply_media(
            "sendVideoNote",
            "video_note",
            video_note,
            message_thread_id=message_thread_id,
            duration=duration,
            length=length,
            reply_markup=reply_markup,
        )

    async def reply_with_media_group(
        self,
        media: Sequence[dict[str, Any]],
        *,
        message_thread_id: int | None = None,
        disable_notification: bool | None = None,
    ) -> list[dict]:
        """Send 2-10 ``InputMedia`` dicts referencing file ids or URLs."""
        if not 2 <= len(media) <= 10:
            raise ValueError("a media group holds between 2 and 10 items")
        chat_id = self._require_chat("sendMediaGroup")
        return await self.api.call(
            "sendMediaGroup",
            compact_params(
                chat_id=chat_id,
                media=list(media),
                message_thread_id=self.thread_id(message_thread_id),
                disable_notification=disable_notification,
            ),
        )

    async def reply_with_location(
        self,
        latitude: float,
        longitude: float,
        *,
        live_period: int | None = None,
        message_thread_id: int | None = None,
    ) -> dict:
        chat_id = self._require_chat("sendLocation")
        return await self.api.call(
            "sendLocation",
            compact_params(
                chat_id=chat_id,
                latitude=latitude,
                longitude=longitude,
                live_period=live_period,
                message_thread_id=self.thread_id(message_thread_id),
            ),
        )

    async def reply_with_venue(
        self,
        latitude: float,
        longitude: float,
        title: str,
        address: str,
        *,
        foursquare_id: str | None = None,
        google_place_id: str | None = None,
        message_thread_id: int | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        chat_id = self._require_chat("sendVenue")
        return await self.api.call(
            "sendVenue",
            compact_params(
                chat_id=chat_id,
                latitude=latitude,
                longitude=longitude,
                title=title,
                address=address,
                foursquare_id=foursquare_id,
                google_place_id=google_place_id,
                message_thread_id=self.thread_id(message_thread_id),
                reply_markup=reply_markup,
            ),
        )

    async def reply_with_contact(
        self,
        phone_number: str,
        first_name: str,
        *,
        last_name: str | None = None,
        vcard: str | None = None,
        message_thread_id: int | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        if not phone_number or not first_name:
            raise ValueError("contact needs a phone number and a first name")
        chat_id = self._require_chat("sendContact")
        return await self.api.call(
            "sendContact",
            compact_params(
                chat_id=chat_id,
                phone_number=phone_number,
                first_name=first_name,
                last_name=last_name,
                vcard=vcard,
                message_thread_id=self.thread_id(message_thread_id),
                reply_markup=reply_markup,
            ),
        )

    async def reply_with_poll(
        self,
        question: str,
        options: Sequence[str],
        *,
        is_anonymous: bool | None = None,
        poll_type: str | None = None,
        allows_multiple_answers: bool | None = None,
        correct_option_id: int | None = None,
        open_period: int | None = None,
        message_thread_id: int | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        if not question.strip():
            raise ValueError("poll question must not be empty")
        if len(options) < 2:
            raise ValueError("a poll needs at least two options")
        chat_id = self._require_chat("sendPoll")
        return await self.api.call(
            "sendPoll",
            compact_params(
                chat_id=chat_id,
                question=question,
                options=[{"text": option} for option in options],
                is_anonymous=is_anonymous,
                type=poll_type,
                allows_multiple_answers=allows_multiple_answers,
                correct_option_id=correct_option_id,
                open_period=open_period,
                message_thread_id=self.thread_id(message_thread_id),
                reply_markup=reply_markup,
            ),
        )

    async def reply_with_game(
        self,
        game_short_name: str,
        *,
        message_thread_id: int | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        if not game_short_name:
            raise ValueError("game short name must not be empty")
        chat_id = self._require_chat("sendGame")
        return await self.api.call(
            "sendGame",
            compact_params(
                chat_id=chat_id,
                game_short_name=game_short_name,
                message_thread_id=self.thread_id(message_thread_id),
                reply_markup=reply_markup,
            ),
        )

    async def reply_with_dice(
        self, emoji: str = "🎲", *, message_thread_id: int | None = None
    ) -> dict:
        chat_id = self._require_chat("sendDice")
        return await self.api.call(
            "sendDice",
            compact_params(
                chat_id=chat_id,
                emoji=emoji,
                message_thread_id=self.thread_id(message_thread_id),
            ),
        )

    async def reply_with_chat_action(
        self, action: str = "typing", *, message_thread_id: int | None = None
    ) -> bool:
        chat_id = self._require_chat("sendChatAction")
        return bool(
            await self.api.call(
                "sendChatAction",
                compact_params(
                    chat_id=chat_id,
                    action=action,
                    message_thread_id=self.thread_id(message_thread_id),
                ),
            )
        )

    # The current message

    async def edit_message_text(
        self,
        text: str,
        *,
        parse_mode: str | None = None,
        entities: list[dict] | None = None,
        reply_markup: dict | None = None,
    ) -> dict | bool:
        if not text:
            raise ValueError("message text must not be empty")
        chat_id, message_id = self._require_message("editMessageText")
        return await self.api.edit_message_text(
            chat_id,
            message_id,
            text,
            parse_mode=parse_mode,
            entities=entities,
            reply_markup=reply_markup,
        )

    async def edit_message_caption(
        self,
        caption: str,
        *,
        parse_mode: str | None = None,
        reply_markup: dict | None = None,
    ) -> dict | bool:
        chat_id, message_id = self._require_message("editMessageCaption")
        return await self.api.call(
            "editMessageCaption",
            compact_params(
                chat_id=chat_id,
                message_id=message_id,
                caption=caption,
                parse_mode=parse_mode,
                reply_markup=reply_markup,
            ),
        )

    async def edit_message_live_location(
        self,
        latitude: float,
        longitude: float,
        *,
        horizontal_accuracy: float | None = None,
        heading: int | None = None,
        proximity_alert_radius: int | None = None,
        reply_markup: dict | None = None,
    ) -> dict | bool:
        chat_id, message_id = self._require_message("editMessageLiveLocation")
        return await self.api.call(
            "editMessageLiveLocation",
            compact_params(
                chat_id=chat_id,
                message_id=message_id,
                latitude=latitude,
                longitude=longitude,
                horizontal_accuracy=horizontal_accuracy,
                heading=heading,
                proximity_alert_radius=proximity_alert_radius,
                reply_markup=reply_markup,
            ),
        )

    async def delete_message(self) -> bool:
        chat_id, message_id = self._require_message("deleteMessage")
        return await self.api.delete_message(chat_id, message_id)

    async def forward_message(
        self,
        to_chat_id: int,
        *,
        message_thread_id: int | None = None,
        disable_notification: bool | None = None,
    ) -> dict:
        chat_id, message_id = self._require_message("forwardMessage")
        return await self.api.call(
            "forwardMessage",
            compact_params(
                chat_id=to_chat_id,
                from_chat_id=chat_id,
                message_id=message_id,
                message_thread_id=message_thread_id,
                disable_notification=disable_notification,
            ),
        )

    async def copy_message(
        self,
        to_chat_id: int,
        *,
        caption: str | None = None,
        message_thread_id: int | None = None,
    ) -> dict:
        chat_id, message_id = self._require_message("copyMessage")
        return await self.api.call(
            "copyMessage",
            compact_params(
                chat_id=to_chat_id,
                from_chat_id=chat_id,
                message_id=message_id,
                caption=caption,
                message_thread_id=message_thread_id,
            ),
        )

    async def pin_this_message(self, *, disable_notification: bool | None = None) -> bool:
        chat_id, message_id = self._require_message("pinChatMessage")
        return bool(
            await self.api.call(
                "pinChatMessage",
                compact_params(
                    chat_id=chat_id,
                    message_id=message_id,
                    disable_notification=disable_notification,
                ),
            )
        )

    async def unpin_this_message(self) -> bool:
        chat_id, message_id = self._require_message("unpinChatMessage")
        return bool(
            await self.api.call(
                "unpinChatMessage", {"chat_id": chat_id, "message_id": message_id}
            )
        )

    async def pin_chat_message(
        self, message_id: int, *, disable_notification: bool | None = None
    ) -> bool:
        return bool(
            await self._chat_call(
                "pinChatMessage",
                message_id=message_id,
                disable_notification=disable_notification,
            )
        )

    async def unpin_chat_message(self, message_id: int) -> bool:
        return bool(await self._chat_call("unpinChatMessage", message_id=message_id))

    async def react(self, emoji: str, *, is_big: bool | None = None) -> bool:
        return await self.react_multiple([emoji], is_big=is_big)

    async def react_multiple(
        self, emojis: Sequence[str], *, is_big: bool | None = None
    ) -> bool:
        if not emojis or any(not emoji for emoji in emojis):
            raise ValueError("at least one non-empty emoji is required")
        chat_id, message_id = self._require_message("setMessageReaction")
        return await self.api.set_message_reaction(
            chat_id,
            message_id,
            [{"type": "emoji", "emoji": emoji} for emoji in emojis],
            is_big=is_big,
        )

    async def answer_callback_query(
        self,
        text: str | None = None,
        *,
        show_alert: bool | None = None,
        url: str | None = None,
        cache_time: int | None = None,
    ) -> bool:
        query = self.callback_query
        if query is None:
            raise ContextResolutionError("answerCallbackQuery", ["callback query"])
        return await self.api.answer_callback_query(
            query.id,
            text=text,
            show_alert=show_alert,
            url=url,
            cache_time=cache_time,
        )

    # Forum topics

    async def create_forum_topic(
        self,
        name: str,
        *,
        icon_color: int | None = None,
        icon_custom_emoji_id: str | None = None,
    ) -> ForumTopic:
        if not name.strip():
            raise ValueError("topic name must not be empty")
        chat_id = self._require_chat("createForumTopic")
        result = await self.api.call(
            "createForumTopic",
            compact_params(
                chat_id=chat_id,
                name=name,
                icon_color=icon_color,
                icon_custom_emoji_id=icon_custom_emoji_id,
            ),
        )
        return msgspec.convert(result, type=ForumTopic)

    async def edit_forum_topic(
        self,
        *,
        message_thread_id: int | None = None,
        name: str | None = None,
        icon_custom_emoji_id: str | None = None,
    ) -> bool:
        if name is not None and not name.strip():
            raise ValueError("topic name must not be empty")
        chat_id, thread_id = self._require_thread("editForumTopic", message_thread_id)
        return bool(
            await self.api.call(
                "editForumTopic",
                compact_params(
                    chat_id=chat_id,
                    message_thread_id=thread_id,
                    name=name,
                    icon_custom_emoji_id=icon_custom_emoji_id,
                ),
            )
        )

    async def _topic_call(self, method: str, message_thread_id: int | None) -> bool:
        chat_id, thread_id = self._require_thread(method, message_thread_id)
        return bool(
            await self.api.call(
                method, {"chat_id": chat_id, "message_thread_id": thread_id}
            )
        )

    async def close_forum_topic(self, *, message_thread_id: int | None = None) -> bool:
        return await self._topic_call("closeForumTopic", message_thread_id)

    async def reopen_forum_topic(self, *, message_thread_id: int | None = None) -> bool:
        return await self._topic_call("reopenForumTopic", message_thread_id)

    async def delete_forum_topic(self, *, message_thread_id: int | None = None) -> bool:
        return await self._topic_call("deleteForumTopic", message_thread_id)

    async def unpin_all_forum_topic_messages(
        self, *, message_thread_id: int | None = None
    ) -> bool:
        return await self._topic_call("unpinAllForumTopicMessages", message_thread_id)

    async def _chat_call(self, method: str, **params: Any) -> Any:
        chat_id = self._require_chat(method)
        return await self.api.call(method, compact_params(chat_id=chat_id, **params))

    async def edit_general_forum_topic(self, name: str) -> bool:
        if not name.strip():
            raise ValueError("topic name must not be empty")
        return bool(await self._chat_call("editGeneralForumTopic", name=name))

    async def close_general_forum_topic(self) -> bool:
        return bool(await self._chat_call("closeGeneralForumTopic"))

    async def reopen_general_forum_topic(self) -> bool:
        return bool(await self._chat_call("reopenGeneralForumTopic"))

    async def hide_general_forum_topic(self) -> bool:
        return bool(await self._chat_call("hideGeneralForumTopic"))

    async def unhide_general_forum_topic(self) -> bool:
        return bool(await self._chat_call("unhideGeneralForumTopic"))

    async def unpin_all_general_forum_topic_messages(self) -> bool:
        return bool(await self._chat_call("unpinAllGeneralForumTopicMessages"))

    # Chat and members

    async def get_chat_member(self, user_id: int) -> ChatMember:
        result = await self._chat_call("getChatMember", user_id=user_id)
        return msgspec.convert(result, type=ChatMember)

    async def get_author(self) -> ChatMember:
        chat_id, user_id = self._require_user("getChatMember", None)
        result = await self.api.call(
            "getChatMember", {"chat_id": chat_id, "user_id": user_id}
        )
        return msgspec.convert(result, type=ChatMember)

    async def ban_chat_member(
        self,
        user_id: int | None = None,
        *,
        until_date: int | None = None,
        revoke_messages: bool | None = None,
    ) -> bool:
        chat_id, user_id = self._require_user("banChatMember", user_id)
        return bool(
            await self.api.call(
                "banChatMember",
                compact_params(
                    chat_id=chat_id,
                    user_id=user_id,
                    until_date=until_date,
                    revoke_messages=revoke_messages,
                ),
            )
        )

    async def unban_chat_member(
        self, user_id: int | None = None, *, only_if_banned: bool | None = None
    ) -> bool:
        chat_id, user_id = self._require_user("unbanChatMember", user_id)
        return bool(
            await self.api.call(
                "unbanChatMember",
                compact_params(
                    chat_id=chat_id, user_id=user_id, only_if_banned=only_if_banned
                ),
            )
        )

    async def restrict_chat_member(
        self,
        permissions: dict[str, bool],
        user_id: int | None = None,
        *,
        until_date: int | None = None,
    ) -> bool:
        chat_id, user_id = self._require_user("restrictChatMember", user_id)
        return bool(
            await self.api.call(
                "restrictChatMember",
                compact_params(
                    chat_id=chat_id,
                    user_id=user_id,
                    permissions=permissions,
                    until_date=until_date,
                ),
            )
        )

    async def promote_chat_member(
        self, user_id: int | None = None, **rights: bool
    ) -> bool:
        chat_id, user_id = self._require_user("promoteChatMember", user_id)
        return bool(
            await self.api.call(
                "promoteChatMember",
                {"chat_id": chat_id, "user_id": user_id, **rights},
            )
        )

    async def _join_request_call(self, method: str) -> bool:
        request = self.chat_join_request
        if request is None:
            raise ContextResolutionError(method, ["chat join request"])
        return bool(
            await self.api.call(
                method, {"chat_id": request.chat.id, "user_id": request.from_.id}
            )
        )

    async def approve_join_request(self) -> bool:
        return await self._join_request_call("approveChatJoinRequest")

    async def decline_join_request(self) -> bool:
        return await self._join_request_call("declineChatJoinRequest")

    async def set_chat_title(self, title: str) -> bool:
        if not title.strip():
            raise ValueError("chat title must not be empty")
        return bool(await self._chat_call("setChatTitle", title=title))

    async def set_chat_description(self, description: str) -> bool:
        return bool(await self._chat_call("setChatDescription", description=description))

    async def set_chat_sticker_set(self, sticker_set_name: str) -> bool:
        if not sticker_set_name:
            raise ValueError("sticker set name must not be empty")
        return bool(
            await self._chat_call("setChatStickerSet", sticker_set_name=sticker_set_name)
        )

    async def delete_chat_sticker_set(self) -> bool:
        return bool(await self._chat_call("deleteChatStickerSet"))
