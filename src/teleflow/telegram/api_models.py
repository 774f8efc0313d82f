from __future__ import annotations

from typing import Any

import msgspec

__all__ = [
    "CallbackQuery",
    "Chat",
    "ChatBoostRemoved",
    "ChatBoostUpdated",
    "ChatJoinRequest",
    "ChatMember",
    "ChatMemberUpdated",
    "ChosenInlineResult",
    "ForumTopic",
    "InlineQuery",
    "MalformedUpdate",
    "Message",
    "MessageEntity",
    "MessageReactionCountUpdated",
    "MessageReactionUpdated",
    "Poll",
    "PollAnswer",
    "PreCheckoutQuery",
    "ReactionType",
    "ShippingQuery",
    "Update",
    "User",
    "WebhookInfo",
    "convert_update",
    "decode_update",
    "decode_updates",
]


class User(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None


class Chat(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    type: str
    title: str | None = None
    username: str | None = None
    first_name: str | None = None
    is_forum: bool | None = None


class MessageEntity(msgspec.Struct, forbid_unknown_fields=False):
    type: str
    offset: int
    length: int


class Message(msgspec.Struct, forbid_unknown_fields=False):
    message_id: int
    chat: Chat
    date: int = 0
    from_: User | None = msgspec.field(default=None, name="from")
    sender_chat: Chat | None = None
    message_thread_id: int | None = None
    is_topic_message: bool | None = None
    text: str | None = None
    caption: str | None = None
    entities: list[MessageEntity] | None = None
    caption_entities: list[MessageEntity] | None = None
    reply_to_message: Message | None = None
    media_group_id: str | None = None


class CallbackQuery(msgspec.Struct, forbid_unknown_fields=False):
    id: str
    from_: User = msgspec.field(name="from")
    chat_instance: str = ""
    message: Message | None = None
    inline_message_id: str | None = None
    data: str | None = None
    game_short_name: str | None = None


class InlineQuery(msgspec.Struct, forbid_unknown_fields=False):
    id: str
    from_: User = msgspec.field(name="from")
    query: str = ""
    offset: str = ""
    chat_type: str | None = None


class ChosenInlineResult(msgspec.Struct, forbid_unknown_fields=False):
    result_id: str
    from_: User = msgspec.field(name="from")
    query: str = ""
    inline_message_id: str | None = None


class ShippingQuery(msgspec.Struct, forbid_unknown_fields=False):
    id: str
    from_: User = msgspec.field(name="from")
    invoice_payload: str = ""
    shipping_address: dict[str, Any] | None = None


class PreCheckoutQuery(msgspec.Struct, forbid_unknown_fields=False):
    id: str
    from_: User = msgspec.field(name="from")
    currency: str = ""
    total_amount: int = 0
    invoice_payload: str = ""


class Poll(msgspec.Struct, forbid_unknown_fields=False):
    id: str
    question: str = ""
    options: list[dict[str, Any]] = msgspec.field(default_factory=list)
    is_closed: bool = False
    type: str = "regular"


class PollAnswer(msgspec.Struct, forbid_unknown_fields=False):
    poll_id: str
    option_ids: list[int] = msgspec.field(default_factory=list)
    user: User | None = None
    voter_chat: Chat | None = None


class ChatMember(msgspec.Struct, forbid_unknown_fields=False):
    status: str
    user: User | None = None
    can_manage_topics: bool | None = None


class ChatMemberUpdated(msgspec.Struct, forbid_unknown_fields=False):
    chat: Chat
    from_: User = msgspec.field(name="from")
    date: int = 0
    old_chat_member: ChatMember | None = None
    new_chat_member: ChatMember | None = None


class ChatJoinRequest(msgspec.Struct, forbid_unknown_fields=False):
    chat: Chat
    from_: User = msgspec.field(name="from")
    user_chat_id: int = 0
    date: int = 0
    bio: str | None = None


class ReactionType(msgspec.Struct, forbid_unknown_fields=False, omit_defaults=True):
    type: str = "emoji"
    emoji: str | None = None
    custom_emoji_id: str | None = None


class MessageReactionUpdated(msgspec.Struct, forbid_unknown_fields=False):
    chat: Chat
    message_id: int
    date: int = 0
    user: User | None = None
    actor_chat: Chat | None = None
    old_reaction: list[ReactionType] = msgspec.field(default_factory=list)
    new_reaction: list[ReactionType] = msgspec.field(default_factory=list)


class MessageReactionCountUpdated(msgspec.Struct, forbid_unknown_fields=False):
    chat: Chat
    message_id: int
    date: int = 0
    reactions: list[dict[str, Any]] = msgspec.field(default_factory=list)


class ChatBoostUpdated(msgspec.Struct, forbid_unknown_fields=False):
    chat: Chat
    boost: dict[str, Any] = msgspec.field(default_factory=dict)


class ChatBoostRemoved(msgspec.Struct, forbid_unknown_fields=False):
    chat: Chat
    boost_id: str = ""
    remove_date: int = 0
    source: dict[str, Any] | None = None


class ForumTopic(msgspec.Struct, forbid_unknown_fields=False):
    message_thread_id: int
    name: str = ""
    icon_color: int | None = None
    icon_custom_emoji_id: str | None = None


class WebhookInfo(msgspec.Struct, forbid_unknown_fields=False):
    url: str = ""
    has_custom_certificate: bool = False
    pending_update_count: int = 0
    last_error_message: str | None = None
    allowed_updates: list[str] | None = None


class Update(msgspec.Struct, forbid_unknown_fields=False):
    update_id: int
    message: Message | None = None
    edited_message: Message | None = None
    channel_post: Message | None = None
    edited_channel_post: Message | None = None
    callback_query: CallbackQuery | None = None
    inline_query: InlineQuery | None = None
    chosen_inline_result: ChosenInlineResult | None = None
    shipping_query: ShippingQuery | None = None
    pre_checkout_query: PreCheckoutQuery | None = None
    poll: Poll | None = None
    poll_answer: PollAnswer | None = None
    my_chat_member: ChatMemberUpdated | None = None
    chat_member: ChatMemberUpdated | None = None
    chat_join_request: ChatJoinRequest | None = None
    message_reaction: MessageReactionUpdated | None = None
    message_reaction_count: MessageReactionCountUpdated | None = None
    chat_boost: ChatBoostUpdated | None = None
    removed_chat_boost: ChatBoostRemoved | None = None


class MalformedUpdate(Update):
    """Placeholder for an update that failed validation.

    Carries only the ``update_id`` so the poll cursor can move past it.
    """

    error: str = ""


_UPDATE_DECODER = msgspec.json.Decoder(Update)


def decode_update(payload: bytes | str) -> Update:
    return _UPDATE_DECODER.decode(payload)


def convert_update(payload: dict[str, Any]) -> Update:
    return msgspec.convert(payload, type=Update)


def decode_updates(payload: list[Any]) -> list[Update]:
    """Convert a ``getUpdates`` result one entry at a time.

    Entries that fail validation but carry an integer ``update_id`` come back
    as :class:`MalformedUpdate`; entries without one are dropped.
    """
    updates: list[Update] = []
    for raw in payload:
        try:
            updates.append(convert_update(raw))
        except msgspec.ValidationError as e:
            update_id = raw.get("update_id") if isinstance(raw, dict) else None
            if isinstance(update_id, int) and not isinstance(update_id, bool):
                updates.append(MalformedUpdate(update_id=update_id, error=str(e)))
    return updates
