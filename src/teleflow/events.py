"""Update kinds: the discriminator over :class:`Update` variants."""

from __future__ import annotations

import enum

from .telegram.api_models import Update

__all__ = ["UpdateKind", "update_kind", "update_payload"]


class UpdateKind(enum.StrEnum):
    MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CHANNEL_POST = "channel_post"
    EDITED_CHANNEL_POST = "edited_channel_post"
    CALLBACK_QUERY = "callback_query"
    INLINE_QUERY = "inline_query"
    CHOSEN_INLINE_RESULT = "chosen_inline_result"
    SHIPPING_QUERY = "shipping_query"
    PRE_CHECKOUT_QUERY = "pre_checkout_query"
    POLL = "poll"
    POLL_ANSWER = "poll_answer"
    MY_CHAT_MEMBER = "my_chat_member"
    CHAT_MEMBER = "chat_member"
    CHAT_JOIN_REQUEST = "chat_join_request"
    MESSAGE_REACTION = "message_reaction"
    MESSAGE_REACTION_COUNT = "message_reaction_count"
    CHAT_BOOST = "chat_boost"
    REMOVED_CHAT_BOOST = "removed_chat_boost"
    UNKNOWN = "unknown"


# Every variant field on Update, in declaration order.
_VARIANTS: tuple[UpdateKind, ...] = tuple(
    kind for kind in UpdateKind if kind is not UpdateKind.UNKNOWN
)

MESSAGE_LIKE_KINDS = frozenset(
    {
        UpdateKind.MESSAGE,
        UpdateKind.EDITED_MESSAGE,
        UpdateKind.CHANNEL_POST,
        UpdateKind.EDITED_CHANNEL_POST,
    }
)


def update_kind(update: Update) -> UpdateKind:
    for kind in _VARIANTS:
        if getattr(update, kind.value) is not None:
            return kind
    return UpdateKind.UNKNOWN


def update_payload(update: Update) -> object | None:
    kind = update_kind(update)
    if kind is UpdateKind.UNKNOWN:
        return None
    return getattr(update, kind.value)
