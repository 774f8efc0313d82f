from pathlib import Path

import pytest

from teleflow.context import Context, parse_command
from teleflow.errors import ContextResolutionError
from teleflow.events import UpdateKind
from teleflow.telegram.api_models import (
    ChatBoostRemoved,
    ChatMemberUpdated,
    Message,
    MessageReactionCountUpdated,
    Update,
)

from tests import factories
from tests.telegram_fakes import FakeBot


def test_parse_command() -> None:
    assert parse_command("/start a b", bot_username="flow_bot") == ("start", "a b")
    assert parse_command("/echo\nhello world") == ("echo", "hello world")
    assert parse_command("/echo@flow_bot\tx", bot_username="flow_bot") == ("echo", "x")
    assert parse_command("/start@flow_bot", bot_username="flow_bot") == ("start", "")
    assert parse_command("/start@other", bot_username="flow_bot") is None
    assert parse_command("/start@flow_bot") is None
    assert parse_command("hello") is None
    assert parse_command("/") is None
    assert parse_command(None) is None


def test_msg_prefers_message_then_edited_then_posts(make_ctx) -> None:
    edited = factories.message(text="edited", message_id=2)
    post = factories.message(text="post", message_id=3, chat_type="channel")
    ctx = make_ctx(Update(update_id=1, edited_message=edited, channel_post=post))

    assert ctx.msg is edited
    assert ctx.kind is UpdateKind.EDITED_MESSAGE
    assert ctx.text == "edited"
    assert ctx.message_id == 2


def test_chat_resolves_from_join_request_first(make_ctx) -> None:
    update = Update(
        update_id=1,
        message=factories.message(chat_id=1),
        chat_join_request=factories.join_request_update(chat_id=-2).chat_join_request,
        removed_chat_boost=ChatBoostRemoved(chat=factories.chat(-3, type="channel")),
    )
    ctx = make_ctx(update)

    assert ctx.chat_id == -2


def test_chat_member_before_my_chat_member(make_ctx) -> None:
    mine = ChatMemberUpdated(chat=factories.chat(-10, type="group"), from_=factories.user(1))
    theirs = ChatMemberUpdated(chat=factories.chat(-20, type="group"), from_=factories.user(2))
    ctx = make_ctx(Update(update_id=1, my_chat_member=mine, chat_member=theirs))

    assert ctx.chat_id == -20
    # Sender precedence checks my_chat_member before chat_member.
    assert ctx.sender.id == 1


def test_chat_is_none_for_inline_query(make_ctx) -> None:
    ctx = make_ctx(factories.inline_update())

    assert ctx.chat is None
    assert ctx.chat_id is None
    assert ctx.message_id is None
    assert ctx.sender.id == 7


def test_callback_query_sender_beats_message_sender(make_ctx) -> None:
    update = Update(
        update_id=1,
        callback_query=factories.callback_update(sender=factories.user(55)).callback_query,
        message=factories.message(sender=factories.user(66)),
    )
    ctx = make_ctx(update)

    assert ctx.sender.id == 55
    assert ctx.from_ is ctx.sender


def test_message_id_from_reactions(make_ctx) -> None:
    ctx = make_ctx(factories.reaction_update(message_id=77))
    counted = make_ctx(
        Update(
            update_id=2,
            message_reaction_count=MessageReactionCountUpdated(
                chat=factories.chat(-1, type="channel"), message_id=88
            ),
        )
    )

    assert ctx.message_id == 77
    assert ctx.chat_id == -400
    assert counted.message_id == 88
    assert counted.sender is None


def test_thread_id_only_for_topic_messages(make_ctx) -> None:
    topic = make_ctx(factories.message_update(thread_id=5))
    reply_thread = Message(
        message_id=1,
        chat=factories.chat(),
        message_thread_id=9,
        is_topic_message=None,
    )
    plain = make_ctx(Update(update_id=2, message=reply_thread))

    assert topic.thread_id() == 5
    assert topic.thread_id(8) == 8
    assert plain.thread_id() is None


def test_args_after_command(make_ctx) -> None:
    assert make_ctx(factories.message_update(text="/add 1  2")).args == ["1", "2"]
    assert make_ctx(factories.message_update(text="/add\n1\n2")).args == ["1", "2"]
    assert make_ctx(factories.message_update(text="plain words")).args == []


def test_unknown_update_kind(make_ctx) -> None:
    ctx = make_ctx(Update(update_id=3))

    assert ctx.kind is UpdateKind.UNKNOWN
    assert ctx.msg is None
    assert ctx.chat is None
    assert ctx.sender is None


@pytest.mark.anyio
async def test_reply_uses_chat_and_thread(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.message_update(text="hi", chat_id=12, thread_id=4, message_id=30))

    await ctx.reply("hello", quote=True)

    [call] = fake_bot.called("sendMessage")
    assert call.params["chat_id"] == 12
    assert call.params["text"] == "hello"
    assert call.params["message_thread_id"] == 4
    assert call.params["reply_to_message_id"] == 30


@pytest.mark.anyio
async def test_reply_without_chat_fails_before_network(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.inline_update())

    with pytest.raises(ContextResolutionError) as excinfo:
        await ctx.reply("hello")

    assert excinfo.value.missing == ("chat",)
    assert fake_bot.calls == []


@pytest.mark.anyio
async def test_reply_rejects_empty_text(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.message_update())

    with pytest.raises(ValueError):
        await ctx.reply("")
    assert fake_bot.calls == []


@pytest.mark.anyio
async def test_reply_with_photo_passes_media(make_ctx, fake_bot: FakeBot, tmp_path: Path) -> None:
    ctx = make_ctx(factories.message_update(chat_id=12))
    image = tmp_path / "cat.png"
    image.write_bytes(b"png")

    await ctx.reply_with_photo(image, caption="cat")
    await ctx.reply_with_document("file-id-1")

    photo, document = fake_bot.calls
    assert photo.method == "sendPhoto"
    assert photo.params["photo"] == image
    assert photo.params["caption"] == "cat"
    assert document.method == "sendDocument"
    assert document.params["document"] == "file-id-1"


@pytest.mark.anyio
async def test_message_operations_need_message_id(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.join_request_update())

    with pytest.raises(ContextResolutionError) as excinfo:
        await ctx.delete_message()

    assert excinfo.value.missing == ("message",)
    assert fake_bot.calls == []


@pytest.mark.anyio
async def test_react_on_reaction_update(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.reaction_update(chat_id=-400, message_id=77))

    await ctx.react_multiple(["👍", "🔥"])

    [call] = fake_bot.called("setMessageReaction")
    assert call.params["chat_id"] == -400
    assert call.params["message_id"] == 77
    assert [r["emoji"] for r in call.params["reaction"]] == ["👍", "🔥"]


@pytest.mark.anyio
async def test_react_multiple_requires_emojis(make_ctx) -> None:
    ctx = make_ctx(factories.message_update())

    with pytest.raises(ValueError):
        await ctx.react_multiple([])


@pytest.mark.anyio
async def test_edit_and_forward(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.message_update(chat_id=12, message_id=30))

    await ctx.edit_message_text("new")
    await ctx.forward_message(99)
    await ctx.pin_this_message()

    edit, forward, pin = fake_bot.calls
    assert (edit.method, edit.params["message_id"]) == ("editMessageText", 30)
    assert forward.params == {"chat_id": 99, "from_chat_id": 12, "message_id": 30}
    assert pin.params == {"chat_id": 12, "message_id": 30}


@pytest.mark.anyio
async def test_answer_callback_query(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.callback_update())

    await ctx.answer_callback_query("done", show_alert=True)

    [call] = fake_bot.calls
    assert call.params["callback_query_id"] == "cb-1"
    assert call.params["show_alert"] is True


@pytest.mark.anyio
async def test_answer_callback_query_requires_query(make_ctx) -> None:
    ctx = make_ctx(factories.message_update())

    with pytest.raises(ContextResolutionError):
        await ctx.answer_callback_query()


@pytest.mark.anyio
async def test_create_forum_topic_returns_topic(make_ctx, fake_bot: FakeBot) -> None:
    fake_bot.results["createForumTopic"] = {"message_thread_id": 11, "name": "Ideas"}
    ctx = make_ctx(factories.message_update(chat_id=-50, chat_type="supergroup"))

    topic = await ctx.create_forum_topic("Ideas")

    assert topic.message_thread_id == 11
    assert topic.name == "Ideas"


@pytest.mark.anyio
async def test_close_forum_topic_needs_thread(make_ctx, fake_bot: FakeBot) -> None:
    plain = make_ctx(factories.message_update(chat_id=-50, chat_type="supergroup"))
    topic = make_ctx(factories.message_update(chat_id=-50, thread_id=6))

    with pytest.raises(ContextResolutionError) as excinfo:
        await plain.close_forum_topic()
    await topic.close_forum_topic()
    await plain.reopen_forum_topic(message_thread_id=6)

    assert excinfo.value.missing == ("message thread",)
    close, reopen = fake_bot.calls
    assert close.params == {"chat_id": -50, "message_thread_id": 6}
    assert reopen.method == "reopenForumTopic"


@pytest.mark.anyio
async def test_ban_defaults_to_sender(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.message_update(chat_id=-50, sender=factories.user(31)))

    await ctx.ban_chat_member()
    await ctx.unban_chat_member(32, only_if_banned=True)

    ban, unban = fake_bot.calls
    assert ban.params == {"chat_id": -50, "user_id": 31}
    assert unban.params == {"chat_id": -50, "user_id": 32, "only_if_banned": True}


@pytest.mark.anyio
async def test_get_author(make_ctx, fake_bot: FakeBot) -> None:
    fake_bot.results["getChatMember"] = {
        "status": "administrator",
        "user": {"id": 7, "first_name": "Alice"},
    }
    ctx = make_ctx(factories.message_update(chat_id=-50))

    member = await ctx.get_author()

    assert member.status == "administrator"
    assert member.user.id == 7


@pytest.mark.anyio
async def test_join_request_approval(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.join_request_update(chat_id=-200))

    await ctx.approve_join_request()

    [call] = fake_bot.calls
    assert call.method == "approveChatJoinRequest"
    assert call.params == {"chat_id": -200, "user_id": 8}


@pytest.mark.anyio
async def test_approve_requires_join_request(make_ctx) -> None:
    ctx = make_ctx(factories.message_update())

    with pytest.raises(ContextResolutionError):
        await ctx.approve_join_request()


def test_session_unavailable_without_binding() -> None:
    ctx = Context(factories.message_update(), FakeBot())

    assert not ctx.has_session
    assert ctx.session is None
    with pytest.raises(ContextResolutionError):
        ctx.session = {"count": 1}


def test_session_binding() -> None:
    ctx: Context[dict] = Context(factories.message_update(), FakeBot())
    ctx.bind_session("100", {"count": 1})

    ctx.session = {"count": 2}

    assert ctx.session_key == "100"
    assert ctx.session == {"count": 2}


@pytest.mark.anyio
@pytest.mark.parametrize(
    "send",
    [
        lambda ctx: ctx.reply_with_video_note("note-id"),
        lambda ctx: ctx.reply_with_media_group(
            [{"type": "photo", "media": "a"}, {"type": "photo", "media": "b"}]
        ),
        lambda ctx: ctx.reply_with_venue(1.0, 2.0, "Cafe", "Main St"),
        lambda ctx: ctx.reply_with_contact("+100", "Alice"),
        lambda ctx: ctx.reply_with_poll("Lunch?", ["yes", "no"]),
        lambda ctx: ctx.reply_with_game("tetris"),
        lambda ctx: ctx.pin_chat_message(5),
        lambda ctx: ctx.unpin_chat_message(5),
        lambda ctx: ctx.set_chat_sticker_set("cats"),
        lambda ctx: ctx.delete_chat_sticker_set(),
        lambda ctx: ctx.unpin_all_general_forum_topic_messages(),
    ],
)
async def test_chat_scoped_helpers_need_chat(make_ctx, fake_bot: FakeBot, send) -> None:
    ctx = make_ctx(factories.inline_update())

    with pytest.raises(ContextResolutionError) as excinfo:
        await send(ctx)

    assert excinfo.value.missing == ("chat",)
    assert fake_bot.calls == []


@pytest.mark.anyio
async def test_edit_live_location_needs_message(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.join_request_update())

    with pytest.raises(ContextResolutionError) as excinfo:
        await ctx.edit_message_live_location(1.0, 2.0)

    assert excinfo.value.missing == ("message",)
    assert fake_bot.calls == []


@pytest.mark.anyio
async def test_extra_replies_forward_to_chat(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.message_update(chat_id=-50, message_id=30, thread_id=4))

    await ctx.reply_with_poll("Lunch?", ["pizza", "soup"], is_anonymous=False)
    await ctx.reply_with_contact("+100", "Alice")
    await ctx.edit_message_live_location(51.5, -0.1, heading=90)
    await ctx.pin_chat_message(12, disable_notification=True)
    await ctx.reply_with_video_note("note-id", length=240)

    poll, contact, live, pin, note = fake_bot.calls
    assert poll.method == "sendPoll"
    assert poll.params["options"] == [{"text": "pizza"}, {"text": "soup"}]
    assert poll.params["is_anonymous"] is False
    assert poll.params["message_thread_id"] == 4
    assert contact.params["phone_number"] == "+100"
    assert live.params == {
        "chat_id": -50,
        "message_id": 30,
        "latitude": 51.5,
        "longitude": -0.1,
        "heading": 90,
    }
    assert pin.params == {"chat_id": -50, "message_id": 12, "disable_notification": True}
    assert note.method == "sendVideoNote"
    assert note.params["video_note"] == "note-id"
    assert note.params["length"] == 240


@pytest.mark.anyio
async def test_extra_replies_validate_arguments(make_ctx, fake_bot: FakeBot) -> None:
    ctx = make_ctx(factories.message_update())

    with pytest.raises(ValueError):
        await ctx.reply_with_media_group([{"type": "photo", "media": "a"}])
    with pytest.raises(ValueError):
        await ctx.reply_with_poll("Lunch?", ["only"])
    with pytest.raises(ValueError):
        await ctx.reply_with_poll(" ", ["a", "b"])
    assert fake_bot.calls == []
