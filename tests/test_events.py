import msgspec
import pytest

from teleflow.events import MESSAGE_LIKE_KINDS, UpdateKind, update_kind, update_payload
from teleflow.telegram.api_models import (
    MalformedUpdate,
    Update,
    decode_update,
    decode_updates,
)

from tests import factories


def test_decode_update_maps_from_field() -> None:
    update = decode_update(msgspec.json.encode(factories.update_json(5, "hey")))

    assert update.update_id == 5
    assert update.message.from_.first_name == "Alice"
    assert update.message.chat.type == "private"


def test_decode_update_ignores_unknown_fields() -> None:
    payload = b'{"update_id": 8, "business_message": {"message_id": 1}, "extra": true}'

    update = decode_update(payload)

    assert update.update_id == 8
    assert update_kind(update) is UpdateKind.UNKNOWN
    assert update_payload(update) is None


def test_decode_update_requires_update_id() -> None:
    with pytest.raises(msgspec.ValidationError):
        decode_update(b'{"message": {"message_id": 1, "chat": {"id": 1, "type": "private"}}}')


@pytest.mark.parametrize(
    ("update", "expected"),
    [
        (factories.message_update(), UpdateKind.MESSAGE),
        (factories.edited_message_update(), UpdateKind.EDITED_MESSAGE),
        (factories.callback_update(), UpdateKind.CALLBACK_QUERY),
        (factories.inline_update(), UpdateKind.INLINE_QUERY),
        (factories.join_request_update(), UpdateKind.CHAT_JOIN_REQUEST),
        (factories.chat_member_update(), UpdateKind.CHAT_MEMBER),
        (factories.reaction_update(), UpdateKind.MESSAGE_REACTION),
        (Update(update_id=1), UpdateKind.UNKNOWN),
    ],
)
def test_update_kind(update: Update, expected: UpdateKind) -> None:
    assert update_kind(update) is expected


def test_update_payload_returns_variant() -> None:
    update = factories.callback_update(data="go")

    assert update_payload(update) is update.callback_query


def test_message_like_kinds() -> None:
    assert UpdateKind.CHANNEL_POST in MESSAGE_LIKE_KINDS
    assert UpdateKind.CALLBACK_QUERY not in MESSAGE_LIKE_KINDS


def test_decode_updates_isolates_invalid_entries() -> None:
    payload = [
        factories.update_json(5),
        {"update_id": 6, "message": {"message_id": 1, "date": 0}},
        {"message": {"message_id": 2}},
        factories.update_json(7),
    ]

    updates = decode_updates(payload)

    assert [u.update_id for u in updates] == [5, 6, 7]
    assert isinstance(updates[1], MalformedUpdate)
    assert "chat" in updates[1].error
    assert not isinstance(updates[0], MalformedUpdate)
