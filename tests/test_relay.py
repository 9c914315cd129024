import pytest

from uplink_relay.errors import InvalidRequest, NotInRoom, RateLimited

from conftest import sends


@pytest.fixture
def members(registry, connect_session, room):
    for name in ("bob", "carol"):
        sid = connect_session(f"sid-{name}")
        registry.join_room(sid, name, room, "abc123")
    return ["sid-alice", "sid-bob", "sid-carol"]


def test_message_reaches_every_member_including_sender(relay, members):
    effects = relay.relay_message("sid-bob", [1, 2, 3], [9, 9])

    assert [e.sid for e in effects] == members
    assert {e.event for e in effects} == {"message"}
    assert effects[0].data == {
        "username": "bob",
        "encryptedData": [1, 2, 3],
        "iv": [9, 9],
        "isAdmin": False,
    }


def test_admin_flag_travels_with_message(relay, members):
    effects = relay.relay_message("sid-alice", b"\x00\x01", b"\x02")

    assert effects[0].data["isAdmin"] is True
    assert effects[0].data["encryptedData"] == b"\x00\x01"


def test_per_sender_order_is_arrival_order(relay, members):
    delivered = []
    for i in range(5):
        delivered += relay.relay_message("sid-bob", [i], [0])

    to_carol = [e.data["encryptedData"] for e in sends(delivered, "message", "sid-carol")]
    assert to_carol == [[0], [1], [2], [3], [4]]


def test_message_outside_room(relay, connect_session):
    lonely = connect_session("sid-lonely")

    with pytest.raises(NotInRoom):
        relay.relay_message(lonely, [1], [2])


def test_message_after_room_deleted(relay, registry, members, room):
    registry.delete_room(room, "Expired")

    with pytest.raises(NotInRoom):
        relay.relay_message("sid-bob", [1], [2])


def test_message_requires_payload(relay, members):
    with pytest.raises(InvalidRequest):
        relay.relay_message("sid-bob", None, [2])


def test_message_rate_limit(relay, members):
    # bob spent one "message" token on join
    for _ in range(9):
        relay.relay_message("sid-bob", [1], [2])

    with pytest.raises(RateLimited):
        relay.relay_message("sid-bob", [1], [2])


def test_typing_skips_sender(relay, members):
    effects = relay.typing("sid-bob")

    assert [(e.sid, e.event, e.data) for e in effects] == [
        ("sid-alice", "displayTyping", {"username": "bob"}),
        ("sid-carol", "displayTyping", {"username": "bob"}),
    ]

    effects = relay.stop_typing("sid-bob")
    assert [(e.sid, e.event, e.data) for e in effects] == [
        ("sid-alice", "hideTyping", None),
        ("sid-carol", "hideTyping", None),
    ]


def test_typing_outside_room_is_silent(relay, connect_session):
    lonely = connect_session("sid-lonely")

    assert relay.typing(lonely) == []
    assert relay.stop_typing(lonely) == []
