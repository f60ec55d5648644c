import json

import pytest

from rtc_relay.core import messages
from rtc_relay.utils.error_codes import ErrorCodes, SignalingError


def test_encode_wraps_event():
    assert json.loads(messages.encode("newUser", "hi")) == {"type": "newUser", "data": "hi"}


def test_decode_frame():
    assert messages.decode('{"type": "joinRoom", "data": "r1"}') == ("joinRoom", "r1")


@pytest.mark.parametrize("raw", ["not json", "[]", '{"data": 1}', '{"type": 5}'])
def test_decode_rejects_garbage(raw):
    with pytest.raises(SignalingError) as exc:
        messages.decode(raw)
    assert exc.value.code == ErrorCodes.ERR_MALFORMED_MESSAGE


@pytest.mark.parametrize("data, expected", [
    ("r1", "r1"),
    (" r1 ", " r1 "),
    ({"roomKey": "r1"}, "r1"),
    ({"roomKey": ""}, None),
    ({}, None),
    (None, None),
    (42, None),
])
def test_room_key_of(data, expected):
    assert messages.room_key_of(data) == expected


def test_candidate_validation():
    assert messages.is_valid_candidate({"candidate": "candidate:1 1 udp 1 1.2.3.4 1 typ host"})
    assert not messages.is_valid_candidate(None)
    assert not messages.is_valid_candidate({})
