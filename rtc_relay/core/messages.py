"""
Signaling event catalog and payload helpers.

Every frame on the wire is a JSON object ``{"type": <event>, "data": <payload>}``.
"""
import json
from typing import Any, Optional, Tuple

from rtc_relay.utils.error_codes import ErrorCodes, SignalingError

# client -> relay
JOIN_ROOM = "joinRoom"
LEAVE_ROOM = "leaveRoom"
READY = "ready"

# relay -> client
JOINED_ROOM = "joinedRoom"
NEW_USER = "newUser"
USER_LEFT = "userLeft"
ERROR = "error"

# both directions
OFFER = "offer"
ANSWER = "answer"
CANDIDATE = "candidate"
CHAT_MESSAGE = "chatMessage"

CLIENT_EVENTS = frozenset({
    JOIN_ROOM, LEAVE_ROOM, READY, OFFER, ANSWER, CANDIDATE, CHAT_MESSAGE,
})

DESCRIPTION_TYPES = (OFFER, ANSWER)


def encode(event: str, data: Any = None) -> str:
    return json.dumps({"type": event, "data": data})


def decode(raw) -> Tuple[str, Any]:
    """Parse one frame into ``(event, data)``; raises SignalingError on garbage."""
    try:
        frame = json.loads(raw)
    except (TypeError, ValueError):
        raise SignalingError(ErrorCodes.ERR_MALFORMED_MESSAGE, "Message is not valid JSON.")

    if not isinstance(frame, dict) or not isinstance(frame.get("type"), str):
        raise SignalingError(ErrorCodes.ERR_MALFORMED_MESSAGE, "Message has no event type.")

    return frame["type"], frame.get("data")


def is_valid_description(description, expected_type: str) -> bool:
    """
    A session description is usable only if it carries an SDP body and the
    type tag matching the event it travelled under.
    """
    if not isinstance(description, dict):
        return False
    sdp = description.get("sdp")
    if not isinstance(sdp, str) or not sdp:
        return False
    return description.get("type") == expected_type


def is_valid_candidate(candidate) -> bool:
    return candidate is not None and candidate != {} and candidate != ""


def room_key_of(data) -> Optional[str]:
    """joinRoom/leaveRoom/ready carry a bare key; the rest wrap it in ``roomKey``."""
    if isinstance(data, str):
        key = data
    elif isinstance(data, dict):
        key = data.get("roomKey")
    else:
        return None

    # opaque: compared byte for byte, never normalised
    if not isinstance(key, str) or not key:
        return None
    return key
