import pytest

from rtc_relay.core import messages
from rtc_relay.core.state_machine import NegotiationState
from rtc_relay.core.session_manager import SessionManager
from rtc_relay.utils.error_codes import ErrorCodes, SignalingError


class FakeTransport:
    def __init__(self, connect_ok=True):
        self.handlers = {}
        self.sent = []
        self.connect_ok = connect_ok
        self.closed = False
        self.on_disconnect_callback = None

    def on(self, event, callback):
        self.handlers[event] = callback

    async def connect(self):
        return self.connect_ok

    async def send(self, event, data=None):
        self.sent.append((event, data))

    async def disconnect(self):
        self.closed = True

    async def deliver(self, event, data):
        result = self.handlers[event](data)
        if result is not None:
            await result


@pytest.fixture
def ui_events():
    return []


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def manager(media, transport, ui_events):
    return SessionManager(media, transport=transport, ui_callback=lambda kind, data=None: ui_events.append((kind, data)))


@pytest.mark.asyncio
async def test_start_session_joins_then_signals_ready(manager, transport, media):
    await manager.start_session("  r1 ")

    assert transport.sent == [(messages.JOIN_ROOM, "r1"), (messages.READY, "r1")]
    assert media.calls == ["start"]
    assert manager.agent.room_key == "r1"


@pytest.mark.asyncio
async def test_start_session_rejects_blank_room(manager):
    with pytest.raises(SignalingError) as exc:
        await manager.start_session("   ")
    assert exc.value.code == ErrorCodes.ERR_MISSING_ROOM_KEY


@pytest.mark.asyncio
async def test_start_session_reports_unreachable_relay(media):
    manager = SessionManager(media, transport=FakeTransport(connect_ok=False))
    with pytest.raises(SignalingError) as exc:
        await manager.start_session("r1")
    assert exc.value.code == ErrorCodes.ERR_NETWORK


@pytest.mark.asyncio
async def test_new_user_leads_to_offer(manager, transport, ui_events):
    await manager.start_session("r1")
    await transport.deliver(messages.NEW_USER, "Socket ID b joined room: r1")

    assert ("PEER_JOINED", "Socket ID b joined room: r1") in ui_events
    assert transport.sent[-1][0] == messages.OFFER
    assert manager.agent.state is NegotiationState.OFFER_SENT


@pytest.mark.asyncio
async def test_candidate_payload_is_unwrapped(manager, transport):
    await manager.start_session("r1")
    candidate = {"candidate": "candidate:1 1 udp 1 10.0.0.1 5000 typ host", "sdpMid": "0", "sdpMLineIndex": 0}

    await transport.deliver(messages.CANDIDATE, {"candidate": candidate, "sender": "b"})

    assert list(manager.agent.candidates) == [candidate]


@pytest.mark.asyncio
async def test_chat_roundtrip(manager, transport, ui_events):
    await manager.start_session("r1")

    assert await manager.send_message("hello") is True
    assert transport.sent[-1] == (messages.CHAT_MESSAGE, {"message": "hello", "roomKey": "r1"})

    await transport.deliver(messages.CHAT_MESSAGE, {"message": "hey", "sender": "b"})
    assert ui_events[-1] == ("MESSAGE", ("b", "hey"))


@pytest.mark.asyncio
async def test_chat_rate_limited(manager, transport, ui_events):
    await manager.start_session("r1")
    results = [await manager.send_message(f"m{n}") for n in range(6)]

    assert results == [True] * 5 + [False]
    assert ui_events[-1] == ("ERROR", "Rate limit exceeded. Slow down.")


@pytest.mark.asyncio
async def test_relay_error_is_surfaced(manager, transport, ui_events):
    await transport.deliver(messages.ERROR, {"message": "Invalid offer received."})
    assert ui_events[-1] == ("ERROR", "Invalid offer received.")


@pytest.mark.asyncio
async def test_destroy_session_leaves_and_disconnects(manager, transport, media, ui_events):
    await manager.start_session("r1")
    await manager.destroy_session()

    assert (messages.LEAVE_ROOM, "r1") in transport.sent
    assert transport.closed
    assert "close" in media.calls
    assert ui_events[-1] == ("DESTROYED", None)
