import asyncio

import pytest

from rtc_relay.core.negotiation import MediaSession
from rtc_relay.core.registry import RoomRegistry
from rtc_relay.core.router import SignalingRouter


class FakeMedia(MediaSession):
    """Records every call; ``hold_remote`` suspends set_remote_description until released."""

    def __init__(self, hold_remote=False, fail_remote=False):
        self.calls = []
        self.remote_description = None
        self.applied = []
        self.fail_remote = fail_remote
        self.release = asyncio.Event()
        if not hold_remote:
            self.release.set()

    async def start(self):
        self.calls.append("start")

    async def create_offer(self):
        self.calls.append("create_offer")
        return {"type": "offer", "sdp": "v=0 local-offer"}

    async def create_answer(self):
        self.calls.append("create_answer")
        return {"type": "answer", "sdp": "v=0 local-answer"}

    async def set_remote_description(self, description):
        self.calls.append("set_remote_description")
        await self.release.wait()
        if self.fail_remote:
            raise RuntimeError("rejected")
        self.remote_description = description

    async def add_ice_candidate(self, candidate):
        assert self.remote_description is not None, "candidate applied before remote description"
        self.applied.append(candidate)

    async def close(self):
        self.calls.append("close")
        self.remote_description = None


class Outbox:
    """Collects ``(target, event, payload)`` emitted by the router or ``(event, payload)`` sent by an agent."""

    def __init__(self):
        self.sent = []

    async def emit(self, connection, event, payload):
        self.sent.append((connection, event, payload))

    async def send(self, event, payload=None):
        self.sent.append((event, payload))

    def to(self, connection):
        return [(event, payload) for target, event, payload in self.sent if target == connection]


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def router(registry, outbox):
    return SignalingRouter(registry, outbox.emit)


@pytest.fixture
def media():
    return FakeMedia()
