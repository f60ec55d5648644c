import asyncio
import json
import re

import pytest
import pytest_asyncio
import websockets

from rtc_relay.relay_server import RelayServer

TIMEOUT = 2


async def recv(ws):
    frame = json.loads(await asyncio.wait_for(ws.recv(), TIMEOUT))
    return frame["type"], frame["data"]


async def send(ws, event, data):
    await ws.send(json.dumps({"type": event, "data": data}))


async def join(ws, room="r1"):
    await send(ws, "joinRoom", room)
    event, text = await recv(ws)
    assert event == "joinedRoom"
    return re.match(r"Socket ID (\w+) joined", text).group(1)


@pytest_asyncio.fixture
async def relay():
    server = RelayServer()
    async with server.serve("127.0.0.1", 0) as ws_server:
        port = ws_server.sockets[0].getsockname()[1]
        yield server, f"ws://127.0.0.1:{port}"


@pytest.mark.asyncio
async def test_two_peer_negotiation(relay):
    server, uri = relay
    async with websockets.connect(uri) as a, websockets.connect(uri) as b:
        a_id = await join(a)
        assert server.registry.members("r1") == {a_id}

        b_id = await join(b)
        assert server.registry.members("r1") == {a_id, b_id}
        assert (await recv(a))[0] == "newUser"

        await send(a, "offer", {"offer": {"type": "offer", "sdp": "v=0 a"}, "roomKey": "r1"})
        assert await recv(b) == ("offer", {"type": "offer", "sdp": "v=0 a", "sender": a_id})

        candidate = {"candidate": "candidate:1 1 udp 1 10.0.0.1 5000 typ host", "sdpMid": "0", "sdpMLineIndex": 0}
        await send(a, "candidate", {"candidate": candidate, "roomKey": "r1"})
        assert await recv(b) == ("candidate", {"candidate": candidate, "sender": a_id})

        await send(b, "answer", {"answer": {"type": "answer", "sdp": "v=0 b"}, "roomKey": "r1"})
        assert await recv(a) == ("answer", {"type": "answer", "sdp": "v=0 b", "sender": b_id})

        await send(b, "leaveRoom", "r1")
        assert (await recv(a))[0] == "userLeft"
        assert server.registry.members("r1") == {a_id}

        await send(a, "leaveRoom", "r1")
        await send(a, "offer", {"roomKey": "r1"})
        assert (await recv(a))[0] == "error"
        assert "r1" not in server.registry


@pytest.mark.asyncio
async def test_bad_frames_do_not_close_connection(relay):
    _, uri = relay
    async with websockets.connect(uri) as a:
        await a.send("not json")
        assert await recv(a) == ("error", {"message": "Message is not valid JSON."})

        await send(a, "offer", {"offer": {"sdp": ""}, "roomKey": "r1"})
        assert await recv(a) == ("error", {"message": "Invalid offer received."})

        await join(a)


@pytest.mark.asyncio
async def test_disconnect_notifies_remaining_member(relay):
    server, uri = relay
    async with websockets.connect(uri) as a:
        a_id = await join(a)
        async with websockets.connect(uri) as b:
            await join(b)
            assert (await recv(a))[0] == "newUser"

        event, text = await recv(a)
        assert event == "userLeft"
        assert "disconnected" in text
        assert server.registry.members("r1") == {a_id}
