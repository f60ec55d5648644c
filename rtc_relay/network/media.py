"""
aiortc-backed media session.

Wraps one ``RTCPeerConnection`` per call. Local capture comes from an
optional ``MediaPlayer`` source (a device or file understood by ffmpeg);
without one the session only receives. Inbound tracks go to a
``MediaRecorder`` when a path is given, otherwise to a ``MediaBlackhole``.
"""
import logging

from aiortc import RTCConfiguration, RTCIceServer, RTCPeerConnection, RTCSessionDescription
from aiortc.contrib.media import MediaBlackhole, MediaPlayer, MediaRecorder
from aiortc.sdp import candidate_from_sdp

from rtc_relay import config
from rtc_relay.core.negotiation import MediaSession
from rtc_relay.utils.error_codes import ErrorCodes, SignalingError

logger = logging.getLogger(__name__)


def candidate_from_init(init: dict):
    """Convert a browser ``RTCIceCandidateInit`` dict into an aiortc candidate."""
    line = init.get("candidate") or ""
    if line.startswith("candidate:"):
        line = line[len("candidate:"):]
    candidate = candidate_from_sdp(line)
    candidate.sdpMid = init.get("sdpMid")
    candidate.sdpMLineIndex = init.get("sdpMLineIndex")
    return candidate


class AiortcMediaSession(MediaSession):
    def __init__(self, source=None, source_format=None, record_to=None,
                 stun_url=config.STUN_URL, on_state_change=None):
        self.source = source
        self.source_format = source_format
        self.record_to = record_to
        self.stun_url = stun_url
        self.on_state_change = on_state_change

        self.pc = None
        self.player = None
        self.sink = None

    async def start(self):
        self.pc = RTCPeerConnection(RTCConfiguration([RTCIceServer(self.stun_url)]))
        self.sink = MediaRecorder(self.record_to) if self.record_to else MediaBlackhole()

        @self.pc.on("track")
        def _on_track(track):
            logger.info(f"Received remote {track.kind} track")
            self.sink.addTrack(track)

        @self.pc.on("connectionstatechange")
        async def _on_state():
            logger.info(f"Peer connection state: {self.pc.connectionState}")
            if self.on_state_change:
                self.on_state_change(self.pc.connectionState)

        if self.source:
            try:
                self.player = MediaPlayer(self.source, format=self.source_format)
            except Exception as e:
                raise SignalingError(ErrorCodes.ERR_MEDIA, f"Could not open media source: {e}")
            for track in (self.player.audio, self.player.video):
                if track is not None:
                    self.pc.addTrack(track)
        else:
            self.pc.addTransceiver("audio", direction="recvonly")
            self.pc.addTransceiver("video", direction="recvonly")

    async def create_offer(self) -> dict:
        await self.pc.setLocalDescription(await self.pc.createOffer())
        return self._local_description()

    async def create_answer(self) -> dict:
        await self.pc.setLocalDescription(await self.pc.createAnswer())
        return self._local_description()

    async def set_remote_description(self, description: dict):
        await self.pc.setRemoteDescription(RTCSessionDescription(**description))
        await self.sink.start()

    async def add_ice_candidate(self, candidate: dict):
        if not candidate.get("candidate"):
            logger.debug("End of remote candidates")
            return
        await self.pc.addIceCandidate(candidate_from_init(candidate))

    async def close(self):
        if self.sink:
            await self.sink.stop()
            self.sink = None
        if self.player:
            for track in (self.player.audio, self.player.video):
                if track is not None:
                    track.stop()
            self.player = None
        if self.pc:
            await self.pc.close()
            self.pc = None

    def _local_description(self) -> dict:
        return {"type": self.pc.localDescription.type, "sdp": self.pc.localDescription.sdp}
