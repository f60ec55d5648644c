"""
Per-peer offer/answer negotiation.

The agent decides when to offer and when to answer, and holds back remote
ICE candidates until the remote description has been applied. Candidates,
offers and answers travel independently, so a candidate may arrive before,
during or after the description it belongs to; none is ever applied to the
media session before that description is set.
"""
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Optional

from rtc_relay.core import messages
from rtc_relay.core.state_machine import NegotiationState, StateMachine

logger = logging.getLogger(__name__)

Sender = Callable[[str, Any], Awaitable[None]]


class MediaSession:
    """
    Interface of the local media / peer-transport stack the agent drives.
    Descriptions are ``{"type": ..., "sdp": ...}`` dicts, candidates are the
    browser's ``RTCIceCandidateInit`` dicts.
    """

    async def start(self):
        raise NotImplementedError

    async def create_offer(self) -> dict:
        """Create an offer and install it as the local description."""
        raise NotImplementedError

    async def create_answer(self) -> dict:
        """Create an answer and install it as the local description."""
        raise NotImplementedError

    async def set_remote_description(self, description: dict):
        raise NotImplementedError

    async def add_ice_candidate(self, candidate: dict):
        raise NotImplementedError

    async def close(self):
        raise NotImplementedError


class IceCandidateQueue:
    """Remote candidates waiting for the remote description, in arrival order."""

    def __init__(self):
        self._items = deque()

    def push(self, candidate):
        self._items.append(candidate)

    def pop(self):
        return self._items.popleft()

    def clear(self):
        self._items.clear()

    def __len__(self):
        return len(self._items)

    def __bool__(self):
        return bool(self._items)

    def __iter__(self):
        return iter(list(self._items))


class NegotiationAgent:
    def __init__(self, media: MediaSession, send: Sender, room_key: Optional[str] = None):
        self.media = media
        self.send = send
        self.room_key = room_key
        self.state_machine = StateMachine()
        self.candidates = IceCandidateQueue()

        self.media_ready = False
        self._offer_deferred = False
        self._applying_remote = False
        self._flushing = False
        # Bumped on every reset so suspended handlers can tell their call is gone.
        self._generation = 0

    @property
    def state(self) -> NegotiationState:
        return self.state_machine.current_state

    async def start_local_media(self):
        await self.media.start()
        self.media_ready = True
        logger.info("Local media ready")

        if self._offer_deferred:
            self._offer_deferred = False
            await self.on_new_peer()

    async def on_new_peer(self):
        if self.state is not NegotiationState.IDLE or self._applying_remote:
            logger.info(f"New peer while {self.state.name}; not offering")
            return
        if not self.media_ready:
            logger.info("New peer before local media is ready; offer deferred")
            self._offer_deferred = True
            return

        generation = self._generation
        self.state_machine.transition_to(NegotiationState.OFFER_SENT)
        try:
            offer = await self.media.create_offer()
        except Exception:
            logger.exception("Failed to create offer")
            if generation == self._generation and self.state is NegotiationState.OFFER_SENT:
                self.state_machine.restore(NegotiationState.IDLE)
            return

        if generation != self._generation or self.state is not NegotiationState.OFFER_SENT:
            logger.info("Negotiation moved on while creating offer; offer discarded")
            return

        await self.send(messages.OFFER, {"offer": offer, "roomKey": self.room_key})
        logger.info("Offer sent")

    async def on_offer(self, description):
        if not messages.is_valid_description(description, messages.OFFER):
            logger.error(f"Invalid offer received: {description!r}")
            return
        if self.state not in (NegotiationState.IDLE, NegotiationState.OFFER_SENT) or self._applying_remote:
            logger.warning(f"Offer received while {self.state.name}; dropped")
            return

        if self.state is NegotiationState.OFFER_SENT:
            # glare; aiortc has no rollback and rejects this in have-local-offer
            logger.warning("Offer received while our own offer is outstanding; media stacks without rollback will reject it")

        generation = self._generation
        previous = self.state
        self.state_machine.transition_to(NegotiationState.ANSWER_PENDING)
        self._applying_remote = True
        try:
            await self.media.set_remote_description(_description(description))
            answer = await self.media.create_answer()
        except Exception:
            logger.exception("Error handling offer")
            if generation == self._generation:
                self.state_machine.restore(previous)
            return
        finally:
            if generation == self._generation:
                self._applying_remote = False

        if generation != self._generation:
            return

        self.state_machine.transition_to(NegotiationState.STABLE)
        # Candidates arriving while the answer goes out queue behind the backlog.
        self._flushing = True
        try:
            await self.send(messages.ANSWER, {"answer": answer, "roomKey": self.room_key})
            logger.info("Answer sent")
        finally:
            await self._flush_candidates()

    async def on_answer(self, description):
        if not messages.is_valid_description(description, messages.ANSWER):
            logger.error(f"Invalid answer received: {description!r}")
            return
        if self.state is not NegotiationState.OFFER_SENT or self._applying_remote:
            logger.warning(f"Answer received while {self.state.name}; dropped")
            return

        generation = self._generation
        self._applying_remote = True
        try:
            await self.media.set_remote_description(_description(description))
        except Exception:
            logger.exception("Error setting remote description for answer")
            return
        finally:
            if generation == self._generation:
                self._applying_remote = False

        if generation != self._generation:
            return

        self.state_machine.transition_to(NegotiationState.STABLE)
        logger.info("Answer applied")
        await self._flush_candidates()

    async def on_candidate(self, candidate):
        if not messages.is_valid_candidate(candidate):
            logger.error(f"Invalid candidate received: {candidate!r}")
            return

        if self.state_machine.remote_description_set and not self._flushing:
            await self._apply_candidate(candidate)
        else:
            logger.debug("Remote description not set yet. Queueing ICE candidate.")
            self.candidates.push(candidate)

    async def end_call(self):
        await self.reset()
        if self.room_key:
            await self.send(messages.LEAVE_ROOM, self.room_key)
        logger.info("Call ended")

    async def reset(self):
        """Tear the media session down and return to a fresh Idle state."""
        self._generation += 1
        self.state_machine.reset()
        self.candidates.clear()
        self.media_ready = False
        self._offer_deferred = False
        self._applying_remote = False
        self._flushing = False
        await self.media.close()

    async def _flush_candidates(self):
        if self.candidates:
            logger.info(f"Processing {len(self.candidates)} queued ICE candidates")

        generation = self._generation
        self._flushing = True
        try:
            # Candidates arriving mid-flush are appended and drained here too.
            while self.candidates and generation == self._generation:
                await self._apply_candidate(self.candidates.pop())
        finally:
            if generation == self._generation:
                self._flushing = False

    async def _apply_candidate(self, candidate):
        try:
            await self.media.add_ice_candidate(candidate)
        except Exception as e:
            logger.error(f"Error adding ICE candidate: {e}")


def _description(payload: dict) -> dict:
    # forwarded payloads also carry "sender"
    return {"type": payload["type"], "sdp": payload["sdp"]}
