import logging
from enum import Enum, auto

logger = logging.getLogger(__name__)


class NegotiationState(Enum):
    IDLE = auto()
    OFFER_SENT = auto()
    ANSWER_PENDING = auto()  # remote offer being applied, answer not sent yet
    STABLE = auto()  # remote description applied


ALLOWED_TRANSITIONS = {
    NegotiationState.IDLE: {NegotiationState.OFFER_SENT, NegotiationState.ANSWER_PENDING},
    NegotiationState.OFFER_SENT: {NegotiationState.ANSWER_PENDING, NegotiationState.STABLE},
    NegotiationState.ANSWER_PENDING: {NegotiationState.STABLE},
    NegotiationState.STABLE: set(),
}


class InvalidTransition(Exception):
    pass


class StateMachine:
    def __init__(self):
        self.current_state = NegotiationState.IDLE

    def can_transition_to(self, new_state: NegotiationState) -> bool:
        return new_state in ALLOWED_TRANSITIONS[self.current_state]

    def transition_to(self, new_state: NegotiationState):
        if not self.can_transition_to(new_state):
            raise InvalidTransition(f"{self.current_state.name} -> {new_state.name}")
        logger.debug(f"Negotiation {self.current_state.name} -> {new_state.name}")
        self.current_state = new_state

    def restore(self, state: NegotiationState):
        """Roll back after a failed media operation."""
        self.current_state = state

    def reset(self):
        self.current_state = NegotiationState.IDLE

    @property
    def remote_description_set(self) -> bool:
        return self.current_state is NegotiationState.STABLE
