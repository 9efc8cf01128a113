import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from receptionist.session import CallSession
from receptionist.validation import contains_any, normalize_utterance, tokenize

logger = logging.getLogger(__name__)

MAX_CALLER_TURNS = 6
NO_PROGRESS_TURNS = 4

EXACT_END_PHRASES = frozenset({"no", "nope", "done", "bye", "goodbye", "thanks", "thank you"})
CONTEXTUAL_END_PHRASES = (
    "that's all", "nothing else", "no thanks", "i'm done", "i'm good",
    "all set", "that is all", "finished", "no more",
)
# A bare "no" only counts when it cannot be part of these words.
NO_GUARD_WORDS = ("know", "another")

CLOSING_PHRASES = ("thank you for calling", "have a great day")


class TerminationReason(Enum):
    """Why a call ended. Declaration order is evaluation priority."""

    CALLER_ENDED = "caller_ended"
    STAGE_COMPLETE = "stage_complete"
    TURN_LIMIT = "turn_limit"
    CLOSING_PHRASE = "closing_phrase"
    NO_PROGRESS = "no_progress"


@dataclass(frozen=True)
class TerminationDecision:
    terminate: bool
    reason: Optional[TerminationReason] = None

    @property
    def continue_call(self) -> bool:
        return not self.terminate


CONTINUE = TerminationDecision(terminate=False)


def wants_to_end(utterance: str) -> bool:
    """True when the caller's words mean the conversation is over."""
    text = normalize_utterance(utterance)
    if not text:
        return False
    if text in EXACT_END_PHRASES:
        return True
    if contains_any(text, CONTEXTUAL_END_PHRASES):
        return True
    if "no" in tokenize(text) and not contains_any(text, NO_GUARD_WORDS):
        return True
    return False


def reply_closes_call(reply: str) -> bool:
    return contains_any(reply or "", CLOSING_PHRASES)


class TerminationPolicy:
    def __init__(self, max_turns: int = MAX_CALLER_TURNS, no_progress_turns: int = NO_PROGRESS_TURNS):
        self.max_turns = max_turns
        self.no_progress_turns = no_progress_turns

    def evaluate(self, session: CallSession, utterance: str, reply: str) -> TerminationDecision:
        reason = self._first_reason(session, utterance, reply)
        if reason is None:
            return CONTINUE
        logger.info(
            "[%s] Ending call: %s (turn %d, stage %s)",
            session.call_id, reason.value, session.turn_count, session.stage.value,
        )
        return TerminationDecision(terminate=True, reason=reason)

    def _first_reason(self, session: CallSession, utterance: str, reply: str) -> Optional[TerminationReason]:
        if wants_to_end(utterance):
            return TerminationReason.CALLER_ENDED
        if session.stage.is_terminal:
            return TerminationReason.STAGE_COMPLETE
        if session.turn_count >= self.max_turns:
            return TerminationReason.TURN_LIMIT
        if reply_closes_call(reply):
            return TerminationReason.CLOSING_PHRASE
        if session.turn_count >= self.no_progress_turns and not session.has_action:
            return TerminationReason.NO_PROGRESS
        return None
