import logging

from receptionist.session import CallSession
from receptionist.stages import Stage
from receptionist.validation import contains_any, match_any_keyword

logger = logging.getLogger(__name__)

MIN_TURNS_TO_CONFIRM = 2

TRANSITIONS = {
    Stage.GREETING: {Stage.ORDERING},
    Stage.ORDERING: {Stage.CONFIRMING},
    Stage.CONFIRMING: {Stage.COMPLETE},
    Stage.COMPLETE: set(),
}

# Anything that means the caller is here to order or reserve.
TOPIC_TRIGGERS = frozenset({
    "order", "biryani", "food", "samosa", "menu",
    "reservation", "appointment", "book", "table",
})

AFFIRMATIVE_SIGNALS = frozenset({
    "yes", "yeah", "yep", "yup", "confirm", "confirmed", "correct",
    "that's right", "that is right", "sounds good", "sounds right",
})


def _transition(session: CallSession, new_stage: Stage) -> None:
    if new_stage not in TRANSITIONS[session.stage]:
        raise ValueError(f"illegal stage move {session.stage.value} -> {new_stage.value}")
    logger.info(
        "[%s] Stage %s -> %s (turn %d)",
        session.call_id, session.stage.value, new_stage.value, session.turn_count,
    )
    session.stage = new_stage


class StageMachine:
    """Moves a session forward through greeting -> ordering -> confirming -> complete.

    At most one transition fires per call to ``advance``; rules are checked
    in stage order and nothing ever moves a session backwards.
    """

    def __init__(
        self,
        topic_triggers: frozenset = TOPIC_TRIGGERS,
        affirmatives: frozenset = AFFIRMATIVE_SIGNALS,
        min_turns_to_confirm: int = MIN_TURNS_TO_CONFIRM,
    ):
        self.topic_triggers = topic_triggers
        self.affirmatives = affirmatives
        self.min_turns_to_confirm = min_turns_to_confirm

    def valid_transitions(self, stage: Stage) -> set[Stage]:
        return TRANSITIONS.get(stage, set())

    def advance(self, session: CallSession, utterance: str) -> Stage:
        handler = getattr(self, f"_handle_{session.stage.value}", None)
        if handler:
            handler(session, utterance)
        return session.stage

    # ── Stage handlers ──

    def _handle_greeting(self, session: CallSession, text: str) -> None:
        full_text = f"{session.history_text()} {text}".lower()
        if contains_any(full_text, self.topic_triggers):
            _transition(session, Stage.ORDERING)

    def _handle_ordering(self, session: CallSession, text: str) -> None:
        if session.has_action and session.turn_count >= self.min_turns_to_confirm:
            _transition(session, Stage.CONFIRMING)

    def _handle_confirming(self, session: CallSession, text: str) -> None:
        if match_any_keyword(text, self.affirmatives):
            _transition(session, Stage.COMPLETE)
