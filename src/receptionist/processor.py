import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from receptionist.business import BusinessContext
from receptionist.classification import Intent, classify_intent
from receptionist.extraction import Action, Booking, Order, extract_action, merge_bookings, merge_orders
from receptionist.llm import CompletionClient, CompletionResult
from receptionist.post_call import ReconcileReport, reconcile
from receptionist.prompts import REPROMPT_REPLY, build_messages, fallback_reply
from receptionist.records import AirtableClient
from receptionist.sanitizer import sanitize_reply
from receptionist.session import CallSession, SessionStore
from receptionist.state_machine import StageMachine
from receptionist.termination import TerminationPolicy

logger = logging.getLogger(__name__)

DEFAULT_COMPLETION_TIMEOUT_S = 8.0
CALLER_HANGUP = "caller_hangup"

KEYPAD_UTTERANCES = {
    "1": "What is your menu?",
    "2": "What are your hours?",
}


def digit_to_utterance(digit: str) -> str:
    """Turn a keypad press into the sentence the caller would have said."""
    return KEYPAD_UTTERANCES.get(digit, f"User pressed {digit}")


@dataclass(frozen=True)
class TurnResult:
    reply: str
    intent: Intent
    continue_call: bool
    action: Optional[Action] = None
    end_reason: str = ""


class TurnProcessor:
    """Runs one caller turn through the dialogue engine.

    Per turn:
    1. Blank input gets a re-prompt and touches nothing
    2. Record the caller turn and advance the stage
    3. Ask the completion provider for a reply (bounded wait, one attempt)
    4. On failure, answer with the canned reply for the caller's intent
    5. Extract any order or booking from the whole conversation
    6. Decide whether the call is over; if so, write records once and drop the session
    """

    def __init__(
        self,
        store: SessionStore,
        completion: CompletionClient,
        records: AirtableClient,
        machine: Optional[StageMachine] = None,
        policy: Optional[TerminationPolicy] = None,
        completion_timeout: float = DEFAULT_COMPLETION_TIMEOUT_S,
    ):
        self.store = store
        self.completion = completion
        self.records = records
        self.machine = machine or StageMachine()
        self.policy = policy or TerminationPolicy()
        self.completion_timeout = completion_timeout

    async def handle_turn(
        self,
        call_id: str,
        business: BusinessContext,
        utterance: str,
        caller_number: str = "",
    ) -> TurnResult:
        if not utterance or not utterance.strip():
            logger.info("[%s] Empty utterance, re-prompting", call_id)
            return TurnResult(reply=REPROMPT_REPLY, intent=Intent.GENERAL, continue_call=True)
        utterance = utterance.strip()

        session = self.store.get_or_create(call_id, business, caller_number)
        async with session.lock:
            return await self._run_turn(session, utterance)

    async def _run_turn(self, session: CallSession, utterance: str) -> TurnResult:
        history = session.history_text()
        session.add_caller_turn(utterance)
        self.machine.advance(session, utterance)
        intent = classify_intent(utterance, history)
        logger.info(
            "[%s] Turn %d (stage=%s, intent=%s): %r",
            session.call_id, session.turn_count, session.stage.value, intent.value, utterance,
        )

        result = await self._complete(session, utterance)
        if result.ok:
            reply = sanitize_reply(result.text)
            if not reply:
                logger.warning("[%s] Reply empty after sanitizing, using fallback", session.call_id)
                reply = fallback_reply(intent, session.business)
        else:
            logger.warning("[%s] Completion failed (%s), using fallback", session.call_id, result.error)
            reply = fallback_reply(intent, session.business)
        session.add_assistant_turn(reply)

        action = self._attach_action(session)

        decision = self.policy.evaluate(session, utterance, reply)
        if decision.terminate:
            session.end_reason = decision.reason.value
            await self._finish(session)

        return TurnResult(
            reply=reply,
            intent=intent,
            continue_call=decision.continue_call,
            action=action,
            end_reason=session.end_reason,
        )

    async def _complete(self, session: CallSession, utterance: str) -> CompletionResult:
        messages = build_messages(session, utterance)
        try:
            text = await asyncio.wait_for(
                self.completion.complete(messages),
                timeout=self.completion_timeout,
            )
        except asyncio.TimeoutError:
            return CompletionResult.failure(f"timed out after {self.completion_timeout:.0f}s")
        except Exception as e:
            return CompletionResult.failure(str(e) or type(e).__name__)
        return CompletionResult.success(text)

    def _attach_action(self, session: CallSession) -> Optional[Action]:
        found = extract_action(session.history_text())
        if isinstance(found, Order):
            session.order_details = merge_orders(session.order_details, found)
            return session.order_details
        if isinstance(found, Booking):
            session.appointment_details = merge_bookings(session.appointment_details, found)
            return session.appointment_details
        return None

    async def _finish(self, session: CallSession) -> ReconcileReport:
        try:
            return await reconcile(session, self.records)
        finally:
            self.store.discard(session.call_id)

    async def end_call(self, call_id: str) -> Optional[ReconcileReport]:
        """Caller hung up. Writes records if the call never reached a natural end."""
        session = self.store.peek(call_id)
        if session is None:
            self.store.discard(call_id)
            return None
        async with session.lock:
            if not session.end_reason:
                session.end_reason = CALLER_HANGUP
            logger.info("[%s] Call ended by hangup at turn %d", call_id, session.turn_count)
            return await self._finish(session)
