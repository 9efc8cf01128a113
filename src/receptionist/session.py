import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from receptionist.business import BusinessContext
from receptionist.extraction import Booking, Order
from receptionist.stages import Stage

logger = logging.getLogger(__name__)

CALLER = "caller"
ASSISTANT = "assistant"


class SessionNotFound(Exception):
    """A turn arrived for a call that has no live session (ended or evicted)."""

    def __init__(self, call_id: str):
        super().__init__(f"no live session for call {call_id}")
        self.call_id = call_id


@dataclass
class Turn:
    speaker: str
    text: str
    timestamp: float
    stage: str = ""


@dataclass
class CallSession:
    call_id: str
    business: BusinessContext
    caller_number: str = ""
    started_at: float = field(default_factory=time.time)

    transcript: list[Turn] = field(default_factory=list)
    turn_count: int = 0
    stage: Stage = Stage.GREETING

    # Actions found so far
    order_details: Optional[Order] = None
    appointment_details: Optional[Booking] = None

    # Call end bookkeeping
    end_reason: str = ""
    reconciled: bool = False

    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def business_id(self) -> str:
        return self.business.id

    @property
    def has_action(self) -> bool:
        return self.order_details is not None or self.appointment_details is not None

    @property
    def in_flight(self) -> bool:
        return self.lock.locked()

    def add_caller_turn(self, text: str) -> Turn:
        turn = Turn(CALLER, text, time.time(), self.stage.value)
        self.transcript.append(turn)
        self.turn_count += 1
        return turn

    def add_assistant_turn(self, text: str) -> Turn:
        turn = Turn(ASSISTANT, text, time.time(), self.stage.value)
        self.transcript.append(turn)
        return turn

    def caller_turns(self) -> list[Turn]:
        return [t for t in self.transcript if t.speaker == CALLER]

    def history_text(self, exclude_last: bool = False) -> str:
        """Transcript as ``Customer:``/``AI:`` lines, the format the call log stores."""
        turns = self.transcript[:-1] if exclude_last else self.transcript
        lines = []
        for t in turns:
            prefix = "Customer" if t.speaker == CALLER else "AI"
            lines.append(f"{prefix}: {t.text}")
        return "\n".join(lines)

    def duration(self, now: Optional[float] = None) -> int:
        end = time.time() if now is None else now
        return max(0, int(end - self.started_at))


class SessionStore:
    """In-memory sessions keyed by call id.

    Nothing here touches the network. Ended calls leave a tombstone so a late
    turn for a finished call surfaces as SessionNotFound instead of silently
    opening a fresh session.
    """

    def __init__(self):
        self._sessions: dict[str, CallSession] = {}
        self._ended: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, call_id: str) -> bool:
        return call_id in self._sessions

    def get_or_create(
        self,
        call_id: str,
        business: BusinessContext,
        caller_number: str = "",
    ) -> CallSession:
        session = self._sessions.get(call_id)
        if session is not None:
            return session
        if call_id in self._ended:
            raise SessionNotFound(call_id)
        session = CallSession(call_id=call_id, business=business, caller_number=caller_number)
        self._sessions[call_id] = session
        logger.info("Session created: %s (business=%s)", call_id, business.id)
        return session

    def get(self, call_id: str) -> CallSession:
        session = self._sessions.get(call_id)
        if session is None:
            raise SessionNotFound(call_id)
        return session

    def peek(self, call_id: str) -> Optional[CallSession]:
        return self._sessions.get(call_id)

    def discard(self, call_id: str) -> None:
        if self._sessions.pop(call_id, None) is not None:
            logger.info("Session discarded: %s", call_id)
        self._ended[call_id] = time.time()

    def sweep(self, max_age: float, now: Optional[float] = None) -> list[str]:
        """Evict idle sessions older than max_age seconds. Returns evicted call ids."""
        now = time.time() if now is None else now
        evicted = []
        for call_id, session in list(self._sessions.items()):
            if now - session.started_at < max_age:
                continue
            if session.in_flight:
                logger.debug("Sweep skipped in-flight session %s", call_id)
                continue
            del self._sessions[call_id]
            self._ended[call_id] = now
            evicted.append(call_id)
            logger.warning(
                "Session evicted after %.0fs without ending: %s (turns=%d, stage=%s)",
                now - session.started_at, call_id, session.turn_count, session.stage.value,
            )
        for call_id, ended_at in list(self._ended.items()):
            if now - ended_at >= max_age:
                del self._ended[call_id]
        return evicted

    async def run_sweeper(self, interval: float, max_age: float) -> None:
        """Sweep forever on a fixed interval. Cancel the task to stop it."""
        while True:
            await asyncio.sleep(interval)
            evicted = self.sweep(max_age)
            if evicted:
                logger.info("Sweep evicted %d session(s)", len(evicted))
