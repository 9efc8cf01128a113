import asyncio

import pytest
from receptionist.business import BusinessContext
from receptionist.llm import CompletionError
from receptionist.processor import TurnProcessor
from receptionist.session import CallSession, SessionStore
from receptionist.state_machine import StageMachine
from receptionist.termination import TerminationPolicy


class FakeCompletion:
    """Completion provider that replays scripted replies and records each request."""

    def __init__(self, replies=None, error=None, delay=0.0):
        self.replies = list(replies or [])
        self.error = error
        self.delay = delay
        self.calls = []
        self.closed = False

    async def complete(self, messages):
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if not self.replies:
            raise CompletionError("no scripted reply")
        return self.replies.pop(0)

    async def close(self):
        self.closed = True


class FakeRecords:
    """Record store that keeps writes in memory. Set a ``fail_*`` flag to simulate failures."""

    def __init__(self, business=None):
        self.business = business
        self.call_logs = []
        self.orders = []
        self.bookings = []
        self.fail_call_log = False
        self.fail_order = False
        self.fail_booking = False
        self.closed = False

    async def create_call_log(self, fields):
        self.call_logs.append(fields)
        return None if self.fail_call_log else f"recCALL{len(self.call_logs)}"

    async def create_order(self, fields):
        self.orders.append(fields)
        if self.fail_order:
            raise RuntimeError("Orders table unavailable")
        return f"recORDER{len(self.orders)}"

    async def create_booking(self, fields):
        self.bookings.append(fields)
        return None if self.fail_booking else f"recBOOK{len(self.bookings)}"

    async def find_business_by_routing_key(self, phone_number):
        if self.business and self.business.forwarding_number == phone_number:
            return self.business
        return None

    async def get_business(self, record_id):
        if self.business and self.business.id == record_id:
            return self.business
        return None

    async def close(self):
        self.closed = True


@pytest.fixture
def business():
    return BusinessContext(
        id="recBIZ1",
        name="Spice Route",
        menu="Chicken biryani $15, vegetable samosa $5",
        forwarding_number="+15550001111",
    )


@pytest.fixture
def session(business):
    return CallSession(call_id="CA_test_1", business=business, caller_number="+15125551234")


@pytest.fixture
def machine():
    return StageMachine()


@pytest.fixture
def policy():
    return TerminationPolicy()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def records(business):
    return FakeRecords(business)


@pytest.fixture
def processor(store, completion, records):
    return TurnProcessor(store=store, completion=completion, records=records)


@pytest.fixture
def make_processor(store, records):
    """Build a TurnProcessor around its own scripted completion provider."""
    def _make(replies=None, error=None, delay=0.0, **kwargs):
        return TurnProcessor(store, FakeCompletion(replies, error, delay), records, **kwargs)
    return _make
