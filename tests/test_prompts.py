from receptionist.classification import Intent
from receptionist.extraction import LineItem, Order
from receptionist.prompts import (
    build_messages,
    build_system_prompt,
    fallback_reply,
    goodbye,
    greeting,
)
from receptionist.stages import Stage


class TestSystemPrompt:
    def test_contains_business_facts(self, business, session):
        prompt = build_system_prompt(business, session)
        assert "Spice Route" in prompt
        assert "Mon-Sun 11AM-10PM" in prompt
        assert "Chicken biryani $15" in prompt

    def test_reports_turn_and_stage(self, business, session):
        session.add_caller_turn("hi")
        session.stage = Stage.ORDERING
        assert "Turn 1, Stage: ordering" in build_system_prompt(business, session)

    def test_confirming_lists_order(self, business, session):
        session.stage = Stage.CONFIRMING
        session.order_details = Order(items=[LineItem("chicken biryani", 2, 15)])
        prompt = build_system_prompt(business, session)
        assert "## CONFIRMING" in prompt
        assert "2 chicken biryani" in prompt
        assert "$30.00" in prompt

    def test_complete_asks_for_closing_line(self, business, session):
        session.stage = Stage.COMPLETE
        assert "Thank you for calling Spice Route" in build_system_prompt(business, session)

    def test_long_call_nudge(self, business, session):
        for i in range(5):
            session.add_caller_turn(f"turn {i}")
        assert "## WRAP UP" in build_system_prompt(business, session)

    def test_greeting_has_no_stage_block(self, business, session):
        assert "##" not in build_system_prompt(business, session)


class TestBuildMessages:
    def test_system_then_history_then_utterance(self, session):
        session.add_caller_turn("hi")
        session.add_assistant_turn("Hello! What can I get you?")
        session.add_caller_turn("two chicken biryani")

        messages = build_messages(session, "two chicken biryani")

        assert messages[0]["role"] == "system"
        assert messages[1:] == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "Hello! What can I get you?"},
            {"role": "user", "content": "two chicken biryani"},
        ]

    def test_first_turn(self, session):
        session.add_caller_turn("hello")
        messages = build_messages(session, "hello")
        assert [m["role"] for m in messages] == ["system", "user"]


class TestFallbackReplies:
    def test_info_uses_business_hours(self, business):
        assert fallback_reply(Intent.INFO, business) == "We're open Mon-Sun 11AM-10PM."

    def test_every_intent_has_a_reply(self, business):
        for intent in Intent:
            assert fallback_reply(intent, business)

    def test_order_reply(self, business):
        assert "order" in fallback_reply(Intent.ORDER, business)


def test_greeting_and_goodbye_name_the_business(business):
    assert "Spice Route" in greeting(business)
    assert "press 1" in greeting(business)
    assert goodbye(business) == "Thank you for calling Spice Route. Have a great day!"
