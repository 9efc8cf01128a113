from receptionist.session import ASSISTANT, CALLER, Turn
from receptionist.transcript import to_plain_text, to_timestamped_dump


def _conversation():
    return [
        Turn(CALLER, "I'd like two chicken biryani", 1002.0, "greeting"),
        Turn(ASSISTANT, "Great choice! Anything to drink?", 1003.5, "ordering"),
        Turn(CALLER, "that's it", 1010.0, "ordering"),
    ]


class TestToPlainText:
    def test_basic_conversation(self):
        assert to_plain_text(_conversation()) == (
            "Customer: I'd like two chicken biryani\n"
            "AI: Great choice! Anything to drink?\n"
            "Customer: that's it"
        )

    def test_empty(self):
        assert to_plain_text([]) == ""


class TestToTimestampedDump:
    def test_relative_timestamps(self):
        dump = to_timestamped_dump(_conversation(), 1000.0, "CA1", "+15125551234", "confirming")
        assert [e["t"] for e in dump["entries"]] == [2.0, 3.5, 10.0]
        assert dump["call_id"] == "CA1"
        assert dump["final_stage"] == "confirming"
        assert dump["entries"][0] == {
            "t": 2.0, "role": "caller", "stage": "greeting", "content": "I'd like two chicken biryani",
        }

    def test_zero_start_uses_first_turn(self):
        dump = to_timestamped_dump(_conversation(), 0, "CA1", "", "ordering")
        assert dump["entries"][0]["t"] == 0.0

    def test_empty(self):
        dump = to_timestamped_dump([], 1000.0, "CA1", "", "greeting")
        assert dump["entries"] == []
