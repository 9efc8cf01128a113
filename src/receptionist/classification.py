from dataclasses import dataclass, field
from enum import Enum

from receptionist.validation import match_any_keyword


class Intent(Enum):
    ORDER = "order"
    INFO = "info"
    BOOKING = "booking"
    GENERAL = "general"


@dataclass(frozen=True)
class IntentRule:
    """One keyword rule. ``history_keywords`` also match earlier turns of the call."""

    intent: Intent
    keywords: frozenset
    history_keywords: frozenset = field(default_factory=frozenset)

    def matches(self, utterance: str, history: str = "") -> bool:
        if match_any_keyword(utterance, self.keywords):
            return True
        return bool(history) and match_any_keyword(history, self.history_keywords)


# --- Keyword sets ---

ORDER_KEYWORDS = frozenset({
    "order", "orders", "ordering", "biryani", "biryanis", "samosa", "samosas",
    "chicken", "food", "menu", "takeout", "pickup",
})
# Once any of these has come up, the rest of the call is about the order.
ORDER_HISTORY_KEYWORDS = frozenset({"order", "biryani", "biryanis", "samosa", "samosas"})

INFO_KEYWORDS = frozenset({"hours", "open", "close", "closing", "timing", "timings"})

BOOKING_KEYWORDS = frozenset({
    "book", "booking", "appointment", "reservation", "reserve", "table",
})

# Ordered by precedence: first match wins.
INTENT_RULES = (
    IntentRule(Intent.ORDER, ORDER_KEYWORDS, ORDER_HISTORY_KEYWORDS),
    IntentRule(Intent.INFO, INFO_KEYWORDS),
    IntentRule(Intent.BOOKING, BOOKING_KEYWORDS),
)


def classify_intent(utterance: str, history: str = "", rules=INTENT_RULES) -> Intent:
    """Classify the purpose of a turn: order > info > booking > general."""
    for rule in rules:
        if rule.matches(utterance, history):
            return rule.intent
    return Intent.GENERAL
