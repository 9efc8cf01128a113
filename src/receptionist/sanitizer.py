"""Strip "offer more help" phrasing from model replies.

The prompt already tells the model never to ask whether the caller needs
anything else. It still does it now and then, and on a phone line that
question invites the caller to keep talking after the order is done, so the
reply is scrubbed after generation as well.
"""

import re

OFFER_MORE_HELP_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"Is there anything else.*?\?",
        r"What else can.*?\?",
        r"Can I help you with anything else.*?\?",
        r"How else can I.*?\?",
        r"Do you need anything else.*?\?",
        r"Would you like anything else.*?\?",
        r"Anything else.*?\?",
        r"What else.*?\?",
        r"How can I.*help you.*?\?",
        r"Is there anything.*I can.*?\?",
    )
]

# Whatever survives the patterns above is dropped sentence-by-sentence if it
# still carries one of these.
RESIDUAL_TRIGGERS = ("anything else", "help you with", "what else", "how else")

# A terminator only ends a sentence when whitespace follows it, so "$30.00" stays whole.
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


def split_sentences(text: str) -> list[str]:
    """Split on . ! ? keeping each sentence's own terminator."""
    return [s.strip() for s in _SENTENCE_BREAK.split(text) if s.strip(" .!?\n\t")]


def sanitize_reply(
    text: str,
    patterns: list[re.Pattern] = OFFER_MORE_HELP_PATTERNS,
    triggers: tuple[str, ...] = RESIDUAL_TRIGGERS,
) -> str:
    if not text:
        return ""
    cleaned = text
    for pattern in patterns:
        cleaned = pattern.sub("", cleaned)

    kept = []
    for sentence in split_sentences(cleaned):
        lower = sentence.lower()
        if any(t in lower for t in triggers):
            continue
        if sentence[-1] not in ".!?":
            sentence += "."
        kept.append(sentence)
    return " ".join(kept)
