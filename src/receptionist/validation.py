import re
from typing import Iterable, Optional


def match_any_keyword(text: str, keywords: Iterable[str]) -> bool:
    """Check if any keyword appears in text as a whole word (not substring)."""
    lower = text.lower()
    return any(re.search(rf"\b{re.escape(kw)}\b", lower) for kw in keywords)


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """Plain substring check, case-insensitive."""
    lower = text.lower()
    return any(p in lower for p in phrases)


def tokenize(text: str) -> list[str]:
    return re.findall(r"[a-z0-9']+", text.lower())


def normalize_utterance(text: str) -> str:
    """Lowercase, collapse whitespace, drop surrounding punctuation.

    Speech-to-text tends to add a trailing period ("Bye.") which would
    otherwise defeat exact-match lexicons.
    """
    collapsed = " ".join(text.lower().split())
    return collapsed.strip(" .,!?;:")


SENTINEL_VALUES = {
    "not provided", "n/a", "na", "unknown", "none", "tbd",
    "phone order", "customer", "me", "it", "you",
}

QUANTITY_WORDS = {
    "a": 1, "an": 1, "one": 1, "single": 1,
    "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "a couple": 2, "couple": 2, "a dozen": 12, "dozen": 12,
}

# Regex alternation for a quantity token, longest phrases first so
# "a couple" wins over "a".
QUANTITY_PATTERN = r"\d+|" + "|".join(
    re.escape(w) for w in sorted(QUANTITY_WORDS, key=len, reverse=True)
)


def parse_quantity(token: Optional[str], default: int = 1) -> int:
    """Map "2", "two", "a" ... to an int. Unknown or missing falls back to default."""
    if not token:
        return default
    cleaned = " ".join(token.lower().split())
    if cleaned.isdigit():
        value = int(cleaned)
        return value if value > 0 else default
    return QUANTITY_WORDS.get(cleaned, default)


def validate_name(value: Optional[str]) -> str:
    if not value:
        return ""
    cleaned = value.strip().strip(".,!?")
    if cleaned.lower() in SENTINEL_VALUES:
        return ""
    # Reject phone numbers used as names
    if re.match(r"^[\d+\-() ]{7,}$", cleaned):
        return ""
    if not re.search(r"[a-zA-Z]", cleaned):
        return ""
    return cleaned.title()
