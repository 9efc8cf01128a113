import re
from dataclasses import dataclass, field, replace
from typing import Optional, Union

from receptionist.validation import QUANTITY_PATTERN, match_any_keyword, parse_quantity, validate_name

DEFAULT_PICKUP_ETA = "30 minutes"
DEFAULT_ORDER_NAME = "Phone Order"
DEFAULT_BOOKING_NAME = "Phone Booking"


@dataclass(frozen=True)
class LineItem:
    name: str
    quantity: int
    unit_price: float

    @property
    def subtotal(self) -> float:
        return self.quantity * self.unit_price

    def to_dict(self) -> dict:
        return {"name": self.name, "quantity": self.quantity, "price": self.unit_price}


@dataclass
class Order:
    items: list[LineItem] = field(default_factory=list)
    pickup_eta: str = DEFAULT_PICKUP_ETA
    customer_name: str = DEFAULT_ORDER_NAME

    kind = "order"

    @property
    def total(self) -> float:
        return sum(item.subtotal for item in self.items)

    def to_dict(self) -> dict:
        return {
            "type": self.kind,
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
            "pickup_time": self.pickup_eta,
            "customer_name": self.customer_name,
        }


@dataclass
class Booking:
    customer_name: str = DEFAULT_BOOKING_NAME
    service: str = "Table reservation"
    date_time: str = ""

    kind = "booking"

    def to_dict(self) -> dict:
        return {
            "type": self.kind,
            "customer_name": self.customer_name,
            "service": self.service,
            "date_time": self.date_time,
        }


Action = Union[Order, Booking]


# --- Order rules ---

@dataclass(frozen=True)
class ItemPattern:
    """``<quantity> [variant] <category>`` matcher with a fixed unit price.

    The price always comes from this table, never from the conversation.
    """

    category: str
    regex: re.Pattern
    unit_price: float
    default_variant: str = ""

    def find(self, text: str) -> list[tuple[int, LineItem]]:
        """Return ``(offset, item)`` for every match, offset being where it starts in text."""
        items = []
        for match in self.regex.finditer(text):
            variant = _normalize_variant(match.group("variant") or self.default_variant)
            name = f"{variant} {self.category}".strip()
            item = LineItem(name, parse_quantity(match.group("qty")), self.unit_price)
            items.append((match.start(), item))
        return items


VARIANT_ALIASES = {"veg": "vegetable", "veggie": "vegetable"}


def _normalize_variant(variant: str) -> str:
    lower = variant.lower()
    return VARIANT_ALIASES.get(lower, lower)


def _item_regex(variants: str, category: str, variant_optional: bool = False) -> re.Pattern:
    variant = rf"(?P<variant>{variants})\s+"
    if variant_optional:
        variant = rf"(?:{variant})?"
    return re.compile(
        rf"\b(?P<qty>{QUANTITY_PATTERN})\s+{variant}{category}s?\b",
        re.IGNORECASE,
    )


MENU_PATTERNS = [
    ItemPattern(
        category="biryani",
        regex=_item_regex("chicken|mutton|vegetable|veggie|veg|paneer|shrimp|egg", "biryani"),
        unit_price=15,
    ),
    ItemPattern(
        category="samosa",
        regex=_item_regex("vegetable|veggie|veg|chicken|paneer", "samosa", variant_optional=True),
        unit_price=5,
        default_variant="vegetable",
    ),
]


def extract_order(text: str, patterns: list[ItemPattern] = MENU_PATTERNS) -> Optional[Order]:
    """Collect every menu item mentioned in text into one Order.

    The same item mentioned several times (caller says it, the assistant reads
    it back) is one line item; the latest mention sets the quantity.
    """
    found: list[tuple[int, LineItem]] = []
    for pattern in patterns:
        found.extend(pattern.find(text))
    if not found:
        return None
    found.sort(key=lambda pair: pair[0])
    by_name: dict[str, LineItem] = {}
    for _, item in found:
        by_name[item.name] = item
    return Order(items=list(by_name.values()))


def merge_orders(existing: Optional[Order], found: Optional[Order]) -> Optional[Order]:
    """Union of distinct items, so items only mentioned early in the call survive."""
    if existing is None:
        return found
    if found is None:
        return existing
    by_name = {item.name: item for item in existing.items}
    for item in found.items:
        by_name[item.name] = item
    return replace(existing, items=list(by_name.values()))


# --- Booking rules ---

BOOKING_KEYWORDS = {"reservation", "reserve", "book", "booking", "table", "appointment"}

_WEEKDAYS = "monday|tuesday|wednesday|thursday|friday|saturday|sunday"
DATE_PATTERN = re.compile(
    rf"\b(today|tonight|tomorrow|(?:this |next )?(?:{_WEEKDAYS}))\b", re.IGNORECASE
)
TIME_PATTERN = re.compile(
    r"\b(\d{1,2}(?::\d{2})?\s*(?:am|pm|a\.m\.|p\.m\.)(?![a-z])|\d{1,2}\s*o'clock|noon)",
    re.IGNORECASE,
)
_PARTY_SIZE = r"\d+|two|three|four|five|six|seven|eight|nine|ten"
PARTY_PATTERN = re.compile(
    rf"\b(?:table for|party of)\s+(?P<qty>{_PARTY_SIZE})\b"
    rf"|\bfor\s+(?P<people>{_PARTY_SIZE})\s+(?:people|persons|guests)\b",
    re.IGNORECASE,
)
NAME_PATTERN = re.compile(
    r"\b(?:my name is|name's|name is|under the name|reservation under|booking under)\s+(?P<name>[a-z][a-z'-]+)",
    re.IGNORECASE,
)


def _last(pattern: re.Pattern, text: str) -> Optional[re.Match]:
    matches = list(pattern.finditer(text))
    return matches[-1] if matches else None


def extract_booking(text: str) -> Optional[Booking]:
    """Pull a reservation out of text. Needs a booking keyword plus a day or time."""
    if not match_any_keyword(text, BOOKING_KEYWORDS):
        return None
    date_match = _last(DATE_PATTERN, text)
    time_match = _last(TIME_PATTERN, text)
    if not date_match and not time_match:
        return None

    when = " at ".join(
        m.group(1).lower() for m in (date_match, time_match) if m is not None
    )
    booking = Booking(date_time=when)

    party_size = None
    for match in PARTY_PATTERN.finditer(text):
        group = "qty" if match.group("qty") else "people"
        # "table for 7 pm" is a time, not a party size
        if TIME_PATTERN.match(text, match.start(group)):
            continue
        party_size = parse_quantity(match.group(group))
    if party_size:
        booking.service = f"Table for {party_size}"

    name_match = _last(NAME_PATTERN, text)
    if name_match:
        booking.customer_name = validate_name(name_match.group("name")) or DEFAULT_BOOKING_NAME
    return booking


def merge_bookings(existing: Optional[Booking], found: Optional[Booking]) -> Optional[Booking]:
    """Later details fill in or correct earlier ones; defaults never erase a known value."""
    if existing is None:
        return found
    if found is None:
        return existing
    defaults = Booking()
    merged = replace(existing)
    for attr in ("customer_name", "service", "date_time"):
        value = getattr(found, attr)
        if value and value != getattr(defaults, attr):
            setattr(merged, attr, value)
    return merged


def extract_action(text: str) -> Optional[Action]:
    """Order if any menu item is mentioned, otherwise a booking, otherwise None."""
    order = extract_order(text)
    if order is not None:
        return order
    return extract_booking(text)
