from dataclasses import dataclass

DEFAULT_HOURS = "Mon-Sun 11AM-10PM"
DEFAULT_MENU = "Full menu available"


@dataclass(frozen=True)
class BusinessContext:
    """Facts about the business a call was routed to.

    Loaded once per call from the Businesses table and never mutated; the
    prompt builder and the post-call records both read from it.
    """

    id: str
    name: str
    business_type: str = "Restaurant"
    hours: str = DEFAULT_HOURS
    menu: str = DEFAULT_MENU
    forwarding_number: str = ""

    @classmethod
    def from_record(cls, record: dict) -> "BusinessContext":
        """Build from an Airtable record (``{"id": ..., "fields": {...}}``)."""
        fields = record.get("fields", {}) or {}
        return cls(
            id=record.get("id", ""),
            name=fields.get("Name") or fields.get("Business Name") or "our restaurant",
            business_type=fields.get("Business Type") or "Restaurant",
            hours=fields.get("Business Hours") or DEFAULT_HOURS,
            menu=fields.get("Menu Items") or DEFAULT_MENU,
            forwarding_number=fields.get("Forwarding Number", ""),
        )
