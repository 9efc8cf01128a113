import logging
from typing import Optional
from urllib.parse import quote

import httpx

from receptionist.business import BusinessContext
from receptionist.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = "https://api.airtable.com/v0"

BUSINESSES_TABLE = "Businesses"
CALL_LOGS_TABLE = "Call Logs"
ORDERS_TABLE = "Orders"
APPOINTMENTS_TABLE = "Appointments"


def _formula_literal(value: str) -> str:
    """Quote a value for an Airtable filterByFormula string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class AirtableClient:
    """HTTP client for the back-office Airtable base.

    Every method swallows its own failures: create_* return the new record id
    or None, lookups return a BusinessContext or None. A circuit breaker skips
    Airtable for a minute after repeated failures so a dead base does not add
    a timeout to every call.
    """

    def __init__(
        self,
        api_key: str,
        base_id: str,
        timeout: float = 10.0,
        api_url: str = AIRTABLE_API_URL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = f"{api_url.rstrip('/')}/{base_id}"
        self._circuit = CircuitBreaker(
            failure_threshold=3,
            cooldown_seconds=60.0,
            label="Airtable",
        )
        if client is not None:
            self._client = client
        else:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                timeout=timeout,
            )

    async def close(self):
        """Close the shared HTTP client. Call at shutdown."""
        await self._client.aclose()

    async def _request(self, method: str, path: str, label: str, **kwargs) -> Optional[dict]:
        if not self._circuit.should_try():
            logger.warning("Airtable circuit breaker open, skipping %s", label)
            return None
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            self._circuit.record_success()
            return resp.json()
        except httpx.HTTPStatusError as e:
            # 4xx from Airtable is a field/table mismatch, not an outage
            if e.response.status_code >= 500:
                self._circuit.record_failure()
            logger.error("%s returned %s: %s", label, e.response.status_code, e.response.text[:500])
            return None
        except (httpx.HTTPError, ValueError) as e:
            self._circuit.record_failure()
            logger.error("%s failed: %s", label, e)
            return None

    async def _create(self, table: str, fields: dict, label: str) -> Optional[str]:
        body = await self._request(
            "POST", f"/{quote(table)}", label,
            json={"records": [{"fields": fields}], "typecast": True},
        )
        if not body or not body.get("records"):
            return None
        record_id = body["records"][0].get("id")
        logger.info("%s created: %s", label, record_id)
        return record_id

    async def create_call_log(self, fields: dict) -> Optional[str]:
        return await self._create(CALL_LOGS_TABLE, fields, "Call log create")

    async def create_order(self, fields: dict) -> Optional[str]:
        return await self._create(ORDERS_TABLE, fields, "Order create")

    async def create_booking(self, fields: dict) -> Optional[str]:
        return await self._create(APPOINTMENTS_TABLE, fields, "Appointment create")

    async def find_business_by_routing_key(self, phone_number: str) -> Optional[BusinessContext]:
        """Look up the business whose forwarding number received the call."""
        body = await self._request(
            "GET", f"/{quote(BUSINESSES_TABLE)}", "Business lookup",
            params={
                "filterByFormula": f"{{Forwarding Number}} = {_formula_literal(phone_number)}",
                "maxRecords": 1,
            },
        )
        records = (body or {}).get("records") or []
        if not records:
            logger.warning("No business found for number %s", phone_number)
            return None
        return BusinessContext.from_record(records[0])

    async def get_business(self, record_id: str) -> Optional[BusinessContext]:
        if not record_id:
            return None
        body = await self._request("GET", f"/{quote(BUSINESSES_TABLE)}/{quote(record_id)}", "Business fetch")
        if not body:
            return None
        return BusinessContext.from_record(body)
