import json
import time
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from receptionist.extraction import Booking, Order
from receptionist.records import AirtableClient
from receptionist.session import CallSession
from receptionist.transcript import to_plain_text, to_timestamped_dump

logger = logging.getLogger(__name__)

INTENT_ORDER = "Order"
INTENT_BOOKING = "Booking"
INTENT_GENERAL = "General"

DUMP_TAG = "TRANSCRIPT_DUMP"
DUMP_LINE_LIMIT = 3500


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _business_link(session: CallSession) -> list[str]:
    # Airtable linked-record fields take a list of record ids
    return [session.business_id] if session.business_id else []


def derive_intent(session: CallSession) -> str:
    """Call log intent from whatever the call produced."""
    if session.order_details is not None:
        return INTENT_ORDER
    if session.appointment_details is not None:
        return INTENT_BOOKING
    return INTENT_GENERAL


def build_call_log_fields(session: CallSession, end_time: float) -> dict:
    return {
        "Business": _business_link(session),
        "Caller Number": session.caller_number or "Unknown",
        "Call SID": session.call_id,
        "Call Date": _iso(session.started_at),
        "Status": "Completed",
        "Transcript": to_plain_text(session.transcript),
        "Intent": derive_intent(session),
        "Duration": session.duration(end_time),
    }


def build_order_fields(session: CallSession, order: Order) -> dict:
    return {
        "Business": _business_link(session),
        "Customer Name": order.customer_name,
        "Customer Phone": session.caller_number or "Unknown",
        "Items": json.dumps([item.to_dict() for item in order.items]),
        "Total": order.total,
        "Pickup Time": order.pickup_eta,
        "Status": "Received",
        "Order Date": _iso(time.time()),
    }


def build_booking_fields(session: CallSession, booking: Booking) -> dict:
    return {
        "Business": _business_link(session),
        "Customer Name": booking.customer_name,
        "Customer Phone": session.caller_number or "Unknown",
        "Service": booking.service,
        "Date & Time": booking.date_time,
        "Status": "Confirmed",
    }


@dataclass
class ReconcileReport:
    call_log_id: Optional[str] = None
    order_id: Optional[str] = None
    booking_id: Optional[str] = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _json_size(value) -> int:
    return len(json.dumps(value).encode("utf-8"))


def transcript_dump_lines(dump: dict, limit: int = DUMP_LINE_LIMIT) -> list[str]:
    """Render a transcript dump as ``TRANSCRIPT_DUMP|i/n|{json}`` log lines.

    Entries are packed greedily so each line's JSON stays under ``limit``
    bytes. Call fields ride on the first line only. An entry bigger than the
    limit gets a line to itself.
    """
    header = {k: v for k, v in dump.items() if k != "entries"}
    groups: list[list[dict]] = [[]]
    room = limit - _json_size({**header, "entries": []})
    for entry in dump.get("entries", []):
        cost = _json_size(entry) + 2  # ", " between entries
        if groups[-1] and cost > room:
            groups.append([])
            room = limit - _json_size({"entries": []})
        groups[-1].append(entry)
        room -= cost

    bodies = [{**header, "entries": groups[0]}] + [{"entries": g} for g in groups[1:]]
    return [
        f"{DUMP_TAG}|{i}/{len(bodies)}|{json.dumps(body)}"
        for i, body in enumerate(bodies, start=1)
    ]


async def _write(label: str, write, fields: dict, report: ReconcileReport) -> Optional[str]:
    try:
        record_id = await write(fields)
    except Exception as e:
        logger.error("%s write raised: %s", label, e)
        report.errors.append(f"{label}: {e}")
        return None
    if record_id is None:
        logger.error("%s write failed", label)
        report.errors.append(f"{label}: not written")
    return record_id


async def reconcile(
    session: CallSession,
    records: AirtableClient,
    end_time: Optional[float] = None,
) -> ReconcileReport:
    """Flatten an ended call into back-office records. Runs once per session.

    Every write is attempted on its own; a failed order write never stops the
    call log and nothing raises past this function.
    """
    report = ReconcileReport()
    if session.reconciled:
        logger.info("[%s] Already reconciled, skipping", session.call_id)
        return report
    session.reconciled = True
    end_time = time.time() if end_time is None else end_time

    report.call_log_id = await _write(
        "Call log", records.create_call_log, build_call_log_fields(session, end_time), report,
    )
    if session.order_details is not None:
        report.order_id = await _write(
            "Order", records.create_order, build_order_fields(session, session.order_details), report,
        )
    if session.appointment_details is not None:
        report.booking_id = await _write(
            "Booking", records.create_booking,
            build_booking_fields(session, session.appointment_details), report,
        )

    dump = to_timestamped_dump(
        session.transcript,
        start_time=session.started_at,
        call_id=session.call_id,
        phone=session.caller_number,
        final_stage=session.stage.value,
    )
    dump["end_reason"] = session.end_reason
    dump["duration_s"] = session.duration(end_time)
    for line in transcript_dump_lines(dump):
        logger.info(line)

    logger.info(
        "Post-call complete for %s: stage=%s, reason=%s, intent=%s, errors=%d",
        session.call_id, session.stage.value, session.end_reason or "-",
        derive_intent(session), len(report.errors),
    )
    return report
