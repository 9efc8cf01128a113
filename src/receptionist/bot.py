import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import quote
from xml.sax.saxutils import escape, quoteattr

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from receptionist.business import BusinessContext
from receptionist.config import Settings, configure_logging, load_settings, validate_config
from receptionist.llm import CompletionClient
from receptionist.processor import TurnProcessor, digit_to_utterance
from receptionist.prompts import SESSION_LOST_REPLY, TECHNICAL_DIFFICULTY_REPLY, goodbye, greeting
from receptionist.records import AirtableClient
from receptionist.session import SessionNotFound, SessionStore
from receptionist.state_machine import StageMachine
from receptionist.termination import TerminationPolicy, reply_closes_call

load_dotenv()

logger = logging.getLogger(__name__)

VOICE = "alice"
LANGUAGE = "en-IN"
UNKNOWN_BUSINESS_REPLY = "I'm sorry, this number is not configured. Please try again later."
CALL_ENDED_STATUSES = {"completed", "busy", "failed", "no-answer", "canceled"}


# ── TwiML ──

def _say(text: str) -> str:
    return f'<Say voice="{VOICE}" language="{LANGUAGE}">{escape(text)}</Say>'


def _gather(prompt: str, action_url: str) -> str:
    return (
        f'<Gather input="speech dtmf" action={quoteattr(action_url)} method="POST" '
        'timeout="10" speechTimeout="auto" numDigits="1" actionOnEmptyResult="true">'
        f"{_say(prompt)}"
        "</Gather>"
    )


def _twiml(*verbs: str) -> Response:
    xml = '<?xml version="1.0" encoding="UTF-8"?><Response>' + "".join(verbs) + "</Response>"
    return Response(content=xml, media_type="application/xml")


def _conversation_url(settings: Settings, business_id: str) -> str:
    return f"{settings.public_base_url}/webhook/conversation?business_id={quote(business_id)}"


# ── App wiring ──

def _build_processor(settings: Settings) -> TurnProcessor:
    completion = CompletionClient(
        api_key=settings.groq_api_key,
        base_url=settings.completion_base_url,
        model=settings.completion_model,
        timeout=settings.completion_timeout_s,
    )
    records = AirtableClient(settings.airtable_api_key, settings.airtable_base_id)
    return TurnProcessor(
        store=SessionStore(),
        completion=completion,
        records=records,
        machine=StageMachine(),
        policy=TerminationPolicy(settings.max_caller_turns, settings.no_progress_turns),
        completion_timeout=settings.completion_timeout_s,
    )


def create_app(
    processor: Optional[TurnProcessor] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the webhook app. Without a processor, clients are built from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.processor is None
        if owned:
            configure_logging()
            validate_config()
            app.state.settings = load_settings()
            app.state.processor = _build_processor(app.state.settings)
        proc: TurnProcessor = app.state.processor
        sweeper = asyncio.create_task(
            proc.store.run_sweeper(app.state.settings.sweep_interval_s, app.state.settings.session_max_age_s)
        )
        logger.info("Receptionist ready")
        try:
            yield
        finally:
            sweeper.cancel()
            if owned:
                await proc.completion.close()
                await proc.records.close()

    app = FastAPI(title="Maya Receptionist", lifespan=lifespan)
    app.state.processor = processor
    app.state.settings = settings or Settings(groq_api_key="", airtable_api_key="", airtable_base_id="")

    @app.get("/health")
    async def health():
        return PlainTextResponse("ok")

    @app.post("/webhook/voice")
    async def voice(request: Request):
        """First webhook of a call: find the business by the dialled number and greet."""
        proc: TurnProcessor = request.app.state.processor
        form = await request.form()
        call_id = form.get("CallSid", "")
        caller = form.get("From", "")
        dialled = form.get("To", "")
        logger.info("Incoming call %s from %s to %s", call_id, caller, dialled)

        try:
            business = await proc.records.find_business_by_routing_key(dialled)
            if business is None:
                return _twiml(_say(UNKNOWN_BUSINESS_REPLY), "<Hangup/>")
            proc.store.get_or_create(call_id, business, caller)
        except SessionNotFound:
            return _twiml(_say(SESSION_LOST_REPLY), "<Hangup/>")
        except Exception:
            logger.exception("Error handling incoming call %s", call_id)
            return _twiml(_say(TECHNICAL_DIFFICULTY_REPLY), "<Hangup/>")

        action_url = _conversation_url(request.app.state.settings, business.id)
        return _twiml(_gather(greeting(business), action_url), _say(goodbye(business)))

    @app.post("/webhook/conversation")
    async def conversation(request: Request):
        """One caller turn: speech or a keypad press in, Maya's reply out."""
        proc: TurnProcessor = request.app.state.processor
        settings: Settings = request.app.state.settings
        business_id = request.query_params.get("business_id", "")
        form = await request.form()
        call_id = form.get("CallSid", "")
        caller = form.get("From", "")
        utterance = form.get("SpeechResult") or ""
        digits = form.get("Digits") or ""
        if not utterance and digits:
            utterance = digit_to_utterance(digits)

        action_url = _conversation_url(settings, business_id)
        try:
            business = await _resolve_business(proc, call_id, business_id)
            if business is None:
                return _twiml(_say(UNKNOWN_BUSINESS_REPLY), "<Hangup/>")
            result = await proc.handle_turn(call_id, business, utterance, caller)
        except SessionNotFound:
            logger.warning("Turn for unknown or ended call %s", call_id)
            return _twiml(_say(SESSION_LOST_REPLY), "<Hangup/>")
        except Exception:
            logger.exception("Error handling turn for call %s", call_id)
            return _twiml(_gather(TECHNICAL_DIFFICULTY_REPLY, action_url))

        if result.continue_call:
            return _twiml(_gather(result.reply, action_url))
        verbs = [_say(result.reply)]
        if not reply_closes_call(result.reply):
            verbs.append(_say(goodbye(business)))
        verbs.append("<Hangup/>")
        return _twiml(*verbs)

    @app.post("/webhook/status")
    async def status(request: Request):
        """Twilio status callback. A finished call writes its records if no turn already did."""
        proc: TurnProcessor = request.app.state.processor
        form = await request.form()
        call_id = form.get("CallSid", "")
        call_status = form.get("CallStatus", "")
        logger.info("Call %s status: %s", call_id, call_status)
        if call_id and call_status in CALL_ENDED_STATUSES:
            await proc.end_call(call_id)
        return PlainTextResponse("ok")

    return app


async def _resolve_business(proc: TurnProcessor, call_id: str, business_id: str) -> Optional[BusinessContext]:
    session = proc.store.peek(call_id)
    if session is not None:
        return session.business
    return await proc.records.get_business(business_id)


app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("receptionist.bot:app", host="0.0.0.0", port=port)
