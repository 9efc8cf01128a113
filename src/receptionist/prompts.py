from receptionist.business import BusinessContext
from receptionist.classification import Intent
from receptionist.extraction import Booking, Order
from receptionist.session import CALLER, CallSession
from receptionist.stages import Stage

PERSONA = """You are Maya, a HUMAN assistant for {name}.

PERSONALITY: You are friendly, warm, and conversational. Speak naturally like a real person, not a robot.

IMPORTANT: Always respond in ENGLISH only, regardless of what language the customer uses.

Business: {name}
Type: {business_type}
Hours: {hours}
Menu: {menu}

CONVERSATION STATE: Turn {turn}, Stage: {stage}

NATURAL SPEECH RULES:
1. Use contractions: "I'm", "you're", "that's", "we're", "it's"
2. Be conversational: "Sure!", "Alright", "Got it", "No problem"
3. Show personality: "That's a great choice!", "Mmm, that's our most popular item"
4. NEVER ask "Is there anything else I can help you with?" or any variant of it
5. Keep responses to one or two short sentences; this is a phone call
6. Say quantities as digits ("2 chicken biryani") when repeating an order back

GOOD EXAMPLES:
"Hi there! Thanks for calling. What can I get started for you today?"
"Oh, the chicken biryani? Great choice! That's actually our specialty. How many would you like?"
"Alright, so that's 2 chicken biryani... comes to $30. Sound good?"
"Perfect! We'll have that ready for you in about 30 minutes." """

CONFIRMING_PROMPT = """## CONFIRMING
Wrap up naturally:
1. Say something like "Alright, let me make sure I got everything..."
2. List their items conversationally
3. Give the total in a friendly way
4. Ask for confirmation casually: "Sound good?" or "Is that right?"
{summary}"""

CONFIRM_ORDER_PROMPT = """## CONFIRM ORDER
Time to confirm their order. Use natural language like:
"Okay, so I've got [items] for you. That'll be [total]. Sound good?"
{summary}"""

COMPLETE_PROMPT = """## COMPLETE
The caller confirmed. Tell them when it will be ready, then close with
"Thank you for calling {name}, have a great day!" """

LONG_CALL_PROMPT = """## WRAP UP
This conversation is getting long. Help them finish up naturally without being pushy."""


def _action_summary(session: CallSession) -> str:
    lines = []
    order = session.order_details
    if isinstance(order, Order) and order.items:
        items = ", ".join(f"{i.quantity} {i.name}" for i in order.items)
        lines.append(f"ORDER SO FAR: {items}. Total ${order.total:.2f}. Ready in {order.pickup_eta}.")
    booking = session.appointment_details
    if isinstance(booking, Booking):
        lines.append(f"RESERVATION SO FAR: {booking.service}, {booking.date_time}, name {booking.customer_name}.")
    return "\n".join(lines)


def _stage_prompt(session: CallSession) -> str:
    summary = _action_summary(session)
    if session.stage == Stage.COMPLETE:
        return COMPLETE_PROMPT.format(name=session.business.name)
    if session.stage == Stage.CONFIRMING:
        return CONFIRMING_PROMPT.format(summary=summary)
    if session.turn_count >= 3 and session.has_action:
        return CONFIRM_ORDER_PROMPT.format(summary=summary)
    if session.turn_count >= 5:
        return LONG_CALL_PROMPT
    return ""


def build_system_prompt(business: BusinessContext, session: CallSession) -> str:
    persona = PERSONA.format(
        name=business.name,
        business_type=business.business_type,
        hours=business.hours,
        menu=business.menu,
        turn=session.turn_count,
        stage=session.stage.value,
    )
    stage_prompt = _stage_prompt(session)
    if not stage_prompt:
        return persona
    return f"{persona}\n\n{stage_prompt}"


def build_messages(session: CallSession, utterance: str) -> list[dict]:
    """System prompt, prior turns in order, then the current utterance.

    The current caller turn is already on the transcript by the time this runs,
    so it is left out of the replay and sent last on its own.
    """
    messages = [{"role": "system", "content": build_system_prompt(session.business, session)}]
    prior = session.transcript
    if prior and prior[-1].speaker == CALLER and prior[-1].text == utterance:
        prior = prior[:-1]
    for turn in prior:
        role = "user" if turn.speaker == CALLER else "assistant"
        messages.append({"role": role, "content": turn.text})
    messages.append({"role": "user", "content": utterance})
    return messages


# Deterministic replies for when the completion provider is unavailable.
FALLBACK_REPLIES = {
    Intent.ORDER: "I'd be happy to take your order. What would you like?",
    Intent.INFO: "We're open {hours}.",
    Intent.BOOKING: "I can help you with a reservation. What date and time would you prefer?",
    Intent.GENERAL: "I can help you with orders, hours, or reservations. What would you like?",
}

REPROMPT_REPLY = "I didn't catch that. Could you please say that again, or press 1 for our menu or 2 for our hours?"
SESSION_LOST_REPLY = "I'm sorry, I lost track of our conversation. Please call us back and I'll be happy to help."
TECHNICAL_DIFFICULTY_REPLY = "I'm sorry, I'm having trouble processing that. Could you please say it again?"


def fallback_reply(intent: Intent, business: BusinessContext) -> str:
    template = FALLBACK_REPLIES.get(intent, FALLBACK_REPLIES[Intent.GENERAL])
    return template.format(hours=business.hours)


def greeting(business: BusinessContext) -> str:
    return (
        f"Thank you for calling {business.name}. I'm Maya, your AI assistant. "
        "How can I help you today? You can also press 1 for our menu or 2 for our hours."
    )


def goodbye(business: BusinessContext) -> str:
    return f"Thank you for calling {business.name}. Have a great day!"
