from receptionist.session import CALLER, ASSISTANT, Turn

_PREFIXES = {CALLER: "Customer", ASSISTANT: "AI"}


def to_plain_text(transcript: list[Turn]) -> str:
    """Convert a call transcript to the plain text stored on the call log.

    Caller lines are prefixed with "Customer:", Maya's lines with "AI:".
    """
    if not transcript:
        return ""
    return "\n".join(
        f"{_PREFIXES[turn.speaker]}: {turn.text}"
        for turn in transcript
        if turn.speaker in _PREFIXES
    )


def to_timestamped_dump(
    transcript: list[Turn],
    start_time: float,
    call_id: str,
    phone: str,
    final_stage: str,
) -> dict:
    """Build a timestamped transcript dump dict for structured logging.

    Timestamps are converted to relative seconds from call start.
    If start_time is 0, uses the first turn's timestamp as base.
    """
    base_time = start_time
    if base_time <= 0 and transcript:
        base_time = transcript[0].timestamp

    entries = [
        {
            "t": round(turn.timestamp - base_time, 1),
            "role": turn.speaker,
            "stage": turn.stage,
            "content": turn.text,
        }
        for turn in transcript
    ]

    return {
        "call_id": call_id,
        "phone": phone,
        "final_stage": final_stage,
        "entries": entries,
    }
