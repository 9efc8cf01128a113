"""Startup configuration.

Checks that all required environment variables are set before the server
accepts calls.  Called from bot.py at startup so that a missing key causes
a clear failure rather than every caller hearing the fallback replies.
"""

import os
import sys
import logging
from dataclasses import dataclass

from receptionist.llm import DEFAULT_BASE_URL, DEFAULT_MODEL
from receptionist.termination import MAX_CALLER_TURNS, NO_PROGRESS_TURNS

logger = logging.getLogger(__name__)

REQUIRED_VARS = [
    "GROQ_API_KEY",
    "AIRTABLE_API_KEY",
    "AIRTABLE_BASE_ID",
]

OPTIONAL_VARS = [
    "COMPLETION_BASE_URL",
    "COMPLETION_MODEL",
    "COMPLETION_TIMEOUT_S",
    "MAX_CALLER_TURNS",
    "NO_PROGRESS_TURNS",
    "SESSION_MAX_AGE_S",
    "SWEEP_INTERVAL_S",
    "PUBLIC_BASE_URL",
    "LOG_LEVEL",
]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "") -> None:
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def validate_config() -> None:
    """Validate environment variables at startup.

    Exits the process with a clear error if any required variable is missing
    or empty.  Logs warnings for missing optional variables.
    """
    missing = [var for var in REQUIRED_VARS if not os.getenv(var)]

    if missing:
        print(
            f"\nFATAL: Missing required environment variables:\n"
            f"  {', '.join(missing)}\n"
            f"\nSet them in .env (local) or in the host's secret store (production).\n",
            file=sys.stderr,
        )
        sys.exit(1)

    for var in OPTIONAL_VARS:
        if not os.getenv(var):
            logger.warning("Optional env var %s is not set, using default", var)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class Settings:
    groq_api_key: str
    airtable_api_key: str
    airtable_base_id: str
    completion_base_url: str = DEFAULT_BASE_URL
    completion_model: str = DEFAULT_MODEL
    completion_timeout_s: float = 8.0
    max_caller_turns: int = MAX_CALLER_TURNS
    no_progress_turns: int = NO_PROGRESS_TURNS
    session_max_age_s: float = 3600.0
    sweep_interval_s: float = 3600.0
    public_base_url: str = ""
    port: int = 8000


def load_settings() -> Settings:
    return Settings(
        groq_api_key=os.getenv("GROQ_API_KEY", ""),
        airtable_api_key=os.getenv("AIRTABLE_API_KEY", ""),
        airtable_base_id=os.getenv("AIRTABLE_BASE_ID", ""),
        completion_base_url=os.getenv("COMPLETION_BASE_URL") or DEFAULT_BASE_URL,
        completion_model=os.getenv("COMPLETION_MODEL") or DEFAULT_MODEL,
        completion_timeout_s=_env_float("COMPLETION_TIMEOUT_S", 8.0),
        max_caller_turns=_env_int("MAX_CALLER_TURNS", MAX_CALLER_TURNS),
        no_progress_turns=_env_int("NO_PROGRESS_TURNS", NO_PROGRESS_TURNS),
        session_max_age_s=_env_float("SESSION_MAX_AGE_S", 3600.0),
        sweep_interval_s=_env_float("SWEEP_INTERVAL_S", 3600.0),
        public_base_url=(os.getenv("PUBLIC_BASE_URL") or "").rstrip("/"),
        port=_env_int("PORT", 8000),
    )
