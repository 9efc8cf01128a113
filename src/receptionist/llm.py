import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from receptionist.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "llama-3.3-70b-versatile"


class CompletionError(Exception):
    """The completion provider could not produce a reply for this attempt."""


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of one completion attempt: either ``text`` or ``error`` is set."""

    text: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error

    @classmethod
    def success(cls, text: str) -> "CompletionResult":
        return cls(text=text)

    @classmethod
    def failure(cls, error: str) -> "CompletionResult":
        return cls(error=error or "unknown error")


class CompletionClient:
    """Chat completions against an OpenAI-compatible endpoint (Groq by default).

    One request per call, no retries: the turn processor owns the fallback.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        max_tokens: int = 200,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._circuit = CircuitBreaker(
            failure_threshold=3,
            cooldown_seconds=30.0,
            label="completion provider",
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
        await self._client.aclose()

    async def complete(self, messages: list[dict]) -> str:
        if not self._circuit.should_try():
            raise CompletionError("completion provider circuit open")
        try:
            resp = await self._client.post(
                "/chat/completions",
                json={
                    "model": self.model,
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens,
                    "messages": messages,
                },
            )
            resp.raise_for_status()
            content = resp.json()["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            self._circuit.record_failure()
            logger.error("Completion request returned %s: %s", e.response.status_code, e.response.text[:500])
            raise CompletionError(f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            self._circuit.record_failure()
            logger.error("Completion request failed: %s", e)
            raise CompletionError(str(e) or type(e).__name__) from e

        self._circuit.record_success()
        if not content or not content.strip():
            raise CompletionError("empty completion")
        return content.strip()
