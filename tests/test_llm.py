import json

import httpx
import pytest
import respx
from receptionist.llm import CompletionClient, CompletionError, CompletionResult


BASE_URL = "https://llm.example.com/openai/v1"
MESSAGES = [{"role": "system", "content": "You are Maya."}, {"role": "user", "content": "hi"}]


def _chat_response(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


class TestComplete:
    @pytest.mark.asyncio
    async def test_returns_stripped_reply(self):
        with respx.mock:
            route = respx.post(f"{BASE_URL}/chat/completions").mock(
                return_value=_chat_response("  Hi there! What can I get you?  ")
            )
            client = CompletionClient(api_key="gsk_test", base_url=BASE_URL, model="test-model")
            reply = await client.complete(MESSAGES)
            assert reply == "Hi there! What can I get you?"
            req = route.calls[0].request
            assert req.headers["authorization"] == "Bearer gsk_test"
            body = json.loads(req.content)
            assert body["model"] == "test-model"
            assert body["messages"] == MESSAGES
            assert body["max_tokens"] == 200
            await client.close()

    @pytest.mark.asyncio
    async def test_http_error_raises_completion_error(self):
        with respx.mock:
            respx.post(f"{BASE_URL}/chat/completions").mock(return_value=httpx.Response(429, text="rate limited"))
            client = CompletionClient(api_key="k", base_url=BASE_URL)
            with pytest.raises(CompletionError, match="429"):
                await client.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_network_error_raises_completion_error(self):
        with respx.mock:
            respx.post(f"{BASE_URL}/chat/completions").mock(side_effect=httpx.ConnectError("refused"))
            client = CompletionClient(api_key="k", base_url=BASE_URL)
            with pytest.raises(CompletionError):
                await client.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_malformed_body_raises_completion_error(self):
        with respx.mock:
            respx.post(f"{BASE_URL}/chat/completions").mock(return_value=httpx.Response(200, json={"choices": []}))
            client = CompletionClient(api_key="k", base_url=BASE_URL)
            with pytest.raises(CompletionError):
                await client.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_empty_reply_raises_completion_error(self):
        with respx.mock:
            respx.post(f"{BASE_URL}/chat/completions").mock(return_value=_chat_response("   "))
            client = CompletionClient(api_key="k", base_url=BASE_URL)
            with pytest.raises(CompletionError, match="empty"):
                await client.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self):
        with respx.mock:
            route = respx.post(f"{BASE_URL}/chat/completions").mock(return_value=httpx.Response(503))
            client = CompletionClient(api_key="k", base_url=BASE_URL)
            for _ in range(3):
                with pytest.raises(CompletionError):
                    await client.complete(MESSAGES)
            with pytest.raises(CompletionError, match="circuit open"):
                await client.complete(MESSAGES)
            assert route.call_count == 3


def test_completion_result_variants():
    ok = CompletionResult.success("Hello")
    assert ok.ok and ok.text == "Hello"
    failed = CompletionResult.failure("timeout")
    assert not failed.ok and failed.error == "timeout"
    assert not CompletionResult.failure("").ok
