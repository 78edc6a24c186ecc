"""Tests for the hosted model client, using httpx.MockTransport."""
import json

import httpx
import pytest

from docqa.llm_client import LLMClientError, OpenAIClient


def _client(handler) -> OpenAIClient:
    return OpenAIClient(
        base_url="https://api.test/v1",
        api_key="sk-test",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_embeddings_posts_model_and_input():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2, 0.3]}]})

    vector = await _client(handler).embeddings("hello", model="text-embedding-3-small")

    assert vector == [0.1, 0.2, 0.3]
    assert seen["path"] == "/v1/embeddings"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"] == {"model": "text-embedding-3-small", "input": "hello"}


@pytest.mark.asyncio
async def test_chat_returns_first_choice_content():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, json={"choices": [{"message": {"role": "assistant", "content": "Hi."}}]}
        )

    messages = [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]
    reply = await _client(handler).chat(messages, model="gpt-test", temperature=0.0)

    assert reply == "Hi."
    assert seen["body"]["messages"] == messages
    assert seen["body"]["temperature"] == 0.0


@pytest.mark.asyncio
async def test_chat_missing_content_is_empty_string():
    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": None}}]})

    assert await _client(handler).chat([{"role": "user", "content": "u"}]) == ""


@pytest.mark.asyncio
async def test_http_errors_are_wrapped():
    def handler(request):
        return httpx.Response(429, json={"error": {"message": "rate limited"}})

    with pytest.raises(LLMClientError):
        await _client(handler).embeddings("hello")


@pytest.mark.asyncio
async def test_transport_errors_are_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(LLMClientError):
        await _client(handler).chat([{"role": "user", "content": "u"}])


@pytest.mark.asyncio
async def test_malformed_payloads_are_wrapped():
    def handler(request):
        return httpx.Response(200, json={"unexpected": True})

    client = _client(handler)

    with pytest.raises(LLMClientError):
        await client.embeddings("hello")
    with pytest.raises(LLMClientError):
        await client.chat([{"role": "user", "content": "u"}])


@pytest.mark.asyncio
async def test_list_models():
    def handler(request):
        return httpx.Response(200, json={"data": [{"id": "a"}, {"id": "b"}]})

    assert await _client(handler).list_models() == ["a", "b"]
