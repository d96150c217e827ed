"""
Tests for OpenRouterClient with a mocked aiohttp session.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from agentic_memory.services.llm import OpenRouterClient, OpenRouterError


def _session(status=200, data=None, text=""):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=data)
    response.text = AsyncMock(return_value=text)

    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    session.post.return_value.__aenter__.return_value = response
    return session


@pytest.fixture
def client():
    return OpenRouterClient(api_key="test-key", model="test/model")


def test_unconfigured(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    assert OpenRouterClient().is_configured is False


@pytest.mark.asyncio
async def test_missing_key_raises(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    with pytest.raises(ValueError):
        await OpenRouterClient().generate_completion("hi")


@pytest.mark.asyncio
async def test_completion(client):
    client.session = _session(data={
        "choices": [{"message": {"content": "summary text"}}],
        "usage": {"total_tokens": 12, "prompt_tokens": 10, "completion_tokens": 2},
    })

    text = await client.generate_completion("Summarize", system_prompt="Be brief")

    assert text == "summary text"
    assert client.get_last_usage()["total_tokens"] == 12
    payload = client.session.post.call_args.kwargs["json"]
    assert payload["model"] == "test/model"
    assert [m["role"] for m in payload["messages"]] == ["system", "user"]
    assert client.session.post.call_args.kwargs["headers"]["Authorization"] == "Bearer test-key"


@pytest.mark.asyncio
async def test_http_error(client):
    client.session = _session(status=429, text="rate limited")

    with pytest.raises(OpenRouterError, match="429"):
        await client.generate_completion("Summarize")


@pytest.mark.asyncio
async def test_empty_choices(client):
    client.session = _session(data={"choices": []})

    with pytest.raises(OpenRouterError, match="Invalid response"):
        await client.generate_completion("Summarize")


@pytest.mark.asyncio
async def test_close(client):
    session = _session()
    client.session = session

    await client.close()

    session.close.assert_awaited_once()
