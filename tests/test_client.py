"""Tests for rancho_assistant/client.py: retry-on-503 policy."""

import httpx
import pytest
from unittest.mock import AsyncMock, patch

from rancho_assistant.client import AssistantBusyError, AssistantClient, AssistantRequestError

LOADING = {"error": "Model loading", "estimated_time": 20}
ANSWER = {"response": "Call 311.", "chartData": None, "sources": []}


def scripted_transport(responses, calls):
    """Replays (status, body) pairs in order and records each request"""
    def handler(request):
        calls.append(request)
        status, body = responses[len(calls) - 1]
        return httpx.Response(status, json=body)
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_retries_after_503_then_succeeds():
    calls = []
    transport = scripted_transport([(503, LOADING), (503, LOADING), (200, ANSWER)], calls)
    client = AssistantClient("http://assistant.local", transport=transport)

    with patch("rancho_assistant.client.asyncio.sleep", new=AsyncMock()) as sleep:
        body = await client.ask("Where do I report a pothole?", agent_type="customer")

    assert body == ANSWER
    assert len(calls) == 3
    assert sleep.await_count == 2
    sleep.assert_awaited_with(2.0)
    assert calls[0].url.path == "/api/chat"


@pytest.mark.asyncio
async def test_gives_up_after_three_503s():
    calls = []
    transport = scripted_transport([(503, LOADING)] * 3, calls)
    client = AssistantClient("http://assistant.local", transport=transport)

    with patch("rancho_assistant.client.asyncio.sleep", new=AsyncMock()) as sleep:
        with pytest.raises(AssistantBusyError):
            await client.ask("SMUD rebates?")

    assert len(calls) == 3
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_other_errors_are_not_retried():
    calls = []
    transport = scripted_transport([(500, {"error": "Internal server error"})], calls)
    client = AssistantClient("http://assistant.local", transport=transport)

    with pytest.raises(AssistantRequestError) as exc_info:
        await client.ask("SMUD rebates?")

    assert exc_info.value.status_code == 500
    assert exc_info.value.error == "Internal server error"
    assert len(calls) == 1
