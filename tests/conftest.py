"""Shared fixtures: fake chat clients, no network."""

import asyncio
import json
from typing import Callable

import httpx
import pytest

from comptable.models.output import RawModelResponse


def chat_completion(content: str) -> dict:
    return {
        "id": "gen-test",
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 5, "completion_tokens": 5, "total_tokens": 10},
    }


class StubChatClient:
    """Stands in for ChatClient; reply(model, messages) returns text, raises, or awaits."""

    def __init__(self, reply: Callable):
        self.reply = reply
        self.calls = []
        self.closed = False

    async def chat(self, messages, model, temperature=0.7, max_tokens=500, response_format=None):
        self.calls.append({
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": response_format,
        })
        result = self.reply(model, messages)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self):
        self.closed = True


@pytest.fixture
def stub_client():
    def _factory(reply):
        return StubChatClient(reply)
    return _factory


@pytest.fixture
def mock_transport():
    """Build an httpx.MockTransport from handler(body) -> str | httpx.Response."""
    def _factory(handler):
        def _handle(request: httpx.Request) -> httpx.Response:
            result = handler(json.loads(request.content))
            if isinstance(result, httpx.Response):
                return result
            return httpx.Response(200, json=chat_completion(result))
        return httpx.MockTransport(_handle)
    return _factory


def ok(model: str, items: list[str], kind: str = "competitors") -> RawModelResponse:
    return RawModelResponse(model=model, kind=kind, items=items)


def failed(model: str, reason: str = "timeout", kind: str = "competitors") -> RawModelResponse:
    return RawModelResponse(model=model, kind=kind, failure=reason)
