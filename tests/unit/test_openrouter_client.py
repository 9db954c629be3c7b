import httpx
import pytest

from comptable.llm.openrouter import GroqClient, OpenRouterClient, build_messages


def test_build_messages():
    assert build_messages("hi") == [{"role": "user", "content": "hi"}]
    assert build_messages("hi", "be brief") == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hi"},
    ]


@pytest.mark.asyncio
async def test_openrouter_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = request.read()
        return httpx.Response(200, json={"choices": [{"message": {"content": "hello"}}]})

    async with OpenRouterClient("sk-test", transport=httpx.MockTransport(handler)) as client:
        content = await client.chat(build_messages("hi"), model="openai/gpt-4.1-mini", max_tokens=500)

    assert content == "hello"
    assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"
    assert seen["headers"]["authorization"] == "Bearer sk-test"
    assert seen["headers"]["x-title"] == "comptable"
    assert b'"max_tokens":500' in seen["body"].replace(b" ", b"")


@pytest.mark.asyncio
async def test_groq_sends_response_format(mock_transport):
    bodies = []

    def handler(body):
        bodies.append(body)
        return '{"normalized": {}}'

    async with GroqClient("gsk-test", transport=mock_transport(handler)) as client:
        await client.chat(build_messages("x"), model="m", response_format={"type": "json_object"})

    assert bodies[0]["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_reasoning_fallback_when_content_empty():
    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": "", "reasoning": "- Lyft"}}]})

    async with OpenRouterClient("k", transport=httpx.MockTransport(handler)) as client:
        assert await client.chat(build_messages("x"), model="deepseek/deepseek-r1") == "- Lyft"


@pytest.mark.asyncio
async def test_error_body_without_choices_raises():
    def handler(request):
        return httpx.Response(200, json={"error": {"message": "model not found"}})

    async with OpenRouterClient("k", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ValueError, match="model not found"):
            await client.chat(build_messages("x"), model="nope/nope")


@pytest.mark.asyncio
async def test_client_error_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"error": "bad request"})

    async with OpenRouterClient("k", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.chat(build_messages("x"), model="m")

    assert len(calls) == 1
