import json

import httpx
import pytest

from doc_chat_server.llm.client import LLMClient, LLMError


def sse(*events: str) -> bytes:
    return "".join(f"data: {e}\n\n" for e in events).encode("utf-8")


def delta(text: str) -> str:
    return json.dumps({"choices": [{"index": 0, "delta": {"content": text}}]})


def make_client(handler):
    return LLMClient(
        api_key="",
        model="qwen3:0.6b",
        base_url="http://llm.test/v1",
        temperature=0.6,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


async def collect(client, messages):
    return [text async for text in client.stream_chat(messages)]


@pytest.mark.asyncio
async def test_stream_yields_cumulative_text():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            content=sse(delta("Hel"), delta("lo"), delta(" world"), "[DONE]"),
            headers={"content-type": "text/event-stream"},
        )

    texts = await collect(make_client(handler), [{"role": "user", "content": "hi"}])

    assert texts == ["Hel", "Hello", "Hello world"]
    assert seen[0]["stream"] is True
    assert seen[0]["model"] == "qwen3:0.6b"
    assert seen[0]["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
async def test_role_only_and_empty_deltas_are_skipped():
    role_only = json.dumps({"choices": [{"delta": {"role": "assistant"}}]})

    def handler(request):
        return httpx.Response(200, content=sse(role_only, delta("ok"), delta(""), "[DONE]"))

    assert await collect(make_client(handler), []) == ["ok"]


@pytest.mark.asyncio
async def test_error_event_raises():
    def handler(request):
        return httpx.Response(200, content=sse(delta("par"), json.dumps({"error": "oom"})))

    with pytest.raises(LLMError):
        await collect(make_client(handler), [])


@pytest.mark.asyncio
async def test_malformed_event_raises():
    def handler(request):
        return httpx.Response(200, content=sse("{not json"))

    with pytest.raises(LLMError):
        await collect(make_client(handler), [])


@pytest.mark.asyncio
async def test_error_status_raises():
    def handler(request):
        return httpx.Response(503, text="model loading")

    with pytest.raises(LLMError):
        await collect(make_client(handler), [])


@pytest.mark.asyncio
async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(LLMError):
        await collect(make_client(handler), [])


@pytest.mark.asyncio
async def test_check_available():
    ok = make_client(lambda request: httpx.Response(200, json={"data": []}))
    await ok.check_available()

    missing = make_client(lambda request: httpx.Response(404))
    with pytest.raises(LLMError):
        await missing.check_available()
