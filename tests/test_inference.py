import base64
import json

import httpx
import pytest

from videotrust.errors import InferenceError
from videotrust.inference import GeminiProvider, InferenceProvider


def gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def provider_for(handler, api_key="test-key"):
    return GeminiProvider(api_key=api_key, model="gemini-test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_invoke_sends_prompt_and_inline_media():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_reply("Confidence: 42"))

    provider = provider_for(handler)
    text = await provider.invoke("Describe this", b"\x00\x01video", "video/webm")

    assert text == "Confidence: 42"
    assert seen["url"].endswith("/models/gemini-test:generateContent")
    assert seen["key"] == "test-key"
    parts = seen["body"]["contents"][0]["parts"]
    assert parts[0]["inline_data"] == {
        "mime_type": "video/webm",
        "data": base64.b64encode(b"\x00\x01video").decode("ascii"),
    }
    assert parts[1] == {"text": "Describe this"}
    assert provider.logs[-1]["event"] == "invoke"
    assert provider.logs[-1]["media_bytes"] == 7


@pytest.mark.asyncio
async def test_http_error_becomes_inference_error():
    provider = provider_for(lambda request: httpx.Response(500, json={"error": "overloaded"}))
    with pytest.raises(InferenceError, match="Inference request failed"):
        await provider.invoke("prompt", b"v", "video/mp4")
    assert provider.logs[-1]["event"] == "invoke-error"


@pytest.mark.asyncio
async def test_empty_candidates_become_inference_error():
    provider = provider_for(lambda request: httpx.Response(200, json={"candidates": []}))
    with pytest.raises(InferenceError, match="empty response"):
        await provider.invoke("prompt", b"v", "video/mp4")


@pytest.mark.asyncio
async def test_non_json_body_becomes_inference_error():
    provider = provider_for(lambda request: httpx.Response(200, text="<html>gateway</html>"))
    with pytest.raises(InferenceError, match="non-JSON"):
        await provider.invoke("prompt", b"v", "video/mp4")


@pytest.mark.asyncio
async def test_missing_key_fails_without_network():
    def handler(request):
        raise AssertionError("no request expected")

    provider = provider_for(handler, api_key="")
    assert provider.configured is False
    with pytest.raises(InferenceError, match="GEMINI_API_KEY"):
        await provider.invoke("prompt", b"v", "video/mp4")


def test_gemini_provider_satisfies_protocol():
    assert isinstance(GeminiProvider(api_key="k"), InferenceProvider)


def test_log_entries_are_truncated():
    provider = GeminiProvider(api_key="k")
    provider._log_event("invoke", {"prompt": "p" * 500, "output": "o" * 500})
    entry = provider.logs[-1]
    assert len(entry["prompt"]) == 200
    assert len(entry["output"]) == 200
