"""
Inference provider boundary.
The core only needs "given a video payload and a prompt, return free-form
text". GeminiProvider implements that over the Gemini REST API with httpx;
any other object with a matching async ``invoke`` can be injected instead.
Every failure (transport, HTTP status, malformed or empty response) is
raised as InferenceError so callers can treat them identically.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List, Protocol, runtime_checkable

import httpx

from .config import Settings, get_settings
from .errors import InferenceError

logger = logging.getLogger(__name__)

_MAX_LOG_EVENTS = 200


@runtime_checkable
class InferenceProvider(Protocol):
    async def invoke(self, prompt: str, media: bytes, mime_type: str) -> str:
        ...


class GeminiProvider:
    """
    Gemini ``generateContent`` client.
    - invoke: prompt + inline base64 media -> response text
    - logs: short trace of recent calls (prompt/response truncated)
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self._model = model or settings.gemini_model
        self._base_url = settings.gemini_base_url.rstrip("/")
        self._timeout = timeout or settings.inference_timeout
        self._transport = transport
        self._events: List[Dict[str, Any]] = []

    # Public API -----------------------------------------------------
    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    @property
    def logs(self) -> List[Dict[str, Any]]:
        return list(self._events)

    async def invoke(self, prompt: str, media: bytes, mime_type: str) -> str:
        if not self._api_key:
            raise InferenceError("GEMINI_API_KEY not configured")
        endpoint = f"{self._base_url}/models/{self._model}:generateContent"
        body = {
            "contents": [
                {
                    "parts": [
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(media).decode("ascii"),
                            }
                        },
                        {"text": prompt},
                    ]
                }
            ]
        }
        headers = {"x-goog-api-key": self._api_key}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(endpoint, json=body, headers=headers)
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPError as exc:
                self._log_event("invoke-error", {"prompt": prompt, "error": str(exc)})
                raise InferenceError(f"Inference request failed: {exc}") from exc
            except ValueError as exc:
                self._log_event("invoke-error", {"prompt": prompt, "error": "non-JSON response"})
                raise InferenceError("Inference provider returned a non-JSON response") from exc

        text = self._extract_text(payload)
        if not text:
            self._log_event("invoke-empty", {"prompt": prompt, "payload": str(payload)[:200]})
            raise InferenceError("Inference provider returned an empty response")
        self._log_event("invoke", {"prompt": prompt, "output": text, "media_bytes": len(media)})
        return text

    # Internal helpers ----------------------------------------------
    @staticmethod
    def _extract_text(payload: Any) -> str:
        # {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}
        if not isinstance(payload, dict):
            return ""
        candidates = payload.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts = [part.get("text", "") for part in parts if isinstance(part, dict)]
        return "".join(texts).strip()

    def _log_event(self, event: str, payload: Dict[str, Any]) -> None:
        short_payload = payload.copy()
        if "prompt" in short_payload:
            short_payload["prompt"] = (short_payload["prompt"] or "")[:200]
        if "output" in short_payload and isinstance(short_payload["output"], str):
            short_payload["output"] = short_payload["output"][:200]
        short_payload["event"] = event
        self._events.append(short_payload)
        if len(self._events) > _MAX_LOG_EVENTS:
            del self._events[0]
        logger.debug("Inference event: %s", json.dumps(short_payload, ensure_ascii=False))
