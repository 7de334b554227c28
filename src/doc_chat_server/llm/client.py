"""
LLM Client

Streaming chat client for any OpenAI-compatible `/chat/completions`
endpoint. The server streams incremental deltas over server-sent events;
this client folds them and yields the cumulative text after every delta, so
consumers only ever need the latest snapshot.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..config import settings

logger = logging.getLogger("docchat.llm")

_SSE_DONE = "[DONE]"


class LLMError(RuntimeError):
    """Raised when the language model cannot be reached or fails mid-stream."""


class LLMClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key.get_secret_value()
        self.model = model or settings.llm_model
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.timeout = timeout or settings.llm_timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def check_available(self) -> None:
        """
        Confirm the model server answers on `/models`.

        Raises
        ------
        LLMError
            If the server is unreachable or answers with an error status.
        """
        try:
            async with self._client() as client:
                resp = await client.get(f"{self.base_url}/models", headers=self._headers())
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise LLMError(f"Language model unavailable: {type(exc).__name__}") from exc

    async def stream_chat(
        self,
        messages: List[Dict[str, Any]],
    ) -> AsyncIterator[str]:
        """
        Stream a chat completion, yielding the cumulative assistant text.

        Parameters
        ----------
        messages : List[Dict[str, Any]]
            OpenAI-style messages: {"role": ..., "content": ...}.

        Yields
        ------
        str
            Full text generated so far, after each received delta.

        Raises
        ------
        LLMError
            On transport errors, error status codes, or malformed events.
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "stream": True,
        }

        text = ""
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=self._headers(),
                ) as resp:
                    if resp.status_code >= 400:
                        body = await resp.aread()
                        logger.error(
                            "Chat request failed: status %d, body: %s",
                            resp.status_code,
                            body[:200].decode("utf-8", errors="replace"),
                        )
                        raise LLMError(f"Chat request failed with status {resp.status_code}.")

                    async for line in resp.aiter_lines():
                        event = self._parse_event(line)
                        if event is None:
                            continue
                        if event == _SSE_DONE:
                            break
                        text += event
                        yield text
        except httpx.HTTPError as exc:
            raise LLMError(f"Chat stream failed: {type(exc).__name__}") from exc

    @staticmethod
    def _parse_event(line: str) -> Optional[str]:
        """
        Return the content delta of one SSE line, `_SSE_DONE` for the
        terminator, or None for lines that carry no text.
        """
        line = line.strip()
        if not line.startswith("data:"):
            return None

        data = line[len("data:"):].strip()
        if data == _SSE_DONE:
            return _SSE_DONE

        try:
            chunk = json.loads(data)
        except ValueError as exc:
            raise LLMError("Malformed stream event.") from exc

        if not isinstance(chunk, dict):
            raise LLMError("Malformed stream event.")
        if "error" in chunk:
            raise LLMError(f"Model reported an error: {chunk['error']!r}")

        choices = chunk.get("choices") or []
        if not choices:
            return None

        delta = choices[0].get("delta") or {}
        content = delta.get("content")
        return content or None
