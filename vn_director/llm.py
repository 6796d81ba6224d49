"""LLM client: HTTP connection to a chat-completions backend.

The turn pipeline injects an LLM callable matching the protocol:

    async def __call__(self, stage: str, request: ChatRequest) -> str: ...

`stage` identifies the caller (e.g. "dialogue") and is only used for logging.
An empty string means the backend answered with blank content; the caller
decides whether to retry.

Production code constructs a ChatLLM from the session config and passes it to
run_turn(). Tests use a stub or patch httpx instead.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from vn_director.models import ChatRequest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, stage: str, request: ChatRequest) -> str: ...


# ---------------------------------------------------------------------------
# ChatLLM: connects to an OpenAI-compatible backend (OpenRouter by default)
# ---------------------------------------------------------------------------

class ChatLLM:
    """Async HTTP client for chat-completions backends.

    POST {base_url}/chat/completions
      {"model": ..., "messages": [...], "temperature": ..., "maxTokens": ...}
    Response: {"choices": [{"message": {"content": "..."}}]}

    Args:
        base_url: Base URL of the API, e.g. "https://openrouter.ai/api/v1".
        api_key:  Bearer token, or empty string if not required.
        timeout:  HTTP timeout in seconds. Defaults to 120.
    """

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 120.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _parse_response(self, data: dict) -> str:
        """Extract the first choice's message content from the response body."""
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices[0].get("message"), dict):
            raise LLMError("Unexpected response format from chat-completions backend")
        return choices[0]["message"].get("content") or ""

    async def __call__(self, stage: str, request: ChatRequest) -> str:
        url = f"{self._base_url}/chat/completions"
        body = request.model_dump(by_alias=True)
        logger.debug("llm call stage=%s url=%s messages=%d", stage, url, len(request.messages))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e

        text = self._parse_response(resp.json())
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


# ---------------------------------------------------------------------------
# LLMError: raised by ChatLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
