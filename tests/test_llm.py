"""Tests for vn_director.llm.ChatLLM."""

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from vn_director.llm import ChatLLM, LLMError
from vn_director.models import ChatRequest, PromptMessage


def _mock_response(body: dict, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


def _request() -> ChatRequest:
    return ChatRequest(
        model="test-model",
        messages=[PromptMessage(role="user", content="Hello")],
        temperature=0.5,
        max_tokens=256,
    )


def _reply(text) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


class TestChatLLM:
    @pytest.fixture
    def llm(self) -> ChatLLM:
        return ChatLLM(base_url="https://example.test/api/v1/", api_key="")

    async def test_happy_path(self, llm: ChatLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_reply("Hi there.")))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await llm("dialogue", _request())
        assert result == "Hi there."

    async def test_posts_to_chat_completions(self, llm: ChatLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_reply("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("dialogue", _request())
        url = mock_post.call_args[0][0]
        assert url == "https://example.test/api/v1/chat/completions"

    async def test_body_uses_wire_field_names(self, llm: ChatLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_reply("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("dialogue", _request())
        sent_body = mock_post.call_args.kwargs["json"]
        assert sent_body == {
            "model": "test-model",
            "messages": [{"role": "user", "content": "Hello"}],
            "temperature": 0.5,
            "maxTokens": 256,
        }

    async def test_bearer_token_sent_when_api_key_set(self) -> None:
        llm = ChatLLM(base_url="https://example.test/api/v1", api_key="secret")
        mock_post = AsyncMock(return_value=_mock_response(_reply("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("dialogue", _request())
        headers = mock_post.call_args.kwargs["headers"]
        assert headers.get("Authorization") == "Bearer secret"

    async def test_no_auth_header_when_no_api_key(self, llm: ChatLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_reply("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("dialogue", _request())
        headers = mock_post.call_args.kwargs["headers"]
        assert "Authorization" not in headers

    async def test_null_content_is_empty_string(self, llm: ChatLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_reply(None)))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await llm("dialogue", _request()) == ""

    async def test_malformed_response_raises(self, llm: ChatLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"error": "nope"}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="Unexpected response format"):
                await llm("dialogue", _request())

    async def test_http_error_raises_llm_error(self, llm: ChatLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=500))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="HTTP 500"):
                await llm("dialogue", _request())

    async def test_connect_error_raises_llm_error(self, llm: ChatLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="Cannot connect"):
                await llm("dialogue", _request())

    async def test_timeout_raises_llm_error(self, llm: ChatLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="timed out"):
                await llm("dialogue", _request())
