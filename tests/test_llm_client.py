"""Tests for complete_text() bare LLM call."""

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from cozy.errors import UpstreamError
from cozy.llm.client import complete_text, is_configured
from cozy.llm.models import MODEL_MAP


def _mock_client(*blocks: MagicMock) -> MagicMock:
    mock_response = MagicMock()
    mock_response.content = list(blocks)
    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock(return_value=mock_response)
    return mock_client


def _text(value: str) -> MagicMock:
    return MagicMock(type="text", text=value)


async def test_complete_text_basic(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("cozy.config.settings.ai_model", "sonnet")
    mock_client = _mock_client(_text("hello world"))

    with patch("cozy.llm.client._get_client", return_value=mock_client):
        result = await complete_text([{"role": "user", "content": "hi"}])

    assert result == "hello world"
    mock_client.messages.create.assert_awaited_once()
    call_kwargs = mock_client.messages.create.call_args.kwargs
    assert call_kwargs["messages"] == [{"role": "user", "content": "hi"}]
    assert call_kwargs["model"] == MODEL_MAP["sonnet"]
    assert call_kwargs["max_tokens"] == 1000
    assert "system" not in call_kwargs
    assert "temperature" not in call_kwargs


async def test_complete_text_with_options() -> None:
    mock_client = _mock_client(_text("response"))

    with patch("cozy.llm.client._get_client", return_value=mock_client):
        await complete_text(
            [{"role": "user", "content": "hi"}],
            system="You are helpful.",
            model="claude-haiku-4-5-20251001",
            max_tokens=200,
            temperature=0.5,
        )

    call_kwargs = mock_client.messages.create.call_args.kwargs
    assert call_kwargs["system"] == "You are helpful."
    assert call_kwargs["model"] == "claude-haiku-4-5-20251001"
    assert call_kwargs["max_tokens"] == 200
    assert call_kwargs["temperature"] == 0.5


async def test_complete_text_joins_text_blocks_only() -> None:
    mock_client = _mock_client(_text("one "), MagicMock(type="thinking"), _text("two"))

    with patch("cozy.llm.client._get_client", return_value=mock_client):
        assert await complete_text([{"role": "user", "content": "hi"}]) == "one two"


async def test_empty_response_is_upstream_error() -> None:
    mock_client = _mock_client()

    with (
        patch("cozy.llm.client._get_client", return_value=mock_client),
        pytest.raises(UpstreamError, match="empty response"),
    ):
        await complete_text([{"role": "user", "content": "hi"}])


async def test_api_error_is_upstream_error() -> None:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock(
        side_effect=anthropic.APIConnectionError(request=request)
    )

    with (
        patch("cozy.llm.client._get_client", return_value=mock_client),
        pytest.raises(UpstreamError) as exc_info,
    ):
        await complete_text([{"role": "user", "content": "hi"}])

    assert exc_info.value.status == 502


def test_is_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    assert not is_configured()
    monkeypatch.setattr("cozy.config.settings.anthropic_api_key", "sk-test")
    assert is_configured()
