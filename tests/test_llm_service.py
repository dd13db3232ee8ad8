"""Tests for services.llm_service: single-shot chat over LiteLLM."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from config.llm_config import LLMConfig
from errors.exceptions import TransportError, UpstreamError
from services.llm_service import LLMService


def _completion(text: str):
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class ProviderError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@pytest.fixture
def service():
    return LLMService(LLMConfig(model="deepseek/deepseek-chat", temperature=0.7, max_tokens=256))


class TestChat:
    @pytest.mark.asyncio
    async def test_returns_content(self, service):
        mock = AsyncMock(return_value=_completion("hi there"))
        with patch("litellm.acompletion", mock):
            assert await service.chat("hello", system="be nice") == "hi there"

        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == "deepseek/deepseek-chat"
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 256
        assert kwargs["messages"] == [
            {"role": "system", "content": "be nice"},
            {"role": "user", "content": "hello"},
        ]

    @pytest.mark.asyncio
    async def test_no_system_message(self, service):
        mock = AsyncMock(return_value=_completion("ok"))
        with patch("litellm.acompletion", mock):
            await service.chat("hello")
        assert mock.call_args.kwargs["messages"] == [{"role": "user", "content": "hello"}]

    @pytest.mark.asyncio
    async def test_per_call_overrides(self, service):
        mock = AsyncMock(return_value=_completion("ok"))
        with patch("litellm.acompletion", mock):
            await service.chat("hello", temperature=0.1)
        assert mock.call_args.kwargs["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_empty_content(self, service):
        with patch("litellm.acompletion", AsyncMock(return_value=_completion(None))):
            assert await service.chat("hello") == ""

    def test_model_override(self):
        assert LLMService(model="openai/gpt-4o").model == "openai/gpt-4o"


class TestErrors:
    @pytest.mark.asyncio
    async def test_status_error_becomes_upstream_error(self, service):
        err = ProviderError(429, "rate limited")
        with patch("litellm.acompletion", AsyncMock(side_effect=err)):
            with pytest.raises(UpstreamError) as info:
                await service.chat("hello")
        assert info.value.status_code == 429
        assert info.value.body == "rate limited"

    @pytest.mark.asyncio
    async def test_connection_error_becomes_transport_error(self, service):
        with patch("litellm.acompletion", AsyncMock(side_effect=ConnectionError("reset"))):
            with pytest.raises(TransportError):
                await service.chat("hello")

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, service):
        with patch("litellm.acompletion", AsyncMock(side_effect=KeyError("model"))):
            with pytest.raises(KeyError):
                await service.chat("hello")
