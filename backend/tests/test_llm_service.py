"""Tests for the LLM service."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from openai import OpenAIError

from docchat.exceptions import ConfigurationError, GenerationError
from docchat.services.llm_service import LLMService


def completion(content, usage=None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=usage,
    )


@pytest.fixture
def client():
    client = Mock()
    client.chat.completions.create = AsyncMock(return_value=completion("Generated answer"))
    client.close = AsyncMock()
    return client


class TestLLMService:
    """Tests for LLMService.generate."""

    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError):
            LLMService(api_key="")

    @pytest.mark.asyncio
    async def test_generate(self, client):
        service = LLMService(model="deepseek-chat", temperature=0.7, max_tokens=256, client=client)

        assert await service.generate("Prompt text") == "Generated answer"

        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "deepseek-chat"
        assert kwargs["max_tokens"] == 256
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][1] == {"role": "user", "content": "Prompt text"}

    @pytest.mark.asyncio
    async def test_generate_reports_usage(self, client):
        client.chat.completions.create.return_value = completion(
            "ok", usage=SimpleNamespace(prompt_tokens=10, completion_tokens=2, total_tokens=12)
        )
        assert await LLMService(client=client).generate("Prompt") == "ok"

    @pytest.mark.asyncio
    async def test_api_error_becomes_generation_error(self, client):
        client.chat.completions.create.side_effect = OpenAIError("rate limited")
        with pytest.raises(GenerationError):
            await LLMService(client=client).generate("Prompt")

    @pytest.mark.asyncio
    async def test_empty_response_is_an_error(self, client):
        client.chat.completions.create.return_value = completion("")
        with pytest.raises(GenerationError):
            await LLMService(client=client).generate("Prompt")

    @pytest.mark.asyncio
    async def test_close(self, client):
        await LLMService(client=client).close()
        client.close.assert_awaited_once()
