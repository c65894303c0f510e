# tests/unit/llm/adapters/test_openai_adapter.py - v1
"""Tests for llm/adapters/openai_adapter.py - mocked openai SDK."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from docuforge.core.errors import ProviderError, ProviderErrorKind
from docuforge.llm.adapters.openai_adapter import OpenAIAdapter
from docuforge.llm.models import ImageInput


class _APIError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


def _completion(content: str | None = "Hello", usage: bool = True, model: str = "gpt-4o-2024-08-06"):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=8) if usage else None,
        model=model,
    )


class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_generate_completion(self):
        with patch("openai.AsyncOpenAI") as mock_cls:
            create = mock_cls.return_value.chat.completions.create = AsyncMock(return_value=_completion())
            adapter = OpenAIAdapter(model="gpt-4o", api_key="sk-test", timeout=30)
            response = await adapter.generate_completion(
                "Write.", system_prompt="You are a writer.", temperature=0.2, max_tokens=500,
            )

        mock_cls.assert_called_once_with(api_key="sk-test", timeout=30)
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 500
        assert kwargs["messages"] == [
            {"role": "system", "content": "You are a writer."},
            {"role": "user", "content": "Write."},
        ]
        assert response.content == "Hello"
        assert response.prompt_tokens == 12
        assert response.completion_tokens == 8
        assert response.total_tokens == 20
        assert response.provider == "openai"
        assert response.model == "gpt-4o-2024-08-06"

    @pytest.mark.asyncio
    async def test_no_system_prompt(self):
        with patch("openai.AsyncOpenAI") as mock_cls:
            create = mock_cls.return_value.chat.completions.create = AsyncMock(return_value=_completion())
            await OpenAIAdapter().generate_completion("Hi", model="gpt-4o-mini")
        assert create.await_args.kwargs["messages"] == [{"role": "user", "content": "Hi"}]
        assert create.await_args.kwargs["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_missing_usage_estimated(self):
        with patch("openai.AsyncOpenAI") as mock_cls:
            mock_cls.return_value.chat.completions.create = AsyncMock(
                return_value=_completion(content="abcd" * 19, usage=False),
            )
            response = await OpenAIAdapter().generate_completion("abcd" * 19)
        assert response.prompt_tokens == 20
        assert response.completion_tokens == 20

    @pytest.mark.asyncio
    async def test_empty_content(self):
        with patch("openai.AsyncOpenAI") as mock_cls:
            mock_cls.return_value.chat.completions.create = AsyncMock(return_value=_completion(content=None))
            response = await OpenAIAdapter().generate_completion("Hi")
        assert response.content == ""

    @pytest.mark.asyncio
    async def test_sdk_error_classified(self):
        with patch("openai.AsyncOpenAI") as mock_cls:
            mock_cls.return_value.chat.completions.create = AsyncMock(
                side_effect=_APIError("Rate limit exceeded", 429),
            )
            with pytest.raises(ProviderError) as exc_info:
                await OpenAIAdapter().generate_completion("Hi")
        assert exc_info.value.kind == ProviderErrorKind.RATE_LIMITED
        assert exc_info.value.provider == "openai"
        assert isinstance(exc_info.value.__cause__, _APIError)

    @pytest.mark.asyncio
    async def test_vision(self):
        with patch("openai.AsyncOpenAI") as mock_cls:
            create = mock_cls.return_value.chat.completions.create = AsyncMock(return_value=_completion())
            image = ImageInput(data=b"\x89PNG", media_type="image/png")
            await OpenAIAdapter().complete_with_vision("Describe", [image])
        parts = create.await_args.kwargs["messages"][0]["content"]
        assert parts[0] == {"type": "text", "text": "Describe"}
        assert parts[1]["image_url"]["url"].startswith("data:image/png;base64,")

    def test_client_created_lazily(self):
        with patch("openai.AsyncOpenAI") as mock_cls:
            OpenAIAdapter()
        mock_cls.assert_not_called()

    def test_properties(self):
        adapter = OpenAIAdapter(model="gpt-4-turbo")
        assert adapter.provider_name == "openai"
        assert adapter.default_model == "gpt-4-turbo"
