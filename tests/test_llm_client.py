"""Tests for the OpenRouter client factory and the reasoning adapter."""
import sys
import types
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from deepresearch.agents.reasoner import LLMReasoner
from deepresearch.llm_client import (
    MessageResponse,
    OpenRouterMessagesAdapter,
    TextBlock,
    Usage,
    get_client,
    get_model,
)
from deepresearch.research_core.errors import ProviderError


class TestGetModel:
    def test_get_model_returns_default_when_no_override(self):
        with patch("deepresearch.llm_client.settings") as mock_settings:
            mock_settings.openrouter_model = ""
            mock_settings.default_model = "openai/o3-mini"

            assert get_model() == "openai/o3-mini"

    def test_get_model_returns_openrouter_override(self):
        with patch("deepresearch.llm_client.settings") as mock_settings:
            mock_settings.openrouter_model = "openai/gpt-4.1"
            mock_settings.default_model = "openai/o3-mini"

            assert get_model() == "openai/gpt-4.1"


class TestGetClient:
    def test_get_client_uses_openrouter(self):
        with patch("deepresearch.llm_client.settings") as mock_settings:
            mock_settings.openrouter_api_key = "sk-or-valid-key"
            mock_settings.openrouter_base_url = "https://openrouter.ai/api/v1"

            openai_module = types.ModuleType("openai")
            mock_openai = MagicMock()
            openai_module.AsyncOpenAI = mock_openai

            with patch.dict(sys.modules, {"openai": openai_module}):
                get_client()

            mock_openai.assert_called_once_with(
                api_key="sk-or-valid-key",
                base_url="https://openrouter.ai/api/v1",
            )


class TestOpenRouterAdapter:
    @pytest.mark.parametrize(
        ("model", "expected"),
        [
            ("openai/o3-mini", None),
            ("openai/gpt-5", None),
            ("o1-preview", None),
            ("openai/gpt-4o-mini", 0.2),
            ("anthropic/claude-3.5-sonnet", 0.2),
        ],
    )
    def test_temperature_omitted_for_reasoning_models(self, model, expected):
        assert OpenRouterMessagesAdapter._temperature_for_model(model) == expected

    def test_to_openai_messages_prepends_system(self):
        mapped = OpenRouterMessagesAdapter._to_openai_messages(
            "sys", [{"role": "user", "content": "analyze"}]
        )
        assert mapped == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "analyze"},
        ]

    def test_from_openai_response_maps_text_and_usage(self):
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Done."))],
            usage=SimpleNamespace(prompt_tokens=11, completion_tokens=7),
        )

        mapped = OpenRouterMessagesAdapter._from_openai_response(response)

        assert mapped.text == "Done."
        assert mapped.usage.input_tokens == 11
        assert mapped.usage.output_tokens == 7

    def test_from_openai_response_without_choices(self):
        mapped = OpenRouterMessagesAdapter._from_openai_response(SimpleNamespace(choices=[], usage=None))
        assert mapped.text == ""
        assert mapped.usage.input_tokens == 0

    @pytest.mark.asyncio
    async def test_create_passes_temperature_only_when_supported(self):
        openai_client = MagicMock()
        openai_client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(choices=[], usage=None)
        )
        adapter = OpenRouterMessagesAdapter(openai_client)

        await adapter.create(model="openai/o3-mini", max_tokens=10, system="", messages=[])
        assert "temperature" not in openai_client.chat.completions.create.await_args.kwargs

        await adapter.create(model="openai/gpt-4o-mini", max_tokens=10, system="", messages=[])
        assert openai_client.chat.completions.create.await_args.kwargs["temperature"] == 0.2


class TestLLMReasoner:
    @pytest.mark.asyncio
    async def test_generate_returns_text(self):
        client = MagicMock()
        client.messages.create = AsyncMock(
            return_value=MessageResponse(
                content=[TextBlock(type="text", text="analysis text")],
                usage=Usage(input_tokens=5, output_tokens=3),
            )
        )
        reasoner = LLMReasoner(model="openai/o3-mini", max_tokens=100, client=client)

        assert await reasoner.generate("prompt") == "analysis text"
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["model"] == "openai/o3-mini"
        assert kwargs["max_tokens"] == 100
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
        assert "research analyst" in kwargs["system"]

    @pytest.mark.asyncio
    async def test_generate_wraps_failures(self):
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=RuntimeError("rate limited"))
        reasoner = LLMReasoner(model="openai/o3-mini", client=client)

        with pytest.raises(ProviderError) as exc_info:
            await reasoner.generate("prompt")

        assert exc_info.value.provider == "openrouter"
        assert str(exc_info.value) == "[openrouter] rate limited"
