"""
Unit tests for ai_providers.manager and the HTTP embedding provider.
"""

import json

import httpx
import pytest

from ai_providers.base import AIConfig, ProviderError, ProviderStatus
from ai_providers.claude_provider import ClaudeProvider
from ai_providers.gemini_provider import GeminiEmbeddingProvider, GeminiProvider
from ai_providers.manager import (
    create_completion_provider,
    create_embedding_provider,
    list_providers,
)
from ai_providers.ollama_provider import OllamaEmbeddingProvider
from ai_providers.openai_provider import OpenAIEmbeddingProvider, OpenAIProvider


class TestFactories:
    """Tests for provider construction from Settings."""

    def test_default_completion_provider(self, test_settings):
        provider = create_completion_provider(test_settings)
        assert isinstance(provider, GeminiProvider)
        assert provider.config.api_key == "test_gemini_key"
        assert provider.config.timeout == test_settings.provider_timeout_seconds

    def test_override_provider(self, test_settings):
        test_settings.completion_model = "claude-sonnet-4-20250514"
        provider = create_completion_provider(test_settings, provider="anthropic")

        assert isinstance(provider, ClaudeProvider)
        assert provider.config.api_key == "test_anthropic_key"
        assert provider.config.model == "claude-sonnet-4-20250514"

    @pytest.mark.parametrize("name,provider_class", [
        ("gemini", GeminiProvider),
        ("anthropic", ClaudeProvider),
        ("openai", OpenAIProvider),
    ])
    def test_unset_model_uses_provider_default(self, test_settings, name, provider_class):
        """Switching provider alone picks that provider's own model."""
        test_settings.completion_provider = name
        provider = create_completion_provider(test_settings)

        assert isinstance(provider, provider_class)
        assert provider.config.model == provider_class.DEFAULT_MODEL

    def test_openai_completion(self, test_settings):
        provider = create_completion_provider(test_settings, provider="OpenAI")
        assert isinstance(provider, OpenAIProvider)
        assert provider.config.max_tokens == test_settings.max_tokens

    def test_unknown_provider(self, test_settings):
        with pytest.raises(ProviderError) as exc_info:
            create_completion_provider(test_settings, provider="mistral")
        assert exc_info.value.status == ProviderStatus.NOT_CONFIGURED

    def test_ollama_has_no_completions(self, test_settings):
        with pytest.raises(ProviderError):
            create_completion_provider(test_settings, provider="ollama")

    def test_claude_has_no_embeddings(self, test_settings):
        with pytest.raises(ProviderError) as exc_info:
            create_embedding_provider(test_settings, provider="anthropic")
        assert "does not provide embeddings" in str(exc_info.value)

    def test_embedding_providers(self, test_settings):
        gemini = create_embedding_provider(test_settings)
        openai = create_embedding_provider(test_settings, provider="openai")
        ollama = create_embedding_provider(test_settings, provider="ollama")

        assert isinstance(gemini, GeminiEmbeddingProvider)
        assert gemini.config.model == test_settings.gemini_embedding_model
        assert isinstance(openai, OpenAIEmbeddingProvider)
        assert openai.config.model == "text-embedding-3-small"
        assert isinstance(ollama, OllamaEmbeddingProvider)
        assert ollama.config.base_url == test_settings.ollama_base_url
        assert ollama.config.api_key == ""

    def test_list_providers(self):
        info = {p.type.value: p for p in list_providers()}
        assert set(info) == {"gemini", "openai", "anthropic", "ollama"}
        assert info["anthropic"].supports_embedding is False
        assert info["ollama"].supports_completion is False


class TestMissingKeys:
    """Providers report a missing key on first use, not at construction."""

    @pytest.mark.asyncio
    async def test_missing_gemini_key(self):
        provider = GeminiProvider(AIConfig(api_key="", model="gemini-2.5-flash"))
        with pytest.raises(ProviderError) as exc_info:
            await provider.complete("", "prompt")
        assert exc_info.value.status == ProviderStatus.NOT_CONFIGURED
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_missing_openai_key(self):
        provider = OpenAIEmbeddingProvider(AIConfig(api_key="", model="text-embedding-3-small"))
        with pytest.raises(ProviderError) as exc_info:
            await provider.embed("text")
        assert exc_info.value.status == ProviderStatus.NOT_CONFIGURED


def ollama_with(handler) -> OllamaEmbeddingProvider:
    provider = OllamaEmbeddingProvider(AIConfig(api_key="", model="nomic-embed-text", timeout=5))
    provider._client = httpx.AsyncClient(
        base_url="http://ollama.test",
        transport=httpx.MockTransport(handler),
    )
    return provider


class TestOllamaEmbeddingProvider:
    """Tests for the HTTP embedding provider against a mock transport."""

    @pytest.mark.asyncio
    async def test_embed(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"embedding": [1, 0.5, 0]})

        provider = ollama_with(handler)
        vector = await provider.embed("serial comma")
        await provider.close()

        assert vector == [1.0, 0.5, 0.0]
        assert seen["path"] == "/api/embeddings"
        assert seen["body"] == {"model": "nomic-embed-text", "prompt": "serial comma"}
        assert provider._client is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code,status", [
        (429, ProviderStatus.RATE_LIMITED),
        (503, ProviderStatus.NETWORK),
        (400, ProviderStatus.ERROR),
    ])
    async def test_http_errors(self, code, status):
        provider = ollama_with(lambda request: httpx.Response(code, text="nope"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.embed("text")
        assert exc_info.value.status == status
        assert f"HTTP {code}" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_embedding(self):
        provider = ollama_with(lambda request: httpx.Response(200, json={}))

        with pytest.raises(ProviderError) as exc_info:
            await provider.embed("text")
        assert "No embedding returned" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_failure_is_network(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = ollama_with(handler)
        with pytest.raises(ProviderError) as exc_info:
            await provider.embed("text")
        assert exc_info.value.status == ProviderStatus.NETWORK
        assert exc_info.value.retryable is True
