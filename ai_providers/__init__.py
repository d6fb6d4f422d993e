"""
AI Providers Package
Manuscript Editor - Completion & Embedding providers

Supports:
- Google Gemini (completions + text-embedding-004)
- OpenAI GPT (completions + text-embedding-3)
- Anthropic Claude (completions)
- Ollama (local embeddings)

Usage:
    from ai_providers import create_completion_provider, create_embedding_provider

    completion = create_completion_provider()
    text = await completion.complete("gemini-2.5-pro", prompt)

    embedder = create_embedding_provider()
    vector = await embedder.embed("comma usage in lists")
"""

from .base import (
    AIProviderType,
    AIConfig,
    BaseAIProvider,
    BaseEmbeddingProvider,
    CompletionProvider,
    EmbeddingProvider,
    ProviderError,
    ProviderStatus,
    classify_provider_error,
)

from .claude_provider import ClaudeProvider
from .openai_provider import OpenAIProvider, OpenAIEmbeddingProvider
from .gemini_provider import GeminiProvider, GeminiEmbeddingProvider
from .ollama_provider import OllamaEmbeddingProvider

from .manager import (
    ProviderInfo,
    PROVIDER_REGISTRY,
    EMBEDDING_REGISTRY,
    PROVIDER_INFO,
    list_providers,
    create_completion_provider,
    create_embedding_provider,
)

__all__ = [
    # Base classes
    "AIProviderType",
    "AIConfig",
    "BaseAIProvider",
    "BaseEmbeddingProvider",
    "CompletionProvider",
    "EmbeddingProvider",
    "ProviderError",
    "ProviderStatus",
    "classify_provider_error",

    # Providers
    "ClaudeProvider",
    "OpenAIProvider",
    "OpenAIEmbeddingProvider",
    "GeminiProvider",
    "GeminiEmbeddingProvider",
    "OllamaEmbeddingProvider",

    # Manager
    "ProviderInfo",
    "PROVIDER_REGISTRY",
    "EMBEDDING_REGISTRY",
    "PROVIDER_INFO",
    "list_providers",
    "create_completion_provider",
    "create_embedding_provider",
]

__version__ = "1.0.0"
