"""
AI Provider Manager
Manuscript Editor - Provider registry and factories

Builds the completion and embedding providers named in Settings.
"""

from typing import Optional, Dict, List, Type
from dataclasses import dataclass

from config.logging_config import get_logger
from config.settings import Settings, get_settings

from .base import (
    BaseAIProvider,
    BaseEmbeddingProvider,
    AIProviderType,
    AIConfig,
    ProviderError,
    ProviderStatus,
)
from .claude_provider import ClaudeProvider
from .openai_provider import OpenAIProvider, OpenAIEmbeddingProvider
from .gemini_provider import GeminiProvider, GeminiEmbeddingProvider
from .ollama_provider import OllamaEmbeddingProvider

logger = get_logger(__name__)


@dataclass
class ProviderInfo:
    """Information about an AI provider"""
    type: AIProviderType
    name: str
    description: str
    supports_completion: bool
    supports_embedding: bool
    models: Dict[str, str]
    default_model: str
    env_key: str  # Environment variable name for API key


# Registry of completion providers
PROVIDER_REGISTRY: Dict[AIProviderType, Type[BaseAIProvider]] = {
    AIProviderType.CLAUDE: ClaudeProvider,
    AIProviderType.OPENAI: OpenAIProvider,
    AIProviderType.GEMINI: GeminiProvider,
}

# Registry of embedding providers
EMBEDDING_REGISTRY: Dict[AIProviderType, Type[BaseEmbeddingProvider]] = {
    AIProviderType.GEMINI: GeminiEmbeddingProvider,
    AIProviderType.OPENAI: OpenAIEmbeddingProvider,
    AIProviderType.OLLAMA: OllamaEmbeddingProvider,
}

# Provider information
PROVIDER_INFO: Dict[AIProviderType, ProviderInfo] = {
    AIProviderType.CLAUDE: ProviderInfo(
        type=AIProviderType.CLAUDE,
        name="Anthropic Claude",
        description="Claude - careful line editing and structural review",
        supports_completion=True,
        supports_embedding=False,
        models=ClaudeProvider.MODELS,
        default_model=ClaudeProvider.DEFAULT_MODEL,
        env_key="ANTHROPIC_API_KEY"
    ),
    AIProviderType.OPENAI: ProviderInfo(
        type=AIProviderType.OPENAI,
        name="OpenAI GPT",
        description="GPT-4o completions, text-embedding-3 vectors",
        supports_completion=True,
        supports_embedding=True,
        models=OpenAIProvider.MODELS,
        default_model=OpenAIProvider.DEFAULT_MODEL,
        env_key="OPENAI_API_KEY"
    ),
    AIProviderType.GEMINI: ProviderInfo(
        type=AIProviderType.GEMINI,
        name="Google Gemini",
        description="Gemini 2.5 completions, text-embedding-004 vectors",
        supports_completion=True,
        supports_embedding=True,
        models=GeminiProvider.MODELS,
        default_model=GeminiProvider.DEFAULT_MODEL,
        env_key="GEMINI_API_KEY"
    ),
    AIProviderType.OLLAMA: ProviderInfo(
        type=AIProviderType.OLLAMA,
        name="Ollama",
        description="Local embeddings, no API key",
        supports_completion=False,
        supports_embedding=True,
        models={OllamaEmbeddingProvider.DEFAULT_MODEL: "Nomic Embed Text"},
        default_model=OllamaEmbeddingProvider.DEFAULT_MODEL,
        env_key=""
    ),
}


def _provider_type(name: str) -> AIProviderType:
    try:
        return AIProviderType(name.lower())
    except ValueError:
        raise ProviderError(
            f"Unknown provider: {name}. Expected one of "
            f"{[p.value for p in AIProviderType]}",
            name,
            ProviderStatus.NOT_CONFIGURED,
        )


def _api_key(settings: Settings, provider_type: AIProviderType) -> str:
    """Look up the key without raising; providers report a missing key on first use"""
    return {
        AIProviderType.GEMINI: settings.gemini_api_key,
        AIProviderType.OPENAI: settings.openai_api_key,
        AIProviderType.CLAUDE: settings.anthropic_api_key,
    }.get(provider_type, "")


def list_providers() -> List[ProviderInfo]:
    """List all known providers"""
    return list(PROVIDER_INFO.values())


def create_completion_provider(
    settings: Optional[Settings] = None,
    provider: Optional[str] = None,
) -> BaseAIProvider:
    """
    Create the completion provider named in settings.

    Args:
        settings: Settings instance (defaults to get_settings())
        provider: Override settings.completion_provider

    Returns:
        Uninitialized provider; the client is created on first call
    """
    settings = settings or get_settings()
    provider_type = _provider_type(provider or settings.completion_provider)

    if provider_type not in PROVIDER_REGISTRY:
        raise ProviderError(
            f"{provider_type.value} does not provide completions",
            provider_type.value,
            ProviderStatus.NOT_CONFIGURED,
        )

    provider_class = PROVIDER_REGISTRY[provider_type]
    config = AIConfig(
        api_key=_api_key(settings, provider_type),
        model=settings.completion_model or provider_class.DEFAULT_MODEL,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        timeout=settings.provider_timeout_seconds,
    )
    logger.info(f"Completion provider: {provider_type.value} ({config.model})")
    return provider_class(config)


def create_embedding_provider(
    settings: Optional[Settings] = None,
    provider: Optional[str] = None,
) -> BaseEmbeddingProvider:
    """
    Create the embedding provider named in settings.

    Args:
        settings: Settings instance (defaults to get_settings())
        provider: Override settings.embedding_provider

    Returns:
        Uninitialized provider; the client is created on first call
    """
    settings = settings or get_settings()
    provider_type = _provider_type(provider or settings.embedding_provider)

    if provider_type not in EMBEDDING_REGISTRY:
        raise ProviderError(
            f"{provider_type.value} does not provide embeddings",
            provider_type.value,
            ProviderStatus.NOT_CONFIGURED,
        )

    models = {
        AIProviderType.GEMINI: settings.gemini_embedding_model,
        AIProviderType.OPENAI: settings.openai_embedding_model,
        AIProviderType.OLLAMA: settings.ollama_embedding_model,
    }
    config = AIConfig(
        api_key=_api_key(settings, provider_type),
        model=models[provider_type],
        base_url=settings.ollama_base_url if provider_type == AIProviderType.OLLAMA else None,
        timeout=settings.provider_timeout_seconds,
    )
    logger.info(f"Embedding provider: {provider_type.value} ({config.model})")
    return EMBEDDING_REGISTRY[provider_type](config)
