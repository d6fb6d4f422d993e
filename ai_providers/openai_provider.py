"""
OpenAI Provider - GPT-4o completions and text-embedding-3 vectors
Manuscript Editor - Completion & Embedding support
"""

from typing import List

from openai import AsyncOpenAI

from .base import (
    BaseAIProvider,
    BaseEmbeddingProvider,
    AIProviderType,
    ProviderError,
    ProviderStatus,
)


def _make_client(provider_type: AIProviderType, api_key: str, base_url) -> AsyncOpenAI:
    if not api_key:
        raise ProviderError(
            "OPENAI_API_KEY is required for OpenAI calls",
            provider_type.value,
            ProviderStatus.NOT_CONFIGURED,
        )
    return AsyncOpenAI(api_key=api_key, base_url=base_url)


class OpenAIProvider(BaseAIProvider):
    """
    OpenAI GPT completion provider

    Supports:
    - GPT-4o (recommended)
    - GPT-4o-mini (fast, cost-effective)
    - GPT-4-turbo
    """

    MODELS = {
        "gpt-4o": "GPT-4o",
        "gpt-4o-mini": "GPT-4o Mini (Fast)",
        "gpt-4-turbo": "GPT-4 Turbo",
    }

    DEFAULT_MODEL = "gpt-4o"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.OPENAI

    async def initialize(self) -> None:
        """Initialize OpenAI client"""
        self._client = _make_client(self.provider_type, self.config.api_key, self.config.base_url)

    async def _generate(self, model_id: str, prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=model_id,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            messages=[{"role": "user", "content": prompt}]
        )
        return response.choices[0].message.content or ""


class OpenAIEmbeddingProvider(BaseEmbeddingProvider):
    """OpenAI embeddings (text-embedding-3-small by default)"""

    DEFAULT_MODEL = "text-embedding-3-small"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.OPENAI

    async def initialize(self) -> None:
        self._client = _make_client(self.provider_type, self.config.api_key, self.config.base_url)

    async def _embed(self, text: str) -> List[float]:
        response = await self._client.embeddings.create(
            model=self.config.model or self.DEFAULT_MODEL,
            input=text,
        )
        return response.data[0].embedding if response.data else []
