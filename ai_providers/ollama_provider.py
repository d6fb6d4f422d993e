"""
Ollama Provider - local embeddings over HTTP
Manuscript Editor - Embedding support
"""

from typing import List

import httpx

from .base import BaseEmbeddingProvider, AIProviderType, ProviderError, ProviderStatus


class OllamaEmbeddingProvider(BaseEmbeddingProvider):
    """
    Embeddings from a local Ollama server.

    POST {base_url}/api/embeddings {"model": ..., "prompt": ...}
    -> {"embedding": [...]}
    """

    DEFAULT_MODEL = "nomic-embed-text"
    DEFAULT_BASE_URL = "http://localhost:11434"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.OLLAMA

    async def initialize(self) -> None:
        base_url = (self.config.base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._client = httpx.AsyncClient(base_url=base_url, timeout=self.config.timeout)

    async def _embed(self, text: str) -> List[float]:
        response = await self._client.post(
            "/api/embeddings",
            json={"model": self.config.model or self.DEFAULT_MODEL, "prompt": text},
        )
        if response.status_code != 200:
            if response.status_code == 429:
                status = ProviderStatus.RATE_LIMITED
            elif response.status_code >= 500:
                status = ProviderStatus.NETWORK
            else:
                status = ProviderStatus.ERROR
            raise ProviderError(
                f"Ollama embeddings failed: HTTP {response.status_code} {response.text[:200]}",
                self.provider_type.value,
                status,
            )
        return response.json().get("embedding") or []

    async def close(self) -> None:
        """Release the HTTP connection pool"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
