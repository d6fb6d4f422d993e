"""
Google Gemini Provider
Manuscript Editor - Completion & Embedding support
"""

from typing import List

import google.generativeai as genai
from google.generativeai.types import HarmCategory, HarmBlockThreshold

from .base import (
    BaseAIProvider,
    BaseEmbeddingProvider,
    AIProviderType,
    ProviderError,
    ProviderStatus,
)


class GeminiProvider(BaseAIProvider):
    """
    Google Gemini completion provider

    Supports:
    - Gemini 2.5 Pro (default for editing stages)
    - Gemini 2.5 Flash / 2.0 Flash (fast)
    """

    MODELS = {
        "gemini-2.5-pro": "Gemini 2.5 Pro",
        "gemini-2.5-flash": "Gemini 2.5 Flash",
        "gemini-2.0-flash": "Gemini 2.0 Flash",
        "gemini-1.5-pro": "Gemini 1.5 Pro",
    }

    DEFAULT_MODEL = "gemini-2.5-pro"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.GEMINI

    async def initialize(self) -> None:
        """Configure the SDK and the safety settings used for every model"""
        if not self.config.api_key:
            raise ProviderError(
                "GEMINI_API_KEY is required for Gemini completions",
                self.provider_type.value,
                ProviderStatus.NOT_CONFIGURED,
            )

        genai.configure(api_key=self.config.api_key)

        # Manuscripts can contain violence etc.; editing must not be blocked
        self._safety_settings = {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_NONE,
        }
        self._client = {}

    def _model(self, model_id: str):
        """One GenerativeModel per model id"""
        if model_id not in self._client:
            self._client[model_id] = genai.GenerativeModel(
                model_name=model_id,
                safety_settings=self._safety_settings,
            )
        return self._client[model_id]

    async def _generate(self, model_id: str, prompt: str) -> str:
        response = await self._model(model_id).generate_content_async(
            prompt,
            generation_config={
                "temperature": self.config.temperature,
                "max_output_tokens": self.config.max_tokens,
            }
        )
        return response.text or ""


class GeminiEmbeddingProvider(BaseEmbeddingProvider):
    """Gemini text embeddings (text-embedding-004 by default)"""

    DEFAULT_MODEL = "models/text-embedding-004"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.GEMINI

    async def initialize(self) -> None:
        if not self.config.api_key:
            raise ProviderError(
                "GEMINI_API_KEY is required for Gemini embeddings",
                self.provider_type.value,
                ProviderStatus.NOT_CONFIGURED,
            )
        genai.configure(api_key=self.config.api_key)
        self._client = genai

    async def _embed(self, text: str) -> List[float]:
        response = await self._client.embed_content_async(
            model=self.config.model or self.DEFAULT_MODEL,
            content=text,
        )
        return response.get("embedding") or []
