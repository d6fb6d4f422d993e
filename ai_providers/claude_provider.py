"""
Claude AI Provider - Anthropic
Manuscript Editor - Completion support
"""

import anthropic

from .base import (
    BaseAIProvider,
    AIProviderType,
    ProviderError,
    ProviderStatus,
)


class ClaudeProvider(BaseAIProvider):
    """
    Anthropic Claude completion provider

    Supports:
    - Claude Sonnet 4 (recommended for editorial review)
    - Claude 3.5 Haiku (fast, cost-effective)

    Anthropic has no embedding endpoint; pair it with another
    embedding provider.
    """

    MODELS = {
        "claude-sonnet-4-20250514": "Claude Sonnet 4",
        "claude-3-5-sonnet-20241022": "Claude 3.5 Sonnet",
        "claude-3-5-haiku-20241022": "Claude 3.5 Haiku",
    }

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.CLAUDE

    async def initialize(self) -> None:
        """Initialize Anthropic client"""
        if not self.config.api_key:
            raise ProviderError(
                "ANTHROPIC_API_KEY is required for Claude completions",
                self.provider_type.value,
                ProviderStatus.NOT_CONFIGURED,
            )

        self._client = anthropic.AsyncAnthropic(
            api_key=self.config.api_key,
            base_url=self.config.base_url
        )

    async def _generate(self, model_id: str, prompt: str) -> str:
        message = await self._client.messages.create(
            model=model_id,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            messages=[{"role": "user", "content": prompt}]
        )
        return "".join(
            block.text for block in message.content
            if getattr(block, "type", "") == "text"
        )
