"""
Base AI Provider - Abstract Interfaces
Manuscript Editor - Completion & Embedding capabilities

Two capability contracts are consumed by the editing pipeline:
- CompletionProvider.complete(model_id, prompt) -> text
- EmbeddingProvider.embed(text) -> vector

Both fail with ProviderError. Neither retries on its own; retry policy
belongs to the pipeline orchestrator.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional, List, Awaitable, TypeVar
from dataclasses import dataclass
from enum import Enum

from config.constants import PROVIDER_TIMEOUT_SECONDS

T = TypeVar("T")


class AIProviderType(Enum):
    """Supported AI Providers"""
    GEMINI = "gemini"
    OPENAI = "openai"
    CLAUDE = "anthropic"
    OLLAMA = "ollama"


class ProviderStatus(Enum):
    """Why a provider call failed"""
    NO_CREDIT = "no_credit"
    INVALID_KEY = "invalid_key"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK = "network"
    NOT_CONFIGURED = "not_configured"
    ERROR = "error"


# Transient failures worth another attempt
RETRYABLE_STATUSES = {
    ProviderStatus.RATE_LIMITED,
    ProviderStatus.TIMEOUT,
    ProviderStatus.NETWORK,
}


class ProviderError(Exception):
    """Raised when a completion or embedding call fails"""

    def __init__(
        self,
        message: str,
        provider: str = "",
        status: ProviderStatus = ProviderStatus.ERROR,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status = status
        self.retryable = status in RETRYABLE_STATUSES if retryable is None else retryable

    def __repr__(self) -> str:
        return f"<ProviderError provider={self.provider} status={self.status.value} retryable={self.retryable}>"


# Error message patterns, matched case-insensitively
BILLING_ERROR_PATTERNS = [
    "credit balance is too low",
    "insufficient_quota",
    "billing",
    "exceeded your current quota",
    "payment required",
    "resource_exhausted",
]

RATE_LIMIT_PATTERNS = [
    "rate_limit",
    "rate limit",
    "too many requests",
    "429",
]

INVALID_KEY_PATTERNS = [
    "invalid api key",
    "invalid_api_key",
    "api_key_invalid",
    "authentication",
    "unauthorized",
    "permission denied",
    "incorrect api key",
]

NETWORK_PATTERNS = [
    "connection",
    "connecterror",
    "network",
    "temporarily unavailable",
    "503",
    "502",
]


def classify_provider_error(error: Exception, provider: str = "") -> ProviderError:
    """
    Map any SDK / transport exception to a ProviderError.

    Args:
        error: Original exception raised by the SDK
        provider: Provider name for reporting

    Returns:
        ProviderError with status and retryable flag set
    """
    if isinstance(error, ProviderError):
        return error

    if isinstance(error, asyncio.TimeoutError):
        return ProviderError(f"{provider} call timed out", provider, ProviderStatus.TIMEOUT)

    error_str = f"{type(error).__name__}: {error}".lower()

    if any(p in error_str for p in BILLING_ERROR_PATTERNS):
        status = ProviderStatus.NO_CREDIT
    elif any(p in error_str for p in RATE_LIMIT_PATTERNS):
        status = ProviderStatus.RATE_LIMITED
    elif any(p in error_str for p in INVALID_KEY_PATTERNS):
        status = ProviderStatus.INVALID_KEY
    elif "timeout" in error_str or "timed out" in error_str:
        status = ProviderStatus.TIMEOUT
    elif any(p in error_str for p in NETWORK_PATTERNS):
        status = ProviderStatus.NETWORK
    else:
        status = ProviderStatus.ERROR

    return ProviderError(str(error) or type(error).__name__, provider, status)


@dataclass
class AIConfig:
    """Provider configuration"""
    api_key: str
    model: str
    max_tokens: int = 8192
    temperature: float = 0.2
    base_url: Optional[str] = None  # For custom endpoints
    timeout: float = PROVIDER_TIMEOUT_SECONDS


class _TimedProvider:
    """Shared timeout + error translation for provider calls"""

    config: AIConfig

    @property
    @abstractmethod
    def provider_type(self) -> AIProviderType:
        """Return the provider type"""
        pass

    async def _guarded(self, call: Awaitable[T]) -> T:
        """Await an SDK call under the configured timeout, translating failures"""
        try:
            return await asyncio.wait_for(call, timeout=self.config.timeout)
        except ProviderError:
            raise
        except Exception as e:
            raise classify_provider_error(e, self.provider_type.value) from e


class CompletionProvider(ABC):
    """Anything that turns a prompt into text"""

    @abstractmethod
    async def complete(self, model_id: str, prompt: str) -> str:
        """
        Generate a completion.

        Args:
            model_id: Model to use (provider specific)
            prompt: Full prompt text

        Returns:
            Raw model output

        Raises:
            ProviderError: network, auth, quota or timeout failure
        """
        pass


class EmbeddingProvider(ABC):
    """Anything that turns text into a fixed-length vector"""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Embed a text.

        Raises:
            ProviderError: network, auth, quota or timeout failure
        """
        pass


class BaseAIProvider(_TimedProvider, CompletionProvider):
    """
    Abstract base class for completion providers.
    Subclasses implement initialize() and _generate().
    """

    MODELS: dict = {}
    DEFAULT_MODEL: str = ""

    def __init__(self, config: AIConfig):
        self.config = config
        self._client = None

    @property
    def supported_models(self) -> List[str]:
        """Return list of known models"""
        return list(self.MODELS.keys())

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the client connection"""
        pass

    @abstractmethod
    async def _generate(self, model_id: str, prompt: str) -> str:
        """Provider specific completion call"""
        pass

    async def complete(self, model_id: str, prompt: str) -> str:
        if self._client is None:
            await self.initialize()
        return await self._guarded(self._generate(model_id or self.config.model, prompt))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.config.model}>"


class BaseEmbeddingProvider(_TimedProvider, EmbeddingProvider):
    """
    Abstract base class for embedding providers.
    Subclasses implement initialize() and _embed().
    """

    def __init__(self, config: AIConfig):
        self.config = config
        self._client = None

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the client connection"""
        pass

    @abstractmethod
    async def _embed(self, text: str) -> List[float]:
        """Provider specific embedding call"""
        pass

    async def embed(self, text: str) -> List[float]:
        if self._client is None:
            await self.initialize()
        vector = await self._guarded(self._embed(text))
        if not vector:
            raise ProviderError(
                f"No embedding returned from {self.provider_type.value}",
                self.provider_type.value,
            )
        return [float(v) for v in vector]

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.config.model}>"
