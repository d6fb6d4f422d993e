"""
Unit tests for ai_providers.base error handling.

Tests error classification, retryable flags and the call timeout.
"""

import asyncio

import pytest

from ai_providers.base import (
    AIConfig,
    AIProviderType,
    BaseAIProvider,
    ProviderError,
    ProviderStatus,
    classify_provider_error,
)


class SlowProvider(BaseAIProvider):
    """Completion provider whose call takes longer than any test timeout."""

    @property
    def provider_type(self):
        return AIProviderType.GEMINI

    async def initialize(self):
        self._client = object()

    async def _generate(self, model_id, prompt):
        await asyncio.sleep(5)
        return "too late"


class FailingProvider(SlowProvider):
    def __init__(self, config, error):
        super().__init__(config)
        self.error = error

    async def _generate(self, model_id, prompt):
        raise self.error


class TestClassifyProviderError:
    """Tests for classify_provider_error."""

    @pytest.mark.parametrize("message,status", [
        ("Your credit balance is too low to access the API", ProviderStatus.NO_CREDIT),
        ("Error code: 429 - insufficient_quota", ProviderStatus.NO_CREDIT),
        ("429 Too Many Requests", ProviderStatus.RATE_LIMITED),
        ("rate_limit_error: slow down", ProviderStatus.RATE_LIMITED),
        ("Incorrect API key provided", ProviderStatus.INVALID_KEY),
        ("Request timed out", ProviderStatus.TIMEOUT),
        ("Connection reset by peer", ProviderStatus.NETWORK),
        ("503 Service temporarily unavailable", ProviderStatus.NETWORK),
        ("Model refused the request", ProviderStatus.ERROR),
    ])
    def test_patterns(self, message, status):
        error = classify_provider_error(RuntimeError(message), "openai")
        assert error.status == status
        assert error.provider == "openai"

    def test_timeout_error(self):
        error = classify_provider_error(asyncio.TimeoutError(), "gemini")
        assert error.status == ProviderStatus.TIMEOUT
        assert error.retryable is True

    def test_exception_type_name_counts(self):
        class ConnectError(Exception):
            pass

        assert classify_provider_error(ConnectError(""), "ollama").status == ProviderStatus.NETWORK

    def test_provider_error_passthrough(self):
        original = ProviderError("x", "gemini", ProviderStatus.INVALID_KEY)
        assert classify_provider_error(original) is original


class TestRetryable:
    """Tests for the retryable flag."""

    @pytest.mark.parametrize("status,retryable", [
        (ProviderStatus.RATE_LIMITED, True),
        (ProviderStatus.TIMEOUT, True),
        (ProviderStatus.NETWORK, True),
        (ProviderStatus.NO_CREDIT, False),
        (ProviderStatus.INVALID_KEY, False),
        (ProviderStatus.NOT_CONFIGURED, False),
        (ProviderStatus.ERROR, False),
    ])
    def test_derived_from_status(self, status, retryable):
        assert ProviderError("x", "gemini", status).retryable is retryable

    def test_explicit_override(self):
        assert ProviderError("x", "gemini", ProviderStatus.ERROR, retryable=True).retryable is True


class TestGuardedCalls:
    """Tests for timeout and translation around SDK calls."""

    @pytest.mark.asyncio
    async def test_timeout(self):
        provider = SlowProvider(AIConfig(api_key="k", model="m", timeout=0.01))

        with pytest.raises(ProviderError) as exc_info:
            await provider.complete("m", "prompt")

        assert exc_info.value.status == ProviderStatus.TIMEOUT
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_sdk_exception_translated(self):
        provider = FailingProvider(AIConfig(api_key="k", model="m"), RuntimeError("429 Too Many Requests"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.complete("m", "prompt")

        assert exc_info.value.status == ProviderStatus.RATE_LIMITED
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_lazy_initialize(self):
        provider = FailingProvider(AIConfig(api_key="k", model="m"), ValueError("bad"))
        assert provider._client is None

        with pytest.raises(ProviderError):
            await provider.complete("", "prompt")
        assert provider._client is not None
