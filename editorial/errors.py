"""
Error taxonomy for the editing pipeline.

- ValidationError: malformed input, surfaced immediately, never retried
- ProviderError: completion / embedding failure (defined in ai_providers)
- StageExecutionError: a stage failed mid-run; carries what was produced
"""

from typing import List, Optional, TYPE_CHECKING

from ai_providers.base import ProviderError

if TYPE_CHECKING:
    from editorial.pipeline.models import StageResult


class EditorialError(Exception):
    """Base class for pipeline errors"""
    pass


class ValidationError(EditorialError):
    """Malformed input (unknown document, bad request, mismatched counts)"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StageExecutionError(EditorialError):
    """
    Raised by the orchestrator when a stage fails.

    Attributes:
        stage: Stage number that failed
        agent_name: Display name of the failing agent
        partial_results: Stage results produced earlier in the same run
        cause: Underlying exception (usually ProviderError)
    """

    def __init__(
        self,
        stage: int,
        agent_name: str,
        partial_results: List["StageResult"],
        cause: Exception,
    ):
        super().__init__(f"Stage {stage} ({agent_name}) failed: {cause}")
        self.stage = stage
        self.agent_name = agent_name
        self.partial_results = list(partial_results)
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return isinstance(self.cause, ProviderError) and self.cause.retryable

    def to_dict(self) -> dict:
        """Structured error body: which stage failed and what was produced"""
        return {
            "error": str(self),
            "failed_stage": self.stage,
            "agent_name": self.agent_name,
            "retryable": self.retryable,
            "completed_stages": [r.stage for r in self.partial_results],
            "partial_results": [r.to_dict() for r in self.partial_results],
        }


__all__ = [
    "EditorialError",
    "ValidationError",
    "ProviderError",
    "StageExecutionError",
]
