"""
Request models for the orchestrator entrypoints.

Every mutating call carries a caller-supplied request_id (min length 6)
used as the idempotency key together with the operation name.
"""

from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, Field

from config.constants import (
    REQUEST_ID_MIN_LENGTH,
    MANUSCRIPT_MIN_LENGTH,
    DEFAULT_CONTINUITY_CHECKS,
)
from editorial.errors import ValidationError

R = TypeVar("R", bound=BaseModel)


class DocumentMetadataInput(BaseModel):
    """Optional metadata supplied with a manuscript"""
    title: Optional[str] = None
    genre: Optional[str] = None
    target_audience: Optional[str] = None
    language: Optional[str] = None


class UpsertDocumentRequest(BaseModel):
    """Create or replace a manuscript"""
    content: str = Field(..., min_length=MANUSCRIPT_MIN_LENGTH, description="Manuscript text")
    document_id: Optional[str] = Field(default=None, min_length=1, description="Generated when omitted")
    metadata: Optional[DocumentMetadataInput] = None
    request_id: str = Field(..., min_length=REQUEST_ID_MIN_LENGTH)


class DocumentRequest(BaseModel):
    """Base for calls against an existing manuscript"""
    document_id: str = Field(..., min_length=1)
    request_id: str = Field(..., min_length=REQUEST_ID_MIN_LENGTH)


class ComplianceRequest(DocumentRequest):
    """Full compliance scan (stages 1-4, 7-10)"""
    pass


class StructuralAnalysisRequest(DocumentRequest):
    analysis_type: Literal["pacing", "characterArcs", "plotStructure", "all"] = "all"


class StyleComplianceRequest(DocumentRequest):
    style_guide: Literal["chicago", "mla", "apa", "genre-specific"] = "chicago"
    genre: Optional[str] = None


class ContinuityCheckRequest(DocumentRequest):
    check_types: List[Literal["characters", "timeline", "locations", "terminology"]] = Field(
        default_factory=lambda: list(DEFAULT_CONTINUITY_CHECKS)
    )


class ReadabilityRequest(DocumentRequest):
    target_reading_level: Optional[
        Literal["elementary", "middle-school", "high-school", "college", "professional"]
    ] = None


class QualityAuditRequest(DocumentRequest):
    pass


class SnapshotRequest(DocumentRequest):
    """Read-only; the request id is validated but never recorded"""
    pass


def parse_request(model: Type[R], data: Dict[str, Any]) -> R:
    """
    Validate raw input against a request model.

    Raises:
        ValidationError: wraps pydantic's error with the first failing field
    """
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        errors = e.errors()
        field = ".".join(str(p) for p in errors[0]["loc"]) if errors else None
        raise ValidationError(f"Invalid {model.__name__}: {e}", field) from e
