"""
Unit tests for editorial.pipeline.requests module.
"""

import pytest

from editorial.errors import ValidationError
from editorial.pipeline.requests import (
    ContinuityCheckRequest,
    ReadabilityRequest,
    StructuralAnalysisRequest,
    StyleComplianceRequest,
    UpsertDocumentRequest,
    parse_request,
)


class TestParseRequest:
    """Tests for request validation."""

    def test_short_request_id(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_request(StyleComplianceRequest, {"document_id": "doc-001", "request_id": "abc"})
        assert exc_info.value.field == "request_id"

    def test_missing_document_id(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_request(StyleComplianceRequest, {"request_id": "req-0001"})
        assert exc_info.value.field == "document_id"

    def test_unknown_style_guide(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_request(StyleComplianceRequest, {
                "document_id": "doc-001", "request_id": "req-0001", "style_guide": "harvard",
            })
        assert exc_info.value.field == "style_guide"

    def test_style_defaults(self):
        request = parse_request(StyleComplianceRequest, {"document_id": "doc-001", "request_id": "req-0001"})
        assert request.style_guide == "chicago"
        assert request.genre is None

    def test_continuity_default_checks(self):
        request = parse_request(ContinuityCheckRequest, {"document_id": "doc-001", "request_id": "req-0001"})
        assert request.check_types == ["characters", "timeline"]

    def test_continuity_unknown_check(self):
        with pytest.raises(ValidationError):
            parse_request(ContinuityCheckRequest, {
                "document_id": "doc-001", "request_id": "req-0001", "check_types": ["weather"],
            })

    def test_reading_level(self):
        with pytest.raises(ValidationError):
            parse_request(ReadabilityRequest, {
                "document_id": "doc-001", "request_id": "req-0001", "target_reading_level": "toddler",
            })

    def test_analysis_type(self):
        request = parse_request(StructuralAnalysisRequest, {
            "document_id": "doc-001", "request_id": "req-0001", "analysis_type": "pacing",
        })
        assert request.analysis_type == "pacing"


class TestUpsertDocumentRequest:
    """Tests for manuscript submission validation."""

    def test_short_manuscript(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_request(UpsertDocumentRequest, {"content": "Too short.", "request_id": "req-0001"})
        assert exc_info.value.field == "content"

    def test_valid(self, manuscript):
        request = parse_request(UpsertDocumentRequest, {
            "content": manuscript,
            "request_id": "req-0001",
            "metadata": {"title": "The Harbor", "genre": "romance"},
        })
        assert request.document_id is None
        assert request.metadata.genre == "romance"

    def test_empty_document_id(self, manuscript):
        with pytest.raises(ValidationError):
            parse_request(UpsertDocumentRequest, {
                "content": manuscript, "request_id": "req-0001", "document_id": "",
            })
