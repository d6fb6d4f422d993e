"""
Unit tests for editorial.pipeline.decoding module.

Tests the strict / extracted / default phases of decode_json and the
payload helpers.
"""

from editorial.pipeline.decoding import (
    decode_json,
    expect_dict,
    expect_list,
    QAPayload,
    ReadabilityPayload,
    TemporalPayload,
)


class TestDecodeJson:
    """Tests for decode_json."""

    def test_strict(self):
        result = decode_json('[{"message": "x"}]', [])
        assert result.phase == "strict"
        assert result.ok is True
        assert result.value == [{"message": "x"}]

    def test_code_fenced_reply(self):
        """Models often wrap JSON in markdown fences."""
        raw = 'Here you go:\n```json\n{"dominantTense": "past"}\n```'
        result = decode_json(raw, {})
        assert result.phase == "extracted"
        assert result.value == {"dominantTense": "past"}

    def test_prose_then_array(self):
        result = decode_json('Found these issues: [{"severity": "minor"}] Hope it helps.', [])
        assert result.value == [{"severity": "minor"}]

    def test_brackets_inside_strings(self):
        raw = 'Note: {"message": "use ] and } carefully", "n": 1} trailing'
        result = decode_json(raw, {})
        assert result.value == {"message": "use ] and } carefully", "n": 1}

    def test_first_parseable_span_wins(self):
        raw = 'broken {not json} then {"ok": true}'
        result = decode_json(raw, {})
        assert result.phase == "extracted"
        assert result.value == {"ok": True}

    def test_default_on_garbage(self):
        default = {"issues": []}
        result = decode_json("I could not analyze this manuscript.", default)
        assert result.phase == "default"
        assert result.ok is False
        assert result.value == default
        assert result.value is not default

    def test_empty_and_none(self):
        assert decode_json("", []).phase == "default"
        assert decode_json(None, []).phase == "default"

    def test_truncated_json(self):
        assert decode_json('[{"message": "cut off', []).phase == "default"


class TestShapeHelpers:
    """Tests for expect_list / expect_dict."""

    def test_expect_list_passthrough(self):
        assert expect_list([1, 2]) == [1, 2]

    def test_expect_list_unwraps_issues(self):
        assert expect_list({"issues": [{"a": 1}]}) == [{"a": 1}]

    def test_expect_list_single_object(self):
        assert expect_list({"message": "lonely"}) == [{"message": "lonely"}]

    def test_expect_list_other(self):
        assert expect_list("text") == []
        assert expect_list({}) == []

    def test_expect_dict_layers_defaults(self):
        assert expect_dict({"b": 2}, {"a": 1, "b": 0}) == {"a": 1, "b": 2}

    def test_expect_dict_single_element_list(self):
        assert expect_dict([{"a": 1}]) == {"a": 1}


class TestPayloads:
    """Tests for stage payload coercion."""

    def test_temporal_wrong_types(self):
        payload = TemporalPayload.from_raw({"dominantTense": 3, "tenseShifts": "none"})
        assert payload.dominant_tense == "3"
        assert payload.tense_shifts == []

    def test_readability_numeric_strings(self):
        payload = ReadabilityPayload.from_raw({"fleschKincaidGrade": "8.5", "readabilityScore": "n/a"})
        assert payload.flesch_kincaid_grade == 8.5
        assert payload.readability_score is None

    def test_qa_approval_defaults_true(self):
        assert QAPayload.from_raw({}).approval_recommendation is True

    def test_qa_approval_string_values(self):
        assert QAPayload.from_raw({"approvalRecommendation": "false"}).approval_recommendation is False
        assert QAPayload.from_raw({"approvalRecommendation": "yes"}).approval_recommendation is True
