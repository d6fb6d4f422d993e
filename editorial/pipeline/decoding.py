"""
Tolerant decoding of model output.

Models are asked for bare JSON but often wrap it in prose or code fences.
decode_json tries, in order:

1. strict   - json.loads of the whole reply
2. extracted - the first balanced {...} or [...] span that parses
3. default  - the caller's fallback value

It never raises. The per-stage payload classes below turn the loosely
typed result into explicit fields with defaults.
"""

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

PHASE_STRICT = "strict"
PHASE_EXTRACTED = "extracted"
PHASE_DEFAULT = "default"

_OPENERS = {"{": "}", "[": "]"}


@dataclass
class DecodeResult:
    """Decoded value and how it was obtained"""
    value: Any
    phase: str

    @property
    def ok(self) -> bool:
        return self.phase != PHASE_DEFAULT


def _balanced_spans(text: str) -> Iterator[Tuple[int, int]]:
    """
    Yield (start, end) of balanced top-level {...} / [...] spans.

    Brackets inside JSON string literals are ignored.
    """
    i = 0
    n = len(text)
    while i < n:
        if text[i] not in _OPENERS:
            i += 1
            continue

        start = i
        stack = [_OPENERS[text[i]]]
        in_string = False
        escaped = False
        j = i + 1
        while j < n and stack:
            ch = text[j]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch in _OPENERS:
                stack.append(_OPENERS[ch])
            elif ch == stack[-1]:
                stack.pop()
            elif ch in ("}", "]"):
                break  # mismatched closer
            j += 1

        if not stack:
            yield start, j
            i = j
        else:
            i = start + 1


def decode_json(raw: Optional[str], default: Any) -> DecodeResult:
    """
    Parse model output as JSON, falling back gracefully.

    Args:
        raw: Model reply
        default: Value returned (deep-copied) when nothing parses

    Returns:
        DecodeResult with phase strict / extracted / default
    """
    text = (raw or "").strip()
    if not text:
        return DecodeResult(copy.deepcopy(default), PHASE_DEFAULT)

    try:
        return DecodeResult(json.loads(text), PHASE_STRICT)
    except ValueError:
        pass

    for start, end in _balanced_spans(text):
        try:
            return DecodeResult(json.loads(text[start:end]), PHASE_EXTRACTED)
        except ValueError:
            continue

    return DecodeResult(copy.deepcopy(default), PHASE_DEFAULT)


def expect_list(value: Any, keys: Tuple[str, ...] = ("issues",)) -> List[Any]:
    """
    Coerce a decoded value to a list.

    A dict wrapping a list under one of `keys` is unwrapped; a lone dict
    becomes a one-element list; anything else is [].
    """
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for key in keys:
            if isinstance(value.get(key), list):
                return value[key]
        return [value] if value else []
    return []


def expect_dict(value: Any, default: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Coerce a decoded value to a dict layered over defaults"""
    result = copy.deepcopy(default) if default else {}
    if isinstance(value, dict):
        result.update(value)
    elif isinstance(value, list) and len(value) == 1 and isinstance(value[0], dict):
        result.update(value[0])
    return result


def _str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, (str, int, float)):
        return str(value)
    return default


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "approved", "1")
    return bool(value)


# ============================================================================
# Stage payloads
# ============================================================================

@dataclass
class IntakePayload:
    detected_genre: str = ""
    target_audience: str = ""
    narrative_voice: str = ""
    dominant_tense: str = ""
    structural_overview: str = ""
    initial_observations: List[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, value: Any) -> "IntakePayload":
        data = expect_dict(value)
        return cls(
            detected_genre=_str(data.get("detectedGenre")),
            target_audience=_str(data.get("targetAudience")),
            narrative_voice=_str(data.get("narrativeVoice")),
            dominant_tense=_str(data.get("dominantTense")),
            structural_overview=_str(data.get("structuralOverview")),
            initial_observations=[_str(o) for o in _list(data.get("initialObservations")) if _str(o)],
        )


@dataclass
class TemporalPayload:
    dominant_tense: str = ""
    tense_shifts: List[Any] = field(default_factory=list)
    voice_issues: List[Any] = field(default_factory=list)

    @classmethod
    def from_raw(cls, value: Any) -> "TemporalPayload":
        data = expect_dict(value)
        return cls(
            dominant_tense=_str(data.get("dominantTense")),
            tense_shifts=_list(data.get("tenseShifts")),
            voice_issues=_list(data.get("voiceIssues")),
        )


@dataclass
class StructurePayload:
    pacing_assessment: str = ""
    structural_issues: List[Any] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, value: Any) -> "StructurePayload":
        data = expect_dict(value)
        return cls(
            pacing_assessment=_str(data.get("pacingAssessment")),
            structural_issues=_list(data.get("structuralIssues")),
            recommendations=[_str(r) for r in _list(data.get("recommendations")) if _str(r)],
        )


@dataclass
class ArcPayload:
    characters: List[Dict[str, Any]] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, value: Any) -> "ArcPayload":
        data = expect_dict(value)
        return cls(
            characters=[c for c in _list(data.get("characters")) if isinstance(c, dict)],
            recommendations=[_str(r) for r in _list(data.get("recommendations")) if _str(r)],
        )


@dataclass
class ContinuityPayload:
    raw: Dict[str, Any] = field(default_factory=dict)
    characters_tracked: List[Any] = field(default_factory=list)
    location_issues: List[Any] = field(default_factory=list)
    terminology_issues: List[Any] = field(default_factory=list)

    @classmethod
    def from_raw(cls, value: Any) -> "ContinuityPayload":
        data = expect_dict(value)
        return cls(
            raw=data,
            characters_tracked=_list(data.get("charactersTracked")),
            location_issues=_list(data.get("locationIssues")),
            terminology_issues=_list(data.get("terminologyIssues")),
        )


@dataclass
class ReadabilityPayload:
    flesch_kincaid_grade: Optional[float] = None
    readability_score: Optional[float] = None
    sentence_variety: str = ""
    issues: List[Any] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, value: Any) -> "ReadabilityPayload":
        data = expect_dict(value)
        return cls(
            flesch_kincaid_grade=_number(data.get("fleschKincaidGrade")),
            readability_score=_number(data.get("readabilityScore")),
            sentence_variety=_str(data.get("sentenceVariety")),
            issues=_list(data.get("issues")),
            recommendations=[_str(r) for r in _list(data.get("recommendations")) if _str(r)],
        )


@dataclass
class QAPayload:
    overall_quality: str = "good"
    remaining_issues: List[Any] = field(default_factory=list)
    approval_recommendation: bool = True
    notes: List[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, value: Any) -> "QAPayload":
        data = expect_dict(value)
        return cls(
            overall_quality=_str(data.get("overallQuality"), "good") or "good",
            remaining_issues=_list(data.get("remainingIssues")),
            approval_recommendation=_flag(data.get("approvalRecommendation"), True),
            notes=[_str(n) for n in _list(data.get("notes")) if _str(n)],
        )
