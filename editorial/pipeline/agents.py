"""
Stage Agents - one analytical pass each

Every agent follows the same run():
1. optional grounding from the ReferenceRetriever
2. build a stage prompt
3. exactly one completion call
4. tolerant JSON decode
5. map the payload to Issues + confidence

Provider errors propagate untouched; the orchestrator decides whether to
retry. A reply that cannot be decoded degrades the result instead of
raising.

Stages:
    1 Intake        2 Grammar      3 Syntax        4 Temporal (tense/voice)
    5 Structure     6 Arc          7 Style         8 Continuity
    9 Readability   10 QA
"""

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from ai_providers.base import CompletionProvider
from config.constants import (
    RETRIEVAL_TOP_K,
    RETRIEVAL_THRESHOLD,
    PROMPT_GROUNDING_QUERY_CHARS,
    CONTINUITY_CHECK_TYPES,
    INTAKE_CONFIDENCE,
    ARC_CONFIDENCE,
    READABILITY_DEFAULT_CONFIDENCE,
    QA_APPROVED_CONFIDENCE,
    QA_REJECTED_CONFIDENCE,
    UNPARSEABLE_RESPONSE_CONFIDENCE,
)
from config.logging_config import get_logger
from editorial.retrieval.reference_retriever import (
    ReferenceRetriever,
    ReferenceResult,
    format_reference_context,
)
from . import prompts
from .confidence import issue_penalized_confidence, clamp_confidence
from .decoding import (
    DecodeResult,
    decode_json,
    expect_list,
    IntakePayload,
    TemporalPayload,
    StructurePayload,
    ArcPayload,
    ContinuityPayload,
    ReadabilityPayload,
    QAPayload,
)
from .models import Document, Issue, IssueLocation, IssueSeverity, IssueType, StageResult

logger = get_logger(__name__)


@dataclass
class StageParameters:
    """Caller-supplied knobs for a run"""
    style_guide: str = "chicago"                 # chicago | mla | apa | genre-specific
    genre: Optional[str] = None                  # overrides document genre for style grounding
    target_reading_level: Optional[str] = None   # elementary .. professional
    check_types: List[str] = field(default_factory=lambda: list(CONTINUITY_CHECK_TYPES))
    analysis_type: str = "all"                   # pacing | characterArcs | plotStructure | all


@dataclass
class Grounding:
    """Reference context injected into a prompt"""
    context: Optional[str] = None
    sources: Optional[List[str]] = None

    @classmethod
    def from_results(cls, heading: str, results: List[ReferenceResult]) -> "Grounding":
        if not results:
            return cls()
        context = (
            f"{heading}\n{format_reference_context(results)}\n\n"
            "Apply these rules during your review."
        )
        return cls(context=context, sources=[r.citation for r in results])


@dataclass
class StageOutcome:
    """What interpret() extracted from the decoded reply"""
    issues: List[Issue]
    summary: str
    confidence: float
    details: Dict[str, Any] = field(default_factory=dict)


def build_issue(
    raw: Any,
    default_type: IssueType,
    default_severity: IssueSeverity = IssueSeverity.MINOR,
    message: Optional[str] = None,
) -> Issue:
    """
    Turn one decoded item into an Issue.

    Unknown type strings fall back to the stage's type; unknown severities
    to minor; a missing severity to default_severity.
    """
    data = raw if isinstance(raw, dict) else {}
    if isinstance(raw, str) and message is None:
        message = raw

    try:
        issue_type = IssueType(str(data.get("type", "")).lower())
    except ValueError:
        issue_type = default_type

    severity_raw = data.get("severity")
    if not severity_raw:
        severity = default_severity
    else:
        try:
            severity = IssueSeverity(str(severity_raw).lower())
        except ValueError:
            severity = IssueSeverity.MINOR

    text = message if message is not None else data.get("message")
    if not isinstance(text, str) or not text.strip():
        text = f"Unspecified {issue_type.value} issue"

    def _opt(key: str) -> Optional[str]:
        value = data.get(key)
        return str(value) if isinstance(value, (str, int, float)) and str(value) else None

    return Issue(
        id=str(uuid.uuid4()),
        type=issue_type,
        severity=severity,
        message=text,
        location=IssueLocation.from_any(data.get("location")),
        original=_opt("original"),
        suggestion=_opt("suggestion"),
        rule_reference=_opt("ruleReference") or _opt("rule_reference"),
    )


def _grounding_query(prefix: str, content: str) -> str:
    return f"{prefix}: {content[:PROMPT_GROUNDING_QUERY_CHARS]}"


class StageAgent(ABC):
    """
    Base class for the ten pipeline stages.

    Subclasses set stage / name / issue_type and implement build_prompt()
    and interpret(); grounded stages also override ground().
    """

    stage: int = 0
    name: str = ""
    issue_type: IssueType = IssueType.GRAMMAR

    def __init__(
        self,
        completion: CompletionProvider,
        retriever: Optional[ReferenceRetriever] = None,
        model_id: str = "",
        top_k: int = RETRIEVAL_TOP_K,
        min_score_threshold: float = RETRIEVAL_THRESHOLD,
    ):
        self.completion = completion
        self.retriever = retriever
        self.model_id = model_id  # empty: the provider's configured model
        self.top_k = top_k
        self.min_score_threshold = min_score_threshold

    def agent_name(self, params: StageParameters) -> str:
        return self.name

    def fallback(self) -> Any:
        """Value used when the reply cannot be decoded"""
        return {}

    async def ground(self, document: Document, params: StageParameters) -> Grounding:
        return Grounding()

    @abstractmethod
    def build_prompt(self, document: Document, params: StageParameters, grounding: Grounding) -> str:
        pass

    @abstractmethod
    def interpret(self, decoded: DecodeResult, document: Document, params: StageParameters) -> StageOutcome:
        pass

    async def run(self, document: Document, params: Optional[StageParameters] = None) -> StageResult:
        """
        Execute the stage against a document.

        Raises:
            ProviderError: completion or embedding call failed
        """
        params = params or StageParameters()
        start = time.perf_counter()

        grounding = await self.ground(document, params)
        prompt = self.build_prompt(document, params, grounding)
        raw = await self.completion.complete(self.model_id, prompt)

        decoded = decode_json(raw, self.fallback())
        outcome = self.interpret(decoded, document, params)

        confidence = outcome.confidence
        summary = outcome.summary
        details = dict(outcome.details)
        details["decode_phase"] = decoded.phase

        if not decoded.ok:
            logger.warning(f"Stage {self.stage} ({self.name}): unparseable model reply, using defaults")
            confidence = min(confidence, UNPARSEABLE_RESPONSE_CONFIDENCE)
            summary = f"{summary} (model reply could not be parsed)"

        return StageResult(
            agent_name=self.agent_name(params),
            stage=self.stage,
            confidence=clamp_confidence(confidence),
            issues=outcome.issues,
            summary=summary,
            processing_time_ms=int((time.perf_counter() - start) * 1000),
            sources=grounding.sources,
            details=details,
        )


class IssueListAgent(StageAgent):
    """Stages whose reply is a bare array of issues"""

    def fallback(self) -> Any:
        return []

    def _issues(self, decoded: DecodeResult) -> List[Issue]:
        return [build_issue(item, self.issue_type) for item in expect_list(decoded.value)]


# ============================================================================
# Stage 1-4: intake and line editing
# ============================================================================

class IntakeAgent(StageAgent):
    stage = 1
    name = "Intake Agent"

    def build_prompt(self, document, params, grounding):
        return prompts.intake_prompt(document.content, document.metadata)

    def interpret(self, decoded, document, params):
        payload = IntakePayload.from_raw(decoded.value)
        return StageOutcome(
            issues=[],
            summary=(
                f"Pre-processing complete. Genre: {payload.detected_genre or 'unknown'}, "
                f"Voice: {payload.narrative_voice or 'unknown'}"
            ),
            confidence=INTAKE_CONFIDENCE,
            details={
                "detected_genre": payload.detected_genre,
                "target_audience": payload.target_audience,
                "narrative_voice": payload.narrative_voice,
                "dominant_tense": payload.dominant_tense,
                "structural_overview": payload.structural_overview,
                "initial_observations": payload.initial_observations,
            },
        )


class GrammarAgent(IssueListAgent):
    stage = 2
    name = "Grammar Agent"
    issue_type = IssueType.GRAMMAR

    async def ground(self, document, params):
        if self.retriever is None:
            return Grounding()
        results = await self.retriever.query_style_guide(
            _grounding_query("grammar punctuation capitalization spelling rules for", document.content),
            top_k=self.top_k,
            min_score_threshold=self.min_score_threshold,
        )
        return Grounding.from_results("Relevant Chicago Manual of Style Guidelines:", results)

    def build_prompt(self, document, params, grounding):
        return prompts.grammar_prompt(document.content, grounding.context)

    def interpret(self, decoded, document, params):
        issues = self._issues(decoded)
        return StageOutcome(
            issues=issues,
            summary=f"Found {len(issues)} grammar/mechanics issues",
            confidence=issue_penalized_confidence(self.stage, len(issues)),
        )


class SyntaxAgent(IssueListAgent):
    stage = 3
    name = "Syntax Agent"
    issue_type = IssueType.SYNTAX

    def build_prompt(self, document, params, grounding):
        return prompts.syntax_prompt(document.content)

    def interpret(self, decoded, document, params):
        issues = self._issues(decoded)
        return StageOutcome(
            issues=issues,
            summary=f"Found {len(issues)} syntax issues",
            confidence=issue_penalized_confidence(self.stage, len(issues)),
        )


class TemporalAgent(StageAgent):
    stage = 4
    name = "Temporal Agent"
    issue_type = IssueType.TENSE

    def fallback(self):
        return {"tenseShifts": [], "voiceIssues": []}

    def build_prompt(self, document, params, grounding):
        return prompts.temporal_prompt(document.content)

    def interpret(self, decoded, document, params):
        payload = TemporalPayload.from_raw(decoded.value)
        issues = []
        for shift in payload.tense_shifts:
            data = shift if isinstance(shift, dict) else {}
            issues.append(build_issue(
                {**data, "type": "tense", "original": "", "suggestion": ""},
                IssueType.TENSE,
                default_severity=IssueSeverity.MAJOR,
                message=f"Tense shift from {data.get('from') or '?'} to {data.get('to') or '?'}",
            ))
        for voice in payload.voice_issues:
            data = voice if isinstance(voice, dict) else {"message": voice}
            issues.append(build_issue(
                {**data, "type": "voice", "severity": "minor"},
                IssueType.VOICE,
            ))
        return StageOutcome(
            issues=issues,
            summary=f"Dominant tense: {payload.dominant_tense or 'unknown'}, {len(issues)} consistency issues",
            confidence=issue_penalized_confidence(self.stage, len(issues)),
            details={"dominant_tense": payload.dominant_tense},
        )


# ============================================================================
# Stage 5-6: structural analysis
# ============================================================================

class StructureAgent(StageAgent):
    stage = 5
    name = "Structure Agent"
    issue_type = IssueType.STRUCTURE

    def fallback(self):
        return {"structuralIssues": [], "recommendations": []}

    def build_prompt(self, document, params, grounding):
        return prompts.structure_prompt(document.content, document.metadata, params.analysis_type)

    def interpret(self, decoded, document, params):
        payload = StructurePayload.from_raw(decoded.value)
        issues = []
        for item in payload.structural_issues:
            data = dict(item) if isinstance(item, dict) else {"message": item}
            # pacing / flow / organization are sub-kinds of structure
            data["type"] = "structure"
            issues.append(build_issue(data, IssueType.STRUCTURE, default_severity=IssueSeverity.MAJOR))
        return StageOutcome(
            issues=issues,
            summary=f"Structural assessment: {payload.pacing_assessment or 'Analyzed'}",
            confidence=issue_penalized_confidence(self.stage, len(issues)),
            details={
                "pacing_assessment": payload.pacing_assessment,
                "recommendations": payload.recommendations,
                "analysis_type": params.analysis_type,
            },
        )


class ArcAgent(StageAgent):
    stage = 6
    name = "Arc Agent"
    issue_type = IssueType.STRUCTURE

    def fallback(self):
        return {"characters": [], "recommendations": []}

    def build_prompt(self, document, params, grounding):
        return prompts.arc_prompt(document.content)

    def interpret(self, decoded, document, params):
        payload = ArcPayload.from_raw(decoded.value)
        issues = []
        for character in payload.characters:
            name = character.get("name") or "Unnamed character"
            for problem in character.get("issues") or []:
                if isinstance(problem, dict):
                    problem = problem.get("message", "")
                if not problem:
                    continue
                issues.append(build_issue({}, IssueType.STRUCTURE, message=f"{name}: {problem}"))
        return StageOutcome(
            issues=issues,
            summary=f"Tracked {len(payload.characters)} character arcs",
            confidence=ARC_CONFIDENCE,
            details={
                "characters": [
                    {
                        "name": c.get("name", ""),
                        "arc_quality": c.get("arcQuality", ""),
                        "voice_consistency": c.get("voiceConsistency", ""),
                    }
                    for c in payload.characters
                ],
                "recommendations": payload.recommendations,
            },
        )


# ============================================================================
# Stage 7-10: style, continuity, readability, QA
# ============================================================================

class StyleAgent(IssueListAgent):
    stage = 7
    name = "Chicago Agent"
    issue_type = IssueType.STYLE

    def agent_name(self, params):
        if params.style_guide == "chicago":
            return self.name
        return f"{params.style_guide.upper()} Agent"

    @staticmethod
    def _genre(document: Document, params: StageParameters) -> Optional[str]:
        return params.genre or document.metadata.genre

    async def ground(self, document, params):
        if self.retriever is None:
            return Grounding()

        results = await self.retriever.query_style_guide(
            _grounding_query("style guide rules punctuation dialogue formatting for", document.content),
            top_k=3,
            min_score_threshold=self.min_score_threshold,
        )
        genre = self._genre(document, params)
        if genre:
            results = results + await self.retriever.query_genre_rules(
                genre,
                _grounding_query(f"{genre} genre conventions style requirements for", document.content),
                top_k=3,
                min_score_threshold=self.min_score_threshold,
            )
        return Grounding.from_results("Relevant Style Guidelines:", results)

    def build_prompt(self, document, params, grounding):
        return prompts.style_prompt(
            document.content, params.style_guide, self._genre(document, params), grounding.context
        )

    def interpret(self, decoded, document, params):
        issues = self._issues(decoded)
        return StageOutcome(
            issues=issues,
            summary=f"{params.style_guide.upper()} compliance: {len(issues)} style issues",
            confidence=issue_penalized_confidence(self.stage, len(issues)),
            details={"style_guide": params.style_guide, "genre": self._genre(document, params)},
        )


class ContinuityAgent(StageAgent):
    """Also merges its findings into the document's ContinuityLedger"""

    stage = 8
    name = "Continuity Agent"
    issue_type = IssueType.CONTINUITY

    def build_prompt(self, document, params, grounding):
        return prompts.continuity_prompt(document.content, document.continuity, params.check_types)

    def interpret(self, decoded, document, params):
        payload = ContinuityPayload.from_raw(decoded.value)
        checks = params.check_types or CONTINUITY_CHECK_TYPES

        added = document.continuity.merge_findings(payload.raw, checks)

        issues = []
        if "locations" in checks:
            for item in payload.location_issues:
                data = item if isinstance(item, dict) else {"message": item}
                issues.append(build_issue(
                    {**data, "type": "continuity", "severity": "major"}, IssueType.CONTINUITY
                ))
        if "terminology" in checks:
            for item in payload.terminology_issues:
                data = item if isinstance(item, dict) else {"message": item}
                issues.append(build_issue(
                    {**data, "type": "continuity", "severity": "minor"}, IssueType.CONTINUITY
                ))

        return StageOutcome(
            issues=issues,
            summary=(
                f"Tracked {len(payload.characters_tracked)} characters, "
                f"{len(issues)} continuity issues"
            ),
            confidence=issue_penalized_confidence(self.stage, len(issues)),
            details={"check_types": list(checks), "ledger_additions": added},
        )


class ReadabilityAgent(StageAgent):
    stage = 9
    name = "Readability Agent"
    issue_type = IssueType.READABILITY

    def fallback(self):
        return {"issues": [], "recommendations": []}

    def build_prompt(self, document, params, grounding):
        return prompts.readability_prompt(document.content, params.target_reading_level)

    def interpret(self, decoded, document, params):
        payload = ReadabilityPayload.from_raw(decoded.value)
        issues = [build_issue(item, IssueType.READABILITY) for item in payload.issues]

        if payload.readability_score:
            confidence = clamp_confidence(payload.readability_score / 100)
        else:
            confidence = READABILITY_DEFAULT_CONFIDENCE

        grade = payload.flesch_kincaid_grade
        return StageOutcome(
            issues=issues,
            summary=(
                f"Flesch-Kincaid Grade: {grade if grade else 'N/A'}, "
                f"Sentence variety: {payload.sentence_variety or 'unknown'}"
            ),
            confidence=confidence,
            details={
                "flesch_kincaid_grade": grade,
                "readability_score": payload.readability_score,
                "sentence_variety": payload.sentence_variety,
                "recommendations": payload.recommendations,
                "target_reading_level": params.target_reading_level or "general adult",
            },
        )


class QAAgent(StageAgent):
    """Audits the stage results already on the document"""

    stage = 10
    name = "QA Agent"
    issue_type = IssueType.STYLE

    def fallback(self):
        return {"remainingIssues": [], "overallQuality": "good", "approvalRecommendation": True}

    def build_prompt(self, document, params, grounding):
        prior = [r for r in document.stage_results if r.stage != self.stage]
        return prompts.qa_prompt(prior, document.continuity)

    def interpret(self, decoded, document, params):
        payload = QAPayload.from_raw(decoded.value)
        approved = payload.approval_recommendation
        return StageOutcome(
            issues=[],
            summary=(
                f"Overall quality: {payload.overall_quality}, "
                f"Approval: {'Recommended' if approved else 'Needs revision'}"
            ),
            confidence=QA_APPROVED_CONFIDENCE if approved else QA_REJECTED_CONFIDENCE,
            details={
                "overall_quality": payload.overall_quality,
                "approval_recommendation": approved,
                "remaining_issues": payload.remaining_issues,
                "notes": payload.notes,
            },
        )


# Registry: stage number -> agent class
STAGE_AGENTS: Dict[int, Type[StageAgent]] = {
    1: IntakeAgent,
    2: GrammarAgent,
    3: SyntaxAgent,
    4: TemporalAgent,
    5: StructureAgent,
    6: ArcAgent,
    7: StyleAgent,
    8: ContinuityAgent,
    9: ReadabilityAgent,
    10: QAAgent,
}


def build_agents(
    completion: CompletionProvider,
    retriever: Optional[ReferenceRetriever] = None,
    model_id: str = "",
    top_k: int = RETRIEVAL_TOP_K,
    min_score_threshold: float = RETRIEVAL_THRESHOLD,
) -> Dict[int, StageAgent]:
    """Instantiate every stage agent with shared collaborators"""
    return {
        stage: agent_class(
            completion,
            retriever=retriever,
            model_id=model_id,
            top_k=top_k,
            min_score_threshold=min_score_threshold,
        )
        for stage, agent_class in STAGE_AGENTS.items()
    }
