"""
Data models for the editing pipeline.

Document (manuscript) -> ordered StageResults -> Issues, plus the
WorkflowState and ContinuityLedger that live on the document.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .continuity import ContinuityLedger


class IssueType(str, Enum):
    """What kind of problem an issue reports"""
    GRAMMAR = "grammar"
    SYNTAX = "syntax"
    STYLE = "style"
    CONTINUITY = "continuity"
    STRUCTURE = "structure"
    READABILITY = "readability"
    TENSE = "tense"
    VOICE = "voice"


class IssueSeverity(str, Enum):
    """How bad an issue is"""
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    SUGGESTION = "suggestion"


def _now() -> str:
    return datetime.now().isoformat()


def _opt_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def calculate_word_count(text: str) -> int:
    return len(text.split())


@dataclass
class IssueLocation:
    """Where an issue was found; every field is optional"""
    chapter: Optional[int] = None
    paragraph: Optional[int] = None
    line: Optional[int] = None
    offset: Optional[int] = None

    def to_dict(self) -> Dict[str, int]:
        return {k: v for k, v in self.__dict__.items() if v is not None}

    @classmethod
    def from_any(cls, data: Any) -> "IssueLocation":
        if not isinstance(data, dict):
            return cls()
        return cls(
            chapter=_opt_int(data.get("chapter")),
            paragraph=_opt_int(data.get("paragraph")),
            line=_opt_int(data.get("line")),
            offset=_opt_int(data.get("offset")),
        )


@dataclass
class Issue:
    """One finding of a stage"""
    id: str
    type: IssueType
    severity: IssueSeverity
    message: str
    location: IssueLocation = field(default_factory=IssueLocation)
    original: Optional[str] = None
    suggestion: Optional[str] = None
    rule_reference: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "location": self.location.to_dict(),
            "message": self.message,
        }
        if self.original:
            data["original"] = self.original
        if self.suggestion:
            data["suggestion"] = self.suggestion
        if self.rule_reference:
            data["rule_reference"] = self.rule_reference
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Issue":
        return cls(
            id=data["id"],
            type=IssueType(data["type"]),
            severity=IssueSeverity(data["severity"]),
            message=data.get("message", ""),
            location=IssueLocation.from_any(data.get("location")),
            original=data.get("original"),
            suggestion=data.get("suggestion"),
            rule_reference=data.get("rule_reference"),
        )


@dataclass
class StageResult:
    """
    Outcome of one stage run.

    Attributes:
        agent_name: Display name ("Grammar Agent", "Chicago Agent", ...)
        stage: Stage number 1-10
        confidence: Stage self-assessment, clamped to [0, 1]
        issues: Findings
        summary: One-line human readable summary
        processing_time_ms: Wall time of the stage
        timestamp: ISO time the stage finished
        sources: Reference citations used for grounding
        details: Stage specific decoded fields
    """
    agent_name: str
    stage: int
    confidence: float
    issues: List[Issue] = field(default_factory=list)
    summary: str = ""
    processing_time_ms: int = 0
    timestamp: str = field(default_factory=_now)
    sources: Optional[List[str]] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Clamp confidence into [0, 1]"""
        self.confidence = min(1.0, max(0.0, float(self.confidence)))

    @property
    def issue_count(self) -> int:
        return len(self.issues)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "agent_name": self.agent_name,
            "stage": self.stage,
            "confidence": self.confidence,
            "issues": [i.to_dict() for i in self.issues],
            "summary": self.summary,
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp,
            "details": copy.deepcopy(self.details),
        }
        if self.sources is not None:
            data["sources"] = list(self.sources)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageResult":
        return cls(
            agent_name=data["agent_name"],
            stage=data["stage"],
            confidence=data["confidence"],
            issues=[Issue.from_dict(i) for i in data.get("issues", [])],
            summary=data.get("summary", ""),
            processing_time_ms=data.get("processing_time_ms", 0),
            timestamp=data.get("timestamp") or _now(),
            sources=data.get("sources"),
            details=data.get("details") or {},
        )


@dataclass
class DocumentMetadata:
    """Manuscript metadata"""
    title: Optional[str] = None
    genre: Optional[str] = None
    target_audience: Optional[str] = None
    language: str = "en"
    word_count: int = 0
    created_at: str = field(default_factory=_now)
    last_modified: str = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentMetadata":
        return cls(**data)


@dataclass
class WorkflowState:
    """Progress of the pipeline over a document"""
    current_stage: int = 0
    stages_completed: List[int] = field(default_factory=list)  # ordered, no duplicates
    overall_confidence: float = 0.0
    last_processed_at: str = field(default_factory=_now)

    def mark_completed(self, stage: int) -> None:
        if stage not in self.stages_completed:
            self.stages_completed.append(stage)
        self.current_stage = stage
        self.last_processed_at = _now()

    def reset(self) -> None:
        self.current_stage = 0
        self.stages_completed = []
        self.overall_confidence = 0.0
        self.last_processed_at = _now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_stage": self.current_stage,
            "stages_completed": list(self.stages_completed),
            "overall_confidence": self.overall_confidence,
            "last_processed_at": self.last_processed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowState":
        return cls(**data)


@dataclass
class Document:
    """
    A manuscript under edit.

    last_request_ids and operation_results are keyed by operation
    ("compliance", "style-compliance", ...) and back request idempotency.
    """
    id: str
    content: str
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    workflow_state: WorkflowState = field(default_factory=WorkflowState)
    stage_results: List[StageResult] = field(default_factory=list)
    continuity: ContinuityLedger = field(default_factory=ContinuityLedger)
    last_request_ids: Dict[str, str] = field(default_factory=dict)
    operation_results: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def is_duplicate(self, operation_key: str, request_id: str) -> bool:
        return self.last_request_ids.get(operation_key) == request_id

    def mark_request(self, operation_key: str, request_id: str, result: Dict[str, Any]) -> None:
        """Record a successful operation so a repeat request replays it"""
        self.last_request_ids[operation_key] = request_id
        self.operation_results[operation_key] = copy.deepcopy(result)
        self.metadata.last_modified = _now()

    def replace_stage_results(self, results: List[StageResult]) -> None:
        """Swap in fresh results for the stages they cover, keep the rest"""
        stages = {r.stage for r in results}
        self.stage_results = [r for r in self.stage_results if r.stage not in stages]
        self.stage_results.extend(results)

    def result_for_stage(self, stage: int) -> Optional[StageResult]:
        for result in reversed(self.stage_results):
            if result.stage == stage:
                return result
        return None

    def snapshot(self) -> Dict[str, Any]:
        """Read-only view for callers"""
        return {
            "id": self.id,
            "metadata": self.metadata.to_dict(),
            "workflow_state": self.workflow_state.to_dict(),
            "stage_results": [r.to_dict() for r in self.stage_results],
            "continuity": self.continuity.to_dict(),
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.snapshot()
        data["content"] = self.content
        data["last_request_ids"] = dict(self.last_request_ids)
        data["operation_results"] = copy.deepcopy(self.operation_results)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        return cls(
            id=data["id"],
            content=data["content"],
            metadata=DocumentMetadata.from_dict(data.get("metadata") or {}),
            workflow_state=WorkflowState.from_dict(data.get("workflow_state") or {}),
            stage_results=[StageResult.from_dict(r) for r in data.get("stage_results", [])],
            continuity=ContinuityLedger.from_dict(data.get("continuity")),
            last_request_ids=dict(data.get("last_request_ids") or {}),
            operation_results=data.get("operation_results") or {},
        )
