"""
Pipeline Orchestrator - sequences stage agents over a manuscript

Responsibilities:
- run stages strictly in order (full compliance or an isolated entrypoint)
- at-most-once execution per (operation, request_id)
- bounded retry with backoff for transient provider errors
- abort on stage failure, keeping results produced so far
- cooperative cancellation between stages
- per-document locking so concurrent calls never interleave writes

Usage:
    orchestrator = PipelineOrchestrator.from_providers(repository, completion, retriever)
    await orchestrator.upsert_document(content=text, request_id="req-0001")
    report = await orchestrator.run_compliance(document_id, request_id="req-0002")
"""

import asyncio
import random
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ai_providers.base import CompletionProvider, ProviderError
from config.constants import (
    COMPLIANCE_STAGES,
    OP_UPSERT,
    OP_COMPLIANCE,
    OP_STRUCTURAL,
    OP_STYLE,
    OP_CONTINUITY,
    OP_READABILITY,
    OP_QUALITY_AUDIT,
)
from config.logging_config import get_logger
from config.settings import Settings, get_settings
from editorial.errors import EditorialError, StageExecutionError, ValidationError
from editorial.retrieval.reference_retriever import ReferenceRetriever
from .agents import StageAgent, StageParameters, build_agents
from .confidence import (
    calculate_overall_confidence,
    low_confidence_stages,
    stage_breakdown,
    reprocessing_recommendations,
)
from .models import Document, DocumentMetadata, IssueSeverity, StageResult, calculate_word_count
from .repository import DocumentRepository
from .requests import (
    UpsertDocumentRequest,
    ComplianceRequest,
    StructuralAnalysisRequest,
    StyleComplianceRequest,
    ContinuityCheckRequest,
    ReadabilityRequest,
    QualityAuditRequest,
    SnapshotRequest,
    parse_request,
)

logger = get_logger(__name__)


class RunStatus(str, Enum):
    """Lifecycle of one orchestrator run"""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


class CancellationToken:
    """Cooperative cancellation, checked before each stage"""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class RunReport:
    """What happened during one sequence of stages"""
    operation: str
    document_id: str
    stages: List[int]
    status: RunStatus = RunStatus.NOT_STARTED
    results: List[StageResult] = field(default_factory=list)
    last_stage: Optional[int] = None    # last stage that completed
    failed_stage: Optional[int] = None
    failed_agent: Optional[str] = None
    error: Optional[str] = None
    cause: Optional[Exception] = field(default=None, repr=False)
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def overall_confidence(self) -> float:
        return calculate_overall_confidence(self.results)

    @property
    def summary(self) -> Dict[str, Any]:
        return {
            "stages_run": len(self.results),
            "total_issues": sum(r.issue_count for r in self.results),
            "processing_time_ms": sum(r.processing_time_ms for r in self.results),
        }

    @property
    def duration(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.time()
        return end - self.started_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "document_id": self.document_id,
            "status": self.status.value,
            "stages": list(self.stages),
            "completed_stages": [r.stage for r in self.results],
            "last_stage": self.last_stage,
            "failed_stage": self.failed_stage,
            "failed_agent": self.failed_agent,
            "error": self.error,
            "overall_confidence": self.overall_confidence,
            "summary": self.summary,
        }


@dataclass
class _DocumentLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class PipelineOrchestrator:
    """
    Drives stage agents for manuscripts stored in a DocumentRepository.

    Every entrypoint validates its request, takes the document's lock,
    short-circuits duplicates, runs, persists and records the request id
    only when the run completed.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        agents: Dict[int, StageAgent],
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.agents = agents
        self.settings = settings or get_settings()
        self._locks: Dict[str, _DocumentLock] = {}

    @classmethod
    def from_providers(
        cls,
        repository: DocumentRepository,
        completion: CompletionProvider,
        retriever: Optional[ReferenceRetriever] = None,
        settings: Optional[Settings] = None,
    ) -> "PipelineOrchestrator":
        settings = settings or get_settings()
        # A provider built by the manager already resolved the model id
        config = getattr(completion, "config", None)
        model_id = getattr(config, "model", "") or settings.completion_model
        agents = build_agents(
            completion,
            retriever=retriever,
            model_id=model_id,
            top_k=settings.retrieval_top_k,
            min_score_threshold=settings.retrieval_threshold,
        )
        return cls(repository, agents, settings)

    @asynccontextmanager
    async def _lock(self, document_id: str):
        """Hold the document's lock; the entry is dropped once nobody holds or awaits it"""
        entry = self._locks.get(document_id)
        if entry is None:
            entry = self._locks[document_id] = _DocumentLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[document_id]

    # ==================== STAGE EXECUTION ====================

    async def _run_stage(self, stage: int, document: Document, params: StageParameters) -> StageResult:
        """One stage with bounded retry on transient provider errors"""
        agent = self.agents.get(stage)
        if agent is None:
            raise EditorialError(f"No agent registered for stage {stage}")
        max_retries = self.settings.stage_max_retries
        attempt = 0

        while True:
            try:
                return await agent.run(document, params)
            except ProviderError as e:
                if not e.retryable or attempt >= max_retries:
                    raise
                attempt += 1
                # Exponential backoff with jitter before retry
                base_delay = min(
                    self.settings.retry_base_delay * (2 ** (attempt - 1)),
                    self.settings.retry_max_delay,
                )
                jitter = random.uniform(0, base_delay * 0.1)
                logger.warning(
                    f"Stage {stage} ({agent.name}): {e.status.value} error, "
                    f"retry {attempt}/{max_retries} in {base_delay + jitter:.2f}s"
                )
                await asyncio.sleep(base_delay + jitter)

    async def _execute(
        self,
        operation: str,
        document: Document,
        stages: List[int],
        params: StageParameters,
        cancellation: Optional[CancellationToken] = None,
        reset: bool = False,
    ) -> RunReport:
        """
        Run stages in order against an already locked document.

        Results are written onto the document as each stage completes, so
        later stages see earlier ones. Never raises for stage failures;
        the report carries the outcome.
        """
        report = RunReport(operation=operation, document_id=document.id, stages=list(stages))

        if reset:
            document.stage_results = []
            document.workflow_state.reset()

        report.status = RunStatus.RUNNING
        logger.info(f"[{document.id}] {operation}: running stages {stages}")

        for stage in stages:
            if cancellation is not None and cancellation.is_cancelled():
                report.status = RunStatus.CANCELLED
                logger.info(f"[{document.id}] {operation}: cancelled before stage {stage}")
                break

            try:
                result = await self._run_stage(stage, document, params)
            except Exception as e:
                report.status = RunStatus.ABORTED
                report.failed_stage = stage
                agent = self.agents.get(stage)
                report.failed_agent = agent.agent_name(params) if agent else f"Stage {stage}"
                report.error = f"Stage {stage} failed: {e}"
                report.cause = e
                logger.error(f"[{document.id}] {operation}: stage {stage} failed: {type(e).__name__}: {e}")
                break

            document.replace_stage_results([result])
            document.workflow_state.mark_completed(stage)
            report.results.append(result)
            report.last_stage = stage
            logger.info(
                f"[{document.id}] Stage {stage} ({result.agent_name}) complete: "
                f"confidence={result.confidence:.2f}, issues={result.issue_count}, "
                f"{result.processing_time_ms}ms"
            )

        if report.status == RunStatus.RUNNING:
            report.status = RunStatus.COMPLETED

        document.workflow_state.overall_confidence = calculate_overall_confidence(document.stage_results)
        report.finished_at = time.time()
        return report

    async def _run_operation(
        self,
        operation: str,
        document_id: str,
        request_id: str,
        stages: List[int],
        params: StageParameters,
        build_response,
        cancellation: Optional[CancellationToken] = None,
        reset: bool = False,
        precondition=None,
    ) -> Dict[str, Any]:
        """Shared lock / duplicate / run / persist / record flow"""
        async with self._lock(document_id):
            document = self.repository.require(document_id)

            if document.is_duplicate(operation, request_id):
                logger.info(f"[{document_id}] {operation}: duplicate request {request_id}, replaying result")
                return self._replay(document, operation)

            if precondition is not None:
                precondition(document)

            report = await self._execute(operation, document, stages, params, cancellation, reset)
            try:
                if report.status == RunStatus.ABORTED:
                    raise StageExecutionError(
                        report.failed_stage,
                        report.failed_agent,
                        report.results,
                        report.cause,
                    ) from report.cause

                if report.status == RunStatus.CANCELLED:
                    return {
                        "status": report.status.value,
                        "last_stage": report.last_stage,
                        "stage_results": [r.to_dict() for r in report.results],
                        "run": report.to_dict(),
                    }

                response = build_response(document, report)
                response["status"] = report.status.value
                document.mark_request(operation, request_id, response)
                return response
            finally:
                self.repository.put(document)

    @staticmethod
    def _replay(document: Document, operation: str) -> Dict[str, Any]:
        stored = document.operation_results.get(operation)
        if stored is not None:
            return dict(stored)
        # Recorded before results were stored (e.g. a migrated document)
        return {"status": RunStatus.COMPLETED.value, "stage_results": [r.to_dict() for r in document.stage_results]}

    # ==================== ENTRYPOINTS ====================

    async def upsert_document(
        self,
        content: str,
        request_id: str,
        document_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create or replace a manuscript.

        Content and metadata are replaced; stage results, the continuity
        ledger and request history are kept.

        Returns:
            {"document_id", "updated"}
        """
        request = parse_request(UpsertDocumentRequest, {
            "content": content,
            "document_id": document_id,
            "metadata": metadata,
            "request_id": request_id,
        })
        doc_id = request.document_id or str(uuid.uuid4())

        async with self._lock(doc_id):
            existing = self.repository.get(doc_id)
            if existing is not None and existing.is_duplicate(OP_UPSERT, request.request_id):
                logger.info(f"[{doc_id}] upsert: duplicate request {request.request_id}")
                return self._replay(existing, OP_UPSERT)

            meta_in = request.metadata
            new_meta = DocumentMetadata(
                title=meta_in.title if meta_in else None,
                genre=meta_in.genre if meta_in else None,
                target_audience=meta_in.target_audience if meta_in else None,
                language=(meta_in.language if meta_in and meta_in.language else "en"),
                word_count=calculate_word_count(request.content),
            )

            if existing is None:
                document = Document(id=doc_id, content=request.content, metadata=new_meta)
            else:
                new_meta.created_at = existing.metadata.created_at
                document = existing
                document.content = request.content
                document.metadata = new_meta
                document.workflow_state.reset()

            response = {"document_id": doc_id, "updated": existing is not None}
            document.mark_request(OP_UPSERT, request.request_id, response)
            self.repository.put(document)

        logger.info(f"[{doc_id}] upsert: {new_meta.word_count} words ({'updated' if existing else 'created'})")
        return dict(response)

    async def run_compliance(
        self,
        document_id: str,
        request_id: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """
        Full compliance scan: stages 1, 2, 3, 4, 7, 8, 9, 10.

        Previous stage results are cleared first.

        Raises:
            ValidationError: bad request or unknown document
            StageExecutionError: a stage failed (partial results kept)
        """
        request = parse_request(ComplianceRequest, {"document_id": document_id, "request_id": request_id})

        def build_response(document: Document, report: RunReport) -> Dict[str, Any]:
            issues = [i for r in report.results for i in r.issues]
            return {
                "result": [i.to_dict() for i in issues],
                "overall_confidence": report.overall_confidence,
                "summary": {
                    "total_issues": len(issues),
                    "critical_issues": sum(1 for i in issues if i.severity == IssueSeverity.CRITICAL),
                    "stages_completed": len(document.workflow_state.stages_completed),
                    "processing_time_ms": sum(r.processing_time_ms for r in report.results),
                },
                "stage_results": [r.to_dict() for r in report.results],
            }

        return await self._run_operation(
            OP_COMPLIANCE,
            request.document_id,
            request.request_id,
            list(COMPLIANCE_STAGES),
            StageParameters(),
            build_response,
            cancellation=cancellation,
            reset=True,
        )

    async def run_structural_analysis(
        self,
        document_id: str,
        request_id: str,
        analysis_type: str = "all",
        cancellation: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """Structure (5) and/or character arcs (6) depending on analysis_type"""
        request = parse_request(StructuralAnalysisRequest, {
            "document_id": document_id,
            "request_id": request_id,
            "analysis_type": analysis_type,
        })

        stages = []
        if request.analysis_type in ("pacing", "plotStructure", "all"):
            stages.append(5)
        if request.analysis_type in ("characterArcs", "all"):
            stages.append(6)

        def build_response(document: Document, report: RunReport) -> Dict[str, Any]:
            results = report.results
            return {
                "analysis": [r.to_dict() for r in results],
                "summary": {
                    "analysis_type": request.analysis_type,
                    "total_issues": sum(r.issue_count for r in results),
                    "average_confidence": (
                        sum(r.confidence for r in results) / len(results) if results else 0.0
                    ),
                },
            }

        return await self._run_operation(
            OP_STRUCTURAL,
            request.document_id,
            request.request_id,
            stages,
            StageParameters(analysis_type=request.analysis_type),
            build_response,
            cancellation=cancellation,
        )

    async def run_style_compliance(
        self,
        document_id: str,
        request_id: str,
        style_guide: str = "chicago",
        genre: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Style stage (7) against a chosen style guide and genre"""
        request = parse_request(StyleComplianceRequest, {
            "document_id": document_id,
            "request_id": request_id,
            "style_guide": style_guide,
            "genre": genre,
        })

        def build_response(document: Document, report: RunReport) -> Dict[str, Any]:
            result = report.results[0]
            return {
                "compliance": result.to_dict(),
                "summary": {
                    "style_guide": request.style_guide,
                    "genre": request.genre,
                    "issues_found": result.issue_count,
                    "confidence": result.confidence,
                },
            }

        return await self._run_operation(
            OP_STYLE,
            request.document_id,
            request.request_id,
            [7],
            StageParameters(style_guide=request.style_guide, genre=request.genre),
            build_response,
        )

    async def run_continuity_check(
        self,
        document_id: str,
        request_id: str,
        check_types: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Continuity stage (8); merges findings into the ledger"""
        data: Dict[str, Any] = {"document_id": document_id, "request_id": request_id}
        if check_types is not None:
            data["check_types"] = check_types
        request = parse_request(ContinuityCheckRequest, data)

        def build_response(document: Document, report: RunReport) -> Dict[str, Any]:
            result = report.results[0]
            return {
                "continuity": result.to_dict(),
                "continuity_data": document.continuity.to_dict(),
                "summary": {
                    "check_types": list(request.check_types),
                    "issues_found": result.issue_count,
                    "characters_tracked": len(document.continuity.characters),
                    "timeline_events_tracked": len(document.continuity.timeline),
                },
            }

        return await self._run_operation(
            OP_CONTINUITY,
            request.document_id,
            request.request_id,
            [8],
            StageParameters(check_types=list(request.check_types)),
            build_response,
        )

    async def run_readability(
        self,
        document_id: str,
        request_id: str,
        target_reading_level: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Readability stage (9)"""
        request = parse_request(ReadabilityRequest, {
            "document_id": document_id,
            "request_id": request_id,
            "target_reading_level": target_reading_level,
        })

        def build_response(document: Document, report: RunReport) -> Dict[str, Any]:
            result = report.results[0]
            return {
                "optimization": result.to_dict(),
                "summary": {
                    "target_reading_level": request.target_reading_level or "general adult",
                    "issues_found": result.issue_count,
                    "confidence": result.confidence,
                },
            }

        return await self._run_operation(
            OP_READABILITY,
            request.document_id,
            request.request_id,
            [9],
            StageParameters(target_reading_level=request.target_reading_level),
            build_response,
        )

    async def run_quality_audit(self, document_id: str, request_id: str) -> Dict[str, Any]:
        """
        QA stage (10) over the existing results, plus reprocessing advice.

        Raises:
            ValidationError: no stage results to audit yet
        """
        request = parse_request(QualityAuditRequest, {"document_id": document_id, "request_id": request_id})
        threshold = self.settings.low_confidence_threshold

        def require_results(document: Document) -> None:
            if not document.stage_results:
                raise ValidationError(
                    "No previous stage results to audit. Run compliance scan first.",
                    "document_id",
                )

        def build_response(document: Document, report: RunReport) -> Dict[str, Any]:
            results = document.stage_results
            overall = calculate_overall_confidence(results)
            low = low_confidence_stages(results, threshold)
            return {
                "audit": report.results[0].to_dict(),
                "quality_metrics": {
                    "overall_confidence": overall,
                    "needs_reprocessing": overall < threshold,
                    "low_confidence_stages": low,
                    "stage_breakdown": stage_breakdown(results),
                },
                "recommendations": reprocessing_recommendations(low),
            }

        return await self._run_operation(
            OP_QUALITY_AUDIT,
            request.document_id,
            request.request_id,
            [10],
            StageParameters(),
            build_response,
            precondition=require_results,
        )

    async def get_snapshot(self, document_id: str, request_id: str) -> Dict[str, Any]:
        """Current document state: metadata, workflow, stage results, ledger"""
        request = parse_request(SnapshotRequest, {"document_id": document_id, "request_id": request_id})
        async with self._lock(request.document_id):
            document = self.repository.require(request.document_id)
        return document.snapshot()
