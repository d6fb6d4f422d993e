"""
Editing pipeline: ten stage agents sequenced by the orchestrator.
"""

from .models import (
    Document,
    DocumentMetadata,
    WorkflowState,
    StageResult,
    Issue,
    IssueLocation,
    IssueType,
    IssueSeverity,
)
from .continuity import ContinuityLedger
from .agents import StageAgent, StageParameters, STAGE_AGENTS, build_agents
from .confidence import calculate_overall_confidence, issue_penalized_confidence
from .repository import (
    DocumentRepository,
    InMemoryDocumentRepository,
    SQLiteDocumentRepository,
    create_document_repository,
)
from .orchestrator import PipelineOrchestrator, RunReport, RunStatus, CancellationToken

__all__ = [
    'Document',
    'DocumentMetadata',
    'WorkflowState',
    'StageResult',
    'Issue',
    'IssueLocation',
    'IssueType',
    'IssueSeverity',
    'ContinuityLedger',
    'StageAgent',
    'StageParameters',
    'STAGE_AGENTS',
    'build_agents',
    'calculate_overall_confidence',
    'issue_penalized_confidence',
    'DocumentRepository',
    'InMemoryDocumentRepository',
    'SQLiteDocumentRepository',
    'create_document_repository',
    'PipelineOrchestrator',
    'RunReport',
    'RunStatus',
    'CancellationToken',
]
