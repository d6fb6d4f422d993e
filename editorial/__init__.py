"""
Manuscript Editor - multi-stage editing pipeline

Subpackages:
- editorial.retrieval: reference corpora, vector index, grounding lookups
- editorial.pipeline: stage agents, continuity ledger, orchestrator
"""

from .errors import EditorialError, ValidationError, ProviderError, StageExecutionError
from .chunker import Chunk, ChunkMetadata, ManuscriptChunker, chunk_manuscript

__all__ = [
    'EditorialError',
    'ValidationError',
    'ProviderError',
    'StageExecutionError',
    'Chunk',
    'ChunkMetadata',
    'ManuscriptChunker',
    'chunk_manuscript',
]

__version__ = "1.0.0"
