"""
Retrieval index: vector search over embedded reference corpora.
"""

from .corpus_store import (
    CorpusStore,
    CorpusRecord,
    VectorIndexEntry,
    InMemoryCorpusStore,
    FileCorpusStore,
)
from .vector_index import VectorIndex, ScoredChunk, cosine_similarity
from .reference_retriever import (
    ReferenceRetriever,
    ReferenceResult,
    format_citation,
    format_citations,
    format_reference_context,
    available_corpora,
    genre_corpus_id,
)

__all__ = [
    'CorpusStore',
    'CorpusRecord',
    'VectorIndexEntry',
    'InMemoryCorpusStore',
    'FileCorpusStore',
    'VectorIndex',
    'ScoredChunk',
    'cosine_similarity',
    'ReferenceRetriever',
    'ReferenceResult',
    'format_citation',
    'format_citations',
    'format_reference_context',
    'available_corpora',
    'genre_corpus_id',
]
