"""
Vector Index - per-corpus chunk + embedding search

Each corpus is replaced wholesale on upsert and written through to the
injected CorpusStore. Corpora are loaded lazily on first access and kept
in memory as a numpy matrix for brute-force cosine search.

Usage:
    from editorial.retrieval import VectorIndex, FileCorpusStore

    index = VectorIndex(FileCorpusStore(settings.vector_store_path))
    index.upsert("chicago-manual-punctuation", "CMOS Punctuation", chunks, embeddings)
    hits = index.query("chicago-manual-punctuation", query_vector, top_k=3)
"""

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from config.constants import RETRIEVAL_TOP_K
from config.logging_config import get_logger
from editorial.chunker import Chunk
from editorial.errors import ValidationError
from .corpus_store import CorpusStore, CorpusRecord, VectorIndexEntry

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScoredChunk:
    """Query hit"""
    chunk: Chunk
    score: float

    def __repr__(self) -> str:
        return f"ScoredChunk(score={self.score:.3f}, heading='{self.chunk.heading[:40]}')"


def _as_vector(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64).reshape(-1)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Components missing from the shorter vector count as 0, so vectors of
    different length are compared over their common prefix while each norm
    uses the full vector. Returns 0.0 when either norm is zero.
    """
    va, vb = _as_vector(a), _as_vector(b)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    d = min(va.shape[0], vb.shape[0])
    dot = float(np.dot(va[:d], vb[:d]))
    return float(np.clip(dot / (norm_a * norm_b), -1.0, 1.0))


class _LoadedCorpus:
    """In-memory form of a corpus: record + embedding matrix"""

    def __init__(self, record: CorpusRecord):
        self.record = record
        if record.entries:
            self.matrix = np.vstack([_as_vector(e.embedding) for e in record.entries])
        else:
            self.matrix = np.zeros((0, 0), dtype=np.float64)
        self.norms = np.linalg.norm(self.matrix, axis=1) if len(record.entries) else np.zeros(0)

    def scores(self, query: np.ndarray) -> np.ndarray:
        query_norm = float(np.linalg.norm(query))
        if query_norm == 0.0 or self.matrix.shape[0] == 0:
            return np.zeros(self.matrix.shape[0])

        d = min(query.shape[0], self.matrix.shape[1])
        dots = self.matrix[:, :d] @ query[:d]
        denom = self.norms * query_norm
        sims = np.divide(dots, denom, out=np.zeros_like(dots), where=denom > 0)
        return np.clip(sims, -1.0, 1.0)


class VectorIndex:
    """
    Multi-corpus vector index.

    Queries against different corpora run freely in parallel. Upserts to
    the same corpus are serialized by a per-corpus lock (last writer wins).
    """

    def __init__(self, store: CorpusStore):
        self.store = store
        self._corpora: Dict[str, _LoadedCorpus] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, corpus_id: str) -> threading.Lock:
        with self._registry_lock:
            if corpus_id not in self._locks:
                self._locks[corpus_id] = threading.Lock()
            return self._locks[corpus_id]

    def _load(self, corpus_id: str) -> Optional[_LoadedCorpus]:
        loaded = self._corpora.get(corpus_id)
        if loaded is not None:
            return loaded

        with self._lock_for(corpus_id):
            loaded = self._corpora.get(corpus_id)
            if loaded is None:
                record = self.store.get(corpus_id)
                if record is None:
                    return None
                loaded = _LoadedCorpus(record)
                self._corpora[corpus_id] = loaded
                logger.debug(f"Loaded corpus '{corpus_id}' ({len(record.entries)} chunks)")
        return loaded

    def upsert(
        self,
        corpus_id: str,
        title: str,
        chunks: List[Chunk],
        embeddings: List[Sequence[float]],
    ) -> List[VectorIndexEntry]:
        """
        Replace a corpus with new chunks and embeddings.

        Args:
            corpus_id: Corpus identifier (e.g. "genre-romance")
            title: Human readable title
            chunks: Chunks in order
            embeddings: One vector per chunk, all of the same length

        Returns:
            Stored entries

        Raises:
            ValidationError: count mismatch or mixed dimensionality
        """
        if len(chunks) != len(embeddings):
            raise ValidationError(
                f"Chunk and embedding counts do not match ({len(chunks)} != {len(embeddings)})",
                "embeddings",
            )

        entries = [
            VectorIndexEntry(chunk=chunk, embedding=tuple(float(v) for v in vector))
            for chunk, vector in zip(chunks, embeddings)
        ]

        dimensions = {e.dimension for e in entries}
        if len(dimensions) > 1:
            raise ValidationError(
                f"Mixed embedding dimensions in corpus '{corpus_id}': {sorted(dimensions)}",
                "embeddings",
            )
        if 0 in dimensions:
            raise ValidationError(f"Empty embedding in corpus '{corpus_id}'", "embeddings")

        with self._lock_for(corpus_id):
            self.store.put(corpus_id, title, entries)
            self._corpora[corpus_id] = _LoadedCorpus(CorpusRecord(corpus_id, title, entries))

        logger.info(f"Upserted corpus '{corpus_id}': {len(entries)} chunks")
        return entries

    def query(
        self,
        corpus_id: str,
        query_embedding: Sequence[float],
        top_k: int = RETRIEVAL_TOP_K,
    ) -> List[ScoredChunk]:
        """
        Top-k chunks of one corpus by descending cosine similarity.

        Ties keep insertion order. Unknown corpus or top_k <= 0 gives [].
        """
        if top_k <= 0:
            return []

        loaded = self._load(corpus_id)
        if loaded is None:
            return []

        sims = loaded.scores(_as_vector(query_embedding))
        order = np.argsort(-sims, kind="stable")[:top_k]
        return [
            ScoredChunk(chunk=loaded.record.entries[i].chunk, score=float(sims[i]))
            for i in order
        ]

    def get_corpus(self, corpus_id: str) -> Optional[CorpusRecord]:
        """Stored corpus record, or None"""
        loaded = self._load(corpus_id)
        return loaded.record if loaded else None

    def list_corpora(self) -> List[str]:
        """Corpus ids known to the store or loaded in memory"""
        ids = list(self.store.list_ids())
        for corpus_id in self._corpora:
            if corpus_id not in ids:
                ids.append(corpus_id)
        return ids

    def stats(self) -> dict:
        """Chunk count and dimension per corpus"""
        corpora = {}
        for corpus_id in self.list_corpora():
            record = self.get_corpus(corpus_id)
            if record is None:
                continue
            corpora[corpus_id] = {
                "title": record.title,
                "chunks": len(record.entries),
                "dimension": record.dimension,
            }
        return {
            "corpora": len(corpora),
            "total_chunks": sum(c["chunks"] for c in corpora.values()),
            "by_corpus": corpora,
        }
