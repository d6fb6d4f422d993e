"""
Reference Retriever - multi-corpus search with citations

Embeds a query once, searches each requested corpus, drops weak hits,
attaches a citation, then merges everything into one ranked list.
Stage agents use the formatted context to ground their prompts.
"""

from dataclasses import dataclass, asdict
from typing import List, Optional

from ai_providers.base import EmbeddingProvider
from config.constants import (
    RETRIEVAL_TOP_K,
    RETRIEVAL_THRESHOLD,
    RETRIEVAL_NO_RESULTS,
    STYLE_GUIDE_CORPORA,
    KNOWN_GENRES,
    GENRE_CORPUS_PREFIX,
)
from config.logging_config import get_logger
from .vector_index import VectorIndex

logger = get_logger(__name__)

CHICAGO_PREFIX = "chicago-manual-"


@dataclass
class ReferenceResult:
    """A reference chunk that passed the relevance threshold"""
    corpus_id: str
    chunk_id: str
    heading: str
    summary: str
    content: str
    score: float
    citation: str
    rule_number: Optional[str] = None
    category: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def format_citation(corpus_id: str, heading: str, rule_number: Optional[str] = None) -> str:
    """
    Citation for a reference chunk.

    Examples:
        "[CMOS 6.19: Serial Comma Usage]"
        "[Chicago Manual: grammar: Subject-Verb Agreement]"
        "[Romance: HEA Requirements]"
    """
    if rule_number:
        return f"[{rule_number}: {heading}]"

    source = corpus_id.replace(CHICAGO_PREFIX, "Chicago Manual: ", 1)
    source = source.replace(GENRE_CORPUS_PREFIX, "", 1)
    if "Chicago Manual" not in source:
        source = " ".join(w[:1].upper() + w[1:] for w in source.split("-"))

    return f"[{source}: {heading}]"


def format_citations(results: List[ReferenceResult]) -> str:
    """Comma-separated citations"""
    return ", ".join(r.citation for r in results)


def format_reference_context(results: List[ReferenceResult]) -> str:
    """Numbered reference block for prompt injection"""
    if not results:
        return RETRIEVAL_NO_RESULTS

    blocks = []
    for i, r in enumerate(results, 1):
        parts = [
            f"{i}. {r.citation}",
            f"   Summary: {r.summary}",
        ]
        if r.content:
            parts.append(f"   Detail: {r.content}")
        parts.append(f"   Relevance: {r.score * 100:.1f}%")
        blocks.append("\n".join(parts))

    return "\n\n".join(blocks)


def available_corpora() -> List[str]:
    """All reference corpus ids the pipeline knows about"""
    return list(STYLE_GUIDE_CORPORA) + [f"{GENRE_CORPUS_PREFIX}{g}" for g in KNOWN_GENRES]


def genre_corpus_id(genre: Optional[str]) -> Optional[str]:
    """'Romance' -> 'genre-romance'; unknown genre -> None"""
    if not genre:
        return None
    normalized = genre.strip().lower()
    if normalized in KNOWN_GENRES:
        return f"{GENRE_CORPUS_PREFIX}{normalized}"
    return None


class ReferenceRetriever:
    """Query one or more corpora of a VectorIndex"""

    def __init__(self, index: VectorIndex, embedder: EmbeddingProvider):
        self.index = index
        self.embedder = embedder

    async def query_references(
        self,
        query: str,
        corpus_ids: List[str],
        top_k: int = RETRIEVAL_TOP_K,
        min_score_threshold: float = RETRIEVAL_THRESHOLD,
        include_content: bool = True,
    ) -> List[ReferenceResult]:
        """
        Search corpora and merge the results.

        Args:
            query: Natural language query
            corpus_ids: Corpora to search
            top_k: Hits per corpus and size of the merged list
            min_score_threshold: Minimum cosine similarity kept
            include_content: Include full chunk text in results

        Returns:
            At most top_k results, highest score first

        Raises:
            ProviderError: embedding failed
        """
        if not corpus_ids or top_k <= 0:
            return []

        query_embedding = await self.embedder.embed(query)

        merged: List[ReferenceResult] = []
        for corpus_id in corpus_ids:
            hits = self.index.query(corpus_id, query_embedding, top_k)
            for hit in hits:
                if hit.score < min_score_threshold:
                    continue
                metadata = hit.chunk.metadata
                rule_number = metadata.rule_number if metadata else None
                merged.append(ReferenceResult(
                    corpus_id=corpus_id,
                    chunk_id=hit.chunk.id,
                    heading=hit.chunk.heading,
                    summary=hit.chunk.summary,
                    content=hit.chunk.content if include_content else "",
                    score=hit.score,
                    citation=format_citation(corpus_id, hit.chunk.heading, rule_number),
                    rule_number=rule_number,
                    category=metadata.category if metadata else None,
                ))

        merged.sort(key=lambda r: r.score, reverse=True)
        results = merged[:top_k]

        logger.debug(
            f"Reference query over {len(corpus_ids)} corpora: "
            f"{len(merged)} above {min_score_threshold}, returning {len(results)}"
        )
        return results

    async def query_style_guide(self, query: str, **options) -> List[ReferenceResult]:
        """Chicago Manual grammar + punctuation"""
        return await self.query_references(query, list(STYLE_GUIDE_CORPORA), **options)

    async def query_genre_rules(self, genre: str, query: str, **options) -> List[ReferenceResult]:
        """Genre conventions; an unrecognized genre has no grounding"""
        corpus_id = genre_corpus_id(genre)
        if corpus_id is None:
            logger.debug(f"No genre corpus for '{genre}'")
            return []
        return await self.query_references(query, [corpus_id], **options)

    async def query_all_references(self, query: str, **options) -> List[ReferenceResult]:
        """Every known corpus"""
        return await self.query_references(query, available_corpora(), **options)

    available_corpora = staticmethod(available_corpora)
    genre_corpus_id = staticmethod(genre_corpus_id)
