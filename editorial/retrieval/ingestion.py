#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Reference Corpus Ingestion

Reads reference documents (Chicago Manual sections, genre conventions)
from a directory, embeds every chunk and upserts one corpus per file.

Supported files:
- *.json: {"documentId", "metadata": {...}, "chunks": [{id, heading, summary,
  content, ruleNumber, category, section, examples: [{label, code}]}]}
- *.txt / *.md: plain text, chunked with ManuscriptChunker; corpus id = file stem

Usage:
    ingest-references --references-dir data/references
    python scripts/ingest_references.py --store data/vectors/references.json
"""

import sys
import json
import time
import uuid
import asyncio
import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from tqdm import tqdm

from ai_providers.base import EmbeddingProvider
from config.constants import (
    CHUNK_WORDS_PER_CHUNK,
    INGEST_EMBED_DELAY,
    REFERENCE_EXTENSIONS,
    SAMPLE_QUERY,
    SAMPLE_QUERY_CORPUS,
)
from config.logging_config import configure_logging, get_logger
from editorial.chunker import (
    Chunk,
    ChunkMetadata,
    ManuscriptChunker,
    heading_from_text,
    summarize,
    quote_from_text,
)
from editorial.errors import ValidationError
from .corpus_store import FileCorpusStore
from .vector_index import VectorIndex, ScoredChunk

logger = get_logger(__name__)


@dataclass
class IngestionStats:
    """Counters for one ingestion run"""
    documents_found: int = 0
    documents_processed: int = 0
    chunks_processed: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)  # (file, error)
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    @property
    def duration(self) -> float:
        end = self.end_time if self.end_time is not None else time.time()
        return max(end - self.start_time, 0.0)

    @property
    def throughput(self) -> float:
        """Chunks per second"""
        return self.chunks_processed / self.duration if self.duration > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "documents_found": self.documents_found,
            "documents_processed": self.documents_processed,
            "chunks_processed": self.chunks_processed,
            "duration_seconds": round(self.duration, 2),
            "chunks_per_second": round(self.throughput, 2),
            "errors": [{"file": f, "error": e} for f, e in self.errors],
        }


@dataclass
class ReferenceDocument:
    """A parsed reference file, ready to embed"""
    corpus_id: str
    title: str
    chunks: List[Chunk]
    embedding_texts: List[str]


def _embedding_text(heading: str, summary: str, content: str, examples: List[dict]) -> str:
    """All searchable text of a reference chunk"""
    text = f"{heading}\n\n{summary}\n\n{content}"
    if examples:
        example_texts = "\n\n".join(
            f"{ex.get('label', '')}\n{ex.get('code', '')}" for ex in examples
        )
        text += f"\n\nExamples:\n{example_texts}"
    return text


def parse_reference_json(path: Path) -> ReferenceDocument:
    """
    Parse a structured reference file.

    Raises:
        ValidationError: missing documentId or chunks
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, dict) or not raw.get("documentId"):
        raise ValidationError(f"{path.name}: missing 'documentId'", "documentId")
    if not isinstance(raw.get("chunks"), list):
        raise ValidationError(f"{path.name}: 'chunks' must be a list", "chunks")

    doc_meta = raw.get("metadata") or {}
    chunks: List[Chunk] = []
    texts: List[str] = []

    for item in raw["chunks"]:
        content = item.get("content", "")
        heading = item.get("heading") or heading_from_text(content)
        summary = item.get("summary") or summarize(content)
        chunks.append(Chunk(
            id=item.get("id") or str(uuid.uuid4()),
            heading=heading,
            summary=summary,
            quote=quote_from_text(content.split("\n\n", 1)[0]),
            content=content,
            metadata=ChunkMetadata(
                rule_number=item.get("ruleNumber"),
                category=item.get("category"),
                section=item.get("section"),
                genre=doc_meta.get("genre"),
                title=doc_meta.get("title"),
            ),
        ))
        texts.append(_embedding_text(heading, summary, content, item.get("examples") or []))

    return ReferenceDocument(
        corpus_id=raw["documentId"],
        title=doc_meta.get("title") or raw["documentId"],
        chunks=chunks,
        embedding_texts=texts,
    )


def parse_reference_text(path: Path, chunker: ManuscriptChunker) -> ReferenceDocument:
    """Plain text / markdown reference, chunked by paragraphs"""
    text = path.read_text(encoding="utf-8")
    chunks = chunker.create_chunks(text)
    return ReferenceDocument(
        corpus_id=path.stem,
        title=path.stem.replace("-", " ").replace("_", " ").title(),
        chunks=chunks,
        embedding_texts=[_embedding_text(c.heading, c.summary, c.content, []) for c in chunks],
    )


class ReferenceIngestor:
    """Embed reference files and upsert them into a VectorIndex"""

    def __init__(
        self,
        index: VectorIndex,
        embedder: EmbeddingProvider,
        chunker: Optional[ManuscriptChunker] = None,
        embed_delay: float = INGEST_EMBED_DELAY,
    ):
        self.index = index
        self.embedder = embedder
        self.chunker = chunker or ManuscriptChunker()
        self.embed_delay = embed_delay

    def parse_file(self, path: Path) -> ReferenceDocument:
        if path.suffix.lower() == ".json":
            return parse_reference_json(path)
        return parse_reference_text(path, self.chunker)

    async def _embed_all(self, texts: List[str]) -> List[List[float]]:
        embeddings = []
        for i, text in enumerate(texts):
            embeddings.append(await self.embedder.embed(text))
            # Pause between calls to stay under provider rate limits
            if self.embed_delay > 0 and i < len(texts) - 1:
                await asyncio.sleep(self.embed_delay)
        return embeddings

    async def ingest_file(self, path: Path, stats: IngestionStats) -> None:
        """Ingest one file; failures are recorded on stats, not raised"""
        try:
            doc = self.parse_file(path)
            logger.info(f"Processing {path.name}: corpus '{doc.corpus_id}', {len(doc.chunks)} chunks")

            embeddings = await self._embed_all(doc.embedding_texts)
            self.index.upsert(doc.corpus_id, doc.title, doc.chunks, embeddings)

            stats.documents_processed += 1
            stats.chunks_processed += len(doc.chunks)
        except Exception as e:
            logger.error(f"Error processing {path.name}: {type(e).__name__}: {e}")
            stats.errors.append((path.name, str(e)))

    async def ingest_directory(self, directory: Path, show_progress: bool = True) -> IngestionStats:
        """Ingest every reference file in a directory (sorted by name)"""
        directory = Path(directory)
        stats = IngestionStats()

        if not directory.is_dir():
            raise ValidationError(f"References directory not found: {directory}", "references_dir")

        files = sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in REFERENCE_EXTENSIONS
        )
        stats.documents_found = len(files)

        if not files:
            logger.warning(f"No reference files found in {directory}")
            stats.end_time = time.time()
            return stats

        logger.info(f"Found {len(files)} reference documents in {directory}")

        progress_bar = None
        if show_progress:
            progress_bar = tqdm(total=len(files), desc="Ingesting", unit="file")

        try:
            for path in files:
                await self.ingest_file(path, stats)
                if progress_bar:
                    progress_bar.update(1)
        finally:
            if progress_bar:
                progress_bar.close()

        stats.end_time = time.time()
        return stats

    async def sample_query(
        self,
        query: str = SAMPLE_QUERY,
        corpus_id: str = SAMPLE_QUERY_CORPUS,
        top_k: int = 3,
    ) -> List[ScoredChunk]:
        """Smoke test the freshly ingested index"""
        embedding = await self.embedder.embed(query)
        return self.index.query(corpus_id, embedding, top_k)


def format_summary(stats: IngestionStats) -> str:
    """Human readable run summary"""
    lines = [
        "=" * 60,
        "INGESTION SUMMARY",
        "=" * 60,
        f"Documents processed: {stats.documents_processed}/{stats.documents_found}",
        f"Total chunks ingested: {stats.chunks_processed}",
        f"Duration: {stats.duration:.2f}s",
        f"Average: {stats.throughput:.2f} chunks/sec",
    ]
    if stats.errors:
        lines.append(f"Errors encountered: {len(stats.errors)}")
        lines.extend(f"   {name}: {error}" for name, error in stats.errors)
    else:
        lines.append("All documents ingested successfully")
    lines.append("=" * 60)
    return "\n".join(lines)


def format_sample(query: str, results: List[ScoredChunk]) -> str:
    lines = [f'Query: "{query}"', f"Top {len(results)} results:"]
    for i, hit in enumerate(results, 1):
        lines.append(f"{i}. Score: {hit.score:.4f}")
        lines.append(f"   Heading: {hit.chunk.heading}")
        lines.append(f"   Summary: {hit.chunk.summary}")
    return "\n".join(lines)


async def run_ingestion(
    references_dir: Path,
    store_path: Path,
    embedder: EmbeddingProvider,
    show_progress: bool = True,
    sample: bool = True,
    chunk_size: int = CHUNK_WORDS_PER_CHUNK,
) -> IngestionStats:
    """Ingest a directory into a file-backed store and print the summary"""
    index = VectorIndex(FileCorpusStore(store_path))
    ingestor = ReferenceIngestor(index, embedder, chunker=ManuscriptChunker(chunk_size))

    stats = await ingestor.ingest_directory(references_dir, show_progress=show_progress)
    print(format_summary(stats))

    if sample and stats.documents_processed:
        results = await ingestor.sample_query()
        print(format_sample(SAMPLE_QUERY, results))

    return stats


def main(argv: Optional[List[str]] = None) -> int:
    from ai_providers.manager import create_embedding_provider
    from config.settings import get_settings

    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Ingest reference corpora into the vector store",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--references-dir', '-r', default=str(settings.references_dir), help='Directory of reference files')
    parser.add_argument('--store', '-s', default=str(settings.vector_store_path), help='Vector store JSON path')
    parser.add_argument('--provider', choices=['gemini', 'openai', 'ollama'], help='Embedding provider (default: from settings)')
    parser.add_argument('--no-progress', action='store_true', help='Disable progress bar')
    parser.add_argument('--no-sample', action='store_true', help='Skip the sample retrieval check')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug output on the console')
    args = parser.parse_args(argv)

    if args.verbose:
        configure_logging("DEBUG")
    logger.debug(f"Settings: {settings.describe()}")

    embedder = create_embedding_provider(settings, provider=args.provider)

    try:
        stats = asyncio.run(run_ingestion(
            Path(args.references_dir),
            Path(args.store),
            embedder,
            show_progress=not args.no_progress,
            sample=not args.no_sample,
            chunk_size=settings.chunk_size_words,
        ))
    except ValidationError as e:
        logger.error(str(e))
        return 1

    return 1 if stats.errors else 0


if __name__ == "__main__":
    sys.exit(main())
