#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
ManuscriptChunker - paragraph-greedy chunking into citable units.

Splits raw text on blank lines, then accumulates paragraphs into chunks of
roughly `chunk_size` words. Each chunk carries a derived heading (first
sentence), a short summary (first 30 words) and a quote (first paragraph),
which is what citations and reference prompts display.

Usage:
    from editorial.chunker import ManuscriptChunker, chunk_manuscript

    chunks = chunk_manuscript(text)
    chunks = ManuscriptChunker(chunk_size=120).create_chunks(text)
"""

import re
import uuid
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from config.constants import (
    CHUNK_WORDS_PER_CHUNK,
    CHUNK_HEADING_MAX_CHARS,
    CHUNK_SUMMARY_WORDS,
    CHUNK_QUOTE_MAX_CHARS,
    CHUNK_UNTITLED_HEADING,
)
from editorial.errors import ValidationError

ELLIPSIS = "…"

_PARAGRAPH_SPLIT = re.compile(r"\n{2,}")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class ChunkMetadata:
    """Optional reference metadata attached to ingested chunks"""
    rule_number: Optional[str] = None
    category: Optional[str] = None
    section: Optional[str] = None
    genre: Optional[str] = None
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ChunkMetadata"]:
        if not data:
            return None
        return cls(
            rule_number=data.get("rule_number", data.get("ruleNumber")),
            category=data.get("category"),
            section=data.get("section"),
            genre=data.get("genre"),
            title=data.get("title"),
        )


@dataclass(frozen=True)
class Chunk:
    """
    A bounded, citable unit of text.

    Attributes:
        id: Unique identifier (uuid4 for chunked text, file-provided for references)
        heading: First sentence, at most 80 chars (+ ellipsis)
        summary: First 30 words (+ ellipsis)
        quote: First paragraph, at most 240 chars (+ ellipsis)
        content: Full chunk text
        metadata: Rule number / category / genre for reference chunks
    """
    id: str
    heading: str
    summary: str
    quote: str
    content: str
    metadata: Optional[ChunkMetadata] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "heading": self.heading,
            "summary": self.summary,
            "quote": self.quote,
            "content": self.content,
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        content = data.get("content", "")
        return cls(
            id=data["id"],
            heading=data.get("heading") or heading_from_text(content),
            summary=data.get("summary") or summarize(content),
            quote=data.get("quote") or quote_from_text(content),
            content=content,
            metadata=ChunkMetadata.from_dict(data.get("metadata")),
        )


def _words(text: str) -> List[str]:
    return text.split()


def summarize(text: str) -> str:
    """First 30 words, with an ellipsis when truncated"""
    words = _words(text)
    summary = " ".join(words[:CHUNK_SUMMARY_WORDS])
    return summary + (ELLIPSIS if len(words) > CHUNK_SUMMARY_WORDS else "")


def heading_from_text(text: str) -> str:
    """First sentence, truncated to 80 characters"""
    trimmed = text.strip()
    if not trimmed:
        return CHUNK_UNTITLED_HEADING
    first_sentence = _SENTENCE_SPLIT.split(trimmed, maxsplit=1)[0]
    heading = first_sentence[:CHUNK_HEADING_MAX_CHARS]
    return heading + (ELLIPSIS if len(first_sentence) > CHUNK_HEADING_MAX_CHARS else "")


def quote_from_text(paragraph: str) -> str:
    """Paragraph truncated to 240 characters"""
    quote = paragraph[:CHUNK_QUOTE_MAX_CHARS]
    return quote + (ELLIPSIS if len(paragraph) > CHUNK_QUOTE_MAX_CHARS else "")


class ManuscriptChunker:
    """
    Greedy paragraph chunker.

    Paragraphs are never split. A paragraph longer than chunk_size
    becomes its own oversized chunk.

    Example:
        >>> chunker = ManuscriptChunker(chunk_size=180)
        >>> chunks = chunker.create_chunks(manuscript)
        >>> [c.heading for c in chunks]
    """

    def __init__(self, chunk_size: int = CHUNK_WORDS_PER_CHUNK):
        if chunk_size < 1:
            raise ValidationError(f"chunk_size must be >= 1, got {chunk_size}", "chunk_size")
        self.chunk_size = chunk_size

    @staticmethod
    def split_paragraphs(text: str) -> List[str]:
        """Blank-line delimited paragraphs, stripped, empties dropped"""
        return [p.strip() for p in _PARAGRAPH_SPLIT.split(text or "") if p.strip()]

    def create_chunks(self, text: str) -> List[Chunk]:
        """
        Chunk text into citable units.

        Args:
            text: Raw manuscript or reference text

        Returns:
            Ordered chunks; empty list for blank text
        """
        chunks: List[Chunk] = []
        buffer: List[str] = []
        word_counter = 0

        for paragraph in self.split_paragraphs(text):
            words = len(_words(paragraph))
            if word_counter + words > self.chunk_size and buffer:
                chunks.append(self._build_chunk(buffer))
                buffer = []
                word_counter = 0
            buffer.append(paragraph)
            word_counter += words

        if buffer:
            chunks.append(self._build_chunk(buffer))

        return chunks

    @staticmethod
    def _build_chunk(paragraphs: List[str]) -> Chunk:
        content = "\n\n".join(paragraphs)
        return Chunk(
            id=str(uuid.uuid4()),
            heading=heading_from_text(content),
            summary=summarize(content),
            quote=quote_from_text(paragraphs[0]),
            content=content,
        )


def chunk_manuscript(text: str, chunk_size: int = CHUNK_WORDS_PER_CHUNK) -> List[Chunk]:
    """Convenience wrapper around ManuscriptChunker"""
    return ManuscriptChunker(chunk_size=chunk_size).create_chunks(text)
