"""
Corpus Store - durable storage for embedded reference corpora

Persists corpora in a single JSON file shaped as:

    {"documents": {"<corpus_id>": {"documentId", "title", "chunks": [...]}}}

where each chunk carries its embedding. The VectorIndex loads corpora
lazily through this interface and writes through it on every upsert.
"""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from config.logging_config import get_logger
from editorial.chunker import Chunk

logger = get_logger(__name__)


@dataclass(frozen=True)
class VectorIndexEntry:
    """A chunk plus its embedding"""
    chunk: Chunk
    embedding: Tuple[float, ...]

    @property
    def dimension(self) -> int:
        return len(self.embedding)

    def to_dict(self) -> dict:
        data = self.chunk.to_dict()
        data["embedding"] = list(self.embedding)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "VectorIndexEntry":
        return cls(
            chunk=Chunk.from_dict(data),
            embedding=tuple(float(v) for v in data.get("embedding", [])),
        )


@dataclass
class CorpusRecord:
    """A named corpus and its ordered entries"""
    corpus_id: str
    title: str
    entries: List[VectorIndexEntry] = field(default_factory=list)

    @property
    def dimension(self) -> Optional[int]:
        return self.entries[0].dimension if self.entries else None

    def to_dict(self) -> dict:
        return {
            "documentId": self.corpus_id,
            "title": self.title,
            "chunks": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, corpus_id: str, data: dict) -> "CorpusRecord":
        return cls(
            corpus_id=data.get("documentId", corpus_id),
            title=data.get("title", corpus_id),
            entries=[VectorIndexEntry.from_dict(c) for c in data.get("chunks", [])],
        )


class CorpusStore(ABC):
    """Storage interface used by VectorIndex"""

    @abstractmethod
    def get(self, corpus_id: str) -> Optional[CorpusRecord]:
        """Return the stored corpus, or None if unknown"""
        pass

    @abstractmethod
    def put(self, corpus_id: str, title: str, entries: List[VectorIndexEntry]) -> None:
        """Replace the corpus entirely"""
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        """All stored corpus ids"""
        pass


class InMemoryCorpusStore(CorpusStore):
    """Process-lifetime store, mainly for tests"""

    def __init__(self):
        self._records: Dict[str, CorpusRecord] = {}
        self.put_count = 0

    def get(self, corpus_id: str) -> Optional[CorpusRecord]:
        return self._records.get(corpus_id)

    def put(self, corpus_id: str, title: str, entries: List[VectorIndexEntry]) -> None:
        self._records[corpus_id] = CorpusRecord(corpus_id, title, list(entries))
        self.put_count += 1

    def list_ids(self) -> List[str]:
        return list(self._records.keys())


class FileCorpusStore(CorpusStore):
    """
    JSON-file backed store.

    The file is read once on construction. A missing file is an empty store;
    a corrupt file is logged and treated as empty (it is overwritten on the
    next put). Writes go to a temp file in the same directory and are
    swapped in with os.replace.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, dict] = self._load()

    def _load(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            documents = raw.get("documents", {})
            if not isinstance(documents, dict):
                raise ValueError("'documents' is not an object")
            return documents
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to parse vector store {self.path}, reinitializing: {e}")
            return {}

    def _persist(self, data: Dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"documents": data}, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, corpus_id: str) -> Optional[CorpusRecord]:
        with self._lock:
            data = self._data.get(corpus_id)
        if data is None:
            return None
        return CorpusRecord.from_dict(corpus_id, data)

    def put(self, corpus_id: str, title: str, entries: List[VectorIndexEntry]) -> None:
        record = CorpusRecord(corpus_id, title, list(entries))
        with self._lock:
            data = dict(self._data)
            data[corpus_id] = record.to_dict()
            self._persist(data)
            # Only a successful write becomes visible
            self._data = data
        logger.debug(f"Persisted corpus '{corpus_id}' ({len(entries)} chunks) to {self.path}")

    def list_ids(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())
