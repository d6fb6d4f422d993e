"""
Document Repository - manuscript persistence

The orchestrator only talks to DocumentRepository; swap the in-memory
implementation for SQLite in production.
"""

import copy
import json
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from config.logging_config import get_logger
from config.settings import Settings, get_settings
from editorial.errors import ValidationError
from .models import Document

logger = get_logger(__name__)


class DocumentRepository(ABC):
    """Storage interface for manuscripts"""

    @abstractmethod
    def get(self, document_id: str) -> Optional[Document]:
        """Return the document or None"""
        pass

    @abstractmethod
    def put(self, document: Document) -> None:
        """Insert or replace a document"""
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        pass

    def require(self, document_id: str) -> Document:
        """
        Like get(), but unknown ids are a ValidationError.
        """
        document = self.get(document_id)
        if document is None:
            raise ValidationError(f"Manuscript not found: {document_id}", "document_id")
        return document


class InMemoryDocumentRepository(DocumentRepository):
    """Dict-backed repository; copies on the way in and out"""

    def __init__(self):
        self._documents: Dict[str, Document] = {}
        self.put_count = 0

    def get(self, document_id: str) -> Optional[Document]:
        document = self._documents.get(document_id)
        return copy.deepcopy(document) if document is not None else None

    def put(self, document: Document) -> None:
        self._documents[document.id] = copy.deepcopy(document)
        self.put_count += 1

    def list_ids(self) -> List[str]:
        return list(self._documents.keys())


class SQLiteDocumentRepository(DocumentRepository):
    """
    SQLite repository for manuscripts.

    Each document is one row holding its full JSON form, so stage results,
    ledger and request ids survive restarts.
    """

    def __init__(self, db_path: str = "data/documents.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        logger.info(f"SQLiteDocumentRepository initialized: {self.db_path}")

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS manuscripts (
                    document_id TEXT PRIMARY KEY,
                    title TEXT,
                    word_count INTEGER DEFAULT 0,
                    overall_confidence REAL DEFAULT 0.0,
                    document_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def get(self, document_id: str) -> Optional[Document]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT document_json FROM manuscripts WHERE document_id = ?",
                (document_id,)
            ).fetchone()
        if row is None:
            return None
        return Document.from_dict(json.loads(row["document_json"]))

    def put(self, document: Document) -> None:
        now = datetime.now().isoformat()
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO manuscripts (
                    document_id, title, word_count, overall_confidence,
                    document_json, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(document_id) DO UPDATE SET
                    title = excluded.title,
                    word_count = excluded.word_count,
                    overall_confidence = excluded.overall_confidence,
                    document_json = excluded.document_json,
                    updated_at = excluded.updated_at
            """, (
                document.id,
                document.metadata.title,
                document.metadata.word_count,
                document.workflow_state.overall_confidence,
                json.dumps(document.to_dict(), ensure_ascii=False),
                document.metadata.created_at or now,
                now,
            ))

    def list_ids(self) -> List[str]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT document_id FROM manuscripts ORDER BY created_at"
            ).fetchall()
        return [row["document_id"] for row in rows]


def create_document_repository(settings: Optional[Settings] = None) -> SQLiteDocumentRepository:
    """SQLite repository at settings.documents_db_path"""
    settings = settings or get_settings()
    return SQLiteDocumentRepository(str(settings.documents_db_path))
