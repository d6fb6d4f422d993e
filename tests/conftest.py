"""
Pytest configuration and shared fixtures for Manuscript Editor tests.
"""
import re
import sys
import json
import math
import hashlib
import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Dict, Generator, List, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ai_providers.base import CompletionProvider, EmbeddingProvider
from config.settings import Settings
from editorial.chunker import Chunk, ChunkMetadata
from editorial.retrieval import InMemoryCorpusStore, VectorIndex, ReferenceRetriever
from editorial.pipeline import (
    Document,
    DocumentMetadata,
    InMemoryDocumentRepository,
    PipelineOrchestrator,
    build_agents,
)


# ============================================================================
# Test doubles
# ============================================================================

_AGENT_MARKER = re.compile(r"You are the (\w+) Agent")


class ScriptedCompletion(CompletionProvider):
    """
    Completion double that answers per stage.

    The stage is recognized from the "You are the X Agent" line every
    stage prompt starts with. A reply may be a string or an exception
    (raised instead of answering); a list of them is consumed in order,
    the last one repeating.
    """

    DEFAULT_REPLIES = {
        "Intake": json.dumps({
            "detectedGenre": "literary",
            "targetAudience": "adult",
            "narrativeVoice": "third person",
            "dominantTense": "past",
            "structuralOverview": "Single chapter",
            "initialObservations": [],
        }),
        "Grammar": "[]",
        "Syntax": "[]",
        "Temporal": json.dumps({"dominantTense": "past", "tenseShifts": [], "voiceIssues": []}),
        "Structure": json.dumps({"pacingAssessment": "Even", "structuralIssues": [], "recommendations": []}),
        "Arc": json.dumps({"characters": [], "recommendations": []}),
        "Chicago": "[]",
        "Continuity": json.dumps({"charactersTracked": [], "timelineEvents": []}),
        "Readability": json.dumps({"fleschKincaidGrade": 8, "sentenceVariety": "high", "issues": []}),
        "QA": json.dumps({"overallQuality": "good", "remainingIssues": [], "approvalRecommendation": True}),
    }

    def __init__(self, replies: Optional[Dict[str, object]] = None):
        self.replies: Dict[str, object] = dict(self.DEFAULT_REPLIES)
        self.replies.update(replies or {})
        self.calls: List[str] = []
        self.prompts: List[str] = []

    @staticmethod
    def agent_of(prompt: str) -> str:
        match = _AGENT_MARKER.search(prompt)
        return match.group(1) if match else ""

    def calls_for(self, agent: str) -> int:
        return self.calls.count(agent)

    async def complete(self, model_id: str, prompt: str) -> str:
        agent = self.agent_of(prompt)
        self.calls.append(agent)
        self.prompts.append(prompt)

        reply = self.replies.get(agent, "{}")
        if isinstance(reply, list):
            reply = reply.pop(0) if len(reply) > 1 else reply[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class BagOfWordsEmbedder(EmbeddingProvider):
    """
    Deterministic embedder: hashed bag of lowercase words, L2-normalized.

    Texts sharing vocabulary get high cosine similarity, which is all the
    retrieval tests need.
    """

    def __init__(self, dimension: int = 256):
        self.dimension = dimension
        self.calls: List[str] = []

    def vector(self, text: str) -> List[float]:
        vec = [0.0] * self.dimension
        for word in re.findall(r"[a-z]+", text.lower()):
            bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % self.dimension
            vec[bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in vec))
        return [v / norm for v in vec] if norm else vec

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return self.vector(text)


# ============================================================================
# Fixtures: Configuration & Settings
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings without .env, with zero retry delays."""
    return Settings(
        _env_file=None,
        gemini_api_key="test_gemini_key",
        openai_api_key="test_openai_key",
        anthropic_api_key="test_anthropic_key",
        stage_max_retries=2,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


# ============================================================================
# Fixtures: Providers
# ============================================================================

@pytest.fixture
def completion() -> ScriptedCompletion:
    return ScriptedCompletion()


@pytest.fixture
def embedder() -> BagOfWordsEmbedder:
    return BagOfWordsEmbedder()


# ============================================================================
# Fixtures: Retrieval
# ============================================================================

REFERENCE_RULES = {
    "chicago-manual-punctuation": [
        ("CMOS 6.19", "Serial comma",
         "Use the serial comma before the conjunction in a list of three or more items."),
        ("CMOS 6.53", "Em dashes",
         "Em dashes set off amplifying or explanatory elements without spaces."),
    ],
    "chicago-manual-grammar": [
        ("CMOS 5.138", "Subject verb agreement",
         "A verb agrees with its subject in number, not with an intervening noun."),
    ],
    "genre-romance": [
        (None, "Happily ever after",
         "Romance novels end with an emotionally satisfying and optimistic ending for the couple."),
    ],
}


def make_chunk(chunk_id: str, heading: str, content: str, rule_number: Optional[str] = None) -> Chunk:
    return Chunk(
        id=chunk_id,
        heading=heading,
        summary=content,
        quote=content,
        content=content,
        metadata=ChunkMetadata(rule_number=rule_number) if rule_number else None,
    )


@pytest.fixture
def reference_rules():
    return REFERENCE_RULES


@pytest.fixture
def corpus_store() -> InMemoryCorpusStore:
    return InMemoryCorpusStore()


@pytest.fixture
def vector_index(corpus_store, embedder) -> VectorIndex:
    """Index loaded with a small Chicago + romance reference set."""
    index = VectorIndex(corpus_store)
    for corpus_id, rules in REFERENCE_RULES.items():
        chunks = [
            make_chunk(f"{corpus_id}-{i}", heading, content, rule)
            for i, (rule, heading, content) in enumerate(rules)
        ]
        embeddings = [embedder.vector(f"{c.heading} {c.content}") for c in chunks]
        index.upsert(corpus_id, corpus_id, chunks, embeddings)
    return index


@pytest.fixture
def retriever(vector_index, embedder) -> ReferenceRetriever:
    return ReferenceRetriever(vector_index, embedder)


# ============================================================================
# Fixtures: Pipeline
# ============================================================================

SAMPLE_MANUSCRIPT = (
    "Chapter One\n\n"
    "Elizabeth walked to the harbor at dawn, carrying bread, cheese and a letter "
    "she had not yet dared to open.\n\n"
    "The gulls circled overhead. She sat on the cold stone wall and watched the "
    "fishing boats return, counting them one by one until the last had docked."
)


@pytest.fixture
def manuscript() -> str:
    return SAMPLE_MANUSCRIPT


@pytest.fixture
def document(manuscript) -> Document:
    return Document(
        id="doc-001",
        content=manuscript,
        metadata=DocumentMetadata(title="The Harbor", genre="romance", word_count=len(manuscript.split())),
    )


@pytest.fixture
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def agents(completion, retriever, test_settings):
    return build_agents(completion, retriever=retriever, model_id=test_settings.completion_model)


@pytest.fixture
def orchestrator(repository, agents, test_settings) -> PipelineOrchestrator:
    return PipelineOrchestrator(repository, agents, test_settings)


@pytest.fixture
def scripted():
    """Factory for a ScriptedCompletion with per-agent reply overrides."""
    return ScriptedCompletion
