"""
Unit tests for editorial.retrieval.vector_index module.

Tests cosine_similarity, VectorIndex upsert validation, ranking and lazy
loading from a CorpusStore.
"""

import threading

import pytest

from editorial.errors import ValidationError
from editorial.retrieval import (
    VectorIndex,
    InMemoryCorpusStore,
    FileCorpusStore,
    cosine_similarity,
)
from editorial.chunker import Chunk


def chunks(n: int, prefix: str = "c"):
    return [Chunk(f"{prefix}{i}", f"Heading {i}", f"Content {i}", f"Content {i}", f"Content {i}") for i in range(n)]


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_zero_norm_is_zero(self):
        """A zero vector on either side gives 0.0, never NaN."""
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0

    def test_different_lengths_compare_common_prefix(self):
        """Missing components count as zero."""
        score = cosine_similarity([1.0, 0.0, 1.0], [1.0, 0.0])
        assert score == pytest.approx(1.0 / (2 ** 0.5))


class TestVectorIndexUpsert:
    """Tests for VectorIndex.upsert validation and persistence."""

    def test_count_mismatch_rejected(self):
        index = VectorIndex(InMemoryCorpusStore())
        with pytest.raises(ValidationError):
            index.upsert("corpus", "Corpus", chunks(2), [[1.0, 0.0]])

    def test_mixed_dimensions_rejected(self):
        index = VectorIndex(InMemoryCorpusStore())
        with pytest.raises(ValidationError):
            index.upsert("corpus", "Corpus", chunks(2), [[1.0, 0.0], [1.0, 0.0, 0.0]])

    def test_rejected_upsert_keeps_previous_corpus(self):
        store = InMemoryCorpusStore()
        index = VectorIndex(store)
        index.upsert("corpus", "Corpus", chunks(1), [[1.0, 0.0]])

        with pytest.raises(ValidationError):
            index.upsert("corpus", "Corpus", chunks(2), [[1.0]])

        assert len(index.get_corpus("corpus").entries) == 1
        assert store.put_count == 1

    def test_upsert_persists_synchronously(self):
        store = InMemoryCorpusStore()
        index = VectorIndex(store)
        entries = index.upsert("corpus", "Corpus", chunks(3), [[1.0, 0.0]] * 3)

        assert len(entries) == 3
        assert store.get("corpus").title == "Corpus"
        assert len(store.get("corpus").entries) == 3

    def test_upsert_fully_replaces(self):
        """Re-upserting a corpus drops chunks that are no longer present."""
        index = VectorIndex(InMemoryCorpusStore())
        index.upsert("corpus", "Corpus", chunks(3, "old"), [[1.0, 0.0]] * 3)
        index.upsert("corpus", "Corpus", chunks(1, "new"), [[1.0, 0.0]])

        hits = index.query("corpus", [1.0, 0.0], top_k=10)
        assert [h.chunk.id for h in hits] == ["new0"]

    def test_concurrent_upserts_last_writer_wins(self):
        """Parallel upserts to one corpus never interleave entries."""
        index = VectorIndex(InMemoryCorpusStore())

        def writer(tag: str):
            index.upsert("corpus", tag, chunks(5, tag), [[1.0, 0.0]] * 5)

        threads = [threading.Thread(target=writer, args=(f"t{i}-",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        record = index.get_corpus("corpus")
        prefixes = {e.chunk.id.split("-")[0] for e in record.entries}
        assert len(record.entries) == 5
        assert len(prefixes) == 1


class TestVectorIndexQuery:
    """Tests for VectorIndex.query ranking."""

    @pytest.fixture
    def index(self):
        index = VectorIndex(InMemoryCorpusStore())
        index.upsert(
            "corpus",
            "Corpus",
            chunks(4),
            [[1.0, 0.0], [0.0, 1.0], [0.7, 0.7], [1.0, 0.1]],
        )
        return index

    def test_descending_similarity(self, index):
        hits = index.query("corpus", [1.0, 0.0], top_k=4)
        assert [h.chunk.id for h in hits] == ["c0", "c3", "c2", "c1"]
        assert hits[0].score == pytest.approx(1.0)
        assert all(a.score >= b.score for a, b in zip(hits, hits[1:]))

    def test_top_k_limits(self, index):
        assert len(index.query("corpus", [1.0, 0.0], top_k=2)) == 2

    def test_top_k_zero_or_negative(self, index):
        assert index.query("corpus", [1.0, 0.0], top_k=0) == []
        assert index.query("corpus", [1.0, 0.0], top_k=-3) == []

    def test_unknown_corpus(self, index):
        assert index.query("missing", [1.0, 0.0]) == []

    def test_ties_keep_insertion_order(self):
        index = VectorIndex(InMemoryCorpusStore())
        index.upsert("corpus", "Corpus", chunks(3), [[1.0, 0.0]] * 3)

        hits = index.query("corpus", [1.0, 0.0], top_k=3)
        assert [h.chunk.id for h in hits] == ["c0", "c1", "c2"]

    def test_zero_query_scores_zero(self, index):
        hits = index.query("corpus", [0.0, 0.0], top_k=2)
        assert [h.score for h in hits] == [0.0, 0.0]


class TestVectorIndexLoading:
    """Tests for lazy loading and introspection."""

    def test_lazy_load_from_file_store(self, temp_dir):
        path = temp_dir / "store.json"
        VectorIndex(FileCorpusStore(path)).upsert("corpus", "Corpus", chunks(2), [[1.0, 0.0], [0.0, 1.0]])

        fresh = VectorIndex(FileCorpusStore(path))
        hits = fresh.query("corpus", [0.0, 1.0], top_k=1)
        assert hits[0].chunk.id == "c1"

    def test_list_corpora_and_stats(self):
        index = VectorIndex(InMemoryCorpusStore())
        index.upsert("a", "Corpus A", chunks(2), [[1.0, 0.0, 0.0]] * 2)
        index.upsert("b", "Corpus B", chunks(1), [[1.0, 0.0]])

        assert sorted(index.list_corpora()) == ["a", "b"]
        stats = index.stats()
        assert stats["corpora"] == 2
        assert stats["total_chunks"] == 3
        assert stats["by_corpus"]["a"]["dimension"] == 3
        assert stats["by_corpus"]["b"]["title"] == "Corpus B"
