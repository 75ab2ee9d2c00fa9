"""Tests for passage retrieval and the passage cache."""
from unittest.mock import AsyncMock

import pytest

from docchat.models.document import DocumentStatus, FileCategory
from docchat.services.embedding_service import EmbeddingService
from docchat.services.passage_cache import PassageCache
from docchat.services.retrieval_service import (
    RetrievalService,
    lexical_similarity,
    references_document,
)
from helpers import make_document


@pytest.fixture
def embedder():
    return EmbeddingService()


def make_retriever(document_store, cache, embedder):
    return RetrievalService(document_store, PassageCache(cache), embedder)


class TestLexicalSimilarity:
    """Tests for lexical_similarity."""

    def test_exact_substring(self):
        assert lexical_similarity("Invoice Total", "the invoice total is $450") == 0.9

    def test_word_overlap(self):
        assert lexical_similarity("alpha beta", "beta comes before alpha") == pytest.approx(0.7)
        assert lexical_similarity("alpha beta", "only alpha here") == pytest.approx(0.35)
        assert lexical_similarity("alpha beta", "nothing relevant") == 0

    def test_short_words_are_ignored(self):
        assert lexical_similarity("is it ok", "something else") == 0

    def test_references_document(self):
        pdf = make_document("d1", "Annual-Report.pdf", ["text"], category=FileCategory.PDF)
        assert references_document("summarize this PDF", pdf)
        assert references_document("what does annual-report say", pdf)
        assert not references_document("what is the revenue", pdf)


class TestRetrievalService:
    """Tests for RetrievalService.retrieve."""

    @pytest.mark.asyncio
    async def test_lexical_ranking(self, document_store, disabled_cache, embedder):
        await document_store.add(make_document("both", "both.txt", ["beta comes before alpha"]))
        await document_store.add(make_document("one", "one.txt", ["only alpha here"]))
        await document_store.add(make_document("none", "none.txt", ["nothing relevant"]))

        passages = await make_retriever(document_store, disabled_cache, embedder).retrieve("alpha beta")

        assert [p.document_id for p in passages] == ["both", "one"]
        assert passages[0].similarity > passages[1].similarity
        assert not any(p.from_embedding for p in passages)

    @pytest.mark.asyncio
    async def test_top_k_and_stable_ties(self, document_store, disabled_cache, embedder):
        for i in range(5):
            await document_store.add(make_document(f"doc{i}", f"doc{i}.txt", ["alpha appears here"]))

        passages = await make_retriever(document_store, disabled_cache, embedder).retrieve("alpha", top_k=3)

        assert [p.document_id for p in passages] == ["doc0", "doc1", "doc2"]

    @pytest.mark.asyncio
    async def test_only_completed_documents(self, document_store, disabled_cache, embedder):
        await document_store.add(
            make_document("busy", "busy.txt", ["alpha beta"], status=DocumentStatus.PROCESSING)
        )
        await document_store.add(
            make_document("bad", "bad.txt", ["alpha beta"], status=DocumentStatus.FAILED)
        )

        assert await make_retriever(document_store, disabled_cache, embedder).retrieve("alpha beta") == []

    @pytest.mark.asyncio
    async def test_pdf_generic_reference_floor(self, document_store, disabled_cache, embedder):
        await document_store.add(
            make_document("pdf", "Quarterly.pdf", ["numbers went up"], category=FileCategory.PDF)
        )

        passages = await make_retriever(document_store, disabled_cache, embedder).retrieve(
            "give me a summary of this document"
        )

        assert len(passages) == 1
        assert passages[0].similarity == 0.8
        assert passages[0].file_category is FileCategory.PDF

    @pytest.mark.asyncio
    async def test_embedding_candidates_are_always_kept(self, document_store, cache, embedder):
        document = make_document("txt", "notes.txt", ["zebra stripes", "ocean waves"])
        await document_store.add(document)
        passage_cache = PassageCache(cache)
        for chunk in document.chunks:
            await passage_cache.put(document.document_id, chunk.index, chunk.text, embedder.generate_embedding(chunk.text))

        retriever = RetrievalService(document_store, passage_cache, embedder)
        passages = await retriever.retrieve("unrelated question", top_k=5)

        query_embedding = embedder.generate_embedding("unrelated question")
        expected = sorted(
            (embedder.cosine_similarity(query_embedding, embedder.generate_embedding(c.text)) for c in document.chunks),
            reverse=True,
        )
        assert len(passages) == 2
        assert all(p.from_embedding for p in passages)
        assert [p.similarity for p in passages] == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_pdf_chunks_are_never_looked_up_in_the_cache(self, document_store, embedder):
        await document_store.add(
            make_document("pdf", "scan.pdf", ["alpha beta"], category=FileCategory.PDF)
        )
        passage_cache = AsyncMock(spec=PassageCache)

        passages = await RetrievalService(document_store, passage_cache, embedder).retrieve("alpha beta")

        passage_cache.get.assert_not_called()
        assert passages[0].similarity == 0.9

    @pytest.mark.asyncio
    async def test_failing_chunk_is_skipped(self, document_store, embedder):
        await document_store.add(make_document("txt", "notes.txt", ["alpha beta"]))
        passage_cache = AsyncMock(spec=PassageCache)
        passage_cache.get.side_effect = RuntimeError("cache exploded")

        passages = await RetrievalService(document_store, passage_cache, embedder).retrieve("alpha beta")

        assert passages == []

    @pytest.mark.asyncio
    async def test_document_store_failure_yields_nothing(self, disabled_cache, embedder):
        store = AsyncMock()
        store.find_completed.side_effect = RuntimeError("database down")

        passages = await RetrievalService(store, PassageCache(disabled_cache), embedder).retrieve("alpha")

        assert passages == []


class TestPassageCache:
    """Tests for PassageCache."""

    @pytest.mark.asyncio
    async def test_put_and_get(self, cache, redis_client):
        passage_cache = PassageCache(cache, ttl_seconds=86400)
        await passage_cache.put("doc1", 0, "chunk text", [0.1, 0.2], "notes.txt")

        cached = await passage_cache.get("doc1", 0)

        assert cached.text == "chunk text"
        assert cached.embedding == [0.1, 0.2]
        assert 0 < await redis_client.ttl("doc:doc1:chunk:0") <= 86400
        assert await redis_client.hget("doc:doc1:chunk:0", "filename") == "notes.txt"

    @pytest.mark.asyncio
    async def test_miss(self, cache):
        assert await PassageCache(cache).get("doc1", 7) is None

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, cache, redis_client):
        await redis_client.hset("doc:doc1:chunk:0", mapping={"text": "t", "embedding": "{not json"})
        assert await PassageCache(cache).get("doc1", 0) is None

    @pytest.mark.asyncio
    async def test_evict_all(self, cache):
        passage_cache = PassageCache(cache)
        for i in range(3):
            await passage_cache.put("doc1", i, f"chunk {i}", [0.1])
        await passage_cache.put("doc2", 0, "other", [0.1])

        assert await passage_cache.evict_all("doc1") == 3
        assert await passage_cache.get("doc1", 0) is None
        assert await passage_cache.get("doc2", 0) is not None

    @pytest.mark.asyncio
    async def test_disabled_cache_always_misses(self, disabled_cache):
        passage_cache = PassageCache(disabled_cache)
        assert await passage_cache.put("doc1", 0, "text", [0.1]) is False
        assert await passage_cache.get("doc1", 0) is None
