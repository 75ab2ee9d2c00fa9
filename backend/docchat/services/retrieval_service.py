"""Passage retrieval over all completed documents."""
import time
from dataclasses import dataclass
from typing import List, Optional

from docchat.models.document import Document, FileCategory
from docchat.services.document_store import DocumentStore
from docchat.services.embedding_service import EmbeddingService
from docchat.services.passage_cache import PassageCache
from docchat.utils.logger import logger
from docchat.utils.metrics import RETRIEVAL_CANDIDATES

EXACT_MATCH_SCORE = 0.9
WORD_MATCH_WEIGHT = 0.7
GENERIC_REFERENCE_FLOOR = 0.8
LEXICAL_MIN_SCORE = 0.1
GENERIC_REFERENCE_WORDS = ("document", "file", "summary")


@dataclass(frozen=True)
class RetrievedPassage:
    text: str
    similarity: float
    document_id: str
    filename: str
    file_category: FileCategory
    chunk_index: int
    from_embedding: bool = False


def lexical_similarity(query: str, text: str) -> float:
    """
    Score a chunk by word overlap with the query.

    An exact (case-insensitive) substring match scores 0.9. Otherwise the share
    of whitespace-separated query words longer than two characters that occur in
    the text, scaled by 0.7.
    """
    query_lower = query.lower()
    text_lower = text.lower()

    if query_lower in text_lower:
        return EXACT_MATCH_SCORE

    query_words = [word for word in query_lower.split() if len(word) > 2]
    if not query_words:
        return 0.0
    matched = sum(1 for word in query_words if word in text_lower)
    return matched / len(query_words) * WORD_MATCH_WEIGHT


def references_document(query: str, document: Document) -> bool:
    """Whether a query refers to a document generically ("this file", "the pdf", its name)."""
    query_lower = query.lower()
    keywords = GENERIC_REFERENCE_WORDS + (document.file_category.label,)
    if any(keyword in query_lower for keyword in keywords):
        return True
    stem = document.display_stem
    return bool(stem) and stem in query_lower


class RetrievalService:
    """Ranks chunks of completed documents against a query."""

    def __init__(
        self,
        document_store: DocumentStore,
        passage_cache: PassageCache,
        embedding_service: EmbeddingService,
    ):
        """
        Initialize retrieval service.

        Args:
            document_store: Source of truth for documents and chunk text
            passage_cache: Cached chunk embeddings
            embedding_service: Query embedder
        """
        self.document_store = document_store
        self.passage_cache = passage_cache
        self.embedding_service = embedding_service

    async def retrieve(self, query: str, top_k: int = 3) -> List[RetrievedPassage]:
        """
        Retrieve the top_k most relevant passages for a query.

        Chunks with a cached embedding are scored by cosine similarity and always
        kept. The rest fall back to lexical scoring and are kept only above 0.1.
        Sorting is stable, so ties keep document order then chunk order.

        Args:
            query: User's question
            top_k: Number of passages to return

        Returns:
            Passages ordered by descending similarity
        """
        start_time = time.time()
        try:
            documents = await self.document_store.find_completed()
        except Exception as e:
            logger.error(f"Error loading documents for retrieval: {str(e)}", exc_info=True)
            return []

        if not documents:
            logger.info("No documents found")
            return []

        query_embedding: Optional[List[float]] = None
        candidates: List[RetrievedPassage] = []

        for document in documents:
            for chunk in document.chunks:
                try:
                    if document.file_category.embedded:
                        cached = await self.passage_cache.get(document.document_id, chunk.index)
                        if cached is not None:
                            if query_embedding is None:
                                query_embedding = self.embedding_service.generate_embedding(query)
                            candidates.append(
                                RetrievedPassage(
                                    text=cached.text,
                                    similarity=self.embedding_service.cosine_similarity(
                                        query_embedding, cached.embedding
                                    ),
                                    document_id=document.document_id,
                                    filename=document.original_name,
                                    file_category=document.file_category,
                                    chunk_index=chunk.index,
                                    from_embedding=True,
                                )
                            )
                            continue

                    similarity = lexical_similarity(query, chunk.text)
                    if document.file_category.sparse_extraction and references_document(query, document):
                        similarity = max(similarity, GENERIC_REFERENCE_FLOOR)

                    if similarity > LEXICAL_MIN_SCORE:
                        candidates.append(
                            RetrievedPassage(
                                text=chunk.text,
                                similarity=similarity,
                                document_id=document.document_id,
                                filename=document.original_name,
                                file_category=document.file_category,
                                chunk_index=chunk.index,
                            )
                        )
                except Exception as e:
                    logger.warning(
                        f"Skipping chunk {chunk.index} during retrieval: {str(e)}",
                        extra={"document_id": document.document_id},
                    )

        RETRIEVAL_CANDIDATES.observe(len(candidates))
        top = sorted(candidates, key=lambda p: p.similarity, reverse=True)[:top_k]

        logger.info(
            f"Found {len(top)} relevant chunks (total candidates: {len(candidates)})",
            extra={
                "similarity_scores": [round(p.similarity, 2) for p in top],
                "response_time_ms": (time.time() - start_time) * 1000,
            },
        )
        return top
