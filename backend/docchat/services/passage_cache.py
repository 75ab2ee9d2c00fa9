"""Passage cache: chunk text and embedding per (document, chunk index)."""
import json
from dataclasses import dataclass
from typing import List, Optional

from docchat.services.cache_store import CacheStore
from docchat.utils.logger import logger


@dataclass(frozen=True)
class CachedPassage:
    text: str
    embedding: List[float]


class PassageCache:
    """Stores chunk embeddings in Redis hashes keyed doc:{id}:chunk:{index}."""

    def __init__(self, cache: CacheStore, ttl_seconds: int = 86400):
        self.cache = cache
        self.ttl = ttl_seconds

    @staticmethod
    def key(document_id: str, chunk_index: int) -> str:
        return f"doc:{document_id}:chunk:{chunk_index}"

    async def put(
        self,
        document_id: str,
        chunk_index: int,
        text: str,
        embedding: List[float],
        filename: str = "",
    ) -> bool:
        return await self.cache.hset(
            self.key(document_id, chunk_index),
            {
                "text": text,
                "embedding": json.dumps(embedding),
                "docId": document_id,
                "filename": filename,
            },
            self.ttl,
        )

    async def get(self, document_id: str, chunk_index: int) -> Optional[CachedPassage]:
        data = await self.cache.hgetall(self.key(document_id, chunk_index))
        if not data.get("embedding") or not data.get("text"):
            return None
        try:
            embedding = json.loads(data["embedding"])
        except ValueError:
            logger.warning(
                f"Discarding unreadable cached embedding for chunk {chunk_index}",
                extra={"document_id": document_id},
            )
            return None
        return CachedPassage(text=data["text"], embedding=embedding)

    async def evict_all(self, document_id: str) -> int:
        removed = await self.cache.delete_matching(f"doc:{document_id}:*")
        if removed:
            logger.info(
                f"Evicted {removed} cached passages",
                extra={"document_id": document_id},
            )
        return removed
