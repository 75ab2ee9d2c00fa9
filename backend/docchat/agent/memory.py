"""Answer cache: memoized answers keyed by room, question and web-search mode."""
import hashlib
import json
from typing import Optional

from docchat.models.message import Answer
from docchat.services.cache_store import CacheStore
from docchat.utils.logger import logger


class AnswerCache:
    """Stores serialized answers in Redis with mode-dependent TTLs."""

    def __init__(
        self,
        cache: CacheStore,
        ttl_seconds: int = 3600,
        web_ttl_seconds: int = 1800,
    ):
        """
        Initialize answer cache.

        Args:
            cache: Shared cache store
            ttl_seconds: TTL for answers built without web results
            web_ttl_seconds: TTL for answers that include web results
        """
        self.cache = cache
        self.ttl = ttl_seconds
        self.web_ttl = web_ttl_seconds

    @staticmethod
    def key(room_id: str, question: str, web_search_enabled: bool) -> str:
        """Cache key; a pure function of room, full question text and mode."""
        question_hash = hashlib.sha256(question.encode("utf-8")).hexdigest()
        return f"answer:{room_id}:{question_hash}:ws{str(web_search_enabled).lower()}"

    async def get(self, room_id: str, question: str, web_search_enabled: bool) -> Optional[Answer]:
        """
        Get answer from the cache.

        Returns:
            Cached answer if found and readable, None otherwise
        """
        cached_data = await self.cache.get(self.key(room_id, question, web_search_enabled))
        if not cached_data:
            return None
        try:
            answer = Answer.from_dict(json.loads(cached_data))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable cached answer: {str(e)}", extra={"room_id": room_id})
            return None
        logger.info(f"Cache hit for question: {question[:50]}...", extra={"room_id": room_id, "cache_hit": True})
        return answer

    async def put(self, room_id: str, question: str, answer: Answer) -> bool:
        """Store an answer; answers with web results expire sooner."""
        ttl = self.web_ttl if answer.web_results else self.ttl
        stored = await self.cache.set(
            self.key(room_id, question, answer.web_search_enabled),
            json.dumps(answer.to_dict()),
            ttl,
        )
        if stored:
            logger.info(f"Cached answer for question: {question[:50]}...", extra={"room_id": room_id})
        return stored

    async def evict_for_document(self, document_id: str) -> int:
        """Remove every cached answer that cites the document."""
        related = []
        for key in await self.cache.keys("answer:*"):
            cached = await self.cache.get(key)
            if cached and document_id in cached:
                related.append(key)
        removed = await self.cache.delete(*related)
        if removed:
            logger.info(f"Deleted {removed} related answer cache entries", extra={"document_id": document_id})
        return removed

    async def evict_sourceless(self) -> int:
        """Remove answers that cite no documents, e.g. "nothing relevant" replies."""
        stale = []
        for key in await self.cache.keys("answer:*"):
            cached = await self.cache.get(key)
            if not cached:
                continue
            try:
                if not json.loads(cached).get("sources"):
                    stale.append(key)
            except ValueError:
                stale.append(key)
        return await self.cache.delete(*stale)
