"""Construction of the service graph shared by HTTP routes and the WebSocket endpoint."""
from dataclasses import dataclass
from typing import Optional

from docchat.agent.agent import AnswerSynthesizer
from docchat.agent.memory import AnswerCache
from docchat.config import Settings
from docchat.services.cache_store import CacheStore
from docchat.services.chat_service import ChatService
from docchat.services.document_processor import DocumentProcessor
from docchat.services.document_service import DocumentService
from docchat.services.document_store import DocumentStore, InMemoryDocumentStore
from docchat.services.embedding_service import EmbeddingService
from docchat.services.llm_service import LLMService
from docchat.services.message_store import InMemoryMessageStore, MessageStore
from docchat.services.passage_cache import PassageCache
from docchat.services.retrieval_service import RetrievalService
from docchat.services.room_coordinator import RoomCoordinator
from docchat.services.web_search_service import WebSearchService


@dataclass
class Services:
    settings: Settings
    cache: CacheStore
    document_store: DocumentStore
    message_store: MessageStore
    passage_cache: PassageCache
    answer_cache: AnswerCache
    llm_service: LLMService
    web_search_service: WebSearchService
    synthesizer: AnswerSynthesizer
    coordinator: RoomCoordinator
    document_service: DocumentService
    chat_service: ChatService

    async def close(self) -> None:
        await self.coordinator.close()
        await self.llm_service.close()
        await self.web_search_service.close()
        await self.cache.close()


def build_services(
    settings: Settings,
    cache: Optional[CacheStore] = None,
    document_store: Optional[DocumentStore] = None,
    message_store: Optional[MessageStore] = None,
    llm_service: Optional[LLMService] = None,
    web_search_service: Optional[WebSearchService] = None,
) -> Services:
    """
    Wire every service from settings; any collaborator may be supplied instead.

    Raises:
        ConfigurationError: No LLM service given and no LLM API key configured
    """
    cache = cache or CacheStore.from_url(settings.redis_url, enable_cache=settings.enable_cache)
    document_store = document_store or InMemoryDocumentStore()
    message_store = message_store or InMemoryMessageStore()
    llm_service = llm_service or LLMService(
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        timeout=settings.llm_timeout_seconds,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
    web_search_service = web_search_service or WebSearchService(
        api_key=settings.serper_api_key,
        api_url=settings.serper_api_url,
        timeout=settings.web_search_timeout_seconds,
    )
    embedding_service = EmbeddingService()
    passage_cache = PassageCache(cache, ttl_seconds=settings.passage_cache_ttl_seconds)
    answer_cache = AnswerCache(
        cache,
        ttl_seconds=settings.answer_cache_ttl_seconds,
        web_ttl_seconds=settings.answer_cache_web_ttl_seconds,
    )
    synthesizer = AnswerSynthesizer(
        retrieval_service=RetrievalService(document_store, passage_cache, embedding_service),
        llm_service=llm_service,
        web_search_service=web_search_service,
        answer_cache=answer_cache,
        document_store=document_store,
        top_k=settings.top_k_chunks,
        web_search_results=settings.web_search_results,
    )
    coordinator = RoomCoordinator(
        message_store=message_store,
        cache=cache,
        synthesizer=synthesizer,
        passage_cache=passage_cache,
        answer_cache=answer_cache,
        history_size=settings.room_history_size,
        history_ttl_seconds=settings.room_history_ttl_seconds,
    )
    document_service = DocumentService(
        document_store=document_store,
        document_processor=DocumentProcessor(settings.chunk_size, settings.chunk_overlap),
        embedding_service=embedding_service,
        passage_cache=passage_cache,
        answer_cache=answer_cache,
        invalidate=coordinator.invalidate_document,
        upload_dir=settings.upload_dir,
        max_file_size_mb=settings.max_file_size_mb,
        min_text_chars=settings.min_text_chars,
        max_text_chars=settings.max_text_chars,
        embedding_batch_size=settings.embedding_batch_size,
    )
    chat_service = ChatService(
        message_store,
        invalidate_room=coordinator.invalidate_room_history,
        edit_window_seconds=settings.message_edit_window_seconds,
    )
    return Services(
        settings=settings,
        cache=cache,
        document_store=document_store,
        message_store=message_store,
        passage_cache=passage_cache,
        answer_cache=answer_cache,
        llm_service=llm_service,
        web_search_service=web_search_service,
        synthesizer=synthesizer,
        coordinator=coordinator,
        document_service=document_service,
        chat_service=chat_service,
    )
