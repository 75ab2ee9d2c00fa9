"""Answer synthesizer orchestrating the cache-first RAG pipeline."""
import time
from typing import List, Sequence

from opentelemetry import trace

from docchat.agent.memory import AnswerCache
from docchat.agent.prompts import CannedAnswers, CombinedPrompt, DocumentPrompt, WebPrompt
from docchat.exceptions import WebSearchNotConfiguredError
from docchat.models.document import DocumentStatus
from docchat.models.message import Answer, PromptMode, SourceAttribution, WebResultAttribution
from docchat.services.document_store import DocumentStore
from docchat.services.llm_service import LLMService
from docchat.services.retrieval_service import RetrievalService, RetrievedPassage
from docchat.services.web_search_service import (
    WebResult,
    WebSearchService,
    extract_search_terms,
    is_web_search_request,
    strip_search_phrases,
)
from docchat.utils.logger import logger
from docchat.utils.metrics import (
    ANSWER_CACHE_HITS,
    ANSWER_LATENCY,
    ANSWERS_TOTAL,
    WEB_SEARCHES_TOTAL,
)

tracer = trace.get_tracer(__name__)


class AnswerSynthesizer:
    """Answers room questions from uploaded documents and, optionally, the web."""

    def __init__(
        self,
        retrieval_service: RetrievalService,
        llm_service: LLMService,
        web_search_service: WebSearchService,
        answer_cache: AnswerCache,
        document_store: DocumentStore,
        top_k: int = 3,
        web_search_results: int = 4,
    ):
        """
        Initialize answer synthesizer.

        Args:
            retrieval_service: Passage retriever
            llm_service: Text generation collaborator
            web_search_service: Web search collaborator
            answer_cache: Memoized answers
            document_store: Used to explain empty retrievals
            top_k: Number of passages to retrieve
            web_search_results: Maximum web results per search
        """
        self.retrieval_service = retrieval_service
        self.llm_service = llm_service
        self.web_search_service = web_search_service
        self.answer_cache = answer_cache
        self.document_store = document_store
        self.top_k = top_k
        self.web_search_results = web_search_results

    async def answer(self, question: str, room_id: str, web_search_enabled: bool = True) -> Answer:
        """
        Answer a question for a room. Never raises.

        Args:
            question: User's question
            room_id: Room the question was asked in
            web_search_enabled: Whether the asker allows web search

        Returns:
            Cached, generated, canned or apology answer
        """
        start_time = time.time()
        with tracer.start_as_current_span("docchat.answer") as span:
            span.set_attribute("docchat.room_id", room_id)
            span.set_attribute("docchat.web_search_enabled", web_search_enabled)
            try:
                cached = await self.answer_cache.get(room_id, question, web_search_enabled)
                if cached is not None:
                    span.set_attribute("docchat.cache_hit", True)
                    ANSWER_CACHE_HITS.inc()
                    return cached

                answer = await self._synthesize(question, web_search_enabled)
            except Exception as e:
                logger.error(f"Error generating answer: {str(e)}", exc_info=True, extra={"room_id": room_id})
                span.record_exception(e)
                ANSWERS_TOTAL.labels(outcome="error").inc()
                return Answer(
                    answer=CannedAnswers.ERROR,
                    web_search_enabled=web_search_enabled,
                    error=True,
                )
            finally:
                ANSWER_LATENCY.observe(time.time() - start_time)

            await self.answer_cache.put(room_id, question, answer)

            outcome = answer.prompt_mode.value if answer.prompt_mode else "canned"
            ANSWERS_TOTAL.labels(outcome=outcome).inc()
            span.set_attribute("docchat.prompt_mode", outcome)
            logger.info(
                f"Answer ready: {len(answer.sources)} document sources, {len(answer.web_results)} web results",
                extra={
                    "room_id": room_id,
                    "prompt_mode": outcome,
                    "answer_length": len(answer.answer),
                    "response_time_ms": (time.time() - start_time) * 1000,
                },
            )
            return answer

    async def _synthesize(self, question: str, web_search_enabled: bool) -> Answer:
        passages = await self.retrieval_service.retrieve(question, top_k=self.top_k)
        search_requested = is_web_search_request(question)

        web_results: List[WebResult] = []
        if search_requested and web_search_enabled:
            web_results = await self._search_web(question, passages)
        elif search_requested:
            logger.info("Web search requested but disabled by user")

        if not passages and not web_results:
            total_documents = await self.document_store.count(DocumentStatus.COMPLETED)
            return Answer(
                answer=CannedAnswers.select(
                    search_requested_but_disabled=search_requested and not web_search_enabled,
                    total_documents=total_documents,
                    web_search_enabled=web_search_enabled,
                ),
                web_search_enabled=web_search_enabled,
            )

        if passages and web_results:
            mode = PromptMode.COMBINED
            prompt = CombinedPrompt.build(question, passages, web_results)
        elif web_results:
            mode = PromptMode.WEB
            prompt = WebPrompt.build(question, web_results)
        else:
            mode = PromptMode.DOCUMENTS
            prompt = DocumentPrompt.build(question, passages, web_search_enabled)

        with tracer.start_as_current_span("docchat.generate") as span:
            span.set_attribute("docchat.prompt_mode", mode.value)
            text = await self.llm_service.generate(prompt)

        return Answer(
            answer=text,
            sources=self._source_attributions(passages),
            web_results=self._web_attributions(web_results),
            web_search_enabled=web_search_enabled,
            prompt_mode=mode,
        )

    async def _search_web(self, question: str, passages: Sequence[RetrievedPassage]) -> List[WebResult]:
        if not self.web_search_service.configured:
            WEB_SEARCHES_TOTAL.labels(outcome="not_configured").inc()
            logger.info("Web search requested but no search API key is configured")
            return []

        if passages:
            query = extract_search_terms(passages[0].text, question)
        else:
            query = strip_search_phrases(question)

        try:
            results = await self.web_search_service.search(query, self.web_search_results)
        except WebSearchNotConfiguredError as e:
            WEB_SEARCHES_TOTAL.labels(outcome="not_configured").inc()
            logger.warning(str(e))
            return []
        except Exception as e:
            WEB_SEARCHES_TOTAL.labels(outcome="failed").inc()
            logger.error(f"Web search failed: {str(e)}")
            return []

        WEB_SEARCHES_TOTAL.labels(outcome="success").inc()
        return results[: self.web_search_results]

    @staticmethod
    def _source_attributions(passages: Sequence[RetrievedPassage]) -> List[SourceAttribution]:
        sources = (
            SourceAttribution(
                document_id=p.document_id,
                filename=p.filename,
                file_type=p.file_category.value,
                similarity=round(p.similarity, 2),
            )
            for p in passages
        )
        return list(dict.fromkeys(sources))

    @staticmethod
    def _web_attributions(results: Sequence[WebResult]) -> List[WebResultAttribution]:
        seen = set()
        attributions = []
        for result in results:
            if result.link in seen:
                continue
            seen.add(result.link)
            attributions.append(WebResultAttribution(title=result.title, source=result.source, url=result.link))
        return attributions
