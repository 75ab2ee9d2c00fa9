"""Centralized prompt templates for the room assistant."""
from typing import Sequence

from docchat.models.document import FileCategory
from docchat.services.retrieval_service import RetrievedPassage
from docchat.services.web_search_service import WebResult

SECTION_SEPARATOR = "\n\n---\n\n"


def format_document_context(passages: Sequence[RetrievedPassage]) -> str:
    parts = []
    for i, passage in enumerate(passages, 1):
        source_info = f"[Document {i}: {passage.filename}]"
        if passage.file_category is FileCategory.PDF:
            source_info += " (PDF)"
        parts.append(f"{source_info}\n{passage.text}")
    return SECTION_SEPARATOR.join(parts)


def format_web_context(results: Sequence[WebResult]) -> str:
    return SECTION_SEPARATOR.join(
        f"[Web Result {i}: {r.source}]\nTitle: {r.title}\nContent: {r.snippet}\nURL: {r.link}"
        for i, r in enumerate(results, 1)
    )


class DocumentPrompt:
    """Prompt for answering from uploaded documents only."""

    @staticmethod
    def build(question: str, passages: Sequence[RetrievedPassage], web_search_enabled: bool) -> str:
        """
        Build document-only prompt.

        Args:
            question: User's question
            passages: Retrieved passages
            web_search_enabled: Whether the room allows web search

        Returns:
            Formatted prompt string
        """
        web_note = (
            "If the user asks about web search, explain that you can search the internet for additional information"
            if web_search_enabled
            else "Note that web search is currently disabled"
        )
        return f"""You are an AI assistant helping users understand their uploaded documents. Based on the provided context from their documents, answer the question clearly and helpfully.

DOCUMENT CONTEXT:
{format_document_context(passages)}

User Question: {question}

Instructions:
1. Answer based on the provided document context
2. Be helpful and conversational
3. If the context mentions that PDF processing is simplified, acknowledge this
4. For PDF files, work with the available information effectively
5. {web_note}
6. Cite which documents you're referencing when relevant

Answer:"""


class WebPrompt:
    """Prompt for answering from web search results only."""

    @staticmethod
    def build(question: str, results: Sequence[WebResult]) -> str:
        return f"""You are an AI assistant answering a question using current web search results.

WEB SEARCH RESULTS:
{format_web_context(results)}

User Question: {question}

Instructions:
1. Answer based on the web search results
2. Be informative and helpful
3. Cite sources when relevant

Answer:"""


class CombinedPrompt:
    """Prompt for answering from documents supplemented by web results."""

    @staticmethod
    def build(
        question: str, passages: Sequence[RetrievedPassage], results: Sequence[WebResult]
    ) -> str:
        return f"""You are an AI assistant helping users understand their documents and find related information online. You have access to both their uploaded documents and current web search results.

DOCUMENT CONTEXT:
{format_document_context(passages)}

WEB SEARCH RESULTS:
{format_web_context(results)}

User Question: {question}

Instructions:
1. Start by analyzing the document content to understand the core topic
2. Then incorporate relevant information from the web search results
3. Provide a comprehensive answer that combines both sources
4. Clearly distinguish between information from the user's document vs. web sources
5. Include specific details and be helpful
6. Mention that web search was performed to supplement the document information

Answer:"""


class CannedAnswers:
    """Fixed replies used when there is nothing to generate from."""

    ERROR = (
        "I apologize, but I encountered an error while generating a response. "
        "Please try asking your question again, or rephrase it differently."
    )

    WEB_SEARCH_DISABLED = (
        "Web search is currently disabled. I can only answer questions based on your uploaded "
        "documents. To enable web search, please toggle the 'Web Search' button in the chat header."
    )

    @staticmethod
    def no_documents(web_search_enabled: bool) -> str:
        suffix = " and perform relevant web searches" if web_search_enabled else ""
        return (
            "I don't have any uploaded documents to reference. Please upload some documents first "
            f"(PDF, TXT, or DOCX files) so I can provide helpful answers{suffix}."
        )

    @staticmethod
    def nothing_relevant(total_documents: int, web_search_enabled: bool) -> str:
        suffix = ", or use web search for external information" if web_search_enabled else ""
        return (
            f"I found {total_documents} uploaded document(s), but I couldn't find content directly "
            f"relevant to your question. Try asking more specific questions about your documents{suffix}."
        )

    @classmethod
    def select(
        cls,
        search_requested_but_disabled: bool,
        total_documents: int,
        web_search_enabled: bool,
    ) -> str:
        if search_requested_but_disabled:
            return cls.WEB_SEARCH_DISABLED
        if total_documents == 0:
            return cls.no_documents(web_search_enabled)
        return cls.nothing_relevant(total_documents, web_search_enabled)
