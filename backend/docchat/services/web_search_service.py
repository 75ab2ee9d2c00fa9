"""Web search via the Serper API, plus query heuristics."""
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

import httpx

from docchat.exceptions import WebSearchError, WebSearchNotConfiguredError
from docchat.utils.logger import logger

WEB_SEARCH_KEYWORDS = (
    "search the web",
    "search the internet",
    "search internet",
    "search web",
    "search online",
    "google",
    "find online",
    "web search",
    "internet search",
    "search for",
    "look up online",
    "find more info",
    "additional information",
    "latest news",
    "current info",
)

_SEARCH_TRIGGER = re.compile(
    r"search\s+(?:the\s+)?(?:internet|web|online)(?:\s+for)?|search\s+for",
    re.IGNORECASE,
)
_NON_WORD = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class WebResult:
    title: str
    link: str
    snippet: str
    source: str


def is_web_search_request(query: str) -> bool:
    """Check if the user is asking for a web search."""
    query_lower = query.lower()
    return any(keyword in query_lower for keyword in WEB_SEARCH_KEYWORDS)


def _words(text: str) -> List[str]:
    return _NON_WORD.sub(" ", text.lower()).split()


def extract_search_terms(document_content: str, user_query: str, max_terms: int = 6) -> str:
    """
    Build a focused search query from the question and the top passage.

    Question words longer than two characters come first, then the first ten
    words longer than three characters of the passage. Duplicates keep their
    first position and the result is capped at max_terms words.
    """
    document_words = [w for w in _words(document_content) if len(w) > 3][:10]
    query_words = [w for w in _words(user_query) if len(w) > 2]

    terms = list(dict.fromkeys(query_words + document_words))[:max_terms]
    search_query = " ".join(terms)
    logger.info(f"Generated search terms: {search_query!r}")
    return search_query


def strip_search_phrases(question: str) -> str:
    """Turn a question into a direct search query."""
    query = re.sub(r"[?!.]", "", question)
    query = _SEARCH_TRIGGER.sub("", query)
    return " ".join(query.split())


def extract_domain(url: str) -> str:
    hostname = urlparse(url).hostname
    if not hostname:
        return "Unknown Source"
    return hostname[4:] if hostname.startswith("www.") else hostname


class WebSearchService:
    """Client for the Serper Google search API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: str = "https://google.serper.dev/search",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize web search service.

        Args:
            api_key: Serper API key; searches fail with WebSearchNotConfiguredError without it
            api_url: Search endpoint
            timeout: Request timeout in seconds
            http_client: Optional preconfigured HTTP client
        """
        self.api_key = api_key
        self.api_url = api_url
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

        if not self.api_key:
            logger.warning("SERPER_API_KEY not found. Web search functionality will be disabled.")
        else:
            logger.info("Web search service initialized")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, num_results: int = 5) -> List[WebResult]:
        """
        Search the web.

        Args:
            query: Search query
            num_results: Maximum number of results

        Returns:
            Organic results, at most num_results

        Raises:
            WebSearchNotConfiguredError: If no API key is set
            WebSearchError: If the request fails or times out
        """
        if not self.api_key:
            raise WebSearchNotConfiguredError(
                "Web search is not configured. Please add SERPER_API_KEY to environment variables."
            )

        logger.info(f"Searching web for: {query!r}")
        try:
            response = await self.client.post(
                self.api_url,
                json={"q": query, "num": num_results, "gl": "us", "hl": "en"},
                headers={"X-API-KEY": self.api_key, "Content-Type": "application/json"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Web search error: {str(e)}")
            raise WebSearchError(f"Web search failed: {str(e)}") from e

        organic = payload.get("organic") or []
        results = [
            WebResult(
                title=item.get("title", ""),
                link=item.get("link", ""),
                snippet=item.get("snippet", ""),
                source=extract_domain(item.get("link", "")),
            )
            for item in organic[:num_results]
        ]
        logger.info(f"Found {len(results)} web search results", extra={"web_results": len(results)})
        return results

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
