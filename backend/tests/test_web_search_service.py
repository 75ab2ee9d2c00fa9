"""Tests for web search heuristics and the Serper client."""
import json

import httpx
import pytest

from docchat.exceptions import WebSearchError, WebSearchNotConfiguredError
from docchat.services.web_search_service import (
    WebSearchService,
    extract_domain,
    extract_search_terms,
    is_web_search_request,
    strip_search_phrases,
)


class TestQueryHeuristics:
    """Tests for request detection and query building."""

    @pytest.mark.parametrize(
        "question",
        [
            "Can you search the web for current weather?",
            "Please GOOGLE this",
            "What is the latest news on rates?",
            "Give me additional information about it",
        ],
    )
    def test_detects_web_search_requests(self, question):
        assert is_web_search_request(question)

    def test_plain_question_is_not_a_search_request(self):
        assert not is_web_search_request("What is the invoice total?")

    def test_strip_search_phrases(self):
        assert strip_search_phrases("Can you search the web for current weather?") == "Can you current weather"
        assert strip_search_phrases("search for cheap flights!") == "cheap flights"

    def test_extract_search_terms(self):
        terms = extract_search_terms(
            "Quarterly revenue increased across every region this year",
            "Why did it grow? search for context",
        )
        assert terms == "why did grow search for context"

    def test_extract_search_terms_fills_from_document(self):
        terms = extract_search_terms("Quarterly revenue increased sharply", "why?")
        assert terms == "why quarterly revenue increased sharply"

    def test_extract_domain(self):
        assert extract_domain("https://www.example.com/page") == "example.com"
        assert extract_domain("https://news.example.org") == "news.example.org"
        assert extract_domain("not a url") == "Unknown Source"


def serper_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestWebSearchService:
    """Tests for WebSearchService.search."""

    @pytest.mark.asyncio
    async def test_search_parses_organic_results(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["key"] = request.headers["X-API-KEY"]
            return httpx.Response(
                200,
                json={
                    "organic": [
                        {"title": "Weather today", "link": "https://www.weather.example.com/", "snippet": "Sunny"},
                        {"title": "Forecast", "link": "https://forecast.example.org/x", "snippet": "Rain"},
                    ]
                },
            )

        service = WebSearchService(api_key="serper-key", http_client=serper_client(handler))
        results = await service.search("current weather", num_results=4)

        assert seen == {
            "body": {"q": "current weather", "num": 4, "gl": "us", "hl": "en"},
            "key": "serper-key",
        }
        assert [r.source for r in results] == ["weather.example.com", "forecast.example.org"]
        assert results[0].snippet == "Sunny"
        await service.close()

    @pytest.mark.asyncio
    async def test_search_without_organic_results(self):
        service = WebSearchService(
            api_key="serper-key", http_client=serper_client(lambda request: httpx.Response(200, json={}))
        )
        assert await service.search("anything") == []

    @pytest.mark.asyncio
    async def test_http_error_raises_web_search_error(self):
        service = WebSearchService(
            api_key="serper-key", http_client=serper_client(lambda request: httpx.Response(500))
        )
        with pytest.raises(WebSearchError):
            await service.search("anything")

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        service = WebSearchService(api_key=None)
        assert not service.configured
        with pytest.raises(WebSearchNotConfiguredError):
            await service.search("anything")
        await service.close()
