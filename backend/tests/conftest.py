"""Pytest configuration and fixtures."""
import shutil
import tempfile
from unittest.mock import AsyncMock, Mock

import pytest
from fakeredis import FakeAsyncRedis, FakeServer

from docchat.config import Settings
from docchat.container import build_services
from docchat.services.cache_store import CacheStore
from docchat.services.document_store import InMemoryDocumentStore
from docchat.services.llm_service import LLMService
from docchat.services.message_store import InMemoryMessageStore
from docchat.services.web_search_service import WebResult, WebSearchService


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def redis_client():
    """In-memory Redis private to one test."""
    return FakeAsyncRedis(server=FakeServer(), decode_responses=True)


@pytest.fixture
def cache(redis_client):
    return CacheStore(client=redis_client)


@pytest.fixture
def disabled_cache():
    """Cache store that never stores anything; retrieval uses lexical scoring."""
    return CacheStore(client=None, enable_cache=False)


@pytest.fixture
def document_store():
    return InMemoryDocumentStore()


@pytest.fixture
def message_store():
    return InMemoryMessageStore()


@pytest.fixture
def mock_llm_service():
    """Mock LLM service."""
    service = Mock(spec=LLMService)
    service.generate = AsyncMock(return_value="This is a test answer.")
    service.close = AsyncMock()
    return service


@pytest.fixture
def web_results():
    return [
        WebResult(
            title=f"Weather report {i}",
            link=f"https://www.weather{i}.example.com/today",
            snippet=f"Sunny with a high of {20 + i} degrees.",
            source=f"weather{i}.example.com",
        )
        for i in range(5)
    ]


@pytest.fixture
def mock_web_search_service(web_results):
    """Mock web search service returning five results."""
    service = Mock(spec=WebSearchService)
    service.configured = True
    service.search = AsyncMock(return_value=web_results)
    service.close = AsyncMock()
    return service


@pytest.fixture
def settings(temp_dir):
    return Settings(
        llm_api_key="test-key",
        serper_api_key="test-serper-key",
        upload_dir=temp_dir,
        tracing_enabled=False,
    )


@pytest.fixture
def services(settings, cache, document_store, message_store, mock_llm_service, mock_web_search_service):
    """Full service graph over fake Redis and mocked external APIs."""
    return build_services(
        settings,
        cache=cache,
        document_store=document_store,
        message_store=message_store,
        llm_service=mock_llm_service,
        web_search_service=mock_web_search_service,
    )


@pytest.fixture
def uncached_services(
    settings, disabled_cache, document_store, message_store, mock_llm_service, mock_web_search_service
):
    """Service graph with the cache switched off."""
    return build_services(
        settings,
        cache=disabled_cache,
        document_store=document_store,
        message_store=message_store,
        llm_service=mock_llm_service,
        web_search_service=mock_web_search_service,
    )
