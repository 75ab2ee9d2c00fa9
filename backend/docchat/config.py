"""Application settings."""
import os
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Generation (any OpenAI-compatible chat completion endpoint)
    llm_api_key: str = ""
    llm_base_url: str = "https://api.deepseek.com"
    llm_model: str = "deepseek-chat"
    llm_timeout_seconds: float = 60.0
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1024

    # Web search (Serper)
    serper_api_key: str = ""
    serper_api_url: str = "https://google.serper.dev/search"
    web_search_timeout_seconds: float = 10.0
    web_search_results: int = 4

    # Redis cache configuration
    redis_url: str = "redis://localhost:6379/0"
    enable_cache: bool = True
    passage_cache_ttl_seconds: int = 86400
    answer_cache_ttl_seconds: int = 3600
    answer_cache_web_ttl_seconds: int = 1800
    room_history_size: int = 50
    room_history_ttl_seconds: int = 3600

    # Chunking and retrieval
    chunk_size: int = 800
    chunk_overlap: int = 150
    top_k_chunks: int = 3
    embedding_batch_size: int = 5

    # Document upload limits
    max_file_size_mb: int = 10
    min_text_chars: int = 10
    max_text_chars: int = 5 * 1024 * 1024
    upload_dir: str = "./documents"

    # Messages
    message_edit_window_seconds: int = 300

    # OpenTelemetry tracing configuration
    tracing_enabled: bool = False
    otlp_endpoint: str = ""

    class Config:
        env_file = os.path.join(os.path.dirname(__file__), "..", "..", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
