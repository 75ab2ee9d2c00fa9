"""Structured JSON logging shared by every module under the ``docchat`` logger."""
import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict

from pydantic_settings import BaseSettings

LOGGER_NAME = "docchat"

# Attributes passed through ``extra=`` that are copied into the JSON record.
EXTRA_FIELDS = (
    "room_id",
    "session_id",
    "document_id",
    "similarity_scores",
    "cache_hit",
    "prompt_mode",
    "web_results",
    "answer_length",
    "response_time_ms",
    "token_usage",
)


class LogSettings(BaseSettings):
    """Log level read from the environment before the application settings exist."""

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with room, document and timing context when given."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def set_log_level(level: str) -> None:
    """Apply a level name such as "DEBUG"; unknown names fall back to INFO."""
    logging.getLogger(LOGGER_NAME).setLevel(getattr(logging, level.upper(), logging.INFO))


def setup_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    # Re-importing must not stack handlers.
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    set_log_level(LogSettings().log_level)
    return logger


logger = setup_logger()
