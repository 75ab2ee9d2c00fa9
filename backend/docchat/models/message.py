"""Chat message and answer data models."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

AI_USER_ID = "ai"
AI_USERNAME = "AI Assistant"


class MessageKind(str, Enum):
    """Author kind as sent to clients. Assistant messages use "ai" for both the kind and the author id."""

    USER = "user"
    AI = "ai"


class PromptMode(str, Enum):
    """Which sources the generation prompt was built from."""

    DOCUMENTS = "documents"
    WEB = "web"
    COMBINED = "combined"


@dataclass(frozen=True)
class SourceAttribution:
    document_id: str
    filename: str
    file_type: str
    similarity: float


@dataclass(frozen=True)
class WebResultAttribution:
    title: str
    source: str
    url: str


@dataclass
class Answer:
    """Synthesized answer with its attributions."""

    answer: str
    sources: List[SourceAttribution] = field(default_factory=list)
    web_results: List[WebResultAttribution] = field(default_factory=list)
    web_search_enabled: bool = True
    prompt_mode: Optional[PromptMode] = None
    error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["prompt_mode"] = self.prompt_mode.value if self.prompt_mode else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Answer":
        mode = data.get("prompt_mode")
        return cls(
            answer=data["answer"],
            sources=[SourceAttribution(**s) for s in data.get("sources", [])],
            web_results=[WebResultAttribution(**w) for w in data.get("web_results", [])],
            web_search_enabled=data.get("web_search_enabled", True),
            prompt_mode=PromptMode(mode) if mode else None,
            error=data.get("error", False),
        )


@dataclass
class MessageMetadata:
    sources: List[SourceAttribution] = field(default_factory=list)
    web_results: List[WebResultAttribution] = field(default_factory=list)
    web_search_enabled: Optional[bool] = None
    edited: bool = False
    edited_at: Optional[datetime] = None


@dataclass
class Message:
    """A persisted chat message."""

    message_id: str
    room_id: str
    user_id: str
    username: str
    content: str
    kind: MessageKind = MessageKind.USER
    timestamp: datetime = field(default_factory=datetime.utcnow)
    metadata: MessageMetadata = field(default_factory=MessageMetadata)

    def to_event(self) -> Dict[str, Any]:
        """Wire shape broadcast to room members and cached in room history."""
        event: Dict[str, Any] = {
            "id": self.message_id,
            "userId": self.user_id,
            "username": self.username,
            "content": self.content,
            "type": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.kind is MessageKind.AI:
            event["sources"] = [asdict(s) for s in self.metadata.sources]
            event["webResults"] = [asdict(w) for w in self.metadata.web_results]
        if self.metadata.edited:
            event["edited"] = True
        return event
