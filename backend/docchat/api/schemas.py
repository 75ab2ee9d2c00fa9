"""Pydantic schemas for API requests, responses and real-time events."""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docchat.models.document import Document
from docchat.models.message import Answer, Message
from docchat.services.message_store import RoomActivity, RoomStats
from docchat.utils.helpers import format_file_size
from docchat.utils.text_cleaner import clean_message

MAX_MESSAGE_LENGTH = 10000


def _require_text(v: str) -> str:
    cleaned = clean_message(v)
    if not cleaned:
        raise ValueError("must not be empty")
    return cleaned


class EventModel(BaseModel):
    """Base for inbound real-time payloads, which use camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)


class JoinRoomEvent(EventModel):
    room_id: str = Field(..., alias="roomId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
    username: str = Field(..., min_length=1)

    @field_validator("room_id", "user_id", "username")
    @classmethod
    def clean_fields(cls, v: str) -> str:
        return _require_text(v)


class SendMessageEvent(EventModel):
    room_id: str = Field(..., alias="roomId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
    username: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    web_search_enabled: bool = Field(True, alias="webSearchEnabled")

    @field_validator("room_id", "user_id", "username", "content")
    @classmethod
    def clean_fields(cls, v: str) -> str:
        return _require_text(v)


class TypingEvent(EventModel):
    room_id: str = Field(..., alias="roomId", min_length=1)
    user_id: Optional[str] = Field(None, alias="userId")
    username: Optional[str] = None


class ToggleWebSearchEvent(EventModel):
    room_id: str = Field(..., alias="roomId", min_length=1)
    user_id: Optional[str] = Field(None, alias="userId")
    username: Optional[str] = None
    enabled: bool


class AskRequest(BaseModel):
    """Request schema for asking questions."""

    question: str = Field(..., min_length=1, description="User's question")
    room_id: str = Field("api", min_length=1, description="Room whose answer cache is used")
    web_search_enabled: bool = Field(True, description="Allow web search for this question")

    @field_validator("question")
    @classmethod
    def clean_question(cls, v: str) -> str:
        """Remove control characters; reject questions that are empty afterwards."""
        cleaned = clean_message(v)
        if not cleaned:
            raise ValueError("Question cannot be empty after cleaning")
        return cleaned


class SourceResponse(BaseModel):
    document_id: str
    filename: str
    file_type: str
    similarity: float


class WebResultResponse(BaseModel):
    title: str
    source: str
    url: str


class AnswerResponse(BaseModel):
    """Response schema for question answering."""

    answer: str = Field(..., description="Generated or canned answer")
    sources: List[SourceResponse] = Field(default_factory=list)
    web_results: List[WebResultResponse] = Field(default_factory=list)
    web_search_enabled: bool
    prompt_mode: Optional[str] = Field(None, description="documents, web, combined or null for canned answers")
    error: bool = False

    @classmethod
    def from_answer(cls, answer: Answer) -> "AnswerResponse":
        return cls.model_validate(answer.to_dict())


class DocumentResponse(BaseModel):
    """Document metadata without its content."""

    id: str
    filename: str
    original_name: str
    file_type: str
    file_size: int
    formatted_size: str
    status: str
    chunk_count: int
    uploaded_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.document_id,
            filename=document.filename,
            original_name=document.original_name,
            file_type=document.file_category.value,
            file_size=document.file_size,
            formatted_size=format_file_size(document.file_size),
            status=document.status.value,
            chunk_count=len(document.chunks),
            uploaded_at=document.uploaded_at,
            updated_at=document.updated_at,
        )


class DocumentDetailResponse(DocumentResponse):
    content: str

    @classmethod
    def from_document(cls, document: Document) -> "DocumentDetailResponse":
        base = DocumentResponse.from_document(document)
        return cls(**base.model_dump(), content=document.content)


class UploadResponse(BaseModel):
    """Response schema for document upload."""

    message: str = Field(default="Document uploaded and processed successfully")
    document: DocumentResponse


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class DocumentListResponse(BaseModel):
    documents: List[DocumentResponse]
    pagination: Pagination


class DocumentStatusResponse(BaseModel):
    id: str
    status: str
    chunk_count: int
    original_name: str


class DocumentUpdateRequest(BaseModel):
    original_name: str = Field(..., min_length=1, max_length=255)

    @field_validator("original_name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        return _require_text(v)


class DocumentStatsResponse(BaseModel):
    total_documents: int
    total_size: int
    total_size_formatted: str
    avg_size: int
    avg_size_formatted: str
    total_chunks: int
    avg_chunks: int
    status_counts: Dict[str, int]
    file_type_counts: Dict[str, int]


class MessageResponse(BaseModel):
    id: str
    room_id: str
    user_id: str
    username: str
    content: str
    type: str
    timestamp: datetime
    sources: List[SourceResponse] = Field(default_factory=list)
    web_results: List[WebResultResponse] = Field(default_factory=list)
    edited: bool = False
    edited_at: Optional[datetime] = None

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.message_id,
            room_id=message.room_id,
            user_id=message.user_id,
            username=message.username,
            content=message.content,
            type=message.kind.value,
            timestamp=message.timestamp,
            sources=[SourceResponse(**vars(s)) for s in message.metadata.sources],
            web_results=[WebResultResponse(**vars(w)) for w in message.metadata.web_results],
            edited=message.metadata.edited,
            edited_at=message.metadata.edited_at,
        )


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
    pagination: Pagination


class MessageUpdateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    user_id: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def clean_content(cls, v: str) -> str:
        return _require_text(v)


class RoomStatsResponse(BaseModel):
    total_messages: int
    user_messages: int
    ai_messages: int
    unique_users_count: int
    first_message: Optional[datetime] = None
    last_message: Optional[datetime] = None
    avg_message_length: int
    ai_response_rate: int

    @classmethod
    def from_stats(cls, stats: RoomStats) -> "RoomStatsResponse":
        return cls(**vars(stats), ai_response_rate=stats.ai_response_rate)


class RoomActivityResponse(BaseModel):
    room_id: str
    last_activity: datetime
    message_count: int
    user_count: int

    @classmethod
    def from_activity(cls, activity: RoomActivity) -> "RoomActivityResponse":
        return cls(**vars(activity))


class HealthResponse(BaseModel):
    status: str
    cache: str
    documents: int
    connections: int
