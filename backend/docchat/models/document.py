"""Document data models."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class DocumentStatus(str, Enum):
    """Lifecycle of an uploaded document."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FileCategory(str, Enum):
    """Supported upload types.

    PDF text comes out of extraction flattened and sparse, so PDFs are kept as a
    single chunk, get no cached embedding, and receive the generic-reference
    boost during retrieval.
    """

    PDF = ".pdf"
    TXT = ".txt"
    DOCX = ".docx"

    @property
    def label(self) -> str:
        return self.value.lstrip(".")

    @property
    def chunked(self) -> bool:
        return self is not FileCategory.PDF

    @property
    def embedded(self) -> bool:
        return self is not FileCategory.PDF

    @property
    def sparse_extraction(self) -> bool:
        return self is FileCategory.PDF


@dataclass(frozen=True)
class Chunk:
    """Represents a text chunk with its position in the document."""

    text: str
    index: int


@dataclass
class Document:
    """Represents an uploaded document and its chunks."""

    document_id: str
    filename: str
    original_name: str
    content: str
    file_category: FileCategory
    file_size: int
    chunks: List[Chunk] = field(default_factory=list)
    status: DocumentStatus = DocumentStatus.PROCESSING
    uploaded_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def display_stem(self) -> str:
        """Display name without its extension, lower-cased."""
        name = self.original_name.lower()
        suffix = self.file_category.value
        return name[: -len(suffix)] if name.endswith(suffix) else name
