"""Document storage: source of truth for document text and chunks."""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from docchat.models.document import Document, DocumentStatus, FileCategory


class DocumentStore(ABC):
    """Abstract base class for document storage."""

    @abstractmethod
    async def add(self, document: Document) -> None:
        """Store a new document."""
        ...

    @abstractmethod
    async def save(self, document: Document) -> None:
        """Persist changes to an existing document."""
        ...

    @abstractmethod
    async def get(self, document_id: str) -> Optional[Document]:
        """Retrieve a document by ID. Returns None if not found."""
        ...

    @abstractmethod
    async def delete(self, document_id: str) -> Optional[Document]:
        """Delete a document by ID, returning what was removed."""
        ...

    @abstractmethod
    async def find_completed(self) -> List[Document]:
        """Documents eligible for retrieval, in upload order."""
        ...

    @abstractmethod
    async def count(self, status: Optional[DocumentStatus] = None) -> int:
        """Count documents, optionally filtered by status."""
        ...

    @abstractmethod
    async def list(
        self,
        status: Optional[DocumentStatus] = None,
        category: Optional[FileCategory] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Document], int]:
        """Newest-first page of documents and the total matching the filter."""
        ...

    @abstractmethod
    async def find_by_name(self, original_name: str) -> Optional[Document]:
        """Find a document by its display name."""
        ...

    @abstractmethod
    async def find_by_name_and_size(self, original_name: str, file_size: int) -> Optional[Document]:
        """Find an identical upload (same display name and byte size)."""
        ...


class InMemoryDocumentStore(DocumentStore):
    """Process-local document store."""

    def __init__(self):
        self._documents: Dict[str, Document] = {}
        self._lock = asyncio.Lock()

    async def add(self, document: Document) -> None:
        async with self._lock:
            self._documents[document.document_id] = replace(document)

    async def save(self, document: Document) -> None:
        async with self._lock:
            if document.document_id in self._documents:
                self._documents[document.document_id] = replace(document)

    async def get(self, document_id: str) -> Optional[Document]:
        document = self._documents.get(document_id)
        return replace(document) if document else None

    async def delete(self, document_id: str) -> Optional[Document]:
        async with self._lock:
            return self._documents.pop(document_id, None)

    async def find_completed(self) -> List[Document]:
        return [
            replace(doc)
            for doc in self._documents.values()
            if doc.status is DocumentStatus.COMPLETED
        ]

    async def count(self, status: Optional[DocumentStatus] = None) -> int:
        if status is None:
            return len(self._documents)
        return sum(1 for doc in self._documents.values() if doc.status is status)

    async def list(
        self,
        status: Optional[DocumentStatus] = None,
        category: Optional[FileCategory] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Document], int]:
        matching = [
            doc
            for doc in self._documents.values()
            if (status is None or doc.status is status)
            and (category is None or doc.file_category is category)
        ]
        matching.sort(key=lambda doc: doc.uploaded_at, reverse=True)
        skip = (page - 1) * limit
        return [replace(doc) for doc in matching[skip: skip + limit]], len(matching)

    async def find_by_name(self, original_name: str) -> Optional[Document]:
        for doc in self._documents.values():
            if doc.original_name == original_name:
                return replace(doc)
        return None

    async def find_by_name_and_size(self, original_name: str, file_size: int) -> Optional[Document]:
        for doc in self._documents.values():
            if doc.original_name == original_name and doc.file_size == file_size:
                return replace(doc)
        return None
