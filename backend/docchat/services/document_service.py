"""Document ingestion and lifecycle management."""
import asyncio
import os
import time
import uuid
from collections import Counter
from datetime import datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from docchat.agent.memory import AnswerCache
from docchat.exceptions import (
    DocumentBusyError,
    DocumentNotFoundError,
    DocumentProcessingError,
    DuplicateDocumentError,
)
from docchat.models.document import Document, DocumentStatus, FileCategory
from docchat.services.document_processor import DocumentProcessor, extract_text
from docchat.services.document_store import DocumentStore
from docchat.services.embedding_service import EmbeddingService
from docchat.services.passage_cache import PassageCache
from docchat.utils.helpers import format_file_size, unique_stored_name
from docchat.utils.logger import logger
from docchat.validators import DocumentValidator, validate_upload


class DocumentService:
    """Service for handling document uploads and processing."""

    def __init__(
        self,
        document_store: DocumentStore,
        document_processor: DocumentProcessor,
        embedding_service: EmbeddingService,
        passage_cache: PassageCache,
        answer_cache: AnswerCache,
        invalidate: Callable[[str], Awaitable[None]],
        upload_dir: str = "./documents",
        max_file_size_mb: float = 10,
        min_text_chars: int = 10,
        max_text_chars: int = 5 * 1024 * 1024,
        embedding_batch_size: int = 5,
    ):
        """
        Initialize document service.

        Args:
            document_store: Source of truth for documents
            document_processor: Chunking policy
            embedding_service: Pseudo-embedding generator
            passage_cache: Cache receiving chunk embeddings
            answer_cache: Cache purged of sourceless answers after uploads
            invalidate: Evicts cached passages and answers for a document id
            upload_dir: Directory for temporary file storage
            max_file_size_mb: Upload size limit
            min_text_chars: Minimum extracted text length
            max_text_chars: Maximum extracted text length
            embedding_batch_size: Chunks embedded and cached per batch
        """
        self.document_store = document_store
        self.document_processor = document_processor
        self.embedding_service = embedding_service
        self.passage_cache = passage_cache
        self.answer_cache = answer_cache
        self.invalidate = invalidate
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.max_file_size_mb = max_file_size_mb
        self.min_text_chars = min_text_chars
        self.max_text_chars = max_text_chars
        self.embedding_batch_size = embedding_batch_size

    async def upload(self, file_content: bytes, original_name: str) -> Document:
        """
        Validate, extract, chunk and store an uploaded document.

        Args:
            file_content: Raw file content as bytes
            original_name: Filename as provided by the client

        Returns:
            The completed document

        Raises:
            ValidationError subclasses, DuplicateDocumentError, ExtractionError,
            DocumentProcessingError
        """
        start_time = time.time()
        category = validate_upload(original_name, len(file_content), self.max_file_size_mb)

        tmp_file_path = self._save_temporary_file(file_content, original_name)
        try:
            content = await asyncio.to_thread(extract_text, tmp_file_path, category)
        finally:
            self._remove_temporary_file(tmp_file_path)

        DocumentValidator.validate_content(content, self.min_text_chars, self.max_text_chars)

        existing = await self.document_store.find_by_name_and_size(original_name, len(file_content))
        if existing is not None:
            raise DuplicateDocumentError(
                "A document with the same name and size already exists", existing.document_id
            )

        document = Document(
            document_id=uuid.uuid4().hex,
            filename=unique_stored_name(original_name),
            original_name=original_name,
            content=content,
            file_category=category,
            file_size=len(file_content),
        )
        await self.document_store.add(document)
        document = await self._process(document)

        # Earlier "nothing relevant" answers may be wrong now.
        await self.answer_cache.evict_sourceless()

        logger.info(
            f"Document uploaded successfully: {original_name}, {len(document.chunks)} chunks",
            extra={
                "document_id": document.document_id,
                "response_time_ms": (time.time() - start_time) * 1000,
            },
        )
        return document

    async def get(self, document_id: str) -> Document:
        document = await self.document_store.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document not found: {document_id}")
        return document

    async def list_documents(
        self,
        status: Optional[DocumentStatus] = None,
        category: Optional[FileCategory] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Document], int]:
        return await self.document_store.list(status=status, category=category, page=page, limit=limit)

    async def delete(self, document_id: str) -> Document:
        document = await self.document_store.delete(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document not found: {document_id}")
        await self.invalidate(document_id)
        logger.info(f"Document deleted: {document.original_name}", extra={"document_id": document_id})
        return document

    async def rename(self, document_id: str, new_name: str) -> Document:
        document = await self.get(document_id)
        existing = await self.document_store.find_by_name(new_name)
        if existing is not None and existing.document_id != document_id:
            raise DuplicateDocumentError("A document with this name already exists", existing.document_id)

        document.original_name = new_name
        document.updated_at = datetime.utcnow()
        await self.document_store.save(document)
        # Cached answers carry the old display name.
        await self.invalidate(document_id)
        return document

    async def reprocess(self, document_id: str) -> Document:
        """Rebuild chunks and cached embeddings from the stored text."""
        document = await self.get(document_id)
        if document.status is DocumentStatus.PROCESSING:
            raise DocumentBusyError("Document is already being processed")

        document.status = DocumentStatus.PROCESSING
        await self.document_store.save(document)
        await self.invalidate(document_id)
        return await self._process(document)

    async def stats(self) -> Dict[str, Any]:
        total = await self.document_store.count()
        documents, _ = await self.document_store.list(page=1, limit=max(total, 1))
        total_size = sum(doc.file_size for doc in documents)
        total_chunks = sum(len(doc.chunks) for doc in documents)
        avg_size = round(total_size / total) if total else 0
        return {
            "total_documents": total,
            "total_size": total_size,
            "total_size_formatted": format_file_size(total_size),
            "avg_size": avg_size,
            "avg_size_formatted": format_file_size(avg_size),
            "total_chunks": total_chunks,
            "avg_chunks": round(total_chunks / total) if total else 0,
            "status_counts": dict(Counter(doc.status.value for doc in documents)),
            "file_type_counts": dict(Counter(doc.file_category.value for doc in documents)),
        }

    async def _process(self, document: Document) -> Document:
        """Chunk, cache embeddings and mark the document completed, or failed on error."""
        try:
            document.chunks = self.document_processor.build_chunks(document.content, document.file_category)
            if document.file_category.embedded:
                await self._cache_embeddings(document)
            document.status = DocumentStatus.COMPLETED
        except Exception as e:
            logger.error(
                f"Document processing failed: {str(e)}",
                exc_info=True,
                extra={"document_id": document.document_id},
            )
            document.status = DocumentStatus.FAILED
            document.updated_at = datetime.utcnow()
            await self.document_store.save(document)
            raise DocumentProcessingError(f"Failed to process document: {str(e)}") from e

        if await self.document_store.get(document.document_id) is None:
            # Deleted while embeddings were being written; drop what was cached after the eviction.
            await self.passage_cache.evict_all(document.document_id)
            raise DocumentNotFoundError(f"Document was deleted during processing: {document.document_id}")

        document.updated_at = datetime.utcnow()
        await self.document_store.save(document)
        return document

    async def _cache_embeddings(self, document: Document) -> None:
        chunks = document.chunks
        for i in range(0, len(chunks), self.embedding_batch_size):
            batch = chunks[i: i + self.embedding_batch_size]
            embeddings = self.embedding_service.generate_embeddings([chunk.text for chunk in batch])
            await asyncio.gather(
                *(
                    self.passage_cache.put(
                        document.document_id, chunk.index, chunk.text, embedding, document.original_name
                    )
                    for chunk, embedding in zip(batch, embeddings)
                )
            )
        logger.info(f"Cached embeddings for {len(chunks)} chunks", extra={"document_id": document.document_id})

    def _save_temporary_file(self, file_content: bytes, filename: str) -> str:
        """Save uploaded file to temporary location."""
        file_extension = Path(filename).suffix or ".tmp"

        with NamedTemporaryFile(delete=False, suffix=file_extension, dir=self.upload_dir) as tmp_file:
            tmp_file.write(file_content)
            return tmp_file.name

    @staticmethod
    def _remove_temporary_file(tmp_file_path: str) -> None:
        try:
            os.unlink(tmp_file_path)
        except OSError as e:
            logger.warning(f"Could not remove temporary file {tmp_file_path}: {str(e)}")
