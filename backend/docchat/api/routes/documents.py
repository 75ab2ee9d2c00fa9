"""Document upload and management endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status

from docchat.api.schemas import (
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentResponse,
    DocumentStatsResponse,
    DocumentStatusResponse,
    DocumentUpdateRequest,
    Pagination,
    UploadResponse,
)
from docchat.models.document import DocumentStatus, FileCategory
from docchat.services.document_service import DocumentService
from docchat.utils.logger import logger

router = APIRouter()


def get_document_service(request: Request) -> DocumentService:
    """Get document service from app state."""
    service = getattr(request.app.state, "document_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Document service not initialized")
    return service


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    service: DocumentService = Depends(get_document_service),
):
    """
    Upload a PDF, TXT or DOCX document.

    The text is extracted, chunked and its chunk embeddings cached before the
    response is sent, so the document is immediately available for answers.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    file_content = await file.read()
    logger.info(f"Received upload: {file.filename} ({len(file_content)} bytes)")
    document = await service.upload(file_content, file.filename)
    return UploadResponse(document=DocumentResponse.from_document(document))


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    file_type: Optional[FileCategory] = Query(None, alias="fileType"),
    service: DocumentService = Depends(get_document_service),
):
    documents, total = await service.list_documents(
        status=status_filter, category=file_type, page=page, limit=limit
    )
    return DocumentListResponse(
        documents=[DocumentResponse.from_document(doc) for doc in documents],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/stats", response_model=DocumentStatsResponse)
async def document_stats(service: DocumentService = Depends(get_document_service)):
    return DocumentStatsResponse(**await service.stats())


@router.get("/{document_id}", response_model=DocumentDetailResponse)
async def get_document(
    document_id: str,
    service: DocumentService = Depends(get_document_service),
):
    document = await service.get(document_id)
    return DocumentDetailResponse.from_document(document)


@router.get("/{document_id}/status", response_model=DocumentStatusResponse)
async def get_document_status(
    document_id: str,
    service: DocumentService = Depends(get_document_service),
):
    document = await service.get(document_id)
    return DocumentStatusResponse(
        id=document.document_id,
        status=document.status.value,
        chunk_count=len(document.chunks),
        original_name=document.original_name,
    )


@router.patch("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: str,
    request: DocumentUpdateRequest,
    service: DocumentService = Depends(get_document_service),
):
    document = await service.rename(document_id, request.original_name)
    return DocumentResponse.from_document(document)


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    service: DocumentService = Depends(get_document_service),
):
    document = await service.delete(document_id)
    return {
        "message": "Document deleted successfully",
        "deleted_document": DocumentResponse.from_document(document).model_dump(mode="json"),
    }


@router.post("/{document_id}/reprocess", response_model=UploadResponse)
async def reprocess_document(
    document_id: str,
    service: DocumentService = Depends(get_document_service),
):
    document = await service.reprocess(document_id)
    return UploadResponse(
        message="Document reprocessing completed successfully",
        document=DocumentResponse.from_document(document),
    )
