"""Room history, search and message edit endpoints."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from docchat.api.schemas import (
    MessageListResponse,
    MessageResponse,
    MessageUpdateRequest,
    Pagination,
    RoomActivityResponse,
    RoomStatsResponse,
)
from docchat.services.chat_service import ChatService

router = APIRouter()


def get_chat_service(request: Request) -> ChatService:
    """Get chat service from app state."""
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Chat service not initialized")
    return service


@router.get("/rooms", response_model=List[RoomActivityResponse])
async def list_rooms(
    limit: int = Query(10, ge=1, le=100),
    service: ChatService = Depends(get_chat_service),
):
    """Most recently active rooms."""
    return [RoomActivityResponse.from_activity(a) for a in await service.active_rooms(limit)]


@router.get("/rooms/{room_id}/messages", response_model=MessageListResponse)
async def room_messages(
    room_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    service: ChatService = Depends(get_chat_service),
):
    """Page of room history counted back from the newest message, oldest first."""
    messages, total = await service.room_messages(room_id, page=page, limit=limit)
    return MessageListResponse(
        messages=[MessageResponse.from_message(m) for m in messages],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/rooms/{room_id}/stats", response_model=RoomStatsResponse)
async def room_stats(room_id: str, service: ChatService = Depends(get_chat_service)):
    return RoomStatsResponse.from_stats(await service.room_stats(room_id))


@router.get("/rooms/{room_id}/search", response_model=MessageListResponse)
async def search_messages(
    room_id: str,
    q: str = Query(..., min_length=2),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: ChatService = Depends(get_chat_service),
):
    messages, total = await service.search(room_id, q.strip(), page=page, limit=limit)
    return MessageListResponse(
        messages=[MessageResponse.from_message(m) for m in messages],
        pagination=Pagination.build(page, limit, total),
    )


@router.delete("/rooms/{room_id}/messages")
async def clear_room(room_id: str, service: ChatService = Depends(get_chat_service)):
    deleted = await service.clear_room(room_id)
    return {"message": "Room messages deleted successfully", "deleted_count": deleted}


@router.get("/messages/{message_id}", response_model=MessageResponse)
async def get_message(message_id: str, service: ChatService = Depends(get_chat_service)):
    return MessageResponse.from_message(await service.get_message(message_id))


@router.patch("/messages/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: str,
    request: MessageUpdateRequest,
    service: ChatService = Depends(get_chat_service),
):
    """Edit a message; only its author may, and only shortly after sending."""
    message = await service.edit_message(message_id, request.user_id, request.content)
    return MessageResponse.from_message(message)


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: str,
    user_id: str = Query(..., min_length=1),
    service: ChatService = Depends(get_chat_service),
):
    await service.delete_message(message_id, user_id)
    return {"message": "Message deleted successfully", "id": message_id}
