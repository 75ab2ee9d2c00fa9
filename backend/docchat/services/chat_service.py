"""Room message queries and author edits."""
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Tuple

from docchat.exceptions import (
    MessageEditForbiddenError,
    MessageEditWindowExpiredError,
    MessageNotFoundError,
)
from docchat.models.message import Message
from docchat.services.message_store import MessageStore, RoomActivity, RoomStats
from docchat.utils.logger import logger


class ChatService:
    """Read access to room history plus the author-only edit and delete rules."""

    def __init__(
        self,
        message_store: MessageStore,
        invalidate_room: Callable[[str], Awaitable[None]],
        edit_window_seconds: int = 300,
    ):
        """
        Initialize chat service.

        Args:
            message_store: Source of truth for messages
            invalidate_room: Drops a room's cached history after a mutation
            edit_window_seconds: How long after sending an author may edit
        """
        self.message_store = message_store
        self.invalidate_room = invalidate_room
        self.edit_window = timedelta(seconds=edit_window_seconds)

    async def room_messages(self, room_id: str, page: int = 1, limit: int = 50) -> Tuple[List[Message], int]:
        return await self.message_store.page(room_id, page=page, limit=limit)

    async def room_stats(self, room_id: str) -> RoomStats:
        return await self.message_store.stats(room_id)

    async def search(self, room_id: str, query: str, page: int = 1, limit: int = 20) -> Tuple[List[Message], int]:
        return await self.message_store.search(room_id, query, page=page, limit=limit)

    async def active_rooms(self, limit: int = 10) -> List[RoomActivity]:
        return await self.message_store.active_rooms(limit)

    async def get_message(self, message_id: str) -> Message:
        message = await self.message_store.get(message_id)
        if message is None:
            raise MessageNotFoundError(f"Message not found: {message_id}")
        return message

    async def edit_message(self, message_id: str, user_id: str, content: str) -> Message:
        """
        Replace a message's content.

        Raises:
            MessageNotFoundError: Unknown message id
            MessageEditForbiddenError: ``user_id`` is not the author
            MessageEditWindowExpiredError: The edit window has passed
        """
        message = await self.get_message(message_id)
        if message.user_id != user_id:
            raise MessageEditForbiddenError("Not authorized to edit this message")
        if datetime.utcnow() - message.timestamp > self.edit_window:
            minutes = int(self.edit_window.total_seconds() // 60)
            raise MessageEditWindowExpiredError(f"Message can only be edited within {minutes} minutes")

        message.content = content
        message.metadata = replace(message.metadata, edited=True, edited_at=datetime.utcnow())
        await self.message_store.save(message)
        await self.invalidate_room(message.room_id)
        logger.info("Message edited", extra={"room_id": message.room_id})
        return message

    async def delete_message(self, message_id: str, user_id: str) -> Message:
        message = await self.get_message(message_id)
        if message.user_id != user_id:
            raise MessageEditForbiddenError("Not authorized to delete this message")
        await self.message_store.delete(message_id)
        await self.invalidate_room(message.room_id)
        return message

    async def clear_room(self, room_id: str) -> int:
        deleted = await self.message_store.delete_room(room_id)
        await self.invalidate_room(room_id)
        logger.info(f"Deleted {deleted} room messages", extra={"room_id": room_id})
        return deleted
