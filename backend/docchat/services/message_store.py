"""Chat message persistence."""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from docchat.models.message import Message, MessageKind


@dataclass
class RoomStats:
    total_messages: int = 0
    user_messages: int = 0
    ai_messages: int = 0
    unique_users_count: int = 0
    first_message: Optional[datetime] = None
    last_message: Optional[datetime] = None
    avg_message_length: int = 0

    @property
    def ai_response_rate(self) -> int:
        if not self.total_messages:
            return 0
        return round(self.ai_messages / self.total_messages * 100)


@dataclass
class RoomActivity:
    room_id: str
    last_activity: datetime
    message_count: int
    user_count: int


class MessageStore(ABC):
    """Abstract base class for message storage."""

    @abstractmethod
    async def add(self, message: Message) -> None:
        ...

    @abstractmethod
    async def get(self, message_id: str) -> Optional[Message]:
        ...

    @abstractmethod
    async def save(self, message: Message) -> None:
        ...

    @abstractmethod
    async def delete(self, message_id: str) -> Optional[Message]:
        ...

    @abstractmethod
    async def delete_room(self, room_id: str) -> int:
        """Delete every message in a room; returns the number removed."""
        ...

    @abstractmethod
    async def recent(self, room_id: str, limit: int = 50) -> List[Message]:
        """Latest messages of a room in chronological order."""
        ...

    @abstractmethod
    async def page(self, room_id: str, page: int = 1, limit: int = 50) -> Tuple[List[Message], int]:
        """Page counted back from the newest message, returned oldest first."""
        ...

    @abstractmethod
    async def search(
        self, room_id: str, query: str, page: int = 1, limit: int = 20
    ) -> Tuple[List[Message], int]:
        """Case-insensitive content search, newest first."""
        ...

    @abstractmethod
    async def stats(self, room_id: str) -> RoomStats:
        ...

    @abstractmethod
    async def active_rooms(self, limit: int = 10) -> List[RoomActivity]:
        ...


class InMemoryMessageStore(MessageStore):
    """Process-local message store."""

    def __init__(self):
        self._messages: Dict[str, Message] = {}
        self._lock = asyncio.Lock()

    def _room(self, room_id: str) -> List[Message]:
        messages = [m for m in self._messages.values() if m.room_id == room_id]
        messages.sort(key=lambda m: m.timestamp)
        return messages

    async def add(self, message: Message) -> None:
        async with self._lock:
            self._messages[message.message_id] = replace(message)

    async def get(self, message_id: str) -> Optional[Message]:
        message = self._messages.get(message_id)
        return replace(message) if message else None

    async def save(self, message: Message) -> None:
        async with self._lock:
            if message.message_id in self._messages:
                self._messages[message.message_id] = replace(message)

    async def delete(self, message_id: str) -> Optional[Message]:
        async with self._lock:
            return self._messages.pop(message_id, None)

    async def delete_room(self, room_id: str) -> int:
        async with self._lock:
            doomed = [mid for mid, m in self._messages.items() if m.room_id == room_id]
            for message_id in doomed:
                del self._messages[message_id]
            return len(doomed)

    async def recent(self, room_id: str, limit: int = 50) -> List[Message]:
        return [replace(m) for m in self._room(room_id)[-limit:]]

    async def page(self, room_id: str, page: int = 1, limit: int = 50) -> Tuple[List[Message], int]:
        newest_first = list(reversed(self._room(room_id)))
        skip = (page - 1) * limit
        selected = newest_first[skip: skip + limit]
        return [replace(m) for m in reversed(selected)], len(newest_first)

    async def search(
        self, room_id: str, query: str, page: int = 1, limit: int = 20
    ) -> Tuple[List[Message], int]:
        needle = query.lower()
        hits = [m for m in reversed(self._room(room_id)) if needle in m.content.lower()]
        skip = (page - 1) * limit
        return [replace(m) for m in hits[skip: skip + limit]], len(hits)

    async def stats(self, room_id: str) -> RoomStats:
        messages = self._room(room_id)
        if not messages:
            return RoomStats()
        return RoomStats(
            total_messages=len(messages),
            user_messages=sum(1 for m in messages if m.kind is MessageKind.USER),
            ai_messages=sum(1 for m in messages if m.kind is MessageKind.AI),
            unique_users_count=len({m.user_id for m in messages}),
            first_message=messages[0].timestamp,
            last_message=messages[-1].timestamp,
            avg_message_length=round(sum(len(m.content) for m in messages) / len(messages)),
        )

    async def active_rooms(self, limit: int = 10) -> List[RoomActivity]:
        rooms: Dict[str, List[Message]] = {}
        for message in self._messages.values():
            rooms.setdefault(message.room_id, []).append(message)
        activity = [
            RoomActivity(
                room_id=room_id,
                last_activity=max(m.timestamp for m in messages),
                message_count=len(messages),
                user_count=len({m.user_id for m in messages}),
            )
            for room_id, messages in rooms.items()
        ]
        activity.sort(key=lambda a: a.last_activity, reverse=True)
        return activity[:limit]
