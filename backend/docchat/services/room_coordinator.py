"""Real-time room coordination: membership, ordered broadcast and AI answers."""
import asyncio
import json
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Set

from pydantic import ValidationError

from docchat.agent.agent import AnswerSynthesizer
from docchat.agent.memory import AnswerCache
from docchat.api.schemas import (
    JoinRoomEvent,
    SendMessageEvent,
    ToggleWebSearchEvent,
    TypingEvent,
)
from docchat.models.message import (
    AI_USER_ID,
    AI_USERNAME,
    Message,
    MessageKind,
    MessageMetadata,
)
from docchat.services.cache_store import CacheStore
from docchat.services.message_store import MessageStore
from docchat.services.passage_cache import PassageCache
from docchat.utils.logger import logger
from docchat.utils.metrics import ACTIVE_CONNECTIONS, MESSAGES_TOTAL

_CLOSE = object()


class Transport(Protocol):
    """Outbound side of a client connection."""

    async def send_json(self, data: Dict[str, Any]) -> None:
        ...


@dataclass
class ClientSession:
    """Per-connection record owned by the coordinator."""

    session_id: str
    transport: Transport
    outbox: "asyncio.Queue[Any]" = field(default_factory=asyncio.Queue)
    room_id: Optional[str] = None
    user_id: Optional[str] = None
    username: Optional[str] = None
    joined_at: Optional[datetime] = None
    writer: Optional["asyncio.Task[None]"] = None

    def emit(self, event: str, data: Any) -> None:
        self.outbox.put_nowait({"event": event, "data": data})

    async def flush(self) -> None:
        """Wait until everything emitted so far has been handed to the transport."""
        await self.outbox.join()


class RoomCoordinator:
    """
    Handles real-time events for every connected client.

    Each connection gets an outbound queue drained by its own writer task, so a
    slow client never blocks a broadcast. Per-room locks serialize the
    persist, history-cache and broadcast steps so room members see messages in
    the order they were accepted. AI answers are generated in background tasks
    outside the lock; two questions may be answered concurrently and their
    replies can arrive in either order.
    """

    def __init__(
        self,
        message_store: MessageStore,
        cache: CacheStore,
        synthesizer: AnswerSynthesizer,
        passage_cache: PassageCache,
        answer_cache: AnswerCache,
        history_size: int = 50,
        history_ttl_seconds: int = 3600,
    ):
        self.message_store = message_store
        self.cache = cache
        self.synthesizer = synthesizer
        self.passage_cache = passage_cache
        self.answer_cache = answer_cache
        self.history_size = history_size
        self.history_ttl = history_ttl_seconds

        self.sessions: Dict[str, ClientSession] = {}
        self._rooms: Dict[str, Set[str]] = defaultdict(set)
        self._room_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._tasks: Set["asyncio.Task[None]"] = set()

        self._handlers: Dict[str, Callable[[ClientSession, Dict[str, Any]], Awaitable[None]]] = {
            "join-room": self.join_room,
            "send-message": self.send_message,
            "typing": self.typing,
            "stop-typing": self.stop_typing,
            "toggle-web-search": self.toggle_web_search,
        }

    @staticmethod
    def history_key(room_id: str) -> str:
        return f"room:{room_id}:messages"

    def room_members(self, room_id: str) -> List[ClientSession]:
        return [self.sessions[sid] for sid in self._rooms.get(room_id, ()) if sid in self.sessions]

    # Connection lifecycle

    async def connect(self, transport: Transport) -> ClientSession:
        session = ClientSession(session_id=uuid.uuid4().hex, transport=transport)
        session.writer = asyncio.create_task(self._write_loop(session))
        self.sessions[session.session_id] = session
        ACTIVE_CONNECTIONS.inc()
        logger.info("User connected", extra={"session_id": session.session_id})
        return session

    async def disconnect(self, session: ClientSession) -> None:
        if self.sessions.pop(session.session_id, None) is None:
            return
        ACTIVE_CONNECTIONS.dec()
        self._leave_room(session)
        session.outbox.put_nowait(_CLOSE)
        logger.info("User disconnected", extra={"session_id": session.session_id})

    async def _write_loop(self, session: ClientSession) -> None:
        while True:
            payload = await session.outbox.get()
            try:
                if payload is _CLOSE:
                    return
                await session.transport.send_json(payload)
            except Exception as e:
                logger.warning(
                    f"Dropping outbound event: {str(e)}",
                    extra={"session_id": session.session_id},
                )
            finally:
                session.outbox.task_done()

    async def handle_event(self, session: ClientSession, event: Optional[str], data: Any) -> None:
        handler = self._handlers.get(event or "")
        if handler is None:
            session.emit("error", {"message": f"Unknown event: {event}"})
            return
        await handler(session, data if isinstance(data, dict) else {})

    # Broadcast helpers

    def _broadcast(
        self,
        room_id: str,
        event: str,
        data: Any,
        exclude: Optional[ClientSession] = None,
    ) -> None:
        for member in self.room_members(room_id):
            if exclude is not None and member.session_id == exclude.session_id:
                continue
            member.emit(event, data)

    def _leave_room(self, session: ClientSession) -> None:
        if not session.room_id:
            return
        room_id = session.room_id
        self._rooms[room_id].discard(session.session_id)
        if not self._rooms[room_id]:
            del self._rooms[room_id]
            lock = self._room_locks.get(room_id)
            if lock is not None and not lock.locked():
                del self._room_locks[room_id]
        self._broadcast(room_id, "user-left", {"userId": session.user_id, "username": session.username})
        logger.info(f"User {session.username} left room", extra={"room_id": room_id})
        session.room_id = None

    async def _append_history(self, room_id: str, event: Dict[str, Any]) -> None:
        """Extend a cached history; a missing one is rebuilt from the store on the next join."""
        await self.cache.push_capped(
            self.history_key(room_id),
            [json.dumps(event)],
            self.history_size,
            self.history_ttl,
            create=False,
        )

    async def _load_history(self, room_id: str) -> List[Dict[str, Any]]:
        """Recent messages oldest first, from the cache or rebuilt from the store."""
        cached = await self.cache.lrange(self.history_key(room_id), 0, self.history_size - 1)
        if cached:
            history = []
            for raw in reversed(cached):
                try:
                    history.append(json.loads(raw))
                except ValueError:
                    logger.warning("Skipping unreadable cached message", extra={"room_id": room_id})
            return history

        messages = await self.message_store.recent(room_id, self.history_size)
        history = [message.to_event() for message in messages]
        await self.cache.push_capped(
            self.history_key(room_id),
            [json.dumps(event) for event in history],
            self.history_size,
            self.history_ttl,
        )
        return history

    async def _publish(self, message: Message) -> Dict[str, Any]:
        """Persist, cache and broadcast a message atomically with respect to its room."""
        async with self._room_locks[message.room_id]:
            await self.message_store.add(message)
            event = message.to_event()
            await self._append_history(message.room_id, event)
            self._broadcast(message.room_id, "new-message", event)
        MESSAGES_TOTAL.labels(kind=message.kind.value).inc()
        return event

    # Event handlers

    async def join_room(self, session: ClientSession, data: Dict[str, Any]) -> None:
        try:
            payload = JoinRoomEvent.model_validate(data)
        except ValidationError:
            session.emit("error", {"message": "Missing required data"})
            return

        if session.room_id and session.room_id != payload.room_id:
            self._leave_room(session)

        try:
            async with self._room_locks[payload.room_id]:
                session.room_id = payload.room_id
                session.user_id = payload.user_id
                session.username = payload.username
                session.joined_at = datetime.utcnow()
                self._rooms[payload.room_id].add(session.session_id)
                history = await self._load_history(payload.room_id)
                session.emit("room-messages", history)
        except Exception as e:
            logger.error(f"Error in join-room: {str(e)}", exc_info=True, extra={"room_id": payload.room_id})
            session.emit("error", {"message": "Failed to join room"})
            return

        self._broadcast(
            payload.room_id,
            "user-joined",
            {"userId": payload.user_id, "username": payload.username},
            exclude=session,
        )
        logger.info(f"User {payload.username} joined room", extra={"room_id": payload.room_id})

    async def send_message(self, session: ClientSession, data: Dict[str, Any]) -> None:
        try:
            payload = SendMessageEvent.model_validate(data)
        except ValidationError:
            session.emit("error", {"message": "Invalid message data"})
            return

        message = Message(
            message_id=uuid.uuid4().hex,
            room_id=payload.room_id,
            user_id=payload.user_id,
            username=payload.username,
            content=payload.content,
        )
        try:
            await self._publish(message)
        except Exception as e:
            logger.error(f"Error handling message: {str(e)}", exc_info=True, extra={"room_id": payload.room_id})
            session.emit("error", {"message": "Failed to send message"})
            return

        if "?" in payload.content:
            session.emit("ai-thinking", {"roomId": payload.room_id})
            self._spawn(self._answer(session, payload))

    async def _answer(self, session: ClientSession, payload: SendMessageEvent) -> None:
        try:
            answer = await self.synthesizer.answer(
                payload.content, payload.room_id, payload.web_search_enabled
            )
            await self._publish(
                Message(
                    message_id=uuid.uuid4().hex,
                    room_id=payload.room_id,
                    user_id=AI_USER_ID,
                    username=AI_USERNAME,
                    content=answer.answer,
                    kind=MessageKind.AI,
                    metadata=MessageMetadata(
                        sources=list(answer.sources),
                        web_results=list(answer.web_results),
                        web_search_enabled=payload.web_search_enabled,
                    ),
                )
            )
        except Exception as e:
            logger.error(f"Error generating AI response: {str(e)}", exc_info=True, extra={"room_id": payload.room_id})
            session.emit("ai-error", {"message": "Failed to generate AI response"})

    async def typing(self, session: ClientSession, data: Dict[str, Any]) -> None:
        try:
            payload = TypingEvent.model_validate(data)
        except ValidationError:
            return
        self._broadcast(
            payload.room_id,
            "user-typing",
            {"userId": payload.user_id, "username": payload.username},
            exclude=session,
        )

    async def stop_typing(self, session: ClientSession, data: Dict[str, Any]) -> None:
        try:
            payload = TypingEvent.model_validate(data)
        except ValidationError:
            return
        self._broadcast(payload.room_id, "user-stop-typing", {"userId": payload.user_id}, exclude=session)

    async def toggle_web_search(self, session: ClientSession, data: Dict[str, Any]) -> None:
        try:
            payload = ToggleWebSearchEvent.model_validate(data)
        except ValidationError:
            session.emit("error", {"message": "Invalid web search toggle"})
            return
        logger.info(
            f"{payload.username} {'enabled' if payload.enabled else 'disabled'} web search",
            extra={"room_id": payload.room_id},
        )
        self._broadcast(
            payload.room_id,
            "web-search-toggled",
            {
                "userId": payload.user_id,
                "username": payload.username,
                "enabled": payload.enabled,
                "timestamp": datetime.utcnow().isoformat(),
            },
            exclude=session,
        )

    # Background work and invalidation

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait for in-flight answers, then for every session's outbox to drain."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        for session in list(self.sessions.values()):
            await session.flush()

    async def invalidate_document(self, document_id: str) -> None:
        """Forget cached passages and answers derived from a document."""
        await self.passage_cache.evict_all(document_id)
        await self.answer_cache.evict_for_document(document_id)

    async def invalidate_room_history(self, room_id: str) -> None:
        await self.cache.delete_matching(f"room:{room_id}:*")

    async def close(self) -> None:
        writers = [session.writer for session in self.sessions.values() if session.writer]
        for session in list(self.sessions.values()):
            await self.disconnect(session)
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*writers, *pending, return_exceptions=True)
