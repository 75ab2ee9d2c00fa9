"""Tests for room history queries and message edits."""
from datetime import datetime, timedelta

import pytest

from docchat.exceptions import (
    MessageEditForbiddenError,
    MessageEditWindowExpiredError,
    MessageNotFoundError,
)
from docchat.models.message import Message, MessageKind


def message(message_id, content, user_id="u1", room_id="room-1", minutes_ago=0, kind=MessageKind.USER):
    return Message(
        message_id=message_id,
        room_id=room_id,
        user_id=user_id,
        username=user_id.upper(),
        content=content,
        kind=kind,
        timestamp=datetime.utcnow() - timedelta(minutes=minutes_ago),
    )


@pytest.fixture
async def chat_service(services, message_store):
    await message_store.add(message("m1", "Hello team", minutes_ago=10))
    await message_store.add(message("m2", "What is the invoice total?", user_id="u2", minutes_ago=3))
    await message_store.add(message("m3", "It is $450.", user_id="ai", minutes_ago=2, kind=MessageKind.AI))
    await message_store.add(message("m4", "hello from room two", room_id="room-2", minutes_ago=1))
    return services.chat_service


class TestQueries:
    """Tests for history, search and statistics."""

    @pytest.mark.asyncio
    async def test_room_messages_page(self, chat_service):
        messages, total = await chat_service.room_messages("room-1", page=1, limit=2)

        assert total == 3
        assert [m.message_id for m in messages] == ["m2", "m3"]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_and_room_scoped(self, chat_service):
        messages, total = await chat_service.search("room-1", "HELLO")

        assert total == 1
        assert messages[0].message_id == "m1"

    @pytest.mark.asyncio
    async def test_room_stats(self, chat_service):
        stats = await chat_service.room_stats("room-1")

        assert stats.total_messages == 3
        assert stats.user_messages == 2
        assert stats.ai_messages == 1
        assert stats.unique_users_count == 3
        assert stats.ai_response_rate == 33

    @pytest.mark.asyncio
    async def test_active_rooms(self, chat_service):
        rooms = await chat_service.active_rooms()

        assert [r.room_id for r in rooms] == ["room-2", "room-1"]
        assert rooms[1].message_count == 3

    @pytest.mark.asyncio
    async def test_unknown_message(self, chat_service):
        with pytest.raises(MessageNotFoundError):
            await chat_service.get_message("missing")


class TestEdits:
    """Tests for author-only edits and deletes."""

    @pytest.mark.asyncio
    async def test_author_can_edit_within_window(self, chat_service, message_store):
        edited = await chat_service.edit_message("m2", "u2", "What is the invoice total now?")

        assert edited.metadata.edited
        assert edited.metadata.edited_at is not None
        stored = await message_store.get("m2")
        assert stored.content == "What is the invoice total now?"
        assert stored.metadata.edited

    @pytest.mark.asyncio
    async def test_other_users_cannot_edit(self, chat_service):
        with pytest.raises(MessageEditForbiddenError):
            await chat_service.edit_message("m2", "u1", "hijacked")

    @pytest.mark.asyncio
    async def test_edit_window_expires(self, chat_service):
        with pytest.raises(MessageEditWindowExpiredError, match="5 minutes"):
            await chat_service.edit_message("m1", "u1", "too late")

    @pytest.mark.asyncio
    async def test_delete_message(self, chat_service, message_store):
        with pytest.raises(MessageEditForbiddenError):
            await chat_service.delete_message("m1", "u2")

        await chat_service.delete_message("m1", "u1")
        assert await message_store.get("m1") is None

    @pytest.mark.asyncio
    async def test_clear_room(self, chat_service, message_store):
        assert await chat_service.clear_room("room-1") == 3
        assert await message_store.recent("room-1") == []
        assert len(await message_store.recent("room-2")) == 1
