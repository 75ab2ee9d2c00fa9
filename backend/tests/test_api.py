"""Tests for API endpoints."""
import pytest
from fastapi.testclient import TestClient

from docchat.main import create_app

INVOICE = b"The invoice total is $450."


@pytest.fixture
def client(uncached_services):
    """Test client over the real service graph with the cache switched off."""
    with TestClient(create_app(services=uncached_services)) as test_client:
        yield test_client


def upload(client, name="invoice.txt", content=INVOICE, content_type="text/plain"):
    return client.post("/api/documents/upload", files={"file": (name, content, content_type)})


def ask_in_room(client):
    """Join room-1 over the socket, ask a question and return the three frames that follow."""
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json(
            {"event": "join-room", "data": {"roomId": "room-1", "userId": "u1", "username": "Alice"}}
        )
        websocket.receive_json()
        websocket.send_json(
            {
                "event": "send-message",
                "data": {"roomId": "room-1", "userId": "u1", "username": "Alice", "content": "Any news?"},
            }
        )
        frames = [websocket.receive_json() for _ in range(3)]
    return frames


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "cache": "unavailable",
            "documents": 0,
            "connections": 0,
        }


class TestMetricsEndpoint:
    """Tests for metrics endpoint."""

    def test_metrics_endpoint(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "docchat_answers_total" in response.text

    def test_metrics_under_api_prefix(self, client):
        assert client.get("/api/metrics").status_code == 200


class TestDocumentEndpoints:
    """Tests for document upload and management."""

    def test_upload_invalid_file_type(self, client):
        response = upload(client, name="picture.png", content=b"\x89PNG", content_type="image/png")
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid file type. Only PDF, TXT, DOCX files are allowed."

    def test_upload_success(self, client):
        response = upload(client)

        assert response.status_code == 201
        document = response.json()["document"]
        assert document["original_name"] == "invoice.txt"
        assert document["file_type"] == ".txt"
        assert document["status"] == "completed"
        assert document["chunk_count"] == 1
        assert document["formatted_size"] == "26 Bytes"

    def test_upload_duplicate(self, client):
        first = upload(client).json()["document"]["id"]

        response = upload(client)

        assert response.status_code == 409
        assert response.json()["existing_document_id"] == first

    def test_upload_too_short(self, client):
        response = upload(client, name="tiny.txt", content=b"tiny")
        assert response.status_code == 400

    def test_list_get_and_delete(self, client):
        document_id = upload(client).json()["document"]["id"]

        listing = client.get("/api/documents", params={"fileType": ".txt"}).json()
        assert [d["id"] for d in listing["documents"]] == [document_id]
        assert listing["pagination"]["total_items"] == 1

        detail = client.get(f"/api/documents/{document_id}").json()
        assert detail["content"] == INVOICE.decode()

        status = client.get(f"/api/documents/{document_id}/status").json()
        assert status == {"id": document_id, "status": "completed", "chunk_count": 1, "original_name": "invoice.txt"}

        deleted = client.delete(f"/api/documents/{document_id}")
        assert deleted.status_code == 200
        assert deleted.json()["deleted_document"]["id"] == document_id
        assert client.get(f"/api/documents/{document_id}").status_code == 404

    def test_rename_and_reprocess(self, client):
        document_id = upload(client).json()["document"]["id"]

        renamed = client.patch(f"/api/documents/{document_id}", json={"original_name": "March invoice.txt"})
        assert renamed.status_code == 200
        assert renamed.json()["original_name"] == "March invoice.txt"

        reprocessed = client.post(f"/api/documents/{document_id}/reprocess")
        assert reprocessed.status_code == 200
        assert reprocessed.json()["document"]["status"] == "completed"

    def test_stats(self, client):
        upload(client)
        stats = client.get("/api/documents/stats").json()
        assert stats["total_documents"] == 1
        assert stats["file_type_counts"] == {".txt": 1}


class TestAskEndpoint:
    """Tests for ask endpoint."""

    def test_ask_missing_fields(self, client):
        response = client.post("/api/ask", json={})
        assert response.status_code == 422

    def test_ask_blank_question(self, client):
        response = client.post("/api/ask", json={"question": "  \x00  "})
        assert response.status_code == 422

    def test_ask_invalid_json(self, client):
        response = client.post(
            "/api/ask", content=b'{"question": "bad', headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422
        assert response.json()["error"] == "json_parse_error"

    def test_ask_success(self, client):
        document_id = upload(client).json()["document"]["id"]

        response = client.post("/api/ask", json={"question": "What is the invoice total?"})

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "This is a test answer."
        assert data["prompt_mode"] == "documents"
        assert data["sources"] == [
            {"document_id": document_id, "filename": "invoice.txt", "file_type": ".txt", "similarity": 0.35}
        ]
        assert data["web_results"] == []
        assert data["error"] is False


class TestChatEndpoints:
    """Tests for room history and message edits."""

    def test_room_history_and_stats(self, client):
        ask_in_room(client)

        messages = client.get("/api/chat/rooms/room-1/messages").json()
        assert [m["type"] for m in messages["messages"]] == ["user", "ai"]

        stats = client.get("/api/chat/rooms/room-1/stats").json()
        assert stats["total_messages"] == 2
        assert stats["ai_response_rate"] == 50

        rooms = client.get("/api/chat/rooms").json()
        assert rooms[0]["room_id"] == "room-1"

        found = client.get("/api/chat/rooms/room-1/search", params={"q": "news"}).json()
        assert [m["content"] for m in found["messages"]] == ["Any news?"]

    def test_edit_message(self, client):
        ask_in_room(client)
        message_id = client.get("/api/chat/rooms/room-1/messages").json()["messages"][0]["id"]

        forbidden = client.patch(f"/api/chat/messages/{message_id}", json={"content": "x", "user_id": "u2"})
        assert forbidden.status_code == 403

        edited = client.patch(f"/api/chat/messages/{message_id}", json={"content": "Any updates?", "user_id": "u1"})
        assert edited.status_code == 200
        assert edited.json()["edited"] is True

    def test_delete_message_and_clear_room(self, client):
        ask_in_room(client)
        message_id = client.get("/api/chat/rooms/room-1/messages").json()["messages"][0]["id"]

        assert client.delete(f"/api/chat/messages/{message_id}", params={"user_id": "u1"}).status_code == 200
        assert client.get(f"/api/chat/messages/{message_id}").status_code == 404

        cleared = client.delete("/api/chat/rooms/room-1/messages").json()
        assert cleared["deleted_count"] == 1


class TestRealtimeEndpoint:
    """Tests for the WebSocket endpoint."""

    def test_question_round_trip(self, client):
        frames = ask_in_room(client)

        assert [frame["event"] for frame in frames] == ["new-message", "ai-thinking", "new-message"]
        assert frames[0]["data"]["content"] == "Any news?"
        assert frames[2]["data"]["type"] == "ai"
        assert frames[2]["data"]["username"] == "AI Assistant"

    def test_two_clients_share_a_room(self, client):
        join = {"roomId": "room-1", "userId": "u1", "username": "Alice"}
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            alice.send_json({"event": "join-room", "data": join})
            assert alice.receive_json() == {"event": "room-messages", "data": []}
            bob.send_json({"event": "join-room", "data": {**join, "userId": "u2", "username": "Bob"}})
            bob.receive_json()
            assert alice.receive_json() == {"event": "user-joined", "data": {"userId": "u2", "username": "Bob"}}

            alice.send_json({"event": "send-message", "data": {**join, "content": "hello bob"}})
            assert bob.receive_json()["data"]["content"] == "hello bob"

    def test_malformed_frames(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("not json")
            assert websocket.receive_json() == {"event": "error", "data": {"message": "Malformed event frame"}}
            websocket.send_text("[1, 2]")
            assert websocket.receive_json()["event"] == "error"
            websocket.send_json({"event": "dance", "data": {}})
            assert websocket.receive_json() == {"event": "error", "data": {"message": "Unknown event: dance"}}
