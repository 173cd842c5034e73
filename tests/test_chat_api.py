"""Endpoint tests for the chat relay."""

import httpx
import pytest
from fastapi.testclient import TestClient

from app.dependencies.get_chat_service import get_chat_service
from app.main import create_application
from app.services.chat import ChatService
from tests.helpers import ChunkedStream, make_completion_client, make_repository_scope

HI = {"messages": [{"role": "user", "content": "hi"}]}


def make_client(handler, api_key="test-key", repo=None) -> TestClient:
    service = ChatService(
        completion_client=make_completion_client(handler, api_key=api_key),
        repository_scope=make_repository_scope(repo) if repo is not None else None,
        persist_interval=0.0,
    )
    app = create_application()
    app.dependency_overrides[get_chat_service] = lambda: service
    return TestClient(app)


def unreachable(request):
    raise AssertionError("upstream must not be called")


class TestRelayValidation:
    """Tests for request validation."""

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"messages": None},
            {"messages": []},
            {"messages": "hi"},
            {"messages": {"role": "user", "content": "hi"}},
            {"messages": [{"role": "system", "content": "x"}]},
            {"messages": [{"role": "user"}]},
            [{"role": "user", "content": "hi"}],
        ],
    )
    def test_invalid_messages_rejected(self, body):
        client = make_client(unreachable)

        response = client.post("/chat", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid messages format"}

    def test_non_json_body_rejected(self):
        client = make_client(unreachable)

        response = client.post(
            "/chat", content=b"not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid messages format"}

    def test_invalid_messages_checked_before_credential(self):
        client = make_client(unreachable, api_key=None)

        response = client.post("/chat", json={"messages": []})

        assert response.status_code == 400

    def test_missing_credential(self):
        """Test an unset API key is reported as a configuration error."""
        client = make_client(unreachable, api_key=None)

        response = client.post("/chat", json=HI)

        assert response.status_code == 500
        assert response.json() == {"error": "DEEPSEEK_API_KEY is not configured"}


class TestRelayNonStreaming:
    """Tests for batched replies."""

    def test_response_forwarded_unchanged(self, completion_response):
        client = make_client(lambda request: httpx.Response(200, json=completion_response))

        response = client.post("/chat", json=HI)

        assert response.status_code == 200
        assert response.json() == completion_response

    def test_history_with_reasoning_accepted(self, completion_response):
        """Test an assembled reply can be sent back as history."""
        client = make_client(lambda request: httpx.Response(200, json=completion_response))
        body = {
            "messages": [
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "answer", "reasoning": "think"},
                {"role": "user", "content": "more"},
            ]
        }

        assert client.post("/chat", json=body).status_code == 200

    def test_upstream_error_status(self):
        """Test a 429 from upstream surfaces status and body."""
        client = make_client(lambda request: httpx.Response(429, text="rate limited"))

        response = client.post("/chat", json=HI)

        assert response.status_code == 500
        error = response.json()["error"]
        assert "429" in error
        assert "rate limited" in error

    def test_transport_error_includes_cause(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        response = client.post("/chat", json=HI)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error.startswith("Failed to process chat request: ")
        assert error.endswith("\nconnection refused")


class TestRelayStreaming:
    """Tests for event-stream replies."""

    def test_stream_forwarded_unchanged(self, stream_chunks):
        def handler(request):
            return httpx.Response(
                200,
                headers={"Content-Type": "text/event-stream"},
                stream=ChunkedStream(stream_chunks),
            )

        client = make_client(handler)

        response = client.post("/chat", json={**HI, "stream": True})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.content == b"".join(stream_chunks)

    def test_stream_upstream_error_before_first_byte(self):
        client = make_client(lambda request: httpx.Response(429, text="rate limited"))

        response = client.post("/chat", json={**HI, "stream": True})

        assert response.status_code == 500
        assert "rate limited" in response.json()["error"]

    def test_stream_persisted_for_identified_user(self, stream_chunks, message_repo):
        def handler(request):
            return httpx.Response(200, stream=ChunkedStream(stream_chunks))

        client = make_client(handler, repo=message_repo)

        response = client.post(
            "/chat", json={**HI, "stream": True}, headers={"User-Id": "alice"}
        )

        assert response.status_code == 200
        saves = [call.kwargs for call in message_repo.save.call_args_list]
        assert saves[0]["role"] == "user"
        assert saves[0]["content"] == "hi"
        assert saves[-1]["role"] == "assistant"
        assert saves[-1]["content"] == "Hello, 世界"
        assert all(save["user_id"] == "alice" for save in saves)
        assistant_ids = {s["message_id"] for s in saves if s["role"] == "assistant"}
        assert len(assistant_ids) == 1

    def test_anonymous_stream_not_persisted(self, stream_chunks, message_repo):
        def handler(request):
            return httpx.Response(200, stream=ChunkedStream(stream_chunks))

        client = make_client(handler, repo=message_repo)

        client.post("/chat", json={**HI, "stream": True})

        message_repo.save.assert_not_called()


class TestHistory:
    """Tests for reading back a user's conversation."""

    def test_history_requires_user(self, message_repo):
        client = make_client(unreachable, repo=message_repo)

        response = client.get("/chat/history")

        assert response.status_code == 422

    def test_history_returned(self, message_repo):
        stored = message_repo.get_by_user
        row = type(
            "Row",
            (),
            {
                "to_dict": lambda self: {
                    "id": "00000000-0000-0000-0000-000000000001",
                    "role": "assistant",
                    "content": "answer",
                    "reasoning": "think",
                    "timestamp": "2025-01-01T00:00:00+00:00",
                }
            },
        )()
        stored.return_value = [row]
        client = make_client(unreachable, repo=message_repo)

        response = client.get("/chat/history", headers={"User-Id": "alice"})

        assert response.status_code == 200
        assert response.json()["messages"][0]["content"] == "answer"
        stored.assert_awaited_once()
        assert stored.call_args.args[0] == "alice"
