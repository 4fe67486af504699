"""
Integration tests for POST /api/gemini/chat.

The Gemini client dependency is overridden with one backed by httpx.MockTransport,
so tests never reach the real API and never sleep.
"""

import asyncio
import json
import logging
from collections.abc import Iterator
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from swasth.api import handlers
from swasth.api.handlers import handle_chat
from swasth.core import user_db
from swasth.main import app
from swasth.schemas.chat import ChatRequest, UserContext
from swasth.services.chat_service import get_gemini_client
from swasth.services.gemini_client import (
    FALLBACK_TEXT,
    ChatOutcome,
    ChatResult,
    GeminiClient,
    cancelled_response,
)

ANSWER = {
    "candidates": [
        {
            "content": {"parts": [{"text": "Namaste! Try moong dal chilla."}]},
            "groundingMetadata": {
                "groundingAttributions": [
                    {"web": {"uri": "https://www.nin.res.in/", "title": "ICMR-NIN"}},
                    {"web": {"title": "missing uri"}},
                ]
            },
        }
    ]
}


class Upstream:
    """Records requests and replies with a fixed status/body."""

    def __init__(self, status: int = 200, body: dict | None = None) -> None:
        self.status = status
        self.body = ANSWER if body is None else body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    def system_prompt(self, index: int = 0) -> str:
        return json.loads(self.requests[index].content)["systemInstruction"]["parts"][0]["text"]


async def _no_sleep(delay: float) -> None:
    return None


def _use_upstream(upstream: Upstream, api_key: str = "test-key") -> None:
    client = GeminiClient(
        api_key=api_key,
        api_base="https://gemini.test/v1beta",
        transport=httpx.MockTransport(upstream),
        sleep=_no_sleep,
        jitter=0.0,
    )
    app.dependency_overrides[get_gemini_client] = lambda: client


@pytest.fixture
def client(tmp_path, monkeypatch) -> Iterator[TestClient]:
    monkeypatch.setattr(user_db, "_DB_PATH", tmp_path / "users.db")
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def token(client: TestClient) -> str:
    response = client.post(
        "/api/auth/register",
        json={"name": "Asha", "email": "asha@example.com", "password": "secret123"},
    )
    assert response.status_code == 200
    return response.json()["token"]


def test_chat_returns_text_and_complete_sources(client: TestClient, token: str) -> None:
    """Answer text and sources with both uri and title come back; the query is sent untrimmed."""
    upstream = Upstream()
    _use_upstream(upstream)
    response = client.post(
        "/api/gemini/chat",
        json={"userQuery": "  Breakfast for diabetes?  ", "userData": {"name": "Ravi", "allergies": ["A", "B"]}},
        headers={"x-auth-token": token},
    )
    assert response.status_code == 200
    assert response.json() == {
        "text": "Namaste! Try moong dal chilla.",
        "sources": [{"uri": "https://www.nin.res.in/", "title": "ICMR-NIN"}],
        "ok": True,
    }
    assert len(upstream.requests) == 1
    sent = json.loads(upstream.requests[0].content)
    assert sent["contents"][0]["parts"][0]["text"] == "  Breakfast for diabetes?  "
    assert "Name: Ravi" in upstream.system_prompt()
    assert "Allergies: A, B" in upstream.system_prompt()


def test_chat_without_user_data_uses_stored_profile(client: TestClient, token: str) -> None:
    """Omitting userData builds the prompt from the caller's saved profile."""
    client.put(
        "/api/user/profile",
        json={"region": "West India", "healthIssues": ["PCOS"]},
        headers={"x-auth-token": token},
    )
    upstream = Upstream()
    _use_upstream(upstream)
    response = client.post("/api/gemini/chat", json={"userQuery": "Snack ideas"}, headers={"x-auth-token": token})
    assert response.status_code == 200
    prompt = upstream.system_prompt()
    assert "Name: Asha" in prompt
    assert "Region: West India" in prompt
    assert "Health Issues: PCOS" in prompt
    assert "Allergies: None" in prompt


def test_empty_query_is_rejected_without_upstream_call(client: TestClient, token: str) -> None:
    """A whitespace-only question is a 400 and Gemini is never called."""
    upstream = Upstream()
    _use_upstream(upstream)
    response = client.post("/api/gemini/chat", json={"userQuery": "   "}, headers={"x-auth-token": token})
    assert response.status_code == 400
    assert upstream.requests == []


def test_exhausted_retries_return_fallback_with_503(client: TestClient, token: str) -> None:
    """Five upstream 500s give the fallback body with status 503."""
    upstream = Upstream(status=500, body={"error": "boom"})
    _use_upstream(upstream)
    response = client.post("/api/gemini/chat", json={"userQuery": "Hello"}, headers={"x-auth-token": token})
    assert response.status_code == 503
    assert response.json() == {"text": FALLBACK_TEXT, "sources": [], "ok": False}
    assert len(upstream.requests) == 5


def test_blocked_answer_is_retried_then_falls_back(client: TestClient, token: str) -> None:
    """A response with no candidates counts as a failed attempt."""
    upstream = Upstream(body={"candidates": []})
    _use_upstream(upstream)
    response = client.post("/api/gemini/chat", json={"userQuery": "Hello"}, headers={"x-auth-token": token})
    assert response.status_code == 503
    assert response.json()["ok"] is False
    assert len(upstream.requests) == 5


def test_missing_api_key_returns_503(client: TestClient, token: str) -> None:
    """Without GEMINI_API_KEY the endpoint answers 503 and makes no call."""
    upstream = Upstream()
    _use_upstream(upstream, api_key="")
    response = client.post("/api/gemini/chat", json={"userQuery": "Hello"}, headers={"x-auth-token": token})
    assert response.status_code == 503
    assert "GEMINI_API_KEY" in response.json()["detail"]
    assert upstream.requests == []


def test_chat_requires_token(client: TestClient) -> None:
    """Missing and invalid tokens are both 401 with distinct messages."""
    upstream = Upstream()
    _use_upstream(upstream)
    response = client.post("/api/gemini/chat", json={"userQuery": "Hello"})
    assert response.status_code == 401
    assert response.json() == {"detail": "No token, authorization denied"}
    response = client.post("/api/gemini/chat", json={"userQuery": "Hello"}, headers={"x-auth-token": "garbage"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Token is not valid"}
    assert upstream.requests == []


def test_chat_missing_body_returns_422(client: TestClient, token: str) -> None:
    """A request with no JSON body fails validation."""
    response = client.post("/api/gemini/chat", headers={"x-auth-token": token})
    assert response.status_code == 422


def test_cancelled_chat_returns_499(client: TestClient, token: str) -> None:
    """A cancelled call (client gone) is reported with its own status, not the fallback."""
    _use_upstream(Upstream())
    cancelled = ChatResult(ChatOutcome.CANCELLED, cancelled_response(), attempts=2)
    with patch("swasth.api.handlers.answer_query", new=AsyncMock(return_value=cancelled)) as mock_answer:
        response = client.post("/api/gemini/chat", json={"userQuery": "Hello"}, headers={"x-auth-token": token})
    assert response.status_code == 499
    assert response.json()["ok"] is False
    assert response.json()["text"] != FALLBACK_TEXT
    mock_answer.assert_awaited_once()


class DisconnectingRequest:
    """Stands in for a Starlette Request whose client leaves after a few polls."""

    def __init__(self, connected_polls: int = 2) -> None:
        self.connected_polls = connected_polls
        self.polls = 0

    async def is_disconnected(self) -> bool:
        self.polls += 1
        return self.polls > self.connected_polls


def test_client_disconnect_cancels_in_flight_chat(monkeypatch) -> None:
    """When the client goes away mid-request, the handler stops waiting on Gemini and answers 499."""
    monkeypatch.setattr(handlers, "DISCONNECT_POLL_SECONDS", 0.01)
    calls = []

    async def hanging(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        await asyncio.sleep(10)
        return httpx.Response(200, json=ANSWER)

    gemini = GeminiClient(
        api_key="test-key",
        api_base="https://gemini.test/v1beta",
        transport=httpx.MockTransport(hanging),
        sleep=_no_sleep,
        jitter=0.0,
    )
    request = DisconnectingRequest()
    body = ChatRequest(userQuery="Hello", userData=UserContext(name="Ravi"))

    response = asyncio.run(asyncio.wait_for(handle_chat(body, request, 1, gemini), timeout=5))

    assert response.status_code == 499
    assert json.loads(response.body)["ok"] is False
    assert len(calls) == 1
    assert request.polls > request.connected_polls


def test_query_text_is_not_logged(client: TestClient, token: str, caplog: pytest.LogCaptureFixture) -> None:
    """Questions can carry health details, so only their length reaches the logs."""
    _use_upstream(Upstream())
    query = "I have PCOS and thyroid, what should I eat?"
    with caplog.at_level(logging.INFO):
        response = client.post("/api/gemini/chat", json={"userQuery": query}, headers={"x-auth-token": token})
    assert response.status_code == 200
    assert f"query_len={len(query)}" in caplog.text
    assert "PCOS" not in caplog.text


def test_openapi_documents_chat_failure_statuses(client: TestClient) -> None:
    """The chat route documents 503 and 499 with the same ChatResponse body."""
    responses = client.get("/openapi.json").json()["paths"]["/api/gemini/chat"]["post"]["responses"]
    for status in ("200", "503", "499"):
        schema = responses[status]["content"]["application/json"]["schema"]
        assert schema["$ref"].endswith("/ChatResponse")
