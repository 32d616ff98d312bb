"""
API tests for AI controller.

This module contains API endpoint tests for the stateless chat stream and
the AI service status endpoint.
"""

import json
import uuid
from unittest.mock import patch

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from app.exceptions.ai import AIServiceError
from app.main import app
from models import Message


@pytest.mark.asyncio
class TestAIController:
    """Test cases for AI API endpoints."""

    async def test_stateless_chat_streams(self, client: AsyncClient, fake_model, test_db):
        """The stateless endpoint streams a reply and stores nothing."""
        payload = {"messages": [{"id": "u1", "role": "user", "parts": [{"type": "text", "text": "Hi"}]}]}

        response = await client.post("/api/chat", json=payload)

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["x-vercel-ai-ui-message-stream"] == "v1"
        assert response.text.endswith("data: [DONE]\n\n")
        first = json.loads(response.text.split("\n\n")[0][len("data: "):])
        assert first["type"] == "start"
        assert [message.id for message in fake_model.calls[0]] == ["u1"]
        count = await test_db.execute(select(func.count()).select_from(Message))
        assert count.scalar_one() == 0

    async def test_stateless_chat_requires_messages(self, client: AsyncClient):
        """An empty transcript is rejected."""
        response = await client.post("/api/chat", json={"messages": []})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_suggestions_follow_reply(self, client: AsyncClient, fake_model, test_db):
        """Suggested questions arrive as one data part after the reply text."""
        payload = {"messages": [{"id": "u1", "role": "user", "parts": [{"type": "text", "text": "Tell me about Paris"}]}]}

        response = await client.post("/api/suggestions", json=payload)

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["x-vercel-ai-ui-message-stream"] == "v1"
        blocks = [block[len("data: "):] for block in response.text.split("\n\n") if block]
        assert blocks[-1] == "[DONE]"
        events = [json.loads(block) for block in blocks[:-1]]
        types = [event["type"] for event in events]
        assert types[-3:] == ["finish-step", "data-suggestions", "finish"]
        suggestion_event = events[-2]
        assert uuid.UUID(suggestion_event["id"])
        assert suggestion_event["data"] == ["What is the population?", "What is it famous for?"]
        history, reply_text = fake_model.suggestion_calls[0]
        assert [message.id for message in history] == ["u1"]
        assert reply_text == "Hello, world!"
        count = await test_db.execute(select(func.count()).select_from(Message))
        assert count.scalar_one() == 0

    async def test_suggestions_failure_still_finishes(self, client: AsyncClient, fake_model):
        """The reply is finished without suggestions when they cannot be generated."""
        fake_model.suggestion_error = AIServiceError("Model returned malformed suggestions")
        payload = {"messages": [{"id": "u1", "role": "user", "parts": [{"type": "text", "text": "Hi"}]}]}

        response = await client.post("/api/suggestions", json=payload)

        assert response.status_code == status.HTTP_200_OK
        assert "data-suggestions" not in response.text
        assert '"type":"error"' not in response.text
        assert response.text.endswith('data: {"type":"finish"}\n\ndata: [DONE]\n\n')

    async def test_suggestions_model_failure(self, client: AsyncClient, fake_model):
        """A failed reply ends in an error event and no suggestions are requested."""
        fake_model.chunks = []
        fake_model.error = AIServiceError("Model is down")
        payload = {"messages": [{"id": "u1", "role": "user", "parts": [{"type": "text", "text": "Hi"}]}]}

        response = await client.post("/api/suggestions", json=payload)

        assert '{"type":"error","errorText":"Model is down"}' in response.text
        assert fake_model.suggestion_calls == []

    async def test_ai_status(self, client: AsyncClient):
        """The status endpoint describes the configured model."""
        response = await client.get("/api/ai/status")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["model_name"] == "fake-model"

    async def test_ai_not_configured(self):
        """Without an API key the AI endpoints report a configuration error."""
        with patch("app.core.config.settings.gemini_api_key", None):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                response = await ac.get("/api/ai/status")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "AI_CONFIGURATION_ERROR"


@pytest.mark.asyncio
class TestHealthEndpoints:
    """Test cases for service endpoints."""

    async def test_root(self, client: AsyncClient):
        """The root endpoint describes the API."""
        response = await client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert "name" in response.json()

    async def test_health(self, client: AsyncClient):
        """The health endpoint reports its dependencies."""
        response = await client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert set(response.json()["services"]) == {"database", "ai_service"}
