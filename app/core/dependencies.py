# app/core/dependencies.py
import logging

from app.database import get_db, get_session_factory
from app.domains.ai.service import AIService

logger = logging.getLogger(__name__)


def get_chat_model() -> AIService:
    """Provide the streaming model collaborator.

    Raises:
        AIConfigurationError: No Gemini API key is configured.
    """
    return AIService()


__all__ = ["get_db", "get_session_factory", "get_chat_model"]
