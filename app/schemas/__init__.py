# ruff: noqa: F403, F401
"""Schemas package initialization."""

# Import all schemas to ensure they're registered
from .base import *
from .chat import *
from .chat import ChatDetailResponse, PersistChatRequest, UIMessage

# Rebuild models after all schemas are loaded
UIMessage.model_rebuild()
PersistChatRequest.model_rebuild()
ChatDetailResponse.model_rebuild()
