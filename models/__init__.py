"""
Models package initialization.
"""

from .base import Base, BaseModel
from .chat import Chat
from .message import Message, MessageRole
from .part import PART_TYPES, REQUIRED_COLUMNS, Part

__all__ = [
    "Base",
    "BaseModel",
    # Chat models
    "Chat",
    "Message",
    "MessageRole",
    "Part",
    "PART_TYPES",
    "REQUIRED_COLUMNS",
]
