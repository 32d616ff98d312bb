"""
Message model for chat turns.
"""

import enum

from sqlalchemy import Column, Enum, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class MessageRole(str, enum.Enum):
    """Message role enumeration."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """
    Represents one turn of a chat.

    The identifier is supplied by the caller and stays stable across upserts,
    so re-sending a message with the same id updates it in place.
    """

    __tablename__ = "messages"

    id = Column(String(255), primary_key=True)
    chat_id = Column(String(255), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    role = Column(
        Enum(
            MessageRole,
            name="message_role",
            native_enum=False,
            create_constraint=True,
            length=20,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
    )

    # Relationships
    chat = relationship("Chat", back_populates="messages")
    parts = relationship(
        "Part",
        back_populates="message",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Part.order",
    )

    __table_args__ = (
        Index("messages_chat_id_idx", "chat_id"),
        Index("messages_chat_id_created_at_idx", "chat_id", "created_at"),
    )
