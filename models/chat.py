"""
Chat model for persisted AI conversations.
"""

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel, utcnow


class Chat(BaseModel):
    """
    Represents a chat session whose identifier is generated by the client.
    """

    __tablename__ = "chats"

    id = Column(String(255), primary_key=True)
    title = Column(Text, nullable=True)  # Derived from the first user message
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    messages = relationship(
        "Message",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.created_at",
    )
