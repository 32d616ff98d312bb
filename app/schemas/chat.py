"""Chat schemas for UI messages and request/response serialization.

A UI message is an ordered list of typed parts. Each part kind is its own
model tagged by ``type``; ``UIPart`` is the discriminated union of them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import Field, model_validator

from models.message import MessageRole

from .base import BaseModelSchema, BaseSchema, CamelSchema

ProviderMetadata = dict[str, dict[str, Any]]


class TextPart(CamelSchema):
    """Plain text content."""

    type: Literal["text"] = "text"
    text: str


class ReasoningPart(CamelSchema):
    """Model reasoning emitted alongside the answer."""

    type: Literal["reasoning"] = "reasoning"
    text: str
    provider_metadata: ProviderMetadata | None = None


class FilePart(CamelSchema):
    """File reference, either a hosted URL or a data URL."""

    type: Literal["file"] = "file"
    media_type: str
    url: str
    filename: str | None = None


class SourceUrlPart(CamelSchema):
    """Web page cited by the model."""

    type: Literal["source-url"] = "source-url"
    source_id: str
    url: str
    title: str | None = None
    provider_metadata: ProviderMetadata | None = None


class SourceDocumentPart(CamelSchema):
    """Document cited by the model."""

    type: Literal["source-document"] = "source-document"
    source_id: str
    media_type: str
    title: str
    filename: str | None = None
    provider_metadata: ProviderMetadata | None = None


class StepStartPart(CamelSchema):
    """Boundary between generation steps."""

    type: Literal["step-start"] = "step-start"


UIPart = Annotated[
    Union[TextPart, ReasoningPart, FilePart, SourceUrlPart, SourceDocumentPart, StepStartPart],
    Field(discriminator="type"),
]

PART_MODELS: dict[str, type[CamelSchema]] = {
    "text": TextPart,
    "reasoning": ReasoningPart,
    "file": FilePart,
    "source-url": SourceUrlPart,
    "source-document": SourceDocumentPart,
    "step-start": StepStartPart,
}


class UIMessage(CamelSchema):
    """A chat message as exchanged with the front end and the model."""

    id: str = Field(..., min_length=1, max_length=255)
    role: MessageRole
    parts: list[UIPart] = Field(default_factory=list)

    def to_client(self) -> dict[str, Any]:
        """Serialize with camelCase keys and without unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PersistChatRequest(CamelSchema):
    """Body of a persisted chat turn.

    Clients either send only the latest message or the whole transcript; in
    the latter case the last entry is the new user message.
    """

    id: str = Field(..., min_length=1, max_length=255, description="Chat ID")
    message: UIMessage | None = Field(None, description="Latest user message")
    messages: list[UIMessage] = Field(default_factory=list, description="Full transcript")

    @model_validator(mode="after")
    def require_message(self):
        if self.message is None and not self.messages:
            raise ValueError("Either 'message' or 'messages' must be provided")
        return self

    @property
    def latest_message(self) -> UIMessage:
        return self.message if self.message is not None else self.messages[-1]


class StatelessChatRequest(CamelSchema):
    """Body of a chat turn that is not persisted."""

    messages: list[UIMessage] = Field(..., min_length=1)


class ChatCreate(BaseSchema):
    """Schema for creating a chat explicitly."""

    id: str = Field(..., min_length=1, max_length=255, description="Client generated chat ID")
    title: str | None = Field(None, description="Optional chat title")


class ChatTitleUpdate(BaseSchema):
    """Schema for renaming a chat."""

    title: str = Field(..., min_length=1, description="New chat title")


class ChatResponse(BaseModelSchema):
    """Schema for chat response."""

    title: str | None
    updated_at: datetime


class ChatDetailResponse(ChatResponse):
    """Schema for a chat with its ordered messages."""

    messages: list[dict[str, Any]] = Field(default_factory=list, description="UI messages")


class ChatListResponse(BaseSchema):
    """Schema for the chat list."""

    chats: list[ChatResponse]
    total: int
