"""Chat API controller with FastAPI endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, Path, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.dependencies import get_chat_model, get_db, get_session_factory
from app.domains.chat.service import ChatService
from app.domains.chat.streaming import UI_MESSAGE_STREAM_HEADERS, ChatStreamService
from app.exceptions.chat import ChatNotFoundError
from app.schemas.base import ResponseSchema
from app.schemas.chat import (
    ChatCreate,
    ChatDetailResponse,
    ChatListResponse,
    ChatResponse,
    ChatTitleUpdate,
    PersistChatRequest,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/persist")
async def persist_chat(
    chat_request: PersistChatRequest = Body(...),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    model=Depends(get_chat_model),
):
    """Store the user message and stream the assistant reply.

    The reply is stored once it has been streamed completely.
    """
    message = chat_request.latest_message
    service = ChatStreamService(db, model, session_factory=session_factory)
    stream = await service.start_stream(chat_request.id, message)

    return StreamingResponse(stream, media_type="text/event-stream", headers=UI_MESSAGE_STREAM_HEADERS)


@router.get("/chats", response_model=ResponseSchema)
async def get_chats(db: AsyncSession = Depends(get_db)):
    """List all chats, most recently updated first."""
    chats = await ChatService(db).get_chats()
    result = ChatListResponse(
        chats=[ChatResponse.model_validate(chat) for chat in chats],
        total=len(chats),
    )
    return ResponseSchema(
        status="success",
        message="Chats retrieved successfully",
        data=result.model_dump(mode="json"),
    )


@router.post("/chats", response_model=ResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_chat(
    chat_data: ChatCreate = Body(...),
    db: AsyncSession = Depends(get_db),
):
    """Create a chat with a client generated ID."""
    chat = await ChatService(db).create_chat(chat_data.id, title=chat_data.title)
    return ResponseSchema(
        status="success",
        message="Chat created successfully",
        data=ChatResponse.model_validate(chat).model_dump(mode="json"),
    )


@router.get("/chats/{chat_id}", response_model=ResponseSchema)
async def get_chat(
    chat_id: str = Path(..., description="Chat ID"),
    db: AsyncSession = Depends(get_db),
):
    """Get a chat with its full message history."""
    service = ChatService(db)
    chat = await service.get_chat(chat_id)
    if chat is None:
        raise ChatNotFoundError(chat_id)

    messages = await service.load_chat(chat_id)
    result = ChatDetailResponse(
        id=chat.id,
        title=chat.title,
        created_at=chat.created_at,
        updated_at=chat.updated_at,
        messages=[message.to_client() for message in messages],
    )
    return ResponseSchema(
        status="success",
        message="Chat retrieved successfully",
        data=result.model_dump(mode="json"),
    )


@router.patch("/chats/{chat_id}", response_model=ResponseSchema)
async def update_chat_title(
    chat_id: str = Path(..., description="Chat ID"),
    title_data: ChatTitleUpdate = Body(...),
    db: AsyncSession = Depends(get_db),
):
    """Rename a chat."""
    chat = await ChatService(db).update_chat_title(chat_id, title_data.title)
    return ResponseSchema(
        status="success",
        message="Chat updated successfully",
        data=ChatResponse.model_validate(chat).model_dump(mode="json"),
    )


@router.delete("/chats/{chat_id}", response_model=ResponseSchema)
async def delete_chat(
    chat_id: str = Path(..., description="Chat ID"),
    db: AsyncSession = Depends(get_db),
):
    """Delete a chat with all its messages."""
    deleted = await ChatService(db).delete_chat(chat_id)
    return ResponseSchema(
        status="success",
        message="Chat deleted successfully" if deleted else "Chat did not exist",
        data={"deleted": deleted},
    )


@router.delete("/messages/{message_id}", response_model=ResponseSchema)
async def delete_message(
    message_id: str = Path(..., description="Message ID"),
    db: AsyncSession = Depends(get_db),
):
    """Delete a message and every later message of its chat."""
    deleted = await ChatService(db).delete_message(message_id)
    return ResponseSchema(
        status="success",
        message="Message deleted successfully" if deleted else "Message did not exist",
        data={"deleted": deleted},
    )
