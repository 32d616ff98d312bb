"""AI API controller with FastAPI endpoints."""

from fastapi import APIRouter, Body, Depends
from fastapi.responses import StreamingResponse

from app.core.dependencies import get_chat_model
from app.domains.chat.streaming import (
    UI_MESSAGE_STREAM_HEADERS,
    stream_stateless_response,
    stream_suggestions_response,
)
from app.schemas.base import ResponseSchema
from app.schemas.chat import StatelessChatRequest


router = APIRouter(prefix="/api", tags=["ai"])


@router.post("/chat")
async def chat(
    chat_request: StatelessChatRequest = Body(...),
    model=Depends(get_chat_model),
):
    """Stream a reply to the given transcript without storing anything."""
    return StreamingResponse(
        stream_stateless_response(model, chat_request.messages),
        media_type="text/event-stream",
        headers=UI_MESSAGE_STREAM_HEADERS,
    )


@router.post("/suggestions")
async def chat_with_suggestions(
    chat_request: StatelessChatRequest = Body(...),
    model=Depends(get_chat_model),
):
    """Stream a reply, then suggested follow-up questions as a data part."""
    return StreamingResponse(
        stream_suggestions_response(model, chat_request.messages),
        media_type="text/event-stream",
        headers=UI_MESSAGE_STREAM_HEADERS,
    )


@router.get("/ai/status", response_model=ResponseSchema)
async def get_ai_status(model=Depends(get_chat_model)):
    """Report the configured model."""
    return ResponseSchema(
        status="success",
        message="AI service status retrieved successfully",
        data=model.get_service_status(),
    )
