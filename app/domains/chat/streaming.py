"""Persistence around a single streamed model turn.

The inbound user message is stored before the model is called, the stored
history is what the model sees, and the assistant reply is stored once the
stream has been fully delivered. Output is encoded as the AI SDK UI message
stream (server-sent events) so that ``useChat`` clients can consume it.
"""

import json
import logging
import uuid
from collections.abc import AsyncIterator, Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domains.chat.service import ChatService
from app.exceptions.ai import AIServiceError
from app.schemas.chat import StepStartPart, TextPart, UIMessage, UIPart
from models.message import MessageRole


logger = logging.getLogger(__name__)

UI_MESSAGE_STREAM_HEADERS = {
    "x-vercel-ai-ui-message-stream": "v1",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(chunk: dict[str, Any]) -> str:
    """Encode one UI message stream chunk as a server-sent event."""
    return f"data: {json.dumps(chunk, separators=(',', ':'))}\n\n"


def encode_done() -> str:
    return "data: [DONE]\n\n"


def generate_message_id() -> str:
    """Generate an ID for a server-created message."""
    return f"msg-{uuid.uuid4().hex}"


async def stream_text_events(
    model,
    history: Sequence[UIMessage],
    message_id: str,
    collected: list[str],
    send_finish: bool = True,
) -> AsyncIterator[str]:
    """Stream one assistant turn as UI message stream events.

    Text deltas are appended to ``collected`` as they are forwarded. Model
    errors propagate to the caller; the events after the last delta are only
    emitted when the model finished. With ``send_finish=False`` the closing
    ``finish`` event is left to the caller so that data parts can follow.
    """
    text_id = f"text-{uuid.uuid4().hex[:12]}"

    yield encode_event({"type": "start", "messageId": message_id})
    yield encode_event({"type": "start-step"})
    yield encode_event({"type": "text-start", "id": text_id})

    async for delta in model.stream_text(history):
        collected.append(delta)
        yield encode_event({"type": "text-delta", "id": text_id, "delta": delta})

    yield encode_event({"type": "text-end", "id": text_id})
    yield encode_event({"type": "finish-step"})
    if send_finish:
        yield encode_event({"type": "finish"})


class ChatStreamService:
    """Runs one persisted chat turn around a streaming model call.

    ``model`` is any object exposing ``stream_text(messages)`` as an async
    iterator of text deltas, such as ``AIService``.
    """

    def __init__(
        self,
        db: AsyncSession,
        model,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        """Initialize the stream service.

        Args:
            db: Session used before streaming starts.
            model: Streaming model collaborator.
            session_factory: Optional factory for the session that stores the
                assistant reply; the request session may already be closed
                once the response is streaming.
        """
        self.db = db
        self.model = model
        self.session_factory = session_factory

    async def start_stream(self, chat_id: str, message: UIMessage) -> AsyncIterator[str]:
        """Persist the user turn and return the response stream.

        Failures up to and including loading the history propagate here,
        before any byte has been sent to the client.
        """
        history = await self.prepare_history(chat_id, message)
        return self.stream_response(chat_id, history)

    async def prepare_history(self, chat_id: str, message: UIMessage) -> list[UIMessage]:
        """Ensure the chat exists, store the user message and load the history."""
        chat_service = ChatService(self.db)
        await chat_service.ensure_chat(chat_id)
        await chat_service.upsert_message(chat_id, message.id, message)
        history = await chat_service.load_chat(chat_id)
        logger.info(f"Loaded {len(history)} messages for chat {chat_id}")
        return history

    async def stream_response(
        self,
        chat_id: str,
        history: Sequence[UIMessage],
        message_id: str | None = None,
    ) -> AsyncIterator[str]:
        """Stream the assistant reply and store it once delivered.

        If the client disconnects before the end, the generator is closed at
        a ``yield`` and the reply is not stored.
        """
        message_id = message_id or generate_message_id()
        collected: list[str] = []

        try:
            async for event in stream_text_events(self.model, history, message_id, collected):
                yield event
        except AIServiceError as e:
            logger.error(f"Model stream failed for chat {chat_id}: {str(e)}")
            yield encode_event({"type": "error", "errorText": e.message})
            yield encode_done()
            return

        yield encode_done()

        parts: list[UIPart] = [StepStartPart()]
        text = "".join(collected)
        if text:
            parts.append(TextPart(text=text))
        await self._persist_assistant_message(
            chat_id, UIMessage(id=message_id, role=MessageRole.ASSISTANT, parts=parts)
        )

    async def _persist_assistant_message(self, chat_id: str, message: UIMessage) -> bool:
        """Store the completed assistant reply.

        The reply has already been delivered, so a failure is logged and not
        raised; the turn will be missing when the chat is reloaded.
        """
        try:
            if self.session_factory is None:
                await ChatService(self.db).upsert_message(chat_id, message.id, message)
            else:
                async with self.session_factory() as session:
                    await ChatService(session).upsert_message(chat_id, message.id, message)
        except Exception as e:
            logger.error(f"Failed to persist assistant message {message.id} for chat {chat_id}: {str(e)}")
            return False

        logger.info(f"Persisted assistant message {message.id} for chat {chat_id}")
        return True


async def stream_stateless_response(model, messages: Sequence[UIMessage]) -> AsyncIterator[str]:
    """Stream a reply without touching the database."""
    collected: list[str] = []
    try:
        async for event in stream_text_events(model, messages, generate_message_id(), collected):
            yield event
    except AIServiceError as e:
        logger.error(f"Model stream failed: {str(e)}")
        yield encode_event({"type": "error", "errorText": e.message})
    yield encode_done()


async def stream_suggestions_response(model, messages: Sequence[UIMessage]) -> AsyncIterator[str]:
    """Stream a reply followed by suggested follow-up questions.

    Once the text is complete the model is asked for 2-3 next questions,
    sent as one ``data-suggestions`` part before ``finish``. If that call
    fails the reply is still finished without suggestions.
    """
    collected: list[str] = []
    try:
        async for event in stream_text_events(
            model, messages, generate_message_id(), collected, send_finish=False
        ):
            yield event
    except AIServiceError as e:
        logger.error(f"Model stream failed: {str(e)}")
        yield encode_event({"type": "error", "errorText": e.message})
        yield encode_done()
        return

    try:
        suggestions = await model.suggest_followups(messages, "".join(collected))
    except AIServiceError as e:
        logger.warning(f"Follow-up suggestions failed: {str(e)}")
    else:
        yield encode_event({"type": "data-suggestions", "id": str(uuid.uuid4()), "data": suggestions})

    yield encode_event({"type": "finish"})
    yield encode_done()
