"""Chat persistence service.

All reads and writes of chats, messages and message parts go through
``ChatService``. Writes touching more than one table run in a single
transaction and are rolled back as a whole on failure.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.domains.chat.mapping import parts_to_rows, rows_to_parts
from app.exceptions.chat import ChatNotFoundError, DuplicateIdError, TransactionFailureError
from app.schemas.chat import TextPart, UIMessage, UIPart
from models.base import utcnow
from models.chat import Chat
from models.message import Message, MessageRole
from models.part import Part


logger = logging.getLogger(__name__)


class ChatService:
    """Service class for chat persistence operations."""

    def __init__(self, db: AsyncSession):
        """Initialize chat service with database session.

        Args:
            db: Async database session for data operations.
        """
        self.db = db

    async def get_chat(self, chat_id: str) -> Chat | None:
        """Get a chat by ID, or None if it does not exist."""
        result = await self.db.execute(select(Chat).where(Chat.id == chat_id))
        return result.scalar_one_or_none()

    async def get_chats(self) -> list[Chat]:
        """List all chats, most recently updated first."""
        result = await self.db.execute(select(Chat).order_by(Chat.updated_at.desc()))
        return list(result.scalars().all())

    async def create_chat(self, chat_id: str, title: str | None = None) -> Chat:
        """Create a chat with a client generated ID.

        Args:
            chat_id: Chat ID
            title: Optional chat title

        Returns:
            Created chat

        Raises:
            DuplicateIdError: A chat with this ID already exists.
        """
        if await self.get_chat(chat_id) is not None:
            raise DuplicateIdError("Chat", chat_id)

        chat = Chat(id=chat_id, title=title)
        self.db.add(chat)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race against a concurrent create with the same ID
            await self.db.rollback()
            raise DuplicateIdError("Chat", chat_id) from e

        logger.info(f"Created chat {chat_id}")
        return chat

    async def ensure_chat(self, chat_id: str) -> Chat:
        """Get a chat, creating it first if it does not exist yet."""
        chat = await self.get_chat(chat_id)
        if chat is not None:
            return chat

        try:
            return await self.create_chat(chat_id)
        except DuplicateIdError:
            logger.info(f"Chat {chat_id} was created concurrently, reusing it")
            chat = await self.get_chat(chat_id)
            if chat is None:
                raise
            return chat

    async def update_chat_title(self, chat_id: str, title: str) -> Chat:
        """Rename a chat.

        Raises:
            ChatNotFoundError: The chat does not exist.
        """
        chat = await self.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)

        chat.title = title
        chat.updated_at = utcnow()
        await self.db.commit()
        return chat

    async def delete_chat(self, chat_id: str) -> bool:
        """Delete a chat together with its messages and their parts.

        Returns:
            True if a chat was deleted, False if it did not exist.
        """
        chat = await self.get_chat(chat_id)
        if chat is None:
            return False

        try:
            await self.db.delete(chat)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to delete chat {chat_id}: {str(e)}")
            raise TransactionFailureError("delete_chat", str(e)) from e

        logger.info(f"Deleted chat {chat_id}")
        return True

    async def upsert_message(
        self,
        chat_id: str,
        message_id: str,
        message: UIMessage | Mapping[str, Any],
    ) -> Message:
        """Insert or update a message and replace all of its parts.

        The parts are mapped before anything is written, so an unsupported
        part leaves the database untouched. The message row, the removal of
        its previous parts and the insertion of the new ones commit together.

        Args:
            chat_id: Owning chat ID
            message_id: Stable message ID
            message: Message with ``role`` and ordered ``parts``

        Returns:
            The stored message row

        Raises:
            UnsupportedPartTypeError: A part cannot be stored.
            ChatNotFoundError: The chat does not exist.
            TransactionFailureError: The write failed and was rolled back.
        """
        role, parts = self._unpack_message(message)
        rows = parts_to_rows(parts, message_id)

        try:
            chat = await self.get_chat(chat_id)
            if chat is None:
                raise ChatNotFoundError(chat_id)

            stored = await self._get_message(message_id)
            if stored is None:
                stored = Message(id=message_id, chat_id=chat_id, role=role)
                self.db.add(stored)
            else:
                stored.chat_id = chat_id
                stored.role = role

            await self.db.execute(delete(Part).where(Part.message_id == message_id))
            if rows:
                self.db.add_all([Part(**row) for row in rows])

            if chat.title is None and role == MessageRole.USER:
                chat.title = self._generate_chat_title(parts)
            chat.updated_at = utcnow()

            await self.db.commit()
        except ChatNotFoundError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to upsert message {message_id} in chat {chat_id}: {str(e)}")
            raise TransactionFailureError("upsert_message", str(e)) from e

        logger.debug(f"Upserted message {message_id} with {len(rows)} parts")
        return stored

    async def load_chat(self, chat_id: str) -> list[UIMessage]:
        """Load the full history of a chat as UI messages.

        Messages are ordered by creation time, parts by their stored order.

        Raises:
            UnsupportedPartTypeError: A stored part has an unknown type.
            DataIntegrityViolationError: A stored part lacks a required column.
        """
        query = (
            select(Message)
            .where(Message.chat_id == chat_id)
            .options(selectinload(Message.parts))
            .order_by(Message.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        messages = result.scalars().all()

        return [
            UIMessage(id=message.id, role=message.role, parts=rows_to_parts(message.parts))
            for message in messages
        ]

    async def delete_message(self, message_id: str) -> bool:
        """Delete a message and every later message of the same chat.

        Returns:
            True if the message existed, False otherwise.
        """
        message = await self._get_message(message_id)
        if message is None:
            return False

        try:
            await self.db.execute(
                delete(Message).where(
                    Message.chat_id == message.chat_id,
                    Message.created_at > message.created_at,
                )
            )
            await self.db.delete(message)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to delete message {message_id}: {str(e)}")
            raise TransactionFailureError("delete_message", str(e)) from e

        logger.info(f"Deleted message {message_id} and its successors")
        return True

    # Private helper methods

    async def _get_message(self, message_id: str) -> Message | None:
        """Get a message row by ID."""
        result = await self.db.execute(select(Message).where(Message.id == message_id))
        return result.scalar_one_or_none()

    def _unpack_message(
        self, message: UIMessage | Mapping[str, Any]
    ) -> tuple[MessageRole, Sequence[UIPart | Mapping[str, Any]]]:
        """Extract role and parts from a UI message or a plain mapping."""
        if isinstance(message, Mapping):
            return MessageRole(message["role"]), message.get("parts", [])
        return MessageRole(message.role), message.parts

    def _generate_chat_title(self, parts: Sequence[UIPart | Mapping[str, Any]]) -> str | None:
        """Generate chat title from the first text part of a message."""
        for part in parts:
            if isinstance(part, TextPart):
                text = part.text or ""
            elif isinstance(part, Mapping) and part.get("type") == "text":
                text = part.get("text") or ""
            else:
                continue

            text = text.strip()
            if not text:
                continue
            limit = settings.chat_title_max_length
            return text[:limit] + "..." if len(text) > limit else text
        return None
