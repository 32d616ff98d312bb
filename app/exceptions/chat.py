"""Chat persistence exceptions."""

from typing import Any

from .base import BaseAppException, ConflictError, NotFoundError, ValidationError


class UnsupportedPartTypeError(ValidationError):
    """Raised when a message part or stored row carries an unknown type."""

    def __init__(self, part_type: Any, supported_types: tuple[str, ...] = ()):
        self.part_type = part_type
        message = f"Unsupported part type: {part_type}"
        if supported_types:
            message += f". Supported types: {', '.join(supported_types)}"
        super().__init__(
            message=message,
            error_code="UNSUPPORTED_PART_TYPE",
            details={"part_type": str(part_type), "supported_types": list(supported_types)},
        )


class DataIntegrityViolationError(BaseAppException):
    """Raised when a stored part lacks a column its type requires."""

    def __init__(self, part_type: str, column: str, part_id: Any = None):
        super().__init__(
            message=f"Stored {part_type} part is missing required column '{column}'",
            status_code=500,
            error_code="DATA_INTEGRITY_VIOLATION",
            details={"part_type": part_type, "column": column, "part_id": str(part_id) if part_id else None},
        )


class DuplicateIdError(ConflictError):
    """Raised when an identifier is already taken."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            message=f"{entity} with id '{entity_id}' already exists",
            error_code="DUPLICATE_ID",
            details={"entity": entity, "id": entity_id},
        )


class TransactionFailureError(BaseAppException):
    """Raised when a multi-statement write fails and is rolled back."""

    def __init__(self, operation: str, reason: str = ""):
        message = f"Transaction failed during {operation}"
        if reason:
            message += f": {reason}"
        super().__init__(
            message=message,
            status_code=500,
            error_code="TRANSACTION_FAILURE",
            details={"operation": operation},
        )


class ChatNotFoundError(NotFoundError):
    """Raised when a chat is not found."""

    def __init__(self, chat_id: str):
        super().__init__(
            message=f"Chat '{chat_id}' not found",
            error_code="CHAT_NOT_FOUND",
            details={"chat_id": chat_id},
        )
