"""
Part model for the ordered content units of a message.

Every part kind shares one table. The ``type`` column selects which of the
prefixed columns carry data; the columns a kind requires are enforced with
CHECK constraints so that an incomplete row can never be written.
"""

import uuid

from sqlalchemy import JSON, CheckConstraint, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel

PART_TYPES = ("text", "reasoning", "file", "source-url", "source-document", "step-start")

# Columns that must be non-null for each part type
REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "text": ("text_text",),
    "reasoning": ("reasoning_text",),
    "file": ("file_media_type", "file_url"),
    "source-url": ("source_url_source_id", "source_url_url"),
    "source-document": (
        "source_document_source_id",
        "source_document_media_type",
        "source_document_title",
    ),
    "step-start": (),
}

CHECK_CONSTRAINT_NAMES = {
    "text": "text_text_required_if_type_is_text",
    "reasoning": "reasoning_text_required_if_type_is_reasoning",
    "file": "file_fields_required_if_type_is_file",
    "source-url": "source_url_fields_required",
    "source-document": "source_document_fields_required",
}


def required_columns_check(part_type: str) -> CheckConstraint:
    """Build the CHECK constraint requiring the columns of ``part_type``."""
    required = " AND ".join(f"{column} IS NOT NULL" for column in REQUIRED_COLUMNS[part_type])
    return CheckConstraint(
        f"CASE WHEN type = '{part_type}' THEN {required} ELSE TRUE END",
        name=CHECK_CONSTRAINT_NAMES[part_type],
    )


class Part(BaseModel):
    """
    Represents one typed content unit of a message.
    """

    __tablename__ = "parts"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    message_id = Column(String(255), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=False)
    order = Column(Integer, nullable=False, default=0)

    # Text fields
    text_text = Column(Text, nullable=True)

    # Reasoning fields
    reasoning_text = Column(Text, nullable=True)

    # File fields (data URLs can be large)
    file_media_type = Column(String(100), nullable=True)
    file_filename = Column(String(255), nullable=True)
    file_url = Column(Text, nullable=True)

    # Source URL fields
    source_url_source_id = Column(String(255), nullable=True)
    source_url_url = Column(String(2048), nullable=True)
    source_url_title = Column(String(500), nullable=True)

    # Source document fields
    source_document_source_id = Column(String(255), nullable=True)
    source_document_media_type = Column(String(100), nullable=True)
    source_document_title = Column(String(500), nullable=True)
    source_document_filename = Column(String(255), nullable=True)

    # Provider-specific data attached by the model provider
    provider_metadata = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    # Relationships
    message = relationship("Message", back_populates="parts")

    __table_args__ = (
        Index("parts_message_id_idx", "message_id"),
        Index("parts_message_id_order_idx", "message_id", "order"),
        CheckConstraint(
            "type IN (" + ", ".join(f"'{part_type}'" for part_type in PART_TYPES) + ")",
            name="parts_type_supported",
        ),
        *(required_columns_check(part_type) for part_type in CHECK_CONSTRAINT_NAMES),
    )
