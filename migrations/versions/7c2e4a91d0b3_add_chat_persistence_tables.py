"""Add chat persistence tables

Revision ID: 7c2e4a91d0b3
Revises:
Create Date: 2025-10-18 14:02:11.508213

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '7c2e4a91d0b3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create chats table
    op.create_table(
        'chats',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create messages table
    op.create_table(
        'messages',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('chat_id', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint("role IN ('user', 'assistant', 'system')", name='message_role'),
        sa.ForeignKeyConstraint(['chat_id'], ['chats.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('messages_chat_id_idx', 'messages', ['chat_id'])
    op.create_index('messages_chat_id_created_at_idx', 'messages', ['chat_id', 'created_at'])

    # Create parts table
    op.create_table(
        'parts',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('message_id', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('order', sa.Integer(), server_default='0', nullable=False),
        sa.Column('text_text', sa.Text(), nullable=True),
        sa.Column('reasoning_text', sa.Text(), nullable=True),
        sa.Column('file_media_type', sa.String(length=100), nullable=True),
        sa.Column('file_filename', sa.String(length=255), nullable=True),
        sa.Column('file_url', sa.Text(), nullable=True),
        sa.Column('source_url_source_id', sa.String(length=255), nullable=True),
        sa.Column('source_url_url', sa.String(length=2048), nullable=True),
        sa.Column('source_url_title', sa.String(length=500), nullable=True),
        sa.Column('source_document_source_id', sa.String(length=255), nullable=True),
        sa.Column('source_document_media_type', sa.String(length=100), nullable=True),
        sa.Column('source_document_title', sa.String(length=500), nullable=True),
        sa.Column('source_document_filename', sa.String(length=255), nullable=True),
        sa.Column('provider_metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.CheckConstraint(
            "type IN ('text', 'reasoning', 'file', 'source-url', 'source-document', 'step-start')",
            name='parts_type_supported',
        ),
        sa.CheckConstraint(
            "CASE WHEN type = 'text' THEN text_text IS NOT NULL ELSE TRUE END",
            name='text_text_required_if_type_is_text',
        ),
        sa.CheckConstraint(
            "CASE WHEN type = 'reasoning' THEN reasoning_text IS NOT NULL ELSE TRUE END",
            name='reasoning_text_required_if_type_is_reasoning',
        ),
        sa.CheckConstraint(
            "CASE WHEN type = 'file' THEN file_media_type IS NOT NULL AND file_url IS NOT NULL ELSE TRUE END",
            name='file_fields_required_if_type_is_file',
        ),
        sa.CheckConstraint(
            "CASE WHEN type = 'source-url' THEN source_url_source_id IS NOT NULL "
            "AND source_url_url IS NOT NULL ELSE TRUE END",
            name='source_url_fields_required',
        ),
        sa.CheckConstraint(
            "CASE WHEN type = 'source-document' THEN source_document_source_id IS NOT NULL "
            "AND source_document_media_type IS NOT NULL AND source_document_title IS NOT NULL ELSE TRUE END",
            name='source_document_fields_required',
        ),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('parts_message_id_idx', 'parts', ['message_id'])
    op.create_index('parts_message_id_order_idx', 'parts', ['message_id', 'order'])


def downgrade() -> None:
    op.drop_index('parts_message_id_order_idx', table_name='parts')
    op.drop_index('parts_message_id_idx', table_name='parts')
    op.drop_table('parts')
    op.drop_index('messages_chat_id_created_at_idx', table_name='messages')
    op.drop_index('messages_chat_id_idx', table_name='messages')
    op.drop_table('messages')
    op.drop_table('chats')
