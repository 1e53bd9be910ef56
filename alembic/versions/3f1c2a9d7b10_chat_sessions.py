"""Chat sessions, parsed messages and persona conversation history

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:12:05.114302

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'chat_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_name', sa.String(length=255), nullable=False),
        sa.Column('original_filename', sa.Text(), nullable=True),
        sa.Column('chat_platform', sa.String(length=30), nullable=False),
        sa.Column('total_messages', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('personality_traits', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('conversation_insights', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('analysis_complete', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('tags', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_chat_sessions_user_id', 'chat_sessions', ['user_id'])
    op.create_index('ix_chat_sessions_created_at', 'chat_sessions', ['created_at'])

    op.create_table(
        'parsed_messages',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('session_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('chat_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('sender_name', sa.Text(), nullable=False),
        sa.Column('message_text', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
        sa.Column('message_order', sa.Integer(), nullable=False),
    )
    op.create_index('ix_parsed_messages_session_id', 'parsed_messages', ['session_id'])
    op.create_index('parsed_messages_session_order_idx', 'parsed_messages', ['session_id', 'message_order'])

    op.create_table(
        'conversation_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('session_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('chat_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_conversation_history_session_id', 'conversation_history', ['session_id'])

def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_conversation_history_session_id', table_name='conversation_history')
    op.drop_table('conversation_history')
    op.drop_index('parsed_messages_session_order_idx', table_name='parsed_messages')
    op.drop_index('ix_parsed_messages_session_id', table_name='parsed_messages')
    op.drop_table('parsed_messages')
    op.drop_index('ix_chat_sessions_created_at', table_name='chat_sessions')
    op.drop_index('ix_chat_sessions_user_id', table_name='chat_sessions')
    op.drop_table('chat_sessions')
