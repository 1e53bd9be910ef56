from datetime import datetime, timezone
from typing import List, Optional, Dict
from sqlalchemy import (
    JSON, Integer, String, DateTime, Text, ForeignKey, Boolean, Index
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
import uuid
from sqlalchemy.dialects.postgresql import UUID
from src.echoes.db.base import Base


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    session_name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_filename: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    chat_platform: Mapped[str] = mapped_column(String(30), nullable=False)
    total_messages: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    personality_traits: Mapped[Dict] = mapped_column(JSON, nullable=False, default=dict)
    conversation_insights: Mapped[Dict] = mapped_column(JSON, nullable=False, default=dict)
    analysis_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    messages: Mapped[List["StoredMessage"]] = relationship(
        "StoredMessage",
        back_populates="session",
        lazy="noload",
        passive_deletes=True,
        order_by="StoredMessage.message_order",
    )
    history: Mapped[List["ConversationTurn"]] = relationship(
        "ConversationTurn",
        back_populates="session",
        lazy="noload",
        passive_deletes=True
    )


class StoredMessage(Base):
    __tablename__ = "parsed_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    sender_name: Mapped[str] = mapped_column(Text, nullable=False)
    message_text: Mapped[str] = mapped_column(Text, nullable=False)
    # NULL when the export line had no usable date/time
    timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    message_order: Mapped[int] = mapped_column(Integer, nullable=False)

    session: Mapped["ChatSession"] = relationship(
        "ChatSession",
        back_populates="messages",
        lazy="noload",
    )

    __table_args__ = (
        Index("parsed_messages_session_order_idx", "session_id", "message_order"),
    )


class ConversationTurn(Base):
    __tablename__ = "conversation_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False) # "user" or "assistant"
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    session: Mapped["ChatSession"] = relationship(
        "ChatSession",
        back_populates="history",
        lazy="noload",
    )
