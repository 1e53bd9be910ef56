from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import insert, delete, select
from typing import List, Optional, Dict, Any
from src.echoes import models
from src.echoes.config import settings
from src.echoes.utils.chat_parser import ParsedMessage
from src.echoes.utils.serializers import message_rows
import logging
import uuid

log = logging.getLogger(__name__)


async def create_session(
    db: AsyncSession,
    user_id: uuid.UUID,
    session_name: str,
    platform: str,
    original_filename: Optional[str],
    total_messages: int,
    analysis: Optional[Dict[str, Any]] = None,
    should_commit: bool = True
) -> models.ChatSession:
    new_session = models.ChatSession(
        user_id=user_id,
        session_name=session_name,
        original_filename=original_filename,
        chat_platform=platform,
        total_messages=total_messages,
        personality_traits=(analysis or {}).get("personality_traits") or {},
        conversation_insights=analysis or {},
        analysis_complete=bool(analysis),
    )
    db.add(new_session)
    await db.flush()

    if should_commit:
        await db.commit()
        await db.refresh(new_session)
    return new_session


async def bulk_insert_messages(
    db: AsyncSession,
    session_id: uuid.UUID,
    user_id: uuid.UUID,
    messages: List[ParsedMessage],
    batch_size: Optional[int] = None,
    should_commit: bool = True
) -> int:
    """
    Insert parsed messages in fixed-size batches, keeping source order in
    `message_order`. Returns the number of rows written.
    """
    if not messages:
        return 0

    batch_size = batch_size or settings.MESSAGE_INSERT_BATCH_SIZE
    try:
        written = 0
        for i in range(0, len(messages), batch_size):
            rows = message_rows(messages[i:i + batch_size], session_id, user_id, start_order=i)
            await db.execute(insert(models.StoredMessage), rows)
            written += len(rows)

        if should_commit:
            await db.commit()

        return written

    except SQLAlchemyError:
        await db.rollback()
        raise


async def ingest_parsed_chat(
    db: AsyncSession,
    user_id: uuid.UUID,
    session_name: str,
    platform: str,
    original_filename: Optional[str],
    messages: List[ParsedMessage],
    analysis: Optional[Dict[str, Any]] = None
) -> models.ChatSession:
    """Session row and all of its messages in a single transaction."""
    try:
        chat_session = await create_session(
            db,
            user_id=user_id,
            session_name=session_name,
            platform=platform,
            original_filename=original_filename,
            total_messages=len(messages),
            analysis=analysis,
            should_commit=False
        )
        written = await bulk_insert_messages(
            db, chat_session.id, user_id, messages, should_commit=False
        )

        await db.commit()
        await db.refresh(chat_session)
        log.info("Stored session %s with %d messages", chat_session.id, written)
        return chat_session

    except Exception:
        await db.rollback()
        raise


async def get_session(db: AsyncSession, session_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.ChatSession]:
    result = await db.execute(
        select(models.ChatSession)
        .where(models.ChatSession.id == session_id)
        .where(models.ChatSession.user_id == user_id)
    )
    return result.scalars().first()


async def list_sessions(db: AsyncSession, user_id: uuid.UUID) -> List[models.ChatSession]:
    result = await db.execute(
        select(models.ChatSession)
        .where(models.ChatSession.user_id == user_id)
        .order_by(models.ChatSession.created_at.desc())
    )
    return result.scalars().all()


async def update_session(
    db: AsyncSession,
    chat_session: models.ChatSession,
    session_name: Optional[str] = None,
    tags: Optional[List[str]] = None
) -> models.ChatSession:
    if session_name is not None:
        chat_session.session_name = session_name.strip()
    if tags is not None:
        # de-duplicate, keep first occurrence order
        chat_session.tags = list(dict.fromkeys(t.strip() for t in tags if t.strip()))
    db.add(chat_session)
    await db.commit()
    await db.refresh(chat_session)
    return chat_session


async def delete_session(db: AsyncSession, session_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    result = await db.execute(
        delete(models.ChatSession)
        .where(models.ChatSession.id == session_id)
        .where(models.ChatSession.user_id == user_id)
    )
    await db.commit()
    return result.rowcount > 0


async def get_session_messages(
    db: AsyncSession,
    session_id: uuid.UUID,
    limit: Optional[int] = None,
    offset: int = 0
) -> List[models.StoredMessage]:
    stmt = (
        select(models.StoredMessage)
        .where(models.StoredMessage.session_id == session_id)
        .order_by(models.StoredMessage.message_order.asc())
        .offset(offset)
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await db.execute(stmt)
    return result.scalars().all()


async def get_conversation_history(
    db: AsyncSession,
    session_id: uuid.UUID,
    limit: int = 10
) -> List[models.ConversationTurn]:
    stmt = (
        select(models.ConversationTurn)
        .where(models.ConversationTurn.session_id == session_id)
        .order_by(models.ConversationTurn.created_at.desc(), models.ConversationTurn.id.desc()) # Get newest first
        .limit(limit)
    )
    result = await db.execute(stmt)
    # Reverse to return chronological order (Oldest -> Newest)
    return result.scalars().all()[::-1]


async def get_full_conversation_history(
    db: AsyncSession,
    session_id: uuid.UUID
) -> List[models.ConversationTurn]:
    stmt = (
        select(models.ConversationTurn)
        .where(models.ConversationTurn.session_id == session_id)
        .order_by(models.ConversationTurn.created_at.asc(), models.ConversationTurn.id.asc())
    )
    result = await db.execute(stmt)
    return result.scalars().all()


async def add_conversation_turn(
    db: AsyncSession,
    session_id: uuid.UUID,
    user_message: str,
    ai_response: str
):
    """Saves both user message and AI response in a transaction."""
    user_turn = models.ConversationTurn(session_id=session_id, role="user", content=user_message)
    ai_turn = models.ConversationTurn(session_id=session_id, role="assistant", content=ai_response)
    db.add_all([user_turn, ai_turn])
    await db.commit()


async def clear_conversation_history(db: AsyncSession, session_id: uuid.UUID):
    await db.execute(
        delete(models.ConversationTurn)
        .where(models.ConversationTurn.session_id == session_id)
    )
    await db.commit()
