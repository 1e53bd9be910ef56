from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging
import uuid

from src.echoes.db.session import get_db
from src.echoes import crud, schemas, models
from src.echoes.security import get_current_user_id
from src.echoes.services.export_service import export_as_json, export_as_text, sanitize_filename

log = logging.getLogger(__name__)

router = APIRouter()


async def get_owned_session(
    session_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id)
) -> models.ChatSession:
    chat_session = await crud.get_session(db, session_id, user_id)
    if not chat_session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return chat_session


@router.get("", response_model=List[schemas.ChatSessionRead])
async def list_sessions(
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id)
):
    return await crud.list_sessions(db, user_id)


@router.get("/{session_id}", response_model=schemas.ChatSessionRead)
async def read_session(chat_session: models.ChatSession = Depends(get_owned_session)):
    return chat_session


@router.patch("/{session_id}", response_model=schemas.ChatSessionRead)
async def update_session(
    payload: schemas.ChatSessionUpdate,
    chat_session: models.ChatSession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db)
):
    return await crud.update_session(db, chat_session, session_name=payload.session_name, tags=payload.tags)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id)
):
    deleted = await crud.delete_session(db, session_id, user_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    log.info("Deleted session %s", session_id)


@router.get("/{session_id}/messages", response_model=List[schemas.MessageRead])
async def read_session_messages(
    limit: Optional[int] = Query(None, ge=1, le=5000),
    offset: int = Query(0, ge=0),
    chat_session: models.ChatSession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db)
):
    return await crud.get_session_messages(db, chat_session.id, limit=limit, offset=offset)


@router.get("/{session_id}/export")
async def export_session(
    format: schemas.ExportFormat = Query("json"),
    chat_session: models.ChatSession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db)
):
    messages = await crud.get_session_messages(db, chat_session.id)
    filename = sanitize_filename(chat_session.session_name)

    if format == "json":
        body, media_type = export_as_json(chat_session, messages), "application/json"
    else:
        body, media_type = export_as_text(chat_session, messages), "text/plain; charset=utf-8"

    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}.{format}"'},
    )
