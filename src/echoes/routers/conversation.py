import logging
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from src.echoes.db.session import get_db
from src.echoes import crud, models, schemas
from src.echoes.routers.sessions import get_owned_session
from src.echoes.services.persona_service import generate_reply
from src.echoes.limiter import limiter

router = APIRouter()
log = logging.getLogger(__name__)

HISTORY_TURNS = 10


@router.post("/{session_id}/respond", response_model=schemas.ChatResponseResponse)
@limiter.limit("20/minute")
async def respond_as_persona(
    request: Request,
    payload: schemas.ChatResponseRequest,
    chat_session: models.ChatSession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db)
):
    """
    Reply to `user_message` in the voice of the analysed correspondent.
    """
    if payload.conversation_history is not None:
        history = payload.conversation_history
    else:
        history = await crud.get_conversation_history(db, chat_session.id, limit=HISTORY_TURNS)

    reply = await generate_reply(
        chat_session.personality_traits,
        chat_session.conversation_insights,
        history,
        payload.user_message,
    )

    await crud.add_conversation_turn(db, chat_session.id, payload.user_message, reply)
    return schemas.ChatResponseResponse(response=reply)


@router.get("/{session_id}/history", response_model=List[schemas.ConversationTurnRead])
async def get_history(
    chat_session: models.ChatSession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db)
):
    return await crud.get_full_conversation_history(db, chat_session.id)


@router.delete("/{session_id}/history", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(
    chat_session: models.ChatSession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db)
):
    await crud.clear_conversation_history(db, chat_session.id)
