from fastapi import APIRouter, Depends, UploadFile, File, Form, HTTPException, status, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging
import uuid

from src.echoes.config import settings
from src.echoes.db.session import get_db
from src.echoes import crud, schemas
from src.echoes.utils.chat_parser import ParsedMessage, SUPPORTED_PLATFORMS, parse_chat, detect_platform
from src.echoes.utils.extract_file_name import extract_session_name
from src.echoes.services.personality_service import analyze_conversation
from src.echoes.security import get_current_user_id
from src.echoes.limiter import limiter

log = logging.getLogger(__name__)

router = APIRouter()


async def process_chat_text(
    db: AsyncSession,
    user_id: uuid.UUID,
    chat_text: str,
    platform: Optional[str],
    filename: Optional[str]
) -> schemas.ParseChatResponse:
    """Validate, parse, analyse and store one chat export."""
    platform = (platform or detect_platform(chat_text)).lower()
    if platform not in SUPPORTED_PLATFORMS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported platform")

    log.info("Parsing %s chat with %d characters", platform, len(chat_text))
    messages: List[ParsedMessage] = await run_in_threadpool(parse_chat, chat_text, platform)

    if not messages:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No messages found in the chat. Please check the format."
        )
    log.info("Parsed %d messages", len(messages))

    analysis = await analyze_conversation(messages)
    log.info("Analysis complete: %s", "success" if analysis else "skipped or failed")

    chat_session = await crud.ingest_parsed_chat(
        db,
        user_id=user_id,
        session_name=extract_session_name(filename, platform),
        platform=platform,
        original_filename=filename,
        messages=messages,
        analysis=analysis,
    )

    return schemas.ParseChatResponse(
        session_id=chat_session.id,
        message_count=len(messages),
        analysis=analysis,
    )


@router.post("/parse", response_model=schemas.ParseChatResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def parse_chat_text(
    request: Request,
    payload: schemas.ParseChatRequest,
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id)
):
    if not payload.chat_text or not payload.chat_text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields: chat_text")

    if len(payload.chat_text.encode("utf-8")) > settings.MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Chat text is too large.")

    return await process_chat_text(db, user_id, payload.chat_text, payload.platform, payload.filename)


@router.post("/upload", response_model=schemas.ParseChatResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def upload_chat_file(
    request: Request,
    file: UploadFile = File(...),
    platform: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id)
):
    if not file.filename or not file.filename.lower().endswith(".txt"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file. Please upload a .txt file.")

    try:
        raw = await file.read(settings.MAX_UPLOAD_SIZE_BYTES + 1)
    finally:
        await file.close()

    if len(raw) > settings.MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File is too large.")

    chat_text = raw.decode("utf-8", errors="replace")
    if not chat_text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty.")

    return await process_chat_text(db, user_id, chat_text, platform, file.filename)
