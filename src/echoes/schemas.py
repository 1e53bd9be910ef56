from datetime import datetime
from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator
import uuid

ChatRole = Literal["user", "assistant"]
ExportFormat = Literal["json", "txt"]


class ParseChatRequest(BaseModel):
    chat_text: Optional[str] = None
    # Left as a plain string so unsupported tags get a 400 from the router
    platform: Optional[str] = None
    filename: Optional[str] = None


class ParseChatResponse(BaseModel):
    success: bool = True
    session_id: uuid.UUID
    message_count: int
    analysis: Optional[Dict[str, Any]] = None


class ChatSessionBase(BaseModel):
    session_name: str
    original_filename: Optional[str] = None
    chat_platform: str


class ChatSessionRead(ChatSessionBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    total_messages: int
    personality_traits: Dict[str, Any] = {}
    conversation_insights: Dict[str, Any] = {}
    analysis_complete: bool = False
    tags: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None


class ChatSessionUpdate(BaseModel):
    session_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    tags: Optional[List[str]] = None

    @field_validator("session_name", mode="before")
    @classmethod
    def strip_session_name(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_name: str
    message_text: str
    timestamp: Optional[datetime] = None
    message_order: int


class ConversationHistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: ChatRole
    content: str


class ConversationTurnRead(ConversationHistoryItem):
    id: int
    created_at: datetime


class ChatResponseRequest(BaseModel):
    user_message: str = Field(min_length=1)
    # When omitted the stored history for the session is used
    conversation_history: Optional[List[ConversationHistoryItem]] = None


class ChatResponseResponse(BaseModel):
    response: str
