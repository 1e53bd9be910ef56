import json
import re
from datetime import datetime
from typing import List, Dict, Any

from src.echoes import models


def sanitize_filename(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", name, flags=re.IGNORECASE).lower()


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def export_as_json(chat_session: models.ChatSession, messages: List[models.StoredMessage]) -> str:
    export_data: Dict[str, Any] = {
        "session": {
            "id": str(chat_session.id),
            "name": chat_session.session_name,
            "platform": chat_session.chat_platform,
            "totalMessages": chat_session.total_messages,
            "createdAt": _iso(chat_session.created_at),
            "updatedAt": _iso(chat_session.updated_at),
            "personalityTraits": chat_session.personality_traits,
            "conversationInsights": chat_session.conversation_insights,
            "tags": chat_session.tags,
        },
        "messages": [
            {
                "sender": m.sender_name,
                "text": m.message_text,
                "timestamp": _iso(m.timestamp),
            }
            for m in messages
        ],
    }
    return json.dumps(export_data, indent=2, ensure_ascii=False)


def export_as_text(
    chat_session: models.ChatSession,
    messages: List[models.StoredMessage],
    exported_at: datetime | None = None
) -> str:
    exported_at = exported_at or datetime.now()
    lines = [
        f"Conversation: {chat_session.session_name}",
        f"Platform: {chat_session.chat_platform or 'Unknown'}",
        f"Total Messages: {chat_session.total_messages or 0}",
        f"Exported: {exported_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "=" * 50,
        "",
    ]
    for m in messages:
        stamp = m.timestamp.strftime("%Y-%m-%d %H:%M:%S") if m.timestamp else ""
        lines.append(f"[{stamp}] {m.sender_name}:")
        lines.append(m.message_text)
        lines.append("")

    return "\n".join(lines) + "\n"
