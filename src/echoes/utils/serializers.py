import json
import re
from typing import Dict, Any, List, Optional
import uuid

from src.echoes.utils.chat_parser import ParsedMessage

JSON_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


def message_rows(
    messages: List[ParsedMessage],
    session_id: uuid.UUID,
    user_id: uuid.UUID,
    start_order: int = 0
) -> List[Dict[str, Any]]:
    """Rows for the parsed_messages table; order continues from `start_order`."""
    return [
        {
            "session_id": session_id,
            "user_id": user_id,
            "sender_name": msg.sender,
            "message_text": msg.text,
            "timestamp": msg.timestamp,
            "message_order": start_order + idx,
        }
        for idx, msg in enumerate(messages)
    ]


def conversation_excerpt(messages: List[ParsedMessage], limit: int = 100) -> str:
    return "\n".join(f"{m.sender}: {m.text}" for m in messages[:limit])


def extract_json(content: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse a model reply that should be JSON. Replies wrapped in a Markdown
    code fence are unwrapped first. Returns None if nothing usable is found.
    """
    if not content:
        return None

    match = JSON_FENCE_RE.search(content)
    payload = match.group(1) if match else content
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None
