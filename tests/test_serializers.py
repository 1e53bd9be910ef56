import uuid

from src.echoes.utils.chat_parser import ParsedMessage
from src.echoes.utils.extract_file_name import extract_session_name
from src.echoes.utils.serializers import (
    conversation_excerpt,
    extract_json,
    message_rows,
)


def test_message_rows_continue_order_from_batch_start():
    session_id, user_id = uuid.uuid4(), uuid.uuid4()
    messages = [ParsedMessage(timestamp=None, sender="A", text=str(i)) for i in range(3)]

    rows = message_rows(messages, session_id, user_id, start_order=100)

    assert [r["message_order"] for r in rows] == [100, 101, 102]
    assert all(r["session_id"] == session_id and r["user_id"] == user_id for r in rows)
    assert rows[0]["timestamp"] is None
    assert rows[2]["message_text"] == "2"


def test_conversation_excerpt_is_capped():
    messages = [ParsedMessage(timestamp=None, sender="A", text=f"m{i}") for i in range(5)]

    assert conversation_excerpt(messages, limit=2) == "A: m0\nA: m1"


def test_extract_json_plain_and_fenced():
    assert extract_json('{"overall_tone": "warm"}') == {"overall_tone": "warm"}
    assert extract_json('Sure!\n```json\n{"overall_tone": "warm"}\n```') == {"overall_tone": "warm"}
    assert extract_json('```\n{"a": 1}\n```') == {"a": 1}


def test_extract_json_rejects_unusable_replies():
    assert extract_json(None) is None
    assert extract_json("") is None
    assert extract_json("not json at all") is None
    assert extract_json("[1, 2, 3]") is None


def test_extract_session_name_from_export_filenames():
    assert extract_session_name("WhatsApp Chat with Alice.txt", "whatsapp") == "Alice"
    assert extract_session_name("C:/fake/path/WhatsApp Chat - Family_Group.txt", "whatsapp") == "Family Group"
    assert extract_session_name("telegram chat with bob.txt", "telegram") == "bob"


def test_extract_session_name_falls_back_to_platform():
    assert extract_session_name(None, "manual") == "Manual Chat"
    assert extract_session_name("___.txt", "telegram") == "Telegram Chat"
