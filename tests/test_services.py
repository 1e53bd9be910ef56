"""
Tests for the model-backed services, using a fake openai client.
"""

import asyncio
from datetime import datetime
from types import SimpleNamespace

import pytest

from src.echoes.services import personality_service, persona_service
from src.echoes.services.export_service import export_as_json, export_as_text, sanitize_filename
from src.echoes.services.llm_client import AIServiceError
from src.echoes.utils.chat_parser import ParsedMessage


@pytest.fixture
def messages():
    return [
        ParsedMessage(timestamp=datetime(2024, 3, 15, 21, 5), sender="Alice", text="hello"),
        ParsedMessage(timestamp=datetime(2024, 3, 15, 21, 6), sender="Bob", text="hi there"),
    ]


# --------------------
# Personality analysis
# --------------------
def test_analysis_prompt_contains_excerpt(messages):
    prompt = personality_service.build_analysis_prompt(messages)

    assert "Alice: hello\nBob: hi there" in prompt
    assert '"personality_traits"' in prompt


def test_analysis_prompt_uses_first_hundred_messages():
    many = [ParsedMessage(timestamp=None, sender="A", text=f"line {i}") for i in range(150)]

    prompt = personality_service.build_analysis_prompt(many)

    assert "A: line 99" in prompt
    assert "A: line 100" not in prompt


def test_analysis_skipped_without_client(monkeypatch, messages):
    monkeypatch.setattr(personality_service, "get_client", lambda: None)

    assert asyncio.run(personality_service.analyze_conversation(messages)) is None


def test_analysis_parses_fenced_json(monkeypatch, messages, fake_client_factory):
    client = fake_client_factory('```json\n{"personality_traits": {"warmth": "8"}, "overall_tone": "playful"}\n```')
    monkeypatch.setattr(personality_service, "get_client", lambda: client)

    analysis = asyncio.run(personality_service.analyze_conversation(messages))

    assert analysis == {"personality_traits": {"warmth": "8"}, "overall_tone": "playful"}
    [call] = client.chat.completions.calls
    assert call["messages"][0] == {"role": "system", "content": personality_service.SYSTEM_PROMPT}


def test_analysis_invalid_json_gives_none(monkeypatch, messages, fake_client_factory):
    client = fake_client_factory("I think they are nice.")
    monkeypatch.setattr(personality_service, "get_client", lambda: client)

    assert asyncio.run(personality_service.analyze_conversation(messages)) is None


def test_analysis_unexpected_error_gives_none(monkeypatch, messages, fake_client_factory):
    client = fake_client_factory(RuntimeError("boom"))
    monkeypatch.setattr(personality_service, "get_client", lambda: client)

    assert asyncio.run(personality_service.analyze_conversation(messages)) is None


# --------------------
# Persona chat
# --------------------
def test_persona_prompt_defaults():
    prompt = persona_service.build_persona_prompt(None, None)

    assert "- Warmth: moderate" in prompt
    assert "- Emotional Expression: balanced" in prompt
    assert "Communication Style: natural and authentic" in prompt
    assert "Overall Tone: friendly" in prompt
    assert "Common phrases" not in prompt


def test_persona_prompt_uses_analysis():
    prompt = persona_service.build_persona_prompt(
        {"warmth": "9", "humor": "7"},
        {"overall_tone": "teasing", "common_phrases": ["no way", "lol"]},
    )

    assert "- Warmth: 9" in prompt
    assert "- Humor: 7" in prompt
    assert "- Directness: moderate" in prompt
    assert "Overall Tone: teasing" in prompt
    assert "Common phrases they use: no way, lol" in prompt


def test_chat_messages_accept_dicts_and_objects():
    history = [
        {"role": "user", "content": "hey"},
        SimpleNamespace(role="assistant", content="heyy"),
    ]

    built = persona_service.build_chat_messages("SYS", history, "how are you?")

    assert built == [
        {"role": "system", "content": "SYS"},
        {"role": "user", "content": "hey"},
        {"role": "assistant", "content": "heyy"},
        {"role": "user", "content": "how are you?"},
    ]


def test_generate_reply(monkeypatch, fake_client_factory):
    client = fake_client_factory("  doing great, you?  ")
    monkeypatch.setattr(persona_service, "get_client", lambda: client)

    reply = asyncio.run(persona_service.generate_reply({}, {}, [], "how are you?"))

    assert reply == "doing great, you?"
    [call] = client.chat.completions.calls
    assert call["messages"][-1] == {"role": "user", "content": "how are you?"}


def test_generate_reply_requires_client(monkeypatch):
    monkeypatch.setattr(persona_service, "get_client", lambda: None)

    with pytest.raises(AIServiceError):
        asyncio.run(persona_service.generate_reply({}, {}, [], "hi"))


def test_generate_reply_rejects_empty_answer(monkeypatch, fake_client_factory):
    monkeypatch.setattr(persona_service, "get_client", lambda: fake_client_factory(""))

    with pytest.raises(AIServiceError):
        asyncio.run(persona_service.generate_reply({}, {}, [], "hi"))


# --------------------
# Export
# --------------------
def _session():
    return SimpleNamespace(
        id="3b1d",
        session_name="Family Group!",
        chat_platform="whatsapp",
        total_messages=2,
        created_at=datetime(2024, 3, 16, 8, 0),
        updated_at=None,
        personality_traits={"warmth": "8"},
        conversation_insights={},
        tags=["family"],
    )


def _stored():
    return [
        SimpleNamespace(sender_name="Alice", message_text="hello", timestamp=datetime(2024, 3, 15, 21, 5)),
        SimpleNamespace(sender_name="Bob", message_text="hi there", timestamp=None),
    ]


def test_sanitize_filename():
    assert sanitize_filename("Family Group!") == "family_group_"


def test_export_as_json():
    import json

    data = json.loads(export_as_json(_session(), _stored()))

    assert data["session"]["name"] == "Family Group!"
    assert data["session"]["updatedAt"] is None
    assert data["messages"] == [
        {"sender": "Alice", "text": "hello", "timestamp": "2024-03-15T21:05:00"},
        {"sender": "Bob", "text": "hi there", "timestamp": None},
    ]


def test_export_as_text():
    text = export_as_text(_session(), _stored(), exported_at=datetime(2024, 3, 17, 12, 0))

    assert text.startswith("Conversation: Family Group!\nPlatform: whatsapp\nTotal Messages: 2\n")
    assert "=" * 50 in text
    assert "[2024-03-15 21:05:00] Alice:\nhello\n" in text
    assert "[] Bob:\nhi there\n" in text
