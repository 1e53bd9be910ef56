import logging
from typing import List, Dict, Any, Optional, Sequence

from openai import OpenAIError

from src.echoes.config import settings
from src.echoes.services.llm_client import AIServiceError, get_client

log = logging.getLogger(__name__)


PERSONA_PROMPT = """You are roleplaying as someone in a past conversation. Here's what we know about this person:

Personality Traits:
- Warmth: {warmth}
- Humor: {humor}
- Directness: {directness}
- Emotional Expression: {emotional_expression}

Communication Style: {communication_style}
Overall Tone: {overall_tone}

{common_phrases}

IMPORTANT: Respond naturally as this person would, keeping messages relatively short (1-3 sentences). Use their communication style, common phrases, and emotional tone. Be authentic and conversational. Show warmth and personality."""


def build_persona_prompt(
    traits: Optional[Dict[str, Any]],
    insights: Optional[Dict[str, Any]]
) -> str:
    """System prompt describing the person to impersonate; gaps get neutral defaults."""
    traits = traits or {}
    insights = insights or {}

    phrases = insights.get("common_phrases")
    phrases_line = ""
    if phrases:
        if isinstance(phrases, str):
            phrases = [phrases]
        phrases_line = f"Common phrases they use: {', '.join(str(p) for p in phrases)}"

    return PERSONA_PROMPT.format(
        warmth=traits.get("warmth") or "moderate",
        humor=traits.get("humor") or "moderate",
        directness=traits.get("directness") or "moderate",
        emotional_expression=traits.get("emotional_expression") or "balanced",
        communication_style=insights.get("communication_style") or "natural and authentic",
        overall_tone=insights.get("overall_tone") or "friendly",
        common_phrases=phrases_line,
    )


def build_chat_messages(
    system_prompt: str,
    history: Sequence[Any],
    user_message: str
) -> List[Dict[str, str]]:
    """
    `history` items may be ORM rows, pydantic models or plain dicts, as long
    as they carry `role` and `content`.
    """
    messages = [{"role": "system", "content": system_prompt}]
    for turn in history:
        if isinstance(turn, dict):
            role, content = turn.get("role"), turn.get("content")
        else:
            role, content = turn.role, turn.content
        messages.append({"role": role, "content": content})
    messages.append({"role": "user", "content": user_message})
    return messages


async def generate_reply(
    personality_traits: Optional[Dict[str, Any]],
    conversation_insights: Optional[Dict[str, Any]],
    history: Sequence[Any],
    user_message: str
) -> str:
    """Reply in the voice of the analysed correspondent. Raises AIServiceError."""
    client = get_client()
    if client is None:
        raise AIServiceError("AI gateway is not configured")

    system_prompt = build_persona_prompt(personality_traits, conversation_insights)
    messages = build_chat_messages(system_prompt, history, user_message)

    log.info("Generating persona reply with %d history turns", len(messages) - 2)
    try:
        resp = await client.chat.completions.create(
            model=settings.AI_MODEL,
            messages=messages,
        )
    except OpenAIError as e:
        log.error("AI response error: %s", e)
        raise AIServiceError("AI generation failed") from e

    reply = resp.choices[0].message.content if resp.choices else None
    if not reply or not reply.strip():
        raise AIServiceError("No response from AI")

    return reply.strip()
