import asyncio
import logging
import re
from typing import List, Dict, Any, Optional

from openai import (
    RateLimitError,
    APITimeoutError,
    APIError,
    BadRequestError
)

from src.echoes.config import settings
from src.echoes.services.llm_client import get_client
from src.echoes.utils.chat_parser import ParsedMessage
from src.echoes.utils.serializers import conversation_excerpt, extract_json


log = logging.getLogger(__name__)


SYSTEM_PROMPT = "You are an expert conversation analyst. Respond only with valid JSON."

ANALYSIS_PROMPT = """Analyze this conversation and provide insights about the personality and communication style of the participants. Focus on:
1. Personality traits (warmth, humor, directness, etc.)
2. Common phrases and expressions
3. Emotional tone and sentiment
4. Response patterns

Conversation excerpt:
{excerpt}

Provide a JSON response with:
{{
  "personality_traits": {{
    "warmth": "score 1-10",
    "humor": "score 1-10",
    "directness": "score 1-10",
    "emotional_expression": "description"
  }},
  "common_phrases": ["phrase1", "phrase2"],
  "overall_tone": "description",
  "communication_style": "description"
}}"""

EXCERPT_MESSAGE_LIMIT = 100
MAX_INTERNAL_RETRIES = 3
INTERNAL_RETRY_DELAY = 2
RETRY_AFTER_REGEX = re.compile(r"retry after (\d+) seconds")


def build_analysis_prompt(messages: List[ParsedMessage]) -> str:
    return ANALYSIS_PROMPT.format(excerpt=conversation_excerpt(messages, limit=EXCERPT_MESSAGE_LIMIT))


async def analyze_conversation(messages: List[ParsedMessage]) -> Optional[Dict[str, Any]]:
    """
    Ask the model for a personality/tone profile of the conversation.

    Analysis is optional: any failure is logged and returns None so the
    upload can still be stored.
    """
    client = get_client()
    if client is None or not messages:
        return None

    prompt = build_analysis_prompt(messages)

    for attempt in range(MAX_INTERNAL_RETRIES):
        try:
            resp = await client.chat.completions.create(
                model=settings.AI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
            )
            content = resp.choices[0].message.content if resp.choices else None
            analysis = extract_json(content)
            if analysis is None:
                log.error("Failed to parse analysis reply as JSON")
            return analysis

        except RateLimitError as e:
            if attempt == MAX_INTERNAL_RETRIES - 1:
                log.error("Rate limit on analysis, all retries failed")
                break

            delay = INTERNAL_RETRY_DELAY * (2 ** attempt)
            re_match = RETRY_AFTER_REGEX.search(e.message or "")
            if re_match:
                delay = int(re_match.group(1)) + 1

            log.warning("Rate limit hit (attempt %d). Retrying in %ss... Error: %s", attempt + 1, delay, e)
            await asyncio.sleep(delay)

        except BadRequestError as e:
            log.error("Analysis request rejected, giving up: %s", e.message)
            return None

        except (APITimeoutError, APIError) as e:
            if attempt == MAX_INTERNAL_RETRIES - 1:
                log.error("Temporary API error on analysis, all retries failed: %s", e)
                break

            delay = INTERNAL_RETRY_DELAY * (2 ** attempt)
            log.warning("Temporary API error (attempt %d). Retrying in %ss... Error: %s", attempt + 1, delay, e)
            await asyncio.sleep(delay)

        except Exception as e:
            log.error("Unexpected error during analysis. Giving up. Error: %s", e, exc_info=True)
            return None

    return None
