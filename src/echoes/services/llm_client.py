import logging
from functools import lru_cache
from typing import Optional

from openai import AsyncOpenAI

from src.echoes.config import settings

log = logging.getLogger(__name__)


class AIServiceError(Exception):
    """The model gateway could not produce a usable completion."""


@lru_cache(maxsize=1)
def get_client() -> Optional[AsyncOpenAI]:
    """
    Shared client for the OpenAI-compatible gateway. None when no API key is
    configured; callers decide whether that is fatal.
    """
    if not settings.AI_GATEWAY_API_KEY:
        log.warning("AI_GATEWAY_API_KEY is not set; AI features are disabled")
        return None

    return AsyncOpenAI(
        base_url=str(settings.AI_GATEWAY_BASE_URL),
        api_key=settings.AI_GATEWAY_API_KEY,
        timeout=settings.AI_REQUEST_TIMEOUT_SECONDS,
        max_retries=0,
    )
