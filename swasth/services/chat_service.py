"""
Chat: validate the question, build the grounded prompt, and proxy it to Gemini.

Responsibility: The one shared entry point for the nutrition assistant. Called by
the API; no HTTP types here.
"""

import asyncio
import logging
from functools import lru_cache

from swasth.schemas.chat import UserContext
from swasth.services.gemini_client import ChatResult, GeminiClient
from swasth.services.prompt_builder import build_system_prompt

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_gemini_client() -> GeminiClient:
    """Process-wide client built from config. Overridden in tests via FastAPI dependency_overrides."""
    return GeminiClient()


async def answer_query(
    user_query: str,
    user_data: UserContext | None,
    client: GeminiClient,
    cancel: asyncio.Event | None = None,
) -> ChatResult:
    """
    Answer one question with the user's profile as context.
    The question is sent as typed; trimming only decides emptiness.
    Raises ValueError for a blank question, before any network call.
    """
    if not (user_query or "").strip():
        raise ValueError("userQuery must not be empty")
    system_prompt = build_system_prompt(user_data)
    logger.info("[chat:answer_query] IN  query_len=%d", len(user_query))
    result = await client.generate(user_query, system_prompt, cancel=cancel)
    logger.info(
        "[chat:answer_query] OUT outcome=%s attempts=%d sources=%d",
        result.outcome.value, result.attempts, len(result.response.sources),
    )
    return result
