"""
Gemini generateContent client with retry and exponential backoff.

Every failure (transport error, non-2xx status, unexpected body shape) is retried
up to max_retries times with delay min(cap, 2**attempt * base) + uniform(0, jitter).
After the last failure a fixed fallback ChatResponse is returned instead of raising.
An optional asyncio.Event aborts the in-flight request and any pending backoff sleep.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import httpx

from swasth.core.config import (
    GEMINI_API_BASE,
    GEMINI_API_KEY,
    GEMINI_API_TIMEOUT,
    GEMINI_BACKOFF_BASE_SECONDS,
    GEMINI_BACKOFF_CAP_SECONDS,
    GEMINI_JITTER_SECONDS,
    GEMINI_MAX_RETRIES,
    GEMINI_MODEL,
)
from swasth.core.errors import (
    ChatCancelledError,
    ServiceUnavailableError,
    TransportError,
    UpstreamError,
    UpstreamShapeError,
    UpstreamStatusError,
)
from swasth.schemas.chat import ChatResponse
from swasth.services.response_parser import parse_generate_response

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_TEXT = "Sorry, I encountered an error. Please try again."
CANCELLED_TEXT = "Request cancelled."


class ChatOutcome(str, Enum):
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass
class ChatResult:
    """Terminal state of one proxied chat call."""

    outcome: ChatOutcome
    response: ChatResponse
    attempts: int


def fallback_response() -> ChatResponse:
    return ChatResponse(text=FALLBACK_TEXT, sources=[], ok=False)


def cancelled_response() -> ChatResponse:
    return ChatResponse(text=CANCELLED_TEXT, sources=[], ok=False)


def build_payload(user_query: str, system_prompt: str) -> dict[str, Any]:
    """Request body: the question as turn content, the prompt as system instruction, search grounding on."""
    return {
        "contents": [{"parts": [{"text": user_query}]}],
        "tools": [{"google_search": {}}],
        "systemInstruction": {"parts": [{"text": system_prompt}]},
    }


def backoff_delay(
    attempt: int,
    base: float = GEMINI_BACKOFF_BASE_SECONDS,
    cap: float = GEMINI_BACKOFF_CAP_SECONDS,
) -> float:
    """Delay before the retry following zero-indexed attempt, without jitter."""
    return min(cap, (2 ** attempt) * base)


class GeminiClient:
    """
    Stateless proxy to the generative language API. Safe to share across requests:
    each generate() call opens its own httpx.AsyncClient.

    transport, sleep and rng exist for tests (httpx.MockTransport, recorded sleeps,
    seeded jitter).
    """

    def __init__(
        self,
        api_key: str = GEMINI_API_KEY,
        model: str = GEMINI_MODEL,
        api_base: str = GEMINI_API_BASE,
        timeout: float = GEMINI_API_TIMEOUT,
        max_retries: int = GEMINI_MAX_RETRIES,
        backoff_base: float = GEMINI_BACKOFF_BASE_SECONDS,
        backoff_cap: float = GEMINI_BACKOFF_CAP_SECONDS,
        jitter: float = GEMINI_JITTER_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.api_key = api_key
        self.url = f"{api_base.rstrip('/')}/models/{model}:generateContent"
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.jitter = jitter
        self._transport = transport
        self._sleep = sleep
        self._rng = rng or random.Random()

    def retry_delay(self, attempt: int) -> float:
        delay = backoff_delay(attempt, self.backoff_base, self.backoff_cap)
        if self.jitter > 0:
            delay += self._rng.uniform(0, self.jitter)
        return delay

    async def _attempt(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> ChatResponse:
        try:
            response = await client.post(self.url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        if not response.is_success:
            raise UpstreamStatusError(response.status_code, response.text[:200])
        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamShapeError("Response body is not valid JSON") from e
        return parse_generate_response(body)

    async def _until_cancelled(self, aw: Awaitable[T], cancel: asyncio.Event | None) -> T:
        """Await aw unless cancel fires first; then abort aw and raise ChatCancelledError."""
        if cancel is None:
            return await aw
        if cancel.is_set():
            if asyncio.iscoroutine(aw):
                aw.close()
            raise ChatCancelledError()
        work = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for fut in (work, waiter):
                if not fut.done():
                    fut.cancel()
        if work.done() and not work.cancelled():
            return work.result()
        # Let the aborted request unwind before reporting the cancellation.
        await asyncio.gather(work, return_exceptions=True)
        raise ChatCancelledError()

    async def generate(
        self,
        user_query: str,
        system_prompt: str,
        cancel: asyncio.Event | None = None,
    ) -> ChatResult:
        """
        Run the retry loop. Never raises for upstream failures: returns SUCCESS with the
        parsed answer, EXHAUSTED with the fallback, or CANCELLED when cancel fires.
        Raises ServiceUnavailableError when no API key is configured.
        """
        if not self.api_key:
            raise ServiceUnavailableError("The AI assistant is not configured. Set GEMINI_API_KEY.")
        payload = build_payload(user_query, system_prompt)
        logger.info(
            "[gemini:generate] IN  query_len=%d prompt_len=%d max_retries=%d",
            len(user_query), len(system_prompt), self.max_retries,
        )
        attempts = 0
        if cancel is not None and cancel.is_set():
            return ChatResult(ChatOutcome.CANCELLED, cancelled_response(), attempts)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for attempt in range(self.max_retries):
                attempts = attempt + 1
                try:
                    response = await self._until_cancelled(self._attempt(client, payload), cancel)
                    logger.info("[gemini:generate] OUT success attempts=%d", attempts)
                    return ChatResult(ChatOutcome.SUCCESS, response, attempts)
                except ChatCancelledError:
                    logger.info("[gemini:generate] cancelled during attempt %d", attempts)
                    return ChatResult(ChatOutcome.CANCELLED, cancelled_response(), attempts)
                except UpstreamError as e:
                    logger.error("Gemini API attempt %d failed: %s", attempts, e)
                if attempts == self.max_retries:
                    break
                delay = self.retry_delay(attempt)
                logger.info("[gemini:generate] retrying in %.2fs", delay)
                try:
                    await self._until_cancelled(self._sleep(delay), cancel)
                except ChatCancelledError:
                    logger.info("[gemini:generate] cancelled during backoff after attempt %d", attempts)
                    return ChatResult(ChatOutcome.CANCELLED, cancelled_response(), attempts)
        logger.warning("[gemini:generate] OUT exhausted attempts=%d", attempts)
        return ChatResult(ChatOutcome.EXHAUSTED, fallback_response(), attempts)
