"""
Tests for the Gemini client retry loop.

Uses httpx.MockTransport in place of the real API and a recording sleep so no test waits
on real backoff delays.
"""

import asyncio
import json
import random

import httpx
import pytest

from swasth.core.errors import ServiceUnavailableError
from swasth.services.gemini_client import (
    FALLBACK_TEXT,
    ChatOutcome,
    GeminiClient,
    backoff_delay,
    build_payload,
)

VALID_BODY = {
    "candidates": [
        {
            "content": {"parts": [{"text": "Try ragi dosa for breakfast."}]},
            "groundingMetadata": {
                "groundingAttributions": [
                    {"web": {"uri": "https://www.nin.res.in/", "title": "ICMR-NIN"}},
                    {"web": {"uri": "https://example.org/untitled"}},
                ]
            },
        }
    ]
}


class RecordingSleep:
    """Async stand-in for asyncio.sleep that only records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FlakyUpstream:
    """Fails the first `failures` calls with `failure`, then answers with VALID_BODY."""

    def __init__(self, failures: int, failure: str = "status") -> None:
        self.failures = failures
        self.failure = failure
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.requests) > self.failures:
            return httpx.Response(200, json=VALID_BODY)
        if self.failure == "transport":
            raise httpx.ConnectError("connection refused", request=request)
        if self.failure == "shape":
            return httpx.Response(200, json={"candidates": [{"finishReason": "SAFETY"}]})
        return httpx.Response(500, json={"error": {"message": "internal"}})


def _client(handler, sleep=None, **kwargs) -> GeminiClient:
    kwargs.setdefault("jitter", 0.0)
    return GeminiClient(
        api_key="test-key",
        model="test-model",
        api_base="https://gemini.test/v1beta",
        transport=httpx.MockTransport(handler),
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


def test_build_payload_separates_query_and_system_prompt() -> None:
    """The question goes in contents; the profile prompt goes in systemInstruction with search grounding on."""
    payload = build_payload("What should I eat?", "You are a nutritionist.")
    assert payload == {
        "contents": [{"parts": [{"text": "What should I eat?"}]}],
        "tools": [{"google_search": {}}],
        "systemInstruction": {"parts": [{"text": "You are a nutritionist."}]},
    }


def test_first_attempt_success_sends_expected_request() -> None:
    """A good first answer makes one POST to generateContent with the key in the query string."""
    upstream = FlakyUpstream(failures=0)
    sleep = RecordingSleep()
    result = asyncio.run(_client(upstream, sleep).generate("Breakfast ideas?", "SYSTEM"))
    assert result.outcome is ChatOutcome.SUCCESS
    assert result.attempts == 1
    assert sleep.delays == []
    request = upstream.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/v1beta/models/test-model:generateContent"
    assert request.url.params["key"] == "test-key"
    sent = json.loads(request.content)
    assert sent["contents"][0]["parts"][0]["text"] == "Breakfast ideas?"
    assert sent["systemInstruction"]["parts"][0]["text"] == "SYSTEM"


@pytest.mark.parametrize("failure", ["status", "transport", "shape"])
def test_four_failures_then_success_makes_five_calls(failure: str) -> None:
    """Any failure kind is retried, and a fifth-attempt success is still returned."""
    upstream = FlakyUpstream(failures=4, failure=failure)
    result = asyncio.run(_client(upstream).generate("q", "p"))
    assert result.outcome is ChatOutcome.SUCCESS
    assert result.attempts == 5
    assert len(upstream.requests) == 5
    assert result.response.text == "Try ragi dosa for breakfast."
    assert [s.model_dump() for s in result.response.sources] == [
        {"uri": "https://www.nin.res.in/", "title": "ICMR-NIN"}
    ]
    assert result.response.ok is True


def test_always_500_returns_fallback_after_five_attempts() -> None:
    """Five failures give the fallback after doubling sleeps, with no sleep after the last attempt."""
    upstream = FlakyUpstream(failures=100)
    sleep = RecordingSleep()
    result = asyncio.run(_client(upstream, sleep).generate("q", "p"))
    assert result.outcome is ChatOutcome.EXHAUSTED
    assert result.attempts == 5
    assert len(upstream.requests) == 5
    assert result.response.text == FALLBACK_TEXT
    assert result.response.sources == []
    assert result.response.ok is False
    # No sleep after the last attempt; delays strictly increase
    assert sleep.delays == [1.0, 2.0, 4.0, 8.0]
    assert all(a < b for a, b in zip(sleep.delays, sleep.delays[1:]))


def test_failed_attempts_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    """Every failed attempt is logged with its number."""
    upstream = FlakyUpstream(failures=2)
    with caplog.at_level("ERROR", logger="swasth.services.gemini_client"):
        asyncio.run(_client(upstream).generate("q", "p"))
    messages = [r.getMessage() for r in caplog.records if r.levelname == "ERROR"]
    assert messages == [
        "Gemini API attempt 1 failed: HTTP error! status: 500",
        "Gemini API attempt 2 failed: HTTP error! status: 500",
    ]


def test_jitter_stays_within_bound() -> None:
    """Jitter adds at most the configured amount on top of the exponential delay."""
    sleep = RecordingSleep()
    client = _client(FlakyUpstream(failures=100), sleep, jitter=1.0, rng=random.Random(7))
    asyncio.run(client.generate("q", "p"))
    for attempt, delay in enumerate(sleep.delays):
        base = backoff_delay(attempt)
        assert base <= delay <= base + 1.0


def test_backoff_is_capped() -> None:
    """Exponential delay never exceeds the cap."""
    assert backoff_delay(0) == 1.0
    assert backoff_delay(3) == 8.0
    assert backoff_delay(10) == 30.0
    assert backoff_delay(4, base=1.0, cap=10.0) == 10.0


def test_missing_api_key_is_service_unavailable() -> None:
    """No API key raises ServiceUnavailableError before any request."""
    client = GeminiClient(api_key="", transport=httpx.MockTransport(FlakyUpstream(0)))
    with pytest.raises(ServiceUnavailableError):
        asyncio.run(client.generate("q", "p"))


def test_max_retries_must_be_positive() -> None:
    """A client with zero attempts is refused at construction."""
    with pytest.raises(ValueError):
        GeminiClient(api_key="k", max_retries=0)


# --- cancellation ---

def test_cancel_during_backoff_stops_retrying() -> None:
    """Cancelling while backing off returns CANCELLED without another attempt."""
    upstream = FlakyUpstream(failures=100)

    async def run():
        cancel = asyncio.Event()

        async def sleep_then_cancel(delay: float) -> None:
            cancel.set()
            await asyncio.sleep(10)

        client = _client(upstream, sleep_then_cancel)
        return await asyncio.wait_for(client.generate("q", "p", cancel=cancel), timeout=5)

    result = asyncio.run(run())
    assert result.outcome is ChatOutcome.CANCELLED
    assert result.attempts == 1
    assert len(upstream.requests) == 1
    assert result.response.ok is False
    assert result.response.text != FALLBACK_TEXT


def test_cancel_aborts_in_flight_request() -> None:
    """Cancelling during a request abandons it and makes no further call."""
    calls = []

    async def run():
        cancel = asyncio.Event()

        async def hanging(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            cancel.set()
            await asyncio.sleep(10)
            return httpx.Response(200, json=VALID_BODY)

        client = _client(hanging)
        return await asyncio.wait_for(client.generate("q", "p", cancel=cancel), timeout=5)

    result = asyncio.run(run())
    assert result.outcome is ChatOutcome.CANCELLED
    assert len(calls) == 1


def test_already_cancelled_makes_no_call() -> None:
    """An event that is already set means no request is made at all."""
    upstream = FlakyUpstream(failures=0)

    async def run():
        cancel = asyncio.Event()
        cancel.set()
        return await _client(upstream).generate("q", "p", cancel=cancel)

    result = asyncio.run(run())
    assert result.outcome is ChatOutcome.CANCELLED
    assert result.attempts == 0
    assert upstream.requests == []
