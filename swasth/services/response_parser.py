"""
Normalize a Gemini generateContent body into a ChatResponse.

Expected shape:
    {candidates: [{content: {parts: [{text}]},
                   groundingMetadata?: {groundingAttributions?: [{web?: {uri, title}}]}}]}
Only the first candidate and its first part are used.
"""

import logging
from typing import Any

from swasth.core.errors import UpstreamShapeError
from swasth.schemas.chat import ChatResponse, Source

logger = logging.getLogger(__name__)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def extract_sources(candidate: dict[str, Any]) -> list[Source]:
    """Map grounding attributions to {uri, title}; drop entries missing either, keep order."""
    metadata = _as_dict(candidate.get("groundingMetadata"))
    attributions = metadata.get("groundingAttributions") or []
    if not isinstance(attributions, list):
        return []
    sources: list[Source] = []
    for attr in attributions:
        web = _as_dict(_as_dict(attr).get("web"))
        uri, title = web.get("uri"), web.get("title")
        if uri and title:
            sources.append(Source(uri=str(uri), title=str(title)))
    return sources


def parse_generate_response(body: Any) -> ChatResponse:
    """
    Return text and sources from the first candidate.
    Raises UpstreamShapeError when candidates, parts or a non-empty text are missing.
    """
    candidate = _first(_as_dict(body).get("candidates"))
    if not isinstance(candidate, dict):
        raise UpstreamShapeError("Invalid response structure: no candidates")
    part = _as_dict(_first(_as_dict(candidate.get("content")).get("parts")))
    text = part.get("text")
    if not isinstance(text, str) or not text:
        reason = candidate.get("finishReason") or "missing text"
        raise UpstreamShapeError(f"Invalid response structure: {reason}")
    sources = extract_sources(candidate)
    logger.info("[response_parser] OUT text_len=%d sources=%d", len(text), len(sources))
    return ChatResponse(text=text, sources=sources)
