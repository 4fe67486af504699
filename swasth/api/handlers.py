"""
API handlers: read request data, call services, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Marshalling and exception-to-HTTP mapping.
Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

import asyncio
import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from swasth.core import user_db
from swasth.core.errors import ServiceUnavailableError
from swasth.core.security import create_access_token, ensure_auth_configured, get_password_hash, verify_password
from swasth.schemas.chat import ChatRequest
from swasth.schemas.user import LoginRequest, ProfileUpdate, ProgressResponse, RegisterRequest, TokenResponse, UserOut
from swasth.services import profile_service
from swasth.services.chat_service import answer_query
from swasth.services.gemini_client import ChatOutcome, GeminiClient

logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 0.5

# Exhausted retries are told apart from answers by status as well as the ok flag
CHAT_STATUS = {
    ChatOutcome.SUCCESS: 200,
    ChatOutcome.EXHAUSTED: 503,
    ChatOutcome.CANCELLED: 499,
}


def _require_auth() -> None:
    try:
        ensure_auth_configured()
    except ServiceUnavailableError as e:
        logger.error("[api:auth] %s", e.message)
        raise HTTPException(status_code=503, detail=e.message) from e


def _load_user(user_id: int) -> dict:
    try:
        return profile_service.get_user(user_id)
    except profile_service.UserNotFoundError as e:
        raise HTTPException(status_code=404, detail="User not found") from e


# --- Auth ---

def handle_register(body: RegisterRequest) -> TokenResponse:
    _require_auth()
    try:
        user = user_db.create_user(body.name, body.email, get_password_hash(body.password))
    except user_db.DuplicateEmailError as e:
        raise HTTPException(status_code=400, detail="User already exists") from e
    logger.info("[api:register] user_id=%s", user["id"])
    return TokenResponse(token=create_access_token(user["id"]))


def handle_login(body: LoginRequest) -> TokenResponse:
    _require_auth()
    user = user_db.get_user_by_email(body.email)
    if user is None or not verify_password(body.password, user["password_hash"]):
        raise HTTPException(status_code=400, detail="Invalid credentials")
    logger.info("[api:login] user_id=%s", user["id"])
    return TokenResponse(token=create_access_token(user["id"]))


# --- Profile ---

def handle_get_profile(user_id: int) -> UserOut:
    return profile_service.to_user_out(_load_user(user_id))


def handle_update_profile(user_id: int, body: ProfileUpdate) -> UserOut:
    try:
        return profile_service.update_profile(user_id, body)
    except profile_service.UserNotFoundError as e:
        raise HTTPException(status_code=404, detail="User not found") from e


def handle_progress(user_id: int) -> ProgressResponse:
    user = profile_service.to_user_out(_load_user(user_id))
    return profile_service.compute_progress(user.profile)


# --- Chat ---

async def _watch_disconnect(request: Request, cancel: asyncio.Event) -> None:
    """Set cancel once the client goes away, so retries and backoff stop."""
    while not cancel.is_set():
        if await request.is_disconnected():
            logger.info("[api:chat] client disconnected; cancelling")
            cancel.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


async def handle_chat(body: ChatRequest, request: Request, user_id: int, client: GeminiClient) -> JSONResponse:
    """
    Proxy one question. userData from the body wins; otherwise the stored profile is used.
    Always answers with a ChatResponse body; status tells success (200), exhausted (503)
    and cancelled (499) apart.
    """
    if not (body.userQuery or "").strip():
        raise HTTPException(status_code=400, detail="userQuery must not be empty")
    user_data = body.userData
    if user_data is None:
        user_data = await asyncio.to_thread(lambda: profile_service.user_context(_load_user(user_id)))

    cancel = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel))
    try:
        result = await answer_query(body.userQuery, user_data, client, cancel=cancel)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ServiceUnavailableError as e:
        logger.error("[api:chat] %s", e.message)
        raise HTTPException(status_code=503, detail=e.message) from e
    finally:
        watcher.cancel()
    return JSONResponse(status_code=CHAT_STATUS[result.outcome], content=result.response.model_dump())
