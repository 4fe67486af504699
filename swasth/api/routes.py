"""
API route aggregator: register endpoints; no logic, only delegate to handlers.
"""

import logging

from fastapi import APIRouter, Depends, Request

from swasth.api.handlers import (
    handle_chat,
    handle_get_profile,
    handle_login,
    handle_progress,
    handle_register,
    handle_update_profile,
)
from swasth.core.security import get_current_user_id
from swasth.schemas.chat import ChatRequest, ChatResponse
from swasth.schemas.recipe import RecipeList
from swasth.schemas.user import LoginRequest, ProfileUpdate, ProgressResponse, RegisterRequest, TokenResponse, UserOut
from swasth.services.chat_service import get_gemini_client
from swasth.services.gemini_client import GeminiClient
from swasth.services.recipes import INDIAN_REGIONS, list_recipes

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Swasth Bharat API is running."}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Auth ---

@router.post(
    "/api/auth/register",
    response_model=TokenResponse,
    tags=["auth"],
    summary="Register a user",
    description="Create a user with an empty profile and return a token. 400 if the email exists.",
)
def register(body: RegisterRequest) -> TokenResponse:
    return handle_register(body)


@router.post(
    "/api/auth/login",
    response_model=TokenResponse,
    tags=["auth"],
    summary="Log in",
    description="Return a token for valid credentials. 400 on invalid credentials.",
)
def login(body: LoginRequest) -> TokenResponse:
    return handle_login(body)


# --- Profile ---

@router.get("/api/user/profile", response_model=UserOut, tags=["profile"], summary="Fetch the caller's profile")
def get_profile(user_id: int = Depends(get_current_user_id)) -> UserOut:
    return handle_get_profile(user_id)


@router.put(
    "/api/user/profile",
    response_model=UserOut,
    tags=["profile"],
    summary="Update the caller's profile",
    description="Only fields present in the body are applied; name updates the account name.",
)
def put_profile(body: ProfileUpdate, user_id: int = Depends(get_current_user_id)) -> UserOut:
    return handle_update_profile(user_id, body)


@router.get(
    "/api/user/progress",
    response_model=ProgressResponse,
    tags=["profile"],
    summary="Weight, BMI and distance to target weight",
)
def get_progress(user_id: int = Depends(get_current_user_id)) -> ProgressResponse:
    return handle_progress(user_id)


# --- Chat ---

@router.post(
    "/api/gemini/chat",
    response_model=ChatResponse,
    tags=["chat"],
    summary="Ask the AI nutrition assistant",
    description=(
        "Proxy the question to Gemini with the user's profile as context. Body is always "
        "{text, sources, ok}: 200 answered, 503 assistant unavailable after retries, "
        "499 client disconnected, 400 empty question."
    ),
    responses={
        503: {"model": ChatResponse, "description": "Assistant unavailable after retries (fallback body, ok=false)."},
        499: {"model": ChatResponse, "description": "Request cancelled because the client disconnected."},
    },
)
async def post_chat(
    body: ChatRequest,
    request: Request,
    user_id: int = Depends(get_current_user_id),
    client: GeminiClient = Depends(get_gemini_client),
):
    return await handle_chat(body, request, user_id, client)


# --- Recipes ---

@router.get("/api/recipes", response_model=RecipeList, tags=["recipes"], summary="List regional recipes")
def get_recipes(region: str = "", diet: str = "", q: str = "") -> RecipeList:
    return RecipeList(recipes=list_recipes(region=region, diet=diet, query=q))


@router.get("/api/regions", tags=["recipes"], summary="Indian regions for the profile form")
def get_regions() -> dict:
    return {"regions": INDIAN_REGIONS}
