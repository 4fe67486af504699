"""
UI application state as one immutable object, updated only through reduce(state, action).

Streamlit keeps a single AppState in st.session_state; pages read it and dispatch actions
instead of mutating fields directly. Pure functions, no Streamlit import, so it is testable.
"""

from dataclasses import dataclass, field, replace
from typing import Any

PAGES = ("auth", "register", "home", "profile", "chat", "recipes", "progress")
PUBLIC_PAGES = ("auth", "register")

WELCOME_TEXT = (
    "नमस्ते! I'm your AI nutrition assistant. I can help you with meal planning, "
    "nutrition advice, and answer your dietary questions in Hindi or English!"
)


@dataclass(frozen=True)
class ChatMessage:
    sender: str  # "user" | "bot"
    text: str
    sources: tuple[dict[str, str], ...] = ()
    ok: bool = True


def _welcome() -> tuple[ChatMessage, ...]:
    return (ChatMessage(sender="bot", text=WELCOME_TEXT),)


@dataclass(frozen=True)
class AppState:
    page: str = "auth"
    token: str | None = None
    user: dict[str, Any] = field(default_factory=dict)
    messages: tuple[ChatMessage, ...] = field(default_factory=_welcome)
    is_typing: bool = False
    error: str | None = None

    @property
    def logged_in(self) -> bool:
        return self.token is not None


# --- Actions ---

@dataclass(frozen=True)
class Navigate:
    page: str


@dataclass(frozen=True)
class LoggedIn:
    token: str
    user: dict[str, Any]


@dataclass(frozen=True)
class LoggedOut:
    pass


@dataclass(frozen=True)
class ProfileSaved:
    user: dict[str, Any]


@dataclass(frozen=True)
class ChatSent:
    text: str


@dataclass(frozen=True)
class ChatAnswered:
    text: str
    sources: tuple[dict[str, str], ...] = ()
    ok: bool = True


@dataclass(frozen=True)
class Failed:
    message: str


def reduce(state: AppState, action: object) -> AppState:
    """Return the next state. Unknown actions leave state unchanged."""
    if isinstance(action, Navigate):
        if action.page not in PAGES:
            return state
        if action.page not in PUBLIC_PAGES and not state.logged_in:
            return replace(state, page="auth")
        return replace(state, page=action.page, error=None)
    if isinstance(action, LoggedIn):
        return replace(state, token=action.token, user=dict(action.user), page="home", error=None)
    if isinstance(action, LoggedOut):
        return AppState()
    if isinstance(action, ProfileSaved):
        return replace(state, user=dict(action.user), page="home", error=None)
    if isinstance(action, ChatSent):
        text = action.text.strip()
        if not text or state.is_typing:
            return state
        return replace(
            state,
            messages=state.messages + (ChatMessage(sender="user", text=text),),
            is_typing=True,
        )
    if isinstance(action, ChatAnswered):
        message = ChatMessage(sender="bot", text=action.text, sources=tuple(action.sources), ok=action.ok)
        return replace(state, messages=state.messages + (message,), is_typing=False)
    if isinstance(action, Failed):
        return replace(state, error=action.message, is_typing=False)
    return state


def pending_query(state: AppState) -> str | None:
    """The user message awaiting an answer, if any."""
    if state.is_typing and state.messages and state.messages[-1].sender == "user":
        return state.messages[-1].text
    return None


def user_context(user: dict[str, Any]) -> dict[str, Any]:
    """Flatten a /api/user/profile body into the userData shape the chat endpoint takes."""
    profile = user.get("profile") or {}
    return {
        "name": user.get("name"),
        "age": profile.get("age"),
        "weight": profile.get("weight"),
        "height": profile.get("height"),
        "goal": profile.get("goal"),
        "region": profile.get("region"),
        "dietPreference": profile.get("dietPreference"),
        "healthIssues": profile.get("healthIssues") or [],
        "allergies": profile.get("allergies") or [],
    }


def split_items(raw: str) -> list[str]:
    """'Diabetes, , BP ' -> ['Diabetes', 'BP'] for the comma-separated form inputs."""
    return [item.strip() for item in (raw or "").split(",") if item.strip()]
