"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Gemini (generative language API). The key stays on the server; never send it to clients.
GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "").strip()
GEMINI_MODEL: str = (
    os.getenv("GEMINI_MODEL", "gemini-2.5-flash-preview-09-2025").strip()
    or "gemini-2.5-flash-preview-09-2025"
)
GEMINI_API_BASE: str = os.getenv(
    "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
).rstrip("/")

# API timeouts (seconds)
GEMINI_API_TIMEOUT: float = 60.0

# Retry policy: delay = min(cap, 2**attempt * base) + uniform(0, jitter)
GEMINI_MAX_RETRIES: int = 5
GEMINI_BACKOFF_BASE_SECONDS: float = 1.0
GEMINI_BACKOFF_CAP_SECONDS: float = 30.0
GEMINI_JITTER_SECONDS: float = 1.0

# Auth tokens (x-auth-token header)
JWT_SECRET: str = os.getenv("JWT_SECRET", "").strip()
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRES_MINUTES: int = int(os.getenv("JWT_EXPIRES_MINUTES", "600"))

# SQLite user store (relative paths resolve from project root)
USER_DB_PATH: str = os.getenv("USER_DB_PATH", "data/users.db").strip() or "data/users.db"

# CORS: RENDER_CLIENT_URL wins over CLIENT_URL, then the Vite dev server
CLIENT_URL: str = (
    os.getenv("RENDER_CLIENT_URL", "").strip()
    or os.getenv("CLIENT_URL", "").strip()
    or "http://localhost:5173"
)
