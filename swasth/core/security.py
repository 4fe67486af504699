"""
Password hashing and auth tokens.

Tokens are JWTs carrying {"user": {"id": <id>}}; clients send them in the x-auth-token header.
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Header, HTTPException, status
from jose import JWTError, jwt
from passlib.context import CryptContext

from swasth.core import config
from swasth.core.config import JWT_ALGORITHM, JWT_EXPIRES_MINUTES
from swasth.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

# pbkdf2 keeps hashing pure-python; no bcrypt backend needed
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

if not config.JWT_SECRET:
    logger.warning("JWT_SECRET is not set; auth endpoints will answer 503")


def _secret() -> str:
    """Signing key. Raises ServiceUnavailableError when JWT_SECRET is not configured."""
    if not config.JWT_SECRET:
        raise ServiceUnavailableError("Authentication is not configured. Set JWT_SECRET.")
    return config.JWT_SECRET


def ensure_auth_configured() -> None:
    """Raise ServiceUnavailableError unless tokens can be signed."""
    _secret()


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=JWT_EXPIRES_MINUTES))
    to_encode = {"user": {"id": user_id}, "exp": expire}
    return jwt.encode(to_encode, _secret(), algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id in the token. Raises JWTError when the token is invalid or expired."""
    payload = jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    user_id = (payload.get("user") or {}).get("id")
    if not isinstance(user_id, int):
        raise JWTError("Token has no user id")
    return user_id


def get_current_user_id(x_auth_token: str | None = Header(None)) -> int:
    """FastAPI dependency: the caller must present a valid x-auth-token."""
    if not x_auth_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token, authorization denied")
    try:
        return decode_access_token(x_auth_token)
    except ServiceUnavailableError as e:
        logger.error("[security] %s", e.message)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message) from e
    except JWTError as e:
        logger.info("[security] rejected token: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token is not valid") from e
