"""
Lightweight SQLite DB for users and their health profiles.

Creates data/users.db (relative to project root) unless USER_DB_PATH points elsewhere.
Table: users (id, name, email, password_hash, created_at, profile). Profile is a JSON object.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from swasth.core.config import USER_DB_PATH

logger = logging.getLogger(__name__)

# Project root (Swasth Bharat)
_ROOT = Path(__file__).resolve().parent.parent.parent
_DB_PATH = Path(USER_DB_PATH) if Path(USER_DB_PATH).is_absolute() else _ROOT / USER_DB_PATH
_TABLE = "users"


class DuplicateEmailError(Exception):
    """Raised when registering an email that already exists."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"User already exists: {email}")


def _get_conn() -> sqlite3.Connection:
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(_DB_PATH))
    conn.row_factory = sqlite3.Row
    return conn


def _row_to_user(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    user = dict(row)
    user["profile"] = json.loads(user.get("profile") or "{}")
    return user


def init_db() -> None:
    """Create the users table if it does not exist."""
    conn = _get_conn()
    try:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                created_at TEXT NOT NULL,
                profile TEXT NOT NULL DEFAULT '{{}}'
            )
            """
        )
        conn.commit()
    finally:
        conn.close()


def create_user(name: str, email: str, password_hash: str) -> dict[str, Any]:
    """Insert a user with an empty profile. Emails are stored lower-cased."""
    email = email.strip().lower()
    init_db()
    conn = _get_conn()
    try:
        try:
            cur = conn.execute(
                f"INSERT INTO {_TABLE} (name, email, password_hash, created_at, profile) VALUES (?, ?, ?, ?, ?)",
                (name.strip(), email, password_hash, datetime.now(timezone.utc).isoformat(), "{}"),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateEmailError(email) from e
        conn.commit()
        user_id = cur.lastrowid
        logger.info("[user_db] created user id=%s", user_id)
    finally:
        conn.close()
    return get_user_by_id(user_id)


def get_user_by_email(email: str) -> dict[str, Any] | None:
    init_db()
    conn = _get_conn()
    try:
        row = conn.execute(f"SELECT * FROM {_TABLE} WHERE email = ?", (email.strip().lower(),)).fetchone()
        return _row_to_user(row)
    finally:
        conn.close()


def get_user_by_id(user_id: int) -> dict[str, Any] | None:
    init_db()
    conn = _get_conn()
    try:
        row = conn.execute(f"SELECT * FROM {_TABLE} WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row)
    finally:
        conn.close()


def save_user(user_id: int, name: str, profile: dict[str, Any]) -> None:
    """Overwrite name and profile for the user."""
    init_db()
    conn = _get_conn()
    try:
        conn.execute(
            f"UPDATE {_TABLE} SET name = ?, profile = ? WHERE id = ?",
            (name, json.dumps(profile), user_id),
        )
        conn.commit()
        logger.info("[user_db] saved profile for user id=%s fields=%d", user_id, len(profile))
    finally:
        conn.close()


def clear_all() -> None:
    """Delete all rows. Used by the seed script with --reset."""
    init_db()
    conn = _get_conn()
    try:
        conn.execute(f"DELETE FROM {_TABLE}")
        conn.commit()
        logger.info("[user_db] cleared all users")
    finally:
        conn.close()
