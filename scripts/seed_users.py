#!/usr/bin/env python3
"""
Seed the users SQLite DB with a demo account.

Creates data/users.db (if missing), ensures the users table exists,
and inserts the demo user with a filled-in health profile. Use --reset to clear
existing rows first.

Run from project root:

    python scripts/seed_users.py
    python scripts/seed_users.py --reset

Log in from the UI with the email/password below.
"""

import argparse
import sys
from pathlib import Path

# Project root on path so "swasth" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from swasth.core.security import get_password_hash
from swasth.core.user_db import DuplicateEmailError, clear_all, create_user, init_db, save_user

DEMO_EMAIL = "demo@swasth.in"
DEMO_PASSWORD = "namaste123"
DEMO_PROFILE = {
    "weight": 72.0,
    "height": 168.0,
    "age": 34,
    "gender": "Female",
    "region": "South India",
    "healthIssues": ["Type 2 Diabetes"],
    "goal": "Weight Loss",
    "targetWeight": 65.0,
    "activityLevel": "Moderate",
    "dietPreference": "Vegetarian",
    "allergies": ["Peanuts"],
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed users DB with a demo account.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear all existing users before inserting the demo user.",
    )
    args = parser.parse_args()

    init_db()
    if args.reset:
        clear_all()
        print("Cleared existing users.")

    try:
        user = create_user("Demo User", DEMO_EMAIL, get_password_hash(DEMO_PASSWORD))
    except DuplicateEmailError:
        print(f"Demo user already exists: {DEMO_EMAIL} (use --reset to recreate)")
        return
    save_user(user["id"], user["name"], DEMO_PROFILE)
    print(f"Done. Seeded {DEMO_EMAIL} / {DEMO_PASSWORD}")


if __name__ == "__main__":
    main()
