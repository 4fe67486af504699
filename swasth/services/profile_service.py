"""
Profile: merge updates into the stored health profile and derive chat context and progress.

Responsibility: Business rules over user_db rows. Called by the API; no HTTP here.
"""

import logging
from typing import Any

from swasth.core import user_db
from swasth.schemas.chat import UserContext
from swasth.schemas.user import Profile, ProfileUpdate, ProgressResponse, UserOut

logger = logging.getLogger(__name__)

# Numbers are applied whenever sent (0 included); text and lists only when non-empty
NUMERIC_FIELDS = ("weight", "height", "age", "targetWeight")
TEXT_FIELDS = ("gender", "region", "healthIssues", "goal", "activityLevel", "dietPreference", "allergies")


class UserNotFoundError(Exception):
    """Raised when the token's user no longer exists."""


def to_user_out(user: dict[str, Any]) -> UserOut:
    return UserOut(
        id=user["id"],
        name=user["name"],
        email=user["email"],
        date=user["created_at"],
        profile=Profile(**(user.get("profile") or {})),
    )


def get_user(user_id: int) -> dict[str, Any]:
    user = user_db.get_user_by_id(user_id)
    if user is None:
        raise UserNotFoundError(f"User not found: {user_id}")
    return user


def merge_profile(current: dict[str, Any], update: ProfileUpdate) -> dict[str, Any]:
    """Return current profile with only the provided fields of update applied."""
    fields: dict[str, Any] = {}
    for key in NUMERIC_FIELDS:
        value = getattr(update, key)
        if value is not None:
            fields[key] = value
    for key in TEXT_FIELDS:
        value = getattr(update, key)
        if value:
            fields[key] = value
    merged = {**current, **fields}
    # Round-trip through the schema so stored rows stay valid
    return Profile(**merged).model_dump()


def update_profile(user_id: int, update: ProfileUpdate) -> UserOut:
    user = get_user(user_id)
    profile = merge_profile(user.get("profile") or {}, update)
    name = update.name.strip() if update.name and update.name.strip() else user["name"]
    user_db.save_user(user_id, name, profile)
    logger.info("[profile:update_profile] user_id=%s name_changed=%s", user_id, name != user["name"])
    return to_user_out(get_user(user_id))


def user_context(user: dict[str, Any]) -> UserContext:
    """Chat context for a stored user."""
    profile = Profile(**(user.get("profile") or {}))
    return UserContext(
        name=user.get("name"),
        age=profile.age,
        weight=profile.weight,
        height=profile.height,
        goal=profile.goal,
        region=profile.region,
        dietPreference=profile.dietPreference,
        healthIssues=profile.healthIssues,
        allergies=profile.allergies,
    )


def bmi_category(bmi: float) -> str:
    # Asian cut-offs (WHO expert consultation), used by ICMR
    if bmi < 18.5:
        return "Underweight"
    if bmi < 23.0:
        return "Normal"
    if bmi < 25.0:
        return "Overweight"
    return "Obese"


def compute_progress(profile: Profile) -> ProgressResponse:
    bmi = None
    category = None
    if profile.weight and profile.height:
        metres = profile.height / 100
        bmi = round(profile.weight / (metres * metres), 1)
        category = bmi_category(bmi)
    to_target = None
    if profile.weight and profile.targetWeight:
        to_target = round(profile.weight - profile.targetWeight, 1)
    return ProgressResponse(
        currentWeight=profile.weight,
        targetWeight=profile.targetWeight,
        bmi=bmi,
        bmiCategory=category,
        kgToTarget=to_target,
    )
