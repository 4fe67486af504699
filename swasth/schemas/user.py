"""Schemas for auth, profile and progress endpoints."""

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6, description="At least 6 characters.")


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Signed token to send back in the x-auth-token header."""

    token: str


class Profile(BaseModel):
    """Health profile stored alongside the user."""

    weight: float | None = Field(None, description="Current weight in kg.")
    height: float | None = Field(None, description="Height in cm.")
    age: int | None = None
    gender: str | None = None
    region: str | None = None
    healthIssues: list[str] = Field(default_factory=list)
    goal: str | None = None
    targetWeight: float | None = Field(None, description="Goal weight in kg.")
    activityLevel: str | None = Field(None, description="e.g. Sedentary, Moderate, Active.")
    dietPreference: str | None = None
    allergies: list[str] = Field(default_factory=list)


class ProfileUpdate(Profile):
    """Request body for PUT /api/user/profile. Only provided fields are applied."""

    name: str | None = None
    healthIssues: list[str] | None = None
    allergies: list[str] | None = None


class UserOut(BaseModel):
    """User as returned to the client (no password hash)."""

    id: int
    name: str
    email: str
    date: str
    profile: Profile


class ProgressResponse(BaseModel):
    """Response for GET /api/user/progress."""

    currentWeight: float | None = None
    targetWeight: float | None = None
    bmi: float | None = Field(None, description="weight / height(m)^2, one decimal.")
    bmiCategory: str | None = None
    kgToTarget: float | None = Field(None, description="Positive when above target weight.")
