"""Schemas for the chat (Gemini proxy) endpoint."""

from pydantic import BaseModel, Field

Scalar = int | float | str


class UserContext(BaseModel):
    """Profile data used to personalise the system prompt. Every field is optional."""

    name: str | None = None
    age: Scalar | None = None
    weight: Scalar | None = Field(None, description="Weight in kg.")
    height: Scalar | None = Field(None, description="Height in cm.")
    goal: str | None = Field(None, description="e.g. Weight Loss, Muscle Gain, Maintenance.")
    region: str | None = Field(None, description="e.g. North India, South India.")
    dietPreference: str | None = Field(None, description="e.g. Vegetarian, Vegan, Non-Vegetarian.")
    healthIssues: list[str] | str | None = None
    allergies: list[str] | str | None = None


class ChatRequest(BaseModel):
    """Request body for POST /api/gemini/chat. userData falls back to the stored profile."""

    userQuery: str = Field(..., description="Free-text question for the nutrition assistant.")
    userData: UserContext | None = Field(None, description="Profile context; omitted means use the stored profile.")


class Source(BaseModel):
    """One grounding citation."""

    uri: str
    title: str


class ChatResponse(BaseModel):
    """Response for POST /api/gemini/chat. ok is False for the fallback and cancelled replies."""

    text: str = Field(..., description="Assistant answer, or the apology text when the upstream call failed.")
    sources: list[Source] = Field(default_factory=list, description="Web citations, upstream order.")
    ok: bool = Field(True, description="True only when the text came from the model.")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "text": "Namaste! For diabetes, prefer whole grains like ragi and jowar...",
                    "sources": [{"uri": "https://www.nin.res.in/", "title": "ICMR-NIN"}],
                    "ok": True,
                }
            ]
        }
    }
