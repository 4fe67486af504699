"""
Prompt construction for the nutrition assistant.

Responsibility: Turn a UserContext into the system instruction sent to Gemini.
The user's question is never mixed into this text; it travels as separate turn content.
Absent fields render as fixed fallback tokens so the prompt shape never changes.
"""

from swasth.schemas.chat import UserContext

NOT_AVAILABLE = "N/A"
NO_ITEMS = "None"
DEFAULT_GOAL = "General Health"
DEFAULT_PROFILE_REGION = "All India"
DEFAULT_RECIPE_REGION = "India"

PROFILE_TEMPLATE = """User Profile Summary:
Name: {name}
Age: {age}
Weight: {weight} kg, Height: {height} cm
Goal: {goal}
Region: {region}
Diet Preference: {diet}
Health Issues: {health_issues}
Allergies: {allergies}"""

SYSTEM_TEMPLATE = """You are the Swasth Bharat AI Nutrition Assistant. Your primary goal is to provide accurate, safe, and personalized dietary and nutrition advice tailored for the Indian population.

Knowledge Base: Your advice MUST be grounded in established Indian nutritional science, citing information relevant to the user's region, diet, and health condition. You MUST use the latest ICMR-NIN Dietary Guidelines for Indians (2024) and data from the Indian Food Composition Tables (IFCT 2017) as your foundation.

Persona: Be helpful, empathetic, and encouraging. Respond concisely and clearly. Incorporate Hindi greetings (like Namaste) or phrases when appropriate.

Instructions:
1. Use the provided Google Search tool (grounding) to access current, specific, and external data, especially when discussing specific food items, clinical recommendations, or updated guidelines.
2. When providing recipe ideas, prioritize ingredients common to the user's specified region ({recipe_region}).
3. Always explicitly consider the user's **Health Issues** and **Allergies** in your response.
4. Provide the answer in rich, conversational text format.

{profile}"""


def _text(value: object, fallback: str) -> str:
    """Render a scalar field; None, empty strings and zero fall back."""
    if value is None or value == "" or value == 0:
        return fallback
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip() or fallback


def join_items(value: list[str] | str | None, fallback: str = NO_ITEMS) -> str:
    """Join a list field with ', '. Blank entries are skipped; an empty result falls back."""
    if isinstance(value, str):
        return value.strip() or fallback
    items = [str(v).strip() for v in (value or []) if v is not None and str(v).strip()]
    return ", ".join(items) or fallback


def build_profile_context(ctx: UserContext) -> str:
    return PROFILE_TEMPLATE.format(
        name=_text(ctx.name, NOT_AVAILABLE),
        age=_text(ctx.age, NOT_AVAILABLE),
        weight=_text(ctx.weight, NOT_AVAILABLE),
        height=_text(ctx.height, NOT_AVAILABLE),
        goal=_text(ctx.goal, DEFAULT_GOAL),
        region=_text(ctx.region, DEFAULT_PROFILE_REGION),
        diet=_text(ctx.dietPreference, NOT_AVAILABLE),
        health_issues=join_items(ctx.healthIssues),
        allergies=join_items(ctx.allergies),
    )


def build_system_prompt(ctx: UserContext | None) -> str:
    """Compose the full system instruction. Deterministic for identical input."""
    ctx = ctx or UserContext()
    return SYSTEM_TEMPLATE.format(
        recipe_region=_text(ctx.region, DEFAULT_RECIPE_REGION),
        profile=build_profile_context(ctx),
    )
