"""Schemas for the recipes endpoint."""

from pydantic import BaseModel, Field


class Recipe(BaseModel):
    """A static regional recipe card."""

    name: str
    region: str = Field(..., description="North, South, East, West, Northeast or Central.")
    diet: str = Field(..., description="Vegetarian, Vegan or Non-Vegetarian.")
    kcal: int = Field(..., description="Approximate calories per serving.")


class RecipeList(BaseModel):
    """Response for GET /api/recipes."""

    recipes: list[Recipe]
