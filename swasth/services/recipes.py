"""
Static regional recipe catalog.

No storage: the list below is the whole catalog. Filters are case-insensitive.
"""

from swasth.schemas.recipe import Recipe

INDIAN_REGIONS = [
    "North India",
    "South India",
    "East India",
    "West India",
    "Northeast India",
    "Central India",
]

RECIPES: list[Recipe] = [
    Recipe(name="Palak Paneer", region="North", diet="Vegetarian", kcal=350),
    Recipe(name="Rajma Chawal", region="North", diet="Vegan", kcal=420),
    Recipe(name="Masala Dosa", region="South", diet="Vegetarian", kcal=350),
    Recipe(name="Sambar with Ragi Mudde", region="South", diet="Vegan", kcal=380),
    Recipe(name="Shorshe Ilish", region="East", diet="Non-Vegetarian", kcal=350),
    Recipe(name="Chana Ghugni", region="East", diet="Vegan", kcal=300),
    Recipe(name="Dhokla", region="West", diet="Vegetarian", kcal=350),
    Recipe(name="Thalipeeth", region="West", diet="Vegetarian", kcal=310),
    Recipe(name="Masor Tenga", region="Northeast", diet="Non-Vegetarian", kcal=280),
    Recipe(name="Dal Bafla", region="Central", diet="Vegetarian", kcal=450),
]


def _region_key(region: str) -> str:
    """'North India' and 'north' both map to 'north'."""
    return region.strip().lower().removesuffix(" india").strip()


def list_recipes(region: str | None = None, diet: str | None = None, query: str | None = None) -> list[Recipe]:
    """
    Filter the catalog. region accepts 'North' or 'North India'; diet matches exactly;
    query is a substring of the name. Vegetarian also admits vegan dishes.
    """
    results = RECIPES
    if region and region.strip():
        key = _region_key(region)
        results = [r for r in results if r.region.lower() == key]
    if diet and diet.strip():
        wanted = diet.strip().lower()
        allowed = {wanted, "vegan"} if wanted == "vegetarian" else {wanted}
        results = [r for r in results if r.diet.lower() in allowed]
    if query and query.strip():
        needle = query.strip().lower()
        results = [r for r in results if needle in r.name.lower()]
    return list(results)
