"""``lookupRecipe``: search a small in-memory recipe book by name or ingredients."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..core.timing_logger import timed
from .models import ToolDefinition
from .schema import EnumParam, Nullable, ObjectSchema, StringParam

TOOL_NAME = "lookupRecipe"

RECIPES: tuple[Dict[str, Any], ...] = (
    {
        "name": "Pasta Carbonara",
        "ingredients": ["pasta", "eggs", "bacon", "cheese", "black pepper"],
        "instructions": (
            "1. Cook pasta. 2. Fry bacon. 3. Mix eggs and cheese. "
            "4. Combine all ingredients with pasta. 5. Add black pepper."
        ),
        "difficulty": "easy",
        "prepTime": "10 minutes",
        "cookTime": "15 minutes",
    },
    {
        "name": "Veggie Stir Fry",
        "ingredients": ["rice", "bell peppers", "broccoli", "carrots", "soy sauce", "garlic", "ginger"],
        "instructions": (
            "1. Cook rice. 2. Stir-fry vegetables with garlic and ginger. "
            "3. Add soy sauce. 4. Serve over rice."
        ),
        "difficulty": "easy",
        "prepTime": "15 minutes",
        "cookTime": "10 minutes",
    },
    {
        "name": "Chocolate Chip Cookies",
        "ingredients": ["flour", "butter", "sugar", "chocolate chips", "eggs", "vanilla extract"],
        "instructions": (
            "1. Cream butter and sugar. 2. Add eggs and vanilla. 3. Mix in flour. "
            "4. Fold in chocolate chips. 5. Bake at 350°F for 10-12 minutes."
        ),
        "difficulty": "medium",
        "prepTime": "20 minutes",
        "cookTime": "12 minutes",
    },
)

PARAMETERS = ObjectSchema(
    properties={
        "query": StringParam("Recipe name or a comma-separated list of ingredients"),
        "filterByDifficulty": Nullable(
            EnumParam(("easy", "medium", "hard"), "Filter recipes by difficulty level")
        ),
    },
    required=("query",),
)


def _matches_ingredients(recipe: Dict[str, Any], wanted: List[str]) -> bool:
    """At least half of ``wanted`` must appear inside one of the recipe's ingredients."""
    if not wanted:
        return False
    recipe_ingredients = [item.lower() for item in recipe["ingredients"]]
    matched = [w for w in wanted if any(w in ingredient for ingredient in recipe_ingredients)]
    return len(matched) >= len(wanted) / 2


@timed
def search_recipes(query: str, difficulty: Optional[str] = None) -> Dict[str, Any]:
    search_term = query.lower()
    by_ingredients = "," in search_term

    if by_ingredients:
        wanted = [part.strip() for part in search_term.split(",") if part.strip()]
        results = [recipe for recipe in RECIPES if _matches_ingredients(recipe, wanted)]
    else:
        results = [recipe for recipe in RECIPES if search_term in recipe["name"].lower()]

    if difficulty:
        results = [recipe for recipe in results if recipe["difficulty"] == difficulty]

    return {
        "results": [dict(recipe) for recipe in results],
        "query": query,
        "totalResults": len(results),
        "searchType": "ingredients" if by_ingredients else "recipe_name",
    }


async def execute_recipe_lookup(params: Dict[str, Any]) -> Dict[str, Any]:
    return search_recipes(params["query"], params.get("filterByDifficulty"))


def build_recipe_lookup_tool() -> ToolDefinition:
    return ToolDefinition(
        name=TOOL_NAME,
        description="Look up a recipe by name or ingredients",
        parameters=PARAMETERS,
        execute=execute_recipe_lookup,
    )
