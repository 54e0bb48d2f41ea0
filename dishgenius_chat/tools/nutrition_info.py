"""``getNutritionInfo``: nutrition facts for a handful of common foods."""

from __future__ import annotations

import math
import re
from typing import Any, Dict

from ..core.timing_logger import timed
from .models import ToolDefinition
from .schema import EnumParam, Nullable, ObjectSchema, StringParam

TOOL_NAME = "getNutritionInfo"

NUTRITION_FACTS: Dict[str, Dict[str, Any]] = {
    "apple": {
        "calories": 95,
        "protein": "0.5g",
        "carbs": "25g",
        "fiber": "4g",
        "sugar": "19g",
        "fat": "0.3g",
        "servingSize": "1 medium apple (182g)",
    },
    "banana": {
        "calories": 105,
        "protein": "1.3g",
        "carbs": "27g",
        "fiber": "3.1g",
        "sugar": "14g",
        "fat": "0.4g",
        "servingSize": "1 medium banana (118g)",
    },
    "chicken breast": {
        "calories": 165,
        "protein": "31g",
        "carbs": "0g",
        "fiber": "0g",
        "sugar": "0g",
        "fat": "3.6g",
        "servingSize": "100g (cooked)",
    },
    "rice": {
        "calories": 130,
        "protein": "2.7g",
        "carbs": "28g",
        "fiber": "0.4g",
        "sugar": "0.1g",
        "fat": "0.3g",
        "servingSize": "100g (cooked)",
    },
    "pasta": {
        "calories": 158,
        "protein": "5.8g",
        "carbs": "31g",
        "fiber": "1.8g",
        "sugar": "0.6g",
        "fat": "0.9g",
        "servingSize": "100g (cooked)",
    },
}

_SERVING_GRAMS_RE = re.compile(r"\((\d+)g\)")

PARAMETERS = ObjectSchema(
    properties={
        "food": StringParam("The food item to look up"),
        "unit": Nullable(EnumParam(("100g", "serving", "piece"), "The unit of measurement")),
    },
    required=("food",),
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@timed
def lookup_nutrition(food: str, unit: str = "serving") -> Dict[str, Any]:
    wanted = food.lower()
    food_key = next((key for key in NUTRITION_FACTS if key.lower() == wanted), None)

    if food_key is None:
        suggestions = [key for key in NUTRITION_FACTS if wanted in key.lower() or key.lower() in wanted][:3]
        payload: Dict[str, Any] = {
            "error": f'Nutrition information for "{food}" not found.',
            "availableFoods": sorted(NUTRITION_FACTS),
        }
        if suggestions:
            payload["suggestions"] = suggestions
        return payload

    facts = NUTRITION_FACTS[food_key]
    if unit == "100g":
        match = _SERVING_GRAMS_RE.search(facts["servingSize"])
        if match:
            ratio = 100 / int(match.group(1))
            return {
                "food": food_key,
                "unit": "100g",
                "originalServing": facts["servingSize"],
                **facts,
                "calories": _round_half_up(facts["calories"] * ratio),
            }

    return {"food": food_key, "unit": "serving", **facts}


async def execute_nutrition_lookup(params: Dict[str, Any]) -> Dict[str, Any]:
    return lookup_nutrition(params["food"], params.get("unit") or "serving")


def build_nutrition_info_tool() -> ToolDefinition:
    return ToolDefinition(
        name=TOOL_NAME,
        description="Get nutritional information for a food item",
        parameters=PARAMETERS,
        execute=execute_nutrition_lookup,
    )
