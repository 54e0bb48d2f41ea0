"""Parameter variants, argument validation and provider schema export."""

from __future__ import annotations

import json

import pytest

from dishgenius_chat.core.errors import ToolArgumentError
from dishgenius_chat.tools.catalog import build_default_registry
from dishgenius_chat.tools.models import ToolDefinition
from dishgenius_chat.tools.schema import (
    BooleanParam,
    EnumParam,
    Nullable,
    NumberParam,
    ObjectSchema,
    StringParam,
    to_provider_schema,
)

SCHEMA = ObjectSchema(
    properties={
        "name": StringParam("Who"),
        "count": NumberParam("How many", integer=True),
        "ratio": NumberParam(),
        "spicy": BooleanParam(),
        "size": Nullable(EnumParam(("small", "large"), "Portion size")),
    },
    required=("name",),
)


class TestJsonSchema:
    def test_object_schema_shape(self):
        rendered = SCHEMA.to_json_schema()
        assert rendered["type"] == "object"
        assert rendered["required"] == ["name"]
        assert rendered["additionalProperties"] is False
        assert rendered["properties"]["name"] == {"type": "string", "description": "Who"}
        assert rendered["properties"]["count"]["type"] == "integer"
        assert rendered["properties"]["ratio"] == {"type": "number"}
        assert rendered["properties"]["spicy"] == {"type": "boolean"}

    def test_nullable_enum_allows_null(self):
        size = SCHEMA.to_json_schema()["properties"]["size"]
        assert size["type"] == ["string", "null"]
        assert size["enum"] == ["small", "large", None]
        assert size["description"] == "Portion size"


class TestValidate:
    def test_valid_arguments_are_copied(self):
        args = {"name": "x", "count": 2, "size": None}
        validated = SCHEMA.validate(args)
        assert validated == args
        assert validated is not args

    def test_integral_float_accepted_for_integer(self):
        SCHEMA.validate({"name": "x", "count": 3.0})

    @pytest.mark.parametrize(
        ("args", "fragment"),
        [
            ([], "JSON object"),
            ({}, "missing required argument(s): name"),
            ({"name": "x", "extra": 1}, "unexpected argument(s): extra"),
            ({"name": None}, "'name' must not be null"),
            ({"name": 5}, "'name' must be a string"),
            ({"name": "x", "count": 1.5}, "'count' must be an integer"),
            ({"name": "x", "ratio": True}, "'ratio' must be a number"),
            ({"name": "x", "spicy": "yes"}, "'spicy' must be a boolean"),
            ({"name": "x", "size": "huge"}, "'size' must be one of: small, large"),
        ],
    )
    def test_rejections(self, args, fragment):
        with pytest.raises(ToolArgumentError) as excinfo:
            SCHEMA.validate(args)
        assert fragment in str(excinfo.value)


class TestProviderSchema:
    def test_execute_handle_is_never_exported(self):
        schemas = to_provider_schema(build_default_registry().enumerate_all())
        assert [s["function"]["name"] for s in schemas] == ["lookupRecipe", "getNutritionInfo"]
        for schema in schemas:
            assert set(schema) == {"type", "function"}
            assert schema["type"] == "function"
            assert set(schema["function"]) == {"name", "description", "parameters"}
        # must survive a JSON round trip with no callables inside
        json.dumps(schemas)

    def test_recipe_schema_matches_published_shape(self):
        (schema,) = to_provider_schema([build_default_registry().lookup("lookupRecipe")])
        params = schema["function"]["parameters"]
        assert params["required"] == ["query"]
        assert params["properties"]["filterByDifficulty"]["enum"] == ["easy", "medium", "hard", None]

    def test_plain_dict_parameters_exported_verbatim(self):
        raw = {"type": "object", "properties": {"q": {"type": "string"}}}
        (schema,) = to_provider_schema([ToolDefinition("raw", "raw tool", raw)])
        assert schema["function"]["parameters"] is raw
