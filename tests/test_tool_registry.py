"""Tool registry and startup catalog."""

from __future__ import annotations

import logging

import pytest

from dishgenius_chat.core.errors import DuplicateToolError
from dishgenius_chat.tools.catalog import build_default_registry
from dishgenius_chat.tools.models import ToolDefinition
from dishgenius_chat.tools.registry import ToolRegistry
from dishgenius_chat.tools.schema import ObjectSchema, StringParam


async def _echo(args):
    return args


def _tool(name: str, description: str = "test tool") -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description=description,
        parameters=ObjectSchema({"text": StringParam()}, required=("text",)),
        execute=_echo,
    )


class TestToolRegistry:
    """Registration, lookup and enumeration."""

    def test_lookup_returns_registered_definition(self):
        registry = ToolRegistry([_tool("alpha")])
        definition = registry.lookup("alpha")
        assert definition is not None
        assert definition.name == "alpha"

    def test_lookup_unknown_returns_none(self):
        assert ToolRegistry().lookup("missing") is None

    def test_register_same_name_replaces_and_warns(self, caplog):
        registry = ToolRegistry([_tool("alpha", "first")])
        with caplog.at_level(logging.WARNING):
            registry.register(_tool("alpha", "second"))
        assert len(registry) == 1
        assert registry.lookup("alpha").description == "second"
        assert "re-registered" in caplog.text

    def test_lookup_many_keeps_order_and_skips_unknown(self):
        registry = ToolRegistry([_tool("alpha"), _tool("beta"), _tool("gamma")])
        found = registry.lookup_many(["gamma", "nope", "alpha"])
        assert [d.name for d in found] == ["gamma", "alpha"]

    def test_enumerate_all_in_insertion_order(self):
        registry = ToolRegistry([_tool("beta"), _tool("alpha")])
        assert [d.name for d in registry.enumerate_all()] == ["beta", "alpha"]
        assert registry.names() == ["beta", "alpha"]
        assert [d.name for d in registry] == ["beta", "alpha"]

    def test_select_empty_means_everything(self):
        registry = ToolRegistry([_tool("alpha"), _tool("beta")])
        assert [d.name for d in registry.select([])] == ["alpha", "beta"]
        assert [d.name for d in registry.select(None)] == ["alpha", "beta"]
        assert [d.name for d in registry.select(["beta"])] == ["beta"]

    def test_contains(self):
        registry = ToolRegistry([_tool("alpha")])
        assert "alpha" in registry
        assert "beta" not in registry


class TestCatalog:
    """Startup catalog builder."""

    def test_default_registry_has_builtin_tools(self):
        registry = build_default_registry()
        assert registry.names() == ["lookupRecipe", "getNutritionInfo"]
        assert all(definition.execute is not None for definition in registry)

    def test_duplicate_names_are_rejected(self):
        with pytest.raises(DuplicateToolError, match="alpha"):
            build_default_registry([lambda: _tool("alpha"), lambda: _tool("alpha")])

    def test_custom_factories(self):
        registry = build_default_registry([lambda: _tool("alpha")])
        assert registry.names() == ["alpha"]
