"""Tests for function registration, identifiers and resolution."""

import pytest

from flowgraph.core.exceptions import FunctionNotFoundError
from flowgraph.engine.function_registry import (
    FunctionRegistryClass,
    build_identifier,
    flow_function,
    parse_identifier,
    register_all_functions,
)
from flowgraph.engine.node import NodeContext
from flowgraph.engine.types import InjectedKind
from flowgraph.services.service_provider import ServiceProvider


@flow_function(name="Scale", section="Test")
def scale(value: float, factor: float = 2.0) -> float:
    """Multiply a value by a factor."""
    return value * factor


@flow_function(name="Branch", section="Test", ports=("left", "right"))
async def branch(ctx: NodeContext, services: ServiceProvider, go_left: bool) -> None:
    await ctx.execute_port_async("left" if go_left else "right")


def weights(table: dict[str, int], labels: list[str]) -> int:
    return sum(table.get(label, 0) for label in labels)


def variadic(*values: int) -> int:
    return sum(values)


class TestIdentifiers:
    def test_identifier_format(self, registry):
        add = registry.find("Add")
        assert add.identifier == "flowgraph.nodes.math_nodes, Version=1.0.0.0 | Add | int, int"

    def test_parse_identifier_keeps_generic_types_whole(self):
        identifier = build_identifier("pkg.mod", "2.0", "Weights", ["dict[str, int]", "list[str]"])
        parsed = parse_identifier(identifier)
        assert parsed.scope == "pkg.mod"
        assert parsed.version == "2.0"
        assert parsed.name == "Weights"
        assert parsed.parameter_types == ("dict[str, int]", "list[str]")

    def test_parse_identifier_without_parameters(self):
        parsed = parse_identifier("pkg.mod, Version=1 | Start | ")
        assert parsed.name == "Start"
        assert parsed.parameter_types == ()

    def test_malformed_identifier_raises(self):
        with pytest.raises(ValueError):
            parse_identifier("no separators here")


class TestRegister:
    def test_descriptor_from_signature(self):
        registry = FunctionRegistryClass()
        entry = registry.register(scale)
        descriptor = entry.descriptor

        assert descriptor.name == "Scale"
        assert descriptor.section == "Test"
        assert descriptor.return_type == "float"
        assert descriptor.description == "Multiply a value by a factor."
        assert [p.name for p in descriptor.parameters] == ["value", "factor"]
        assert descriptor.parameters[1].optional
        assert descriptor.parameters[1].default == 2.0
        assert not descriptor.is_port_driven

    def test_injected_parameters(self):
        registry = FunctionRegistryClass()
        descriptor = registry.register(branch).descriptor

        assert descriptor.is_port_driven
        assert descriptor.declared_output_ports == ["left", "right"]
        assert descriptor.injected_kinds == {InjectedKind.GRAPH_CONTEXT, InjectedKind.SERVICE_PROVIDER}
        assert [p.name for p in descriptor.mappable_parameters] == ["go_left"]

    def test_plain_callable_uses_its_own_name(self):
        registry = FunctionRegistryClass()
        entry = registry.register(weights)
        assert entry.name == "weights"
        assert entry.identifier.endswith("| weights | dict[str, int], list[str]")

    def test_registering_twice_returns_existing_entry(self):
        registry = FunctionRegistryClass()
        assert registry.register(scale) is registry.register(scale)
        assert len(registry.list()) == 1

    def test_variadic_parameters_are_rejected(self):
        with pytest.raises(ValueError):
            FunctionRegistryClass().register(variadic)

    async def test_invoke_sync_and_async(self):
        registry = FunctionRegistryClass()
        assert await registry.register(scale).invoke({"value": 3.0, "factor": 2.0}) == 6.0

        async def double(value: int) -> int:
            return value * 2

        assert await registry.register(double).invoke({"value": 4}) == 8


class TestResolve:
    def test_exact_identifier(self, registry):
        add = registry.find("Add")
        assert registry.resolve(add.identifier) is add

    def test_version_drift_falls_back_to_structure(self, registry):
        identifier = "flowgraph.nodes.math_nodes, Version=0.9.0.0 | Add | int, int"
        assert registry.resolve(identifier) is registry.find("Add")

    def test_different_parameter_types_do_not_match(self, registry):
        with pytest.raises(FunctionNotFoundError):
            registry.resolve("flowgraph.nodes.math_nodes, Version=1.0.0.0 | Add | float, float")

    def test_unknown_and_malformed_identifiers(self, registry):
        with pytest.raises(FunctionNotFoundError):
            registry.resolve("other.module, Version=1 | Add | int, int")
        with pytest.raises(FunctionNotFoundError):
            registry.resolve("garbage")
        assert not registry.has("garbage")

    def test_newer_registry_loads_older_identifiers(self, registry):
        newer = register_all_functions(FunctionRegistryClass(version="2.0.0.0"))
        old_identifier = registry.find("For").identifier
        assert newer.resolve(old_identifier).name == "For"
        assert newer.resolve(old_identifier).identifier != old_identifier

    def test_find_by_name(self, registry):
        assert registry.find("Multiply").name == "Multiply"
        with pytest.raises(FunctionNotFoundError):
            registry.find("NoSuchFunction")

    def test_find_rejects_ambiguous_names(self):
        registry = FunctionRegistryClass()
        registry.register(scale)
        registry.register(weights, name="Scale")
        with pytest.raises(FunctionNotFoundError):
            registry.find("Scale")

    def test_get_accepts_names_and_identifiers(self, registry):
        add = registry.find("Add")
        assert registry.get("Add") is add
        assert registry.get(add.identifier) is add


class TestCatalog:
    def test_builtin_catalog_is_registered(self, registry):
        names = {entry["name"] for entry in registry.catalog()}
        for expected in ("Start", "If", "For", "Repeat", "While", "Add", "StringConcat",
                         "Equal", "JsonGet", "ForEachString", "WhileLoop", "HttpGet", "PromptUser"):
            assert expected in names

    def test_catalog_hides_injected_parameters(self, registry):
        info = next(entry for entry in registry.catalog() if entry["name"] == "For")
        assert [p["name"] for p in info["parameters"]] == ["start", "end"]
        assert info["ports"] == ["loop", "done"]
        assert info["injects"] == ["graph_context"]
