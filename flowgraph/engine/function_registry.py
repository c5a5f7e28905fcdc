"""Function registry mapping stable identifiers to callable node functions."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Callable, get_type_hints

from ..core.config import settings
from ..core.exceptions import FunctionNotFoundError
from .jtree import split_top_level, type_name
from .types import FunctionDescriptor, InjectedKind, ParameterSpec

logger = logging.getLogger(__name__)

FLOW_FUNCTION_ATTR = "__flow_function__"
INJECTED_ATTR = "__flow_injected__"


@dataclass
class FlowFunctionInfo:
    """Registration metadata attached by the flow_function decorator."""

    name: str | None = None
    section: str = "General"
    ports: tuple[str, ...] = ()
    description: str | None = None


def flow_function(
    func: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    section: str = "General",
    ports: tuple[str, ...] | list[str] = (),
    description: str | None = None,
) -> Any:
    """
    Mark a function as a node function.

    Can be used bare (``@flow_function``) or with options. Functions that
    declare ports are port-driven: their control flow is decided by which
    ports they execute through the injected NodeContext.
    """

    def decorate(f: Callable[..., Any]) -> Callable[..., Any]:
        setattr(
            f,
            FLOW_FUNCTION_ATTR,
            FlowFunctionInfo(
                name=name,
                section=section,
                ports=tuple(ports),
                description=description,
            ),
        )
        return f

    if func is not None:
        return decorate(func)
    return decorate


@dataclass
class RegisteredFunction:
    """A descriptor paired with its callable."""

    descriptor: FunctionDescriptor
    func: Callable[..., Any] = field(repr=False)

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def identifier(self) -> str:
        return self.descriptor.identifier

    async def invoke(self, args: dict[str, Any]) -> Any:
        """Call the function, awaiting it when it returns an awaitable."""
        result = self.func(**args)
        if inspect.isawaitable(result):
            result = await result
        return result


@dataclass(frozen=True)
class ParsedIdentifier:
    """The parts of a function identifier string."""

    scope: str
    version: str | None
    name: str
    parameter_types: tuple[str, ...]

    @property
    def structural_key(self) -> tuple[str, str, tuple[str, ...]]:
        return (self.scope, self.name, self.parameter_types)


def build_identifier(scope: str, version: str, name: str, parameter_types: list[str]) -> str:
    """Build ``<scope>, Version=<version> | <name> | <type>, <type>``."""
    return f"{scope}, Version={version} | {name} | {', '.join(parameter_types)}"


def parse_identifier(identifier: str) -> ParsedIdentifier:
    """
    Parse a function identifier.

    Parameter types are split on commas outside brackets so that
    ``dict[str, int]`` stays one type.

    Raises:
        ValueError: If the identifier does not have three parts
    """
    parts = identifier.split(" | ", 2)
    if len(parts) < 2:
        raise ValueError(f"Malformed function identifier: {identifier!r}")

    scope_part, name = parts[0].strip(), parts[1].strip()
    types_part = parts[2].strip() if len(parts) == 3 else ""

    version = None
    scope = scope_part
    if ", Version=" in scope_part:
        scope, version = scope_part.split(", Version=", 1)
        scope, version = scope.strip(), version.strip()

    parameter_types = tuple(t.strip() for t in split_top_level(types_part) if t.strip())
    return ParsedIdentifier(scope=scope, version=version, name=name, parameter_types=parameter_types)


class FunctionRegistryClass:
    """Registry for node functions."""

    def __init__(self, version: str | None = None) -> None:
        self.version = version or settings.registry_version
        self._functions: dict[str, RegisteredFunction] = {}
        self._by_structure: dict[tuple[str, str, tuple[str, ...]], RegisteredFunction] = {}
        self._by_name: dict[str, list[RegisteredFunction]] = {}

    def register(
        self,
        func: Callable[..., Any],
        *,
        name: str | None = None,
        section: str | None = None,
        ports: tuple[str, ...] | list[str] | None = None,
    ) -> RegisteredFunction:
        """
        Register a Python callable, building its descriptor from the signature.

        Options given here override those from the flow_function decorator.
        Registering the same identifier twice returns the existing entry.
        """
        info: FlowFunctionInfo = getattr(func, FLOW_FUNCTION_ATTR, None) or FlowFunctionInfo()
        descriptor = self.describe(
            func,
            name=name or info.name,
            section=section or info.section,
            ports=ports if ports is not None else info.ports,
            description=info.description,
        )

        existing = self._functions.get(descriptor.identifier)
        if existing is not None:
            return existing
        return self.register_entry(descriptor.identifier, descriptor, func)

    def register_entry(
        self,
        identifier: str,
        descriptor: FunctionDescriptor,
        func: Callable[..., Any],
    ) -> RegisteredFunction:
        """Register a callable under an explicit identifier."""
        entry = RegisteredFunction(descriptor=descriptor, func=func)
        self._functions[identifier] = entry

        parsed = parse_identifier(identifier)
        self._by_structure.setdefault(parsed.structural_key, entry)
        self._by_name.setdefault(descriptor.name, []).append(entry)

        logger.debug("Registered function %s", identifier)
        return entry

    def register_module(self, module: ModuleType) -> list[RegisteredFunction]:
        """Register every function in a module marked with flow_function."""
        registered = []
        for _, member in inspect.getmembers(module, inspect.isfunction):
            if member.__module__ == module.__name__ and hasattr(member, FLOW_FUNCTION_ATTR):
                registered.append(self.register(member))
        return registered

    def describe(
        self,
        func: Callable[..., Any],
        *,
        name: str | None = None,
        section: str = "General",
        ports: tuple[str, ...] | list[str] = (),
        description: str | None = None,
    ) -> FunctionDescriptor:
        """Build a descriptor from a callable's signature and type hints."""
        hints = get_type_hints(func)
        signature = inspect.signature(func)

        parameters: list[ParameterSpec] = []
        for param in signature.parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                raise ValueError(f"{func.__qualname__}: variadic parameters are not supported")

            annotation = hints.get(param.name, Any)
            optional = param.default is not inspect.Parameter.empty
            parameters.append(
                ParameterSpec(
                    name=param.name,
                    annotation=annotation,
                    type_name=type_name(annotation),
                    optional=optional,
                    default=param.default if optional else None,
                    injected=getattr(annotation, INJECTED_ATTR, None),
                )
            )

        function_name = name or func.__name__
        scope = func.__module__
        identifier = build_identifier(
            scope,
            self.version,
            function_name,
            [p.type_name for p in parameters],
        )

        return FunctionDescriptor(
            identifier=identifier,
            name=function_name,
            scope=scope,
            version=self.version,
            parameters=parameters,
            return_type=type_name(hints.get("return", Any)),
            return_annotation=hints.get("return"),
            section=section,
            description=description or inspect.getdoc(func),
            declared_output_ports=list(ports),
        )

    def resolve(self, identifier: str) -> RegisteredFunction:
        """
        Resolve an identifier, tolerating version drift.

        Raises:
            FunctionNotFoundError: If neither the exact identifier nor its
                (scope, name, parameter types) match is registered
        """
        entry = self._functions.get(identifier)
        if entry is not None:
            return entry

        try:
            parsed = parse_identifier(identifier)
        except ValueError as e:
            raise FunctionNotFoundError(identifier) from e

        entry = self._by_structure.get(parsed.structural_key)
        if entry is None:
            raise FunctionNotFoundError(identifier)

        logger.info(
            "Resolved %s by structure (registry version %s)",
            parsed.name,
            self.version,
        )
        return entry

    def find(self, name: str) -> RegisteredFunction:
        """
        Resolve a function by its bare name.

        Raises:
            FunctionNotFoundError: If no function, or more than one, has the name
        """
        matches = self._by_name.get(name, [])
        if len(matches) != 1:
            raise FunctionNotFoundError(name)
        return matches[0]

    def get(self, identifier_or_name: str) -> RegisteredFunction:
        """Resolve by identifier when it looks like one, otherwise by name."""
        if " | " in identifier_or_name:
            return self.resolve(identifier_or_name)
        return self.find(identifier_or_name)

    def has(self, identifier: str) -> bool:
        """Check if an identifier resolves."""
        try:
            self.resolve(identifier)
        except FunctionNotFoundError:
            return False
        return True

    def list(self) -> list[str]:
        """List all registered identifiers."""
        return list(self._functions.keys())

    def catalog(self) -> list[dict[str, Any]]:
        """Describe every function for palette and form rendering."""
        return [self._build_function_info(entry.descriptor) for entry in self._functions.values()]

    def _build_function_info(self, descriptor: FunctionDescriptor) -> dict[str, Any]:
        return {
            "identifier": descriptor.identifier,
            "name": descriptor.name,
            "section": descriptor.section,
            "description": descriptor.description,
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type_name,
                    "optional": p.optional,
                    "default": p.default if p.optional else None,
                }
                for p in descriptor.mappable_parameters
            ],
            "returnType": descriptor.return_type,
            "ports": list(descriptor.declared_output_ports),
            "injects": sorted(kind.value for kind in descriptor.injected_kinds),
        }


# Singleton instance
function_registry = FunctionRegistryClass()


def register_all_functions(registry: FunctionRegistryClass | None = None) -> FunctionRegistryClass:
    """Register all built-in functions."""
    from ..nodes import (
        collection_nodes,
        comparison,
        core_nodes,
        http_nodes,
        iteration_nodes,
        json_nodes,
        math_nodes,
        string_nodes,
    )

    registry = registry or function_registry
    for module in (
        core_nodes,
        math_nodes,
        string_nodes,
        comparison,
        json_nodes,
        collection_nodes,
        iteration_nodes,
        http_nodes,
    ):
        registry.register_module(module)
    return registry
