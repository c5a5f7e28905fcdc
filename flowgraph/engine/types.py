"""Core type definitions for the flow graph engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from .node import Node


class InjectedKind(str, Enum):
    """Parameter kinds supplied by the engine rather than by the input map."""

    GRAPH_CONTEXT = "graph_context"
    SERVICE_PROVIDER = "service_provider"


@dataclass
class PathMapEntry:
    """Maps a source path or template to a destination name or path."""

    from_: str
    to: str


@dataclass
class ParameterSpec:
    """Describes one parameter of a registered function."""

    name: str
    annotation: Any
    type_name: str
    optional: bool = False
    default: Any = None
    injected: InjectedKind | None = None


@dataclass
class FunctionDescriptor:
    """Static description of a registered function."""

    identifier: str
    name: str
    scope: str
    version: str
    parameters: list[ParameterSpec] = field(default_factory=list)
    return_type: str = "None"
    return_annotation: Any = None
    section: str = "General"
    description: str | None = None
    declared_output_ports: list[str] = field(default_factory=list)

    @property
    def is_port_driven(self) -> bool:
        return bool(self.declared_output_ports)

    @property
    def injected_kinds(self) -> set[InjectedKind]:
        return {p.injected for p in self.parameters if p.injected is not None}

    @property
    def mappable_parameters(self) -> list[ParameterSpec]:
        """Parameters a user may bind through the input map."""
        return [p for p in self.parameters if p.injected is None]


@dataclass
class PortTrigger:
    """A port execution request queued while its node is still running."""

    port: str
    variables: dict[str, Any] = field(default_factory=dict)
    reset: list[Node] = field(default_factory=list)


@dataclass
class GraphExecutionContext:
    """Per-run values visible to every node in a graph."""

    parameters: dict[str, Any] = field(default_factory=dict)
    output: dict[str, Any] = field(default_factory=dict)


class ExecutionEventType(str, Enum):
    """Types of node lifecycle events."""

    NODE_START = "node:start"
    NODE_COMPLETE = "node:complete"
    NODE_ERROR = "node:error"


@dataclass
class ExecutionEvent:
    """Lifecycle notification for a single node."""

    type: ExecutionEventType
    node_id: str
    function_name: str
    timestamp: datetime
    result: dict[str, Any] | None = None
    error: str | None = None


# Callback type for receiving execution events
ExecutionEventCallback = Callable[[ExecutionEvent], None]
