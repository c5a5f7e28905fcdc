"""Fluent graph builder for wiring nodes in code and in tests."""

from __future__ import annotations

import dataclasses
import typing
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel

from ..core.exceptions import NodeNotFoundError
from .function_registry import FunctionRegistryClass, RegisteredFunction, function_registry
from .graph import Graph
from .jtree import MISSING, coerce_to_type, get_by_path
from .node import Node
from .types import ExecutionEventCallback, PathMapEntry

if TYPE_CHECKING:
    from ..services.service_provider import ServiceProvider


class GraphBuilder:
    """
    Builds a Graph node by node.

    Example:
        result = await (
            GraphBuilder()
            .add_node("add", "Add").map_input("input1", "5").map_input("input2", "10")
            .connect_to("double")
            .add_node("double", "Multiply").map_input("input1", "input.result").map_input("input2", "2")
            .build()
            .execute("add")
        )
        result.get_output("double", "result")  # 30
    """

    def __init__(
        self,
        registry: FunctionRegistryClass | None = None,
        services: ServiceProvider | None = None,
        on_event: ExecutionEventCallback | None = None,
    ) -> None:
        self.registry = registry or function_registry
        self.graph = Graph(services=services, on_event=on_event)
        self._deferred: list[tuple[str, str, str | None]] = []

    def add_node(
        self,
        node_name: str,
        function: RegisteredFunction | str | Callable[..., Any],
    ) -> NodeBuilder:
        """Add a node backed by a registered function, a function name or a callable."""
        node = self.graph.add_node(Node(self._resolve(function), node_name))
        return NodeBuilder(self, node)

    def _resolve(self, function: RegisteredFunction | str | Callable[..., Any]) -> RegisteredFunction:
        if isinstance(function, RegisteredFunction):
            return function
        if isinstance(function, str):
            return self.registry.get(function)
        return self.registry.register(function)

    def get_node(self, node_name: str) -> Node:
        return self.graph.get_node(node_name)

    def connect(self, from_node: str, to_node: str, output_port: str | None = None) -> GraphBuilder:
        """Connect two nodes; edges to nodes not added yet wait for build_graph()."""
        if from_node in self.graph and to_node in self.graph:
            self.graph.connect(from_node, to_node, output_port)
        else:
            self._deferred.append((from_node, to_node, output_port))
        return self

    def get_all_nodes(self) -> list[Node]:
        return list(self.graph.nodes.values())

    def build_graph(self) -> Graph:
        """
        Return the graph with every deferred edge connected.

        Raises:
            NodeNotFoundError: If an edge names a node that was never added
        """
        deferred, self._deferred = self._deferred, []
        for from_node, to_node, output_port in deferred:
            self.graph.connect(from_node, to_node, output_port)
        return self.graph

    async def execute(self, start_node_name: str) -> GraphExecutionResult:
        """Clear previous results and execute from one node."""
        self.build_graph()
        start = self.graph.get_node(start_node_name)
        self.graph.reset()
        await start.execute_node()
        return GraphExecutionResult(self.graph)


class NodeBuilder:
    """Configures one node, chaining back to the graph builder."""

    def __init__(self, graph_builder: GraphBuilder, node: Node) -> None:
        self._graph_builder = graph_builder
        self.node = node

    def map_input(self, parameter_name: str, input_path: str) -> NodeBuilder:
        """
        Bind a function parameter to a literal, a path such as
        ``input.value`` or a ``{{ }}`` template.
        """
        params = {p.name: p for p in self.node.function.descriptor.parameters}
        spec = params.get(parameter_name)
        if spec is None:
            raise ValueError(f"{self.node.function.name} has no parameter '{parameter_name}'")
        if spec.injected is not None:
            raise ValueError(f"Parameter '{parameter_name}' is supplied by the engine and cannot be mapped")

        self.node.input_map.append(PathMapEntry(from_=input_path, to=parameter_name))
        return self

    def map_output(self, property_name: str, output_name: str | None = None) -> NodeBuilder:
        """Expose a field of the return value under ``output.<output_name>``."""
        self.node.output_map.append(PathMapEntry(from_=property_name, to=output_name or property_name))
        return self

    def auto_map_outputs(self) -> NodeBuilder:
        """Map every field of a structured return type to an output of the same name."""
        for name in _return_fields(self.node.function.descriptor.return_annotation):
            self.node.output_map.append(PathMapEntry(from_=name, to=name))
        return self

    def with_output_ports(self, *port_names: str) -> NodeBuilder:
        self.node.declared_output_ports = list(port_names)
        return self

    def merge_output_with_input(self, merge: bool = True) -> NodeBuilder:
        self.node.merge_output_with_input = merge
        return self

    def connect_to(self, target_node_name: str, output_port: str | None = None) -> NodeBuilder:
        """
        Connect this node to another one.

        The target may be added later; the edge is created when build() or
        execute() is reached.
        """
        self._graph_builder.connect(self.node.id, target_node_name, output_port)
        return self

    def add_node(
        self,
        node_name: str,
        function: RegisteredFunction | str | Callable[..., Any],
    ) -> NodeBuilder:
        return self._graph_builder.add_node(node_name, function)

    def build(self) -> GraphBuilder:
        return self._graph_builder


class GraphExecutionResult:
    """Access to node results after a builder execution."""

    def __init__(self, graph: Graph) -> None:
        self._graph = graph

    def get_node_result(self, node_name: str) -> dict[str, Any] | None:
        """
        Get the result of a node.

        Raises:
            NodeNotFoundError: If no node has the name
        """
        node = self._graph.nodes.get(node_name)
        if node is None:
            raise NodeNotFoundError(node_name)
        return node.result

    def get_output(self, node_name: str, output_path: str) -> Any:
        """Read ``output.<output_path>`` from a node result, None when absent."""
        result = self.get_node_result(node_name)
        if result is None:
            return None
        value = get_by_path(result, f"output.{output_path}")
        return None if value is MISSING else value

    def get_output_as(self, node_name: str, output_path: str, target: Any) -> Any:
        return coerce_to_type(self.get_output(node_name, output_path), target)

    def get_output_object(self, node_name: str) -> Any:
        result = self.get_node_result(node_name)
        return None if result is None else result.get("output")


def _return_fields(annotation: Any) -> list[str]:
    if annotation is None:
        return []
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return list(annotation.model_fields)
    if dataclasses.is_dataclass(annotation):
        return [f.name for f in dataclasses.fields(annotation)]
    if typing.is_typeddict(annotation):
        return list(typing.get_type_hints(annotation))
    return []
