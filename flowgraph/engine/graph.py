"""Graph: an id-keyed node map with a downstream cache and run entry points."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ..core.exceptions import NodeNotFoundError
from .node import Node
from .types import ExecutionEventCallback, GraphExecutionContext, PathMapEntry

if TYPE_CHECKING:
    from ..services.service_provider import ServiceProvider
    from .function_registry import RegisteredFunction

logger = logging.getLogger(__name__)

START_FUNCTION_NAME = "Start"


class Graph:
    """
    A set of connected nodes.

    Nodes are stored by id and edges live on the nodes themselves. Building
    a graph (add_node, connect, remove_node) must happen from one task; only
    execution runs concurrently.
    """

    def __init__(
        self,
        services: ServiceProvider | None = None,
        on_event: ExecutionEventCallback | None = None,
    ) -> None:
        self.nodes: dict[str, Node] = {}
        self.services = services
        self.on_event = on_event
        self.shared: dict[str, Any] = {}
        self.execution = GraphExecutionContext()
        self._downstream_cache: dict[tuple[str, str | None], list[Node]] = {}

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self):
        return iter(self.nodes.values())

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    # --- Construction ---

    def add_node(self, node: Node) -> Node:
        """Add an existing node; an id already present is replaced."""
        node.graph = self
        self.nodes[node.id] = node
        self._downstream_cache.clear()
        return node

    def create_node(
        self,
        function: RegisteredFunction,
        node_id: str | None = None,
        *,
        input_map: dict[str, str] | list[PathMapEntry] | None = None,
        output_map: dict[str, str] | list[PathMapEntry] | None = None,
        merge_output_with_input: bool = False,
    ) -> Node:
        """Create a node for a function and add it to the graph."""
        return self.add_node(
            Node(
                function,
                node_id,
                input_map=_to_path_map(input_map, parameter_side=True),
                output_map=_to_path_map(output_map, parameter_side=False),
                merge_output_with_input=merge_output_with_input,
            )
        )

    def get_node(self, node_id: str) -> Node:
        """
        Get a node by id.

        Raises:
            NodeNotFoundError: If no node has the id
        """
        node = self.nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def connect(self, source_id: str, target_id: str, port: str | None = None) -> None:
        """Connect two nodes through an optional output port."""
        source = self.get_node(source_id)
        target = self.get_node(target_id)
        source.add_output_connection(target, port)
        self._downstream_cache.clear()

    def remove_node(self, node_id: str) -> Node:
        """Remove a node and every edge touching it."""
        node = self.get_node(node_id)
        for source in list(node.input_edges):
            source.remove_output_connection(node)
        for target in list(node.output_edges):
            node.remove_output_connection(target)
        node.graph = None
        del self.nodes[node_id]
        self._downstream_cache.clear()
        return node

    # --- Downstream caching ---

    def get_downstream_nodes(self, node: Node, port: str | None = None) -> list[Node]:
        """Nodes reachable from a node's port, computed once per graph shape."""
        key = (node.id, port.lower() if port else None)
        cached = self._downstream_cache.get(key)
        if cached is None:
            cached = node.get_downstream_nodes(port)
            self._downstream_cache[key] = cached
        return list(cached)

    # --- Execution ---

    def reset(self) -> None:
        """Clear every node result and the shared scratch context."""
        Node.clear_nodes(list(self.nodes.values()))
        self.shared.clear()

    def entry_nodes(self) -> list[Node]:
        """Start nodes, or every node without inputs when there are none."""
        starts = [n for n in self.nodes.values() if n.function.name == START_FUNCTION_NAME]
        if starts:
            return starts
        return [n for n in self.nodes.values() if not n.input_edges]

    async def execute(self, start_id: str) -> dict[str, Any]:
        """Execute from one node and return its result."""
        node = self.get_node(start_id)
        await node.execute_node()
        return node.result or {}

    async def run(
        self,
        parameters: dict[str, Any] | None = None,
        on_event: ExecutionEventCallback | None = None,
    ) -> GraphExecutionContext:
        """
        Run the whole graph from its entry nodes.

        Previous results are cleared first. Entry nodes run concurrently.
        """
        self.reset()
        self.execution = GraphExecutionContext(parameters=dict(parameters or {}))
        if on_event is not None:
            self.on_event = on_event

        entries = self.entry_nodes()
        logger.info("Running graph with %d nodes from %d entry nodes", len(self.nodes), len(entries))

        await asyncio.gather(*(node.execute_node() for node in entries))
        return self.execution


def _to_path_map(
    mapping: dict[str, str] | list[PathMapEntry] | None,
    parameter_side: bool,
) -> list[PathMapEntry]:
    """Accept {parameter: source} / {from: to} dicts as well as entry lists."""
    if mapping is None:
        return []
    if isinstance(mapping, dict):
        if parameter_side:
            return [PathMapEntry(from_=source, to=name) for name, source in mapping.items()]
        return [PathMapEntry(from_=source, to=dest) for source, dest in mapping.items()]
    return list(mapping)
