"""
Node execution protocol.

A Node wraps one registered function. Requesting its result resolves the
upstream nodes, binds the function parameters from the merged upstream
output, invokes the function once and caches the result. Port-driven
functions (If, For, ...) decide their own control flow through the
NodeContext they receive.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import threading
import types
import uuid
from collections import deque
from datetime import datetime
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin

from ..core.exceptions import FlowGraphError, InvocationError
from .expression_engine import expression_engine
from .jtree import (
    MISSING,
    coerce_to_type,
    ensure_valid_json,
    get_by_path,
    merge,
    parse_literal,
    set_by_path,
    to_jtree,
    to_plain_object,
    zero_value,
)
from .types import (
    ExecutionEvent,
    ExecutionEventCallback,
    ExecutionEventType,
    GraphExecutionContext,
    InjectedKind,
    ParameterSpec,
    PathMapEntry,
    PortTrigger,
)

if TYPE_CHECKING:
    from ..services.service_provider import ServiceProvider
    from .function_registry import RegisteredFunction
    from .graph import Graph

logger = logging.getLogger(__name__)

DEFAULT_PORT = "default"


class NodeContext:
    """Handle given to functions that declare a NodeContext parameter."""

    __flow_injected__ = InjectedKind.GRAPH_CONTEXT

    def __init__(self, node: Node) -> None:
        self.current_node = node

    @property
    def input_nodes(self) -> list[Node]:
        return list(self.current_node.input_edges)

    @property
    def output_nodes(self) -> list[Node]:
        return list(self.current_node.output_edges)

    @property
    def context(self) -> dict[str, Any]:
        """Scratch space shared by every node of the graph."""
        return self.current_node.context

    @property
    def execution(self) -> GraphExecutionContext | None:
        return self.current_node.execution

    async def execute_port_async(
        self,
        port: str,
        reset: list[Node] | None = None,
        variables: dict[str, Any] | None = None,
    ) -> None:
        """
        Execute the nodes connected to a port.

        While the owning node is still running the request is queued and
        runs once its result is stored. ``reset`` nodes have their results
        cleared and ``variables`` are written to the scratch context while
        the port's targets run, then restored.
        """
        await self.current_node.execute_port(port, reset=reset, variables=variables)

    def get_downstream_nodes(self, port: str | None = None) -> list[Node]:
        """Nodes reachable from a port, cached per graph."""
        node = self.current_node
        if node.graph is not None:
            return node.graph.get_downstream_nodes(node, port)
        return node.get_downstream_nodes(port)

    def clear_nodes(self, nodes: list[Node]) -> None:
        Node.clear_nodes([n for n in nodes if n is not self.current_node])

    def set_result(self, result: dict[str, Any] | None) -> None:
        """Temporarily expose a result so port targets run immediately."""
        self.current_node.result = result


class Node:
    """A graph node backed by a registered function."""

    def __init__(
        self,
        function: RegisteredFunction,
        node_id: str | None = None,
        *,
        input_map: list[PathMapEntry] | None = None,
        output_map: list[PathMapEntry] | None = None,
        merge_output_with_input: bool = False,
        declared_output_ports: list[str] | None = None,
        section: str | None = None,
        pos_x: float = 0.0,
        pos_y: float = 0.0,
    ) -> None:
        self.id = node_id or str(uuid.uuid4())
        self.function = function
        self.input_map: list[PathMapEntry] = list(input_map or [])
        self.output_map: list[PathMapEntry] = list(output_map or [])
        self.merge_output_with_input = merge_output_with_input
        self.declared_output_ports: list[str] = list(
            declared_output_ports or function.descriptor.declared_output_ports
        )
        self.section = section or function.descriptor.section
        self.pos_x = pos_x
        self.pos_y = pos_y

        self.input_edges: list[Node] = []
        self.output_edges: list[Node] = []
        self.output_ports: dict[str, list[Node]] = {}

        self.input: dict[str, Any] | None = None
        self.result: dict[str, Any] | None = None

        self.has_error = False
        self.error_message: str | None = None
        self.last_exception: BaseException | None = None

        self.graph: Graph | None = None
        self.services: ServiceProvider | None = None
        self.on_event: ExecutionEventCallback | None = None

        self._context: dict[str, Any] = {}
        self._execution_lock = asyncio.Lock()
        self._pending_lock = threading.Lock()
        self._pending_ports: list[PortTrigger] = []

    def __repr__(self) -> str:
        return f"Node(id={self.id!r}, function={self.function.name!r})"

    # --- Configuration ---

    @property
    def is_port_driven(self) -> bool:
        # Decided by the function; node-level ports only relabel outputs
        return self.function.descriptor.is_port_driven

    @property
    def context(self) -> dict[str, Any]:
        if self.graph is not None:
            return self.graph.shared
        return self._context

    @property
    def execution(self) -> GraphExecutionContext | None:
        return self.graph.execution if self.graph is not None else None

    @property
    def service_provider(self) -> ServiceProvider | None:
        if self.services is not None:
            return self.services
        return self.graph.services if self.graph is not None else None

    def add_output_connection(self, target: Node, port: str | None = None) -> None:
        """Connect this node to a target, keeping both sides in sync."""
        port = port or DEFAULT_PORT
        targets = self._port_targets(port, create=True)
        if target not in targets:
            targets.append(target)
        if target not in self.output_edges:
            self.output_edges.append(target)
        if self not in target.input_edges:
            target.input_edges.append(self)

    def remove_output_connection(self, target: Node) -> None:
        """Remove every edge from this node to a target."""
        if target in self.output_edges:
            self.output_edges.remove(target)
        for targets in self.output_ports.values():
            if target in targets:
                targets.remove(target)
        if self in target.input_edges:
            target.input_edges.remove(self)

    def port_of(self, target: Node) -> str | None:
        """The first port a target is connected through."""
        for port, targets in self.output_ports.items():
            if target in targets:
                return port
        return None

    def _port_targets(self, port: str, create: bool = False) -> list[Node]:
        for name, targets in self.output_ports.items():
            if name.lower() == port.lower():
                return targets
        if create:
            self.output_ports[port] = []
            return self.output_ports[port]
        return []

    # --- Execution ---

    async def execute_node(self, caller: Node | None = None) -> None:
        """Produce this node's result, then fan out unless it is port-driven."""
        await self.get_result(caller or self)

        if not self.is_port_driven:
            for target in list(self.output_edges):
                await target.execute_node(self)

    async def get_result(self, requester: Node | None = None) -> dict[str, Any]:
        """
        Return this node's result, computing it at most once.

        Raises:
            InvocationError: If the backing function raises
            CoercionError: If an input cannot be converted to its parameter type
            ExpressionError: If an input template cannot be rendered
        """
        if self.result is not None:
            return self.result

        upstream = await self._resolve_upstream()

        async with self._execution_lock:
            if self.result is not None:
                return self.result

            self.has_error = False
            self.error_message = None
            self.last_exception = None
            self._emit(ExecutionEventType.NODE_START)
            logger.debug("Executing node %s (%s)", self.id, self.function.name)

            try:
                result = await self._compute(upstream)
            except Exception as e:
                error = self._wrap_error(e)
                self._record_failure(error)
                if error is e:
                    raise
                raise error from e

            with self._pending_lock:
                self.result = result

        self._emit(ExecutionEventType.NODE_COMPLETE, result=result)
        await self._flush_pending_ports()
        return result

    async def _resolve_upstream(self) -> dict[str, Any]:
        if not self.input_edges:
            return {}

        if len(self.input_edges) == 1:
            results = [await self.input_edges[0].get_result(self)]
        else:
            results = await asyncio.gather(*(node.get_result(self) for node in self.input_edges))

        upstream: dict[str, Any] = {}
        for result in results:
            merge(upstream, result)
        return upstream

    async def _compute(self, upstream: dict[str, Any]) -> dict[str, Any]:
        formatted = {"input": copy.deepcopy(upstream.get("output"))}
        self.input = formatted

        args = self._bind_parameters(formatted)
        returned = await self.function.invoke(args)
        result = self._build_result(to_jtree(returned))

        if self.merge_output_with_input:
            merge(result, upstream)
        return result

    def _wrap_error(self, error: Exception) -> FlowGraphError:
        if isinstance(error, FlowGraphError):
            error.details.setdefault("node_id", self.id)
            error.details.setdefault("function_name", self.function.name)
            return error
        return InvocationError(str(error), function_name=self.function.name, node_id=self.id)

    def _record_failure(self, error: FlowGraphError) -> None:
        self.has_error = True
        self.error_message = error.message
        self.last_exception = error
        # Ports requested by a failed invocation are dropped
        with self._pending_lock:
            self._pending_ports.clear()

        logger.warning("Node %s (%s) failed: %s", self.id, self.function.name, error.message)
        self._emit(ExecutionEventType.NODE_ERROR, error=error.message)

    # --- Parameter binding ---

    def _bind_parameters(self, formatted: dict[str, Any]) -> dict[str, Any]:
        sources = {entry.to: entry.from_ for entry in self.input_map}
        args: dict[str, Any] = {}

        for spec in self.function.descriptor.parameters:
            if spec.injected is InjectedKind.GRAPH_CONTEXT:
                args[spec.name] = NodeContext(self)
            elif spec.injected is InjectedKind.SERVICE_PROVIDER:
                args[spec.name] = self.service_provider
            else:
                source = sources.get(spec.name)
                if source is None or source == "":
                    args[spec.name] = spec.default if spec.optional else zero_value(spec.annotation)
                else:
                    args[spec.name] = self._bind_value(source, spec, formatted)
        return args

    def _bind_value(self, source: str, spec: ParameterSpec, formatted: dict[str, Any]) -> Any:
        if not expression_engine.is_template(source):
            found = get_by_path(formatted, source)
            if found is not MISSING:
                return coerce_to_type(found, spec.annotation)
            text = source
        else:
            text = expression_engine.render(source, self._template_scope(formatted))

        if _is_text_type(spec.annotation):
            if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
                decoded = parse_literal(text)
                if isinstance(decoded, str):
                    return decoded
            return text

        if not text.strip():
            return coerce_to_type(None, spec.annotation)
        return coerce_to_type(parse_literal(ensure_valid_json(text)), spec.annotation)

    def _template_scope(self, formatted: dict[str, Any]) -> dict[str, Any]:
        scope = to_plain_object(self.context)
        scope.update(to_plain_object(formatted))
        if self.execution is not None:
            scope.setdefault("parameters", to_plain_object(self.execution.parameters))
        return scope

    # --- Output mapping ---

    def _build_result(self, value: Any) -> dict[str, Any]:
        if value is None:
            return {}

        output: dict[str, Any] = {}
        if isinstance(value, dict):
            if not self.output_map:
                output = value
            for entry in self.output_map:
                found = get_by_path(value, entry.from_)
                if found is MISSING:
                    logger.debug("Node %s: output path %s not in result", self.id, entry.from_)
                    continue
                set_by_path(output, entry.to, found)
        else:
            for path in [entry.to for entry in self.output_map] or ["result"]:
                set_by_path(output, path, value)

        return {"output": output}

    # --- Ports ---

    async def execute_port(
        self,
        port: str,
        reset: list[Node] | None = None,
        variables: dict[str, Any] | None = None,
    ) -> None:
        """Run a port now, or queue it until this node's result is stored."""
        if not self.is_port_driven:
            for target in list(self.output_edges):
                await target.execute_node(self)
            return

        if not port or not port.strip():
            return

        trigger = PortTrigger(port=port, variables=dict(variables or {}), reset=list(reset or []))
        with self._pending_lock:
            if self.result is None:
                self._pending_ports.append(trigger)
                return

        await self._run_trigger(trigger)

    async def _flush_pending_ports(self) -> None:
        with self._pending_lock:
            if not self._pending_ports:
                return
            triggers = self._pending_ports
            self._pending_ports = []

        for trigger in triggers:
            await self._run_trigger(trigger)

    async def _run_trigger(self, trigger: PortTrigger) -> None:
        # Trigger variables only hold while the port's targets run
        context = self.context
        previous = {key: context.get(key, MISSING) for key in trigger.variables}
        context.update(trigger.variables)
        if trigger.reset:
            Node.clear_nodes([n for n in trigger.reset if n is not self])

        try:
            for target in list(self._port_targets(trigger.port)):
                await target.execute_node(self)
        finally:
            for key, value in previous.items():
                if value is MISSING:
                    context.pop(key, None)
                else:
                    context[key] = value

    # --- Re-arming ---

    def clear_result(self) -> None:
        """Forget the cached result so the node runs again on the next request."""
        self.result = None
        self.input = None
        self.has_error = False
        self.error_message = None
        self.last_exception = None

    @staticmethod
    def clear_nodes(nodes: list[Node]) -> None:
        for node in nodes:
            node.clear_result()

    def get_downstream_nodes(self, port: str | None = None) -> list[Node]:
        """Breadth-first walk from a port's targets (or all outputs) along output edges."""
        start = self.output_edges if port is None else self._port_targets(port)

        result: list[Node] = []
        visited: set[int] = set()
        queue: deque[Node] = deque()

        for target in start:
            if id(target) not in visited:
                visited.add(id(target))
                queue.append(target)

        while queue:
            node = queue.popleft()
            result.append(node)
            for child in node.output_edges:
                if id(child) not in visited:
                    visited.add(id(child))
                    queue.append(child)

        return result

    # --- Events ---

    def _emit(
        self,
        event_type: ExecutionEventType,
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        callback = self.on_event or (self.graph.on_event if self.graph is not None else None)
        if callback is None:
            return

        try:
            callback(
                ExecutionEvent(
                    type=event_type,
                    node_id=self.id,
                    function_name=self.function.name,
                    timestamp=datetime.now(),
                    result=result,
                    error=error,
                )
            )
        except Exception:
            logger.exception("Error in execution event callback")


def _is_text_type(annotation: Any) -> bool:
    if annotation is str:
        return True
    if get_origin(annotation) in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        return args == [str]
    return False
