"""
Flow serializer.

Persists nodes as a JSON document and loads them back against a (possibly
newer) function registry.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from ..core.config import settings
from ..core.exceptions import FlowGraphError, FunctionNotFoundError, ValidationError
from ..schemas.flow import PathMapEntrySchema, SerializableFlow, SerializableNode
from .function_registry import FunctionRegistryClass, function_registry
from .graph import Graph
from .node import Node
from .types import PathMapEntry

if TYPE_CHECKING:
    from ..services.service_provider import ServiceProvider

logger = logging.getLogger(__name__)


@dataclass
class FlowLoadResult:
    """Nodes loaded from a document, plus per-node load failures."""

    flow_name: str
    nodes: list[Node] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, FlowGraphError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_graph(self, services: ServiceProvider | None = None) -> Graph:
        graph = Graph(services=services)
        for node in self.nodes:
            graph.add_node(node)
        return graph


def serialize_flow(
    nodes: list[Node] | Graph,
    flow_name: str | None = None,
    metadata: dict[str, Any] | None = None,
    include_results: bool = True,
) -> str:
    """Serialize nodes to a flow document JSON string."""
    node_list = list(nodes.nodes.values()) if isinstance(nodes, Graph) else list(nodes)

    flow = SerializableFlow(
        version=settings.flow_document_version,
        flow_name=flow_name or settings.default_flow_name,
        created_at=datetime.now(timezone.utc),
        metadata=dict(metadata or {}),
        nodes=[_serialize_node(node, include_results) for node in node_list],
    )
    return flow.model_dump_json(by_alias=True, indent=2)


def _serialize_node(node: Node, include_results: bool) -> SerializableNode:
    injected = {p.name for p in node.function.descriptor.parameters if p.injected is not None}

    return SerializableNode(
        id=node.id,
        section=node.section,
        pos_x=node.pos_x,
        pos_y=node.pos_y,
        function_id=node.function.identifier,
        input_map=[
            PathMapEntrySchema(from_=entry.from_, to=entry.to)
            for entry in node.input_map
            if entry.to not in injected
        ],
        output_map=[PathMapEntrySchema(from_=entry.from_, to=entry.to) for entry in node.output_map],
        declared_output_ports=list(node.declared_output_ports),
        merge_output_with_input=node.merge_output_with_input,
        input=node.input if include_results else None,
        result=node.result if include_results else None,
        input_node_ids=[n.id for n in node.input_edges],
        output_node_ids=[n.id for n in node.output_edges],
        output_port_connections={
            port: [n.id for n in targets] for port, targets in node.output_ports.items() if targets
        },
    )


def validate_flow(document: str | bytes | dict[str, Any], allow_duplicate_ids: bool = False) -> SerializableFlow:
    """
    Validate a flow document without resolving any function.

    Raises:
        ValidationError: If the JSON is malformed, a required field is
            missing, the node list is empty or node ids repeat
    """
    if isinstance(document, (str, bytes)):
        try:
            data = json.loads(document)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Malformed flow JSON: {e.msg}") from e
    else:
        data = document

    if not isinstance(data, dict):
        raise ValidationError("Flow document must be a JSON object")

    try:
        flow = SerializableFlow.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid flow document: {location}: {first['msg']}", field=location) from e

    if not flow.nodes:
        raise ValidationError("Flow contains no nodes.", field="Nodes")

    if not allow_duplicate_ids:
        seen: set[str] = set()
        for record in flow.nodes:
            if record.id in seen:
                raise ValidationError(f"Duplicate node ID found: {record.id}", field="Nodes")
            seen.add(record.id)

    return flow


def deserialize_flow(
    document: str | bytes | dict[str, Any],
    registry: FunctionRegistryClass | None = None,
) -> FlowLoadResult:
    """
    Load nodes from a flow document.

    Nodes whose function cannot be resolved are reported in ``errors`` and
    skipped; the rest of the flow still loads. Repeated ids keep their
    first occurrence.

    Raises:
        ValidationError: If the document itself is invalid
    """
    flow = validate_flow(document, allow_duplicate_ids=True)
    registry = registry or function_registry

    loaded = FlowLoadResult(flow_name=flow.flow_name, metadata=dict(flow.metadata))
    nodes: dict[str, Node] = {}
    records: dict[str, SerializableNode] = {}

    for record in flow.nodes:
        if record.id in records or record.id in loaded.errors:
            logger.warning("Skipping duplicate node id %s", record.id)
            continue

        try:
            function = registry.resolve(record.function_id)
        except FunctionNotFoundError as e:
            logger.warning("Node %s could not be loaded: %s", record.id, e.message)
            loaded.errors[record.id] = e
            continue

        node = Node(
            function,
            record.id,
            input_map=[PathMapEntry(from_=e.from_, to=e.to) for e in record.input_map],
            output_map=[PathMapEntry(from_=e.from_, to=e.to) for e in record.output_map],
            merge_output_with_input=record.merge_output_with_input,
            declared_output_ports=record.declared_output_ports or None,
            section=record.section,
            pos_x=record.pos_x,
            pos_y=record.pos_y,
        )
        node.input = record.input
        node.result = record.result

        nodes[record.id] = node
        records[record.id] = record

    _restore_edges(nodes, records)

    loaded.nodes = list(nodes.values())
    if loaded.errors:
        logger.warning(
            "Loaded flow %r with %d of %d nodes",
            flow.flow_name,
            len(loaded.nodes),
            len(loaded.nodes) + len(loaded.errors),
        )
    return loaded


def _restore_edges(nodes: dict[str, Node], records: dict[str, SerializableNode]) -> None:
    for node_id, record in records.items():
        source = nodes[node_id]

        for port, target_ids in record.output_port_connections.items():
            for target_id in target_ids:
                target = nodes.get(target_id)
                if target is None:
                    logger.debug("Dropping edge %s -> %s: target not loaded", node_id, target_id)
                    continue
                source.add_output_connection(target, port)

        for target_id in record.output_node_ids:
            target = nodes.get(target_id)
            if target is not None and target not in source.output_edges:
                source.add_output_connection(target)

        for source_id in record.input_node_ids:
            upstream = nodes.get(source_id)
            if upstream is not None and source not in upstream.output_edges:
                upstream.add_output_connection(source)

    # Upstream merge order follows the persisted input order
    for node_id, record in records.items():
        order = {source_id: i for i, source_id in enumerate(record.input_node_ids)}
        nodes[node_id].input_edges.sort(key=lambda n: order.get(n.id, len(order)))


def graph_from_document(
    document: str | bytes | dict[str, Any],
    registry: FunctionRegistryClass | None = None,
    services: ServiceProvider | None = None,
) -> Graph:
    """Load a document straight into a Graph, logging nodes that failed to load."""
    return deserialize_flow(document, registry).to_graph(services)
