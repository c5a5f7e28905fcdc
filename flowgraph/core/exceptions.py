"""Custom exceptions for the flow graph engine."""

from typing import Any


class FlowGraphError(Exception):
    """Base exception for all flow graph errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CoercionError(FlowGraphError):
    """Raised when a value cannot be converted to a parameter type."""

    def __init__(self, value: Any, target: str, reason: str | None = None) -> None:
        message = f"Cannot convert {value!r} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            details={"value": repr(value), "target": target},
        )
        self.value = value
        self.target = target


class FunctionNotFoundError(FlowGraphError):
    """Raised when a function identifier cannot be resolved."""

    def __init__(self, identifier: str) -> None:
        super().__init__(
            message=f"Function not found: {identifier}",
            details={"identifier": identifier},
        )
        self.identifier = identifier


class NodeNotFoundError(FlowGraphError):
    """Raised when a node id is not part of a graph."""

    def __init__(self, node_id: str) -> None:
        super().__init__(
            message=f"Node not found: {node_id}",
            details={"node_id": node_id},
        )
        self.node_id = node_id


class ServiceNotFoundError(FlowGraphError):
    """Raised when a required service is not registered."""

    def __init__(self, service: str) -> None:
        super().__init__(
            message=f"Service not registered: {service}",
            details={"service": service},
        )
        self.service = service


class MissingUpstreamError(FlowGraphError):
    """Raised when a node requires upstream data that is not connected."""

    def __init__(self, node_id: str) -> None:
        super().__init__(
            message=f"Node {node_id} has no upstream result",
            details={"node_id": node_id},
        )
        self.node_id = node_id


class InvocationError(FlowGraphError):
    """Raised when a node's backing function fails."""

    def __init__(self, message: str, function_name: str, node_id: str | None = None) -> None:
        super().__init__(
            message=f"{function_name} failed on node {node_id}: {message}",
            details={"function_name": function_name, "node_id": node_id},
        )
        self.function_name = function_name
        self.node_id = node_id


class ValidationError(FlowGraphError):
    """Raised when a persisted flow document is invalid."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )
        self.field = field


class ExpressionError(FlowGraphError):
    """Raised when a mapping template cannot be rendered."""

    def __init__(self, message: str, expression: str) -> None:
        super().__init__(
            message=f"{message} (expression: {expression})",
            details={"expression": expression},
        )
        self.expression = expression
