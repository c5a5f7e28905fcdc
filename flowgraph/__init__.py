"""flowgraph: a graph-based workflow execution engine."""

from .core import FlowGraphError, settings, setup_logging
from .engine import (
    Graph,
    GraphBuilder,
    Node,
    NodeContext,
    deserialize_flow,
    flow_function,
    function_registry,
    register_all_functions,
    serialize_flow,
    validate_flow,
)
from .services import ServiceProvider, UserPromptService

__version__ = "0.1.0"

__all__ = [
    "FlowGraphError",
    "settings",
    "setup_logging",
    "Graph",
    "GraphBuilder",
    "Node",
    "NodeContext",
    "deserialize_flow",
    "flow_function",
    "function_registry",
    "register_all_functions",
    "serialize_flow",
    "validate_flow",
    "ServiceProvider",
    "UserPromptService",
]
