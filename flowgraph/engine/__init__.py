"""Core flow graph engine components."""

from .builder import GraphBuilder, GraphExecutionResult, NodeBuilder
from .expression_engine import ExpressionEngine, expression_engine
from .function_registry import (
    FunctionRegistryClass,
    RegisteredFunction,
    flow_function,
    function_registry,
    register_all_functions,
)
from .graph import Graph
from .jtree import MISSING, coerce_to_type, get_by_path, merge, set_by_path, to_plain_object
from .node import Node, NodeContext
from .serializer import FlowLoadResult, deserialize_flow, graph_from_document, serialize_flow, validate_flow
from .types import (
    ExecutionEvent,
    ExecutionEventType,
    FunctionDescriptor,
    GraphExecutionContext,
    InjectedKind,
    ParameterSpec,
    PathMapEntry,
)

__all__ = [
    "MISSING",
    "get_by_path",
    "set_by_path",
    "merge",
    "coerce_to_type",
    "to_plain_object",
    "ExpressionEngine",
    "expression_engine",
    "FunctionRegistryClass",
    "RegisteredFunction",
    "flow_function",
    "function_registry",
    "register_all_functions",
    "Node",
    "NodeContext",
    "Graph",
    "GraphBuilder",
    "NodeBuilder",
    "GraphExecutionResult",
    "FlowLoadResult",
    "serialize_flow",
    "deserialize_flow",
    "validate_flow",
    "graph_from_document",
    "ExecutionEvent",
    "ExecutionEventType",
    "FunctionDescriptor",
    "GraphExecutionContext",
    "InjectedKind",
    "ParameterSpec",
    "PathMapEntry",
]
