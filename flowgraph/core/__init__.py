"""Core configuration, logging and exceptions."""

from .config import Settings, get_settings, settings
from .exceptions import (
    CoercionError,
    ExpressionError,
    FlowGraphError,
    FunctionNotFoundError,
    InvocationError,
    MissingUpstreamError,
    NodeNotFoundError,
    ServiceNotFoundError,
    ValidationError,
)
from .logging import setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "setup_logging",
    "FlowGraphError",
    "CoercionError",
    "ExpressionError",
    "FunctionNotFoundError",
    "InvocationError",
    "MissingUpstreamError",
    "NodeNotFoundError",
    "ServiceNotFoundError",
    "ValidationError",
]
