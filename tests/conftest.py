"""Shared fixtures for flowgraph tests."""

import pytest

from flowgraph.engine.builder import GraphBuilder
from flowgraph.engine.function_registry import FunctionRegistryClass, register_all_functions


@pytest.fixture
def registry() -> FunctionRegistryClass:
    """A fresh registry holding the built-in catalog."""
    return register_all_functions(FunctionRegistryClass())


@pytest.fixture
def builder(registry) -> GraphBuilder:
    return GraphBuilder(registry)


@pytest.fixture
def events():
    """Collects execution events; pass ``events.append`` as the callback."""
    return []
