"""
Iteration nodes that re-execute their downstream subgraph.

The body is computed once per run, cleared before each iteration and fed
through a temporary result on the iterating node, so every body node sees
the current element as its input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..engine.function_registry import flow_function
from ..engine.node import Node, NodeContext


@dataclass
class ForEachResult:
    results: list[dict[str, Any]] = field(default_factory=list)
    item_count: int = 0


@dataclass
class WhileResult:
    iterations_executed: int = 0
    completed_normally: bool = True


@dataclass
class MapResult:
    transformed_items: list[Any] = field(default_factory=list)


async def _for_each(ctx: NodeContext, collection: list[Any]) -> ForEachResult:
    if not collection:
        await ctx.execute_port_async("done")
        return ForEachResult()

    body = ctx.get_downstream_nodes("item")
    results: list[dict[str, Any]] = []
    total = len(collection)

    for index, item in enumerate(collection):
        ctx.clear_nodes(body)
        ctx.set_result(
            {
                "output": {
                    "currentItem": item,
                    "currentIndex": index,
                    "totalCount": total,
                    "isFirst": index == 0,
                    "isLast": index == total - 1,
                }
            }
        )
        try:
            await ctx.execute_port_async("item")
        finally:
            ctx.set_result(None)
        results.append({"index": index, "item": item, "processed": True})

    await ctx.execute_port_async("done")
    return ForEachResult(results=results, item_count=total)


@flow_function(name="ForEachString", section="Collections", ports=("item", "done"))
async def for_each_string(ctx: NodeContext, collection: list[str]) -> ForEachResult:
    """Run the item port once per string, then the done port."""
    return await _for_each(ctx, collection or [])


@flow_function(name="ForEachNumber", section="Collections", ports=("item", "done"))
async def for_each_number(ctx: NodeContext, collection: list[int]) -> ForEachResult:
    """Run the item port once per number, then the done port."""
    return await _for_each(ctx, collection or [])


@flow_function(name="WhileLoop", section="Collections", ports=("loop", "done"))
async def while_loop(ctx: NodeContext, initial_condition: bool, max_iterations: int = 1000) -> WhileResult:
    """
    Run the loop port while the ``keepLooping`` context flag is set.

    The flag starts as ``initial_condition``; the body turns it off (for
    example with SetVariable) to stop. ``max_iterations`` bounds the loop.
    """
    ctx.context["keepLooping"] = initial_condition
    body = ctx.get_downstream_nodes("loop")
    iterations = 0

    while ctx.context.get("keepLooping") and iterations < max_iterations:
        ctx.clear_nodes(body)
        ctx.set_result({"output": {"iteration": iterations, "maxIterations": max_iterations}})
        try:
            await ctx.execute_port_async("loop")
        finally:
            ctx.set_result(None)
        iterations += 1

    await ctx.execute_port_async("done")
    return WhileResult(
        iterations_executed=iterations,
        completed_normally=iterations < max_iterations,
    )


@flow_function(name="ForEachJson", section="Collections", ports=("item", "done"))
async def for_each_json(ctx: NodeContext, collection: list[Any]) -> ForEachResult:
    """Run the item port once per JSON element, then the done port."""
    return await _for_each(ctx, collection or [])


def _transformed(body: list[Node], item: Any) -> Any:
    # The last body node with a result holds the mapped value
    for node in reversed(body):
        if node.result is None:
            continue
        output = node.result.get("output")
        if isinstance(output, dict) and "result" in output:
            return output["result"]
        return output
    return item


async def _map(ctx: NodeContext, collection: list[Any]) -> MapResult:
    if not collection:
        await ctx.execute_port_async("done")
        return MapResult()

    body = ctx.get_downstream_nodes("transform")
    transformed: list[Any] = []

    for index, item in enumerate(collection):
        ctx.clear_nodes(body)
        ctx.set_result({"output": {"item": item, "index": index}})
        try:
            await ctx.execute_port_async("transform")
        finally:
            ctx.set_result(None)
        transformed.append(_transformed(body, item))

    await ctx.execute_port_async("done")
    return MapResult(transformed_items=transformed)


@flow_function(name="MapStrings", section="Collections", ports=("transform", "done"))
async def map_strings(ctx: NodeContext, collection: list[str]) -> MapResult:
    """
    Run the transform port once per string and collect what it produces.

    Each iteration exposes ``item`` and ``index``. The mapped value is the
    ``result`` of the last body node that ran; when nothing ran the item is
    kept as is.
    """
    return await _map(ctx, collection or [])


@flow_function(name="MapNumbers", section="Collections", ports=("transform", "done"))
async def map_numbers(ctx: NodeContext, collection: list[int]) -> MapResult:
    """Run the transform port once per number and collect what it produces."""
    return await _map(ctx, collection or [])


@flow_function(name="MapJson", section="Collections", ports=("transform", "done"))
async def map_json(ctx: NodeContext, collection: list[Any]) -> MapResult:
    return await _map(ctx, collection or [])
