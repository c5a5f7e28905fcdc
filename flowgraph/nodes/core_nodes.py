"""Control flow, logic and utility functions."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from ..engine.function_registry import flow_function
from ..engine.node import NodeContext
from ..services.prompt_service import UserPromptService
from ..services.service_provider import ServiceProvider

logger = logging.getLogger(__name__)


# --- Flow ---


@flow_function(name="Start", section="Flow")
def start() -> None:
    """Entry point of a flow."""


@flow_function(name="If", section="Flow", ports=("true", "false"))
async def if_(ctx: NodeContext, condition: bool) -> None:
    """Run the true port when the condition holds, otherwise the false port."""
    await ctx.execute_port_async("true" if condition else "false")


@flow_function(name="For", section="Flow", ports=("loop", "done"))
async def for_(ctx: NodeContext, start: int, end: int) -> None:
    """
    Run the loop port once per index in [start, end), then the done port.

    The current index is available to the loop body as ``index`` in the
    shared context. When start is greater than end only done runs.
    """
    if start > end:
        await ctx.execute_port_async("done")
        return

    body = ctx.get_downstream_nodes("loop")
    for index in range(start, end):
        await ctx.execute_port_async("loop", reset=body, variables={"index": index})
    await ctx.execute_port_async("done")


@flow_function(name="Repeat", section="Flow", ports=("loop", "done"))
async def repeat(ctx: NodeContext, count: int) -> None:
    """Run the loop port ``count`` times, then the done port."""
    body = ctx.get_downstream_nodes("loop")
    for index in range(max(count, 0)):
        await ctx.execute_port_async("loop", reset=body, variables={"index": index})
    await ctx.execute_port_async("done")


@flow_function(name="While", section="Flow", ports=("loop", "done"))
async def while_(ctx: NodeContext, condition: bool) -> None:
    """Run the loop port if the condition holds, otherwise done. Evaluated once."""
    await ctx.execute_port_async("loop" if condition else "done")


# --- Logic ---


@flow_function(name="And", section="Logic")
def and_(a: bool, b: bool) -> bool:
    return a and b


@flow_function(name="Or", section="Logic")
def or_(a: bool, b: bool) -> bool:
    return a or b


@flow_function(name="Xor", section="Logic")
def xor(a: bool, b: bool) -> bool:
    return a != b


@flow_function(name="Not", section="Logic")
def not_(value: bool) -> bool:
    return not value


@flow_function(name="Ternary", section="Logic")
def ternary(condition: bool, true_value: str, false_value: str) -> str:
    """Pick one of two values."""
    return true_value if condition else false_value


# --- Variables ---


@flow_function(name="IntVariable", section="Variables")
def int_variable(value: int) -> int:
    return value


@flow_function(name="StringVariable", section="Variables")
def string_variable(value: str) -> str:
    return value or ""


@flow_function(name="SetVariable", section="Variables")
def set_variable(ctx: NodeContext, name: str, value: Any) -> Any:
    """Store a value in the shared context, where later templates can read it."""
    if not name or not name.strip():
        raise ValueError("Variable name is required")
    ctx.context[name.strip()] = value
    return value


# --- Utilities ---


@flow_function(name="Log", section="Utilities")
def log(message: str) -> str:
    """Write a message to the flow log and pass it through."""
    logger.info("%s", message or "")
    return message or ""


@flow_function(name="LogError", section="Utilities")
def log_error(message: str) -> str:
    logger.error("%s", message or "")
    return message or ""


@flow_function(name="Wait", section="Utilities")
async def wait(time_ms: int) -> None:
    """Pause for a number of milliseconds; negative values do not wait."""
    await asyncio.sleep(max(time_ms, 0) / 1000)


@flow_function(name="NewGuid", section="Utilities")
def new_guid() -> str:
    return str(uuid.uuid4())


@flow_function(name="PromptUser", section="Utilities")
async def prompt_user(services: ServiceProvider, prompt_message: str, default_value: str = "") -> str:
    """
    Ask the user for a value and wait for the answer.

    Returns the default value when the prompt is cancelled or answered
    with nothing.

    Raises:
        ValueError: If the prompt message is empty
        ServiceNotFoundError: If no UserPromptService is registered
    """
    if not prompt_message or not prompt_message.strip():
        raise ValueError("Prompt message is required")
    if services is None:
        services = ServiceProvider()

    prompts: UserPromptService = services.get_required_service(UserPromptService)
    answer = await prompts.prompt_user(prompt_message, default_value)
    return answer or default_value or ""
