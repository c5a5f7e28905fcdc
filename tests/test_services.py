"""Tests for the service provider, prompt service and settings."""

import asyncio

import pytest

from flowgraph.core.config import Settings
from flowgraph.core.exceptions import InvocationError, ServiceNotFoundError
from flowgraph.engine.builder import GraphBuilder
from flowgraph.nodes.core_nodes import prompt_user
from flowgraph.services import PromptRequest, ServiceProvider, UserPromptService


class Clock:
    pass


class FixedClock(Clock):
    pass


def answering(value):
    """A prompt service whose callback answers every prompt with ``value``."""
    service = UserPromptService()
    service.on_prompt = lambda request: service.submit_response(request.prompt_id, value)
    return service


# ---------------------------------------------------------------------------
# ServiceProvider
# ---------------------------------------------------------------------------


class TestServiceProvider:
    def test_lookup_by_type(self):
        clock = Clock()
        services = ServiceProvider().add_service(clock)
        assert services.get_service(Clock) is clock
        assert services.has_service(Clock)

    def test_lookup_matches_subclasses(self):
        clock = FixedClock()
        services = ServiceProvider().add_service(clock)
        assert services.get_service(Clock) is clock

    def test_string_keys(self):
        services = ServiceProvider({"api_key": "secret"})
        services.add_service("region", "eu")
        assert services.get_service("api_key") == "secret"
        assert services.get_service("region") == "eu"
        assert services.get_service("missing", "fallback") == "fallback"

    def test_required_service_must_exist(self):
        with pytest.raises(ServiceNotFoundError) as exc_info:
            ServiceProvider().get_required_service(Clock)
        assert exc_info.value.service == "Clock"


# ---------------------------------------------------------------------------
# UserPromptService
# ---------------------------------------------------------------------------


class TestUserPromptService:
    async def test_callback_answers_the_prompt(self):
        seen: list[PromptRequest] = []
        service = UserPromptService()

        def on_prompt(request):
            seen.append(request)
            service.submit_response(request.prompt_id, "42")

        service.on_prompt = on_prompt

        assert await service.prompt_user("Pick a number", "7") == "42"
        assert seen[0].message == "Pick a number"
        assert seen[0].default_value == "7"
        assert service.pending_prompts == []

    async def test_answer_from_another_task(self):
        service = UserPromptService()
        waiting = asyncio.create_task(service.prompt_user("Name?"))
        await asyncio.sleep(0)

        [request] = service.pending_prompts
        assert service.submit_response(request.prompt_id, "ada")
        assert await waiting == "ada"
        assert not service.submit_response(request.prompt_id, "again")

    async def test_cancel_returns_none(self):
        service = UserPromptService()
        service.on_prompt = lambda request: service.cancel_prompt(request.prompt_id)
        assert await service.prompt_user("Continue?") is None

    async def test_timeout(self):
        service = UserPromptService()
        with pytest.raises(asyncio.TimeoutError):
            await service.prompt_user("Anyone?", timeout=0.01)
        assert service.pending_prompts == []

    def test_unknown_prompt_id(self):
        service = UserPromptService()
        assert not service.submit_response("nope", "x")
        assert not service.cancel_prompt("nope")


# ---------------------------------------------------------------------------
# PromptUser function
# ---------------------------------------------------------------------------


class TestPromptUser:
    async def test_returns_the_answer(self):
        services = ServiceProvider().add_service(answering("blue"))
        assert await prompt_user(services, "Favourite colour?", "red") == "blue"

    async def test_cancel_falls_back_to_default(self):
        services = ServiceProvider().add_service(answering(None))
        assert await prompt_user(services, "Favourite colour?", "red") == "red"

    async def test_requires_the_prompt_service(self):
        with pytest.raises(ServiceNotFoundError):
            await prompt_user(ServiceProvider(), "Hello?")
        with pytest.raises(ServiceNotFoundError):
            await prompt_user(None, "Hello?")

    async def test_requires_a_message(self):
        services = ServiceProvider().add_service(answering("x"))
        with pytest.raises(ValueError):
            await prompt_user(services, "   ")

    async def test_through_a_graph(self, registry):
        services = ServiceProvider().add_service(answering("ada"))
        builder = GraphBuilder(registry, services=services)
        result = await (
            builder.add_node("ask", "PromptUser").map_input("prompt_message", "Name?")
            .connect_to("shout")
            .add_node("shout", "ToUpper").map_input("input", "input.result")
            .build()
            .execute("ask")
        )
        assert result.get_output("shout", "result") == "ADA"

    async def test_empty_message_fails_the_node(self, registry):
        builder = GraphBuilder(registry, services=ServiceProvider().add_service(answering("x")))
        builder.add_node("ask", "PromptUser")
        with pytest.raises(InvocationError):
            await builder.execute("ask")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.registry_version == "1.0.0.0"
        assert settings.default_flow_name == "Untitled Flow"
        assert settings.http_timeout_ms == 10000

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FLOWGRAPH_REGISTRY_VERSION", "3.1.0.0")
        monkeypatch.setenv("FLOWGRAPH_HTTP_TIMEOUT_MS", "250")
        settings = Settings()
        assert settings.registry_version == "3.1.0.0"
        assert settings.http_timeout_ms == 250
