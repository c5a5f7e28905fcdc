"""Opaque service locator injected into functions that ask for it."""

from __future__ import annotations

from typing import Any, TypeVar

from ..core.exceptions import ServiceNotFoundError
from ..engine.types import InjectedKind

T = TypeVar("T")


class ServiceProvider:
    """
    Lookup of services by type or by string key.

    Functions receive the provider by declaring a parameter annotated with
    ServiceProvider; the engine never looks inside it.
    """

    __flow_injected__ = InjectedKind.SERVICE_PROVIDER

    def __init__(self, services: dict[Any, Any] | None = None) -> None:
        self._services: dict[Any, Any] = dict(services or {})

    def add_service(self, key: Any, instance: Any | None = None) -> ServiceProvider:
        """
        Register a service.

        ``add_service(obj)`` registers an instance under its own type;
        ``add_service(key, obj)`` registers it under an explicit key.
        """
        if instance is None:
            instance, key = key, type(key)
        self._services[key] = instance
        return self

    def get_service(self, key: type[T] | str, default: Any = None) -> T | Any:
        """Get a service, matching subclasses when the key is a type."""
        if key in self._services:
            return self._services[key]
        if isinstance(key, type):
            for instance in self._services.values():
                if isinstance(instance, key):
                    return instance
        return default

    def get_required_service(self, key: type[T] | str) -> T | Any:
        """
        Get a service that must be registered.

        Raises:
            ServiceNotFoundError: If nothing is registered for the key
        """
        service = self.get_service(key)
        if service is None:
            raise ServiceNotFoundError(getattr(key, "__name__", str(key)))
        return service

    def has_service(self, key: type | str) -> bool:
        return self.get_service(key) is not None
