"""
Service Registry - lifetime management for long-lived services.

Holds the application's RegistryService (and anything else that needs one
instance per process) without module-level singletons in the services
themselves. Services are registered as instances or as factories; tests
reset the registry between cases.

Usage:
    from core.service_registry import services

    # Register (typically in app startup)
    services.register_factory("rbac_registry", RegistryService)

    # Retrieve
    registry = services.get("rbac_registry")

    # In tests (via conftest.py fixture)
    services.reset_all()
"""

import logging
from threading import RLock
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """
    Service registry with lazy initialization.

    Factories run at most once per reset, under a lock, so concurrent first
    lookups share one instance.
    """

    def __init__(self):
        self._services: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._lock = RLock()

    def register(self, name: str, instance: Any) -> None:
        """Register (or replace) a service instance."""
        with self._lock:
            self._services[name] = instance
        logger.debug(f"Service registered: {name}")

    def register_factory(self, name: str, factory: Callable[[], Any]) -> None:
        """
        Register a factory for lazy initialization.

        Re-registering a factory keeps an already created instance.
        """
        with self._lock:
            self._factories[name] = factory
        logger.debug(f"Service factory registered: {name}")

    def get(self, name: str, default: Any = None) -> Any:
        """Retrieve a service, creating it from its factory on first use."""
        with self._lock:
            if name in self._services:
                return self._services[name]

            factory = self._factories.get(name)
            if factory is None:
                return default

            instance = factory()
            self._services[name] = instance
            return instance

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._services or name in self._factories

    def reset_all(self) -> None:
        """Drop every cached instance. Factories are preserved."""
        with self._lock:
            self._services.clear()
        logger.debug("All services reset")


# Process-wide registry of services
services = ServiceRegistry()
