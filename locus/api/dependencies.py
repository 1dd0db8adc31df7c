"""FastAPI dependency injection providers.

This module provides dependency functions for injecting services into route handlers.
"""

from typing import Optional

from locus.cache.controller import CacheAsideController
from locus.core.container import DependencyContainer

_container_instance: Optional[DependencyContainer] = None


def get_container() -> DependencyContainer:
    """
    Get the dependency container.

    Returns the container set up on startup.

    Raises:
        RuntimeError: If the container has not been initialized.
    """
    if _container_instance is None:
        raise RuntimeError(
            "Container not initialized. Ensure the application startup event has run."
        )
    return _container_instance


def set_container(container: DependencyContainer) -> None:
    """
    Set the global container instance.

    Called during application startup, or by tests with a prepared container.
    """
    global _container_instance
    _container_instance = container


def get_controller() -> CacheAsideController:
    """Get the cache-aside controller from the container."""
    return get_container().controller


def reset_dependencies() -> None:
    """
    Reset all global dependency instances.

    Useful for testing or application shutdown.
    """
    global _container_instance
    _container_instance = None
