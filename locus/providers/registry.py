"""Provider registry for runtime provider selection.

Provides decorator-based registration keyed by resource kind and a factory
function for instantiating providers.
"""

from typing import TYPE_CHECKING, Any

from locus.models.schemas import ResourceKind

if TYPE_CHECKING:
    from locus.providers.base import BaseProvider


_providers: dict[ResourceKind, type["BaseProvider"]] = {}


def register_provider(kind: ResourceKind):
    """Decorator to register the provider class serving a resource kind.

    Args:
        kind: The ResourceKind this provider fetches.

    Returns:
        Decorator function that registers the class.

    Example:
        @register_provider(ResourceKind.MOVIES)
        class TMDBMoviesProvider(ResourceProvider):
            ...
    """

    def decorator(cls: type["BaseProvider"]):
        _providers[kind] = cls
        return cls

    return decorator


def get_provider(kind: ResourceKind, **kwargs: Any) -> "BaseProvider":
    """Factory function to get a provider instance.

    Args:
        kind: The resource kind to fetch.
        **kwargs: Constructor arguments (api_key, timeout, client).

    Returns:
        Instantiated provider.

    Raises:
        ValueError: If no provider is registered for the kind.
    """
    if kind not in _providers:
        raise ValueError(f"Unknown provider kind: {kind}")
    return _providers[kind](**kwargs)


def list_providers() -> list[ResourceKind]:
    """List all resource kinds with a registered provider."""
    return list(_providers.keys())
