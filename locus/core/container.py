"""
Dependency Injection Container for Locus.

Builds the persisted store, the providers and the cache controller from
settings, and owns their lifecycle. The store is passed explicitly to the
controller so tests can substitute an in-memory one.

Usage:
    # At application startup
    container = DependencyContainer()
    await container.initialize()

    controller = container.controller

    # At shutdown
    await container.shutdown()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog

from locus.config.settings import Settings, get_settings
from locus.core.exceptions import InitializationError
from locus.models.schemas import ResourceKind

if TYPE_CHECKING:
    from locus.cache.controller import CacheAsideController
    from locus.cache.freshness import FreshnessEvaluator
    from locus.providers.base import ResourceProvider
    from locus.providers.geocoding import GoogleGeocodingProvider
    from locus.store.base import PersistedStore

logger = structlog.get_logger(__name__)


def _secret(value) -> Optional[str]:
    return value.get_secret_value() if value else None


class DependencyContainer:
    """
    Central container for all service dependencies.

    Services are created on first access and cached.

    Example:
        container = DependencyContainer(settings)
        store = container.store
        controller = container.controller
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: "PersistedStore" | None = None,
        freshness: "FreshnessEvaluator" | None = None,
    ):
        """
        Initialize the container.

        Args:
            settings: Application settings. Defaults to get_settings().
            store: Pre-built store. Built from settings when omitted.
            freshness: Pre-built freshness policy (e.g. with a test clock).
        """
        self._settings = settings or get_settings()
        self._store = store
        self._freshness = freshness
        self._providers: dict[ResourceKind, "ResourceProvider"] | None = None
        self._geocoder: "GoogleGeocodingProvider" | None = None
        self._controller: "CacheAsideController" | None = None
        self._initialized = False

        logger.info("dependency_container_created", store_backend=self._settings.store_backend)

    @property
    def settings(self) -> Settings:
        """Get application settings."""
        return self._settings

    @property
    def store(self) -> "PersistedStore":
        """
        Get the persisted store (lazy initialization).

        Raises:
            InitializationError: If the store cannot be created.
        """
        if self._store is None:
            from locus.cache.descriptors import descriptors_from_settings

            descriptors = descriptors_from_settings(self._settings)
            if self._settings.store_backend == "supabase":
                from locus.store.supabase_store import SupabaseStore

                try:
                    self._store = SupabaseStore.from_credentials(
                        self._settings.supabase_url,
                        _secret(self._settings.supabase_key),
                        descriptors,
                    )
                except Exception as e:
                    logger.error("supabase_store_creation_failed", error=str(e))
                    raise InitializationError(
                        "SupabaseStore",
                        f"Failed to create Supabase client: {e}",
                        {"url": self._settings.supabase_url},
                    ) from e
            else:
                from locus.store.memory import InMemoryStore

                self._store = InMemoryStore(descriptors)
            logger.info("store_created", store=self._store.name)
        return self._store

    @property
    def geocoder(self) -> "GoogleGeocodingProvider":
        """Get the geocoding provider."""
        if self._geocoder is None:
            from locus.providers.geocoding import GoogleGeocodingProvider

            self._geocoder = GoogleGeocodingProvider(
                api_key=_secret(self._settings.geocode_api_key),
                timeout=self._settings.provider_timeout_seconds,
            )
        return self._geocoder

    @property
    def providers(self) -> dict[ResourceKind, "ResourceProvider"]:
        """Get one provider per record kind."""
        if self._providers is None:
            from locus.providers.events import TicketmasterEventsProvider
            from locus.providers.movies import TMDBMoviesProvider
            from locus.providers.reviews import YelpReviewsProvider
            from locus.providers.weather import PirateWeatherProvider

            timeout = self._settings.provider_timeout_seconds
            self._providers = {
                ResourceKind.WEATHER: PirateWeatherProvider(
                    api_key=_secret(self._settings.weather_api_key), timeout=timeout
                ),
                ResourceKind.EVENTS: TicketmasterEventsProvider(
                    api_key=_secret(self._settings.events_api_key), timeout=timeout
                ),
                ResourceKind.MOVIES: TMDBMoviesProvider(
                    api_key=_secret(self._settings.movies_api_key),
                    timeout=timeout,
                    region=self._settings.movies_region,
                ),
                ResourceKind.REVIEWS: YelpReviewsProvider(
                    api_key=_secret(self._settings.reviews_api_key), timeout=timeout
                ),
            }
            unconfigured = [k.value for k, p in self._providers.items() if not p.is_configured]
            if unconfigured:
                logger.warning("providers_missing_api_keys", kinds=unconfigured)
        return self._providers

    @property
    def controller(self) -> "CacheAsideController":
        """Get the cache-aside controller."""
        if self._controller is None:
            from locus.cache.controller import CacheAsideController
            from locus.cache.freshness import FreshnessEvaluator

            store = self.store
            freshness = self._freshness or FreshnessEvaluator(store.descriptors)
            self._controller = CacheAsideController(
                store=store,
                providers=self.providers,
                geocoder=self.geocoder,
                freshness=freshness,
            )
        return self._controller

    async def initialize(self) -> None:
        """
        Build all services and verify the store is reachable.

        An unreachable store is logged, not fatal: requests fail individually
        until it comes back.
        """
        if self._initialized:
            logger.warning("container_already_initialized")
            return

        logger.info("container_initializing")
        _ = self.controller

        if not await self.store.health_check():
            logger.warning("store_unreachable_at_startup", store=self.store.name)

        self._initialized = True
        logger.info("container_initialized")

    async def shutdown(self) -> None:
        """
        Close provider clients and the store.

        Call this at application shutdown.
        """
        logger.info("container_shutting_down")

        clients = list((self._providers or {}).values())
        if self._geocoder is not None:
            clients.append(self._geocoder)
        for provider in clients:
            try:
                await provider.aclose()
            except Exception as e:
                logger.error("provider_close_error", provider=provider.name, error=str(e))

        if self._store is not None:
            try:
                await self._store.close()
            except Exception as e:
                logger.error("store_close_error", store=self._store.name, error=str(e))

        self._initialized = False
        logger.info("container_shutdown_complete")

    @property
    def is_initialized(self) -> bool:
        """Check if container has been initialized."""
        return self._initialized
