"""Base provider interface for all upstream data sources.

Every provider shares one HTTP path: a lazily created httpx.AsyncClient, a
per-provider circuit breaker, and a status-code mapping onto the Locus error
taxonomy. Subclasses build the request and translate the payload.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
import structlog

from locus.core.circuit_breaker import CircuitBreaker, get_circuit_breaker
from locus.core.exceptions import (
    CircuitBreakerOpenError,
    ProviderAuthError,
    ProviderError,
    ProviderPayloadError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from locus.models.schemas import Location, ResourceKind, ResourceRecord
from locus.monitoring.metrics import track_provider_operation

logger = structlog.get_logger(__name__)


class BaseProvider(ABC):
    """Shared HTTP plumbing for upstream providers.

    Example:
        async with TMDBMoviesProvider(api_key="...") as provider:
            movies = await provider.fetch(location)
    """

    name: str = "provider"
    base_url: str = ""

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the provider.

        Args:
            api_key: Upstream API key. Calls fail with ProviderAuthError when missing.
            timeout: Request timeout in seconds.
            client: Pre-built HTTP client, mostly for tests.
        """
        self._api_key = api_key
        self._timeout = timeout
        self._client = client
        self._breaker: CircuitBreaker = get_circuit_breaker(self.name)

    async def __aenter__(self) -> "BaseProvider":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _require_key(self) -> str:
        if not self._api_key:
            raise ProviderAuthError(self.name, "API key not configured")
        return self._api_key

    def _auth_headers(self) -> dict[str, str]:
        """Headers carrying credentials. Providers using query keys return {}."""
        return {}

    def _auth_params(self) -> dict[str, str]:
        """Query parameters carrying credentials."""
        return {}

    async def _request(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """GET a JSON document through the circuit breaker.

        Args:
            path: Path appended to base_url.
            params: Query parameters (credentials are added automatically).

        Returns:
            Parsed JSON object.

        Raises:
            ProviderUnavailableError: When the circuit breaker is open.
            ProviderRateLimitError: On 429.
            ProviderAuthError: On 401/403 or when no key is configured.
            ProviderTimeoutError: When the request times out.
            ProviderPayloadError: When the body is not a JSON object.
            ProviderError: On other HTTP or transport errors.
        """
        self._require_key()

        client = await self._ensure_client()
        url = f"{self.base_url}/{path.lstrip('/')}"
        # Some providers put the key in the path; keep it out of logs
        path = path.replace(self._api_key, "***")

        try:
            self._breaker.ensure_closed()
        except CircuitBreakerOpenError as e:
            logger.warning("provider_circuit_open", provider=self.name, recovery_time=e.recovery_time)
            raise ProviderUnavailableError(
                self.name,
                e.message,
                {"path": path, "recovery_time": e.recovery_time},
            ) from e

        query = {**(params or {}), **self._auth_params()}

        try:
            response = await client.get(url, params=query, headers=self._auth_headers())
        except httpx.TimeoutException as e:
            await self._breaker.record_failure()
            logger.error("provider_timeout", provider=self.name, path=path, error=str(e))
            raise ProviderTimeoutError(self.name, f"Request timeout: {e}", {"path": path}) from e
        except httpx.RequestError as e:
            await self._breaker.record_failure()
            logger.error("provider_request_error", provider=self.name, path=path, error=str(e))
            raise ProviderError(
                self.name,
                f"Request failed: {e}",
                {"path": path, "original_error": str(e)},
            ) from e

        if response.status_code == 429:
            await self._breaker.record_failure()
            logger.warning("provider_rate_limited", provider=self.name, path=path)
            raise ProviderRateLimitError(self.name, "Rate limited", {"path": path})
        elif response.status_code in (401, 403):
            await self._breaker.record_failure()
            raise ProviderAuthError(
                self.name,
                f"Not authorized ({response.status_code})",
                {"path": path, "status_code": response.status_code},
            )
        elif response.status_code >= 400:
            await self._breaker.record_failure()
            logger.error(
                "provider_api_error",
                provider=self.name,
                status_code=response.status_code,
                path=path,
            )
            raise ProviderError(
                self.name,
                f"API error {response.status_code}",
                {"path": path, "status_code": response.status_code},
            )

        await self._breaker.record_success()

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderPayloadError(self.name, "Response is not JSON", {"path": path}) from e
        if not isinstance(payload, dict):
            raise ProviderPayloadError(self.name, "Response is not a JSON object", {"path": path})
        return payload

    async def health_check(self) -> bool:
        """Check if the provider can currently be called."""
        return self.is_configured and self._breaker.can_execute()


class ResourceProvider(BaseProvider):
    """Provider that returns a batch of records for one location."""

    kind: ResourceKind

    async def fetch(self, location: Location) -> list[ResourceRecord]:
        """Fetch and normalize the current batch for a location.

        Raises:
            ProviderError: On any upstream failure or malformed payload.
        """
        with track_provider_operation(self.name, "fetch"):
            payload = await self._fetch_payload(location)
            try:
                return self._parse(payload)
            except (KeyError, TypeError, ValueError) as e:
                logger.error(
                    "provider_payload_invalid",
                    provider=self.name,
                    location_id=location.id,
                    error=str(e),
                )
                raise ProviderPayloadError(
                    self.name,
                    f"Malformed payload: {e}",
                    {"location_id": location.id},
                ) from e

    @abstractmethod
    async def _fetch_payload(self, location: Location) -> dict[str, Any]:
        """Call the upstream API for this location."""
        ...

    @abstractmethod
    def _parse(self, payload: dict[str, Any]) -> list[ResourceRecord]:
        """Translate the upstream payload into canonical records."""
        ...
