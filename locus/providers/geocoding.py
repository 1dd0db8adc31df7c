"""Google Geocoding API provider.

Turns free-text search into a Location. The returned Location has no
identity yet; the cache controller assigns one when it persists it.

API Reference: https://developers.google.com/maps/documentation/geocoding/requests-geocoding
"""

from typing import Any

import structlog

from locus.core.exceptions import (
    NotFoundError,
    ProviderAuthError,
    ProviderError,
    ProviderPayloadError,
    ProviderRateLimitError,
)
from locus.models.schemas import Location, ResourceKind
from locus.monitoring.metrics import track_provider_operation
from locus.providers.base import BaseProvider
from locus.providers.registry import register_provider

logger = structlog.get_logger(__name__)


@register_provider(ResourceKind.LOCATION)
class GoogleGeocodingProvider(BaseProvider):
    """Resolves search text with the Google Geocoding API."""

    name = "google_geocoding"
    base_url = "https://maps.googleapis.com/maps/api"

    def _auth_params(self) -> dict[str, str]:
        return {"key": self._require_key()}

    async def geocode(self, query: str) -> Location:
        """Resolve search text to a location.

        Args:
            query: Free-text search, e.g. "Seattle, WA".

        Returns:
            Unsaved Location built from the best match.

        Raises:
            NotFoundError: When the geocoder finds nothing.
            ProviderError: On upstream failure or malformed payload.
        """
        with track_provider_operation(self.name, "geocode"):
            payload = await self._request("geocode/json", {"address": query})
            self._check_status(payload, query)

            results = payload.get("results") or []
            if not results:
                raise NotFoundError(query)

            return self._to_location(query, results[0])

    def _check_status(self, payload: dict[str, Any], query: str) -> None:
        # The Geocoding API reports most failures with HTTP 200 and a status field
        status = payload.get("status", "OK")
        if status in ("OK", "ZERO_RESULTS"):
            return
        if status == "OVER_QUERY_LIMIT":
            raise ProviderRateLimitError(self.name, "Query limit exceeded", {"query": query})
        if status == "REQUEST_DENIED":
            raise ProviderAuthError(
                self.name,
                payload.get("error_message", "Request denied"),
                {"query": query},
            )
        raise ProviderError(self.name, f"Geocoding failed: {status}", {"query": query})

    def _to_location(self, query: str, result: dict[str, Any]) -> Location:
        try:
            point = result["geometry"]["location"]
            return Location(
                search_query=query,
                formatted_query=result["formatted_address"],
                latitude=point["lat"],
                longitude=point["lng"],
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error("geocode_payload_invalid", query=query, error=str(e))
            raise ProviderPayloadError(
                self.name, f"Malformed geocode result: {e}", {"query": query}
            ) from e
