"""Business reviews provider using the Yelp Fusion API.

API Reference: https://docs.developer.yelp.com/reference/v3_business_search
"""

from typing import Any

from locus.models.schemas import Location, ResourceKind, ReviewRecord
from locus.providers.base import ResourceProvider
from locus.providers.registry import register_provider

MAX_BUSINESSES = 20


@register_provider(ResourceKind.REVIEWS)
class YelpReviewsProvider(ResourceProvider):
    """Fetches reviewed businesses near a location."""

    name = "yelp"
    base_url = "https://api.yelp.com/v3"
    kind = ResourceKind.REVIEWS

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._require_key()}"}

    async def _fetch_payload(self, location: Location) -> dict[str, Any]:
        return await self._request(
            "businesses/search",
            {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "limit": MAX_BUSINESSES,
            },
        )

    def _parse(self, payload: dict[str, Any]) -> list[ReviewRecord]:
        return [
            ReviewRecord(
                name=business["name"],
                rating=business.get("rating"),
                price=business.get("price"),
                url=business.get("url"),
                image_url=business.get("image_url") or None,
            )
            for business in payload["businesses"]
        ]
