"""Local events provider using the Ticketmaster Discovery API.

API Reference: https://developer.ticketmaster.com/products-and-docs/apis/discovery-api/v2/
"""

from typing import Any

from locus.models.schemas import EventRecord, Location, ResourceKind
from locus.providers.base import ResourceProvider
from locus.providers.registry import register_provider

MAX_EVENTS = 20
SEARCH_RADIUS_MILES = 25


@register_provider(ResourceKind.EVENTS)
class TicketmasterEventsProvider(ResourceProvider):
    """Fetches upcoming events near a location."""

    name = "ticketmaster"
    base_url = "https://app.ticketmaster.com/discovery/v2"
    kind = ResourceKind.EVENTS

    def _auth_params(self) -> dict[str, str]:
        return {"apikey": self._require_key()}

    async def _fetch_payload(self, location: Location) -> dict[str, Any]:
        return await self._request(
            "events.json",
            {
                "latlong": f"{location.latitude},{location.longitude}",
                "radius": SEARCH_RADIUS_MILES,
                "unit": "miles",
                "size": MAX_EVENTS,
                "sort": "date,asc",
            },
        )

    def _parse(self, payload: dict[str, Any]) -> list[EventRecord]:
        # No "_embedded" key means no events matched
        events = payload.get("_embedded", {}).get("events", [])
        return [
            EventRecord(
                name=event["name"],
                link=event.get("url"),
                event_date=event.get("dates", {}).get("start", {}).get("localDate"),
                summary=event.get("info") or event.get("pleaseNote"),
            )
            for event in events[:MAX_EVENTS]
        ]
