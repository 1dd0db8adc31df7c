"""Daily forecast provider using the Dark Sky compatible Pirate Weather API.

API Reference: https://docs.pirateweather.net/en/latest/API/
"""

from datetime import datetime, timezone
from typing import Any

from locus.models.schemas import Location, ResourceKind, WeatherRecord
from locus.providers.base import ResourceProvider
from locus.providers.registry import register_provider

FORECAST_DATE_FORMAT = "%a %b %d %Y"


def format_forecast_day(epoch_seconds: int) -> str:
    """Render a forecast timestamp as e.g. 'Mon Jan 01 2024' (UTC)."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime(FORECAST_DATE_FORMAT)


@register_provider(ResourceKind.WEATHER)
class PirateWeatherProvider(ResourceProvider):
    """Fetches the daily forecast for a location's coordinates."""

    name = "pirate_weather"
    base_url = "https://api.pirateweather.net"
    kind = ResourceKind.WEATHER

    async def _fetch_payload(self, location: Location) -> dict[str, Any]:
        # The key is part of the path for Dark Sky compatible endpoints
        key = self._require_key()
        return await self._request(
            f"forecast/{key}/{location.latitude},{location.longitude}",
            {"exclude": "currently,minutely,hourly,alerts", "units": "us"},
        )

    def _parse(self, payload: dict[str, Any]) -> list[WeatherRecord]:
        days = payload["daily"]["data"]
        return [
            WeatherRecord(
                forecast=day.get("summary") or "",
                time=format_forecast_day(int(day["time"])),
            )
            for day in days
        ]
