"""
Upstream data providers.

One provider per resource kind, each normalizing its upstream payload into
the canonical record shape:

- geocoding: Google Geocoding API (search text to Location)
- weather: Pirate Weather, Dark Sky compatible daily forecast
- events: Ticketmaster Discovery events near the coordinates
- movies: TMDB now-playing listing for the configured region
- reviews: Yelp Fusion businesses near the coordinates

Example:
    from locus.providers import get_provider
    from locus.models import ResourceKind

    async with get_provider(ResourceKind.WEATHER, api_key="...") as provider:
        forecast = await provider.fetch(location)
"""

from locus.providers.base import BaseProvider, ResourceProvider
from locus.providers.events import TicketmasterEventsProvider
from locus.providers.geocoding import GoogleGeocodingProvider
from locus.providers.movies import TMDBMoviesProvider
from locus.providers.registry import get_provider, list_providers, register_provider
from locus.providers.reviews import YelpReviewsProvider
from locus.providers.weather import PirateWeatherProvider

__all__ = [
    "BaseProvider",
    "ResourceProvider",
    "GoogleGeocodingProvider",
    "PirateWeatherProvider",
    "TicketmasterEventsProvider",
    "TMDBMoviesProvider",
    "YelpReviewsProvider",
    "get_provider",
    "list_providers",
    "register_provider",
]
