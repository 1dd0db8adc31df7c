"""Now-playing movies provider using the TMDB v3 API.

API Reference: https://developer.themoviedb.org/reference/movie-now-playing-list
"""

from typing import Any, Optional

import httpx

from locus.models.schemas import Location, MovieRecord, ResourceKind
from locus.providers.base import ResourceProvider
from locus.providers.registry import register_provider

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"


@register_provider(ResourceKind.MOVIES)
class TMDBMoviesProvider(ResourceProvider):
    """Fetches movies now playing in the configured region.

    TMDB has no coordinate search, so every location in one region shares
    the same listing; batches are still cached per location.
    """

    name = "tmdb"
    base_url = "https://api.themoviedb.org/3"
    kind = ResourceKind.MOVIES

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        region: str = "US",
    ):
        super().__init__(api_key=api_key, timeout=timeout, client=client)
        self._region = region.upper()

    def _auth_params(self) -> dict[str, str]:
        return {"api_key": self._require_key()}

    async def _fetch_payload(self, location: Location) -> dict[str, Any]:
        return await self._request(
            "movie/now_playing",
            {"region": self._region, "language": "en-US", "page": 1},
        )

    def _parse(self, payload: dict[str, Any]) -> list[MovieRecord]:
        return [
            MovieRecord(
                title=movie["title"],
                released_on=movie.get("release_date") or None,
                total_votes=movie.get("vote_count") or 0,
                average_votes=movie.get("vote_average") or 0.0,
                popularity=movie.get("popularity"),
                overview=movie.get("overview") or None,
                image_url=f"{POSTER_BASE_URL}{movie['poster_path']}"
                if movie.get("poster_path")
                else None,
            )
            for movie in payload["results"]
        ]
