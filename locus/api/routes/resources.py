"""Location and resource endpoints.

Query strings follow the shape the city-explorer front end sends:

    GET /location?data=Seattle, WA
    GET /weather?data[id]=...&data[latitude]=47.6&data[longitude]=-122.3

Each resource route resolves through the cache-aside controller. The
``X-Cache`` response header tells whether the batch came from the store
(``fresh``) or from the provider (``refetched``).
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response

from locus.api.dependencies import get_controller
from locus.api.models import ErrorResponse
from locus.cache.controller import CacheAsideController
from locus.models.schemas import RECORD_TYPES, Location, ResourceKind, ResourceRecord

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Resources"])

ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Search text matched nothing"},
    500: {"model": ErrorResponse, "description": "Lookup failed"},
}


def location_from_query(
    location_id: str = Query(..., alias="data[id]", min_length=1),
    latitude: float = Query(..., alias="data[latitude]", ge=-90.0, le=90.0),
    longitude: float = Query(..., alias="data[longitude]", ge=-180.0, le=180.0),
    search_query: Optional[str] = Query(None, alias="data[search_query]"),
    formatted_query: Optional[str] = Query(None, alias="data[formatted_query]"),
) -> Location:
    """Rebuild a previously resolved location from query parameters."""
    return Location(
        id=location_id,
        search_query=search_query or formatted_query or location_id,
        formatted_query=formatted_query or search_query or "",
        latitude=latitude,
        longitude=longitude,
    )


@router.get(
    "/location",
    response_model=Location,
    summary="Resolve a location",
    description="Resolve search text to a location, geocoding it only the first time.",
    responses=ERROR_RESPONSES,
)
async def get_location(
    data: str = Query(..., min_length=1, description="Search text, e.g. 'Seattle, WA'"),
    controller: CacheAsideController = Depends(get_controller),
) -> Location:
    return await controller.resolve_location(data.strip())


def _resource_endpoint(kind: ResourceKind):
    async def endpoint(
        response: Response,
        location: Location = Depends(location_from_query),
        controller: CacheAsideController = Depends(get_controller),
    ) -> list[ResourceRecord]:
        outcome = await controller.resolve(kind, location)
        records = outcome.unwrap()
        response.headers["X-Cache"] = outcome.status.value
        return records

    endpoint.__name__ = f"get_{kind.value}"
    return endpoint


for _kind, _record_type in RECORD_TYPES.items():
    router.add_api_route(
        f"/{_kind.value}",
        _resource_endpoint(_kind),
        methods=["GET"],
        response_model=list[_record_type],
        summary=f"Get {_kind.value}",
        description=f"Cached {_kind.value} for a resolved location.",
        responses=ERROR_RESPONSES,
    )
