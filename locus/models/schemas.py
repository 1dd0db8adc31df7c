"""Pydantic models for Locus core entities."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ResourceKind(str, Enum):
    """Kinds of data served through the location-keyed cache."""

    LOCATION = "location"
    WEATHER = "weather"
    EVENTS = "events"
    MOVIES = "movies"
    REVIEWS = "reviews"


# =============================================================================
# Base Models
# =============================================================================


class BaseEntity(BaseModel):
    """Base model with common fields and conversion methods."""

    class Config:
        from_attributes = True
        populate_by_name = True

    def to_db_row(self) -> dict[str, Any]:
        """Convert model to database row format (e.g., for Supabase/PostgreSQL)."""
        data = self.model_dump()
        result = {}
        for key, value in data.items():
            if isinstance(value, Enum):
                result[key] = value.value
            else:
                result[key] = value
        return result

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "BaseEntity":
        """Create model instance from database row."""
        return cls.model_validate(row)


# =============================================================================
# Location
# =============================================================================


class Location(BaseEntity):
    """A resolved place. Identity is assigned by the store on first save."""

    id: Optional[str] = Field(None, description="Opaque identity assigned by the store")
    search_query: str = Field(..., min_length=1, description="Original search text")
    formatted_query: str = Field(..., description="Normalized display text")
    latitude: float = Field(..., ge=-90.0, le=90.0, description="Latitude coordinate")
    longitude: float = Field(..., ge=-180.0, le=180.0, description="Longitude coordinate")


# =============================================================================
# Resource Records
# =============================================================================


class ResourceRecord(BaseEntity):
    """Fields shared by every cached record.

    Both are empty while a record is in flight from a provider and are
    stamped by the cache controller when the batch is persisted.
    """

    created_at: Optional[int] = Field(
        None, ge=0, description="Epoch milliseconds when the batch was persisted"
    )
    location_id: Optional[str] = Field(None, description="Owning location identity")

    def stamped(self, location_id: str, created_at: int) -> "ResourceRecord":
        """Return a copy bound to its location and persistence instant."""
        return self.model_copy(update={"location_id": location_id, "created_at": created_at})


class WeatherRecord(ResourceRecord):
    """One day of forecast."""

    forecast: str = Field(..., description="Forecast summary text")
    time: str = Field(..., description="Forecast day, e.g. 'Mon Jan 01 2024'")


class EventRecord(ResourceRecord):
    """A local event near the location."""

    name: str = Field(..., description="Event name")
    link: Optional[str] = Field(None, description="Event page URL")
    event_date: Optional[str] = Field(None, description="Local start date")
    summary: Optional[str] = Field(None, description="Short description")


class MovieRecord(ResourceRecord):
    """A movie now playing in the location's region."""

    title: str = Field(..., description="Movie title")
    released_on: Optional[str] = Field(None, description="Release date")
    total_votes: int = Field(0, ge=0, description="Vote count")
    average_votes: float = Field(0.0, ge=0.0, le=10.0, description="Average vote (0-10)")
    popularity: Optional[float] = Field(None, ge=0.0, description="Provider popularity score")
    overview: Optional[str] = Field(None, description="Plot overview")
    image_url: Optional[str] = Field(None, description="Poster URL")


class ReviewRecord(ResourceRecord):
    """A reviewed business near the location."""

    name: str = Field(..., description="Business name")
    rating: Optional[float] = Field(None, ge=0.0, le=5.0, description="Rating (0-5)")
    price: Optional[str] = Field(None, max_length=8, description="Price tier, e.g. '$$'")
    url: Optional[str] = Field(None, description="Business page URL")
    image_url: Optional[str] = Field(None, description="Business image URL")


RECORD_TYPES: dict[ResourceKind, type[ResourceRecord]] = {
    ResourceKind.WEATHER: WeatherRecord,
    ResourceKind.EVENTS: EventRecord,
    ResourceKind.MOVIES: MovieRecord,
    ResourceKind.REVIEWS: ReviewRecord,
}
