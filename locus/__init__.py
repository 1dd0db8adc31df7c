"""
Locus - location-keyed cache for city data.

This package serves weather, local events, now-playing movies and business
reviews for a place, fetching from upstream providers only when the stored
copy is missing or stale:

- cache: Resource descriptors, freshness policy and the cache-aside controller
- store: Persisted stores (in-memory and Supabase/PostgreSQL)
- providers: Upstream API adapters (geocoding, weather, events, movies, reviews)
- api: FastAPI application and endpoints
- config: Pydantic settings
- core: Exceptions, circuit breaker and dependency container
- models: Location and resource record models
- monitoring: Prometheus metrics
"""

__version__ = "0.1.0"
