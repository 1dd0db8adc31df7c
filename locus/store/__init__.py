"""
Persisted stores for the location-keyed cache.

- base: PersistedStore interface consumed by the cache controller
- memory: InMemoryStore for development and tests
- supabase_store: SupabaseStore backed by PostgreSQL tables

Example:
    from locus.store import InMemoryStore

    store = InMemoryStore()
    location_id = await store.insert_location(location)
"""

from locus.store.base import PersistedStore
from locus.store.memory import InMemoryStore
from locus.store.supabase_store import SupabaseStore, get_schema_sql

__all__ = [
    "PersistedStore",
    "InMemoryStore",
    "SupabaseStore",
    "get_schema_sql",
]
