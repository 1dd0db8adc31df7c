"""Supabase (PostgreSQL) backed store.

The supabase-py client is synchronous, so each query runs in a worker
thread to keep the event loop free.

Supabase doesn't allow DDL through the client API. Run the SQL returned by
get_schema_sql() in the Supabase SQL Editor before first use. It creates:

    - locations: one row per resolved search text (search_query is unique)
    - weathers, events, movies, reviews: record batches keyed by location_id
    - replace_resource_batch(): deletes and re-inserts a batch in one transaction
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar

import httpx
import structlog
from supabase import Client, create_client

from locus.cache.descriptors import ResourceDescriptor
from locus.core.exceptions import PersistenceConnectionError, PersistenceError
from locus.models.schemas import Location, ResourceKind, ResourceRecord
from locus.monitoring.metrics import track_store_operation
from locus.store.base import PersistedStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")

REPLACE_FUNCTION = "replace_resource_batch"

SCHEMA_SQL = """
-- ============================================================================
-- Locus Database Schema
-- Run this SQL in Supabase SQL Editor to create the required tables
-- ============================================================================

CREATE TABLE IF NOT EXISTS locations (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    search_query TEXT UNIQUE NOT NULL,
    formatted_query TEXT NOT NULL,
    latitude DOUBLE PRECISION NOT NULL CHECK (latitude BETWEEN -90 AND 90),
    longitude DOUBLE PRECISION NOT NULL CHECK (longitude BETWEEN -180 AND 180)
);

CREATE TABLE IF NOT EXISTS weathers (
    created_at BIGINT NOT NULL,
    location_id UUID NOT NULL REFERENCES locations(id) ON DELETE CASCADE,
    forecast TEXT NOT NULL,
    time TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS events (
    created_at BIGINT NOT NULL,
    location_id UUID NOT NULL REFERENCES locations(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    link TEXT,
    event_date TEXT,
    summary TEXT
);

CREATE TABLE IF NOT EXISTS movies (
    created_at BIGINT NOT NULL,
    location_id UUID NOT NULL REFERENCES locations(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    released_on TEXT,
    total_votes INTEGER NOT NULL DEFAULT 0,
    average_votes NUMERIC(4, 2) NOT NULL DEFAULT 0,
    popularity DOUBLE PRECISION,
    overview TEXT,
    image_url TEXT
);

CREATE TABLE IF NOT EXISTS reviews (
    created_at BIGINT NOT NULL,
    location_id UUID NOT NULL REFERENCES locations(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    rating NUMERIC(2, 1),
    price TEXT,
    url TEXT,
    image_url TEXT
);

CREATE INDEX IF NOT EXISTS idx_weathers_location_id ON weathers(location_id);
CREATE INDEX IF NOT EXISTS idx_events_location_id ON events(location_id);
CREATE INDEX IF NOT EXISTS idx_movies_location_id ON movies(location_id);
CREATE INDEX IF NOT EXISTS idx_reviews_location_id ON reviews(location_id);

-- -----------------------------------------------------------------------------
-- Atomic batch replacement
-- A function body runs in one transaction, so no reader ever sees the old
-- and the new batch side by side.
-- -----------------------------------------------------------------------------

CREATE OR REPLACE FUNCTION replace_resource_batch(
    p_table TEXT,
    p_location_id UUID,
    p_rows JSONB
) RETURNS VOID AS $$
BEGIN
    IF p_table NOT IN ('weathers', 'events', 'movies', 'reviews') THEN
        RAISE EXCEPTION 'unknown resource table %', p_table;
    END IF;

    PERFORM pg_advisory_xact_lock(hashtext(p_table || ':' || p_location_id::text));

    EXECUTE format('DELETE FROM %I WHERE location_id = $1', p_table)
        USING p_location_id;

    EXECUTE format(
        'INSERT INTO %I SELECT * FROM jsonb_populate_recordset(NULL::%I, $1)',
        p_table, p_table
    ) USING p_rows;
END;
$$ LANGUAGE plpgsql;
"""


def get_schema_sql() -> str:
    """Get the SQL that creates the Locus tables.

    Returns:
        SQL string. Run this in Supabase SQL Editor.
    """
    return SCHEMA_SQL


class SupabaseStore(PersistedStore):
    """Store backed by Supabase tables.

    Example:
        store = SupabaseStore.from_credentials(url, key)
        batch = await store.find_by_location(ResourceKind.WEATHER, location_id)
    """

    name = "supabase"

    def __init__(
        self,
        client: Client,
        descriptors: Optional[Mapping[ResourceKind, ResourceDescriptor]] = None,
    ):
        super().__init__(descriptors)
        self._client = client

    @classmethod
    def from_credentials(
        cls,
        url: str,
        key: str,
        descriptors: Optional[Mapping[ResourceKind, ResourceDescriptor]] = None,
    ) -> "SupabaseStore":
        """Create a store with its own Supabase client."""
        return cls(create_client(url, key), descriptors)

    async def _run(
        self,
        operation: str,
        query: Callable[[], T],
        **context: Any,
    ) -> T:
        """Run a blocking client call off the loop, mapping failures."""
        with track_store_operation(self.name, operation):
            try:
                return await asyncio.to_thread(query)
            except PersistenceError:
                raise
            except httpx.RequestError as e:
                logger.error(
                    "supabase_unreachable",
                    operation=operation,
                    error=str(e),
                    **context,
                )
                raise PersistenceConnectionError(operation, str(e), context) from e
            except Exception as e:
                logger.error(
                    "supabase_operation_failed",
                    operation=operation,
                    error=str(e),
                    error_type=type(e).__name__,
                    **context,
                )
                raise PersistenceError(operation, str(e), context) from e

    async def find_by_location(
        self, kind: ResourceKind, location_id: str
    ) -> list[ResourceRecord]:
        descriptor = self.descriptor(kind)
        result = await self._run(
            "find_by_location",
            lambda: self._client.table(descriptor.table)
            .select("*")
            .eq("location_id", location_id)
            .order("created_at")
            .execute(),
            kind=kind.value,
            location_id=location_id,
        )
        return [descriptor.record_type.from_db_row(row) for row in result.data or []]

    async def find_by_query_text(self, text: str) -> Optional[Location]:
        result = await self._run(
            "find_by_query_text",
            lambda: self._client.table("locations")
            .select("*")
            .eq("search_query", text)
            .limit(1)
            .execute(),
            search_query=text,
        )
        if not result.data:
            return None
        row = dict(result.data[0])
        row["id"] = str(row["id"])
        return Location.from_db_row(row)

    async def insert_location(self, location: Location) -> str:
        row = location.to_db_row()
        row.pop("id", None)
        result = await self._run(
            "insert_location",
            lambda: self._client.table("locations").insert(row).execute(),
            search_query=location.search_query,
        )
        if not result.data:
            raise PersistenceError(
                "insert_location",
                "insert returned no identity",
                {"search_query": location.search_query},
            )
        return str(result.data[0]["id"])

    async def insert_records(
        self, kind: ResourceKind, location_id: str, records: Sequence[ResourceRecord]
    ) -> None:
        descriptor = self.descriptor(kind)
        rows = [record.to_db_row() for record in records]
        if not rows:
            return
        await self._run(
            "insert_records",
            lambda: self._client.table(descriptor.table).insert(rows).execute(),
            kind=kind.value,
            location_id=location_id,
        )

    async def delete_by_location(self, kind: ResourceKind, location_id: str) -> None:
        descriptor = self.descriptor(kind)
        await self._run(
            "delete_by_location",
            lambda: self._client.table(descriptor.table)
            .delete()
            .eq("location_id", location_id)
            .execute(),
            kind=kind.value,
            location_id=location_id,
        )

    async def replace_records(
        self, kind: ResourceKind, location_id: str, records: Sequence[ResourceRecord]
    ) -> None:
        descriptor = self.descriptor(kind)
        params = {
            "p_table": descriptor.table,
            "p_location_id": location_id,
            "p_rows": [record.to_db_row() for record in records],
        }
        await self._run(
            "replace_records",
            lambda: self._client.rpc(REPLACE_FUNCTION, params).execute(),
            kind=kind.value,
            location_id=location_id,
        )

    async def health_check(self) -> bool:
        """Check the locations table is reachable."""
        try:
            await self._run(
                "health_check",
                lambda: self._client.table("locations").select("id").limit(1).execute(),
            )
        except PersistenceError:
            return False
        return True
