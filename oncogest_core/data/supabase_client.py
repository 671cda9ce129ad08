# =============================================================================
# oncogest_core/data/supabase_client.py
# Supabase Client Configuration for OncoGest
# Handles database connections and CRUD operations
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Tuple

import streamlit as st

from oncogest_core.config import Settings
from oncogest_core.errors import BackingStoreError
from oncogest_core.logging import get_logger

logger = get_logger(__name__)

# PostgREST caps every select at this many rows
PAGE_SIZE = 1000

OrderSpec = Sequence[Tuple[str, bool]]  # (column, descending)


def get_supabase_client(settings: Settings):
    """
    Initialize and return a Supabase client from settings.

    Returns:
        Supabase client instance or None if not configured
    """
    if not settings.supabase_configured:
        logger.info("Supabase credentials not configured")
        return None

    from supabase import create_client, Client

    try:
        client: Client = create_client(settings.supabase_url, settings.supabase_key)
        return client
    except Exception as e:
        logger.error(f"Failed to initialize Supabase client: {e}")
        return None


@st.cache_resource(ttl=3600)  # Cache for 1 hour, then refresh
def get_cached_supabase_client(url: str, key: str):
    """
    Get cached Supabase client (reused across sessions).

    Keyed on the credentials so a secrets change yields a fresh client.
    """
    return get_supabase_client(Settings(supabase_url=url, supabase_key=key))


class SupabaseService:
    """
    Supabase CRUD for a single table.

    Every method raises BackingStoreError on failure; callers decide how
    to surface it.
    """

    def __init__(self, table_name: str, client):
        """
        Initialize service for a specific table.

        Args:
            table_name: Name of the Supabase table
            client: Supabase client instance
        """
        self.table_name = table_name
        self.client = client

    def is_connected(self) -> bool:
        """Check if Supabase client is available."""
        return self.client is not None

    def _fail(self, operation: str, error: Exception) -> BackingStoreError:
        logger.error(f"Supabase {operation} on {self.table_name} failed: {error}")
        return BackingStoreError(
            f"Error during {operation} on {self.table_name}: {error}",
            table=self.table_name,
            operation=operation,
        )

    def _require_client(self, operation: str) -> None:
        if not self.is_connected():
            raise BackingStoreError(
                "Supabase client not available",
                table=self.table_name,
                operation=operation,
            )

    def fetch_all(
        self,
        order_by: OrderSpec = (),
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch ALL matching records (handles Supabase 1000 row limit).

        Pages with range() until a page returns fewer than PAGE_SIZE rows.

        Args:
            order_by: Sequence of (column, descending) pairs
            filters: Equality filters as column:value

        Returns:
            List of row dicts
        """
        self._require_client("select")

        try:
            all_data: List[Dict[str, Any]] = []
            offset = 0

            while True:
                query = self.client.table(self.table_name).select("*")

                for col, val in (filters or {}).items():
                    query = query.eq(col, val)

                for col, desc in order_by:
                    query = query.order(col, desc=desc)

                response = query.range(offset, offset + PAGE_SIZE - 1).execute()
                page = response.data or []
                all_data.extend(page)

                # If we got fewer than PAGE_SIZE, we've reached the end
                if len(page) < PAGE_SIZE:
                    break
                offset += PAGE_SIZE

            return all_data

        except Exception as e:
            raise self._fail("select", e)

    def search(
        self,
        column: str,
        text: str,
        order_by: OrderSpec = (),
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """
        Case-insensitive substring search with ilike.

        Args:
            column: Column to match
            text: Raw user text (wrapped in % wildcards)
            order_by: Sequence of (column, descending) pairs
            limit: Maximum rows returned
        """
        self._require_client("search")

        try:
            query = (
                self.client.table(self.table_name)
                .select("*")
                .ilike(column, f"%{text}%")
            )
            for col, desc in order_by:
                query = query.order(col, desc=desc)
            response = query.limit(limit).execute()
            return response.data or []
        except Exception as e:
            raise self._fail("search", e)

    def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a single record.

        Returns:
            The stored row, including generated id and created_at
        """
        self._require_client("insert")

        try:
            response = self.client.table(self.table_name).insert(data).execute()
        except Exception as e:
            raise self._fail("insert", e)

        if not response.data:
            raise BackingStoreError(
                "Insert returned no row",
                table=self.table_name,
                operation="insert",
            )
        return response.data[0]

    def update(self, filters: Dict[str, Any], data: Dict[str, Any]) -> int:
        """
        Update records matching filters.

        Returns:
            Number of rows affected
        """
        self._require_client("update")

        try:
            query = self.client.table(self.table_name).update(data)
            for col, val in filters.items():
                query = query.eq(col, val)
            response = query.execute()
            return len(response.data or [])
        except Exception as e:
            raise self._fail("update", e)

    def delete(self, filters: Dict[str, Any]) -> int:
        """
        Delete records matching filters.

        Returns:
            Number of rows affected
        """
        self._require_client("delete")

        try:
            query = self.client.table(self.table_name).delete()
            for col, val in filters.items():
                query = query.eq(col, val)
            response = query.execute()
            return len(response.data or [])
        except Exception as e:
            raise self._fail("delete", e)

    def delete_all(self) -> int:
        """
        Delete every row in the table.

        PostgREST refuses unfiltered deletes, so match any non-null id.
        """
        self._require_client("delete")

        try:
            response = (
                self.client.table(self.table_name)
                .delete()
                .not_.is_("id", "null")
                .execute()
            )
            return len(response.data or [])
        except Exception as e:
            raise self._fail("delete", e)
