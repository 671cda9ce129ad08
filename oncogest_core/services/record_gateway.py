# =============================================================================
# oncogest_core/services/record_gateway.py
# Record Store Gateway - Single API for Remote/Fallback Operations
# =============================================================================
"""
RecordGateway - the one seam through which reads and writes flow.

Two interchangeable backing stores sit behind it:

    RemoteStore          Supabase tables (durable owner when reachable)
    LocalFallbackStore   JSON snapshots in a local SQLite file

The store is chosen once, when the gateway is built, and kept for the whole
session. Callers never branch on connectivity: every operation returns a
ServiceResult. Remote failures come back as a failed result that still
carries the last known collection.

Usage:
------
from oncogest_core.services.record_gateway import get_gateway

gateway = get_gateway()
result = gateway.fetch_active()
if not result:
    st.error(result.error)
worklist = result.data
"""

from __future__ import annotations
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import streamlit as st

from oncogest_core.config import Settings, load_settings
from oncogest_core.data.supabase_client import (
    OrderSpec,
    SupabaseService,
    get_cached_supabase_client,
)
from oncogest_core.errors import OncoGestError, SnapshotCorruptError
from oncogest_core.logging import get_logger
from oncogest_core.models import (
    MODEL_BY_KIND,
    Medication,
    Record,
    RecordKind,
    serialize_fields,
    with_defaults,
)
from oncogest_core.offline import ConnectionManager, ConnectionStatus, SnapshotStore
from .base_service import BaseService, ServiceResult

logger = get_logger(__name__)

# Orderings used by the list views
ACTIVE_ORDER: OrderSpec = (("expiry_date", False),)
NEWEST_FIRST: OrderSpec = (("created_at", True),)
BY_NAME: OrderSpec = (("name", False),)
ORDER_HISTORY: OrderSpec = (("order_date", True), ("created_at", True))

SEARCH_LIMIT = 20


class StoreMode(Enum):
    REMOTE = "remote"
    FALLBACK = "fallback"


# =============================================================================
# BACKING STORES
# =============================================================================

class RecordStore(ABC):
    """Interface shared by the remote and local backing stores."""

    mode: StoreMode

    @abstractmethod
    def load(
        self,
        kind: RecordKind,
        order_by: OrderSpec = (),
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Return every matching record of a collection."""

    @abstractmethod
    def insert(self, kind: RecordKind, record: Dict[str, Any]) -> Dict[str, Any]:
        """Persist a record and return it with id and created_at."""

    @abstractmethod
    def update(self, kind: RecordKind, record_id: str, fields: Dict[str, Any]) -> int:
        """Merge fields into a record; returns rows affected."""

    @abstractmethod
    def delete(self, kind: RecordKind, record_id: str) -> int:
        """Remove a record; returns rows affected."""

    @abstractmethod
    def delete_all(self, kind: RecordKind) -> int:
        """Remove every record of a collection; returns rows affected."""

    @abstractmethod
    def search(
        self,
        kind: RecordKind,
        column: str,
        text: str,
        order_by: OrderSpec = (),
        limit: int = SEARCH_LIMIT,
    ) -> List[Dict[str, Any]]:
        """Case-insensitive substring match on one column."""


class RemoteStore(RecordStore):
    """Supabase-backed store; every error surfaces as BackingStoreError."""

    mode = StoreMode.REMOTE

    def __init__(self, client):
        self.client = client
        self._services: Dict[RecordKind, SupabaseService] = {}

    def _service(self, kind: RecordKind) -> SupabaseService:
        if kind not in self._services:
            self._services[kind] = SupabaseService(kind.table, self.client)
        return self._services[kind]

    def load(self, kind, order_by=(), filters=None):
        return self._service(kind).fetch_all(order_by=order_by, filters=filters)

    def insert(self, kind, record):
        return self._service(kind).insert(record)

    def update(self, kind, record_id, fields):
        return self._service(kind).update({"id": record_id}, fields)

    def delete(self, kind, record_id):
        return self._service(kind).delete({"id": record_id})

    def delete_all(self, kind):
        return self._service(kind).delete_all()

    def search(self, kind, column, text, order_by=(), limit=SEARCH_LIMIT):
        return self._service(kind).search(column, text, order_by=order_by, limit=limit)


def _sort_records(records: List[Dict[str, Any]], order_by: OrderSpec) -> List[Dict[str, Any]]:
    """Stable multi-key sort; missing values go last."""
    result = list(records)
    for column, desc in reversed(list(order_by)):
        present = [r for r in result if r.get(column) is not None]
        missing = [r for r in result if r.get(column) is None]
        present.sort(key=lambda r: r[column], reverse=desc)
        result = present + missing
    return result


def demo_records(now: datetime) -> Dict[RecordKind, List[Dict[str, Any]]]:
    """Example data written the first time a fallback store starts empty."""
    today = now.date()
    created = now.isoformat()

    def expiring(days: int) -> str:
        return date.fromordinal(today.toordinal() + days).isoformat()

    return {
        RecordKind.PREPARATIONS: [
            {
                "id": "1",
                "preparation_name": "Paclitaxel 175mg/m²",
                "dose": "300mg in 500ml NS",
                "expiry_date": expiring(2),
                "used": False,
                "resolved": False,
                "created_at": created,
            },
            {
                "id": "2",
                "preparation_name": "Cisplatin 75mg/m²",
                "dose": "150mg in 1000ml NS",
                "expiry_date": expiring(-1),
                "used": False,
                "resolved": False,
                "created_at": created,
            },
            {
                "id": "3",
                "preparation_name": "Doxorubicin 60mg/m²",
                "dose": "120mg in 250ml D5W",
                "expiry_date": expiring(5),
                "used": False,
                "resolved": False,
                "created_at": created,
            },
        ],
        RecordKind.MEDICATIONS: [
            {"id": str(i), "name": name, "created_at": created}
            for i, name in enumerate(
                ["Carboplatin", "Cisplatin", "Doxorubicin", "Oxaliplatin", "Paclitaxel"],
                start=1,
            )
        ],
        RecordKind.PURCHASES: [],
    }


class LocalFallbackStore(RecordStore):
    """
    Snapshot-backed store used when the remote service is unavailable.

    Each collection lives in memory and in one snapshot key. Every mutation
    computes the new collection, writes the snapshot, then swaps the
    in-memory list, all under the collection's write lock.
    """

    mode = StoreMode.FALLBACK

    def __init__(
        self,
        snapshots: SnapshotStore,
        seed: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.snapshots = snapshots
        self._clock = clock
        self._collections: Dict[RecordKind, List[Dict[str, Any]]] = {}
        seeds = demo_records(clock()) if seed else {}

        for kind in RecordKind:
            self._collections[kind] = self._load_snapshot(kind, seeds.get(kind, []))

    def _load_snapshot(self, kind: RecordKind, seed: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        key = kind.snapshot_key
        try:
            records = self.snapshots.get_snapshot(key)
        except SnapshotCorruptError as e:
            logger.warning(f"Ignoring malformed snapshot {key}: {e}")
            return []

        if records is None:
            self.snapshots.set_snapshot(key, seed)
            logger.info(f"Seeded {key} with {len(seed)} example records")
            return list(seed)
        return records

    def _commit(self, kind: RecordKind, records: List[Dict[str, Any]]) -> None:
        # Caller holds the write lock
        self.snapshots.set_snapshot(kind.snapshot_key, records)
        self._collections[kind] = records

    def load(self, kind, order_by=(), filters=None):
        records = self._collections[kind]
        for column, value in (filters or {}).items():
            records = [r for r in records if r.get(column) == value]
        return [dict(r) for r in _sort_records(records, order_by)]

    def insert(self, kind, record):
        stored = dict(record)
        stored["id"] = uuid.uuid4().hex
        stored["created_at"] = self._clock().isoformat()

        with self.snapshots.write_lock(kind.snapshot_key):
            self._commit(kind, self._collections[kind] + [stored])
        return dict(stored)

    def update(self, kind, record_id, fields):
        with self.snapshots.write_lock(kind.snapshot_key):
            affected = 0
            records = []
            for r in self._collections[kind]:
                if r.get("id") == record_id:
                    r = {**r, **fields}
                    affected += 1
                records.append(r)
            if affected:
                self._commit(kind, records)
        return affected

    def delete(self, kind, record_id):
        with self.snapshots.write_lock(kind.snapshot_key):
            records = [r for r in self._collections[kind] if r.get("id") != record_id]
            affected = len(self._collections[kind]) - len(records)
            if affected:
                self._commit(kind, records)
        return affected

    def delete_all(self, kind):
        with self.snapshots.write_lock(kind.snapshot_key):
            affected = len(self._collections[kind])
            self._commit(kind, [])
        return affected

    def search(self, kind, column, text, order_by=(), limit=SEARCH_LIMIT):
        needle = text.casefold()
        matches = [
            r for r in self._collections[kind]
            if needle in str(r.get(column) or "").casefold()
        ]
        return [dict(r) for r in _sort_records(matches, order_by)[:limit]]


# =============================================================================
# GATEWAY
# =============================================================================

class RecordGateway(BaseService):
    """
    Uniform CRUD over preparations, medications and purchase entries.

    Keeps the most recently fetched view of each collection in memory and
    applies successful mutations to it.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__()
        self.store = store
        self._clock = clock
        self._collections: Dict[RecordKind, List[Record]] = {kind: [] for kind in RecordKind}

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def mode(self) -> StoreMode:
        return self.store.mode

    @property
    def is_fallback(self) -> bool:
        return self.store.mode is StoreMode.FALLBACK

    def collection(self, kind: RecordKind) -> List[Record]:
        """Current in-memory view of a collection."""
        return list(self._collections[kind])

    def get_status(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "is_fallback": self.is_fallback,
            "counts": {kind.value: len(items) for kind, items in self._collections.items()},
        }

    # =========================================================================
    # READS
    # =========================================================================

    def _fetch(
        self,
        kind: RecordKind,
        operation: str,
        order_by: OrderSpec,
        filters: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        model = MODEL_BY_KIND[kind]

        def _load():
            rows = self.store.load(kind, order_by=order_by, filters=filters)
            items = [model.from_record(row) for row in rows]
            self._collections[kind] = items
            return list(items)

        return self.safe_execute(operation, _load, fallback_data=self.collection(kind))

    def fetch_active(self) -> ServiceResult:
        """Unresolved preparations, soonest expiry first."""
        return self._fetch(
            RecordKind.PREPARATIONS,
            "Fetching active preparations",
            ACTIVE_ORDER,
            filters={"resolved": False},
        )

    def fetch_all(self, kind: RecordKind = RecordKind.PREPARATIONS) -> ServiceResult:
        """Entire collection, newest first."""
        return self._fetch(kind, f"Fetching all {kind.value}", NEWEST_FIRST)

    def fetch_catalog(self) -> ServiceResult:
        """All medications in alphabetical order."""
        return self._fetch(RecordKind.MEDICATIONS, "Fetching medication catalog", BY_NAME)

    def fetch_orders_for_day(self, day: Optional[date] = None) -> ServiceResult:
        """Purchase entries recorded for one order date (default today)."""
        day = day or self._clock().date()
        return self._fetch(
            RecordKind.PURCHASES,
            f"Fetching purchase entries for {day.isoformat()}",
            NEWEST_FIRST,
            filters={"order_date": day.isoformat()},
        )

    def fetch_order_history(self) -> ServiceResult:
        """Every purchase entry, latest order date first."""
        return self._fetch(RecordKind.PURCHASES, "Fetching purchase history", ORDER_HISTORY)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create(self, entity: Record) -> ServiceResult:
        """
        Validate and persist a new record.

        Returns:
            ServiceResult whose data is the stored entity with id and created_at
        """
        kind = entity.KIND
        entity = with_defaults(entity, today=self._clock().date())

        try:
            entity.validate()
        except OncoGestError as e:
            self.logger.warning(f"Rejected {kind.value} create: {e.message}")
            return ServiceResult.from_exception(e)

        def _insert():
            stored = type(entity).from_record(
                self.store.insert(kind, entity.to_record(include_meta=False))
            )
            self._collections[kind].append(stored)
            return stored

        return self.safe_execute(f"Creating {kind.value} record", _insert)

    def update(self, kind: RecordKind, record_id: str, fields: Dict[str, Any]) -> ServiceResult:
        """
        Merge fields into a record.

        Succeeds whether or not the id exists; metadata["affected"] holds the
        number of rows the store touched.
        """
        model = MODEL_BY_KIND[kind]
        try:
            model.validate_updates(fields)
        except OncoGestError as e:
            self.logger.warning(f"Rejected {kind.value} update: {e.message}")
            return ServiceResult.from_exception(e)

        wire_fields = serialize_fields(fields)

        def _update():
            affected = self.store.update(kind, record_id, wire_fields)
            updated = None
            items = self._collections[kind]
            for i, item in enumerate(items):
                if item.id == record_id:
                    updated = items[i] = item.merged(wire_fields)
            if not affected:
                self.logger.info(f"Update on {kind.value} matched no record with id {record_id}")
            return ServiceResult.ok(updated, metadata={"affected": affected})

        return self.safe_execute(
            f"Updating {kind.value} record", _update, fallback_data=self.collection(kind)
        )

    def delete(self, kind: RecordKind, record_id: str) -> ServiceResult:
        """Remove a record from the store and the in-memory view."""
        def _delete():
            affected = self.store.delete(kind, record_id)
            self._collections[kind] = [i for i in self._collections[kind] if i.id != record_id]
            return ServiceResult.ok(record_id, metadata={"affected": affected})

        return self.safe_execute(
            f"Deleting {kind.value} record", _delete, fallback_data=self.collection(kind)
        )

    def clear_all(self, kind: RecordKind) -> ServiceResult:
        """Delete every record of a collection."""
        def _clear():
            affected = self.store.delete_all(kind)
            self._collections[kind] = []
            return ServiceResult.ok(None, metadata={"affected": affected})

        return self.safe_execute(
            f"Clearing {kind.value}", _clear, fallback_data=self.collection(kind)
        )

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search_medications(self, text: str, limit: int = SEARCH_LIMIT) -> List[Medication]:
        """
        Store-level substring search on medication names.

        Raises the store's error; the search proxy decides what to do with it.
        """
        rows = self.store.search(RecordKind.MEDICATIONS, "name", text, order_by=BY_NAME, limit=limit)
        return [Medication.from_record(row) for row in rows]


# =============================================================================
# CONSTRUCTION
# =============================================================================

def build_gateway(
    settings: Optional[Settings] = None,
    client=None,
    connection: Optional[ConnectionManager] = None,
) -> RecordGateway:
    """
    Pick the backing store once and wrap it in a gateway.

    Remote when Supabase is configured and reachable, otherwise the local
    fallback store at settings.local_db_path.
    """
    settings = settings or load_settings()
    connection = connection or ConnectionManager(settings)
    state = connection.check_connection()

    if state.status is ConnectionStatus.ONLINE:
        client = client or get_cached_supabase_client(settings.supabase_url, settings.supabase_key)
        if client is not None:
            logger.info("Using remote Supabase store")
            return RecordGateway(RemoteStore(client))

    logger.warning(f"Using local fallback store ({state.status.value}) at {settings.local_db_path}")
    return RecordGateway(LocalFallbackStore(SnapshotStore(settings.local_db_path)))


def get_gateway() -> RecordGateway:
    """Get or create the session's RecordGateway."""
    if "record_gateway" not in st.session_state:
        st.session_state["record_gateway"] = build_gateway()
    return st.session_state["record_gateway"]
