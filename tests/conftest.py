# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import copy
import itertools
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest

from oncogest_core.models import LeftoverPreparation, Medication
from oncogest_core.offline import SnapshotStore
from oncogest_core.services.record_gateway import LocalFallbackStore, RecordGateway, RemoteStore


# Wednesday; the week runs Mon 13 - Sun 19 May 2024
FIXED_NOW = datetime(2024, 5, 15, 12, 0, 0)


# =============================================================================
# FAKE SUPABASE CLIENT
# =============================================================================

class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """
    Minimal PostgREST query builder over in-memory rows.

    Supports the subset the services use: select/insert/update/delete with
    eq, ilike, not_.is_, order, range and limit.
    """

    def __init__(self, client: "FakeSupabase", table: str):
        self.client = client
        self.table = table
        self.action = None
        self.payload = None
        self.filters = []
        self.orders = []
        self.window = None
        self.max_rows = None
        self._negate = False

    def _record(self, name, *args):
        self.client.calls.append((self.table, name) + args)
        return self

    def select(self, columns="*"):
        self.action = "select"
        return self._record("select", columns)

    def insert(self, data):
        self.action = "insert"
        self.payload = data
        return self._record("insert")

    def update(self, data):
        self.action = "update"
        self.payload = data
        return self._record("update", data)

    def delete(self):
        self.action = "delete"
        return self._record("delete")

    def eq(self, column, value):
        self.filters.append(lambda r: r.get(column) == value)
        return self._record("eq", column, value)

    def ilike(self, column, pattern):
        needle = pattern.strip("%").lower()
        self.filters.append(lambda r: needle in str(r.get(column, "")).lower())
        return self._record("ilike", column, pattern)

    @property
    def not_(self):
        self._negate = True
        return self

    def is_(self, column, value):
        negate, self._negate = self._negate, False
        is_null = value == "null"
        self.filters.append(lambda r: (r.get(column) is None) == is_null if not negate
                            else (r.get(column) is None) != is_null)
        return self._record("is_", column, value, negate)

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self._record("order", column, desc)

    def range(self, start, end):
        self.window = (start, end)
        return self._record("range", start, end)

    def limit(self, count):
        self.max_rows = count
        return self._record("limit", count)

    def _matches(self) -> List[Dict[str, Any]]:
        rows = self.client.tables.setdefault(self.table, [])
        return [r for r in rows if all(f(r) for f in self.filters)]

    def execute(self):
        self._record("execute")
        if self.client.error is not None:
            raise self.client.error

        rows = self.client.tables.setdefault(self.table, [])

        if self.action == "insert":
            if self.client.drop_inserts:
                return FakeResponse([])
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            stored = []
            for item in items:
                row = dict(item)
                row["id"] = str(next(self.client.ids))
                row["created_at"] = self.client.now().isoformat()
                rows.append(row)
                stored.append(dict(row))
            return FakeResponse(stored)

        matched = self._matches()

        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in matched])

        if self.action == "delete":
            self.client.tables[self.table] = [r for r in rows if r not in matched]
            return FakeResponse([dict(r) for r in matched])

        result = [dict(r) for r in matched]
        for column, desc in reversed(self.orders):
            result.sort(key=lambda r: r.get(column), reverse=desc)
        if self.window is not None:
            result = result[self.window[0]:self.window[1] + 1]
        if self.max_rows is not None:
            result = result[:self.max_rows]
        return FakeResponse(result)


class FakeSupabase:
    """Stand-in for supabase.Client backed by dicts of rows."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = copy.deepcopy(tables or {})
        self.calls = []
        self.error = None
        self.drop_inserts = False
        self.ids = itertools.count(1000)
        self.now = lambda: FIXED_NOW

    def table(self, name):
        self.calls.append((name, "table"))
        return FakeQuery(self, name)

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name and c[1] == "execute")


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def make_preparation():
    """Factory for preparations created relative to FIXED_NOW"""
    counter = itertools.count(1)

    def _make(
        name="Paclitaxel 175mg/m²",
        created_days_ago=0,
        expires_in=3,
        used=False,
        resolved=False,
        dose="300mg in 500ml NS",
    ):
        return LeftoverPreparation(
            id=str(next(counter)),
            preparation_name=name,
            dose=dose,
            expiry_date=FIXED_NOW.date() + timedelta(days=expires_in),
            used=used,
            resolved=resolved,
            created_at=FIXED_NOW - timedelta(days=created_days_ago),
        )

    return _make


@pytest.fixture
def preparation_rows():
    """Remote rows for the leftover_preparations table"""
    return [
        {
            "id": "a", "preparation_name": "Cisplatin 75mg/m²", "dose": "150mg",
            "expiry_date": "2024-05-20", "used": False, "resolved": False,
            "created_at": "2024-05-10T09:00:00",
        },
        {
            "id": "b", "preparation_name": "Paclitaxel 175mg/m²", "dose": "300mg",
            "expiry_date": "2024-05-16", "used": True, "resolved": False,
            "created_at": "2024-05-12T09:00:00",
        },
        {
            "id": "c", "preparation_name": "Doxorubicin 60mg/m²", "dose": "120mg",
            "expiry_date": "2024-05-14", "used": False, "resolved": True,
            "created_at": "2024-05-14T09:00:00",
        },
    ]


@pytest.fixture
def medication_rows():
    return [
        {"id": str(i), "name": name, "created_at": "2024-01-01T00:00:00"}
        for i, name in enumerate(
            ["Oxaliplatin", "Carboplatin", "Cisplatin", "Cyclophosphamide", "Paclitaxel"],
            start=1,
        )
    ]


# =============================================================================
# STORE FIXTURES
# =============================================================================

@pytest.fixture
def supabase_factory():
    """Build a FakeSupabase from a {table: rows} mapping"""
    return FakeSupabase


@pytest.fixture
def fake_supabase(preparation_rows, medication_rows):
    return FakeSupabase({
        "leftover_preparations": preparation_rows,
        "medications": medication_rows,
        "purchase_entries": [],
    })


@pytest.fixture
def remote_gateway(fake_supabase):
    return RecordGateway(RemoteStore(fake_supabase), clock=lambda: FIXED_NOW)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "local_data" / "oncogest.db"


@pytest.fixture
def snapshot_store(db_path):
    store = SnapshotStore(db_path)
    yield store
    store.close()


@pytest.fixture
def fallback_gateway(snapshot_store):
    store = LocalFallbackStore(snapshot_store, clock=lambda: FIXED_NOW)
    return RecordGateway(store, clock=lambda: FIXED_NOW)


@pytest.fixture
def catalog():
    return [Medication(id="1", name="Cisplatin"), Medication(id="2", name="Carboplatin")]
