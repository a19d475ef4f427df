from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "api"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from core.config import Settings
from core.database import StoreRequestError, StoreResponse
from utils.query.postgrest_queries import Condition, InList, LogicalGroup, SelectQuery


def _matches(filter_, record: Dict[str, Any]) -> bool:
    if isinstance(filter_, LogicalGroup):
        results = (_matches(f, record) for f in filter_.filters)
        return all(results) if filter_.operator == "and" else any(results)
    if isinstance(filter_, InList):
        return str(record.get(filter_.column)) in {str(v) for v in filter_.values}
    if isinstance(filter_, Condition):
        actual = str(record.get(filter_.column))
        if filter_.operator == "ilike":
            return actual.lower() == str(filter_.value).lower()
        if filter_.operator == "eq":
            return actual == str(filter_.value)
    raise AssertionError(f"FakeStore cannot evaluate {filter_!r}")


class FakeStore:
    """In-memory stand-in for PostgRESTStore with unique-key semantics."""

    UNIQUE_KEYS = {
        "batch_no_norm": lambda r: str(r.get("batch_no", "")).strip().upper(),
    }

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "brands": [],
            "skus": [],
            "batches": [],
            "inventory": [],
        }
        self.selects: List[SelectQuery] = []
        self.writes: List[Dict[str, Any]] = []
        self.select_failures: Dict[str, str] = {}
        self.queued_responses: Dict[str, List[StoreResponse]] = {}
        self._next_id = 1
        self.closed = False

    def add(self, table: str, **record) -> Dict[str, Any]:
        record.setdefault("id", self._new_id())
        self.tables[table].append(record)
        return record

    def _new_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def _unique_key(self, on_conflict: str):
        if on_conflict in self.UNIQUE_KEYS:
            return self.UNIQUE_KEYS[on_conflict]
        columns = [c.strip() for c in on_conflict.split(",")]
        return lambda r: tuple(str(r.get(c)) for c in columns)

    def select(self, query: SelectQuery) -> List[Dict[str, Any]]:
        self.selects.append(query)
        if query.table in self.select_failures:
            raise StoreRequestError(self.select_failures[query.table], 500)
        rows = [
            r for r in self.tables[query.table]
            if all(_matches(f, r) for f in query.filters)
        ]
        return [{c: r.get(c) for c in query.columns} for r in rows]

    def write(
        self,
        table: str,
        records: List[Dict[str, Any]],
        on_conflict: str,
        resolution: str,
        returning: str = "minimal",
        count: Optional[str] = None
    ) -> StoreResponse:
        self.writes.append({
            "table": table,
            "records": [dict(r) for r in records],
            "on_conflict": on_conflict,
            "resolution": resolution,
            "returning": returning,
            "count": count,
        })
        queued = self.queued_responses.get(table)
        if queued:
            return queued.pop(0)

        key_of = self._unique_key(on_conflict)
        inserted = []
        for record in records:
            existing = next((r for r in self.tables[table] if key_of(r) == key_of(record)), None)
            if existing is not None:
                if resolution == "merge-duplicates":
                    existing.update(record)
                continue
            row = dict(record, id=self._new_id())
            self.tables[table].append(row)
            inserted.append(row)

        text = json.dumps(inserted) if returning == "representation" else ""
        headers = {"Content-Range": f"*/{len(inserted)}"} if count else {}
        return StoreResponse(status_code=201, text=text, headers=headers)

    def close(self):
        self.closed = True

    def selects_on(self, table: str) -> List[SelectQuery]:
        return [q for q in self.selects if q.table == table]

    def writes_on(self, table: str) -> List[Dict[str, Any]]:
        return [w for w in self.writes if w["table"] == table]


@pytest.fixture()
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def make_settings():
    def _make(**overrides) -> Settings:
        values = {
            "SUPABASE_URL": "https://store.example.test",
            "SUPABASE_SERVICE_ROLE_KEY": "service-role-test-key",
        }
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture()
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture()
def seeded_store(fake_store: FakeStore) -> FakeStore:
    """Two brands sharing the sku_code NL-100, plus one extra SKU."""
    nell = fake_store.add("brands", name="Nell")
    duramaxx = fake_store.add("brands", name="Duramaxx")
    fake_store.add("skus", sku_code="NL-100", brand_id=nell["id"])
    fake_store.add("skus", sku_code="NL-100", brand_id=duramaxx["id"])
    fake_store.add("skus", sku_code="DX-200", brand_id=duramaxx["id"])
    return fake_store
