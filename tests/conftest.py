# tests/conftest.py
from typing import Any, Dict, List, Optional, Tuple

import pytest
from postgrest.exceptions import APIError


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Minimal imitation of the PostgREST request builder."""

    def __init__(self, client: "FakeSupabaseClient", table: str):
        self.client = client
        self.table = table
        self.op: Optional[str] = None
        self.filters: List[Tuple[str, Any]] = []
        self.order_by: Optional[Tuple[str, bool]] = None
        self.payload: Any = None
        self.on_conflict: str = ""

    def select(self, *columns):
        self.op = "select"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False, **kwargs):
        self.order_by = (column, desc)
        return self

    def upsert(self, payload, on_conflict="", ignore_duplicates=False, **kwargs):
        self.op = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def execute(self):
        self.client.calls.append(
            {"table": self.table, "op": self.op, "payload": self.payload, "on_conflict": self.on_conflict}
        )
        error = self.client.failures.get(self.table)
        if error is not None:
            raise error

        rows = self.client.tables.setdefault(self.table, [])
        if self.op == "select":
            result = [r for r in rows if all(r.get(c) == v for c, v in self.filters)]
            if self.order_by:
                column, desc = self.order_by
                result.sort(key=lambda r: r.get(column) or 0, reverse=desc)
            return FakeResponse([dict(r) for r in result])

        items = self.payload if isinstance(self.payload, list) else [self.payload]
        keys = [k.strip() for k in self.on_conflict.split(",") if k.strip()]
        written = []
        for item in items:
            existing = None
            if keys:
                existing = next(
                    (r for r in rows if all(r.get(k) == item.get(k) for k in keys)),
                    None,
                )
            if existing is None:
                existing = {}
                rows.append(existing)
            existing.update(item)
            written.append(dict(existing))
        return FakeResponse(written)


class FakeSupabaseClient:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = tables or {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[Dict[str, Any]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, message: str = "boom") -> None:
        self.failures[table] = APIError({"message": message, "code": "500"})

    def recover(self, table: str) -> None:
        self.failures.pop(table, None)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])


@pytest.fixture
def supabase():
    return FakeSupabaseClient()


@pytest.fixture
def tag_rows():
    return [
        {
            "id": "tag-2",
            "tag_name": "TR1_OIL_TEMP",
            "modbus_address": 20,
            "modbus_function_code": 4,
            "data_type": "int16",
            "scaling_factor": 0.1,
            "offset": -10,
            "alarm_high": 95,
            "target_table": "transformer_logs",
            "target_field": "oil_temperature",
            "transformer_number": 1,
            "polling_priority": 2,
            "is_active": True,
        },
        {
            "id": "tag-1",
            "tag_name": "GEN_VOLTAGE",
            "modbus_address": 10,
            "modbus_function_code": 3,
            "data_type": "uint16",
            "scaling_factor": 0.1,
            "offset": 0,
            "target_table": "generator_logs",
            "target_field": "voltage",
            "polling_priority": 1,
            "is_active": True,
        },
        {
            "id": "tag-3",
            "tag_name": "OLD_POINT",
            "modbus_address": 30,
            "modbus_function_code": 3,
            "data_type": "uint16",
            "polling_priority": 0,
            "is_active": False,
        },
    ]
