from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from querychart.db import Database
from querychart.llm_client import LLMClient

STAR_SCHEMA_ROWS = [
    {"table_name": "dim_card", "column_name": "card_key", "data_type": "integer"},
    {"table_name": "dim_card", "column_name": "card_brand", "data_type": "text"},
    {"table_name": "dim_customer", "column_name": "customer_key", "data_type": "integer"},
    {"table_name": "dim_date", "column_name": "date_key", "data_type": "integer"},
    {"table_name": "dim_date", "column_name": "full_date", "data_type": "date"},
    {"table_name": "dim_merchant", "column_name": "merchant_key", "data_type": "integer"},
    {"table_name": "fact_transactions", "column_name": "amount", "data_type": "numeric"},
    {"table_name": "fact_transactions", "column_name": "date_key", "data_type": "integer"},
]

DAILY_FIELDS = [("full_date", "date"), ("total", "numeric")]
DAILY_ROWS = [{"full_date": "2024-01-01", "total": 500}]

CHART_JSON = '{"chartType":"BarChart","dataKey":"full_date","valueKeys":["total"],"title":"Daily Totals"}'
DAILY_SQL = (
    "SELECT d.full_date, SUM(f.amount) AS total FROM fact_transactions f "
    "JOIN dim_date d ON f.date_key = d.date_key GROUP BY d.full_date"
)


class FakeStatement:
    def __init__(self, fields: Sequence[Tuple[str, str]], rows: List[Dict[str, Any]]):
        self._fields = fields
        self._rows = rows

    def get_attributes(self):
        return [SimpleNamespace(name=name, type=SimpleNamespace(name=type_name)) for name, type_name in self._fields]

    async def fetch(self):
        return list(self._rows)


class FakeConnection:
    """Stands in for an asyncpg connection."""

    def __init__(
        self,
        metadata_rows: Optional[List[Dict[str, Any]]] = None,
        fields: Sequence[Tuple[str, str]] = (),
        rows: Optional[List[Dict[str, Any]]] = None,
        metadata_error: Optional[Exception] = None,
        execute_error: Optional[Exception] = None,
    ):
        self.metadata_rows = metadata_rows if metadata_rows is not None else list(STAR_SCHEMA_ROWS)
        self.fields = list(fields)
        self.rows = rows or []
        self.metadata_error = metadata_error
        self.execute_error = execute_error
        self.fetch_calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.prepared: List[str] = []

    async def fetch(self, sql: str, *args: Any):
        self.fetch_calls.append((sql, args))
        if self.metadata_error is not None:
            raise self.metadata_error
        return list(self.metadata_rows)

    async def fetchval(self, sql: str, *args: Any):
        if self.metadata_error is not None:
            raise self.metadata_error
        return 1

    async def prepare(self, sql: str) -> FakeStatement:
        self.prepared.append(sql)
        if self.execute_error is not None:
            raise self.execute_error
        return FakeStatement(self.fields, self.rows)


class ScriptedLLMClient(LLMClient):
    """Returns queued responses in order and records every prompt."""

    def __init__(self, *responses):
        self._responses = list(responses)
        self.prompts: List[str] = []
        self.closed = False

    async def complete_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self._responses:
            raise AssertionError("No scripted LLM response left")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def aclose(self) -> None:
        self.closed = True


class FakeDatabase(Database):
    """Pool stand-in handing out one FakeConnection."""

    def __init__(self, conn: Optional[FakeConnection] = None, acquire_error: Optional[Exception] = None):
        self.conn = conn or FakeConnection()
        self.acquire_error = acquire_error
        self.acquired = 0
        self.released = 0

    @property
    def in_use(self) -> int:
        return self.acquired - self.released

    async def acquire(self):
        if self.acquire_error is not None:
            raise self.acquire_error
        self.acquired += 1
        return self.conn

    async def release(self, conn) -> None:
        self.released += 1

    async def close(self) -> None:
        return None


@pytest.fixture
def daily_conn() -> FakeConnection:
    return FakeConnection(fields=DAILY_FIELDS, rows=list(DAILY_ROWS))
