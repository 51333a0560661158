"""
Фикстуры для тестов трекера.

- MemoryTablesRepo: BaseTablesRepo в памяти с имитацией отказов хранилища
- RecordingDB: подмена PgDB, записывает SQL и отдаёт заготовленные ответы
- DomainStore с открытой сессией поверх таблиц в памяти
"""

from __future__ import annotations

from typing import Any, Iterable
from uuid import uuid4

import psycopg2
import pytest

from base_tables_repo import BaseTablesRepo, PersistenceError
from db_singleton import PgDB
from domain_store import DomainStore
from tracker_domain import Session


class MemoryTablesRepo(BaseTablesRepo):
    """Строки в словарях. fail(table, op): подходящие вызовы кидают PersistenceError."""

    def __init__(self) -> None:
        self.rows: dict[str, list[dict[str, Any]]] = {}
        self.failures: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str]] = []

    def fail(self, table: str = "*", op: str = "*") -> None:
        self.failures.add((table, op))

    def heal(self) -> None:
        self.failures.clear()

    def _check(self, table: str, op: str) -> None:
        self.check_table(table)
        self.calls.append((table, op))
        for t, o in ((table, op), (table, "*"), ("*", op), ("*", "*")):
            if (t, o) in self.failures:
                raise PersistenceError(f"{op} {table}: имитация отказа", table=table, op=op)

    def _table(self, table: str) -> list[dict[str, Any]]:
        return self.rows.setdefault(table, [])

    @staticmethod
    def _matches(row: dict[str, Any], filters: dict[str, Any] | None) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        self._check(table, "insert")
        saved = dict(row)
        saved.setdefault("id", str(uuid4()))
        self._table(table).append(saved)
        return dict(saved)

    def update(
        self,
        table: str,
        row_id: str,
        fields: dict[str, Any],
        *,
        filters: dict[str, Any] | None = None,
    ) -> None:
        self._check(table, "update")
        for r in self._table(table):
            if r["id"] == row_id and self._matches(r, filters):
                r.update(fields)
                return
        raise PersistenceError(f"update {table}: id={row_id} не найден", table=table, op="update")

    def update_where(
        self,
        table: str,
        column: str,
        values: Iterable[Any],
        fields: dict[str, Any],
        *,
        filters: dict[str, Any] | None = None,
    ) -> int:
        self._check(table, "update")
        keys = set(values)
        count = 0
        for r in self._table(table):
            if r.get(column) in keys and self._matches(r, filters):
                r.update(fields)
                count += 1
        return count

    def delete(self, table: str, row_id: str, *, filters: dict[str, Any] | None = None) -> None:
        self._check(table, "delete")
        rows = self._table(table)
        kept = [r for r in rows if not (r["id"] == row_id and self._matches(r, filters))]
        if len(kept) == len(rows):
            raise PersistenceError(f"delete {table}: id={row_id} не найден", table=table, op="delete")
        rows[:] = kept

    def select(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        self._check(table, "select")
        flt = filters or {}
        out = [dict(r) for r in self._table(table) if self._matches(r, flt)]
        if order_by:
            out.sort(key=lambda r: str(r.get(order_by) or ""), reverse=descending)
        return out


class RecordingDB:
    """Замена PgDB: записывает каждый (sql, params) и отдаёт ответы из очереди."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.results: list[Any] = []
        self.error: Exception | None = None

    def _next(self, sql: str, params: Any, default: Any) -> Any:
        self.calls.append((" ".join(sql.split()), params))
        if self.error is not None:
            raise self.error
        return self.results.pop(0) if self.results else default

    def fetch_one(self, sql: str, params: Any = None) -> dict[str, Any] | None:
        return self._next(sql, params, None)

    def fetch_all(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        return self._next(sql, params, [])

    def execute(self, sql: str, params: Any = None) -> int:
        return self._next(sql, params, 1)

    def execute_returning(self, sql: str, params: Any = None) -> dict[str, Any] | None:
        return self._next(sql, params, None)

    def sql(self) -> list[str]:
        return [s for s, _ in self.calls]


@pytest.fixture
def recording_db(monkeypatch):
    db = RecordingDB()
    monkeypatch.setattr(PgDB, "_instance", db)
    return db


@pytest.fixture
def pg_error():
    """Фабрика psycopg2.Error с заданным текстом."""
    return lambda msg="boom": psycopg2.Error(msg)


@pytest.fixture
def tables() -> MemoryTablesRepo:
    return MemoryTablesRepo()


@pytest.fixture
def session() -> Session:
    return Session(user_id="user-1", email="ana@limpanome.com.br")


@pytest.fixture
def store(tables, session) -> DomainStore:
    s = DomainStore(tables)
    s.initialize(session)
    return s


@pytest.fixture
def notifications(store):
    """Все события хранилища в порядке поступления."""
    seen: list[tuple[str, Any]] = []
    store.subscribe(lambda event, payload: seen.append((event, payload)))
    return seen


@pytest.fixture
def client(store):
    return store.add_client("Maria Souza", "12345678901", phone="11 98888-7777")


@pytest.fixture
def contract(store, client):
    return store.add_contract(client.id, 1000, down_payment=100, installments=3)
