# tables_rep_db.py
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import psycopg2
import structlog

from base_tables_repo import BaseTablesRepo, PersistenceError
from db_singleton import PgDB

logger = structlog.get_logger(__name__)


class TablesRepDB(BaseTablesRepo):
    """
    Репозиторий строк поверх PostgreSQL (делегирует SQL в PgDB).
    Имена колонок берутся только из белого списка _COLUMNS: значения
    всегда идут параметрами.
    """

    _COLUMNS: dict[str, tuple[str, ...]] = {
        "clients": (
            "id", "user_id", "name", "document", "phone", "email", "notes", "created_at",
        ),
        "contracts": (
            "id", "user_id", "client_id", "total_value", "down_payment", "installments",
            "status", "list_id", "created_at",
        ),
        "payments": (
            "id", "user_id", "contract_id", "amount", "date", "method", "notes",
        ),
        "shipment_lists": ("id", "user_id", "name", "status", "created_at"),
        "contract_events": ("id", "user_id", "contract_id", "type", "description", "date"),
        "expenses": (
            "id", "user_id", "category", "amount", "date", "description",
            "linked_list_id", "withdrawal_person",
        ),
        "profiles": ("id", "name", "email"),
    }

    def __init__(self, *, auto_migrate: bool = True) -> None:
        PgDB.get()  # PgDB.init(...) должен быть вызван раньше
        if auto_migrate:
            self.ensure_schema()

    def ensure_schema(self) -> None:
        """
        Создаёт таблицы, если их ещё нет. Удаление списка обнуляет list_id
        у контрактов (ON DELETE SET NULL), удаление клиента каскадно удаляет
        его контракты, платежи и события.
        """
        ddl = [
            "CREATE EXTENSION IF NOT EXISTS pgcrypto;",
            """
            CREATE TABLE IF NOT EXISTS profiles (
                id     UUID PRIMARY KEY,
                name   TEXT NOT NULL DEFAULT '',
                email  TEXT NOT NULL DEFAULT ''
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS clients (
                id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                user_id     UUID NOT NULL,
                name        TEXT NOT NULL,
                document    TEXT NOT NULL,
                phone       TEXT NOT NULL DEFAULT '',
                email       TEXT NOT NULL DEFAULT '',
                notes       TEXT,
                created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS shipment_lists (
                id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                user_id     UUID NOT NULL,
                name        TEXT NOT NULL,
                status      TEXT NOT NULL DEFAULT 'open'
                    CHECK (status IN ('open', 'sent', 'completed')),
                created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS contracts (
                id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                user_id       UUID NOT NULL,
                client_id     UUID NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
                total_value   NUMERIC(14, 2) NOT NULL,
                down_payment  NUMERIC(14, 2) NOT NULL DEFAULT 0,
                installments  INTEGER NOT NULL DEFAULT 1 CHECK (installments >= 1),
                status        TEXT NOT NULL DEFAULT 'in_progress'
                    CHECK (status IN ('draft', 'in_progress', 'eligible',
                                      'in_list', 'completed', 'returned')),
                list_id       UUID REFERENCES shipment_lists(id) ON DELETE SET NULL,
                created_at    TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS payments (
                id           UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                user_id      UUID NOT NULL,
                contract_id  UUID NOT NULL REFERENCES contracts(id) ON DELETE CASCADE,
                amount       NUMERIC(14, 2) NOT NULL CHECK (amount > 0),
                date         TIMESTAMPTZ NOT NULL DEFAULT now(),
                method       TEXT NOT NULL DEFAULT '',
                notes        TEXT
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS contract_events (
                id           UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                user_id      UUID NOT NULL,
                contract_id  UUID NOT NULL REFERENCES contracts(id) ON DELETE CASCADE,
                type         TEXT NOT NULL
                    CHECK (type IN ('created', 'payment', 'status_change', 'added_to_list',
                                    'removed_from_list', 'list_completed', 'returned')),
                description  TEXT NOT NULL DEFAULT '',
                date         TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id                 UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                user_id            UUID NOT NULL,
                category           TEXT NOT NULL
                    CHECK (category IN ('traffic', 'partnership', 'list', 'withdrawal', 'other')),
                amount             NUMERIC(14, 2) NOT NULL,
                date               TIMESTAMPTZ NOT NULL DEFAULT now(),
                description        TEXT,
                linked_list_id     UUID REFERENCES shipment_lists(id) ON DELETE SET NULL,
                withdrawal_person  TEXT
            );
            """,
            "CREATE INDEX IF NOT EXISTS idx_contracts_list_id ON contracts(list_id);",
            "CREATE INDEX IF NOT EXISTS idx_payments_contract_id ON payments(contract_id);",
            "CREATE INDEX IF NOT EXISTS idx_events_contract_id ON contract_events(contract_id);",
        ]
        db = PgDB.get()
        for stmt in ddl:
            db.execute(stmt)

    # -------------------- утилиты --------------------

    def _columns(self, table: str, names: Iterable[str]) -> list[str]:
        allowed = self._COLUMNS[self.check_table(table)]
        cols = list(names)
        bad = [c for c in cols if c not in allowed]
        if bad:
            raise ValueError(f"Недопустимые колонки для {table}: {', '.join(bad)}")
        return cols

    @staticmethod
    def _fail(table: str, op: str, exc: psycopg2.Error) -> PersistenceError:
        msg = (getattr(exc, "pgerror", None) or str(exc)).strip()
        logger.error("persistence_error", table=table, op=op, pgcode=getattr(exc, "pgcode", None), error=msg)
        return PersistenceError(f"{op} {table}: {msg}", table=table, op=op)

    def _and_filters(self, table: str, filters: dict[str, Any] | None) -> tuple[str, list[Any]]:
        """Дополнительные условия "AND col = %s" для привязки к владельцу."""
        flt = filters or {}
        cols = self._columns(table, flt.keys())
        return "".join(f" AND {c} = %s" for c in cols), [flt[c] for c in cols]

    # -------------------- API --------------------

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        payload = {k: v for k, v in row.items() if v is not None}
        cols = self._columns(table, payload.keys())
        placeholders = ", ".join(["%s"] * len(cols))
        sql = f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders}) RETURNING *;"
        try:
            out = PgDB.get().execute_returning(sql, [payload[c] for c in cols])
        except psycopg2.Error as exc:
            raise self._fail(table, "insert", exc) from exc
        if not out:
            raise PersistenceError(f"insert {table}: пустой результат RETURNING", table=table, op="insert")
        return out

    def update(
        self,
        table: str,
        row_id: str,
        fields: dict[str, Any],
        *,
        filters: dict[str, Any] | None = None,
    ) -> None:
        if not fields:
            return
        cols = self._columns(table, fields.keys())
        extra, extra_params = self._and_filters(table, filters)
        assignments = ", ".join(f"{c} = %s" for c in cols)
        sql = f"UPDATE {table} SET {assignments} WHERE id = %s{extra};"
        try:
            count = PgDB.get().execute(sql, [fields[c] for c in cols] + [row_id] + extra_params)
        except psycopg2.Error as exc:
            raise self._fail(table, "update", exc) from exc
        if count == 0:
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
        keys = list(values)
        if not keys or not fields:
            return 0
        cols = self._columns(table, fields.keys())
        (where_col,) = self._columns(table, [column])
        extra, extra_params = self._and_filters(table, filters)
        assignments = ", ".join(f"{c} = %s" for c in cols)
        sql = f"UPDATE {table} SET {assignments} WHERE {where_col} = ANY(%s){extra};"
        try:
            return PgDB.get().execute(sql, [fields[c] for c in cols] + [keys] + extra_params)
        except psycopg2.Error as exc:
            raise self._fail(table, "update", exc) from exc

    def delete(self, table: str, row_id: str, *, filters: dict[str, Any] | None = None) -> None:
        extra, extra_params = self._and_filters(table, filters)
        try:
            count = PgDB.get().execute(f"DELETE FROM {table} WHERE id = %s{extra};", [row_id] + extra_params)
        except psycopg2.Error as exc:
            raise self._fail(table, "delete", exc) from exc
        if count == 0:
            raise PersistenceError(f"delete {table}: id={row_id} не найден", table=table, op="delete")

    def select(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        flt = filters or {}
        cols = self._columns(table, flt.keys())
        where = ("WHERE " + " AND ".join(f"{c} = %s" for c in cols)) if cols else ""
        order = ""
        if order_by:
            (ocol,) = self._columns(table, [order_by])
            order = f"ORDER BY {ocol} {'DESC' if descending else 'ASC'}"
        sql = f"SELECT * FROM {table} {where} {order};"
        try:
            return PgDB.get().fetch_all(sql, [flt[c] for c in cols])
        except psycopg2.Error as exc:
            raise self._fail(table, "select", exc) from exc
