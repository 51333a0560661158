# db_singleton.py
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import psycopg2
import structlog
from psycopg2.extensions import connection as pg_connection
from psycopg2.extras import RealDictCursor

logger = structlog.get_logger(__name__)


class PgDB:
    """
    Singleton для работы с PostgreSQL (без ORM).
    Открывает соединение на каждый вызов и сразу закрывает его.
    """

    _instance: PgDB | None = None

    def __init__(self, **conn_params: Any) -> None:
        self._conn_params = dict(conn_params)

    @classmethod
    def init(cls, **conn_params: Any) -> PgDB:
        """
        Однократная инициализация параметров подключения (создаёт/обновляет Singleton).
        """
        if cls._instance is None:
            cls._instance = PgDB(**conn_params)
        else:
            cls._instance._conn_params = dict(conn_params)
        logger.debug(
            "pg_init",
            host=conn_params.get("host"),
            port=conn_params.get("port"),
            dbname=conn_params.get("dbname"),
        )
        return cls._instance

    @classmethod
    def get(cls) -> PgDB:
        if cls._instance is None:
            raise RuntimeError("PgDB не инициализирован. Сначала вызовите PgDB.init(...).")
        return cls._instance

    def connect(self) -> pg_connection:
        """Новое подключение с autocommit=True."""
        conn: pg_connection = psycopg2.connect(**self._conn_params)  # type: ignore[call-arg]
        conn.autocommit = True
        return conn

    # --- одна точка выполнения: открыть соединение, выполнить, закрыть ---

    def _run(self, sql: str, params: Iterable[Any] | None, mode: str) -> Any:
        conn = self.connect()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                if mode == "one":
                    row = cur.fetchone()
                    return dict(row) if row is not None else None
                if mode == "all":
                    return [dict(r) for r in cur.fetchall()]
                return cur.rowcount
        finally:
            conn.close()

    def fetch_one(self, sql: str, params: Iterable[Any] | None = None) -> dict[str, Any] | None:
        return self._run(sql, params, "one")

    def fetch_all(self, sql: str, params: Iterable[Any] | None = None) -> list[dict[str, Any]]:
        return self._run(sql, params, "all")

    def execute(self, sql: str, params: Iterable[Any] | None = None) -> int:
        return self._run(sql, params, "count")

    def execute_returning(
        self, sql: str, params: Iterable[Any] | None = None
    ) -> dict[str, Any] | None:
        """Запрос с RETURNING: первая строка результата (dict) либо None."""
        return self._run(sql, params, "one")
