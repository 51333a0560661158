# base_tables_repo.py
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

TABLES: tuple[str, ...] = (
    "clients",
    "contracts",
    "payments",
    "shipment_lists",
    "contract_events",
    "expenses",
    "profiles",
)


class PersistenceError(RuntimeError):
    """Удалённое хранилище отклонило запрос (insert/update/delete/select)."""

    def __init__(self, message: str, *, table: str | None = None, op: str | None = None) -> None:
        super().__init__(message)
        self.table = table
        self.op = op


class BaseTablesRepo(ABC):
    """
    Базовый репозиторий строк: единый интерфейс "удалённого" хранилища таблиц.
    Работает только со строками (dict) в именах колонок БД; о доменных
    объектах ничего не знает: перевод делает row_mapping.

    Все методы при отказе хранилища кидают PersistenceError.
    """

    @staticmethod
    def check_table(table: str) -> str:
        if table not in TABLES:
            raise ValueError(f"Неизвестная таблица: {table}")
        return table

    @abstractmethod
    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """
        Вставить строку и вернуть её в сохранённом виде (с присвоенным id
        и значениями по умолчанию, например created_at).
        """
        raise NotImplementedError

    @abstractmethod
    def update(
        self,
        table: str,
        row_id: str,
        fields: dict[str, Any],
        *,
        filters: dict[str, Any] | None = None,
    ) -> None:
        """
        Частичное обновление строки по id (и по равенству filters).
        Нет такой строки: PersistenceError.
        """
        raise NotImplementedError

    @abstractmethod
    def update_where(
        self,
        table: str,
        column: str,
        values: Iterable[Any],
        fields: dict[str, Any],
        *,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """
        Обновить все строки, где column IN values (и по равенству filters).
        Возвращает число строк.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, table: str, row_id: str, *, filters: dict[str, Any] | None = None) -> None:
        """Удалить строку по id (и по равенству filters). Нет такой строки: PersistenceError."""
        raise NotImplementedError

    @abstractmethod
    def select(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        """Строки по равенству filters, упорядоченные по order_by."""
        raise NotImplementedError
