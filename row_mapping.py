# row_mapping.py
from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Generic, TypeVar

from tracker_domain import (
    Client,
    Contract,
    ContractEvent,
    Expense,
    Payment,
    ShipmentList,
    is_temp_id,
)

E = TypeVar("E")


# -------------------- преобразование значений из БД --------------------

def to_str(value: Any) -> str | None:
    return None if value is None else str(value)


def to_decimal(value: Any) -> Decimal:
    """NUMERIC приходит из psycopg2 как Decimal; остальное приводим через str."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_int(value: Any) -> int:
    return int(value) if value is not None else 0


def to_iso(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class EntityMapper(Generic[E]):
    """
    Двусторонний перевод "доменный объект <-> строка таблицы".
    Единственное место, где живут имена колонок: бизнес-логика работает
    только с атрибутами dataclass'ов.

    columns  : атрибут -> колонка (только сохраняемые поля, без id)
    readers  : атрибут -> функция приведения значения из БД
    derived  : атрибуты, которые в БД не пишутся (вычисляемые)
    """

    def __init__(
        self,
        entity_cls: type[E],
        table: str,
        columns: dict[str, str],
        readers: dict[str, Callable[[Any], Any]] | None = None,
        derived: tuple[str, ...] = (),
    ) -> None:
        self.entity_cls = entity_cls
        self.table = table
        self.columns = dict(columns)
        self.readers = dict(readers or {})
        self.derived = derived
        self._attr_by_column = {col: attr for attr, col in self.columns.items()}

    # ---------- домен -> БД ----------

    def fields_to_row(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Частичный набор атрибутов -> колонки (для update)."""
        out: dict[str, Any] = {}
        for attr, value in fields.items():
            if attr == "id" or attr in self.derived:
                continue
            if attr not in self.columns:
                raise ValueError(f"{self.entity_cls.__name__}: неизвестное поле '{attr}'")
            out[self.columns[attr]] = value
        return out

    def to_row(self, entity: E, *, user_id: str | None = None) -> dict[str, Any]:
        """
        Полная строка для insert. Временный id не отправляем: его выдаёт
        хранилище; user_id добавляется для привязки к владельцу.
        """
        data = {f.name: getattr(entity, f.name) for f in dataclasses.fields(entity)}  # type: ignore[arg-type]
        row = self.fields_to_row({k: v for k, v in data.items() if k != "id"})
        ent_id = data.get("id")
        if ent_id is not None and not is_temp_id(ent_id):
            row["id"] = ent_id
        if user_id is not None:
            row["user_id"] = user_id
        return row

    # ---------- БД -> домен ----------

    def from_row(self, row: dict[str, Any], **extra: Any) -> E:
        """
        Строка таблицы -> доменный объект. Лишние колонки (user_id и т.п.)
        игнорируются; extra задаёт производные атрибуты.
        """
        payload: dict[str, Any] = {"id": to_str(row.get("id"))}
        for col, value in row.items():
            attr = self._attr_by_column.get(col)
            if attr is None:
                continue
            reader = self.readers.get(attr)
            payload[attr] = reader(value) if reader else value
        payload.update(extra)
        return self.entity_cls(**payload)


CLIENTS = EntityMapper(
    Client,
    "clients",
    {
        "name": "name",
        "document": "document",
        "phone": "phone",
        "email": "email",
        "notes": "notes",
        "created_at": "created_at",
    },
    readers={"created_at": to_iso},
)

CONTRACTS = EntityMapper(
    Contract,
    "contracts",
    {
        "client_id": "client_id",
        "total_value": "total_value",
        "down_payment": "down_payment",
        "installments": "installments",
        "status": "status",
        "created_at": "created_at",
        "list_id": "list_id",
    },
    readers={
        "client_id": to_str,
        "total_value": to_decimal,
        "down_payment": to_decimal,
        "installments": to_int,
        "created_at": to_iso,
        "list_id": to_str,
    },
)

PAYMENTS = EntityMapper(
    Payment,
    "payments",
    {
        "contract_id": "contract_id",
        "amount": "amount",
        "date": "date",
        "method": "method",
        "notes": "notes",
    },
    readers={"contract_id": to_str, "amount": to_decimal, "date": to_iso},
)

SHIPMENT_LISTS = EntityMapper(
    ShipmentList,
    "shipment_lists",
    {"name": "name", "status": "status", "created_at": "created_at"},
    readers={"created_at": to_iso},
    derived=("items_count",),
)

CONTRACT_EVENTS = EntityMapper(
    ContractEvent,
    "contract_events",
    {
        "contract_id": "contract_id",
        "type": "type",
        "description": "description",
        "date": "date",
    },
    readers={"contract_id": to_str, "date": to_iso},
)

EXPENSES = EntityMapper(
    Expense,
    "expenses",
    {
        "category": "category",
        "amount": "amount",
        "date": "date",
        "description": "description",
        "linked_list_id": "linked_list_id",
        "withdrawal_person": "withdrawal_person",
    },
    readers={"amount": to_decimal, "date": to_iso, "linked_list_id": to_str},
)
