from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional

ContractStatus = Literal["draft", "in_progress", "eligible", "in_list", "completed", "returned"]
ListStatus = Literal["open", "sent", "completed"]
ExpenseCategory = Literal["traffic", "partnership", "list", "withdrawal", "other"]
EventType = Literal[
    "created",
    "payment",
    "status_change",
    "added_to_list",
    "removed_from_list",
    "list_completed",
    "returned",
]

EXPENSE_CATEGORIES: tuple[str, ...] = ("traffic", "partnership", "list", "withdrawal", "other")

TEMP_ID_PREFIX = "temp-"


def new_temp_id() -> str:
    """Временный id для оптимистичной вставки (до ответа хранилища)."""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(value: str | None) -> bool:
    return bool(value) and str(value).startswith(TEMP_ID_PREFIX)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class Client:
    id: str
    name: str
    document: str
    phone: str
    email: str
    created_at: str
    notes: Optional[str] = None


@dataclass(slots=True)
class Contract:
    id: str
    client_id: str
    total_value: Decimal
    down_payment: Decimal
    installments: int
    status: ContractStatus
    created_at: str
    list_id: Optional[str] = None


@dataclass(slots=True)
class Payment:
    id: str
    contract_id: str
    amount: Decimal
    date: str
    method: str
    notes: Optional[str] = None


@dataclass(slots=True)
class ShipmentList:
    id: str
    name: str
    status: ListStatus
    created_at: str
    items_count: int = 0  # производное поле, в БД не хранится


@dataclass(slots=True)
class ContractEvent:
    id: str
    contract_id: str
    type: EventType
    description: str
    date: str


@dataclass(slots=True)
class Expense:
    id: str
    category: ExpenseCategory
    amount: Decimal
    date: str
    description: Optional[str] = None
    linked_list_id: Optional[str] = None
    withdrawal_person: Optional[str] = None


@dataclass(slots=True)
class Profile:
    name: str
    email: str


@dataclass(frozen=True, slots=True)
class Session:
    user_id: str
    email: str


@dataclass(frozen=True, slots=True)
class ContractBalance:
    paid: Decimal
    remaining: Decimal
    percentage: Decimal


@dataclass(frozen=True, slots=True)
class DashboardStats:
    active_contracts: int
    eligible_contracts: int
    in_list_contracts: int
    completed_contracts: int
    returned_contracts: int
    total_revenue: Decimal
    outstanding_balance: Decimal


@dataclass(frozen=True, slots=True)
class ExpenseTotals:
    total: Decimal
    traffic: Decimal
    partnership: Decimal
    list: Decimal
    withdrawal: Decimal
    other: Decimal
