"""
Правила жизненного цикла контракта.

    (создан)     -> in_progress
    in_progress  -> eligible   оплачено >= 50% total_value (с учётом нового платежа)
    draft        -> eligible   то же правило; draft зарезервирован, сам не возникает
    eligible     -> in_list    добавлен в открытый список
    in_list      -> eligible   убран из открытого списка или список удалён
    in_list      -> completed  список завершён
    completed    -> returned   зафиксирован возврат с причиной

Переход в eligible односторонний: удаление платежей статус не откатывает.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from tracker_domain import Contract, ShipmentList

PROMOTABLE_STATUSES: tuple[str, ...] = ("in_progress", "draft")
ACTIVE_STATUSES: tuple[str, ...] = ("in_progress", "eligible")

# Порядок, в котором статус контракта "представляет" клиента
CLIENT_STATUS_PRIORITY: tuple[str, ...] = (
    "returned", "in_list", "eligible", "in_progress", "draft", "completed",
)


def format_brl(value: Decimal) -> str:
    """1234.5 -> 'R$ 1.234,50'."""
    sign = "-" if value < 0 else ""
    s = f"{abs(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {s}"


# ===== Переходы =====

def crosses_eligibility(contract: Contract, paid: Decimal) -> bool:
    """
    Нужно ли перевести контракт в eligible при сумме оплат paid
    (paid >= 50% total_value, сравнение точное, без деления).
    total_value <= 0: порог не определён, контракт не продвигаем.
    """
    if contract.status not in PROMOTABLE_STATUSES:
        return False
    if contract.total_value <= 0:
        return False
    return paid * 2 >= contract.total_value


def list_is_open(lst: Optional[ShipmentList]) -> bool:
    return lst is not None and lst.status == "open"


def can_add_to_list(contract: Optional[Contract], lst: Optional[ShipmentList]) -> bool:
    return contract is not None and list_is_open(lst) and contract.status == "eligible"


def can_remove_from_list(contract: Optional[Contract], lst: Optional[ShipmentList]) -> bool:
    return (
        contract is not None
        and lst is not None
        and list_is_open(lst)
        and contract.list_id == lst.id
    )


def can_complete_list(lst: Optional[ShipmentList]) -> bool:
    return lst is not None and lst.status != "completed"


def can_return(contract: Optional[Contract]) -> bool:
    return contract is not None and contract.status == "completed"


def client_status(contracts: Iterable[Contract]) -> Optional[str]:
    """Главный статус клиента по его контрактам; None: контрактов нет."""
    statuses = {c.status for c in contracts}
    if not statuses:
        return None
    for status in CLIENT_STATUS_PRIORITY:
        if status in statuses:
            return status
    return "completed"


# ===== Тексты событий =====

def describe_created(total_value: Decimal) -> str:
    return f"Contrato criado no valor de {format_brl(total_value)}"


def describe_payment(amount: Decimal) -> str:
    return f"Pagamento recebido: {format_brl(amount)}"


def describe_eligible() -> str:
    return "Contrato atingiu 50% e tornou-se Elegível para envio"


def describe_value_change(old: Decimal, new: Decimal) -> str:
    return f"Valor do contrato alterado de {format_brl(old)} para {format_brl(new)}"


def describe_added(list_name: str) -> str:
    return f"Adicionado à lista: {list_name}"


def describe_removed(list_name: str) -> str:
    return f"Removido da lista: {list_name}"


def describe_list_completed(list_name: str) -> str:
    return f"Processo concluído via lista: {list_name}"


def describe_returned(reason: str) -> str:
    return f"Retorno registrado: {reason}"
