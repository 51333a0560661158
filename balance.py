from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from contract_lifecycle import ACTIVE_STATUSES
from tracker_domain import (
    Contract,
    ContractBalance,
    DashboardStats,
    Expense,
    ExpenseTotals,
    Payment,
    ShipmentList,
)

ZERO = Decimal("0")
ZERO_BALANCE = ContractBalance(paid=ZERO, remaining=ZERO, percentage=ZERO)


def paid_for(contract_id: str, payments: Iterable[Payment]) -> Decimal:
    return sum((p.amount for p in payments if p.contract_id == contract_id), ZERO)


def contract_balance(contract: Optional[Contract], payments: Iterable[Payment]) -> ContractBalance:
    """
    paid = сумма платежей; remaining = total_value - paid;
    percentage = paid / total_value * 100 (без ограничения сверху).
    Всё в Decimal, поэтому paid + remaining == total_value точно.
    Нет контракта: нулевой баланс; total_value <= 0: percentage = 0.
    """
    if contract is None:
        return ZERO_BALANCE
    paid = paid_for(contract.id, payments)
    remaining = contract.total_value - paid
    percentage = (paid * 100 / contract.total_value) if contract.total_value > 0 else ZERO
    return ContractBalance(paid=paid, remaining=remaining, percentage=percentage)


def dashboard_stats(contracts: Sequence[Contract], payments: Sequence[Payment]) -> DashboardStats:
    """Полный пересчёт на каждый вызов: O(контракты * платежи)."""
    total_revenue = ZERO
    outstanding = ZERO
    for c in contracts:
        bal = contract_balance(c, payments)
        total_revenue += bal.paid
        outstanding += bal.remaining

    def count(status: str) -> int:
        return sum(1 for c in contracts if c.status == status)

    return DashboardStats(
        active_contracts=sum(1 for c in contracts if c.status in ACTIVE_STATUSES),
        eligible_contracts=count("eligible"),
        in_list_contracts=count("in_list"),
        completed_contracts=count("completed"),
        returned_contracts=count("returned"),
        total_revenue=total_revenue,
        outstanding_balance=outstanding,
    )


def items_counts(lists: Iterable[ShipmentList], contracts: Iterable[Contract]) -> dict[str, int]:
    """list_id -> количество контрактов, ссылающихся на список."""
    counts = {lst.id: 0 for lst in lists}
    for c in contracts:
        if c.list_id in counts:
            counts[c.list_id] += 1
    return counts


def outstanding_contracts(
    contracts: Iterable[Contract], payments: Sequence[Payment]
) -> list[tuple[Contract, ContractBalance]]:
    """Контракты с остатком > 0, самый большой долг первым."""
    rows = [(c, contract_balance(c, payments)) for c in contracts]
    rows = [r for r in rows if r[1].remaining > 0]
    rows.sort(key=lambda r: r[1].remaining, reverse=True)
    return rows


def expense_totals(expenses: Iterable[Expense]) -> ExpenseTotals:
    sums = {"traffic": ZERO, "partnership": ZERO, "list": ZERO, "withdrawal": ZERO, "other": ZERO}
    for e in expenses:
        sums[e.category] = sums.get(e.category, ZERO) + e.amount
    return ExpenseTotals(total=sum(sums.values(), ZERO), **sums)
