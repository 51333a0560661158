# domain_store.py
from __future__ import annotations

import dataclasses
from decimal import Decimal
from typing import Any, Optional, TypeVar

import structlog

import contract_lifecycle as lifecycle
from balance import (
    contract_balance,
    dashboard_stats,
    expense_totals,
    items_counts,
    outstanding_contracts,
    paid_for,
)
from base_tables_repo import BaseTablesRepo, PersistenceError
from mvc_observer import Subject
from optimistic import MutationResult, OptimisticMutation
from row_mapping import (
    CLIENTS,
    CONTRACT_EVENTS,
    CONTRACTS,
    EXPENSES,
    PAYMENTS,
    SHIPMENT_LISTS,
    EntityMapper,
)
from tracker_domain import (
    Client,
    Contract,
    ContractBalance,
    ContractEvent,
    DashboardStats,
    Expense,
    ExpenseTotals,
    Payment,
    Profile,
    Session,
    ShipmentList,
    new_temp_id,
    now_iso,
)
from tracker_rep_adapter import TrackerRepAdapter
from validators import Validator as V

logger = structlog.get_logger(__name__)

E = TypeVar("E")

COLLECTIONS: tuple[str, ...] = ("clients", "contracts", "payments", "lists", "events", "expenses")

# коллекция -> (маппер, поле сортировки при загрузке)
_SOURCES: dict[str, tuple[EntityMapper[Any], str]] = {
    "clients": (CLIENTS, "created_at"),
    "contracts": (CONTRACTS, "created_at"),
    "payments": (PAYMENTS, "date"),
    "lists": (SHIPMENT_LISTS, "created_at"),
    "events": (CONTRACT_EVENTS, "date"),
    "expenses": (EXPENSES, "date"),
}

_CLIENT_FIELDS = ("name", "document", "phone", "email", "notes")
_CONTRACT_FIELDS = ("client_id", "total_value", "down_payment", "installments")
_EXPENSE_FIELDS = (
    "category", "amount", "date", "description", "linked_list_id", "withdrawal_person",
)


class DomainStore(Subject):
    """
    Доменное хранилище: зеркало коллекций владельца в памяти, все мутации
    (оптимистично, с откатом) и производные величины.

    Жизненный цикл: initialize(session) / teardown(); handle_session_change
    подключается к auth_gateway.PgAuth.on_auth_state_change.

    События для наблюдателей:
      - "initialized"     payload: Session
      - "teardown"        payload: None
      - "changed"         payload: tuple[str, ...]  (изменённые коллекции)
      - "mutation_failed" payload: dict(action=..., message=...)
    """

    def __init__(self, tables: BaseTablesRepo) -> None:
        super().__init__()
        self._tables = tables
        self._repo: TrackerRepAdapter | None = None
        self.session: Session | None = None
        self.profile = Profile(name="", email="")
        self._state: dict[str, list[Any]] = {name: [] for name in COLLECTIONS}
        self._mutation = OptimisticMutation(
            self._state, on_change=self._after_change, on_failure=self._report_failure
        )

    # ===== коллекции (копии, чтобы снаружи не меняли состояние) =====

    @property
    def clients(self) -> list[Client]:
        return list(self._state["clients"])

    @property
    def contracts(self) -> list[Contract]:
        return list(self._state["contracts"])

    @property
    def payments(self) -> list[Payment]:
        return list(self._state["payments"])

    @property
    def lists(self) -> list[ShipmentList]:
        return list(self._state["lists"])

    @property
    def events(self) -> list[ContractEvent]:
        return list(self._state["events"])

    @property
    def expenses(self) -> list[Expense]:
        return list(self._state["expenses"])

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    # ===== жизненный цикл =====

    def initialize(self, session: Session) -> None:
        """Привязка к пользователю и полная загрузка его данных."""
        self.session = session
        self._repo = TrackerRepAdapter(self._tables, session.user_id)
        default_name = session.email.split("@")[0] if session.email else ""
        self.profile = Profile(name=default_name, email=session.email)
        self.refresh()
        self._load_profile()
        logger.info("store_initialized", user_id=session.user_id)
        self.notify("initialized", session)

    def teardown(self) -> None:
        for items in self._state.values():
            items.clear()
        self.session = None
        self._repo = None
        self.profile = Profile(name="", email="")
        logger.info("store_teardown")
        self.notify("teardown", None)

    def handle_session_change(self, event: str, session: Optional[Session]) -> None:
        if session is None:
            if self.session is not None:
                self.teardown()
            return
        if session != self.session:
            self.initialize(session)

    def refresh(self) -> None:
        """
        Перечитывает все коллекции. Ошибка одной таблицы не мешает остальным:
        коллекция остаётся прежней, ошибка уходит наблюдателям.
        """
        if self._repo is None:
            return
        for name, (mapper, order_by) in _SOURCES.items():
            try:
                self._state[name][:] = self._repo.load(mapper, order_by)
            except PersistenceError as exc:
                self._report_failure(f"load_{name}", exc)
        self._after_change(COLLECTIONS)

    def _load_profile(self) -> None:
        assert self._repo is not None
        try:
            profile = self._repo.get_profile()
        except PersistenceError as exc:
            self._report_failure("load_profile", exc)
            return
        if profile is not None:
            self.profile = Profile(
                name=profile.name, email=profile.email or (self.session.email if self.session else "")
            )

    # ===== служебное =====

    def _after_change(self, touches: tuple[str, ...]) -> None:
        if "contracts" in touches or "lists" in touches:
            counts = items_counts(self._state["lists"], self._state["contracts"])
            self._state["lists"][:] = [
                lst if lst.items_count == counts[lst.id]
                else dataclasses.replace(lst, items_count=counts[lst.id])
                for lst in self._state["lists"]
            ]
        self.notify("changed", touches)

    def _report_failure(self, action: str, exc: Exception) -> None:
        logger.error("mutation_failed", action=action, error=str(exc))
        self.notify("mutation_failed", {"action": action, "message": str(exc)})

    def _ready(self, action: str) -> bool:
        if self._repo is None:
            logger.warning("no_session", action=action)
            return False
        return True

    @staticmethod
    def _rejected(action: str, exc: ValueError) -> None:
        logger.debug("validation_rejected", action=action, error=str(exc))

    def _find(self, name: str, entity_id: str | None) -> Any:
        if entity_id is None:
            return None
        for item in self._state[name]:
            if item.id == entity_id:
                return item
        return None

    def _replace_local(self, name: str, entity_id: str, new: Any) -> None:
        items = self._state[name]
        for i, item in enumerate(items):
            if item.id == entity_id:
                items[i] = new
                return

    def _insert(
        self, action: str, name: str, mapper: EntityMapper[E], entity: E, **extra: Any
    ) -> MutationResult[E]:
        assert self._repo is not None
        repo = self._repo
        temp_id = entity.id  # type: ignore[attr-defined]

        def apply() -> None:
            self._state[name].insert(0, entity)

        def reconcile(saved: E) -> None:
            self._replace_local(name, temp_id, saved)

        return self._mutation.run(
            action,
            touches=(name,),
            apply=apply,
            send=lambda: repo.insert(mapper, entity, **extra),
            reconcile=reconcile,
        )

    def _update(
        self,
        action: str,
        name: str,
        mapper: EntityMapper[Any],
        entity_id: str,
        fields: dict[str, Any],
        *,
        touches: tuple[str, ...] | None = None,
    ) -> MutationResult[None]:
        assert self._repo is not None
        repo = self._repo
        current = self._find(name, entity_id)

        def apply() -> None:
            self._replace_local(name, entity_id, dataclasses.replace(current, **fields))

        return self._mutation.run(
            action,
            touches=touches or (name,),
            apply=apply,
            send=lambda: repo.update(mapper, entity_id, fields),
        )

    def _delete(
        self,
        action: str,
        name: str,
        mapper: EntityMapper[Any],
        entity_id: str,
        *,
        rollback: Any = None,
    ) -> MutationResult[None]:
        assert self._repo is not None
        repo = self._repo

        def apply() -> None:
            self._state[name][:] = [x for x in self._state[name] if x.id != entity_id]

        return self._mutation.run(
            action,
            touches=(name,),
            apply=apply,
            send=lambda: repo.delete(mapper, entity_id),
            rollback=rollback,
        )

    def _record_event(self, contract_id: str, event_type: str, description: str) -> Optional[ContractEvent]:
        event = ContractEvent(
            id=new_temp_id(),
            contract_id=contract_id,
            type=event_type,  # type: ignore[arg-type]
            description=description,
            date=now_iso(),
        )
        res = self._insert(f"event_{event_type}", "events", CONTRACT_EVENTS, event)
        return res.value if res else None

    # ===== Клиенты =====

    def add_client(
        self,
        name: str,
        document: str,
        phone: str = "",
        email: str = "",
        notes: str | None = None,
    ) -> Optional[Client]:
        if not self._ready("add_client"):
            return None
        try:
            client = Client(
                id=new_temp_id(),
                name=V.require_non_empty("name", name),
                document=V.document(document),
                phone=V.phone(phone),
                email=V.email_loose(email),
                notes=V.optional_text(notes),
                created_at=now_iso(),
            )
        except ValueError as exc:
            self._rejected("add_client", exc)
            return None
        res = self._insert("add_client", "clients", CLIENTS, client)
        return res.value if res else None

    def _clean_client_fields(self, fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - set(_CLIENT_FIELDS)
        if unknown:
            raise ValueError("Недопустимые поля клиента: " + ", ".join(sorted(unknown)))
        cleaned: dict[str, Any] = {}
        if "name" in fields:
            cleaned["name"] = V.require_non_empty("name", fields["name"])
        if "document" in fields:
            cleaned["document"] = V.document(fields["document"])
        if "phone" in fields:
            cleaned["phone"] = V.phone(fields["phone"])
        if "email" in fields:
            cleaned["email"] = V.email_loose(fields["email"])
        if "notes" in fields:
            cleaned["notes"] = V.optional_text(fields["notes"])
        return cleaned

    def update_client(self, client_id: str, **fields: Any) -> bool:
        if not self._ready("update_client") or self._find("clients", client_id) is None:
            return False
        try:
            cleaned = self._clean_client_fields(fields)
        except ValueError as exc:
            self._rejected("update_client", exc)
            return False
        if not cleaned:
            return False
        return bool(self._update("update_client", "clients", CLIENTS, client_id, cleaned))

    def delete_client(self, client_id: str) -> bool:
        if not self._ready("delete_client") or self._find("clients", client_id) is None:
            return False
        return bool(self._delete("delete_client", "clients", CLIENTS, client_id))

    # ===== Контракты =====

    def add_contract(
        self,
        client_id: str,
        total_value: Decimal | float | str,
        down_payment: Decimal | float | str = 0,
        installments: int = 1,
    ) -> Optional[Contract]:
        if not self._ready("add_contract"):
            return None
        if self._find("clients", client_id) is None:
            logger.debug("validation_rejected", action="add_contract", error="unknown client")
            return None
        try:
            contract = Contract(
                id=new_temp_id(),
                client_id=client_id,
                total_value=V.positive_amount("total_value", total_value),
                down_payment=V.non_negative_amount("down_payment", down_payment),
                installments=V.installments(installments),
                status="in_progress",
                created_at=now_iso(),
            )
        except ValueError as exc:
            self._rejected("add_contract", exc)
            return None

        res = self._insert("add_contract", "contracts", CONTRACTS, contract)
        if not res:
            return None
        saved = res.value
        assert saved is not None
        self._record_event(saved.id, "created", lifecycle.describe_created(saved.total_value))
        return saved

    def update_contract(self, contract_id: str, **fields: Any) -> bool:
        """
        Правка реквизитов контракта. status и list_id здесь не меняются:
        только через переходы (списки, возврат, порог 50%).
        Смена total_value пишет событие status_change, порог не пересчитывается.
        """
        if not self._ready("update_contract"):
            return False
        old = self._find("contracts", contract_id)
        if old is None:
            return False
        try:
            unknown = set(fields) - set(_CONTRACT_FIELDS)
            if unknown:
                raise ValueError("Недопустимые поля контракта: " + ", ".join(sorted(unknown)))
            cleaned: dict[str, Any] = {}
            if "client_id" in fields:
                if self._find("clients", fields["client_id"]) is None:
                    raise ValueError(f"Клиент {fields['client_id']} не найден")
                cleaned["client_id"] = fields["client_id"]
            if "total_value" in fields:
                cleaned["total_value"] = V.positive_amount("total_value", fields["total_value"])
            if "down_payment" in fields:
                cleaned["down_payment"] = V.non_negative_amount("down_payment", fields["down_payment"])
            if "installments" in fields:
                cleaned["installments"] = V.installments(fields["installments"])
        except ValueError as exc:
            self._rejected("update_contract", exc)
            return False
        if not cleaned:
            return False

        if not self._update("update_contract", "contracts", CONTRACTS, contract_id, cleaned):
            return False
        new_total = cleaned.get("total_value")
        if new_total is not None and new_total != old.total_value:
            self._record_event(
                contract_id,
                "status_change",
                lifecycle.describe_value_change(old.total_value, new_total),
            )
        return True

    def _transition(
        self,
        action: str,
        contract_id: str,
        fields: dict[str, Any],
    ) -> bool:
        return bool(
            self._update(
                action, "contracts", CONTRACTS, contract_id, fields, touches=("contracts", "lists")
            )
        )

    def return_contract(self, contract_id: str, reason: str) -> bool:
        """completed -> returned с причиной; история (list_id, платежи) не трогается."""
        if not self._ready("return_contract"):
            return False
        contract = self._find("contracts", contract_id)
        try:
            why = V.require_non_empty("reason", reason)
        except ValueError as exc:
            self._rejected("return_contract", exc)
            return False
        if not lifecycle.can_return(contract):
            return False
        if not self._transition("return_contract", contract_id, {"status": "returned"}):
            return False
        self._record_event(contract_id, "returned", lifecycle.describe_returned(why))
        return True

    # ===== Платежи =====

    def add_payment(
        self,
        contract_id: str,
        amount: Decimal | float | str,
        date: str | None = None,
        method: str = "",
        notes: str | None = None,
    ) -> Optional[Payment]:
        """
        Записывает платёж. Если вместе с ним оплачено >= 50% total_value,
        контракт in_progress/draft становится eligible.
        """
        if not self._ready("add_payment"):
            return None
        if self._find("contracts", contract_id) is None:
            logger.debug("validation_rejected", action="add_payment", error="unknown contract")
            return None
        try:
            payment = Payment(
                id=new_temp_id(),
                contract_id=contract_id,
                amount=V.positive_amount("amount", amount),
                date=V.iso_date("date", date) if date else now_iso(),
                method=V.optional_text(method) or "",
                notes=V.optional_text(notes),
            )
        except ValueError as exc:
            self._rejected("add_payment", exc)
            return None

        res = self._insert("add_payment", "payments", PAYMENTS, payment)
        if not res:
            return None
        logger.info("payment_recorded", contract_id=contract_id, amount=str(payment.amount))
        self._record_event(contract_id, "payment", lifecycle.describe_payment(payment.amount))

        contract = self._find("contracts", contract_id)
        paid = paid_for(contract_id, self._state["payments"])
        if contract is not None and lifecycle.crosses_eligibility(contract, paid):
            if self._transition("promote_eligible", contract_id, {"status": "eligible"}):
                logger.info("contract_eligible", contract_id=contract_id, paid=str(paid))
                self._record_event(contract_id, "status_change", lifecycle.describe_eligible())
        return res.value

    def delete_payment(self, payment_id: str) -> bool:
        """
        Удаляет платёж. Статус контракта не пересчитывается (eligible остаётся).
        При отказе хранилища коллекция платежей перечитывается целиком.
        """
        if not self._ready("delete_payment") or self._find("payments", payment_id) is None:
            return False
        return bool(
            self._delete(
                "delete_payment", "payments", PAYMENTS, payment_id, rollback=self._resync_payments
            )
        )

    def _resync_payments(self, snap: dict[str, list[Any]]) -> None:
        assert self._repo is not None
        try:
            self._state["payments"][:] = self._repo.load(PAYMENTS, "date")
        except PersistenceError as exc:
            logger.error("payments_resync_failed", error=str(exc))
            self._mutation.restore(snap)

    # ===== Списки отправки =====

    def create_list(self, name: str, date: str | None = None) -> Optional[ShipmentList]:
        if not self._ready("create_list"):
            return None
        try:
            lst = ShipmentList(
                id=new_temp_id(),
                name=V.require_non_empty("name", name),
                status="open",
                created_at=V.iso_date("date", date) if date else now_iso(),
                items_count=0,
            )
        except ValueError as exc:
            self._rejected("create_list", exc)
            return None
        res = self._insert("create_list", "lists", SHIPMENT_LISTS, lst, items_count=0)
        return res.value if res else None

    def update_list(self, list_id: str, name: str) -> bool:
        if not self._ready("update_list") or self._find("lists", list_id) is None:
            return False
        try:
            new_name = V.require_non_empty("name", name)
        except ValueError as exc:
            self._rejected("update_list", exc)
            return False
        return bool(self._update("update_list", "lists", SHIPMENT_LISTS, list_id, {"name": new_name}))

    def delete_list(self, list_id: str) -> bool:
        """
        Удаляет список; все контракты, ссылавшиеся на него, возвращаются
        в eligible без list_id (без событий).
        Расходы, привязанные к списку, теряют linked_list_id (в БД: ON DELETE SET NULL).
        """
        if not self._ready("delete_list") or self._find("lists", list_id) is None:
            return False
        assert self._repo is not None
        repo = self._repo

        def apply() -> None:
            self._state["contracts"][:] = [
                dataclasses.replace(c, status="eligible", list_id=None) if c.list_id == list_id else c
                for c in self._state["contracts"]
            ]
            self._state["expenses"][:] = [
                dataclasses.replace(e, linked_list_id=None) if e.linked_list_id == list_id else e
                for e in self._state["expenses"]
            ]
            self._state["lists"][:] = [x for x in self._state["lists"] if x.id != list_id]

        def send() -> None:
            repo.update_many(CONTRACTS, "list_id", [list_id], {"status": "eligible", "list_id": None})
            repo.delete(SHIPMENT_LISTS, list_id)

        return bool(
            self._mutation.run(
                "delete_list",
                touches=("contracts", "lists", "expenses"),
                apply=apply,
                send=send,
            )
        )

    def add_contract_to_list(self, list_id: str, contract_id: str) -> bool:
        """eligible -> in_list; только для открытого списка, иначе ничего не делаем."""
        if not self._ready("add_contract_to_list"):
            return False
        lst = self._find("lists", list_id)
        contract = self._find("contracts", contract_id)
        if not lifecycle.can_add_to_list(contract, lst):
            return False
        if not self._transition(
            "add_contract_to_list", contract_id, {"status": "in_list", "list_id": list_id}
        ):
            return False
        self._record_event(contract_id, "added_to_list", lifecycle.describe_added(lst.name))
        return True

    def remove_contract_from_list(self, list_id: str, contract_id: str) -> bool:
        """in_list -> eligible; только для открытого списка, иначе ничего не делаем."""
        if not self._ready("remove_contract_from_list"):
            return False
        lst = self._find("lists", list_id)
        contract = self._find("contracts", contract_id)
        if not lifecycle.can_remove_from_list(contract, lst):
            return False
        if not self._transition(
            "remove_contract_from_list", contract_id, {"status": "eligible", "list_id": None}
        ):
            return False
        self._record_event(contract_id, "removed_from_list", lifecycle.describe_removed(lst.name))
        return True

    def complete_list(self, list_id: str) -> bool:
        """
        Список -> completed, все его контракты -> completed одним действием:
        при отказе хранилища откатываются и список, и контракты.
        """
        if not self._ready("complete_list"):
            return False
        lst = self._find("lists", list_id)
        if not lifecycle.can_complete_list(lst):
            return False
        assert self._repo is not None
        repo = self._repo
        ids = [c.id for c in self._state["contracts"] if c.list_id == list_id]

        def apply() -> None:
            self._replace_local("lists", list_id, dataclasses.replace(lst, status="completed"))
            self._state["contracts"][:] = [
                dataclasses.replace(c, status="completed") if c.id in ids else c
                for c in self._state["contracts"]
            ]

        def send() -> None:
            repo.update(SHIPMENT_LISTS, list_id, {"status": "completed"})
            repo.update_many(CONTRACTS, "id", ids, {"status": "completed"})

        if not self._mutation.run(
            "complete_list", touches=("lists", "contracts"), apply=apply, send=send
        ):
            return False
        logger.info("list_completed", list_id=list_id, contracts=len(ids))
        for cid in ids:
            self._record_event(cid, "list_completed", lifecycle.describe_list_completed(lst.name))
        return True

    # ===== Расходы =====

    @staticmethod
    def _normalize_expense(expense: Expense) -> Expense:
        """Привязка к списку: только для 'list', получатель: только для 'withdrawal'."""
        return dataclasses.replace(
            expense,
            linked_list_id=expense.linked_list_id if expense.category == "list" else None,
            withdrawal_person=expense.withdrawal_person if expense.category == "withdrawal" else None,
        )

    def add_expense(
        self,
        category: str,
        amount: Decimal | float | str,
        date: str | None = None,
        description: str | None = None,
        linked_list_id: str | None = None,
        withdrawal_person: str | None = None,
    ) -> Optional[Expense]:
        if not self._ready("add_expense"):
            return None
        try:
            expense = self._normalize_expense(
                Expense(
                    id=new_temp_id(),
                    category=V.expense_category(category),  # type: ignore[arg-type]
                    amount=V.positive_amount("amount", amount),
                    date=V.iso_date("date", date) if date else now_iso(),
                    description=V.optional_text(description),
                    linked_list_id=V.optional_text(linked_list_id),
                    withdrawal_person=V.optional_text(withdrawal_person),
                )
            )
        except ValueError as exc:
            self._rejected("add_expense", exc)
            return None
        res = self._insert("add_expense", "expenses", EXPENSES, expense)
        return res.value if res else None

    def update_expense(self, expense_id: str, **fields: Any) -> bool:
        if not self._ready("update_expense"):
            return False
        current = self._find("expenses", expense_id)
        if current is None:
            return False
        try:
            unknown = set(fields) - set(_EXPENSE_FIELDS)
            if unknown:
                raise ValueError("Недопустимые поля расхода: " + ", ".join(sorted(unknown)))
            cleaned: dict[str, Any] = {}
            if "category" in fields:
                cleaned["category"] = V.expense_category(fields["category"])
            if "amount" in fields:
                cleaned["amount"] = V.positive_amount("amount", fields["amount"])
            if "date" in fields:
                cleaned["date"] = V.iso_date("date", fields["date"])
            for key in ("description", "linked_list_id", "withdrawal_person"):
                if key in fields:
                    cleaned[key] = V.optional_text(fields[key])
        except ValueError as exc:
            self._rejected("update_expense", exc)
            return False
        if not cleaned:
            return False
        merged = self._normalize_expense(dataclasses.replace(current, **cleaned))
        changes = {
            name: getattr(merged, name)
            for name in _EXPENSE_FIELDS
            if name in cleaned or getattr(merged, name) != getattr(current, name)
        }
        return bool(self._update("update_expense", "expenses", EXPENSES, expense_id, changes))

    def delete_expense(self, expense_id: str) -> bool:
        if not self._ready("delete_expense") or self._find("expenses", expense_id) is None:
            return False
        return bool(self._delete("delete_expense", "expenses", EXPENSES, expense_id))

    # ===== Профиль =====

    def update_profile(self, name: str, email: str) -> bool:
        if not self._ready("update_profile"):
            return False
        try:
            new = Profile(name=V.require_non_empty("name", name), email=V.email_loose(email))
        except ValueError as exc:
            self._rejected("update_profile", exc)
            return False
        assert self._repo is not None
        old = self.profile
        self.profile = new
        try:
            self._repo.update_profile(new)
        except PersistenceError as exc:
            self.profile = old
            self._report_failure("update_profile", exc)
            return False
        return True

    # ===== Чтение и производные величины =====

    def find_client(self, client_id: str) -> Optional[Client]:
        return self._find("clients", client_id)

    def find_contract(self, contract_id: str) -> Optional[Contract]:
        return self._find("contracts", contract_id)

    def find_payment(self, payment_id: str) -> Optional[Payment]:
        return self._find("payments", payment_id)

    def find_list(self, list_id: str) -> Optional[ShipmentList]:
        return self._find("lists", list_id)

    def find_expense(self, expense_id: str) -> Optional[Expense]:
        return self._find("expenses", expense_id)

    def get_contract_balance(self, contract_id: str) -> ContractBalance:
        return contract_balance(self._find("contracts", contract_id), self._state["payments"])

    def get_stats(self) -> DashboardStats:
        return dashboard_stats(self._state["contracts"], self._state["payments"])

    def contracts_for_client(self, client_id: str) -> list[Contract]:
        return [c for c in self._state["contracts"] if c.client_id == client_id]

    def client_status(self, client_id: str) -> Optional[str]:
        return lifecycle.client_status(self.contracts_for_client(client_id))

    def contracts_in_list(self, list_id: str) -> list[Contract]:
        return [c for c in self._state["contracts"] if c.list_id == list_id]

    def eligible_contracts(self) -> list[Contract]:
        return [c for c in self._state["contracts"] if c.status == "eligible"]

    def payments_for_contract(self, contract_id: str) -> list[Payment]:
        return [p for p in self._state["payments"] if p.contract_id == contract_id]

    def events_for_contract(self, contract_id: str) -> list[ContractEvent]:
        return [e for e in self._state["events"] if e.contract_id == contract_id]

    def outstanding_contracts(self) -> list[tuple[Contract, ContractBalance]]:
        return outstanding_contracts(self._state["contracts"], self._state["payments"])

    def expense_totals(self) -> ExpenseTotals:
        return expense_totals(self._state["expenses"])
