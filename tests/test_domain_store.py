"""
DomainStore: действия, переходы статусов контракта, откат изменений и жизненный цикл сессии.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from domain_store import DomainStore
from tracker_domain import Session, is_temp_id


def _failures(notifications):
    return [p for e, p in notifications if e == "mutation_failed"]


class TestLifecycle:

    def test_without_session_every_action_is_a_noop(self, tables):
        store = DomainStore(tables)
        assert store.add_client("Ana", "123") is None
        assert store.create_list("Lote") is None
        assert store.add_expense("traffic", 10) is None
        assert store.update_profile("Ana", "ana@x.com") is False
        assert tables.calls == []

    def test_initialize_loads_only_own_rows_newest_first(self, tables, session):
        tables.rows["clients"] = [
            {"id": "c1", "user_id": "user-1", "name": "Old", "document": "1", "phone": "",
             "email": "", "created_at": "2024-01-01T00:00:00"},
            {"id": "c2", "user_id": "user-1", "name": "New", "document": "2", "phone": "",
             "email": "", "created_at": "2024-06-01T00:00:00"},
            {"id": "c3", "user_id": "other", "name": "Alien", "document": "3", "phone": "",
             "email": "", "created_at": "2024-07-01T00:00:00"},
        ]
        tables.rows["profiles"] = [{"id": "user-1", "name": "Ana Paula", "email": "ana@x.com"}]
        store = DomainStore(tables)
        store.initialize(session)

        assert [c.name for c in store.clients] == ["New", "Old"]
        assert store.profile.name == "Ana Paula"

    def test_profile_defaults_to_email_prefix(self, store):
        assert store.profile.name == "ana"
        assert store.profile.email == "ana@limpanome.com.br"

    def test_failed_table_load_is_reported_and_others_still_load(self, tables, session):
        tables.rows["shipment_lists"] = [
            {"id": "l1", "user_id": "user-1", "name": "Lote", "status": "open",
             "created_at": "2024-01-01"},
        ]
        tables.fail("clients", "select")
        store = DomainStore(tables)
        seen = []
        store.subscribe(lambda e, p: seen.append((e, p)))
        store.initialize(session)

        assert store.clients == []
        assert [lst.name for lst in store.lists] == ["Lote"]
        assert [p["action"] for p in _failures(seen)] == ["load_clients"]

    def test_session_change_routes_to_initialize_and_teardown(self, tables, session):
        store = DomainStore(tables)
        store.handle_session_change("SIGNED_IN", session)
        assert store.is_authenticated
        store.add_client("Ana", "123")

        store.handle_session_change("SIGNED_OUT", None)
        assert not store.is_authenticated
        assert store.clients == []
        assert store.profile.name == ""

    def test_same_session_does_not_reload(self, store, session, tables):
        before = len(tables.calls)
        store.handle_session_change("TOKEN_REFRESHED", Session(session.user_id, session.email))
        assert len(tables.calls) == before


class TestClients:

    def test_add_client_reconciles_temp_id(self, store, tables):
        client = store.add_client("  Maria ", "12345678901", email="maria@x.com")
        assert client is not None
        assert not is_temp_id(client.id)
        assert client.name == "Maria"
        assert client.document == "123.456.789-01"
        assert [c.id for c in store.clients] == [client.id]
        assert tables.rows["clients"][0]["user_id"] == "user-1"

    @pytest.mark.parametrize("name,document,email", [
        ("", "123", ""),
        ("Ana", "", ""),
        ("Ana", "123", "not-an-email"),
    ])
    def test_invalid_input_is_rejected_without_remote_call(self, store, tables, name, document, email):
        assert store.add_client(name, document, email=email) is None
        assert store.clients == []
        assert ("clients", "insert") not in tables.calls

    def test_failed_insert_removes_the_optimistic_row(self, store, tables, notifications):
        tables.fail("clients", "insert")
        assert store.add_client("Ana", "123") is None
        assert store.clients == []
        assert _failures(notifications)[0]["action"] == "add_client"

    def test_update_client_and_rollback(self, store, tables, client, notifications):
        assert store.update_client(client.id, phone="11 1111-1111")
        assert store.find_client(client.id).phone == "11 1111-1111"

        tables.fail("clients", "update")
        assert store.update_client(client.id, name="Outro") is False
        assert store.find_client(client.id).name == "Maria Souza"
        assert _failures(notifications)[-1]["action"] == "update_client"

    def test_update_client_rejects_unknown_fields(self, store, client):
        assert store.update_client(client.id, created_at="2020-01-01") is False

    def test_delete_client_restores_on_failure(self, store, tables, client):
        tables.fail("clients", "delete")
        assert store.delete_client(client.id) is False
        assert store.find_client(client.id) is not None
        tables.heal()
        assert store.delete_client(client.id)
        assert store.find_client(client.id) is None


class TestContracts:

    def test_new_contract_is_in_progress_with_created_event(self, store, contract):
        assert contract.status == "in_progress"
        assert contract.list_id is None
        events = store.events_for_contract(contract.id)
        assert [e.type for e in events] == ["created"]
        assert events[0].description == "Contrato criado no valor de R$ 1.000,00"

    def test_contract_requires_known_client_and_positive_total(self, store, client):
        assert store.add_contract("missing", 1000) is None
        assert store.add_contract(client.id, 0) is None
        assert store.add_contract(client.id, 1000, installments=0) is None
        assert store.contracts == []

    def test_failed_contract_insert_writes_no_event(self, store, tables, client):
        tables.fail("contracts", "insert")
        assert store.add_contract(client.id, 1000) is None
        assert store.events == []

    def test_value_change_appends_status_change_event(self, store, contract):
        assert store.update_contract(contract.id, total_value=1500)
        assert store.find_contract(contract.id).total_value == 1500
        last = store.events_for_contract(contract.id)[0]
        assert last.type == "status_change"
        assert last.description == "Valor do contrato alterado de R$ 1.000,00 para R$ 1.500,00"

    def test_value_change_does_not_rerun_eligibility(self, store, contract):
        store.add_payment(contract.id, 400)
        assert store.update_contract(contract.id, total_value=600)
        assert store.find_contract(contract.id).status == "in_progress"

    def test_status_and_list_cannot_be_edited_directly(self, store, contract):
        assert store.update_contract(contract.id, status="completed") is False
        assert store.update_contract(contract.id, list_id="x") is False
        assert store.find_contract(contract.id).status == "in_progress"

    def test_installments_change_writes_no_event(self, store, contract):
        assert store.update_contract(contract.id, installments=6)
        assert [e.type for e in store.events_for_contract(contract.id)] == ["created"]


class TestPaymentsAndEligibility:

    def test_half_paid_contract_becomes_eligible(self, store, client):
        contract = store.add_contract(client.id, 1000, down_payment=0)
        payment = store.add_payment(contract.id, 500)

        assert payment is not None
        bal = store.get_contract_balance(contract.id)
        assert (bal.paid, bal.remaining, bal.percentage) == (500, 500, 50)
        assert store.find_contract(contract.id).status == "eligible"
        types = [e.type for e in store.events_for_contract(contract.id)]
        assert types == ["status_change", "payment", "created"]

    def test_exact_half_in_cents_promotes(self, store, client):
        contract = store.add_contract(client.id, "639.94")
        store.add_payment(contract.id, "300.07")
        assert store.find_contract(contract.id).status == "in_progress"
        store.add_payment(contract.id, 19.90)

        assert store.find_contract(contract.id).status == "eligible"
        bal = store.get_contract_balance(contract.id)
        assert (bal.paid, bal.remaining, bal.percentage) == (Decimal("319.97"), Decimal("319.97"), 50)

    def test_cent_payments_keep_balance_exact(self, store, client):
        contract = store.add_contract(client.id, "1000.33")
        store.add_payment(contract.id, 300.04)
        store.add_payment(contract.id, 0.10)
        bal = store.get_contract_balance(contract.id)
        assert bal.paid + bal.remaining == Decimal("1000.33")
        assert bal.remaining == Decimal("700.19")

    def test_below_threshold_stays_in_progress(self, store, contract):
        store.add_payment(contract.id, 499.99)
        assert store.find_contract(contract.id).status == "in_progress"

    def test_cumulative_payments_cross_threshold(self, store, contract):
        store.add_payment(contract.id, 300)
        store.add_payment(contract.id, 250)
        assert store.find_contract(contract.id).status == "eligible"
        promotions = [e for e in store.events_for_contract(contract.id) if e.type == "status_change"]
        assert len(promotions) == 1

    def test_deleting_payment_never_reverts_eligibility(self, store, contract):
        payment = store.add_payment(contract.id, 600)
        assert store.delete_payment(payment.id)
        assert store.payments_for_contract(contract.id) == []
        assert store.find_contract(contract.id).status == "eligible"
        bal = store.get_contract_balance(contract.id)
        assert bal.paid + bal.remaining == 1000

    def test_overpayment_percentage_is_not_clamped(self, store, contract):
        store.add_payment(contract.id, 1500)
        bal = store.get_contract_balance(contract.id)
        assert bal.percentage == 150
        assert bal.remaining == -500

    def test_failed_payment_is_rolled_back_without_promotion(self, store, tables, contract, notifications):
        tables.fail("payments", "insert")
        assert store.add_payment(contract.id, 800) is None
        assert store.payments == []
        assert store.find_contract(contract.id).status == "in_progress"
        assert _failures(notifications)[-1]["action"] == "add_payment"

    def test_failed_payment_delete_resyncs_from_storage(self, store, tables, contract):
        payment = store.add_payment(contract.id, 100)
        tables.fail("payments", "delete")
        assert store.delete_payment(payment.id) is False
        assert [p.id for p in store.payments] == [payment.id]

    def test_failed_resync_falls_back_to_snapshot(self, store, tables, contract):
        payment = store.add_payment(contract.id, 100)
        tables.fail("payments", "delete")
        tables.fail("payments", "select")
        assert store.delete_payment(payment.id) is False
        assert [p.id for p in store.payments] == [payment.id]

    def test_event_failure_does_not_undo_payment(self, store, tables, contract, notifications):
        tables.fail("contract_events", "insert")
        payment = store.add_payment(contract.id, 100)
        assert payment is not None
        assert store.payments_for_contract(contract.id) == [payment]
        assert _failures(notifications)[-1]["action"] == "event_payment"

    def test_invalid_amount_is_rejected(self, store, contract):
        assert store.add_payment(contract.id, 0) is None
        assert store.add_payment(contract.id, -5) is None
        assert store.add_payment("missing", 10) is None
        assert store.payments == []


@pytest.fixture
def eligible(store, contract):
    store.add_payment(contract.id, 500)
    return store.find_contract(contract.id)


class TestShipmentLists:

    def test_lote_a_scenario(self, store, eligible):
        lst = store.create_list("Lote A")
        assert lst.status == "open"

        assert store.add_contract_to_list(lst.id, eligible.id)
        x = store.find_contract(eligible.id)
        assert (x.status, x.list_id) == ("in_list", lst.id)
        assert store.find_list(lst.id).items_count == 1

        assert store.complete_list(lst.id)
        assert store.find_contract(eligible.id).status == "completed"
        assert store.find_list(lst.id).status == "completed"
        assert store.find_contract(eligible.id).list_id == lst.id
        last = store.events_for_contract(eligible.id)[0]
        assert (last.type, last.description) == ("list_completed", "Processo concluído via lista: Lote A")

    def test_only_eligible_contracts_can_be_added(self, store, contract):
        lst = store.create_list("Lote")
        assert store.add_contract_to_list(lst.id, contract.id) is False
        assert store.find_contract(contract.id).status == "in_progress"

    def test_closed_list_cannot_be_edited(self, store, eligible, client):
        lst = store.create_list("Lote")
        store.add_contract_to_list(lst.id, eligible.id)
        store.complete_list(lst.id)

        other = store.add_contract(client.id, 100)
        store.add_payment(other.id, 100)
        assert store.add_contract_to_list(lst.id, other.id) is False
        assert store.remove_contract_from_list(lst.id, eligible.id) is False
        assert store.complete_list(lst.id) is False

    def test_remove_from_list_returns_to_eligible(self, store, eligible):
        lst = store.create_list("Lote")
        store.add_contract_to_list(lst.id, eligible.id)
        assert store.remove_contract_from_list(lst.id, eligible.id)
        c = store.find_contract(eligible.id)
        assert (c.status, c.list_id) == ("eligible", None)
        assert store.find_list(lst.id).items_count == 0
        assert store.events_for_contract(eligible.id)[0].description == "Removido da lista: Lote"

    def test_complete_list_rolls_back_list_and_contracts(self, store, tables, eligible, notifications):
        lst = store.create_list("Lote")
        store.add_contract_to_list(lst.id, eligible.id)
        tables.fail("contracts", "update")

        assert store.complete_list(lst.id) is False
        assert store.find_list(lst.id).status == "open"
        assert store.find_contract(eligible.id).status == "in_list"
        assert _failures(notifications)[-1]["action"] == "complete_list"

    def test_delete_list_resets_contracts_without_events(self, store, eligible):
        lst = store.create_list("Lote")
        store.add_contract_to_list(lst.id, eligible.id)
        events_before = len(store.events)

        assert store.delete_list(lst.id)
        c = store.find_contract(eligible.id)
        assert (c.status, c.list_id) == ("eligible", None)
        assert store.find_list(lst.id) is None
        assert len(store.events) == events_before

    def test_delete_list_unlinks_expenses(self, store):
        lst = store.create_list("Lote")
        linked = store.add_expense("list", 50, linked_list_id=lst.id)
        other = store.add_expense("traffic", 10)

        assert store.delete_list(lst.id)
        assert store.find_expense(linked.id).linked_list_id is None
        assert store.find_expense(other.id) == other

    def test_delete_list_failure_keeps_expense_link(self, store, tables):
        lst = store.create_list("Lote")
        linked = store.add_expense("list", 50, linked_list_id=lst.id)
        tables.fail("shipment_lists", "delete")

        assert store.delete_list(lst.id) is False
        assert store.find_expense(linked.id).linked_list_id == lst.id

    def test_delete_list_failure_restores_both(self, store, tables, eligible):
        lst = store.create_list("Lote")
        store.add_contract_to_list(lst.id, eligible.id)
        tables.fail("shipment_lists", "delete")

        assert store.delete_list(lst.id) is False
        assert store.find_list(lst.id).items_count == 1
        assert store.find_contract(eligible.id).status == "in_list"

    def test_failed_add_to_list_keeps_count(self, store, tables, eligible):
        lst = store.create_list("Lote")
        tables.fail("contracts", "update")
        assert store.add_contract_to_list(lst.id, eligible.id) is False
        assert store.find_list(lst.id).items_count == 0
        assert store.find_contract(eligible.id).status == "eligible"

    def test_rename_list(self, store):
        lst = store.create_list("Lote", date="2024-03-01")
        assert lst.created_at == "2024-03-01"
        assert store.update_list(lst.id, "Lote B")
        assert store.find_list(lst.id).name == "Lote B"
        assert store.update_list(lst.id, "  ") is False


class TestReturns:

    def test_completed_contract_can_be_returned_with_reason(self, store, eligible):
        lst = store.create_list("Lote")
        store.add_contract_to_list(lst.id, eligible.id)
        store.complete_list(lst.id)

        assert store.return_contract(eligible.id, "") is False
        assert store.return_contract(eligible.id, "Nome voltou ao SPC")
        assert store.find_contract(eligible.id).status == "returned"
        assert store.events_for_contract(eligible.id)[0].description == "Retorno registrado: Nome voltou ao SPC"

    def test_only_completed_contracts_return(self, store, eligible):
        assert store.return_contract(eligible.id, "motivo") is False


class TestExpenses:

    def test_category_specific_fields_are_dropped(self, store):
        lst = store.create_list("Lote")
        e1 = store.add_expense("list", 50, linked_list_id=lst.id, withdrawal_person="João")
        e2 = store.add_expense("withdrawal", 70, linked_list_id=lst.id, withdrawal_person="João")
        assert (e1.linked_list_id, e1.withdrawal_person) == (lst.id, None)
        assert (e2.linked_list_id, e2.withdrawal_person) == (None, "João")

    def test_invalid_category_is_rejected(self, store):
        assert store.add_expense("food", 10) is None

    def test_changing_category_clears_linked_fields(self, store, tables):
        lst = store.create_list("Lote")
        e = store.add_expense("list", 50, linked_list_id=lst.id)
        assert store.update_expense(e.id, category="traffic")
        assert store.find_expense(e.id).linked_list_id is None
        assert tables.rows["expenses"][0]["linked_list_id"] is None

    def test_totals_and_delete(self, store):
        store.add_expense("traffic", 100)
        e = store.add_expense("other", 20)
        assert store.expense_totals().total == 120
        assert store.delete_expense(e.id)
        totals = store.expense_totals()
        assert (totals.total, totals.traffic, totals.other) == (100, 100, 0)


class TestReadsAndProfile:

    def test_stats(self, store, client, eligible):
        store.add_contract(client.id, 200)
        stats = store.get_stats()
        assert stats.active_contracts == 2
        assert stats.eligible_contracts == 1
        assert stats.total_revenue == 500
        assert stats.outstanding_balance == 700

    def test_client_status_and_outstanding(self, store, client, eligible):
        store.add_contract(client.id, 2000)
        assert store.client_status(client.id) == "eligible"
        assert store.client_status("missing") is None
        remaining = [b.remaining for _, b in store.outstanding_contracts()]
        assert remaining == [2000, 500]

    def test_unknown_contract_balance_is_zero(self, store):
        bal = store.get_contract_balance("missing")
        assert (bal.paid, bal.remaining, bal.percentage) == (0, 0, 0)

    def test_update_profile(self, tables, session):
        tables.rows["profiles"] = [{"id": "user-1", "name": "Ana", "email": "ana@x.com"}]
        store = DomainStore(tables)
        store.initialize(session)
        assert store.update_profile("Ana Paula", "ana.paula@x.com")
        assert tables.rows["profiles"][0]["name"] == "Ana Paula"

        tables.fail("profiles", "update")
        assert store.update_profile("Outra", "o@x.com") is False
        assert store.profile.name == "Ana Paula"
