# tracker_app.py
from __future__ import annotations

from dataclasses import dataclass

import structlog

from auth_gateway import PgAuth
from db_singleton import PgDB
from domain_store import DomainStore
from local_prefs import LocalPrefs
from logging_setup import setup_logging
from settings import Settings, load_settings
from tables_rep_db import TablesRepDB

logger = structlog.get_logger(__name__)


@dataclass
class TrackerApp:
    """Собранное приложение: настройки, аутентификация, хранилище, локальные настройки UI."""

    settings: Settings
    auth: PgAuth
    store: DomainStore
    prefs: LocalPrefs

    def login(self, email: str, password: str) -> bool:
        return self.auth.sign_in_with_password(email, password)

    def logout(self) -> None:
        self.auth.sign_out()


def build_app(config_path: str | None = None) -> TrackerApp:
    """
    Точка сборки: конфиг -> логирование -> PgDB -> репозиторий строк ->
    аутентификация и доменное хранилище. Смена сессии сразу
    инициализирует или очищает хранилище.
    """
    settings = load_settings(config_path)
    setup_logging(settings.log_level)

    PgDB.init(**settings.db.conn_params())
    tables = TablesRepDB(auto_migrate=settings.db.auto_migrate)
    auth = PgAuth(auto_migrate=settings.db.auto_migrate)
    store = DomainStore(tables)
    auth.on_auth_state_change(store.handle_session_change)

    logger.info("app_ready", dbname=settings.db.dbname, host=settings.db.host)
    return TrackerApp(settings=settings, auth=auth, store=store, prefs=LocalPrefs(settings.prefs_path))


if __name__ == "__main__":
    app = build_app()

    email, password = "demo@limpanome.com.br", "121212"
    if not app.login(email, password):
        try:
            app.auth.create_user(email, password, name="Demo")
        except ValueError as e:
            print("Пользователь уже есть:", e)
        app.login(email, password)

    store = app.store
    print("Сессия:", store.session)

    client = store.add_client("Maria Souza", "12345678901", phone="(11) 98888-7777")
    if client:
        contract = store.add_contract(client.id, 1000, down_payment=100, installments=3)
        if contract:
            store.add_payment(contract.id, 300, method="pix")
            store.add_payment(contract.id, 250, method="pix")
            print("Статус:", store.find_contract(contract.id).status)
            print("Баланс:", store.get_contract_balance(contract.id))

            lst = store.create_list("Lista Demo")
            if lst:
                store.add_contract_to_list(lst.id, contract.id)
                store.complete_list(lst.id)
            for ev in store.events_for_contract(contract.id):
                print(" -", ev.type, ev.description)

    print("Дашборд:", store.get_stats())
    print("Расходы:", store.expense_totals())
    app.logout()
