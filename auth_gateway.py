from __future__ import annotations

from typing import Callable, Optional

import psycopg2
import structlog

from db_singleton import PgDB
from mvc_observer import Subject
from tracker_domain import Session
from validators import Validator

logger = structlog.get_logger(__name__)

SessionCallback = Callable[[str, Optional[Session]], None]


class PgAuth(Subject):
    """
    Аутентификация по email/паролю поверх PostgreSQL (pgcrypto, bcrypt-хеши).
    Хранит текущую сессию и рассылает события смены сессии:
      - "SIGNED_IN"   payload: Session
      - "SIGNED_OUT"  payload: None
    """

    def __init__(self, *, auto_migrate: bool = True) -> None:
        super().__init__()
        self._session: Session | None = None
        if auto_migrate:
            self.ensure_schema()

    def ensure_schema(self) -> None:
        db = PgDB.get()
        db.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")
        db.execute(
            """
            CREATE TABLE IF NOT EXISTS app_users (
                id             UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                email          TEXT NOT NULL UNIQUE,
                password_hash  TEXT NOT NULL,
                created_at     TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """
        )

    # ===== Сессия =====

    def get_session(self) -> Session | None:
        return self._session

    def on_auth_state_change(self, callback: SessionCallback) -> Callable[[], None]:
        """Подписка на смену сессии; возвращает функцию отписки."""
        return self.subscribe(callback)

    def sign_in_with_password(self, email: str, password: str) -> bool:
        """
        True: вход выполнен. Неверный пароль, неизвестный пользователь и
        сбой БД одинаково дают False.
        """
        sql = """
        SELECT id, email
        FROM app_users
        WHERE lower(email) = lower(%s)
          AND password_hash = crypt(%s, password_hash);
        """
        try:
            row = PgDB.get().fetch_one(sql, (str(email).strip(), str(password)))
        except psycopg2.Error as exc:
            logger.error("login_failed", email=email, error=str(exc))
            return False
        if not row:
            logger.info("login_failed", email=email)
            return False

        self._session = Session(user_id=str(row["id"]), email=str(row["email"]))
        logger.info("login_ok", user_id=self._session.user_id)
        self.notify("SIGNED_IN", self._session)
        return True

    def sign_out(self) -> None:
        if self._session is None:
            return
        logger.info("logout", user_id=self._session.user_id)
        self._session = None
        self.notify("SIGNED_OUT", None)

    # ===== Служебное: регистрация пользователя =====

    def create_user(self, email: str, password: str, *, name: str = "") -> str:
        """
        Создаёт пользователя (пароль хешируется на стороне БД) и его профиль.
        Возвращает id. Дубликат email: ValueError.
        """
        em = Validator.require_non_empty("email", email)
        pw = Validator.new_password(password)
        db = PgDB.get()
        try:
            row = db.execute_returning(
                "INSERT INTO app_users (email, password_hash) "
                "VALUES (%s, crypt(%s, gen_salt('bf'))) RETURNING id;",
                (em, pw),
            )
        except psycopg2.IntegrityError as exc:
            raise ValueError(f"DuplicateUser: пользователь {em} уже существует") from exc
        if not row or "id" not in row:
            raise RuntimeError("INSERT вернул пустой результат (RETURNING id).")
        user_id = str(row["id"])
        db.execute(
            "INSERT INTO profiles (id, name, email) VALUES (%s, %s, %s) ON CONFLICT (id) DO NOTHING;",
            (user_id, name or em.split("@")[0], em),
        )
        return user_id
