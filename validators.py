import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from tracker_domain import EXPENSE_CATEGORIES


class Validator:
    """Общий класс валидации для полей клиентов, контрактов, платежей и расходов."""

    # Строки

    @staticmethod
    def require_non_empty(name: str, value: str | None) -> str:
        """Требуем, чтобы не было пустых полей."""
        v = "" if value is None else str(value).strip()
        if not v:
            raise ValueError(f"Поле '{name}' обязательно и не может быть пустым.")
        return v

    @staticmethod
    def optional_text(value: str | None) -> str | None:
        if value is None:
            return None
        v = str(value).strip()
        return v or None

    # Числа (денежные суммы: Decimal, как NUMERIC в БД)

    @staticmethod
    def _decimal(name: str, value: Decimal | float | int | str) -> Decimal:
        try:
            v = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError(f"Поле '{name}' должно быть числом.") from None
        if not v.is_finite():
            raise ValueError(f"Поле '{name}' должно быть числом.")
        return v

    @staticmethod
    def positive_amount(name: str, value: Decimal | float | int | str | None) -> Decimal:
        """Сумма должна быть числом строго больше нуля."""
        if value is None or isinstance(value, bool):
            raise ValueError(f"Поле '{name}' обязательно.")
        v = Validator._decimal(name, value)
        if v <= 0:
            raise ValueError(f"Поле '{name}' должно быть больше нуля.")
        return v

    @staticmethod
    def non_negative_amount(name: str, value: Decimal | float | int | str | None) -> Decimal:
        if value is None or value == "":
            return Decimal("0")
        if isinstance(value, bool):
            raise ValueError(f"Поле '{name}' должно быть числом.")
        v = Validator._decimal(name, value)
        if v < 0:
            raise ValueError(f"Поле '{name}' не может быть отрицательным.")
        return v

    @staticmethod
    def installments(value: int | str | None) -> int:
        """Количество взносов: целое число от 1."""
        if value is None or isinstance(value, bool):
            raise ValueError("Поле 'installments' обязательно.")
        try:
            v = int(value)
        except (TypeError, ValueError):
            raise ValueError("Поле 'installments' должно быть целым числом.") from None
        if isinstance(value, float) and value != v:
            raise ValueError("Поле 'installments' должно быть целым числом.")
        if v < 1:
            raise ValueError("Поле 'installments' должно быть не меньше 1.")
        return v

    # Документы

    @staticmethod
    def _digits(raw: str) -> str:
        return re.sub(r"\D", "", str(raw))

    @staticmethod
    def document(value: str | None) -> str:
        """
        CPF или CNPJ. Оставляем только цифры (максимум 14) и накладываем маску:
          11 и меньше цифр -> CPF  000.000.000-00
          больше 11        -> CNPJ 00.000.000/0000-00
        Неполные номера допускаем: маска применяется к тому, что есть.
        """
        v = Validator.require_non_empty("document", value)
        digits = Validator._digits(v)[:14]
        if not digits:
            raise ValueError("Поле 'document' должно содержать цифры CPF или CNPJ.")
        if len(digits) <= 11:
            out = re.sub(r"(\d{3})(\d)", r"\1.\2", digits, count=1)
            out = re.sub(r"(\d{3})(\d)", r"\1.\2", out, count=1)
            out = re.sub(r"(\d{3})(\d{1,2})$", r"\1-\2", out, count=1)
            return out
        out = re.sub(r"^(\d{2})(\d)", r"\1.\2", digits, count=1)
        out = re.sub(r"^(\d{2})\.(\d{3})(\d)", r"\1.\2.\3", out, count=1)
        out = re.sub(r"\.(\d{3})(\d)", r".\1/\2", out, count=1)
        out = re.sub(r"(\d{4})(\d)", r"\1-\2", out, count=1)
        return out

    @staticmethod
    def phone(value: str | None) -> str:
        """Телефон свободного формата; пустой допускается (храним как '')."""
        if value is None:
            return ""
        return re.sub(r"\s+", " ", str(value)).strip()

    @staticmethod
    def email_loose(value: str | None) -> str:
        """
        Email не обязателен, но если задан: ровно один '@' и точка в домене.
        """
        if value is None or not str(value).strip():
            return ""
        v = str(value).strip()
        if v.count("@") != 1:
            raise ValueError("Поле 'email' должно содержать ровно один символ '@'.")
        local, domain = v.split("@", 1)
        if not local:
            raise ValueError("Локальная часть email не может быть пустой.")
        if domain.startswith(".") or domain.endswith(".") or "." not in domain:
            raise ValueError("Домен email должен содержать точку (например, email.com).")
        if ".." in v:
            raise ValueError("Email не может содержать две точки подряд.")
        return v

    # Даты и перечисления

    @staticmethod
    def iso_date(name: str, value: str | date | None) -> str:
        """Дата/время в ISO-8601. date/datetime приводим к строке."""
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, date):
            return value.isoformat()
        v = Validator.require_non_empty(name, value)
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(
                f"Поле '{name}' должно быть датой ISO-8601, например '2024-01-31'."
            ) from None
        return v

    @staticmethod
    def expense_category(value: str | None) -> str:
        v = Validator.require_non_empty("category", value).lower()
        if v not in EXPENSE_CATEGORIES:
            raise ValueError(
                "Поле 'category' должно быть одним из: " + ", ".join(EXPENSE_CATEGORIES)
            )
        return v

    @staticmethod
    def new_password(value: str | None, confirm: str | None = None) -> str:
        """Пароль минимум из 4 символов; при наличии confirm: должны совпадать."""
        v = "" if value is None else str(value)
        if confirm is not None and v != confirm:
            raise ValueError("Пароли не совпадают.")
        if len(v) < 4:
            raise ValueError("Пароль должен содержать минимум 4 символа.")
        return v
