# local_prefs.py
from __future__ import annotations

from typing import Any

import yaml  # type: ignore[import-untyped]

from validators import Validator

DEFAULT_PASSWORD = "121212"


class LocalPrefs:
    """
    Локальное состояние интерфейса (не доменные данные): тёмная тема и
    закешированный пароль. Хранится в YAML-файле, аналог localStorage.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def _read(self) -> dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"YAML {self.path} должен быть объектом (mapping).")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False, default_flow_style=False)

    def _set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    # ===== Тема =====

    @property
    def dark_mode(self) -> bool:
        return self._read().get("dark_mode") is True

    def toggle_dark_mode(self) -> bool:
        value = not self.dark_mode
        self._set("dark_mode", value)
        return value

    # ===== Пароль =====

    @property
    def password(self) -> str:
        value = self._read().get("password")
        return str(value) if value else DEFAULT_PASSWORD

    def update_password(self, new_password: str, confirm: str | None = None) -> None:
        """Минимум 4 символа; при наличии confirm пароли должны совпадать."""
        self._set("password", Validator.new_password(new_password, confirm))
