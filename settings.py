from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml  # type: ignore[import-untyped]

DEFAULT_CONFIG_PATH = "tracker.yaml"


@dataclass
class DbSettings:
    host: str = "127.0.0.1"
    port: int = 5432
    dbname: str = "limpa_nome"
    user: str = "postgres"
    password: str = ""
    auto_migrate: bool = True

    def conn_params(self) -> dict[str, Any]:
        """Параметры для psycopg2.connect (без auto_migrate)."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.dbname,
            "user": self.user,
            "password": self.password,
        }


@dataclass
class Settings:
    db: DbSettings = field(default_factory=DbSettings)
    log_level: str = "INFO"
    prefs_path: str = "tracker_prefs.yaml"


# Переменные окружения перекрывают значения из файла
_ENV_DB = {
    "TRACKER_DB_HOST": ("host", str),
    "TRACKER_DB_PORT": ("port", int),
    "TRACKER_DB_NAME": ("dbname", str),
    "TRACKER_DB_USER": ("user", str),
    "TRACKER_DB_PASSWORD": ("password", str),
}


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Конфигурация {path} должна быть объектом (mapping), а не списком/значением.")
    return data


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_settings(path: str | None = None, env: Mapping[str, str] | None = None) -> Settings:
    """
    Читает YAML-конфиг (path -> TRACKER_CONFIG -> tracker.yaml), затем
    применяет переменные окружения. Отсутствующий файл = значения по умолчанию.
    """
    env = os.environ if env is None else env
    cfg_path = path or env.get("TRACKER_CONFIG") or DEFAULT_CONFIG_PATH
    raw = _read_yaml(cfg_path)

    db_raw = raw.get("db") or {}
    if not isinstance(db_raw, dict):
        raise ValueError("Секция 'db' в конфигурации должна быть объектом.")

    db = DbSettings()
    for key in ("host", "dbname", "user", "password"):
        if key in db_raw and db_raw[key] is not None:
            setattr(db, key, str(db_raw[key]))
    if "port" in db_raw and db_raw["port"] is not None:
        db.port = int(db_raw["port"])
    if "auto_migrate" in db_raw:
        db.auto_migrate = _as_bool(db_raw["auto_migrate"])

    for var, (attr, cast) in _ENV_DB.items():
        if env.get(var):
            setattr(db, attr, cast(env[var]))

    settings = Settings(db=db)
    if raw.get("log_level"):
        settings.log_level = str(raw["log_level"]).upper()
    if raw.get("prefs_path"):
        settings.prefs_path = str(raw["prefs_path"])
    if env.get("TRACKER_LOG_LEVEL"):
        settings.log_level = env["TRACKER_LOG_LEVEL"].upper()
    return settings
