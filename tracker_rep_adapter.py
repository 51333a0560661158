from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

from base_tables_repo import BaseTablesRepo
from row_mapping import EntityMapper
from tracker_domain import Profile

E = TypeVar("E")


class TrackerRepAdapter:
    """
    Адаптер: делает любой BaseTablesRepo (строки, имена колонок) пригодным
    для доменного хранилища (dataclass'ы, имена атрибутов).
    Все операции привязаны к одному владельцу: user_id входит в WHERE
    каждого update/delete/select (профиль адресуется по id = user_id).
    PersistenceError от репозитория строк пробрасывается как есть.
    """

    def __init__(self, tables: BaseTablesRepo, user_id: str) -> None:
        self._tables = tables
        self.user_id = user_id

    def _owner(self) -> dict[str, Any]:
        return {"user_id": self.user_id}

    def insert(self, mapper: EntityMapper[E], entity: E, **extra: Any) -> E:
        row = self._tables.insert(mapper.table, mapper.to_row(entity, user_id=self.user_id))
        return mapper.from_row(row, **extra)

    def update(self, mapper: EntityMapper[Any], entity_id: str, fields: dict[str, Any]) -> None:
        self._tables.update(
            mapper.table, entity_id, mapper.fields_to_row(fields), filters=self._owner()
        )

    def update_many(
        self,
        mapper: EntityMapper[Any],
        attr: str,
        values: Iterable[Any],
        fields: dict[str, Any],
    ) -> int:
        """Обновить все записи, у которых attr входит в values."""
        column = "id" if attr == "id" else mapper.columns[attr]
        return self._tables.update_where(
            mapper.table, column, values, mapper.fields_to_row(fields), filters=self._owner()
        )

    def delete(self, mapper: EntityMapper[Any], entity_id: str) -> None:
        self._tables.delete(mapper.table, entity_id, filters=self._owner())

    def load(self, mapper: EntityMapper[E], order_by: str, **extra: Any) -> list[E]:
        """Все записи владельца, новые сверху."""
        rows = self._tables.select(
            mapper.table,
            filters=self._owner(),
            order_by=mapper.columns[order_by],
            descending=True,
        )
        return [mapper.from_row(r, **extra) for r in rows]

    # ---------- профиль ----------

    def get_profile(self) -> Profile | None:
        rows = self._tables.select("profiles", filters={"id": self.user_id})
        if not rows:
            return None
        r = rows[0]
        return Profile(name=r.get("name") or "", email=r.get("email") or "")

    def update_profile(self, profile: Profile) -> None:
        self._tables.update("profiles", self.user_id, {"name": profile.name, "email": profile.email})
