from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

import structlog

from base_tables_repo import PersistenceError

logger = structlog.get_logger(__name__)

R = TypeVar("R")

Snapshot = dict[str, list[Any]]


@dataclass
class MutationResult(Generic[R]):
    ok: bool
    value: Optional[R] = None
    error: Optional[Exception] = None

    def __bool__(self) -> bool:
        return self.ok


class OptimisticMutation:
    """
    Единый протокол оптимистичного изменения для всех сущностей:

      1. снимок затронутых коллекций;
      2. apply(): меняем память сразу;
      3. send(): запрос в удалённое хранилище;
      4. reconcile(r): при успехе сверяем память с ответом (временный id -> настоящий);
      5. при PersistenceError: rollback(snapshot) (по умолчанию: вернуть снимок)
         и сообщить об ошибке через on_failure. Повторов нет.

    Коллекции в state заменяются только целыми объектами (dataclasses.replace),
    поэтому для снимка достаточно поверхностной копии списков.
    """

    def __init__(
        self,
        state: dict[str, list[Any]],
        *,
        on_change: Callable[[tuple[str, ...]], None] | None = None,
        on_failure: Callable[[str, Exception], None] | None = None,
    ) -> None:
        self._state = state
        self._on_change = on_change
        self._on_failure = on_failure

    def snapshot(self, touches: tuple[str, ...]) -> Snapshot:
        return {name: list(self._state[name]) for name in touches}

    def restore(self, snap: Snapshot) -> None:
        for name, items in snap.items():
            self._state[name][:] = items

    def _changed(self, touches: tuple[str, ...]) -> None:
        if self._on_change is not None:
            self._on_change(touches)

    def run(
        self,
        action: str,
        *,
        touches: tuple[str, ...],
        apply: Callable[[], None],
        send: Callable[[], R],
        reconcile: Callable[[R], None] | None = None,
        rollback: Callable[[Snapshot], None] | None = None,
    ) -> MutationResult[R]:
        snap = self.snapshot(touches)
        apply()
        self._changed(touches)

        try:
            result = send()
        except PersistenceError as exc:
            if rollback is not None:
                rollback(snap)
            else:
                self.restore(snap)
            self._changed(touches)
            logger.warning("mutation_rolled_back", action=action, error=str(exc))
            if self._on_failure is not None:
                self._on_failure(action, exc)
            return MutationResult(ok=False, error=exc)

        if reconcile is not None:
            reconcile(result)
            self._changed(touches)
        logger.debug("mutation_confirmed", action=action)
        return MutationResult(ok=True, value=result)
