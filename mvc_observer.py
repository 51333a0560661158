# mvc_observer.py
from __future__ import annotations

from typing import Any, Callable, Protocol


class Observer(Protocol):
    def update(self, event: str, payload: Any) -> None: ...


class _CallbackObserver:
    """Обёртка, чтобы подписываться обычной функцией (event, payload)."""

    def __init__(self, fn: Callable[[str, Any], None]) -> None:
        self.fn = fn

    def update(self, event: str, payload: Any) -> None:
        self.fn(event, payload)


class Subject:
    def __init__(self) -> None:
        self._observers: list[Observer] = []

    def attach(self, obs: Observer) -> None:
        if obs not in self._observers:
            self._observers.append(obs)

    def detach(self, obs: Observer) -> None:
        if obs in self._observers:
            self._observers.remove(obs)

    def subscribe(self, fn: Callable[[str, Any], None]) -> Callable[[], None]:
        """Подписать функцию; возвращает функцию отписки."""
        obs = _CallbackObserver(fn)
        self.attach(obs)
        return lambda: self.detach(obs)

    def notify(self, event: str, payload: Any = None) -> None:
        for obs in list(self._observers):
            obs.update(event, payload)
