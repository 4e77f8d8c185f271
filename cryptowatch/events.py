import logging
from dataclasses import dataclass
from typing import Any, Callable, List

logger = logging.getLogger("events")


@dataclass(frozen=True)
class StateChange:
    """
    One observable field of a service changed.

    `value` is a snapshot: lists are copied before publishing, so
    subscribers may keep it around.
    """

    source: str
    field: str
    value: Any


Subscriber = Callable[[StateChange], None]


class Observable:
    """Minimal observer registry shared by the services."""

    source_name = "observable"

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register `callback` for every state change. Returns a function that
        removes the registration; calling it twice is harmless.
        """

        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, field: str, value: Any) -> None:
        change = StateChange(source=self.source_name, field=field, value=value)
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception:
                logger.exception(f"Subscriber failed on {self.source_name}.{field}")
