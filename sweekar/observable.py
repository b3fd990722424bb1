"""Latest-value event streams with explicit subscribe/unsubscribe."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSET = object()


class Subscription:
    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel: Optional[Callable[[], None]] = cancel

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def unsubscribe(self) -> None:
        cancel, self._cancel = self._cancel, None
        if cancel is not None:
            cancel()


class Observable(Generic[T]):
    """Holds the latest value and pushes every published value to subscribers.

    A new subscriber receives the current value right away when one has been
    published. Intermediate values are never buffered.
    """

    def __init__(self, name: str = "observable") -> None:
        self.name = name
        self._value: object = _UNSET
        self._subscribers: Dict[int, Callable[[T], None]] = {}
        self._next_id = 0

    @property
    def has_value(self) -> bool:
        return self._value is not _UNSET

    @property
    def value(self) -> Optional[T]:
        return None if self._value is _UNSET else self._value  # type: ignore[return-value]

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        sub_id = self._next_id
        self._next_id += 1
        self._subscribers[sub_id] = callback
        if self.has_value:
            self._deliver(callback, self._value)  # type: ignore[arg-type]
        return Subscription(lambda: self._subscribers.pop(sub_id, None))

    def publish(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers.values()):
            self._deliver(callback, value)

    def _deliver(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("Subscriber of %s failed", self.name)
