"""Observable value cell.

Stands in for the host UI framework's state: the runtime publishes into a
``Signal`` and every registered observer is re-invoked with the new value.
"""

from collections.abc import Callable
from typing import Generic, TypeVar

from .logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Observer = Callable[[T], None]


class Signal(Generic[T]):
    """
    Value cell with an explicit observer list.

    Examples:
        >>> count = Signal(0)
        >>> seen = []
        >>> unsubscribe = count.subscribe(seen.append)
        >>> count.set(1)
        >>> seen
        [0, 1]
        >>> unsubscribe()
    """

    def __init__(self, initial: T):
        self._value = initial
        self._observers: list[Observer[T]] = []

    def get(self) -> T:
        """Current value."""
        return self._value

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Store value and notify every observer."""
        self._value = value

        for observer in list(self._observers):
            self._notify(observer, value)

    def subscribe(self, observer: Observer[T]) -> Callable[[], None]:
        """
        Register observer; it is invoked immediately with the current value.

        Returns:
            Callable that unregisters the observer
        """
        self._observers.append(observer)
        self._notify(observer, self._value)

        def unsubscribe() -> None:
            self.unsubscribe(observer)

        return unsubscribe

    def subscribe_once(self, observer: Observer[T]) -> Callable[[], None]:
        """Like subscribe, but a no-op registration if already subscribed."""
        if observer in self._observers:
            return lambda: self.unsubscribe(observer)
        return self.subscribe(observer)

    def unsubscribe(self, observer: Observer[T]) -> None:
        """Remove observer if registered."""
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _notify(self, observer: Observer[T], value: T) -> None:
        try:
            observer(value)
        except Exception as e:
            logger.error("signal_observer_failed", error=str(e), exc_info=True)

    def __repr__(self) -> str:
        return f"Signal({self._value!r})"


__all__ = ["Signal", "Observer"]
