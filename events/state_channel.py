"""
Multicast state channel with latest-value replay
"""

from typing import Callable, Generic, List, TypeVar

from core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class StateChannel(Generic[T]):
    """
    Holds a current value and pushes every change to subscribers.

    A subscriber receives the current value as soon as it subscribes, then
    each subsequent change. Publishing a value equal to the current one is
    not a transition and notifies nobody.
    """

    def __init__(self, initial: T, name: str = "state"):
        self.name = name
        self._value = initial
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """
        Attach a listener and replay the current value to it.

        Returns:
            Callable that detaches the listener
        """
        self._subscribers.append(listener)
        self._deliver(listener, self._value)

        def unsubscribe():
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return unsubscribe

    def publish(self, value: T) -> bool:
        """
        Set a new value.

        Returns:
            True if the value changed and subscribers were notified
        """
        if value == self._value:
            return False

        self._value = value
        for listener in list(self._subscribers):
            self._deliver(listener, value)
        return True

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _deliver(self, listener: Callable[[T], None], value: T):
        try:
            listener(value)
        except Exception as e:
            logger.error(f"Error in {self.name} subscriber: {e}", exc_info=True)
