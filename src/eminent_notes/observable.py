"""Subscribe/notify support for manager state."""

import logging
import threading
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")

Subscriber = Callable[[S], None]


class Observable(Generic[S]):
    """Base class for components that publish immutable state snapshots.

    Subclasses implement ``snapshot()`` and call ``_publish()`` after every
    state change. Subscribers are called synchronously on the publishing
    thread; an exception in one subscriber is logged and the remaining
    subscribers are still notified.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._subscribers_lock = threading.Lock()

    def snapshot(self) -> S:
        raise NotImplementedError

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for state changes.

        Returns:
            A function that removes the subscription. Calling it more than
            once has no effect.
        """
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._subscribers_lock:
            return len(self._subscribers)

    def _publish(self) -> None:
        state = self.snapshot()
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(state)
            except Exception:
                logger.exception(
                    f"Subscriber {callback!r} of {type(self).__name__} failed"
                )
