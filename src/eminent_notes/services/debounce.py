"""Latest-wins delayed execution."""

import logging
import threading
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NOTHING = object()


class Debouncer(Generic[T]):
    """Run an action once a burst of calls has gone quiet.

    Each ``call(value)`` cancels the pending timer and starts a new one, so
    only the most recent value reaches the action after ``delay`` seconds
    without further calls. The action runs on the timer thread. A delay of
    zero runs the action immediately on the calling thread.

    Example:
        debouncer = Debouncer(0.3, manager.run_search)
        debouncer.call("m")
        debouncer.call("mi")
        debouncer.call("milk")  # only "milk" is searched
    """

    def __init__(self, delay: float, action: Callable[[T], Any], name: str = "debounce"):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self.name = name
        self._action = action
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Any = _NOTHING
        self._generation = 0
        self._closed = False

    @property
    def pending(self) -> bool:
        """Whether a call is waiting for its quiet period to end."""
        with self._lock:
            return self._pending is not _NOTHING

    def call(self, value: T) -> None:
        """Schedule the action with ``value``, replacing any pending call."""
        with self._lock:
            if self._closed:
                logger.debug(f"{self.name}: ignoring call after shutdown")
                return
            self._cancel_timer_unlocked()
            self._generation += 1
            self._pending = value
            if self.delay == 0:
                run_now = True
            else:
                run_now = False
                generation = self._generation
                self._timer = threading.Timer(self.delay, self._fire, args=(generation,))
                self._timer.daemon = True
                self._timer.start()
        if run_now:
            self.flush()

    def flush(self) -> bool:
        """Cancel the timer and run the pending call now.

        Returns:
            True if a pending call was run, False if nothing was pending.
        """
        with self._lock:
            self._cancel_timer_unlocked()
            value = self._take_pending_unlocked()
        if value is _NOTHING:
            return False
        self._run(value)
        return True

    def cancel(self) -> bool:
        """Drop the pending call without running it.

        Returns:
            True if a pending call was dropped.
        """
        with self._lock:
            self._cancel_timer_unlocked()
            return self._take_pending_unlocked() is not _NOTHING

    def shutdown(self) -> None:
        """Drop any pending call and refuse further calls."""
        with self._lock:
            self._closed = True
            self._cancel_timer_unlocked()
            dropped = self._take_pending_unlocked() is not _NOTHING
        if dropped:
            logger.debug(f"{self.name}: dropped pending call on shutdown")

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer call superseded this timer
            if generation != self._generation:
                return
            self._timer = None
            value = self._take_pending_unlocked()
        if value is not _NOTHING:
            self._run(value)

    def _run(self, value: Any) -> None:
        try:
            self._action(value)
        except Exception:
            logger.exception(f"{self.name}: debounced action failed")

    def _cancel_timer_unlocked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _take_pending_unlocked(self) -> Any:
        value = self._pending
        self._pending = _NOTHING
        return value
