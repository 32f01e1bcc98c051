"""
Task handles, debouncing and in-flight tracking for plugindex.

- TaskHandle: a cancellable completion. Cancelling means the completion
  callback is never invoked; work already running is not aborted.
- Debouncer: each new trigger for a purpose cancels the pending one.
- InFlightRegistry: at most one running fetch per key; later requests for
  the same key share the running future.
"""

import threading
from concurrent.futures import Executor, Future
from typing import Any, Callable, Dict, Optional
import logging

logger = logging.getLogger(__name__)

TimerFactory = Callable[..., Any]


class TaskHandle:
    """Cancellable handle for one scheduled or running operation."""

    def __init__(self, name: str = ""):
        self.name = name
        self._cancelled = threading.Event()
        self._timer: Optional[Any] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        if self._timer is not None:
            self._timer.cancel()

    def deliver(self, callback: Callable[..., Any], *args: Any) -> bool:
        """Invoke ``callback`` unless the handle was cancelled."""
        if self.cancelled:
            logger.debug(f"Dropping superseded result for {self.name or 'task'}")
            return False
        callback(*args)
        return True

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"TaskHandle({self.name!r}, {state})"


class Debouncer:
    """
    Runs work only after triggers for the same purpose stop for ``delay``.

    Example:
        debouncer = Debouncer(0.15)
        debouncer.trigger("preview", lambda: fetch(repo), show_preview)
    """

    def __init__(self, delay: float, timer_factory: TimerFactory = threading.Timer):
        self.delay = delay
        self.timer_factory = timer_factory
        self._pending: Dict[str, TaskHandle] = {}
        self._lock = threading.Lock()

    def trigger(
        self,
        purpose: str,
        work: Callable[[], Any],
        on_done: Optional[Callable[[Any], Any]] = None,
    ) -> TaskHandle:
        """
        Schedule ``work`` and cancel any pending trigger for ``purpose``.

        Args:
            purpose: Debounce bucket, e.g. "preview"
            work: Called when the delay elapses
            on_done: Receives the return value of ``work`` unless superseded

        Returns:
            Handle for the new trigger
        """
        handle = TaskHandle(purpose)
        with self._lock:
            previous = self._pending.get(purpose)
            if previous is not None:
                previous.cancel()
            self._pending[purpose] = handle

        timer = self.timer_factory(self.delay, self._fire, args=(purpose, handle, work, on_done))
        if hasattr(timer, 'daemon'):
            timer.daemon = True
        handle._timer = timer
        timer.start()
        return handle

    def _fire(self, purpose: str, handle: TaskHandle, work: Callable[[], Any],
              on_done: Optional[Callable[[Any], Any]]) -> None:
        if handle.cancelled:
            return
        result = work()
        with self._lock:
            if self._pending.get(purpose) is handle:
                del self._pending[purpose]
        if on_done is not None:
            handle.deliver(on_done, result)

    def cancel(self, purpose: str) -> None:
        with self._lock:
            handle = self._pending.pop(purpose, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            handles = list(self._pending.values())
            self._pending.clear()
        for handle in handles:
            handle.cancel()


class InFlightRegistry:
    """Coalesces concurrent submissions for the same key into one future."""

    def __init__(self, executor: Executor):
        self.executor = executor
        self._futures: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def submit(self, key: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        with self._lock:
            running = self._futures.get(key)
            if running is not None and not running.done():
                logger.debug(f"Joining in-flight request for {key}")
                return running
            future = self.executor.submit(fn, *args, **kwargs)
            self._futures[key] = future

        future.add_done_callback(lambda f, k=key: self._forget(k, f))
        return future

    def _forget(self, key: str, future: Future) -> None:
        with self._lock:
            if self._futures.get(key) is future:
                del self._futures[key]

    def in_flight(self, key: str) -> bool:
        with self._lock:
            future = self._futures.get(key)
        return future is not None and not future.done()
