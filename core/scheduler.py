"""
Single-control-thread dispatcher with cancellable timers.

Every state mutation in the watchdog (controller phase, detector counters,
activity timestamps, alert cooldown) runs as a task on one daemon thread,
so no two mutations ever overlap. Timers fire on background
threading.Timer threads but only *enqueue* their callback; the callback
itself runs on the control thread.
"""

import logging
import queue
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

_SHUTDOWN = object()


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


class TimerHandle:
    """
    Handle for a submitted task or timer.

    cancel() is synchronous: once it returns, the callback will not run,
    even if its timer already expired and the call is sitting in the queue.
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._timer: Optional[threading.Timer] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class Dispatcher:
    """
    Cooperative event/timer dispatcher backed by one daemon thread.

    Tasks run strictly one at a time in submission order. A task that
    blocks (e.g. a detector waiting on the camera) delays every later task,
    which is what keeps cycle ticks from overlapping.
    """

    def __init__(self, name: str = "watchdog-control") -> None:
        self.name = name
        self._queue: "queue.Queue" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start the control thread (no-op if already running)."""
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
            logger.debug(f"Dispatcher '{self.name}' started")

    def shutdown(self, timeout: float = 2.0) -> None:
        """Stop the control thread after the tasks already queued."""
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is None:
            return
        self._queue.put(_SHUTDOWN)
        if threading.current_thread() is not thread:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Dispatcher thread did not stop within timeout")

    def is_control_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def submit(self, fn: Callable, *args) -> TimerHandle:
        """Run fn(*args) on the control thread as soon as possible."""
        handle = TimerHandle()
        self._queue.put((handle, fn, args))
        return handle

    def call_later(self, delay_ms: float, fn: Callable, *args) -> TimerHandle:
        """Run fn(*args) on the control thread after delay_ms."""
        handle = TimerHandle()
        timer = threading.Timer(
            max(0.0, delay_ms) / 1000.0, self._queue.put, args=((handle, fn, args),)
        )
        timer.daemon = True
        handle._timer = timer
        timer.start()
        return handle

    def call_every(self, interval_ms: float, fn: Callable) -> TimerHandle:
        """Run fn() on the control thread every interval_ms until cancelled."""
        handle = TimerHandle()

        def _arm() -> None:
            timer = threading.Timer(
                max(0.0, interval_ms) / 1000.0, self._queue.put, args=((handle, _tick, ()),)
            )
            timer.daemon = True
            handle._timer = timer
            timer.start()

        def _tick() -> None:
            try:
                fn()
            finally:
                if not handle.cancelled:
                    _arm()

        _arm()
        return handle

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _SHUTDOWN:
                break
            handle, fn, args = item
            if handle.cancelled:
                continue
            try:
                fn(*args)
            except Exception as e:
                # Tasks absorb their own failures; anything reaching here is a bug
                logger.error(f"Dispatcher task {getattr(fn, '__name__', fn)!r} failed: {e}", exc_info=True)
        logger.debug(f"Dispatcher '{self.name}' stopped")
