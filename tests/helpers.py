"""
Deterministic time and dispatch for tests.

ManualDispatcher runs submissions inline and fires timers only when the
test advances the ManualClock, so cycle behaviour can be stepped exactly.
"""

import itertools
import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.detector import BaseDetector, DetectorKind
from core.models import DetectionResult
from core.scheduler import TimerHandle


class ManualClock:
    """Callable monotonic clock in milliseconds."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class ManualDispatcher:
    """Drop-in for core.scheduler.Dispatcher driven by a ManualClock."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self._timers = []
        self._seq = itertools.count()

    def start(self) -> None:
        pass

    def shutdown(self, timeout: float = 2.0) -> None:
        for timer in self._timers:
            timer[2].cancel()
        self._timers = []

    def is_control_thread(self) -> bool:
        return True

    def submit(self, fn, *args) -> TimerHandle:
        handle = TimerHandle()
        fn(*args)
        return handle

    def call_later(self, delay_ms, fn, *args) -> TimerHandle:
        handle = TimerHandle()
        self._timers.append((self.clock.now + max(0, delay_ms), next(self._seq), handle, fn, args, None))
        return handle

    def call_every(self, interval_ms, fn) -> TimerHandle:
        handle = TimerHandle()
        self._timers.append((self.clock.now + interval_ms, next(self._seq), handle, fn, (), interval_ms))
        return handle

    def pending(self) -> int:
        """Number of timers that are still armed."""
        return sum(1 for timer in self._timers if not timer[2].cancelled)

    def advance(self, ms: float) -> None:
        """Move the clock forward, firing due timers in time order."""
        target = self.clock.now + ms
        while True:
            self._timers = [t for t in self._timers if not t[2].cancelled]
            due = [t for t in self._timers if t[0] <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t[0], t[1]))
            self._timers.remove(timer)
            when, _, handle, fn, args, interval = timer
            self.clock.now = max(self.clock.now, when)
            fn(*args)
            if interval is not None and not handle.cancelled:
                self._timers.append((when + interval, next(self._seq), handle, fn, args, interval))
        self.clock.now = target


class FakeDetector(BaseDetector):
    """Detector returning a scripted result; counts lifecycle calls."""

    def __init__(self, settings, kind: DetectorKind, result: DetectionResult = None, can_activate: bool = True):
        super().__init__(settings)
        self.kind = kind
        self.result = result or DetectionResult()
        self.can_activate = can_activate
        self.activate_calls = 0
        self.dispose_calls = 0
        self.check_calls = 0

    def activate(self) -> bool:
        self.activate_calls += 1
        if not self.can_activate:
            return False
        return super().activate()

    def _check(self) -> DetectionResult:
        self.check_calls += 1
        return self.result

    def dispose(self) -> None:
        self.dispose_calls += 1
        super().dispose()


def make_screen_monitor(fallback: bool = True) -> MagicMock:
    monitor = MagicMock()
    monitor.start.return_value = True
    monitor.is_using_fallback.return_value = fallback
    monitor.grab_chunk.return_value = b"chunk"
    return monitor


def make_notifier(ready: bool = True) -> MagicMock:
    notifier = MagicMock()
    notifier.is_ready.return_value = ready
    return notifier
