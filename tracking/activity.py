"""User input activity tracking."""

import logging
from typing import Callable, Iterable, Optional

import config
from core.detector import BaseDetector, DetectorKind
from core.models import DetectionResult, UserActivity
from core.scheduler import Dispatcher, TimerHandle, monotonic_ms
from core.settings import DetectionSettings

logger = logging.getLogger(__name__)


class ActivityTracker:
    """
    Event-driven last-interaction clock.

    Input sources never call into the tracker directly; they post a touch
    message (post()) which is consumed on the control thread. A touch resets
    the inactivity flag immediately (edge-triggered). A 1 Hz poll recomputes
    the inactive duration and the level-triggered flag.
    """

    def __init__(
        self,
        settings: DetectionSettings,
        dispatcher: Dispatcher,
        clock: Callable[[], float] = monotonic_ms,
        event_kinds: Optional[Iterable[str]] = None,
        poll_interval_ms: int = None,
    ):
        self.settings = settings
        self.dispatcher = dispatcher
        self.clock = clock
        self.event_kinds = frozenset(event_kinds if event_kinds is not None else config.ACTIVITY_EVENT_KINDS)
        self.poll_interval_ms = poll_interval_ms or config.ACTIVITY_POLL_INTERVAL_MS
        self.activity = UserActivity(last_activity=clock())
        self._poll_handle: Optional[TimerHandle] = None

    def post(self, kind: str) -> bool:
        """
        Queue an input event for the tracker. Safe from any thread.

        Args:
            kind: One of the registered event kinds (e.g. "key_down").

        Returns:
            False if the kind is not a registered interaction event.
        """
        if kind not in self.event_kinds:
            logger.debug(f"Ignoring unregistered input event: {kind}")
            return False
        self.dispatcher.submit(self.touch, kind)
        return True

    def touch(self, kind: str = "") -> None:
        """Record an interaction now. Runs on the control thread."""
        self.activity.last_activity = self.clock()
        self.activity.inactive_duration = 0.0
        if self.activity.is_inactive:
            logger.info(f"User active again ({kind or 'input'})")
        self.activity.is_inactive = False

    def poll(self) -> UserActivity:
        """Recompute inactivity from the last interaction timestamp."""
        inactive_time = self.clock() - self.activity.last_activity
        self.activity.inactive_duration = inactive_time
        was_inactive = self.activity.is_inactive
        self.activity.is_inactive = inactive_time > self.settings.inactivity_threshold
        if self.activity.is_inactive and not was_inactive:
            logger.info(f"No input for {inactive_time / 1000:.0f}s")
        return self.activity.copy()

    def start_polling(self) -> None:
        if self._poll_handle is None:
            self._poll_handle = self.dispatcher.call_every(self.poll_interval_ms, self.poll)

    def stop_polling(self) -> None:
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None

    @property
    def is_polling(self) -> bool:
        return self._poll_handle is not None

    def reset(self) -> None:
        """Start a fresh interaction clock at now."""
        self.activity = UserActivity(last_activity=self.clock())

    def get_activity_info(self) -> UserActivity:
        return self.activity.copy()


class ActivityDetector(BaseDetector):
    """Reports inactive when no input has arrived within inactivityThreshold."""

    kind = DetectorKind.ACTIVITY

    def __init__(self, settings: DetectionSettings, tracker: ActivityTracker):
        super().__init__(settings)
        self.tracker = tracker

    def activate(self) -> bool:
        if self._active:
            return True
        self.tracker.reset()
        self.tracker.start_polling()
        self._active = True
        logger.info("Activity monitoring started")
        return True

    def _check(self) -> DetectionResult:
        info = self.tracker.poll()
        return DetectionResult(inactive=info.is_inactive)

    def get_activity_info(self) -> UserActivity:
        return self.tracker.get_activity_info()

    def dispose(self) -> None:
        self.tracker.stop_polling()
        self.tracker.reset()
        super().dispose()
