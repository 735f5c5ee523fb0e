"""
SurveillanceController: run/stop lifecycle and the capture/cooldown cycle.

State machine: IDLE -> (ACTIVE <-> COOLDOWN) -> IDLE. ACTIVE and COOLDOWN
together make up "running". Every method here is expected to run on the
dispatcher's control thread; front ends submit commands to it.

Callbacks:
    on_status_change(status: str, text: str)
    on_alert(message: str)
    on_alert_dismissed()
    on_timer_tick(elapsed_text: str)
    on_cycle_result(result: DetectionResult, details: dict)
    on_error(error_type: str, message: str)
"""

import logging
import random
from typing import Callable, Dict, List, Optional

import config
from core.aggregator import DetectionAggregator, create_default_detectors
from core.alerts import AlertOutcome, AlertPolicy
from core.detector import Detector, DetectorKind
from core.models import AlertDetails, AlertType, DetectionResult, Phase, RecordingState
from core.permissions import request_permissions
from core.scheduler import Dispatcher, TimerHandle, monotonic_ms
from core.settings import DetectionSettings
from screen.monitor import ScreenMonitor, ScreenRecorder

logger = logging.getLogger(__name__)

START_MESSAGE = "Surveillance monitoring has started"
STOP_MESSAGE = "Surveillance stopped after {seconds} seconds"
FORCED_STOP_MESSAGE = "Surveillance was forcefully terminated after {seconds} seconds"

_CAMERA_ERRORS = {
    "no_hardware": ("camera_no_hardware", "No camera detected. Camera detectors are disabled."),
    "in_use": ("camera_in_use", "Camera is being used by another application. Camera detectors are disabled."),
    "permission_denied": ("camera_denied", "Camera permission denied. Grant access in system settings."),
}


def format_elapsed(total_seconds: int) -> str:
    """HH:MM:SS, zero padded, hours unbounded."""
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class TimedCaptureWindow:
    """
    Bounded-duration capture window whose end is reported via callback.

    Stands in for playback completion: the window ends after a fixed
    number of seconds. The controller only arms it and listens.
    """

    def __init__(self, dispatcher: Dispatcher, duration_seconds: float = None):
        self.dispatcher = dispatcher
        self.duration_seconds = (
            duration_seconds if duration_seconds is not None else config.CAPTURE_WINDOW_SECONDS
        )

    def begin(self, on_ended: Callable[[], None]) -> TimerHandle:
        return self.dispatcher.call_later(self.duration_seconds * 1000, on_ended)


class SurveillanceController:
    """Composes detectors, aggregator, alert policy, screen and notifier."""

    def __init__(
        self,
        settings: Optional[DetectionSettings] = None,
        notifier=None,
        detectors: Optional[List[Detector]] = None,
        dispatcher: Optional[Dispatcher] = None,
        screen_monitor=None,
        window_trigger=None,
        clock: Callable[[], float] = monotonic_ms,
        rng: Optional[random.Random] = None,
        permission_probe: Optional[Callable[[], Dict[str, bool]]] = None,
    ) -> None:
        self.settings = settings or DetectionSettings.from_config()
        self.dispatcher = dispatcher or Dispatcher()
        self.clock = clock
        self.rng = rng or random.Random()
        self.notifier = notifier

        if detectors is None:
            detectors = create_default_detectors(self.settings, self.dispatcher, clock)
        self.aggregator = DetectionAggregator(detectors)
        self.alerts = AlertPolicy(self.settings, notifier, clock)
        self.alerts.on_alert = self._forward_alert
        self.alerts.on_alert_dismissed = self._forward_alert_dismissed

        self.screen_monitor = screen_monitor or ScreenMonitor()
        self.recording = RecordingState()
        self.screen_recorder = ScreenRecorder(self.screen_monitor, self.dispatcher, self.recording, clock=clock)
        self.window_trigger = window_trigger or TimedCaptureWindow(self.dispatcher)
        self._permission_probe = permission_probe

        # Run state
        self.phase: Phase = Phase.IDLE
        self.surveillance_start_time: Optional[float] = None
        self.cycle_count: int = 0
        self.last_cooldown_ms: Optional[int] = None
        self.last_result = DetectionResult()
        self.current_status: str = "idle"
        self._elapsed_handle: Optional[TimerHandle] = None
        self._cycle_handle: Optional[TimerHandle] = None

        # ---- Callbacks (set by the front end) ----
        self.on_status_change: Optional[Callable[[str, str], None]] = None
        self.on_alert: Optional[Callable[[str], None]] = None
        self.on_alert_dismissed: Optional[Callable[[], None]] = None
        self.on_timer_tick: Optional[Callable[[str], None]] = None
        self.on_cycle_result: Optional[Callable[[DetectionResult, Dict], None]] = None
        self.on_error: Optional[Callable[[str, str], None]] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.phase is not Phase.IDLE

    def start(self) -> bool:
        """
        Start monitoring. No-op if already running.

        Detector acquisition failures disable only that detector.

        Returns:
            True if this call started a run.
        """
        if self.is_running:
            logger.info("Surveillance already running")
            return False

        self.phase = Phase.ACTIVE
        self.surveillance_start_time = self.clock()
        self.cycle_count = 0
        self._elapsed_handle = self.dispatcher.call_every(config.ELAPSED_TIMER_INTERVAL_MS, self._tick_elapsed)

        for detector in self.aggregator.activate_all():
            self._report_detector_failure(detector)

        self.screen_monitor.start()
        if self.screen_monitor.is_using_fallback():
            self._notify_error("screen_fallback", "Screen capture unavailable, using camera-only mode")
        else:
            self.screen_recorder.start()

        self._send(AlertDetails(AlertType.START, START_MESSAGE))
        logger.info("Surveillance started")
        self._begin_window()
        return True

    def stop(self, forced: bool = False) -> bool:
        """
        Stop monitoring. No-op if already idle.

        Args:
            forced: Skip the stop notification (process is going away).

        Returns:
            True if this call stopped a run.
        """
        if not self.is_running:
            return False

        duration = self.elapsed_seconds()
        self.phase = Phase.IDLE
        self._cancel_timers()

        self.aggregator.dispose_all()
        self.screen_recorder.stop()
        self.screen_monitor.stop()
        self.alerts.reset()
        self.last_result = DetectionResult()
        self.surveillance_start_time = None
        self.last_cooldown_ms = None

        self._notify_status_change("idle", "Ready to Start")
        if not forced:
            self._send(AlertDetails(AlertType.STOP, STOP_MESSAGE.format(seconds=duration)))
        logger.info(f"Surveillance stopped after {duration}s{' (forced)' if forced else ''}")
        return True

    def handle_forced_termination(self) -> None:
        """
        Called when the process is being torn down.

        Sends forced_stop without waiting for delivery, then stops.
        """
        if not self.is_running:
            return
        duration = self.elapsed_seconds()
        if self.notifier is not None and self.notifier.is_ready():
            self.notifier.send_alert_nowait(
                AlertDetails(AlertType.FORCED_STOP, FORCED_STOP_MESSAGE.format(seconds=duration))
            )
        self.stop(forced=True)

    def dispose(self) -> None:
        self.stop()
        if self.notifier is not None:
            self.notifier.dispose()

    # ------------------------------------------------------------------
    # Cycle scheduler
    # ------------------------------------------------------------------

    def _begin_window(self) -> None:
        self.phase = Phase.ACTIVE
        self.cycle_count += 1
        self._notify_status_change("recording", "Capturing")
        self._cycle_handle = self.window_trigger.begin(self.on_window_ended)
        self._run_detection_pass()

    def _run_detection_pass(self) -> None:
        result = self.aggregator.run_checks()
        if not self.is_running:
            logger.debug("Discarding detection result after stop")
            return
        self.last_result = result
        self._notify_cycle_result(result)
        if self.alerts.evaluate(result) is AlertOutcome.SUPPRESSED:
            logger.debug(f"Cycle {self.cycle_count} alert suppressed by snooze")

    def on_window_ended(self) -> Optional[int]:
        """
        External window-end event. Moves ACTIVE -> COOLDOWN.

        Returns:
            The cooldown drawn in ms, or None if the event was ignored.
        """
        if self.phase is not Phase.ACTIVE:
            return None
        cooldown_ms = self.rng.randint(self.settings.check_interval_min, self.settings.check_interval_max)
        self.last_cooldown_ms = cooldown_ms
        self.phase = Phase.COOLDOWN
        self._cycle_handle = self.dispatcher.call_later(cooldown_ms, self._on_cooldown_elapsed)
        self._notify_status_change("cooldown", f"Next check in {cooldown_ms // 1000}s")
        logger.debug(f"Cooldown for {cooldown_ms}ms")
        return cooldown_ms

    def _on_cooldown_elapsed(self) -> None:
        self._cycle_handle = None
        if self.phase is not Phase.COOLDOWN:
            return
        self._begin_window()

    def _cancel_timers(self) -> None:
        for handle in (self._elapsed_handle, self._cycle_handle):
            if handle is not None:
                handle.cancel()
        self._elapsed_handle = None
        self._cycle_handle = None

    # ------------------------------------------------------------------
    # Elapsed timer
    # ------------------------------------------------------------------

    def elapsed_seconds(self) -> int:
        if self.surveillance_start_time is None:
            return 0
        return int((self.clock() - self.surveillance_start_time) // 1000)

    def elapsed_text(self) -> str:
        return format_elapsed(self.elapsed_seconds())

    def _tick_elapsed(self) -> None:
        if not self.is_running:
            return
        if self.on_timer_tick:
            try:
                self.on_timer_tick(self.elapsed_text())
            except Exception as e:
                logger.debug(f"on_timer_tick callback error: {e}")

    # ------------------------------------------------------------------
    # User commands
    # ------------------------------------------------------------------

    def snooze(self) -> None:
        self.alerts.snooze()

    def dismiss_alert(self) -> None:
        self.alerts.dismiss()

    def post_activity(self, kind: str) -> bool:
        """Forward an input event to the activity tracker. Safe from any thread."""
        detector = self.aggregator.get(DetectorKind.ACTIVITY)
        if detector is None:
            return False
        return detector.tracker.post(kind)

    def request_permissions(self) -> Dict[str, bool]:
        """Probe camera and screen access once."""
        if self._permission_probe is not None:
            return self._permission_probe()
        return request_permissions()

    def get_status(self) -> Dict:
        """
        Snapshot for front ends.

        Returns:
            dict with keys: phase, is_running, status, elapsed_seconds,
            elapsed_text, screen_fallback, cycle_count, last_cooldown_ms,
            last_result, alert_visible, alert_message, snoozed_until,
            suspicious_processes, inactive_seconds.
        """
        return {
            "phase": self.phase.value,
            "is_running": self.is_running,
            "status": self.current_status,
            "elapsed_seconds": self.elapsed_seconds(),
            "elapsed_text": self.elapsed_text(),
            "screen_fallback": self.screen_monitor.is_using_fallback(),
            "cycle_count": self.cycle_count,
            "last_cooldown_ms": self.last_cooldown_ms,
            "last_result": self.last_result,
            "alert_visible": self.alerts.alert_visible,
            "alert_message": self.alerts.current_message,
            "snoozed_until": self.alerts.snooze_until if self.alerts.is_snoozed() else None,
            "suspicious_processes": self._suspicious_process_names(),
            "inactive_seconds": self._inactive_seconds(),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _suspicious_process_names(self) -> List[str]:
        detector = self.aggregator.get(DetectorKind.PROCESS)
        if detector is None:
            return []
        return [p.name for p in detector.get_suspicious_processes()]

    def _inactive_seconds(self) -> int:
        detector = self.aggregator.get(DetectorKind.ACTIVITY)
        if detector is None:
            return 0
        return int(detector.get_activity_info().inactive_duration // 1000)

    def _cycle_details(self) -> Dict:
        process_detector = self.aggregator.get(DetectorKind.PROCESS)
        return {
            "cycle": self.cycle_count,
            "inactive_seconds": self._inactive_seconds(),
            "suspicious_processes": self._suspicious_process_names(),
            "process_count": len(process_detector.get_processes()) if process_detector else 0,
        }

    def _send(self, alert: AlertDetails) -> None:
        if self.notifier is not None and self.notifier.is_ready():
            self.notifier.send_alert_async(alert)

    def _report_detector_failure(self, detector: Detector) -> None:
        failure_type = getattr(detector, "failure_type", None)
        key = getattr(failure_type, "value", "unknown")
        error_type, message = _CAMERA_ERRORS.get(
            key,
            (f"{detector.kind.value}_unavailable",
             getattr(detector, "error_message", None) or f"{detector.kind.value} detector unavailable"),
        )
        self._notify_error(error_type, message)

    def _forward_alert(self, message: str) -> None:
        if self.on_alert:
            try:
                self.on_alert(message)
            except Exception as e:
                logger.debug(f"on_alert callback error: {e}")

    def _forward_alert_dismissed(self) -> None:
        if self.on_alert_dismissed:
            try:
                self.on_alert_dismissed()
            except Exception as e:
                logger.debug(f"on_alert_dismissed callback error: {e}")

    def _notify_cycle_result(self, result: DetectionResult) -> None:
        if self.on_cycle_result:
            try:
                self.on_cycle_result(result, self._cycle_details())
            except Exception as e:
                logger.debug(f"on_cycle_result callback error: {e}")

    def _notify_status_change(self, status: str, text: str) -> None:
        self.current_status = status
        if self.on_status_change:
            try:
                self.on_status_change(status, text)
            except Exception as e:
                logger.debug(f"on_status_change callback error: {e}")

    def _notify_error(self, error_type: str, message: str) -> None:
        logger.warning(f"{error_type}: {message}")
        if self.on_error:
            try:
                self.on_error(error_type, message)
            except Exception as e:
                logger.debug(f"on_error callback error: {e}")
