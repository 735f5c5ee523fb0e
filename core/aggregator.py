"""Per-cycle detection pass over every active detector."""

import logging
from typing import Callable, Iterable, List, Optional

from camera import create_camera_detectors
from core.detector import Detector, DetectorKind
from core.models import DetectionResult
from core.scheduler import Dispatcher, monotonic_ms
from core.settings import DetectionSettings
from screen.processes import ProcessDetector
from tracking.activity import ActivityDetector, ActivityTracker

logger = logging.getLogger(__name__)


class DetectionAggregator:
    """
    Runs each active detector's check() once, in order, and ORs the results.

    There is no retry here: a detector that fails internally has already
    degraded to its last known value before returning.
    """

    def __init__(self, detectors: Iterable[Detector]):
        self.detectors: List[Detector] = list(detectors)
        self.last_result = DetectionResult()

    def get(self, kind: DetectorKind) -> Optional[Detector]:
        """First detector of the given kind, if any."""
        for detector in self.detectors:
            if detector.kind == kind:
                return detector
        return None

    def activate_all(self) -> List[Detector]:
        """
        Activate every detector independently.

        Returns:
            Detectors whose activation failed (they stay disabled).
        """
        failed = []
        for detector in self.detectors:
            try:
                ok = detector.activate()
            except Exception as e:
                logger.warning(f"Activating {detector.kind.value} detector failed: {e}")
                ok = False
            if not ok:
                failed.append(detector)
        return failed

    def run_checks(self) -> DetectionResult:
        """One sequential pass; inactive detectors are skipped."""
        result = DetectionResult()
        for detector in self.detectors:
            if not detector.is_active:
                continue
            try:
                detector_result = detector.check()
            except Exception as e:
                detector_result = getattr(detector, "last_result", None) or DetectionResult()
                logger.warning(
                    f"{detector.kind.value} detector check failed, using last result: {e}"
                )
            result = result.merge(detector_result)
        self.last_result = result
        logger.debug(f"Cycle result: {result}")
        return result

    def dispose_all(self) -> None:
        for detector in self.detectors:
            try:
                detector.dispose()
            except Exception as e:
                logger.warning(f"Disposing {detector.kind.value} detector failed: {e}")
        self.last_result = DetectionResult()


def create_default_detectors(
    settings: DetectionSettings,
    dispatcher: Dispatcher,
    clock: Callable[[], float] = monotonic_ms,
) -> List[Detector]:
    """
    Build the four standard detectors.

    Returns:
        [PhoneDetector, SleepDetector, ActivityDetector, ProcessDetector]
    """
    tracker = ActivityTracker(settings, dispatcher, clock=clock)
    return create_camera_detectors(settings) + [
        ActivityDetector(settings, tracker),
        ProcessDetector(settings, dispatcher),
    ]
