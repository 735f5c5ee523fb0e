"""Frame-sampled detector base: scoring oracle plus hysteresis counter."""

import logging
from typing import Callable, Optional

from camera.capture import CameraCapture, CameraFailureType
from camera.hysteresis import HysteresisTracker, threshold_from_setting
from core.detector import BaseDetector
from core.models import DetectionResult
from core.settings import DetectionSettings

logger = logging.getLogger(__name__)


class FrameDetector(BaseDetector):
    """
    Detector driven by a per-sample scoring oracle and a hysteresis counter.

    By default the detector acquires its own camera handle on activate()
    and scores each grabbed frame with score_frame(). An oracle callable
    (no arguments, returns a score) can be injected instead; when no capture
    is given alongside it, no camera is acquired at all.

    If the oracle raises, the last stable value is returned unchanged so a
    transient capture error never flips the detection.
    """

    def __init__(
        self,
        settings: DetectionSettings,
        threshold_setting: float,
        capture: Optional[CameraCapture] = None,
        oracle: Optional[Callable[[], float]] = None,
    ):
        super().__init__(settings)
        self.tracker = HysteresisTracker(threshold_from_setting(threshold_setting))
        self._oracle = oracle
        if capture is None and oracle is None:
            capture = CameraCapture()
        self._capture = capture
        self.failure_type = CameraFailureType.NONE
        self.error_message: Optional[str] = None

    @property
    def threshold(self) -> int:
        return self.tracker.threshold

    def activate(self) -> bool:
        """
        Acquire the capture resource and mark the detector active.

        Returns:
            False if the camera could not be acquired (detector stays disabled).
        """
        if self._active:
            return True
        if self._capture is not None and not self._capture.acquire():
            self.failure_type = getattr(self._capture, "failure_type", CameraFailureType.UNKNOWN)
            self.error_message = getattr(self._capture, "error_message", None)
            logger.warning(f"{self.name} detector disabled: {self.error_message or 'camera unavailable'}")
            return False
        self.failure_type = CameraFailureType.NONE
        self.error_message = None
        self._active = True
        logger.info(f"{self.name} detector active (threshold {self.tracker.threshold} consecutive hits)")
        return True

    def _score(self) -> float:
        if self._oracle is not None:
            return self._oracle()
        return self.score_frame(self._capture.grab_frame())

    def score_frame(self, frame) -> float:
        """Default scoring oracle over one camera frame."""
        raise NotImplementedError

    def is_hit(self, score: float) -> bool:
        """Whether one score counts as a hit for the hysteresis counter."""
        raise NotImplementedError

    def build_result(self, detected: bool) -> DetectionResult:
        raise NotImplementedError

    def _check(self) -> DetectionResult:
        try:
            score = self._score()
        except Exception as e:
            logger.warning(f"{self.name} scoring failed, keeping last value ({self.tracker.stable}): {e}")
            return self.build_result(self.tracker.stable)

        hit = self.is_hit(score)
        stable = self.tracker.update(hit)
        logger.debug(
            f"{self.name} sample score={score:.2f} hit={hit} "
            f"count={self.tracker.count}/{self.tracker.threshold} stable={stable}"
        )
        return self.build_result(stable)

    def reset_history(self) -> None:
        """Clear any per-detector sample history beyond the counter."""

    def dispose(self) -> None:
        """Release the camera and clear counters/history. Idempotent."""
        if self._capture is not None:
            self._capture.release()
        self.tracker.reset()
        self.reset_history()
        super().dispose()
