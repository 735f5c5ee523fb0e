"""Sleep detection: eye-openness scoring smoothed over a sliding window."""

import cv2
import numpy as np
import logging
from typing import Callable, Optional

import config
from camera.base_detector import FrameDetector
from camera.capture import CameraCapture
from camera.hysteresis import ScoreWindow
from core.detector import DetectorKind
from core.models import DetectionResult
from core.settings import DetectionSettings

logger = logging.getLogger(__name__)

# Openness reported when no face is visible at all
NO_FACE_OPENNESS = 0.3


class EyeOpennessScorer:
    """
    Estimates eye openness (0 = closed, 1 = open) with OpenCV Haar cascades.

    Cascades are loaded on first use so constructing a detector never
    touches the filesystem.
    """

    def __init__(self):
        self._face_cascade: Optional[cv2.CascadeClassifier] = None
        self._eye_cascade: Optional[cv2.CascadeClassifier] = None

    def _load(self) -> None:
        if self._face_cascade is None:
            self._face_cascade = cv2.CascadeClassifier(
                cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
            )
            self._eye_cascade = cv2.CascadeClassifier(
                cv2.data.haarcascades + "haarcascade_eye.xml"
            )

    def __call__(self, frame: np.ndarray) -> float:
        self._load()
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        gray = cv2.equalizeHist(gray)

        faces = self._face_cascade.detectMultiScale(gray, scaleFactor=1.1, minNeighbors=5, minSize=(60, 60))
        if len(faces) == 0:
            return NO_FACE_OPENNESS

        # Largest face is the user
        x, y, w, h = max(faces, key=lambda f: f[2] * f[3])
        upper_face = gray[y:y + int(h * 0.6), x:x + w]
        eyes = self._eye_cascade.detectMultiScale(upper_face, scaleFactor=1.1, minNeighbors=6)
        return min(1.0, len(eyes) / 2.0)


class SleepDetector(FrameDetector):
    """
    Reports sleep_detected once the windowed eye openness stays low.

    Each sample pushes the raw openness into a window of the 30 most recent
    scores; the hysteresis counter sees a hit whenever the window average is
    below the openness cutoff. Short blinks and glances average out.
    """

    kind = DetectorKind.SLEEP

    def __init__(
        self,
        settings: DetectionSettings,
        capture: Optional[CameraCapture] = None,
        oracle: Optional[Callable[[], float]] = None,
        openness_cutoff: float = None,
        history_size: int = None,
    ):
        super().__init__(settings, settings.sleep_detection_threshold, capture, oracle)
        self.openness_cutoff = (
            openness_cutoff if openness_cutoff is not None else config.SLEEP_OPENNESS_CUTOFF
        )
        self.history = ScoreWindow(history_size or config.SLEEP_HISTORY_SIZE)
        self._scorer = EyeOpennessScorer()

    def score_frame(self, frame) -> float:
        return self._scorer(frame)

    def is_hit(self, score: float) -> bool:
        average = self.history.push(score)
        return average < self.openness_cutoff

    def build_result(self, detected: bool) -> DetectionResult:
        return DetectionResult(sleep_detected=detected)

    def reset_history(self) -> None:
        self.history.clear()
