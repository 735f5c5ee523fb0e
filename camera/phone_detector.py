"""Phone detection: shape-based frame scoring plus hysteresis."""

import cv2
import numpy as np
import logging
from typing import Callable, Optional

import config
from camera.base_detector import FrameDetector
from camera.capture import CameraCapture
from core.detector import DetectorKind
from core.models import DetectionResult
from core.settings import DetectionSettings

logger = logging.getLogger(__name__)


def score_phone_frame(frame: np.ndarray) -> float:
    """
    Score how strongly a frame looks like it contains a phone.

    Looks for solid rectangles with phone-like aspect ratios, a plausible
    size and distinct edges. Not a real object detector; any callable
    returning a 0-1 confidence can replace it.

    Args:
        frame: BGR image from camera

    Returns:
        Highest candidate confidence in [0, 1] (0.0 when nothing qualifies).
    """
    h, w = frame.shape[:2]

    # Lower part of the frame is usually the desk surface
    roi = frame[0:int(h * 0.8), :]
    roi_h, roi_w = roi.shape[:2]

    gray = cv2.cvtColor(roi, cv2.COLOR_BGR2GRAY)
    blurred = cv2.bilateralFilter(gray, 9, 75, 75)

    edges = cv2.bitwise_or(cv2.Canny(blurred, 30, 100), cv2.Canny(blurred, 50, 150))
    dilated = cv2.dilate(edges, np.ones((3, 3), np.uint8), iterations=1)

    contours, _ = cv2.findContours(dilated, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    max_confidence = 0.0
    min_width = max(40, roi_w * 0.08)
    min_height = max(70, roi_h * 0.12)

    for contour in contours:
        x, y, cw, ch = cv2.boundingRect(contour)

        if cw < min_width or ch < min_height:
            continue
        if cw > roi_w * 0.6 or ch > roi_h * 0.8:
            continue

        aspect_ratio = cw / ch if ch > 0 else 0
        is_portrait = 0.35 < aspect_ratio < 0.75
        is_landscape = 1.3 < aspect_ratio < 2.5
        if not (is_portrait or is_landscape):
            continue

        rect_area = cw * ch
        if rect_area == 0:
            continue
        rectangularity = cv2.contourArea(contour) / rect_area
        if rectangularity < 0.65:
            continue

        # Size score (0-30%), optimal around 15% of the frame
        confidence = min(0.3, (rect_area / (roi_w * roi_h)) * 2)

        # Aspect ratio score (0-25%)
        if is_portrait:
            confidence += 0.25 * (1 - abs(aspect_ratio - 0.55) / 0.35)
        else:
            confidence += 0.25 * (1 - abs(aspect_ratio - 1.8) / 1.2)

        # Rectangularity score (0-20%)
        confidence += 0.2 * rectangularity

        # Edge strength score (0-25%)
        edge_strength = np.sum(edges[y:y + ch, x:x + cw]) / (rect_area * 255)
        confidence += min(0.25, edge_strength * 5)

        if confidence > max_confidence:
            max_confidence = confidence
            logger.debug(
                f"Phone candidate: size={cw}x{ch}, aspect={aspect_ratio:.2f}, "
                f"rect={rectangularity:.2f}, conf={confidence:.2f}"
            )

    return float(min(1.0, max_confidence))


class PhoneDetector(FrameDetector):
    """
    Reports phone_detected once enough consecutive frames score as a phone.

    The phone_detection_threshold setting (0-1) becomes a count of
    round(setting * 10) consecutive hits.
    """

    kind = DetectorKind.PHONE

    def __init__(
        self,
        settings: DetectionSettings,
        capture: Optional[CameraCapture] = None,
        oracle: Optional[Callable[[], float]] = None,
        score_cutoff: float = None,
    ):
        super().__init__(settings, settings.phone_detection_threshold, capture, oracle)
        self.score_cutoff = score_cutoff if score_cutoff is not None else config.PHONE_SCORE_CUTOFF

    def score_frame(self, frame) -> float:
        return score_phone_frame(frame)

    def is_hit(self, score: float) -> bool:
        return score > self.score_cutoff

    def build_result(self, detected: bool) -> DetectionResult:
        return DetectionResult(phone_detected=detected)
