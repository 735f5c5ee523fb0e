"""
Camera-based detectors (phone, sleep) and their capture resource.

Each detector owns its own camera handle; nothing is shared between them.
"""

import logging
from typing import List

from camera.base_detector import FrameDetector
from core.detector import BaseDetector, Detector, DetectorKind
from camera.phone_detector import PhoneDetector
from camera.sleep_detector import SleepDetector
from core.settings import DetectionSettings

logger = logging.getLogger(__name__)

__all__ = [
    "BaseDetector",
    "Detector",
    "DetectorKind",
    "FrameDetector",
    "PhoneDetector",
    "SleepDetector",
    "create_camera_detectors",
]


def create_camera_detectors(settings: DetectionSettings) -> List[FrameDetector]:
    """
    Create the frame-sampled detectors, each with its own camera handle.

    Args:
        settings: Detection settings for this controller.

    Returns:
        [PhoneDetector, SleepDetector]
    """
    detectors = [PhoneDetector(settings), SleepDetector(settings)]
    logger.debug(f"Created camera detectors: {[d.name for d in detectors]}")
    return detectors
