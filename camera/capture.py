"""Webcam capture resource."""

import cv2
import logging
import sys
import time
from enum import Enum
from typing import Optional, Tuple
import numpy as np
import config

logger = logging.getLogger(__name__)


class CaptureError(RuntimeError):
    """Raised when a frame cannot be read from an acquired capture resource."""


class CameraFailureType(Enum):
    """Types of camera access failures for user-friendly error messages."""
    NONE = "none"  # No failure - camera works
    PERMISSION_DENIED = "permission_denied"  # OS refused access
    NO_HARDWARE = "no_hardware"  # No camera hardware detected
    IN_USE = "in_use"  # Camera is being used by another application
    UNKNOWN = "unknown"  # Unknown/generic failure


class CameraCapture:
    """
    One exclusively owned camera handle.

    Each detector acquires its own CameraCapture, even when several of them
    point at the same physical device. Supports use as a context manager.
    """

    def __init__(self, camera_index: int = None, width: int = None, height: int = None):
        """
        Initialize camera capture.

        Args:
            camera_index: Camera device index (default from config)
            width: Frame width in pixels (default from config)
            height: Frame height in pixels (default from config)
        """
        # Use explicit None check - 0 is a valid camera index!
        self.camera_index = camera_index if camera_index is not None else config.CAMERA_INDEX
        self.width = width if width is not None else config.FRAME_WIDTH
        self.height = height if height is not None else config.FRAME_HEIGHT
        self.cap: Optional[cv2.VideoCapture] = None
        self.is_opened = False
        self.error_message: Optional[str] = None
        self.failure_type: CameraFailureType = CameraFailureType.NONE

    def __enter__(self) -> 'CameraCapture':
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def acquire(self) -> bool:
        """
        Open the camera device and verify it delivers frames.

        Returns:
            True if camera opened successfully, False otherwise. On failure
            failure_type and error_message describe why.
        """
        if self.is_opened:
            return True
        try:
            # DirectShow initialises much faster on Windows; some cameras only
            # work with the default backend, so fall back to it
            if sys.platform == "win32":
                self.cap = cv2.VideoCapture(self.camera_index, cv2.CAP_DSHOW)
                if not self.cap.isOpened():
                    logger.info("DirectShow backend failed, trying default backend...")
                    self.cap = cv2.VideoCapture(self.camera_index)
            else:
                self.cap = cv2.VideoCapture(self.camera_index)

            if not self.cap.isOpened():
                logger.error(f"Failed to open camera at index {self.camera_index}")
                self.cap.release()
                self.cap = None
                self.failure_type, self.error_message = self._diagnose_camera_failure()
                return False

            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

            # isOpened() can be True without permission; the first read tells
            ret, test_frame = False, None
            for attempt in range(5):
                ret, test_frame = self.cap.read()
                if ret and test_frame is not None:
                    logger.debug(f"Camera ready (attempt {attempt + 1})")
                    break
                time.sleep(0.3)

            if not ret or test_frame is None:
                logger.error("Camera opened but cannot read frames - permission may be denied")
                self.cap.release()
                self.cap = None
                if sys.platform == "win32":
                    self.failure_type = CameraFailureType.IN_USE
                    self.error_message = (
                        "Camera may be in use by another application. "
                        "Close other apps using the camera and try again."
                    )
                else:
                    self.failure_type = CameraFailureType.PERMISSION_DENIED
                    self.error_message = "Unable to read from camera. Check camera permissions."
                return False

            self.is_opened = True
            self.failure_type = CameraFailureType.NONE
            self.error_message = None
            logger.info(
                f"Camera {self.camera_index} opened at "
                f"{int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x{int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
            )
            return True

        except Exception as e:
            logger.error(f"Camera {self.camera_index} acquisition failed: {e}")
            self.failure_type = CameraFailureType.UNKNOWN
            self.error_message = f"Camera acquisition failed: {e}"
            return False

    def _diagnose_camera_failure(self) -> Tuple[CameraFailureType, str]:
        """
        Guess why the camera could not be opened.

        Returns:
            Tuple of (CameraFailureType, error_message)
        """
        if self._count_available_cameras() == 0:
            logger.info("No camera hardware detected on this system")
            return CameraFailureType.NO_HARDWARE, (
                "No camera detected. Check that your webcam is connected "
                "and its drivers are installed."
            )
        return CameraFailureType.IN_USE, (
            "Camera is being used by another application. "
            "Close video conferencing or other camera apps and try again."
        )

    def _count_available_cameras(self, max_index: int = 4) -> int:
        """Number of device indices below max_index that open."""
        found = 0
        for index in range(max_index):
            candidate = cv2.VideoCapture(index)
            if candidate.isOpened():
                found += 1
            candidate.release()
        return found

    def release(self) -> None:
        """Close the camera. Safe to call repeatedly."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info(f"Camera {self.camera_index} released")
        self.is_opened = False

    def grab_frame(self) -> np.ndarray:
        """
        Read one frame from the acquired camera.

        Raises:
            CaptureError: If the camera is not acquired or the read fails.
        """
        if self.cap is None:
            raise CaptureError(f"Camera {self.camera_index} is not acquired")
        ret, frame = self.cap.read()
        if not ret or frame is None:
            raise CaptureError(f"No frame available from camera {self.camera_index}")
        return frame
