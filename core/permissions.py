"""
Camera and screen access probes.

Each probe acquires the device once and releases it immediately, so the OS
permission prompt (where there is one) appears before monitoring starts.
"""

import sys
import logging
from typing import Callable, Dict, Optional

from camera.capture import CameraCapture
from screen.monitor import grab_screen

logger = logging.getLogger(__name__)


def check_macos_camera_permission() -> str:
    """
    Check macOS camera authorization status via AVFoundation.

    Returns:
        One of: "authorized", "denied", "not_determined", "restricted", "unknown"
    """
    if sys.platform != "darwin":
        return "authorized"

    try:
        import objc

        objc.loadBundle(
            'AVFoundation',
            bundle_path='/System/Library/Frameworks/AVFoundation.framework',
            module_globals=globals()
        )
        AVCaptureDevice = objc.lookUpClass('AVCaptureDevice')
        status = AVCaptureDevice.authorizationStatusForMediaType_("vide")
        status_map = {
            0: "not_determined",
            1: "restricted",
            2: "denied",
            3: "authorized",
        }
        return status_map.get(status, "unknown")

    except ImportError:
        logger.debug("PyObjC not available, cannot check camera permission status")
        return "unknown"
    except Exception as e:
        logger.debug(f"Error checking camera permission: {e}")
        return "unknown"


def probe_camera(camera_index: Optional[int] = None) -> bool:
    """
    Open and immediately release the camera.

    Returns:
        True if a frame could be read.
    """
    if check_macos_camera_permission() in ("denied", "restricted"):
        logger.warning("Camera access denied in System Settings")
        return False

    capture = CameraCapture(camera_index=camera_index)
    try:
        ok = capture.acquire()
        if not ok:
            logger.warning(f"Camera probe failed: {capture.error_message}")
        return ok
    finally:
        capture.release()


def probe_screen(grabber: Optional[Callable] = None) -> bool:
    """
    Try one screen grab.

    Returns:
        True if the screen could be captured.
    """
    try:
        return (grabber or grab_screen)() is not None
    except Exception as e:
        logger.warning(f"Screen probe failed: {e}")
        return False


def request_permissions(
    camera_probe: Callable[[], bool] = probe_camera,
    screen_probe: Callable[[], bool] = probe_screen,
) -> Dict[str, bool]:
    """
    Probe both devices once.

    Returns:
        {"camera": bool, "screen": bool}
    """
    result = {"camera": bool(camera_probe()), "screen": bool(screen_probe())}
    logger.info(f"Permission probe: camera={result['camera']}, screen={result['screen']}")
    return result
