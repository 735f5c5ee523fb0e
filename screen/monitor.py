"""
Screen capture resource and screen recording.

Screen capture is optional: if the screen cannot be grabbed the monitor
still reports itself as started, in fallback (camera-only) mode.
"""

import logging
from collections import deque
from io import BytesIO
from typing import Any, Callable, Optional

from PIL import Image, ImageGrab

import config
from core.models import RecordingState
from core.scheduler import Dispatcher, monotonic_ms

logger = logging.getLogger(__name__)


def grab_screen() -> Image.Image:
    """Grab the whole screen with PIL ImageGrab."""
    return ImageGrab.grab()


def encode_chunk(image: Image.Image, max_size=(800, 600), quality: int = 70) -> bytes:
    """
    Downscale and JPEG-encode a screen grab.

    Args:
        image: PIL image of the screen.
        max_size: Bounding box for the thumbnail.
        quality: JPEG quality.

    Returns:
        Encoded bytes.
    """
    image = image.copy()
    image.thumbnail(max_size, Image.Resampling.LANCZOS)
    if image.mode != "RGB":
        image = image.convert("RGB")
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class ScreenMonitor:
    """Owns the screen capture handle and the fallback-mode flag."""

    def __init__(self, grabber: Callable[[], Any] = grab_screen):
        self._grabber = grabber
        self._handle: Optional[Callable[[], Any]] = None
        self.is_active = False
        self.fallback_mode = True

    def start(self) -> bool:
        """
        Try to acquire the screen.

        Always returns True: an unavailable screen only switches on fallback mode.
        """
        try:
            if self._grabber() is None:
                raise RuntimeError("screen grab returned nothing")
            self._handle = self._grabber
            self.fallback_mode = False
            logger.info("Screen capture available")
        except Exception as e:
            logger.warning(f"Screen recording not available, using camera-only mode: {e}")
            self._handle = None
            self.fallback_mode = True
        self.is_active = True
        return True

    def is_using_fallback(self) -> bool:
        return self.fallback_mode

    def grab_chunk(self) -> Optional[bytes]:
        """Grab and encode one screen frame, or None in fallback mode."""
        if self._handle is None:
            return None
        return encode_chunk(self._handle())

    def stop(self) -> None:
        self._handle = None
        self.is_active = False

    def dispose(self) -> None:
        self.stop()


class ScreenRecorder:
    """
    Records the screen into a RecordingState, one chunk per interval.

    The controller owns the RecordingState; chunks are dropped on stop().
    Only the most recent max_chunks chunks are kept.
    """

    def __init__(
        self,
        monitor: ScreenMonitor,
        dispatcher: Dispatcher,
        state: RecordingState,
        chunk_interval_ms: int = None,
        clock: Callable[[], float] = monotonic_ms,
        max_chunks: int = None,
    ):
        self.monitor = monitor
        self.dispatcher = dispatcher
        self.state = state
        self.chunk_interval_ms = chunk_interval_ms or config.SCREEN_RECORD_CHUNK_MS
        self.clock = clock
        self.max_chunks = max_chunks or config.SCREEN_RECORD_MAX_CHUNKS

    def start(self) -> bool:
        """
        Begin recording.

        Returns:
            False if the monitor is in fallback mode or already recording.
        """
        if self.state.is_recording:
            return False
        if self.monitor.is_using_fallback():
            logger.info("Screen recording skipped (fallback mode)")
            return False
        self.state.chunks = deque(maxlen=self.max_chunks)
        self.state.recorder = self.dispatcher.call_every(self.chunk_interval_ms, self._capture_chunk)
        self.state.is_recording = True
        self.state.started_at = self.clock()
        logger.info("Screen recording started")
        return True

    def _capture_chunk(self) -> None:
        if not self.state.is_recording:
            return
        try:
            chunk = self.monitor.grab_chunk()
        except Exception as e:
            logger.warning(f"Screen chunk capture failed: {e}")
            return
        if chunk:
            self.state.chunks.append(chunk)

    def stop(self) -> int:
        """
        Stop recording and drop the buffered chunks.

        Returns:
            Number of bytes that had been recorded.
        """
        if not self.state.is_recording:
            return 0
        if self.state.recorder is not None:
            self.state.recorder.cancel()
        total = sum(len(chunk) for chunk in self.state.chunks)
        logger.info(f"Screen recording stopped: {total} bytes in {len(self.state.chunks)} chunks")
        self.state.reset()
        return total
