"""Consecutive-hit debounce shared by the frame-sampled detectors."""

import logging
import math
from collections import deque
from typing import Deque, Optional

logger = logging.getLogger(__name__)


def threshold_from_setting(setting: float) -> int:
    """
    Rescale a 0-1 confidence setting into a 0-10 consecutive-sample count.

    Rounds half up (0.25 -> 3), unlike Python's round() which rounds half
    to even.

    Args:
        setting: Confidence threshold in [0, 1].

    Returns:
        Number of consecutive hits required for a stable detection.
    """
    return int(math.floor(setting * 10 + 0.5))


class HysteresisTracker:
    """
    Turns a noisy per-sample hit/miss signal into a stable boolean.

    A hit increments the counter; a miss decrements it, floored at zero.
    Detection is stable once the counter reaches the threshold, so a single
    favourable sample never triggers and isolated misses do not instantly
    clear a building detection.
    """

    def __init__(self, threshold: int):
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        self.threshold = threshold
        self.count = 0
        self.stable = False

    def update(self, hit: bool) -> bool:
        """
        Feed one sample.

        Args:
            hit: Whether this sample exceeded the detector's cutoff.

        Returns:
            The stable detection after this sample.
        """
        if hit:
            self.count += 1
        else:
            self.count = max(0, self.count - 1)
        self.stable = self.count >= self.threshold
        return self.stable

    def reset(self) -> None:
        self.count = 0
        self.stable = False


class ScoreWindow:
    """Bounded sliding window of recent scores with a running average."""

    def __init__(self, capacity: int):
        self._scores: Deque[float] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._scores)

    @property
    def capacity(self) -> Optional[int]:
        return self._scores.maxlen

    def push(self, score: float) -> float:
        """Add a score (evicting the oldest when full) and return the new average."""
        self._scores.append(score)
        return self.average()

    def average(self) -> float:
        if not self._scores:
            return 0.0
        return sum(self._scores) / len(self._scores)

    def clear(self) -> None:
        self._scores.clear()
