"""Detector capability shared by every detector variant."""

import logging
from enum import Enum
from typing import Protocol

from core.models import DetectionResult
from core.settings import DetectionSettings

logger = logging.getLogger(__name__)


class DetectorKind(Enum):
    """Tag identifying which DetectionResult field a detector owns."""
    PHONE = "phone"
    SLEEP = "sleep"
    ACTIVITY = "activity"
    PROCESS = "process"


class Detector(Protocol):
    """
    Capability every detector exposes to the aggregator and controller.

    check() on an inactive detector returns an all-False result.
    activate() acquires whatever the detector needs and reports success;
    a failed activation leaves the detector disabled without affecting others.
    """

    kind: DetectorKind

    @property
    def is_active(self) -> bool:
        ...

    def check(self) -> DetectionResult:
        ...

    def activate(self) -> bool:
        ...

    def deactivate(self) -> None:
        ...

    def dispose(self) -> None:
        ...


class BaseDetector:
    """Active/inactive lifecycle and last-result bookkeeping."""

    kind: DetectorKind

    def __init__(self, settings: DetectionSettings):
        self.settings = settings
        self._active = False
        self.last_result = DetectionResult()

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def is_active(self) -> bool:
        return self._active

    def activate(self) -> bool:
        self._active = True
        return True

    def deactivate(self) -> None:
        self._active = False

    def check(self) -> DetectionResult:
        if not self._active:
            return DetectionResult()
        result = self._check()
        self.last_result = result
        return result

    def _check(self) -> DetectionResult:
        raise NotImplementedError

    def dispose(self) -> None:
        self.deactivate()
        self.last_result = DetectionResult()
