"""Data model shared by the detectors, the aggregator and the controller."""

from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Optional


class AlertType(Enum):
    """Kinds of alerts forwarded to the notification collaborator."""
    PHONE = "phone"
    SLEEP = "sleep"
    INACTIVE = "inactive"
    PROCESS = "process"
    GENERAL = "general"
    START = "start"
    STOP = "stop"
    FORCED_STOP = "forced_stop"


class Phase(Enum):
    """Controller phases. ACTIVE and COOLDOWN are the two halves of RUNNING."""
    IDLE = "idle"
    ACTIVE = "active"
    COOLDOWN = "cooldown"


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of one detector check or one aggregated cycle.

    Every field is always present; a detector only ever sets its own.
    """
    phone_detected: bool = False
    sleep_detected: bool = False
    inactive: bool = False
    suspicious_processes: bool = False

    @property
    def is_distracted(self) -> bool:
        """Suspicious processes are informational and never count here."""
        return self.phone_detected or self.sleep_detected or self.inactive

    def merge(self, other: "DetectionResult") -> "DetectionResult":
        """OR another result into this one."""
        return DetectionResult(
            phone_detected=self.phone_detected or other.phone_detected,
            sleep_detected=self.sleep_detected or other.sleep_detected,
            inactive=self.inactive or other.inactive,
            suspicious_processes=self.suspicious_processes or other.suspicious_processes,
        )


@dataclass
class UserActivity:
    """Last-interaction clock. Timestamps are monotonic milliseconds."""
    last_activity: float
    is_inactive: bool = False
    inactive_duration: float = 0.0

    def copy(self) -> "UserActivity":
        return replace(self)


@dataclass(frozen=True)
class ProcessInfo:
    """A running process, classified once when the list is acquired."""
    name: str
    pid: int
    suspicious: bool = False


@dataclass(frozen=True)
class AlertDetails:
    """A single notification. Never retained after dispatch."""
    type: AlertType
    message: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class RecordingState:
    """Screen recording owned by the controller for one capture session."""
    is_recording: bool = False
    chunks: Deque[bytes] = field(default_factory=deque)
    recorder: Optional[Any] = None
    started_at: Optional[float] = None

    def reset(self) -> None:
        self.is_recording = False
        self.chunks = deque(maxlen=self.chunks.maxlen)
        self.recorder = None
        self.started_at = None
