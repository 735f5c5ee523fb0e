"""Immutable detection settings and their validation."""

import logging
from dataclasses import dataclass

import config

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when detection settings cannot be used to start a run."""


@dataclass(frozen=True)
class DetectionSettings:
    """
    Settings fixed for the lifetime of a controller.

    All durations are in milliseconds. The two detection thresholds are 0-1
    confidence values; frame detectors rescale them into consecutive-sample
    counts (see camera.hysteresis.threshold_from_setting).
    """
    check_interval_min: int = 5000
    check_interval_max: int = 15000
    phone_detection_threshold: float = 0.7
    sleep_detection_threshold: float = 0.6
    inactivity_threshold: int = 30000
    distraction_cooldown: int = 60000

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check the invariants the controller relies on.

        Raises:
            ConfigurationError: If any setting is out of range.
        """
        for name in ("check_interval_min", "check_interval_max"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(
                    f"{name} must be a whole number of milliseconds, got {value!r}"
                )
        if self.check_interval_min < 0:
            raise ConfigurationError(
                f"checkIntervalMin must be non-negative, got {self.check_interval_min}"
            )
        if self.check_interval_min > self.check_interval_max:
            raise ConfigurationError(
                f"checkIntervalMin ({self.check_interval_min}) must not exceed "
                f"checkIntervalMax ({self.check_interval_max})"
            )
        for name in ("phone_detection_threshold", "sleep_detection_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        if self.inactivity_threshold < 0:
            raise ConfigurationError(
                f"inactivityThreshold must be non-negative, got {self.inactivity_threshold}"
            )
        if self.distraction_cooldown < 0:
            raise ConfigurationError(
                f"distractionCooldown must be non-negative, got {self.distraction_cooldown}"
            )

    @classmethod
    def from_config(cls) -> "DetectionSettings":
        """Build settings from config.py (and therefore from .env)."""
        settings = cls(
            check_interval_min=config.CHECK_INTERVAL_MIN_MS,
            check_interval_max=config.CHECK_INTERVAL_MAX_MS,
            phone_detection_threshold=config.PHONE_DETECTION_THRESHOLD,
            sleep_detection_threshold=config.SLEEP_DETECTION_THRESHOLD,
            inactivity_threshold=config.INACTIVITY_THRESHOLD_MS,
            distraction_cooldown=config.DISTRACTION_COOLDOWN_MS,
        )
        logger.debug(f"Detection settings loaded: {settings}")
        return settings
