"""
Alert policy: decides whether a distracted verdict becomes a visible alert.

Two gates apply in order. A snooze window suppresses surfacing entirely
(without touching the cooldown). Otherwise alerts closer together than
distraction_cooldown are rejected.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

import config
from core.models import AlertDetails, AlertType, DetectionResult
from core.scheduler import monotonic_ms
from core.settings import DetectionSettings

logger = logging.getLogger(__name__)

PHONE_CLAUSE = "Phone detected in view"
SLEEP_CLAUSE = "User appears to be sleeping"
INACTIVE_CLAUSE = "No activity detected"


class AlertOutcome(Enum):
    NOT_DISTRACTED = "not_distracted"
    SUPPRESSED = "suppressed"  # snoozed
    COOLDOWN = "cooldown"
    SURFACED = "surfaced"


def build_message(result: DetectionResult) -> str:
    """Composite alert text in fixed order: phone, sleep, inactivity."""
    clauses: List[str] = []
    if result.phone_detected:
        clauses.append(PHONE_CLAUSE)
    if result.sleep_detected:
        clauses.append(SLEEP_CLAUSE)
    if result.inactive:
        clauses.append(INACTIVE_CLAUSE)
    return ", ".join(clauses)


class AlertPolicy:
    """
    Cooldown and snooze gate in front of the alert surface and the notifier.

    Callbacks:
        on_alert(message: str)
        on_alert_dismissed()
    """

    def __init__(
        self,
        settings: DetectionSettings,
        notifier=None,
        clock: Callable[[], float] = monotonic_ms,
        snooze_duration: int = None,
    ):
        self.settings = settings
        self.notifier = notifier
        self.clock = clock
        self.snooze_duration = snooze_duration if snooze_duration is not None else config.SNOOZE_DURATION_MS

        self.last_distraction_time: Optional[float] = None
        self.snooze_until: Optional[float] = None
        self.alert_visible = False
        self.current_message = ""

        self.on_alert: Optional[Callable[[str], None]] = None
        self.on_alert_dismissed: Optional[Callable[[], None]] = None

    def is_snoozed(self) -> bool:
        return self.snooze_until is not None and self.clock() < self.snooze_until

    def evaluate(self, result: DetectionResult) -> AlertOutcome:
        """
        Apply the policy to one aggregated verdict.

        Args:
            result: Merged cycle result.

        Returns:
            What happened to the verdict.
        """
        if not result.is_distracted:
            return AlertOutcome.NOT_DISTRACTED

        now = self.clock()
        if self.is_snoozed():
            logger.info(f"Distraction during snooze ({(self.snooze_until - now) / 1000:.0f}s left), not alerting")
            return AlertOutcome.SUPPRESSED

        if (
            self.last_distraction_time is not None
            and now - self.last_distraction_time < self.settings.distraction_cooldown
        ):
            logger.debug("Distraction within cooldown, not alerting")
            return AlertOutcome.COOLDOWN

        self.last_distraction_time = now
        self._surface(build_message(result))
        return AlertOutcome.SURFACED

    def _surface(self, message: str) -> None:
        self.current_message = message
        self.alert_visible = True
        logger.warning(f"DISTRACTION ALERT: {message}")

        if self.on_alert:
            try:
                self.on_alert(message)
            except Exception as e:
                logger.debug(f"on_alert callback error: {e}")

        if self.notifier is not None and self.notifier.is_ready():
            self.notifier.send_alert_async(AlertDetails(AlertType.GENERAL, message))

    def snooze(self) -> None:
        """Suppress alerts for the snooze duration and hide the current one."""
        self.snooze_until = self.clock() + self.snooze_duration
        logger.info(f"Alerts snoozed for {self.snooze_duration // 1000}s")
        self.dismiss()

    def dismiss(self) -> None:
        """Hide the visible alert. Cooldown and snooze are untouched."""
        if not self.alert_visible:
            return
        self.alert_visible = False
        self.current_message = ""
        if self.on_alert_dismissed:
            try:
                self.on_alert_dismissed()
            except Exception as e:
                logger.debug(f"on_alert_dismissed callback error: {e}")

    def reset(self) -> None:
        """Forget cooldown, snooze and the visible alert (on stop)."""
        self.dismiss()
        self.last_distraction_time = None
        self.snooze_until = None
