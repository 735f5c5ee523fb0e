"""
Discord webhook notifications.

Delivery is best-effort and at-most-once: a failed send is logged and
reported as False, never retried.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional

import requests

import config
from core.models import AlertDetails, AlertType

logger = logging.getLogger(__name__)

WEBHOOK_MARKER = "discord.com/api/webhooks"

ALERT_COLORS = {
    AlertType.PHONE: 0xFF6B6B,
    AlertType.SLEEP: 0xFFD93D,
    AlertType.INACTIVE: 0x6BCB77,
    AlertType.PROCESS: 0xFF8C42,
    AlertType.GENERAL: 0x4A90D9,
    AlertType.START: 0x4CAF50,
    AlertType.STOP: 0x4A90D9,
    AlertType.FORCED_STOP: 0xF44336,
}

ALERT_TITLES = {
    AlertType.PHONE: "📱 Phone Detected!",
    AlertType.SLEEP: "😴 Sleep Detected!",
    AlertType.INACTIVE: "⚠️ User Inactive!",
    AlertType.PROCESS: "⚙️ Suspicious Process!",
    AlertType.GENERAL: "⚠️ Distraction Detected!",
    AlertType.START: "🎬 Surveillance Started",
    AlertType.STOP: "🛑 Surveillance Stopped",
    AlertType.FORCED_STOP: "💥 Surveillance Forcefully Stopped!",
}

ALERT_LABELS = {
    AlertType.PHONE: "Phone Detection",
    AlertType.SLEEP: "Sleep Detection",
    AlertType.INACTIVE: "Inactivity",
    AlertType.PROCESS: "Suspicious Process",
    AlertType.GENERAL: "Distraction Alert",
    AlertType.START: "Surveillance Start",
    AlertType.STOP: "Surveillance Stop",
    AlertType.FORCED_STOP: "Forced Termination",
}

DEFAULT_COLOR = 0x4A90D9


def is_valid_webhook_url(url: str) -> bool:
    return len(url) > 0 and WEBHOOK_MARKER in url


def build_payload(alert: AlertDetails) -> Dict[str, Any]:
    """
    Build the webhook JSON body for an alert.

    Args:
        alert: Alert to render.

    Returns:
        {"embeds": [...]} payload.
    """
    return {
        "embeds": [{
            "title": ALERT_TITLES.get(alert.type, "⚠️ Alert"),
            "description": alert.message,
            "color": ALERT_COLORS.get(alert.type, DEFAULT_COLOR),
            "timestamp": alert.timestamp.isoformat(),
            "fields": [
                {"name": "Time", "value": alert.timestamp.strftime("%H:%M:%S"), "inline": True},
                {"name": "Type", "value": ALERT_LABELS.get(alert.type, "Alert"), "inline": True},
            ],
        }]
    }


class DiscordNotifier:
    """Sends AlertDetails to a Discord webhook."""

    def __init__(self, webhook_url: Optional[str] = None, timeout: float = None,
                 session: Optional[requests.Session] = None):
        self.webhook_url = ""
        self.is_configured = False
        self.timeout = timeout if timeout is not None else config.WEBHOOK_TIMEOUT_SECONDS
        self._session = session or requests.Session()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="discord")
        self.set_webhook_url(webhook_url if webhook_url is not None else config.DISCORD_WEBHOOK_URL)

    def set_webhook_url(self, url: str) -> None:
        self.webhook_url = (url or "").strip()
        self.is_configured = is_valid_webhook_url(self.webhook_url)
        if self.webhook_url and not self.is_configured:
            logger.warning("DISCORD_WEBHOOK_URL does not look like a Discord webhook URL")

    def is_ready(self) -> bool:
        return self.is_configured

    def send_alert(self, alert: AlertDetails) -> bool:
        """
        Deliver one alert.

        Returns:
            True on a 2xx response; False if unconfigured or delivery failed.
        """
        if not self.is_configured:
            logger.warning("Discord webhook not configured")
            return False
        return self._post(build_payload(alert))

    def send_alert_async(self, alert: AlertDetails) -> Future:
        """
        Queue an alert on the notifier's single worker thread.

        Sends keep their submission order. The future resolves to the
        same boolean send_alert() returns.
        """
        return self._executor.submit(self.send_alert, alert)

    def send_alert_nowait(self, alert: AlertDetails) -> None:
        """Fire-and-forget send for shutdown paths that cannot wait."""
        if not self.is_configured:
            logger.warning("Discord webhook not configured")
            return
        threading.Thread(target=self.send_alert, args=(alert,), daemon=True).start()

    def _post(self, payload: Dict[str, Any]) -> bool:
        try:
            response = self._session.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Failed to send Discord notification: {e}")
            return False
        ok = 200 <= int(getattr(response, "status_code", 0)) < 300
        if not ok:
            logger.error(f"Discord webhook rejected notification: HTTP {response.status_code}")
        return ok

    def test_connection(self) -> bool:
        """Send a test embed; returns delivery success."""
        if not self.is_configured:
            return False
        alert = AlertDetails(AlertType.START, "Focus Watchdog notification test successful!")
        payload = build_payload(alert)
        payload["embeds"][0]["title"] = "🔔 Test Notification"
        payload["embeds"][0]["fields"] = []
        return self._post(payload)

    def dispose(self) -> None:
        self._executor.shutdown(wait=False)
        self.webhook_url = ""
        self.is_configured = False
