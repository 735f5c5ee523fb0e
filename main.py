#!/usr/bin/env python3
"""
Focus Watchdog - Main Entry Point

Monitors attentiveness via webcam (phone in view, signs of sleep), input
inactivity and suspicious background processes, and raises rate-limited
alerts with optional Discord notifications.

Usage:
    python main.py                 # Interactive console
    python main.py --start         # Start monitoring immediately
    python main.py --probe         # Check camera/screen access and exit
"""

import sys
import atexit
import signal
import logging
import argparse
import threading
from typing import Optional

import config
from core.controller import SurveillanceController
from core.models import DetectionResult
from core.scheduler import Dispatcher
from core.settings import ConfigurationError, DetectionSettings
from notifications.discord import DiscordNotifier

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Suppress noisy third-party library logs (HTTP requests, etc.)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("PIL").setLevel(logging.WARNING)

COMMANDS = """Commands:
  start     Start monitoring
  stop      Stop monitoring
  snooze    Snooze alerts for 5 minutes
  dismiss   Dismiss the current alert
  status    Show current status
  probe     Check camera and screen access
  quit      Stop and exit
"""


class WatchdogConsole:
    """
    Thin console front end around one SurveillanceController.

    Every command is handed to the dispatcher; nothing here touches
    controller state directly. Each line typed counts as keyboard activity.
    """

    def __init__(self, controller: SurveillanceController, dispatcher: Dispatcher):
        self.controller = controller
        self.dispatcher = dispatcher
        self._terminated = threading.Event()
        self._wire_callbacks()

    def _wire_callbacks(self) -> None:
        self.controller.on_status_change = self._on_status_change
        self.controller.on_alert = self._on_alert
        self.controller.on_alert_dismissed = lambda: print("Alert dismissed")
        self.controller.on_cycle_result = self._on_cycle_result
        self.controller.on_error = self._on_error

    def _on_status_change(self, status: str, text: str) -> None:
        print(f"[{status}] {text}")

    def _on_alert(self, message: str) -> None:
        print("\n" + "=" * 60)
        print(f"⚠️  DISTRACTION: {message}")
        print("   Type 'dismiss' or 'snooze'")
        print("=" * 60)

    def _on_cycle_result(self, result: DetectionResult, details: dict) -> None:
        flags = [
            f"phone={'yes' if result.phone_detected else 'no'}",
            f"sleep={'yes' if result.sleep_detected else 'no'}",
            f"inactive={'yes' if result.inactive else 'no'} ({details['inactive_seconds']}s)",
            f"processes={details['process_count']}",
        ]
        if details["suspicious_processes"]:
            flags.append(f"suspicious={', '.join(details['suspicious_processes'])}")
        print(f"Cycle {details['cycle']}: " + "  ".join(flags))

    def _on_error(self, error_type: str, message: str) -> None:
        print(f"❌ {message}")

    def _print_status(self) -> None:
        status = self.controller.get_status()
        print(f"Phase: {status['phase']}  Elapsed: {status['elapsed_text']}  Cycles: {status['cycle_count']}")
        if status["screen_fallback"] and status["is_running"]:
            print("Screen capture unavailable (camera-only mode)")
        if status["alert_visible"]:
            print(f"Alert: {status['alert_message']}")
        if status["snoozed_until"] is not None:
            print("Alerts snoozed")

    def _print_permissions(self) -> None:
        result = self.controller.request_permissions()
        print(f"Camera: {'ok' if result['camera'] else 'unavailable'}")
        print(f"Screen: {'ok' if result['screen'] else 'unavailable'}")

    def handle_command(self, line: str) -> bool:
        """
        Dispatch one console line.

        Returns:
            False when the console should exit.
        """
        self.controller.post_activity("key_down")
        command = line.strip().lower()
        actions = {
            "start": self.controller.start,
            "stop": self.controller.stop,
            "snooze": self.controller.snooze,
            "dismiss": self.controller.dismiss_alert,
            "status": self._print_status,
            "probe": self._print_permissions,
        }
        if command in ("quit", "exit", "q"):
            self.dispatcher.submit(self.controller.stop)
            return False
        if command in actions:
            self.dispatcher.submit(actions[command])
        elif command in ("help", "?"):
            print(COMMANDS)
        elif command:
            print(f"Unknown command: {command}")
        return True

    def terminate(self) -> None:
        """Forced-termination path (signals and interpreter exit)."""
        if self._terminated.is_set():
            return
        self._terminated.set()
        self.dispatcher.submit(self.controller.handle_forced_termination)
        self.dispatcher.shutdown()

    def run(self) -> None:
        print("\n" + "=" * 60)
        print("👁️  Focus Watchdog")
        print("=" * 60)
        print(COMMANDS)
        for line in sys.stdin:
            if not self.handle_command(line):
                break
        else:
            # stdin closed
            self.dispatcher.submit(self.controller.stop)
        self._terminated.set()
        self.dispatcher.shutdown()
        print("\n👋 Goodbye!")


def build_controller(dispatcher: Dispatcher, webhook_url: Optional[str] = None) -> SurveillanceController:
    """
    Construct the controller from config.

    Raises:
        ConfigurationError: If the detection settings are invalid.
    """
    settings = DetectionSettings.from_config()
    notifier = DiscordNotifier(webhook_url)
    if not notifier.is_ready():
        logger.info("Discord notifications disabled (no webhook URL)")
    return SurveillanceController(settings=settings, notifier=notifier, dispatcher=dispatcher)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Focus Watchdog - camera, activity and process monitoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                Interactive console
  python main.py --start        Start monitoring immediately
  python main.py --probe        Check camera/screen access and exit
        """
    )
    parser.add_argument("--start", action="store_true", help="Start monitoring immediately")
    parser.add_argument("--probe", action="store_true", help="Probe camera and screen access, then exit")
    parser.add_argument("--webhook", default=None, help="Discord webhook URL (overrides DISCORD_WEBHOOK_URL)")
    args = parser.parse_args()

    dispatcher = Dispatcher()
    try:
        controller = build_controller(dispatcher, args.webhook)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"\n❌ Invalid configuration: {e}")
        sys.exit(1)

    if args.probe:
        result = controller.request_permissions()
        sys.exit(0 if result["camera"] else 1)

    dispatcher.start()
    console = WatchdogConsole(controller, dispatcher)

    atexit.register(console.terminate)

    def _on_signal(signum, frame):
        logger.info(f"Received signal {signum}, terminating")
        console.terminate()
        sys.exit(0)

    signal.signal(signal.SIGTERM, _on_signal)
    signal.signal(signal.SIGINT, _on_signal)

    if args.start:
        dispatcher.submit(controller.start)

    try:
        console.run()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"\nFatal error: {e}")
        console.terminate()
        sys.exit(1)


if __name__ == "__main__":
    main()
