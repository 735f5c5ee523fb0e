"""Configuration settings for Focus Watchdog."""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def get_base_dir() -> Path:
    """
    Get the base directory for the application.

    Returns:
        Path to the directory containing this file.
    """
    return Path(__file__).parent


# Explicitly load from the project root (where config.py lives)
# so .env is found regardless of current working directory
_env_path = get_base_dir() / ".env"
load_dotenv(_env_path)

BASE_DIR = get_base_dir()


def _get_number(env_var: str, default, cast=int):
    """
    Read a numeric setting from the environment.

    Args:
        env_var: Environment variable name.
        default: Value used when the variable is unset or malformed.
        cast: int or float.

    Returns:
        The parsed value, or default.
    """
    raw = os.getenv(env_var, "")
    if not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        logger.warning(f"{env_var}={raw!r} is not a valid number, using default {default}")
        return default


# --- Detection settings (fixed for the lifetime of a controller) ---
# Bounds for the randomised cooldown between capture windows (milliseconds)
CHECK_INTERVAL_MIN_MS = _get_number("CHECK_INTERVAL_MIN_MS", 5000)
CHECK_INTERVAL_MAX_MS = _get_number("CHECK_INTERVAL_MAX_MS", 15000)

# 0-1 confidence settings, rescaled to 0-10 consecutive samples
PHONE_DETECTION_THRESHOLD = _get_number("PHONE_DETECTION_THRESHOLD", 0.7, float)
SLEEP_DETECTION_THRESHOLD = _get_number("SLEEP_DETECTION_THRESHOLD", 0.6, float)

INACTIVITY_THRESHOLD_MS = _get_number("INACTIVITY_THRESHOLD_MS", 30000)

# Minimum gap between two surfaced distraction alerts
DISTRACTION_COOLDOWN_MS = _get_number("DISTRACTION_COOLDOWN_MS", 60000)

# Snooze window after the user presses "snooze" on an alert
SNOOZE_DURATION_MS = 300000

# --- Notifications ---
DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL", "")
WEBHOOK_TIMEOUT_SECONDS = 10

# --- Camera ---
CAMERA_INDEX = _get_number("CAMERA_INDEX", 0)
FRAME_WIDTH = 640
FRAME_HEIGHT = 480

# Length of the bounded playback that marks one capture window
CAPTURE_WINDOW_SECONDS = _get_number("CAPTURE_WINDOW_SECONDS", 10, float)

# --- Timers (milliseconds) ---
ELAPSED_TIMER_INTERVAL_MS = 1000
ACTIVITY_POLL_INTERVAL_MS = 1000
PROCESS_POLL_INTERVAL_MS = 5000
SCREEN_RECORD_CHUNK_MS = 1000
SCREEN_RECORD_MAX_CHUNKS = 300  # Oldest chunks are dropped past this

# --- Scoring cutoffs ---
PHONE_SCORE_CUTOFF = 0.5  # Per-frame phone confidence counted as a hit
SLEEP_OPENNESS_CUTOFF = 0.3  # Windowed eye openness below this counts as a hit
SLEEP_HISTORY_SIZE = 30  # Most recent eye-openness scores kept for averaging

# Input event kinds that count as user activity
ACTIVITY_EVENT_KINDS = frozenset({
    "pointer_down",
    "key_down",
    "scroll",
    "touch_start",
    "pointer_move",
})

# Lowercased substrings that flag a running process as suspicious
SUSPICIOUS_PROCESS_PATTERNS = (
    "screen recording",
    "screen recorder",
    "obs",
    "bandicam",
    "camtasia",
    "virtual camera",
    "camera bypass",
    "screenshot",
)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # Can override in .env: DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
