import json
import os
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv

from .exceptions import ConfigurationMissing

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Firebase Realtime Database ---
# The service account is the full JSON credential bundle, pasted as one value.
FIREBASE_SERVICE_ACCOUNT = os.getenv("FIREBASE_SERVICE_ACCOUNT")
FIREBASE_DB_URL = os.getenv("FIREBASE_DB_URL")
INVENTORY_PATH = os.getenv("INVENTORY_PATH", "inventory_live_v1")
CONTACTS_PATH = os.getenv("CONTACTS_PATH", "study_contacts")

# --- SendGrid ---
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDER_EMAIL = os.getenv("SENDER_EMAIL")
SENDER_NAME = os.getenv("SENDER_NAME")

# --- Runtime ---
ALERT_TIMEZONE = os.getenv("ALERT_TIMEZONE", "UTC")
SCHEDULE_TIME = os.getenv("SCHEDULE_TIME", "08:00")
# Numeric values stay as text here; require_settings() reports bad values as configuration errors.
DISPATCH_WORKERS = os.getenv("DISPATCH_WORKERS", "8")
REQUEST_TIMEOUT = os.getenv("REQUEST_TIMEOUT", "15")
LOG_DIR = BASE_DIR / os.getenv("LOG_DIR", "logs")

# --- Shared Business Logic ---
# Days-left values that trigger a notification. Anything else is silent.
ALERT_MILESTONES = (30, 15, 5, 0)

AVAILABLE_STATUS = "Available"
UNKNOWN_STUDY = "Unknown"

REQUIRED_SETTINGS = [
    "FIREBASE_SERVICE_ACCOUNT",
    "FIREBASE_DB_URL",
    "SENDGRID_API_KEY",
    "SENDER_EMAIL",
]


def get_missing_settings() -> list[str]:
    """Names of required settings that are unset or blank."""
    return [name for name in REQUIRED_SETTINGS if not (globals().get(name) or "").strip()]


def require_settings():
    """
    Fails fast when the job cannot possibly run.
    Called before any client is built, so nothing is read or sent on failure.
    """
    missing = get_missing_settings()
    if missing:
        raise ConfigurationMissing(
            f"Missing required configuration: {', '.join(missing)}"
        )
    # Parse once here so a malformed value is reported as configuration, not as a read error.
    service_account_info()
    alert_zone()
    dispatch_workers()
    request_timeout()


def service_account_info() -> dict:
    """Parses the FIREBASE_SERVICE_ACCOUNT JSON bundle."""
    try:
        info = json.loads(FIREBASE_SERVICE_ACCOUNT or "")
    except json.JSONDecodeError as e:
        raise ConfigurationMissing(
            f"FIREBASE_SERVICE_ACCOUNT is not valid JSON: {e}"
        ) from e
    if not isinstance(info, dict):
        raise ConfigurationMissing("FIREBASE_SERVICE_ACCOUNT must be a JSON object.")
    return info


@lru_cache(maxsize=None)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def alert_zone() -> ZoneInfo:
    """The zone that decides which calendar day counts as today."""
    try:
        return _zone(ALERT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationMissing(f"ALERT_TIMEZONE '{ALERT_TIMEZONE}' is not a known time zone.") from e


def dispatch_workers() -> int:
    try:
        workers = int(DISPATCH_WORKERS)
    except (TypeError, ValueError) as e:
        raise ConfigurationMissing(f"DISPATCH_WORKERS must be an integer, got '{DISPATCH_WORKERS}'.") from e
    if workers < 1:
        raise ConfigurationMissing(f"DISPATCH_WORKERS must be at least 1, got {workers}.")
    return workers


def request_timeout() -> float:
    try:
        timeout = float(REQUEST_TIMEOUT)
    except (TypeError, ValueError) as e:
        raise ConfigurationMissing(f"REQUEST_TIMEOUT must be a number of seconds, got '{REQUEST_TIMEOUT}'.") from e
    if timeout <= 0:
        raise ConfigurationMissing(f"REQUEST_TIMEOUT must be positive, got {timeout}.")
    return timeout
