import os
import secrets
from datetime import datetime, timedelta, timezone
from pathlib import Path

DB_PATH = os.environ.get("DIETCARE_DB_PATH", "dietcare.db")
SECRET_KEY_PATH = Path(".app_secret_key")
APP_ENV = os.environ.get("APP_ENV", "development").strip().lower()
COOKIE_SECURE = APP_ENV == "production"

SESSION_TTL_SECONDS = 60 * 60 * 24 * 14
SESSION_COOKIE_NAME = "dietcare_session"
CSRF_COOKIE_NAME = "csrf_token"
OAUTH_STATE_COOKIE = "oauth_state"

PATIENT_HEADER = "x-patient-session"
PROFESSIONAL_HEADER = "x-professional-code"

ACCESS_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ACCESS_CODE_LENGTH = 8
ACCESS_CODE_TTL_DAYS = int(os.environ.get("ACCESS_CODE_TTL_DAYS", "30"))
ACCESS_CODE_MAX_ATTEMPTS = 5
ACCESS_CODE_INPUT_MIN = 6
ACCESS_CODE_INPUT_MAX = 20
REVOKED_CODE_PREFIX = "REVOKED-"
ROTATE_CODE_ON_WEIGHT = os.environ.get("ROTATE_CODE_ON_WEIGHT", "1").strip().lower() not in {"0", "false", "no"}

OAUTH_CLIENT_ID = os.environ.get("OAUTH_CLIENT_ID", "")
OAUTH_CLIENT_SECRET = os.environ.get("OAUTH_CLIENT_SECRET", "")
OAUTH_AUTHORIZE_URL = os.environ.get("OAUTH_AUTHORIZE_URL", "")
OAUTH_TOKEN_URL = os.environ.get("OAUTH_TOKEN_URL", "")
OAUTH_USERINFO_URL = os.environ.get("OAUTH_USERINFO_URL", "")
OAUTH_REDIRECT_URI = os.environ.get("OAUTH_REDIRECT_URI", "")
OAUTH_SCOPES = os.environ.get("OAUTH_SCOPES", "openid email profile")

# Reachable without credentials; the credential endpoints also skip the CSRF header check.
PUBLIC_API_PATHS = {
    "/api/patient/validate",
    "/api/auth/validate",
    "/api/professional/validate",
    "/api/auth/logout",
}

WEIGHT_MIN_KG = 30
WEIGHT_MAX_KG = 300
MAX_NOTES_LEN = 1000
MAX_NAME_LEN = 120
MAX_TAGS = 12
MAX_TAG_LEN = 40

STORAGE_FMT = "%Y-%m-%d %H:%M:%S"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def _to_storage(dt: datetime) -> str:
    """Format a naive UTC datetime for storage."""
    return dt.strftime(STORAGE_FMT)


def _from_storage(ts: str) -> datetime:
    return datetime.strptime(ts, STORAGE_FMT)


def _to_iso(ts: str) -> str:
    """Render a stored UTC timestamp as ISO 8601 for the API."""
    if not ts:
        return ""
    return _from_storage(ts).strftime("%Y-%m-%dT%H:%M:%SZ")


def _code_expiry_from_now() -> datetime:
    return _now_utc() + timedelta(days=ACCESS_CODE_TTL_DAYS)


def _load_secret_key() -> str:
    env_key = os.environ.get("APP_SECRET_KEY", "").strip()
    if env_key:
        return env_key
    if SECRET_KEY_PATH.exists():
        return SECRET_KEY_PATH.read_text(encoding="utf-8").strip()
    key = secrets.token_hex(32)
    SECRET_KEY_PATH.write_text(key, encoding="utf-8")
    return key


SECRET_KEY = _load_secret_key()
