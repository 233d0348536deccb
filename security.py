import hmac
import logging
import secrets
import threading
from collections import defaultdict
from time import time

from fastapi import Request

from config import (
    COOKIE_SECURE,
    CSRF_COOKIE_NAME,
    SECRET_KEY,
    SESSION_COOKIE_NAME,
    SESSION_TTL_SECONDS,
)
from db import get_db

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# In-memory rate limiting (per-IP, resets on server restart)
# ---------------------------------------------------------------------------
_rate_lock = threading.Lock()
_patient_code_buckets: dict[str, list[float]] = defaultdict(list)
_professional_code_buckets: dict[str, list[float]] = defaultdict(list)

_CODE_WINDOW = 300   # 5 minutes
_CODE_MAX = 10       # attempts per window per IP


def _check_rate_limit(bucket: dict, ip: str, window: int, max_attempts: int) -> bool:
    """Return True if the request should be allowed, False if rate limited."""
    now = time()
    with _rate_lock:
        bucket[ip] = [t for t in bucket[ip] if now - t < window]
        if len(bucket[ip]) >= max_attempts:
            return False
        bucket[ip].append(now)
        return True


def _is_patient_code_allowed(ip: str) -> bool:
    return _check_rate_limit(_patient_code_buckets, ip, _CODE_WINDOW, _CODE_MAX)


def _is_professional_code_allowed(ip: str) -> bool:
    return _check_rate_limit(_professional_code_buckets, ip, _CODE_WINDOW, _CODE_MAX)


def _header_code_allowed(bucket: dict, ip: str) -> bool:
    """Like _check_rate_limit, but a lookup only spends an attempt when it fails."""
    now = time()
    with _rate_lock:
        bucket[ip] = [t for t in bucket[ip] if now - t < _CODE_WINDOW]
        return len(bucket[ip]) < _CODE_MAX


def _note_failed_code(bucket: dict, ip: str):
    with _rate_lock:
        bucket[ip].append(time())


def _reset_rate_limits():
    with _rate_lock:
        _patient_code_buckets.clear()
        _professional_code_buckets.clear()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# ---------------------------------------------------------------------------
# Same-origin and CSRF checks
# ---------------------------------------------------------------------------

def _request_origin_host(request: Request) -> str:
    header = request.headers.get("origin") or request.headers.get("referer") or ""
    if "://" not in header:
        return ""
    return header.split("://", 1)[1].split("/", 1)[0].lower()


def _is_same_origin(request: Request) -> bool:
    origin_host = _request_origin_host(request)
    if not origin_host:
        return False
    return origin_host == request.url.netloc.lower()


def _cookie_secure(request: Request) -> bool:
    return COOKIE_SECURE or request.url.scheme == "https"


def _ensure_csrf_cookie(request: Request, response):
    if request.cookies.get(CSRF_COOKIE_NAME):
        return response
    response.set_cookie(
        CSRF_COOKIE_NAME,
        secrets.token_urlsafe(32),
        httponly=False,
        samesite="lax",
        secure=_cookie_secure(request),
    )
    return response


def _csrf_header_valid(request: Request) -> bool:
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME, "")
    header_token = request.headers.get("x-csrf-token", "")
    return bool(cookie_token) and hmac.compare_digest(cookie_token, header_token)


# ---------------------------------------------------------------------------
# Server-side sessions
# ---------------------------------------------------------------------------

def _credential_fingerprint(access_code: str, code_expiry: str = "") -> str:
    """HMAC over the credential a session was opened with.

    Stored instead of the record itself so a rotated, revoked or re-dated code
    no longer matches the session.
    """
    return hmac.new(
        SECRET_KEY.encode(), f"{access_code}:{code_expiry}".encode(), "sha256"
    ).hexdigest()


def _fingerprint_matches(stored: str, access_code: str, code_expiry: str = "") -> bool:
    return hmac.compare_digest(stored, _credential_fingerprint(access_code, code_expiry))


def _create_session(kind: str, subject_id, fingerprint: str = "") -> str:
    sid = secrets.token_urlsafe(32)
    now = int(time())
    with get_db() as conn:
        conn.execute(
            "INSERT INTO sessions (sid, kind, subject_id, fingerprint, created_at, expires_at)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            (sid, kind, str(subject_id), fingerprint, now, now + SESSION_TTL_SECONDS),
        )
        conn.commit()
    return sid


def _get_session(sid: str):
    """Return the live session row for ``sid``; expired rows are deleted on sight."""
    if not sid:
        return None
    with get_db() as conn:
        row = conn.execute("SELECT * FROM sessions WHERE sid = ?", (sid,)).fetchone()
        if row and row["expires_at"] < int(time()):
            conn.execute("DELETE FROM sessions WHERE sid = ?", (sid,))
            conn.commit()
            return None
    return row


def _delete_session(sid: str):
    if not sid:
        return
    with get_db() as conn:
        conn.execute("DELETE FROM sessions WHERE sid = ?", (sid,))
        conn.commit()


def _start_session(request: Request, response, kind: str, subject_id, fingerprint: str = ""):
    """Replace any session the browser holds with a new one of ``kind``."""
    _delete_session(request.cookies.get(SESSION_COOKIE_NAME, ""))
    sid = _create_session(kind, subject_id, fingerprint)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        sid,
        httponly=True,
        samesite="lax",
        secure=_cookie_secure(request),
        max_age=SESSION_TTL_SECONDS,
    )
    return response


def _end_session(request: Request, response):
    _delete_session(request.cookies.get(SESSION_COOKIE_NAME, ""))
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


def _purge_expired_sessions() -> int:
    with get_db() as conn:
        cur = conn.execute("DELETE FROM sessions WHERE expires_at < ?", (int(time()),))
        conn.commit()
    if cur.rowcount:
        logger.info("Purged %d expired sessions", cur.rowcount)
    return cur.rowcount
