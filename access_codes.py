"""Access-code issuance, rotation and revocation.

Patient codes are short-lived (ACCESS_CODE_TTL_DAYS) and are replaced whenever a
patient is created, a weight record is appended or a professional regenerates
the code. Professional codes are issued once and never rotated.

Uniqueness is enforced by the UNIQUE constraint on ``access_code``; a collision
surfaces as ``sqlite3.IntegrityError`` and is retried a bounded number of times.
"""
import logging
import secrets
import sqlite3
from datetime import timedelta

from config import (
    ACCESS_CODE_ALPHABET,
    ACCESS_CODE_LENGTH,
    ACCESS_CODE_MAX_ATTEMPTS,
    REVOKED_CODE_PREFIX,
    _code_expiry_from_now,
    _from_storage,
    _now_utc,
    _to_storage,
)

logger = logging.getLogger(__name__)


class AccessCodeCollision(Exception):
    """Raised when every attempt to write a fresh code hit an existing one."""


def generate_access_code() -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))


def new_code_expiry() -> str:
    return _to_storage(_code_expiry_from_now())


def is_revoked_code(code: str) -> bool:
    return code.startswith(REVOKED_CODE_PREFIX)


def code_is_current(code_expiry: str) -> bool:
    """True while the expiry lies in the future. Evaluated on every lookup."""
    try:
        return _from_storage(code_expiry) > _now_utc()
    except ValueError:
        return False


def code_status(access_code: str, code_expiry: str) -> str:
    if is_revoked_code(access_code):
        return "revoked"
    if not code_is_current(code_expiry):
        return "expired"
    return "active"


def with_unique_code(write, attempts: int = ACCESS_CODE_MAX_ATTEMPTS):
    """Call ``write(code)`` with fresh codes until it stops colliding.

    ``write`` performs the INSERT or UPDATE that stores the code. Only
    duplicate-code failures are retried; other integrity errors propagate.
    Returns ``(code, write_result)``.
    """
    for attempt in range(1, attempts + 1):
        code = generate_access_code()
        try:
            return code, write(code)
        except sqlite3.IntegrityError as exc:
            if "access_code" not in str(exc):
                raise
            logger.warning("Access code collision on attempt %d/%d", attempt, attempts)
    raise AccessCodeCollision(f"could not issue a unique access code after {attempts} attempts")


def issue_access_code(conn, patient_id: int):
    """Rotate a patient's code and expiry. Returns ``(code, code_expiry)``; caller commits."""
    expiry = new_code_expiry()
    code, _ = with_unique_code(
        lambda c: conn.execute(
            "UPDATE patients SET access_code = ?, code_expiry = ? WHERE id = ?",
            (c, expiry, patient_id),
        )
    )
    logger.info("Issued new access code for patient %s", patient_id)
    return code, expiry


def revoke_access_code(conn, patient_id: int) -> str:
    """Replace the code with a per-patient sentinel that is already expired; caller commits."""
    expired = _to_storage(_now_utc() - timedelta(seconds=1))
    conn.execute(
        "UPDATE patients SET access_code = ?, code_expiry = ? WHERE id = ?",
        (f"{REVOKED_CODE_PREFIX}{patient_id}", expired, patient_id),
    )
    logger.info("Revoked access code for patient %s", patient_id)
    return expired
