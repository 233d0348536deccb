"""Per-request identity.

Every request is resolved once, in the HTTP middleware, to a single Principal.
The credential channels are tried in order:

1. ``x-professional-code`` header (stateless professional code)
2. ``x-patient-session`` header (stateless patient code, raw or the JSON
   blob older clients keep in localStorage)
3. the session cookie (patient, professional or OAuth user session)

Rejected header codes count against the same per-IP buckets as the validate
endpoints; once a bucket is full the request is answered with 429.

Nothing about the patient or professional record is trusted from the session:
the row is re-read and the credential fingerprint re-checked every time.
"""
import json
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

import storage
from access_codes import code_is_current
from config import PATIENT_HEADER, PROFESSIONAL_HEADER, SESSION_COOKIE_NAME
from security import (
    _client_ip,
    _delete_session,
    _fingerprint_matches,
    _get_session,
    _header_code_allowed,
    _note_failed_code,
    _patient_code_buckets,
    _professional_code_buckets,
)

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"
PATIENT = "patient"
PROFESSIONAL = "professional"


@dataclass(frozen=True)
class Principal:
    kind: str = ANONYMOUS
    subject_id: Optional[int] = None
    user_id: Optional[str] = None
    source: str = ""

    @property
    def is_patient(self) -> bool:
        return self.kind == PATIENT

    @property
    def is_professional(self) -> bool:
        return self.kind == PROFESSIONAL

    @property
    def is_anonymous(self) -> bool:
        return self.kind == ANONYMOUS


NOBODY = Principal()


class AuthError(Exception):
    def __init__(self, status_code: int, error: str):
        super().__init__(error)
        self.status_code = status_code
        self.error = error


def _patient_can_sign_in(patient) -> bool:
    return bool(patient) and bool(patient["is_active"]) and code_is_current(patient["code_expiry"])


def _header_patient_code(raw: str) -> str:
    raw = raw.strip()
    if not raw.startswith("{"):
        return raw.upper()
    try:
        blob = json.loads(raw)
    except ValueError:
        return ""
    if not isinstance(blob, dict):
        return ""
    patient = blob.get("patient")
    if isinstance(patient, dict) and patient.get("accessCode"):
        return str(patient["accessCode"]).strip().upper()
    return str(blob.get("accessCode") or "").strip().upper()


def _from_professional_header(code: str, ip: str):
    if not _header_code_allowed(_professional_code_buckets, ip):
        logger.warning("Professional code header rate limited for %s", ip)
        raise AuthError(429, "too many attempts")
    professional = storage.get_professional_by_code(code.strip().upper())
    if professional and professional["is_active"]:
        return Principal(PROFESSIONAL, professional["id"], professional["user_id"], "header")
    _note_failed_code(_professional_code_buckets, ip)
    logger.warning("Rejected %s header from %s", PROFESSIONAL_HEADER, ip)
    return None


def _from_patient_header(raw: str, ip: str):
    if not _header_code_allowed(_patient_code_buckets, ip):
        logger.warning("Patient code header rate limited for %s", ip)
        raise AuthError(429, "too many attempts")
    code = _header_patient_code(raw)
    patient = storage.find_patient_by_code(code) if code else None
    if _patient_can_sign_in(patient):
        return Principal(PATIENT, patient["id"], patient["user_id"], "header")
    _note_failed_code(_patient_code_buckets, ip)
    logger.warning("Rejected %s header from %s", PATIENT_HEADER, ip)
    return None


def _from_oauth_user(user_id: str) -> Principal:
    if not storage.get_user(user_id):
        return NOBODY
    professional = storage.get_professional_by_user(user_id)
    if professional:
        return Principal(PROFESSIONAL, professional["id"], user_id, "oauth")
    patient = storage.get_patient_by_user(user_id)
    if _patient_can_sign_in(patient):
        return Principal(PATIENT, patient["id"], user_id, "oauth")
    return Principal(ANONYMOUS, None, user_id, "oauth")


def _from_session(sid: str) -> Principal:
    session = _get_session(sid)
    if not session:
        return NOBODY
    kind = session["kind"]
    if kind == "user":
        return _from_oauth_user(session["subject_id"])
    if kind == PATIENT:
        patient = storage.get_patient(session["subject_id"])
        if _patient_can_sign_in(patient) and _fingerprint_matches(
            session["fingerprint"], patient["access_code"], patient["code_expiry"]
        ):
            return Principal(PATIENT, patient["id"], patient["user_id"], "cookie")
    elif kind == PROFESSIONAL:
        professional = storage.get_professional(session["subject_id"])
        if professional and professional["is_active"] and _fingerprint_matches(
            session["fingerprint"], professional["access_code"]
        ):
            return Principal(PROFESSIONAL, professional["id"], professional["user_id"], "cookie")
    logger.info("Dropping stale %s session", kind)
    _delete_session(sid)
    return NOBODY


def resolve_principal(request: Request) -> Principal:
    """Raises AuthError(429) once header guesses from this IP hit the validate limit."""
    ip = _client_ip(request)
    professional_code = request.headers.get(PROFESSIONAL_HEADER, "")
    if professional_code:
        principal = _from_professional_header(professional_code, ip)
        if principal:
            return principal
    patient_header = request.headers.get(PATIENT_HEADER, "")
    if patient_header:
        principal = _from_patient_header(patient_header, ip)
        if principal:
            return principal
    return _from_session(request.cookies.get(SESSION_COOKIE_NAME, ""))


# ---------------------------------------------------------------------------
# Route guards (FastAPI dependencies)
# ---------------------------------------------------------------------------

def current_principal(request: Request) -> Principal:
    return getattr(request.state, "principal", None) or NOBODY


def _require(request: Request, *kinds: str) -> Principal:
    principal = current_principal(request)
    if principal.kind in kinds:
        return principal
    if principal.is_anonymous:
        raise AuthError(401, "unauthorized")
    raise AuthError(403, "forbidden")


def require_patient(request: Request) -> Principal:
    return _require(request, PATIENT)


def require_professional(request: Request) -> Principal:
    return _require(request, PROFESSIONAL)


def require_any(request: Request) -> Principal:
    return _require(request, PATIENT, PROFESSIONAL)


def require_user(request: Request) -> Principal:
    principal = current_principal(request)
    if not principal.user_id:
        raise AuthError(401, "unauthorized")
    return principal
