import logging
import secrets

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

import storage
from access_codes import code_is_current, is_revoked_code
from config import OAUTH_STATE_COOKIE
from oauth import OAuthError, authorization_url, exchange_code, fetch_userinfo, oauth_configured
from principal import Principal, current_principal, require_user
from routers.payload_utils import _validate_access_code_payload, _validate_profile_payload
from security import (
    _client_ip,
    _cookie_secure,
    _credential_fingerprint,
    _end_session,
    _is_patient_code_allowed,
    _is_professional_code_allowed,
    _start_session,
)
from serializers import patient_public, professional_public, user_public

logger = logging.getLogger(__name__)

router = APIRouter()

_TOO_MANY = "Too many attempts. Please wait before trying again."


@router.post("/api/patient/validate")
@router.post("/api/auth/validate")
def patient_validate(request: Request, payload: dict = Body(...)):
    ip = _client_ip(request)
    if not _is_patient_code_allowed(ip):
        logger.warning("Patient code validation rate limited for %s", ip)
        return JSONResponse({"ok": False, "error": _TOO_MANY}, status_code=429)
    error, code = _validate_access_code_payload(payload)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    patient = storage.find_patient_by_code(code)
    if not patient or not patient["is_active"]:
        logger.warning("Unknown or inactive patient access code from %s", ip)
        return JSONResponse({"ok": False, "error": "Invalid access code"}, status_code=404)
    if is_revoked_code(patient["access_code"]) or not code_is_current(patient["code_expiry"]):
        logger.warning("Expired access code used for patient %s", patient["id"])
        return JSONResponse({"ok": False, "error": "Access code expired"}, status_code=410)
    resp = JSONResponse({"ok": True, "patient": patient_public(patient)})
    fingerprint = _credential_fingerprint(patient["access_code"], patient["code_expiry"])
    return _start_session(request, resp, "patient", patient["id"], fingerprint)


@router.post("/api/professional/validate")
def professional_validate(request: Request, payload: dict = Body(...)):
    ip = _client_ip(request)
    if not _is_professional_code_allowed(ip):
        logger.warning("Professional code validation rate limited for %s", ip)
        return JSONResponse({"ok": False, "error": _TOO_MANY}, status_code=429)
    error, code = _validate_access_code_payload(payload)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    professional = storage.get_professional_by_code(code)
    if not professional or not professional["is_active"]:
        logger.warning("Unknown or inactive professional access code from %s", ip)
        return JSONResponse({"ok": False, "error": "Invalid access code"}, status_code=404)
    resp = JSONResponse({"ok": True, "professional": professional_public(professional, include_code=True)})
    fingerprint = _credential_fingerprint(professional["access_code"])
    return _start_session(request, resp, "professional", professional["id"], fingerprint)


@router.post("/api/auth/logout")
def logout(request: Request):
    resp = JSONResponse({"ok": True})
    return _end_session(request, resp)


@router.get("/api/session")
def session_state(principal: Principal = Depends(current_principal)):
    if principal.is_patient:
        patient = storage.get_patient(principal.subject_id)
        return JSONResponse({"kind": "patient", "source": principal.source, "patient": patient_public(patient)})
    if principal.is_professional:
        professional = storage.get_professional(principal.subject_id)
        return JSONResponse({
            "kind": "professional",
            "source": principal.source,
            "professional": professional_public(professional),
        })
    return JSONResponse({"kind": "none"})


# ---------------------------------------------------------------------------
# OAuth login
# ---------------------------------------------------------------------------

@router.get("/api/login")
def oauth_login(request: Request):
    if not oauth_configured():
        return JSONResponse({"ok": False, "error": "OAuth login is not configured"}, status_code=503)
    state = secrets.token_urlsafe(24)
    resp = RedirectResponse(url=authorization_url(state, str(request.base_url)), status_code=302)
    resp.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        httponly=True,
        samesite="lax",
        secure=_cookie_secure(request),
        max_age=600,
    )
    return resp


@router.get("/api/callback")
def oauth_callback(request: Request, code: str = "", state: str = ""):
    if not oauth_configured():
        return JSONResponse({"ok": False, "error": "OAuth login is not configured"}, status_code=503)
    expected = request.cookies.get(OAUTH_STATE_COOKIE, "")
    if not code or not state or not expected or not secrets.compare_digest(state, expected):
        logger.warning("OAuth callback with missing or mismatched state")
        return JSONResponse({"ok": False, "error": "Invalid OAuth state"}, status_code=400)
    try:
        token = exchange_code(code, str(request.base_url))
        claims = fetch_userinfo(token)
    except OAuthError as exc:
        return JSONResponse({"ok": False, "error": f"OAuth login failed: {exc}"}, status_code=502)
    user = storage.upsert_user(**claims)
    logger.info("OAuth login for user %s", user["id"])
    resp = RedirectResponse(url="/", status_code=302)
    resp.delete_cookie(OAUTH_STATE_COOKIE)
    return _start_session(request, resp, "user", user["id"])


@router.get("/api/logout")
def oauth_logout(request: Request):
    resp = RedirectResponse(url="/", status_code=302)
    return _end_session(request, resp)


@router.get("/api/auth/user")
def oauth_user(principal: Principal = Depends(require_user)):
    user = storage.get_user(principal.user_id)
    if not user:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    return JSONResponse(user_public(user))


@router.post("/api/professional/register")
def professional_register(payload: dict = Body(...), principal: Principal = Depends(require_user)):
    if principal.is_professional:
        return JSONResponse({"ok": False, "error": "Already registered as a professional"}, status_code=409)
    error, fields = _validate_profile_payload(payload)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    if not fields["email"]:
        user = storage.get_user(principal.user_id)
        fields["email"] = (user or {}).get("email") or ""
    professional = storage.create_professional(user_id=principal.user_id, **fields)
    return JSONResponse({"ok": True, "professional": professional_public(professional, include_code=True)})
