"""Authorization-code login against an OpenID-style provider."""
import logging
from urllib.parse import urlencode

import requests

from config import (
    OAUTH_AUTHORIZE_URL,
    OAUTH_CLIENT_ID,
    OAUTH_CLIENT_SECRET,
    OAUTH_REDIRECT_URI,
    OAUTH_SCOPES,
    OAUTH_TOKEN_URL,
    OAUTH_USERINFO_URL,
)

logger = logging.getLogger(__name__)

_TIMEOUT = 15


class OAuthError(Exception):
    pass


def _json_object(resp, what: str) -> dict:
    try:
        body = resp.json()
    except ValueError as exc:
        logger.warning("OAuth %s response was not JSON", what)
        raise OAuthError(f"{what} response was not JSON") from exc
    if not isinstance(body, dict):
        raise OAuthError(f"{what} response was not a JSON object")
    return body


def oauth_configured() -> bool:
    return all((OAUTH_CLIENT_ID, OAUTH_AUTHORIZE_URL, OAUTH_TOKEN_URL, OAUTH_USERINFO_URL))


def _redirect_uri(base_url: str) -> str:
    return OAUTH_REDIRECT_URI or f"{base_url.rstrip('/')}/api/callback"


def authorization_url(state: str, base_url: str) -> str:
    query = urlencode({
        "response_type": "code",
        "client_id": OAUTH_CLIENT_ID,
        "redirect_uri": _redirect_uri(base_url),
        "scope": OAUTH_SCOPES,
        "state": state,
        "prompt": "login consent",
    })
    return f"{OAUTH_AUTHORIZE_URL}?{query}"


def exchange_code(code: str, base_url: str) -> str:
    """Trade the authorization code for an access token."""
    try:
        resp = requests.post(
            OAUTH_TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": _redirect_uri(base_url),
                "client_id": OAUTH_CLIENT_ID,
                "client_secret": OAUTH_CLIENT_SECRET,
            },
            headers={"Accept": "application/json"},
            timeout=_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.exception("OAuth token request failed")
        raise OAuthError("token request failed") from exc
    if not 200 <= resp.status_code < 300:
        logger.warning(
            "OAuth token exchange failed with status %s: %s",
            resp.status_code,
            (resp.text or "")[:200],
        )
        raise OAuthError("token exchange rejected")
    token = _json_object(resp, "token").get("access_token")
    if not token:
        raise OAuthError("token response carried no access_token")
    return token


def fetch_userinfo(access_token: str) -> dict:
    """Return the provider claims normalised to the users table columns."""
    try:
        resp = requests.get(
            OAUTH_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            timeout=_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.exception("OAuth userinfo request failed")
        raise OAuthError("userinfo request failed") from exc
    if not 200 <= resp.status_code < 300:
        logger.warning("OAuth userinfo failed with status %s", resp.status_code)
        raise OAuthError("userinfo rejected")
    claims = _json_object(resp, "userinfo")
    subject = str(claims.get("sub") or "")
    if not subject:
        raise OAuthError("userinfo carried no subject")
    return {
        "user_id": subject,
        "email": str(claims.get("email") or "").strip().lower(),
        "first_name": claims.get("given_name") or claims.get("first_name") or "",
        "last_name": claims.get("family_name") or claims.get("last_name") or "",
        "profile_image_url": claims.get("picture") or claims.get("profile_image_url") or "",
    }
