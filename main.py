import logging
import sqlite3

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from access_codes import AccessCodeCollision
from config import PUBLIC_API_PATHS
from db import init_db
from principal import AuthError, resolve_principal
from routers import auth, diet, patients, professional
from security import _csrf_header_valid, _ensure_csrf_cookie, _is_same_origin, _purge_expired_sessions

logger = logging.getLogger(__name__)

_MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
_AMBIENT_SOURCES = {"cookie", "oauth"}

init_db()
_purge_expired_sessions()

app = FastAPI(title="Diet Care")

app.include_router(auth.router)
app.include_router(patients.router)
app.include_router(diet.router)
app.include_router(professional.router)


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    path = request.url.path
    mutating = request.method in _MUTATING_METHODS
    if mutating and not _is_same_origin(request):
        logger.warning("Cross-origin %s %s rejected", request.method, path)
        return JSONResponse({"error": "forbidden"}, status_code=403)
    try:
        principal = resolve_principal(request)
    except AuthError as exc:
        return JSONResponse({"error": exc.error}, status_code=exc.status_code)
    request.state.principal = principal
    # Cookie and OAuth sessions must echo the CSRF cookie.
    if (
        mutating
        and path.startswith("/api/")
        and path not in PUBLIC_API_PATHS
        and principal.source in _AMBIENT_SOURCES
        and not _csrf_header_valid(request)
    ):
        return JSONResponse({"error": "forbidden"}, status_code=403)
    return _ensure_csrf_cookie(request, await call_next(request))


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse({"error": exc.error}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"ok": False, "error": "Invalid request body"}, status_code=400)


@app.exception_handler(sqlite3.Error)
@app.exception_handler(AccessCodeCollision)
async def storage_error_handler(request: Request, exc: Exception):
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "internal server error"}, status_code=500)


@app.get("/health")
def health():
    return {"status": "ok"}
