"""
api/main.py -- FastAPI application entry point for CredCore.

Exposes the credential and session core over HTTP. The core (auth/) knows
nothing about HTTP; this module wires it to routes and maps its errors to
status codes.

Run with:  uvicorn api.main:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects Host headers outside ALLOWED_HOSTS
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. log_requests          -- one access log line per request

Lifespan builds the store, hasher and issuer from Settings on startup and
closes the store on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth import errors
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import DEFAULT_DB_URL, CredentialStore
from auth.tokens import SessionIssuer
from core.config import Settings, get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("credcore.api")

# Read once at module load; the host allow-list must be known before the
# middleware stack is built.
_settings = get_settings()

# Core error -> HTTP status. Kept here so auth/ stays transport-agnostic.
_STATUS_BY_ERROR: dict[type[errors.AuthError], int] = {
    errors.ValidationError: 422,
    errors.DuplicateUsername: 409,
    errors.InvalidCredentials: 401,
    errors.InvalidToken: 401,
    errors.ExpiredToken: 401,
    errors.NotFound: 404,
    errors.StorageError: 503,
}


def build_auth_service(settings: Settings) -> AuthService:
    """Assemble AuthService from Settings. Shared by the API lifespan and the CLI."""
    store = CredentialStore(settings.database_url or DEFAULT_DB_URL)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    issuer = SessionIssuer(secret=settings.secret_key, expire_seconds=settings.token_expire_seconds)
    return AuthService(store, hasher, issuer)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the auth core on startup; close the store on shutdown."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)
    logger.info("CredCore API starting up")
    app.state.auth_service = build_auth_service(settings)
    app.state.secure_cookies = settings.secure_cookies
    logger.info(
        "Auth initialized (users=%d, token_expire_seconds=%d)",
        app.state.auth_service.store.count_users(),
        settings.token_expire_seconds,
    )

    yield

    app.state.auth_service.store.close()
    logger.info("CredCore API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CredCore API",
    description="Username/password registration, login and bearer-token sessions.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(errors.AuthError)
async def auth_error_handler(request: Request, exc: errors.AuthError) -> JSONResponse:
    """Map core errors to status codes. Messages are secret-free by construction."""
    status_code = _STATUS_BY_ERROR.get(type(exc), 400)
    if isinstance(exc, errors.StorageError):
        logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc.__cause__)
    response = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
    )
    if status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
        response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation.

    Only the location and message of each error are echoed -- the offending
    input value may be a password.
    """
    detail = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=detail,
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Registered on Starlette's base class so router 404/405 responses are
    covered as well as HTTPException raised from routes.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"], response_model=HealthResponse)
def health(request: Request) -> JSONResponse:
    """Return liveness, version, and whether the users table answers.

    A failing credential store turns the whole response into 503 "degraded"
    so load balancers stop routing to this instance.
    """
    db_ok = request.app.state.auth_service.store.ping()
    body = HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
    return JSONResponse(status_code=200 if db_ok else 503, content=body.model_dump())
