"""
api/routes/v1/auth.py -- Signup, login, logout and profile REST endpoints.

Routes:
  POST /api/v1/auth/signup   -- create an account; 201 with the public profile
  POST /api/v1/auth/login    -- password login; returns a bearer token and sets the cookie
  POST /api/v1/auth/logout   -- clears the cookie; 200
  GET  /api/v1/auth/profile  -- current user's profile (requires a valid token)

Errors raised by the core (auth.errors.AuthError subclasses) are not caught
here. The exception handler in api/main.py maps them to status codes and the
standard error envelope.

signup and login are plain `def` handlers: bcrypt is CPU-bound, and FastAPI
runs sync handlers in its thread pool so hashing never blocks the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from api.models import CredentialsRequest, LoginResponse, MessageResponse, ProfileResponse
from auth.dependencies import COOKIE_NAME, get_auth_service, get_current_subject, set_auth_cookie
from auth.service import AuthService

# Auth policy:
# - POST /api/v1/auth/signup:   public
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/logout:   public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/profile:  requires a valid token (get_current_subject)
router = APIRouter()


@router.post("/auth/signup", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def signup(body: CredentialsRequest, service: AuthService = Depends(get_auth_service)) -> ProfileResponse:
    """Register a new username/password pair."""
    profile = service.register(body.username, body.password)
    return ProfileResponse.from_profile(profile)


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: CredentialsRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Authenticate with username and password; return a token and set the cookie.

    Wrong username and wrong password produce the same 401 body.
    """
    token = service.login(body.username, body.password)
    expires_in = service.issuer.expire_seconds
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=expires_in,
        ).model_dump(),
    )
    set_auth_cookie(resp, token, max_age=expires_in, secure=request.app.state.secure_cookies)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
async def logout() -> JSONResponse:
    """Clear the token cookie. The token itself stays valid until it expires."""
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    resp.delete_cookie(COOKIE_NAME)
    return resp


@router.get("/auth/profile", response_model=ProfileResponse)
def profile(
    subject_id: str = Depends(get_current_subject),
    service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    """Return the profile of the user the token was issued to."""
    return ProfileResponse.from_profile(service.get_profile(subject_id))
