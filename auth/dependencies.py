"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two token sources are checked in priority order:
  1. Authorization: Bearer <token> header -- API clients.
  2. JWT cookie ("access_token") -- set by POST /auth/login for browsers.

get_current_subject() raises the core's InvalidToken / ExpiredToken; the
exception handlers in api/main.py turn those into 401 responses.

Layer rule: auth/dependencies.py is the only auth/ module that may import
from fastapi, because it is the adapter the HTTP layer plugs into.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import InvalidToken
from auth.service import AuthService

COOKIE_NAME = "access_token"


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def extract_token(request: Request) -> str | None:
    """Return the bearer token from the Authorization header or cookie, if any."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header[:7].lower() == "bearer ":
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME) or None


def get_current_subject(request: Request) -> str:
    """Require a valid token and return its subject id.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(subject_id: str = Depends(get_current_subject)): ...
    """
    token = extract_token(request)
    if token is None:
        raise InvalidToken("Authentication required.")
    return get_auth_service(request).verify(token)


def set_auth_cookie(response, token: str, max_age: int, secure: bool = False) -> None:
    """Write the token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    samesite="lax": not sent on cross-site POST.
    max_age matches the token expiry so both expire together.
    """
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=max_age,
    )
