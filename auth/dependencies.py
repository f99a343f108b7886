"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Access tokens travel in the Authorization: Bearer header only. The refresh
token lives in an httpOnly cookie and is never accepted here -- it can mint
access tokens but cannot authorize a request by itself.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises UnauthorizedError if unauthenticated.

Both read the AuthService from request.app.state.auth_service, which the
API lifespan sets up.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import UnauthorizedError
from auth.models import User
from auth.service import AuthService


def bearer_token(request: Request) -> str | None:
    """Return the token from an Authorization: Bearer header, or None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def try_get_current_user(request: Request) -> User | None:
    """Resolve the bearer access token to a User. Never raises on a bad token."""
    token = bearer_token(request)
    if token is None:
        return None
    service: AuthService = request.app.state.auth_service
    try:
        return service.authenticate_access_token(token)
    except UnauthorizedError:
        return None


def get_current_user(request: Request) -> User:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise UnauthorizedError("Authentication required.")
    return user
