"""
api/routes/auth.py -- Authentication REST endpoints.

Routes:
  POST /auth/register       -- create account; 201 {user, accessToken} + refresh cookie
  POST /auth/login          -- password login; 200 {user, accessToken} + refresh cookie
  POST /auth/refresh-token  -- rotate refresh token; 200 {accessToken} + new cookie
  POST /auth/logout         -- end session; 200 {} + cleared cookie
  GET  /auth/me             -- current user (requires Bearer access token)

Every handler is a plain `def`: Starlette runs it in the worker thread pool,
so bcrypt and the blocking store calls never stall the event loop.

Bodies are taken as raw JSON (Any) and passed through validate_input() so
unknown fields are rejected and every violation is reported as
{field, rule, message}. Service errors (AuthError subclasses) propagate to
the handler in api/main.py, which renders {statusCode, message, errors?}.

Security:
  [M5] Cache-Control: no-store on every response that carries a token.
  The refresh token is only ever sent back in the httpOnly cookie, never in
  a JSON body.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AccessTokenResponse, AuthResponse, MeResponse, UserResponse
from auth.dependencies import get_current_user, try_get_current_user
from auth.errors import UnauthorizedError
from auth.models import AuthResult, User
from auth.service import AuthService
from auth.tokens import REFRESH_COOKIE_NAME, clear_refresh_cookie, set_refresh_cookie
from auth.validation import LoginInput, RefreshInput, RegisterInput, validate_input
from core.config import Settings

logger = logging.getLogger("authkit.api")

# Auth policy:
# - POST /auth/register:       public
# - POST /auth/login:          public
# - POST /auth/refresh-token:  public -- the refresh token is the credential
# - POST /auth/logout:         public -- acts on whichever credential is presented
# - GET  /auth/me:             requires Bearer access token (get_current_user)
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _session_response(request: Request, result: AuthResult, status_code: int) -> JSONResponse:
    body = AuthResponse(user=UserResponse.from_user(result.user), access_token=result.access_token)
    resp = JSONResponse(status_code=status_code, content=body.to_wire())
    set_refresh_cookie(resp, result.refresh_token, _settings(request))
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Session endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", status_code=201, response_model=AuthResponse)
def register(request: Request, body: Any = Body(None)) -> JSONResponse:
    """Create an account and start its first session.

    Validation runs before the service is touched: a 400 here means no
    store read or write happened.
    """
    data = validate_input(RegisterInput, body)
    result = _service(request).register(data)
    return _session_response(request, result, status_code=201)


@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: Any = Body(None)) -> JSONResponse:
    """Authenticate with email and password.

    Wrong email and wrong password produce the same 401 body.
    """
    data = validate_input(LoginInput, body)
    result = _service(request).login(data)
    return _session_response(request, result, status_code=200)


@router.post("/auth/refresh-token", response_model=AccessTokenResponse)
def refresh_token(request: Request, body: Any = Body(None)) -> JSONResponse:
    """Exchange the current refresh token for a new access token and a rotated cookie.

    Token source: the refreshToken cookie when present, otherwise a JSON body
    {refreshToken} validated like any other input. With neither, the
    empty-body validation reports refreshToken as required.
    """
    token = request.cookies.get(REFRESH_COOKIE_NAME)
    if not token:
        token = validate_input(RefreshInput, {} if body is None else body).refresh_token
    pair = _service(request).refresh_access_token(token)
    resp = JSONResponse(status_code=200, content=AccessTokenResponse(access_token=pair.access_token).to_wire())
    set_refresh_cookie(resp, pair.refresh_token, _settings(request))
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/logout")
def logout(request: Request) -> JSONResponse:
    """Clear the stored refresh token and the cookie.

    The session is identified by the Bearer access token when present,
    otherwise by the refresh cookie. A stale or invalid cookie still gets
    cleared on the client, but cannot end anyone's live session.
    """
    service = _service(request)
    user = try_get_current_user(request)
    if user is not None:
        service.logout(user.id)
    else:
        cookie = request.cookies.get(REFRESH_COOKIE_NAME)
        if cookie:
            try:
                service.logout_with_refresh_token(cookie)
            except UnauthorizedError:
                logger.info("Logout with a stale refresh cookie; clearing cookie only")
    resp = JSONResponse(status_code=200, content={})
    clear_refresh_cookie(resp, _settings(request))
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Return the user behind the Bearer access token."""
    return JSONResponse(content=MeResponse(user=UserResponse.from_user(current_user)).to_wire())
