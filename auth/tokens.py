"""
auth/tokens.py -- JWT issuing/verification and the refresh-token cookie.

Security design decisions:
  JWT: python-jose with HS256. Access and refresh tokens are signed with two
       different secrets so one class of token can never be replayed as the
       other. Each token carries a random jti, so two tokens issued for the
       same user in the same second still differ -- rotation always changes
       the stored value.

  Access token claims:  sub (user id), email, name, iat, exp, jti
  Refresh token claims: sub (user id), iat, exp, jti

  Verification raises a TokenError subclass instead of returning None so the
       caller can log the failure kind. The service collapses every kind into
       one UnauthorizedError -- clients never learn which check failed.

  Settings are passed into TokenIssuer explicitly (no module-level config
       read) so tests can build issuers with short expiries or fixed secrets.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import ExpiredTokenError, MalformedTokenError, TokenSignatureError
from auth.models import TokenPair, User
from core.config import Settings

ALGORITHM = "HS256"
REFRESH_COOKIE_NAME = "refreshToken"


class TokenIssuer:
    """Creates and verifies signed, time-bounded access and refresh tokens.

    Usage:
        issuer = TokenIssuer(settings)
        pair = issuer.issue_pair(user)
        claims = issuer.verify_refresh(pair.refresh_token)
    """

    def __init__(self, settings: Settings) -> None:
        self._access_secret = settings.access_token_secret
        self._refresh_secret = settings.refresh_token_secret
        self.access_ttl = settings.access_token_expire_seconds
        self.refresh_ttl = settings.refresh_token_expire_seconds

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access(self, user: User) -> str:
        """Sign a short-lived access token carrying the user's identity claims."""
        claims = {"sub": str(user.id), "email": user.email, "name": user.name}
        return _encode(claims, self._access_secret, self.access_ttl)

    def issue_refresh(self, user_id: int) -> str:
        """Sign a long-lived refresh token carrying only the subject id."""
        return _encode({"sub": str(user_id)}, self._refresh_secret, self.refresh_ttl)

    def issue_pair(self, user: User) -> TokenPair:
        return TokenPair(access_token=self.issue_access(user), refresh_token=self.issue_refresh(user.id))

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify_access(self, token: str) -> dict:
        return self.verify(token, self._access_secret)

    def verify_refresh(self, token: str) -> dict:
        return self.verify(token, self._refresh_secret)

    @staticmethod
    def verify(token: str, secret: str) -> dict:
        """Decode and verify a token. Returns the claims dict.

        Raises:
            MalformedTokenError: not a parseable JWT, or the sub claim is missing.
            TokenSignatureError: tampered, or signed under a different key.
            ExpiredTokenError:   signature valid but past exp.
        """
        try:
            jwt.get_unverified_header(token)
        except JWTError as exc:
            raise MalformedTokenError("Token is not a parseable JWT.") from exc
        try:
            claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError as exc:
            raise ExpiredTokenError("Token has expired.") from exc
        except JWTClaimsError as exc:
            raise MalformedTokenError(str(exc)) from exc
        except JWTError as exc:
            raise TokenSignatureError("Token signature verification failed.") from exc
        if "sub" not in claims:
            raise MalformedTokenError("Token has no subject claim.")
        return claims


def _encode(claims: dict, secret: str, ttl_seconds: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_refresh_cookie(response, token: str, settings: Settings) -> None:
    """Write the refresh token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="strict": never sent on cross-site requests (CSRF mitigation for
        the refresh and logout endpoints, which act on the cookie alone).
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the refresh token expiry so both expire together.
    """
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
        max_age=settings.refresh_token_expire_seconds,
    )


def clear_refresh_cookie(response, settings: Settings) -> None:
    response.delete_cookie(
        REFRESH_COOKIE_NAME,
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
    )
