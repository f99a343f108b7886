"""
auth/service.py -- Register / login / refresh / logout orchestration.

AuthService composes UserStore, the password hasher and TokenIssuer. It is
the boundary where low-level failures turn into typed AuthError subclasses:

  DuplicateEmailError   -> ConflictError
  TokenError (any kind) -> UnauthorizedError
  SQLAlchemyError       -> ServiceUnavailableError (logged with traceback)

Methods are synchronous. The FastAPI routes that call them are plain `def`
handlers, so Starlette runs them in its worker thread pool and bcrypt's CPU
cost never blocks the event loop.

Security:
  [C1] login() always runs exactly one bcrypt comparison. Unknown emails are
       checked against a dummy hash built at construction with the same cost
       factor, so response time does not reveal whether an email exists.

  Rotation: the presented refresh token must be signature-valid AND equal to
       the stored one. The swap uses UserStore.rotate_refresh_token(), a
       single conditional UPDATE, so a token can be exchanged at most once
       even when two requests race with it.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from auth.errors import (
    ConflictError,
    DuplicateEmailError,
    InvalidCredentialsError,
    ServiceUnavailableError,
    TokenError,
    UnauthorizedError,
)
from auth.models import AuthResult, TokenPair, User
from auth.passwords import hash_password, verify_password
from auth.store import UserStore
from auth.tokens import TokenIssuer
from auth.validation import LoginInput, RegisterInput
from core.config import Settings

logger = logging.getLogger("authkit.auth")


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Re-raise persistence failures as ServiceUnavailableError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Credential store failure during %s", operation)
        raise ServiceUnavailableError() from exc


def _public(user: User) -> User:
    """Copy of user with every secret-bearing field cleared."""
    return User(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class AuthService:
    """Auth orchestrator. Build once at startup and share across requests.

    Usage:
        service = AuthService(UserStore(settings.database_url), TokenIssuer(settings), settings)
        result = service.register(validate_input(RegisterInput, body))
    """

    def __init__(self, store: UserStore, issuer: TokenIssuer, settings: Settings) -> None:
        self.store = store
        self.issuer = issuer
        self._rounds = settings.bcrypt_rounds
        # [C1] same cost factor as real hashes, computed once so the first
        # failed login is not measurably slower than the rest.
        self._dummy_hash = hash_password("authkit-timing-dummy", rounds=self._rounds)

    # ------------------------------------------------------------------
    # Register / login
    # ------------------------------------------------------------------

    def register(self, data: RegisterInput) -> AuthResult:
        """Create a user and open their first session.

        Raises ConflictError if the email is taken; nothing is written in that case.
        """
        with _store_errors("register"):
            if self.store.get_by_email(data.email) is not None:
                raise ConflictError()
            hashed = hash_password(data.password, rounds=self._rounds)
            try:
                user = self.store.create_user(User(name=data.name, email=data.email, hashed_password=hashed))
            except DuplicateEmailError as exc:
                raise ConflictError() from exc
            result = self._open_session(user)
        logger.info("Registered user id=%s", user.id)
        return result

    def login(self, data: LoginInput) -> AuthResult:
        """Check credentials and open a new session, replacing any previous one.

        Unknown email and wrong password raise the same InvalidCredentialsError
        after the same amount of bcrypt work [C1].
        """
        with _store_errors("login"):
            user = self.store.get_by_email(data.email)
            if user is None:
                verify_password(data.password, self._dummy_hash)
                logger.info("Login failed: unknown email")
                raise InvalidCredentialsError()
            if not verify_password(data.password, user.hashed_password or ""):
                logger.info("Login failed: bad password for user id=%s", user.id)
                raise InvalidCredentialsError()
            result = self._open_session(user)
        logger.info("User id=%s logged in", user.id)
        return result

    def _open_session(self, user: User) -> AuthResult:
        pair = self.issuer.issue_pair(user)
        stored = self.store.update_user(user.id, refresh_token=pair.refresh_token)
        if stored is None:
            raise UnauthorizedError()
        return AuthResult(user=_public(stored), access_token=pair.access_token, refresh_token=pair.refresh_token)

    # ------------------------------------------------------------------
    # Refresh / logout
    # ------------------------------------------------------------------

    def refresh_access_token(self, token: str) -> TokenPair:
        """Exchange a current refresh token for a new access + refresh pair.

        The presented token becomes permanently unusable. Expired, forged,
        unknown-subject and already-rotated tokens all raise UnauthorizedError.
        """
        with _store_errors("refresh"):
            user = self._user_for_current_refresh_token(token)
            pair = self.issuer.issue_pair(user)
            if not self.store.rotate_refresh_token(user.id, expected=token, new=pair.refresh_token):
                # Lost a race with another request presenting the same token.
                logger.warning("Refresh token for user id=%s rotated concurrently", user.id)
                raise UnauthorizedError("Refresh token is expired or used.")
        logger.info("Rotated refresh token for user id=%s", user.id)
        return pair

    def logout(self, user_id: int) -> None:
        """End the user's session. Safe to call when already logged out."""
        with _store_errors("logout"):
            self.store.clear_refresh_token(user_id)
        logger.info("User id=%s logged out", user_id)

    def logout_with_refresh_token(self, token: str) -> None:
        """Logout for callers that only hold the refresh cookie.

        Only the current token can end the session: a stale token raises
        UnauthorizedError instead of logging out whoever holds the live one.
        """
        with _store_errors("logout"):
            user = self._user_for_current_refresh_token(token)
        self.logout(user.id)

    def _user_for_current_refresh_token(self, token: str) -> User:
        try:
            claims = self.issuer.verify_refresh(token)
            user_id = int(claims["sub"])
        except (TokenError, ValueError) as exc:
            logger.info("Rejected refresh token: %s", type(exc).__name__)
            raise UnauthorizedError("Invalid refresh token.") from exc
        user = self.store.get_by_id(user_id)
        if user is None:
            logger.warning("Refresh token subject id=%s does not resolve to a user", user_id)
            raise UnauthorizedError("Invalid refresh token.")
        if user.refresh_token is None or not hmac.compare_digest(token.encode(), user.refresh_token.encode()):
            logger.warning("Replayed or superseded refresh token for user id=%s", user.id)
            raise UnauthorizedError("Refresh token is expired or used.")
        return user

    # ------------------------------------------------------------------
    # Access token
    # ------------------------------------------------------------------

    def authenticate_access_token(self, token: str) -> User:
        """Resolve a bearer access token to its (sanitized) user."""
        try:
            claims = self.issuer.verify_access(token)
            user_id = int(claims["sub"])
        except (TokenError, ValueError) as exc:
            raise UnauthorizedError("Invalid access token.") from exc
        with _store_errors("authenticate"):
            user = self.store.get_by_id(user_id)
        if user is None:
            raise UnauthorizedError("Invalid access token.")
        return _public(user)
