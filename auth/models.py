"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, the token
issuer and the service do the work; these only own the shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An identity that can log in with email + password.

    hashed_password is only populated by UserStore.get_by_email(). Every other
    read path (get_by_id, update_user, create_user) returns it as None, so a
    User that reaches the API layer cannot leak the hash by accident.

    refresh_token is the single live refresh token for this user. None means
    logged out: no refresh token can be exchanged until the next login.

    id is None before the record is written to the database.
    """

    name: str
    email: str
    id: int | None = None
    hashed_password: str | None = None
    refresh_token: str | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert
    updated_at: str | None = None  # ISO 8601, bumped on every update


@dataclass(frozen=True)
class TokenPair:
    """A freshly issued access + refresh token pair."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful register() or login().

    user never carries hashed_password or refresh_token; the refresh token
    travels separately so the route layer can put it in a cookie.
    """

    user: User
    access_token: str
    refresh_token: str
