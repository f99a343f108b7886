"""
API response models for the authkit REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Inbound payloads are not modelled here: request bodies go through
auth/validation.py so the whitelist and violation format are enforced in one
place, before the service sees anything.

Wire names are camelCase (accessToken, createdAt) to match browser clients;
Python attribute names stay snake_case via alias_generator.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from auth.models import User


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(_WireModel):
    """Public view of a user. There is no password or refresh token field to leak."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    name: str
    email: str
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Factory Method -- the domain-to-wire mapping lives beside the wire model."""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class AuthResponse(_WireModel):
    """Body of a successful register or login. The refresh token goes in a cookie."""

    user: UserResponse
    access_token: str


class AccessTokenResponse(_WireModel):
    access_token: str


class MeResponse(_WireModel):
    user: UserResponse


class ErrorResponse(_WireModel):
    """Uniform error envelope: {statusCode, message, errors?}."""

    status_code: int
    message: str
    errors: Optional[list[dict]] = None


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str]
