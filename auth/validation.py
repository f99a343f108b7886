"""
auth/validation.py -- Inbound payload schemas and the generic validator.

Each input type is an explicit pydantic v2 schema: field name, type, bounds.
validate_input() runs a raw JSON body through one of them and either returns
the typed, sanitized instance or raises auth.errors.ValidationError carrying
every violation as {field, rule, message}. Nothing reaches the service (and
therefore the store) until a payload has passed here.

Policy:
  strict=True     -- no coercion. 123 is not a name.
  extra="forbid"  -- whitelist. Undeclared keys are rejected, not dropped, so
                     a client cannot smuggle fields such as refresh_token or
                     hashed_password into a registration.
  All violations are collected (pydantic does not fail fast), so the caller
  gets one complete error payload.

Rule names in violations: required, type, min_length, max_length, email,
whitelist. A non-object body yields a single {field: "body", rule: "type"}.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from auth.errors import ValidationError

# local@domain.tld -- deliberately simple, not a full RFC 5322 grammar.
EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")

# ---------------------------------------------------------------------------
# Field types
# ---------------------------------------------------------------------------


def _check_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise PydanticCustomError("email", "Please provide a valid email address")
    return value


# Length bounds are checked after stripping.
PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
EmailAddress = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, max_length=255),
    AfterValidator(_check_email),
]

# Fields whose whitespace-only value counts as missing.
_TRIMMED_FIELDS = frozenset({"name", "email"})


# ---------------------------------------------------------------------------
# Input schemas
# ---------------------------------------------------------------------------


class _InputSchema(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)


class RegisterInput(_InputSchema):
    """Body of POST /auth/register."""

    name: PersonName
    email: EmailAddress
    password: str = Field(min_length=6, max_length=100)


class LoginInput(_InputSchema):
    """Body of POST /auth/login. Only non-empty is checked on the password;
    the length policy applies at registration."""

    email: EmailAddress
    password: str = Field(min_length=1)


class RefreshInput(_InputSchema):
    """Body of POST /auth/refresh-token when no refresh cookie is sent."""

    refresh_token: str = Field(alias="refreshToken", min_length=1)


# ---------------------------------------------------------------------------
# Violation formatting
# ---------------------------------------------------------------------------

_RULES: dict[str, str] = {
    "missing": "required",
    "string_type": "type",
    "string_too_short": "min_length",
    "string_too_long": "max_length",
    "email": "email",
    "extra_forbidden": "whitelist",
}

_LABELS: dict[str, str] = {
    "name": "Name",
    "email": "Email",
    "password": "Password",
    "refreshToken": "Refresh token",
}


def _message(field: str, rule: str, error: dict) -> str:
    label = _LABELS.get(field, field)
    ctx = error.get("ctx") or {}
    if rule == "required":
        return f"{label} is required"
    if rule == "type":
        return f"{label} must be a string"
    if rule == "min_length":
        return f"{label} must be at least {ctx.get('min_length')} characters long"
    if rule == "max_length":
        return f"{label} cannot be more than {ctx.get('max_length')} characters"
    if rule == "whitelist":
        return f"Property {field} should not exist"
    return error["msg"]


def _to_violation(error: dict) -> dict:
    field = ".".join(str(part) for part in error["loc"]) or "body"
    rule = _RULES.get(error["type"], error["type"])
    # An empty string is a presence failure, not a length one.
    raw = error.get("input")
    if rule == "min_length" and isinstance(raw, str):
        if raw == "" or (field in _TRIMMED_FIELDS and not raw.strip()):
            rule = "required"
    return {"field": field, "rule": rule, "message": _message(field, rule, error)}


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

SchemaT = TypeVar("SchemaT", bound=_InputSchema)


def validate_input(schema: type[SchemaT], raw: Any) -> SchemaT:
    """Validate a decoded JSON body against schema.

    Returns a fully populated schema instance -- every declared field is
    present on success. Raises ValidationError with the complete violation
    list otherwise.
    """
    if not isinstance(raw, dict):
        raise ValidationError(
            "Validation failed: Request body must be a JSON object",
            errors=[{"field": "body", "rule": "type", "message": "Request body must be a JSON object"}],
        )
    try:
        return schema.model_validate(raw)
    except PydanticValidationError as exc:
        violations = [_to_violation(e) for e in exc.errors()]
        summary = "; ".join(v["message"] for v in violations)
        raise ValidationError(f"Validation failed: {summary}", errors=violations) from exc
