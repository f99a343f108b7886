"""
tests/test_validation.py -- Unit tests for auth/validation.py.

Covers:
  - happy path returns typed, sanitized instances
  - every rule: required, type, min_length, max_length, email, whitelist
  - all violations reported together (not fail-fast)
  - non-object bodies
"""

from __future__ import annotations

import pytest

from auth.errors import ValidationError
from auth.validation import LoginInput, RefreshInput, RegisterInput, validate_input


def _violations(schema, raw) -> list[dict]:
    with pytest.raises(ValidationError) as exc_info:
        validate_input(schema, raw)
    assert exc_info.value.status_code == 400
    return exc_info.value.errors


def _rules(violations: list[dict]) -> set[tuple[str, str]]:
    return {(v["field"], v["rule"]) for v in violations}


class TestRegisterInput:
    def test_valid_payload(self):
        data = validate_input(RegisterInput, {"name": "  Ann ", "email": " Ann@X.com", "password": "secret1"})
        assert data.name == "Ann"
        assert data.email == "ann@x.com"
        assert data.password == "secret1"

    def test_password_is_not_trimmed(self):
        data = validate_input(RegisterInput, {"name": "Ann", "email": "ann@x.com", "password": " secret1 "})
        assert data.password == " secret1 "

    def test_invalid_email(self):
        violations = _violations(RegisterInput, {"name": "Ann", "email": "not-an-email", "password": "secret1"})
        assert _rules(violations) == {("email", "email")}
        assert violations[0]["message"] == "Please provide a valid email address"

    @pytest.mark.parametrize("email", ["ann@", "@x.com", "ann@x", "ann x@x.com", "ann@x.c"])
    def test_rejected_email_shapes(self, email):
        violations = _violations(RegisterInput, {"name": "Ann", "email": email, "password": "secret1"})
        assert ("email", "email") in _rules(violations)

    def test_length_bounds(self):
        violations = _violations(RegisterInput, {"name": "A", "email": "ann@x.com", "password": "12345"})
        assert _rules(violations) == {("name", "min_length"), ("password", "min_length")}

    def test_upper_bounds(self):
        violations = _violations(RegisterInput, {"name": "A" * 51, "email": "ann@x.com", "password": "p" * 101})
        assert _rules(violations) == {("name", "max_length"), ("password", "max_length")}
        messages = {v["field"]: v["message"] for v in violations}
        assert messages["name"] == "Name cannot be more than 50 characters"

    def test_length_messages_use_field_labels(self):
        violations = _violations(RegisterInput, {"name": "A", "email": "ann@x.com", "password": "secret1"})
        assert violations == [
            {"field": "name", "rule": "min_length", "message": "Name must be at least 2 characters long"}
        ]

    def test_name_length_counts_after_trimming(self):
        violations = _violations(RegisterInput, {"name": "  A  ", "email": "ann@x.com", "password": "secret1"})
        assert _rules(violations) == {("name", "min_length")}

    def test_whitespace_only_name_is_required(self):
        violations = _violations(RegisterInput, {"name": "   ", "email": "ann@x.com", "password": "secret1"})
        assert violations == [{"field": "name", "rule": "required", "message": "Name is required"}]

    def test_email_too_long(self):
        email = "a" * 250 + "@x.com"
        violations = _violations(RegisterInput, {"name": "Ann", "email": email, "password": "secret1"})
        assert violations == [
            {"field": "email", "rule": "max_length", "message": "Email cannot be more than 255 characters"}
        ]

    def test_boundaries_accepted(self):
        data = validate_input(RegisterInput, {"name": "Al", "email": "al@x.io", "password": "p" * 100})
        assert data.name == "Al"
        data = validate_input(RegisterInput, {"name": "A" * 50, "email": "al@x.io", "password": "123456"})
        assert len(data.name) == 50

    def test_missing_fields_all_reported(self):
        violations = _violations(RegisterInput, {})
        assert _rules(violations) == {("name", "required"), ("email", "required"), ("password", "required")}

    def test_empty_string_is_presence_failure(self):
        violations = _violations(RegisterInput, {"name": "Ann", "email": "ann@x.com", "password": ""})
        assert _rules(violations) == {("password", "required")}

    def test_wrong_types(self):
        violations = _violations(RegisterInput, {"name": 42, "email": ["ann@x.com"], "password": 123456})
        assert _rules(violations) == {("name", "type"), ("email", "type"), ("password", "type")}

    def test_unknown_fields_rejected_not_dropped(self):
        payload = {"name": "Ann", "email": "ann@x.com", "password": "secret1", "refreshToken": "pre-set"}
        violations = _violations(RegisterInput, payload)
        assert _rules(violations) == {("refreshToken", "whitelist")}
        assert violations[0]["message"] == "Property refreshToken should not exist"

    def test_violations_collected_across_rules(self):
        violations = _violations(RegisterInput, {"email": "bad", "password": "123", "isAdmin": True})
        assert _rules(violations) == {
            ("name", "required"),
            ("email", "email"),
            ("password", "min_length"),
            ("isAdmin", "whitelist"),
        }

    def test_summary_message(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_input(RegisterInput, {"name": "Ann", "email": "nope", "password": "secret1"})
        assert exc_info.value.message == "Validation failed: Please provide a valid email address"


class TestLoginInput:
    def test_valid(self):
        data = validate_input(LoginInput, {"email": "ANN@x.com", "password": "x"})
        assert data.email == "ann@x.com"

    def test_password_length_not_capped(self):
        data = validate_input(LoginInput, {"email": "ann@x.com", "password": "p" * 150})
        assert len(data.password) == 150

    def test_name_not_accepted(self):
        violations = _violations(LoginInput, {"name": "Ann", "email": "ann@x.com", "password": "secret1"})
        assert _rules(violations) == {("name", "whitelist")}


class TestRefreshInput:
    def test_valid(self):
        assert validate_input(RefreshInput, {"refreshToken": "abc"}).refresh_token == "abc"

    def test_snake_case_key_is_unknown(self):
        violations = _violations(RefreshInput, {"refresh_token": "abc"})
        assert _rules(violations) == {("refreshToken", "required"), ("refresh_token", "whitelist")}


@pytest.mark.parametrize("raw", [None, [], "text", 42])
def test_non_object_body(raw):
    violations = _violations(LoginInput, raw)
    assert violations == [{"field": "body", "rule": "type", "message": "Request body must be a JSON object"}]
