"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field types, lengths, formats, regex patterns, role values.
  - services/auth_service.py: DUPLICATE_EMAIL / DUPLICATE_USERNAME checks
    (cross-entity: require a DB lookup — not a schema concern).

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests. See extensions.py for the full explanation.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validates, validate

from stagehub.app.models.user import UserRole


class RegisterSchema(Schema):
    """
    POST /auth/register

    Field rules:
      username : 3–50 chars, alphanumeric + underscore only
      email    : valid email format
      password : min 8 chars, at least one letter and one digit
      role     : "artist" or "fan"
      name     : display name, 1–100 chars

    Cross-entity rules (uniqueness checks) are enforced in auth_service.py,
    not here, because they require a DB query.
    """

    username = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=3,
                max=50,
                error="Username must be between 3 and 50 characters.",
            ),
            validate.Regexp(
                r"^[a-zA-Z0-9_]+$",
                error="Username may only contain letters, numbers, and underscores.",
            ),
        ],
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    # Validated in @validates below to produce a clear message per missing rule.
    password = fields.Str(required=True, load_only=True)

    role = fields.Str(
        required=True,
        validate=validate.OneOf(
            [role.value for role in UserRole],
            error="role must be 'artist' or 'fan'.",
        ),
    )

    name = fields.Str(
        required=True,
        validate=validate.Length(
            min=1,
            max=100,
            error="Name must be between 1 and 100 characters.",
        ),
    )

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        """Required, min 8 chars, at least one letter and one digit."""
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        if not any(c.isalpha() for c in value):
            raise ValidationError("Password must contain at least one letter.")
        if not any(c.isdigit() for c in value):
            raise ValidationError("Password must contain at least one digit.")

    @validates("name")
    def validate_name_not_blank(self, value: str, **kwargs) -> None:
        if not value.strip():
            raise ValidationError("This field must not be blank or contain only whitespace.")


class LoginSchema(Schema):
    """
    POST /auth/login

    Accepts username (not email) + password. Credential correctness
    is checked in auth_service.py (INVALID_CREDENTIALS, 401).
    """

    username = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)
