"""
schemas/group_schema.py — Marshmallow schemas for group and invitation endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim).
  - services/group_service.py:
      - FAN_CANNOT_MANAGE_GROUP / FAN_CANNOT_JOIN_GROUP (role lookup)
      - NOT_MEMBER_OF_GROUP / NOT_GROUP_LEADER (membership lookup)
      - GROUP_NOT_FOUND / INVITATION_NOT_FOUND (require DB lookup)
      - INVITATION_ALREADY_USED / ALREADY_MEMBER (require DB state)

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate

from stagehub.app.models import INTEGER_MAX


# ── Shared validators ─────────────────────────────────────────────────────
#
# validate.Length(min=1) alone allows whitespace-only strings like "   "
# because len("   ") == 3 > 0. This validator strips first then checks,
# mirroring the DB CHECK(LENGTH(TRIM(...)) > 0) at the API layer.
# ──────────────────────────────────────────────────────────────────────────

def _validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or only whitespace."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _positive_id(name: str) -> fields.Int:
    return fields.Int(
        required=True,
        strict=True,  # reject floats like 1.0 — integers only
        validate=validate.Range(
            min=1,
            max=INTEGER_MAX,
            error=f"{name} must be a positive integer no greater than {INTEGER_MAX}.",
        ),
    )


class CreateGroupSchema(Schema):
    """
    POST /groups

    name is required and non-empty after trim; the profile fields are
    optional. The DB has CHECK(LENGTH(TRIM(name)) > 0) as the last resort.
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Group name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )
    english_name = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=100))
    biography = fields.Str(load_default=None, allow_none=True)
    since = fields.Date(load_default=None, allow_none=True)
    artwork_url = fields.Url(load_default=None, allow_none=True, validate=validate.Length(max=500))
    twitter_id = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=100))
    youtube_channel_id = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=100))
    hometown = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=100))


class InviteSchema(Schema):
    """POST /groups/invite — issue an invitation for a group the caller leads."""

    group_id = _positive_id("group_id")


class JoinSchema(Schema):
    """POST /groups/join — redeem an invitation."""

    invitation_id = _positive_id("invitation_id")
