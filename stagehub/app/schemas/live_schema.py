"""
schemas/live_schema.py — Marshmallow schemas for live, request and ticket endpoints.

Validation responsibility:
  - This file:
      - Field types, lengths, the {"kind", "value"} style shape
      - INVALID_LIVE_STYLE (400) — unknown kind, wrong value shape
      - INVALID_PRICE      (400) — negative price, or above INTEGER_MAX
      - INVALID_FIELD      (400) — an id above INTEGER_MAX
      - Edit requests may not carry style, host or price (unknown field)
  - services/live_service.py:
      - ONEMAN_PERFORMER_MUST_BE_HOST / DUPLICATE_PERFORMER need host_group_id
        and the whole performer list; re-checked there before any write
      - Role, membership and existence checks (require DB lookup)

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates

from stagehub.app.domain.live_style import Battle, Festival, Oneman, StyleKind
from stagehub.app.errors import ErrorCode
from stagehub.app.models import INTEGER_MAX


def _validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or only whitespace."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _positive_id(name: str) -> fields.Int:
    return fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(
            min=1,
            max=INTEGER_MAX,
            error=f"{name} must be a positive integer no greater than {INTEGER_MAX}.",
        ),
    )


# ── Style field ────────────────────────────────────────────────────────────
#
# Wire format:
#   {"kind": "oneman",   "value": 3}
#   {"kind": "battle",   "value": [3, 7]}
#   {"kind": "festival", "value": [3, 7, 9]}
# Deserialises to Oneman[int] | Battle[int] | Festival[int].
# Every shape problem is reported as INVALID_LIVE_STYLE so clients get one
# stable code for "this is not a style".
# ──────────────────────────────────────────────────────────────────────────

def _is_group_id(value) -> bool:
    # bool is a subclass of int; true/false are not group ids.
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= INTEGER_MAX


class LiveStyleField(fields.Field):

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, dict) or set(value) != {"kind", "value"}:
            raise ValidationError(ErrorCode.INVALID_LIVE_STYLE)

        try:
            kind = StyleKind(value["kind"])
        except ValueError:
            raise ValidationError(ErrorCode.INVALID_LIVE_STYLE) from None

        performers = value["value"]

        if kind is StyleKind.ONEMAN:
            if not _is_group_id(performers):
                raise ValidationError(ErrorCode.INVALID_LIVE_STYLE)
            return Oneman(performers)

        if (
            not isinstance(performers, list)
            or not performers
            or not all(_is_group_id(p) for p in performers)
        ):
            raise ValidationError(ErrorCode.INVALID_LIVE_STYLE)

        if kind is StyleKind.BATTLE:
            return Battle(tuple(performers))
        return Festival(tuple(performers))


# ── Lives ──────────────────────────────────────────────────────────────────

class _LiveDetailsSchema(Schema):
    """Descriptive fields shared by create and edit."""

    artwork_url = fields.Url(allow_none=True, validate=validate.Length(max=500))
    live_house = fields.Str(allow_none=True, validate=validate.Length(max=200))
    date = fields.Date(allow_none=True)
    end_date = fields.Date(allow_none=True)
    open_at = fields.AwareDateTime(allow_none=True)
    start_at = fields.AwareDateTime(allow_none=True)


class CreateLiveSchema(_LiveDetailsSchema):
    """
    POST /lives

    host_group_id : the group hosting the live; the author must belong to it
    style         : see LiveStyleField
    price         : whole amount, 0 <= price <= INTEGER_MAX
    """

    title = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=200,
                error="Title must be between 1 and 200 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )
    host_group_id = _positive_id("host_group_id")
    style = LiveStyleField(required=True)
    price = fields.Int(required=True, strict=True)

    @validates("price")
    def validate_price(self, value: int, **kwargs) -> None:
        if not 0 <= value <= INTEGER_MAX:
            raise ValidationError(ErrorCode.INVALID_PRICE)


class EditLiveSchema(_LiveDetailsSchema):
    """
    POST /lives/edit/:id

    Every field is optional; only the keys sent are written. Style, host,
    performers and price are not accepted here — sending them is an unknown
    field error (INVALID_FIELD).
    """

    title = fields.Str(
        validate=[
            validate.Length(
                min=1,
                max=200,
                error="Title must be between 1 and 200 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )


# ── Performance requests ───────────────────────────────────────────────────

class ReplyRequestSchema(Schema):
    """POST /lives/reply"""

    request_id = _positive_id("request_id")
    reply = fields.Str(
        required=True,
        validate=validate.OneOf(
            ["accept", "deny"],
            error="reply must be 'accept' or 'deny'.",
        ),
    )


# ── Tickets ────────────────────────────────────────────────────────────────

class ReserveTicketSchema(Schema):
    """POST /lives/reserve"""

    live_id = _positive_id("live_id")


class RefundTicketSchema(Schema):
    """POST /lives/refund"""

    ticket_id = _positive_id("ticket_id")


# ── Pagination ─────────────────────────────────────────────────────────────

class PaginationSchema(Schema):
    """
    Query string of paginated GET endpoints: ?page=1&per=20

    The upper bound for per is MAX_PAGE_SIZE, applied by the route because it
    comes from app config.
    """

    page = fields.Int(
        load_default=1,
        validate=validate.Range(
            min=1,
            max=INTEGER_MAX,
            error=f"page must be between 1 and {INTEGER_MAX}.",
        ),
    )
    per = fields.Int(
        load_default=20,
        validate=validate.Range(min=1, error="per must be 1 or greater."),
    )
