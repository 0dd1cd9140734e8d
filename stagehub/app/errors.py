"""
errors.py — AppError base class and error code registry.

Every error returned by the StageHub API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by kind. HTTP status is indicated in the section header.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Invalid Input (400) ───────────────────────────────────────────────
    # Rejected before any write.
    MISSING_FIELD                 = "MISSING_FIELD"
    INVALID_FIELD                 = "INVALID_FIELD"
    INVALID_PRICE                 = "INVALID_PRICE"
    INVALID_LIVE_STYLE            = "INVALID_LIVE_STYLE"
    ONEMAN_PERFORMER_MUST_BE_HOST = "ONEMAN_PERFORMER_MUST_BE_HOST"
    DUPLICATE_PERFORMER           = "DUPLICATE_PERFORMER"

    # ── Conflict (409) ────────────────────────────────────────────────────
    # Safe to retry only after re-reading state.
    DUPLICATE_EMAIL               = "DUPLICATE_EMAIL"
    DUPLICATE_USERNAME            = "DUPLICATE_USERNAME"
    ALREADY_MEMBER                = "ALREADY_MEMBER"
    INVITATION_ALREADY_USED       = "INVITATION_ALREADY_USED"
    TICKET_ALREADY_RESERVED       = "TICKET_ALREADY_RESERVED"
    TICKET_ALREADY_REFUNDED       = "TICKET_ALREADY_REFUNDED"
    REQUEST_ALREADY_RESOLVED      = "REQUEST_ALREADY_RESOLVED"
    ALREADY_FOLLOWING             = "ALREADY_FOLLOWING"
    NOT_FOLLOWING                 = "NOT_FOLLOWING"

    # ── Not Found (404) ───────────────────────────────────────────────────
    USER_NOT_FOUND                = "USER_NOT_FOUND"
    GROUP_NOT_FOUND               = "GROUP_NOT_FOUND"
    LIVE_NOT_FOUND                = "LIVE_NOT_FOUND"
    INVITATION_NOT_FOUND          = "INVITATION_NOT_FOUND"
    REQUEST_NOT_FOUND             = "REQUEST_NOT_FOUND"
    TICKET_NOT_FOUND              = "TICKET_NOT_FOUND"

    # ── Forbidden (403) ───────────────────────────────────────────────────
    # We know who you are, but you are not allowed.
    NOT_MEMBER_OF_GROUP           = "NOT_MEMBER_OF_GROUP"
    NOT_GROUP_LEADER              = "NOT_GROUP_LEADER"
    ONLY_LEADER_CAN_ACCEPT        = "ONLY_LEADER_CAN_ACCEPT"
    TICKET_PERMISSION_ERROR       = "TICKET_PERMISSION_ERROR"
    FAN_CANNOT_CREATE_LIVE        = "FAN_CANNOT_CREATE_LIVE"
    FAN_CANNOT_EDIT_LIVE          = "FAN_CANNOT_EDIT_LIVE"
    FAN_CANNOT_BE_PERFORMER       = "FAN_CANNOT_BE_PERFORMER"
    FAN_CANNOT_JOIN_GROUP         = "FAN_CANNOT_JOIN_GROUP"
    FAN_CANNOT_MANAGE_GROUP       = "FAN_CANNOT_MANAGE_GROUP"

    # ── Unauthenticated (401) ─────────────────────────────────────────────
    # We do not know who you are. Never swap with 403.
    INVALID_CREDENTIALS           = "INVALID_CREDENTIALS"
    TOKEN_MISSING                 = "TOKEN_MISSING"
    TOKEN_INVALID                 = "TOKEN_INVALID"
    TOKEN_EXPIRED                 = "TOKEN_EXPIRED"

    # ── System Errors (500) ───────────────────────────────────────────────
    INTERNAL_ERROR                = "INTERNAL_ERROR"


# ── Constructors for the frequent cases ───────────────────────────────────
# Keeps messages uniform across services that raise the same code.

def not_found(code: str, entity: str, entity_id: int) -> AppError:
    return AppError(code, f"{entity} {entity_id} does not exist.", 404)


def forbidden(code: str, message: str) -> AppError:
    return AppError(code, message, 403)


def conflict(code: str, message: str, field: str | None = None) -> AppError:
    return AppError(code, message, 409, field=field)


def invalid_input(code: str, message: str, field: str | None = None) -> AppError:
    return AppError(code, message, 400, field=field)
