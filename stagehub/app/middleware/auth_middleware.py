"""
middleware/auth_middleware.py — JWT authentication decorator.

The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Decodes and verifies the JWT signature
  3. Resolves the sub claim to an existing user
  4. Attaches the authentication context to flask.g:
       g.user_id   (int)
       g.user_role (UserRole)
  5. Raises the appropriate 401 error if any step fails

Responsibility boundary:
  - This middleware authenticates (401). It never authorizes (403): artist-only
    actions, leadership and ticket ownership are checked in the services, which
    receive user_id as a plain integer argument.
  - A token whose user has been deleted is TOKEN_INVALID, not USER_NOT_FOUND,
    so a stale token cannot be used to enumerate user ids.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, bad signature, bad sub, unknown user
  TOKEN_EXPIRED  (401) — valid token but exp claim is in the past
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from stagehub.app.errors import AppError, ErrorCode
from stagehub.app.extensions import db
from stagehub.app.models.user import User


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @lives_bp.route("/reserve", methods=["POST"])
        @require_auth
        def reserve_ticket():
            user_id = g.user_id  # always an int when this runs
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _token_invalid(message: str) -> AppError:
    return AppError(ErrorCode.TOKEN_INVALID, message, 401)


def _read_bearer_token() -> str:
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _token_invalid("Authorization header must be in the format: Bearer <token>.")

    return parts[1]


def _decode_user_id(raw_token: str) -> int:
    try:
        payload = jwt.decode(
            raw_token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Log in again to obtain a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        # Covers: bad signature, malformed token, invalid claims, etc.
        raise _token_invalid("The access token is invalid or has been tampered with.")

    sub = payload.get("sub")
    if sub is None:
        raise _token_invalid("The access token is missing the required 'sub' claim.")

    try:
        return int(sub)
    except (TypeError, ValueError):
        raise _token_invalid("The 'sub' claim in the access token is not a valid user ID.")


def _authenticate_request() -> None:
    """
    Performs the full authentication sequence and populates flask.g.

    Separated from the decorator wrapper so tests can call it directly
    inside a request context.
    """
    user_id = _decode_user_id(_read_bearer_token())

    user = db.session.get(User, user_id)
    if user is None:
        raise _token_invalid("The access token refers to a user that no longer exists.")

    g.user_id = user.id
    g.user_role = user.role
