"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function inside a UnitOfWork
  - Return the standard response envelope: {"data": {...}, "warnings": []}

No business logic here. No DB queries. No bare SQL.
AppError propagates to the global error handler in app/__init__.py — routes
never catch it.

Endpoints (base url_prefix=/api/v1/auth):
  POST   /auth/register  → 201
  POST   /auth/login     → 200
  GET    /auth/me        → 200
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from stagehub.app.extensions import db
from stagehub.app.middleware.auth_middleware import require_auth
from stagehub.app.schemas.auth_schema import LoginSchema, RegisterSchema
from stagehub.app.services import auth_service
from stagehub.app.unit_of_work import UnitOfWork

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create an artist or fan account; return a token."""
    data = RegisterSchema().load(request.get_json(silent=True) or {})
    with UnitOfWork(db.session) as uow:
        result = auth_service.register_user(
            username=data["username"],
            email=data["email"],
            password=data["password"],
            role=data["role"],
            name=data["name"],
            session=uow.session,
        )
    return jsonify({"data": result, "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Authenticate; return a token. (No auth required.)"""
    data = LoginSchema().load(request.get_json(silent=True) or {})
    result = auth_service.login_user(
        username=data["username"],
        password=data["password"],
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /auth/me — Return the authenticated user's profile."""
    result = auth_service.get_current_user(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
